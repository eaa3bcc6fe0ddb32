"""Exception hierarchy for gemini-auth.

Every error raised by the authentication bootstrap derives from
GeminiAuthError so callers can catch the whole family at once. Soft failures
(cache I/O, profile fetch) never surface as exceptions; they are logged where
they happen.
"""

from __future__ import annotations


class GeminiAuthError(Exception):
    """Base exception for all gemini-auth errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, details: dict[str, object] | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class AuthenticationError(GeminiAuthError):
    """Raised when an authentication flow fails.

    Examples:
        - User denied consent in the browser
        - The loopback redirect arrived without an authorization code
        - Every flow was exhausted without obtaining credentials
        - The Cloud Shell metadata server could not issue a token
    """

    pass


class TokenError(AuthenticationError):
    """Raised when exchanging or refreshing OAuth tokens fails."""

    pass


class ConfigurationError(GeminiAuthError):
    """Raised for missing or invalid configuration values.

    Attributes:
        setting: Name of the offending setting, if applicable.
    """

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        """Initialize the configuration error.

        Args:
            message: Human-readable error description.
            setting: Name of the environment variable or field at fault.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(message, details)
        self.setting = setting


def get_error_message(error: BaseException) -> str:
    """Return the bare message of an exception, without details."""
    if isinstance(error, GeminiAuthError):
        return error.message
    return str(error) or type(error).__name__


__all__ = [
    "GeminiAuthError",
    "AuthenticationError",
    "TokenError",
    "ConfigurationError",
    "get_error_message",
]
