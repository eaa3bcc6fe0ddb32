"""Shared helpers for gemini-auth.

Currently this is the exception hierarchy used across the package.
"""

from gemini_auth.utils.errors import (
    AuthenticationError,
    ConfigurationError,
    GeminiAuthError,
    TokenError,
    get_error_message,
)

__all__ = [
    "GeminiAuthError",
    "AuthenticationError",
    "TokenError",
    "ConfigurationError",
    "get_error_message",
]
