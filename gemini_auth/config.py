"""Configuration for the authentication bootstrap.

All settings come from the environment (optionally seeded from a .env file
by the entry point). The cache directory is an explicit value on AuthConfig
so tests and embedding applications can point it anywhere.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from gemini_auth.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

GEMINI_DIR = ".gemini"
CREDENTIAL_FILENAME = "oauth_creds.json"
USER_INFO_FILENAME = "user_info.json"

# Environment variables that mark an automated run where no browser exists
CI_ENV_VARS = ("CI", "GITHUB_ACTIONS")


class AuthType(str, Enum):
    """How the caller wants to authenticate."""

    LOGIN_WITH_GOOGLE = "oauth-personal"
    CLOUD_SHELL = "cloud-shell"


def _is_truthy(value: str | None) -> bool:
    return (value or "").lower() in ("true", "1", "yes")


def default_cache_dir() -> Path:
    """Return ~/.gemini, the shared Gemini CLI state directory."""
    return Path.home() / GEMINI_DIR


def should_attempt_browser_launch(environ: Mapping[str, str] | None = None) -> bool:
    """Check whether opening a browser makes sense in this environment.

    Args:
        environ: Environment mapping to inspect. Defaults to os.environ.

    Returns:
        False when running under CI, True otherwise.
    """
    env = os.environ if environ is None else environ
    return not any(env.get(name) for name in CI_ENV_VARS)


@dataclass
class AuthConfig:
    """Settings consumed by get_oauth_client().

    Attributes:
        client_id: OAuth client ID of the installed application.
        client_secret: OAuth client secret. For installed applications this
            is not confidential.
        auth_type: Requested authentication mode.
        proxy: Optional proxy URL applied to every outbound call.
        no_browser: Skip the loopback browser flow and go straight to the
            manual user-code flow.
        cache_dir: Directory holding oauth_creds.json and user_info.json.
    """

    client_id: str = ""
    client_secret: str = ""
    auth_type: AuthType = AuthType.LOGIN_WITH_GOOGLE
    proxy: str | None = None
    no_browser: bool = False
    cache_dir: Path = field(default_factory=default_cache_dir)

    @property
    def credential_path(self) -> Path:
        return self.cache_dir / CREDENTIAL_FILENAME

    @property
    def user_info_path(self) -> Path:
        return self.cache_dir / USER_INFO_FILENAME

    @property
    def is_configured(self) -> bool:
        """True if both client ID and secret are set."""
        return bool(self.client_id and self.client_secret)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AuthConfig:
        """Build configuration from environment variables.

        Recognized variables:
            GEMINI_OAUTH_CLIENT_ID, GEMINI_OAUTH_CLIENT_SECRET,
            GEMINI_AUTH_TYPE (oauth-personal | cloud-shell),
            GEMINI_NO_BROWSER, HTTPS_PROXY / HTTP_PROXY, GEMINI_DIR.

        Raises:
            ConfigurationError: If GEMINI_AUTH_TYPE holds an unknown value.
        """
        env = os.environ if environ is None else environ

        raw_auth_type = env.get("GEMINI_AUTH_TYPE") or AuthType.LOGIN_WITH_GOOGLE.value
        try:
            auth_type = AuthType(raw_auth_type.lower())
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown authentication type: {raw_auth_type}",
                setting="GEMINI_AUTH_TYPE",
                details={"allowed": [t.value for t in AuthType]},
            ) from e

        proxy = (
            env.get("HTTPS_PROXY")
            or env.get("https_proxy")
            or env.get("HTTP_PROXY")
            or env.get("http_proxy")
            or None
        )

        cache_dir_raw = env.get("GEMINI_DIR")
        cache_dir = Path(cache_dir_raw).expanduser() if cache_dir_raw else default_cache_dir()

        config = cls(
            client_id=env.get("GEMINI_OAUTH_CLIENT_ID", ""),
            client_secret=env.get("GEMINI_OAUTH_CLIENT_SECRET", ""),
            auth_type=auth_type,
            proxy=proxy,
            no_browser=_is_truthy(env.get("GEMINI_NO_BROWSER")),
            cache_dir=cache_dir,
        )

        if not config.is_configured and auth_type is AuthType.LOGIN_WITH_GOOGLE:
            logger.warning(
                "OAuth client not configured. Set GEMINI_OAUTH_CLIENT_ID and "
                "GEMINI_OAUTH_CLIENT_SECRET environment variables."
            )
        return config


__all__ = [
    "AuthConfig",
    "AuthType",
    "CREDENTIAL_FILENAME",
    "GEMINI_DIR",
    "USER_INFO_FILENAME",
    "default_cache_dir",
    "should_attempt_browser_launch",
]
