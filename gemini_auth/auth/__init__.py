"""Authentication for Gemini Code Assist.

This module provides:

- get_oauth_client(): cached credentials, Cloud Shell metadata identity,
  loopback browser flow and manual user-code flow, in that order
- CredentialCache: oauth_creds.json and user_info.json under ~/.gemini
- OAuthClient: the token-bearing client with refresh notifications

Usage:
    >>> import asyncio
    >>> from gemini_auth.auth import get_oauth_client
    >>> from gemini_auth.config import AuthConfig
    >>>
    >>> client = asyncio.run(get_oauth_client(config=AuthConfig.from_env()))
    >>> client.get_access_token()
"""

from gemini_auth.auth.callback import CallbackListener, WebLogin, auth_with_web, get_available_port
from gemini_auth.auth.flows import auth_with_user_code, authenticate_cloud_shell
from gemini_auth.auth.oauth import (
    GOOGLE_AUTH_URI,
    GOOGLE_USERINFO_URI,
    OAUTH_SCOPES,
    CloudShellClient,
    OAuthClient,
    fetch_and_cache_user_info,
)
from gemini_auth.auth.orchestrator import MAX_USER_CODE_ATTEMPTS, get_oauth_client
from gemini_auth.auth.storage import CredentialCache, clear_cached_credential_file
from gemini_auth.auth.tokens import (
    GOOGLE_TOKEN_URI,
    bundle_from_credentials,
    credentials_from_bundle,
)

__all__ = [
    # Orchestration
    "get_oauth_client",
    "MAX_USER_CODE_ATTEMPTS",
    # Clients
    "OAuthClient",
    "CloudShellClient",
    "fetch_and_cache_user_info",
    "OAUTH_SCOPES",
    "GOOGLE_AUTH_URI",
    "GOOGLE_TOKEN_URI",
    "GOOGLE_USERINFO_URI",
    # Flows
    "CallbackListener",
    "WebLogin",
    "auth_with_web",
    "auth_with_user_code",
    "authenticate_cloud_shell",
    "get_available_port",
    # Cache
    "CredentialCache",
    "clear_cached_credential_file",
    "bundle_from_credentials",
    "credentials_from_bundle",
]
