"""gemini-auth: OAuth bootstrap for the Gemini command-line assistant.

Obtains, caches and refreshes Google OAuth 2.0 credentials. See
gemini_auth.auth.get_oauth_client for the flow order.
"""

from gemini_auth.auth import CredentialCache, OAuthClient, get_oauth_client
from gemini_auth.config import AuthConfig, AuthType

__version__ = "0.1.0"

__all__ = [
    "AuthConfig",
    "AuthType",
    "CredentialCache",
    "OAuthClient",
    "get_oauth_client",
]
