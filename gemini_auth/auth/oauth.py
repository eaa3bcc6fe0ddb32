"""Google OAuth 2.0 client for Gemini Code Assist.

The client object returned by get_oauth_client() is defined here. It wraps
google-auth and google-auth-oauthlib:

- Authorization URLs are built for the installed-application flow with
  offline access and forced re-consent, so a refresh token is always issued.
- Authorization codes are exchanged through google_auth_oauthlib's Flow.
- Credentials are held as ObservedCredentials; every refresh, explicit or
  performed silently by AuthorizedSession, is reported to the registered
  token listeners.
- All outbound traffic goes through one requests session carrying the
  configured proxy.

CloudShellClient exposes the same request surface for credentials issued by
the Compute Engine metadata server.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from typing import Any
from urllib.parse import urlencode

import requests
from google.auth import compute_engine
from google.auth.exceptions import RefreshError
from google.auth.transport.requests import AuthorizedSession, Request
from google_auth_oauthlib.flow import Flow

from gemini_auth.auth.storage import CredentialCache
from gemini_auth.auth.tokens import (
    GOOGLE_TOKEN_URI,
    ObservedCredentials,
    TokenBundle,
    bundle_from_credentials,
    credentials_from_bundle,
)
from gemini_auth.config import AuthConfig
from gemini_auth.utils.errors import AuthenticationError, ConfigurationError, TokenError

logger = logging.getLogger(__name__)

# Scopes for Cloud Code authorization
OAUTH_SCOPES = [
    "https://www.googleapis.com/auth/cloud-platform",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]

# Google OAuth endpoints
GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_USERINFO_URI = "https://www.googleapis.com/oauth2/v2/userinfo"

REQUEST_TIMEOUT = 30

TokenListener = Callable[[TokenBundle], None]


def _build_session(proxy: str | None) -> requests.Session:
    session = requests.Session()
    if proxy:
        session.proxies = {"http": proxy, "https": proxy}
    return session


class _AuthorizedRequests:
    """Authorized HTTP calls shared by the OAuth and Cloud Shell clients."""

    _session: requests.Session

    @property
    def credentials(self) -> Any:
        raise NotImplementedError

    def _auth_request(self) -> Request:
        return Request(session=self._session)

    def authorized_session(self) -> AuthorizedSession:
        """Return a requests session that attaches and refreshes the token."""
        session = AuthorizedSession(self.credentials, auth_request=self._auth_request())
        session.proxies = dict(self._session.proxies)
        return session

    def request(self, url: str, method: str = "GET", **kwargs: Any) -> dict[str, Any]:
        """Perform an authorized request and return the decoded JSON body.

        Raises:
            requests.HTTPError: If the response status is not 2xx.
        """
        kwargs.setdefault("timeout", REQUEST_TIMEOUT)
        with self.authorized_session() as session:
            response = session.request(method, url, **kwargs)
            response.raise_for_status()
            data: dict[str, Any] = response.json()
            return data


class OAuthClient(_AuthorizedRequests):
    """Token-bearing Google OAuth client for an installed application.

    Attributes:
        _client_id: OAuth client ID.
        _client_secret: OAuth client secret.
        _session: requests session used for every outbound call.
        _credentials: Current credentials, or None before sign-in.
        _listeners: Callbacks notified with each new Token Bundle.

    Example:
        >>> client = OAuthClient("id.apps.googleusercontent.com", "secret")
        >>> client.on_tokens(cache.save)
        >>> url = client.generate_auth_url(redirect_uri="http://localhost:8085")
        >>> client.get_token(code, redirect_uri="http://localhost:8085")
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        proxy: str | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._session = _build_session(proxy)
        self._credentials: ObservedCredentials | None = None
        self._listeners: list[TokenListener] = []

    @classmethod
    def from_config(cls, config: AuthConfig) -> OAuthClient:
        return cls(config.client_id, config.client_secret, proxy=config.proxy)

    @property
    def is_configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    @property
    def credentials(self) -> ObservedCredentials:
        """Current credentials.

        Raises:
            AuthenticationError: If no credentials have been set yet.
        """
        if self._credentials is None:
            raise AuthenticationError("No credentials available - sign in first")
        return self._credentials

    @property
    def has_credentials(self) -> bool:
        return self._credentials is not None

    # =========================================================================
    # Token listeners
    # =========================================================================

    def on_tokens(self, listener: TokenListener) -> None:
        """Register a callback for new or refreshed tokens.

        The callback stays registered for the lifetime of the client and is
        invoked with the full Token Bundle after every code exchange and
        every refresh.
        """
        self._listeners.append(listener)

    def _emit_tokens(self, bundle: TokenBundle) -> None:
        for listener in self._listeners:
            listener(bundle)

    def _handle_refresh(self, credentials: Any) -> None:
        self._emit_tokens(bundle_from_credentials(credentials))

    # =========================================================================
    # Authorization
    # =========================================================================

    def require_configured(self) -> None:
        """Raise ConfigurationError unless a client ID and secret are set."""
        if not self.is_configured:
            raise ConfigurationError(
                "OAuth not configured",
                setting="GEMINI_OAUTH_CLIENT_ID",
                details={
                    "hint": "Set GEMINI_OAUTH_CLIENT_ID and GEMINI_OAUTH_CLIENT_SECRET "
                    "environment variables"
                },
            )

    def _get_client_config(self, redirect_uri: str | None) -> dict[str, Any]:
        # "installed" = Desktop app client type, required for loopback flows
        return {
            "installed": {
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [redirect_uri] if redirect_uri else [],
            }
        }

    def generate_auth_url(
        self,
        redirect_uri: str | None = None,
        state: str | None = None,
    ) -> str:
        """Create the consent page URL.

        Args:
            redirect_uri: Loopback URL the browser is sent back to. Omitted
                for the manual flow.
            state: Optional CSRF token echoed back on the redirect.

        Returns:
            The full authorization URL.

        Raises:
            ConfigurationError: If the client ID or secret is missing.
        """
        self.require_configured()

        params = {
            "client_id": self._client_id,
            "response_type": "code",
            "scope": " ".join(OAUTH_SCOPES),
            "access_type": "offline",
            "prompt": "consent",
        }
        if redirect_uri:
            params["redirect_uri"] = redirect_uri
        if state:
            params["state"] = state

        return f"{GOOGLE_AUTH_URI}?{urlencode(params)}"

    def get_token(self, code: str, redirect_uri: str | None = None) -> TokenBundle:
        """Exchange an authorization code for tokens.

        The resulting credentials are applied to this client and every
        token listener is notified.

        Args:
            code: Authorization code from the redirect.
            redirect_uri: The redirect URI used to obtain the code.

        Returns:
            The new Token Bundle.

        Raises:
            ConfigurationError: If the client ID or secret is missing.
            TokenError: If the exchange fails.
        """
        self.require_configured()

        # Google may add "openid" to the granted scopes
        os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")

        flow = Flow.from_client_config(
            self._get_client_config(redirect_uri),
            scopes=OAUTH_SCOPES,
            redirect_uri=redirect_uri,
        )
        flow.oauth2session.proxies = dict(self._session.proxies)

        try:
            flow.fetch_token(code=code)
        except Exception as e:
            logger.error("Failed to exchange authorization code: %s", e)
            raise TokenError(
                f"Failed to exchange authorization code: {e}",
                details={"error_type": type(e).__name__},
            ) from e

        bundle = bundle_from_credentials(flow.credentials)
        self.set_credentials(bundle)
        logger.info("Successfully exchanged authorization code for tokens")
        self._emit_tokens(bundle)
        return bundle

    def set_credentials(self, bundle: TokenBundle) -> None:
        """Apply a Token Bundle without notifying listeners."""
        self._credentials = credentials_from_bundle(
            bundle,
            self._client_id,
            self._client_secret,
            on_refresh=self._handle_refresh,
        )

    def refresh(self) -> None:
        """Refresh the access token. Listeners are notified on success.

        Raises:
            AuthenticationError: If there are no credentials.
            TokenError: If the refresh request fails.
        """
        credentials = self.credentials
        try:
            credentials.refresh(self._auth_request())
        except RefreshError as e:
            logger.error("Failed to refresh token: %s", e)
            raise TokenError(
                f"Failed to refresh token: {e}",
                details={"error_type": type(e).__name__},
            ) from e

    def get_access_token(self) -> str:
        """Return a valid access token, refreshing it first if needed."""
        if not self.credentials.valid:
            self.refresh()
        return str(self.credentials.token)


class CloudShellClient(_AuthorizedRequests):
    """Client backed by the Compute Engine metadata server.

    The metadata server manages its own token lifetime, so nothing obtained
    here is ever written to the credential cache.
    """

    def __init__(self, proxy: str | None = None) -> None:
        self._session = _build_session(proxy)
        # Service account email is supplied by the metadata server
        self._credentials = compute_engine.Credentials()

    @property
    def credentials(self) -> compute_engine.Credentials:
        return self._credentials

    def refresh(self) -> None:
        self._credentials.refresh(self._auth_request())

    def get_access_token(self) -> str:
        if not self._credentials.valid:
            self.refresh()
        return str(self._credentials.token)


def fetch_and_cache_user_info(client: _AuthorizedRequests, cache: CredentialCache) -> None:
    """Fetch the userinfo profile and cache it. Failures are only logged."""
    try:
        user_info = client.request(GOOGLE_USERINFO_URI)
    except Exception as e:
        logger.warning("Failed to fetch user info: %s", e)
        return
    cache.save_user_info(user_info)


__all__ = [
    "CloudShellClient",
    "GOOGLE_AUTH_URI",
    "GOOGLE_USERINFO_URI",
    "OAUTH_SCOPES",
    "OAuthClient",
    "TokenListener",
    "fetch_and_cache_user_info",
]
