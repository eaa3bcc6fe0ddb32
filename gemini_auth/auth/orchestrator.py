"""Top-level "give me an authenticated client" operation.

get_oauth_client() tries, in order:

1. Cached credentials from oauth_creds.json (always preferred)
2. Cloud Shell metadata credentials, when that mode is requested
3. The manual user-code flow, when no browser can be launched
4. The loopback browser flow, falling back once to the manual flow

Every token the OAuth client obtains or refreshes afterwards is written to
the credential cache through a listener registered on the client.
"""

from __future__ import annotations

import asyncio
import logging

from gemini_auth.auth.callback import auth_with_web
from gemini_auth.auth.flows import auth_with_user_code, authenticate_cloud_shell, open_browser
from gemini_auth.auth.oauth import CloudShellClient, OAuthClient, fetch_and_cache_user_info
from gemini_auth.auth.storage import CredentialCache
from gemini_auth.config import AuthConfig, AuthType, should_attempt_browser_launch
from gemini_auth.utils.errors import AuthenticationError, get_error_message

logger = logging.getLogger(__name__)

MAX_USER_CODE_ATTEMPTS = 2

AuthClient = OAuthClient | CloudShellClient


def _load_cached_credentials(client: OAuthClient, cache: CredentialCache) -> bool:
    bundle = cache.load()
    if bundle is None:
        return False
    try:
        client.set_credentials(bundle)
    except (TypeError, ValueError) as e:
        logger.debug("Cached credentials could not be applied: %s", e)
        return False
    return True


async def _auth_with_browser(client: OAuthClient) -> None:
    web_login = await auth_with_web(client)
    try:
        print("\n🔐 Opening browser for authentication...")
        print("If the browser doesn't open automatically, please visit:")
        print(web_login.auth_url)
        open_browser(web_login.auth_url)
        await web_login.login_complete
    finally:
        await web_login.listener.aclose()


async def _auth_with_user_code_retries(client: OAuthClient) -> None:
    for attempt in range(MAX_USER_CODE_ATTEMPTS):
        try:
            success = await auth_with_user_code(client)
        except AuthenticationError as e:
            logger.warning("User code authentication attempt %d failed: %s", attempt + 1, e)
            success = False

        if success:
            return
        if attempt < MAX_USER_CODE_ATTEMPTS - 1:
            print("Retrying authentication...")

    raise AuthenticationError(
        "Failed to authenticate after multiple attempts.",
        details={"attempts": MAX_USER_CODE_ATTEMPTS},
    )


async def get_oauth_client(
    auth_type: AuthType | None = None,
    config: AuthConfig | None = None,
) -> AuthClient:
    """Return an authenticated client, signing in if needed.

    Args:
        auth_type: Requested mode. Defaults to config.auth_type.
        config: Settings. Defaults to AuthConfig.from_env().

    Returns:
        An OAuthClient, or a CloudShellClient in Cloud Shell mode.

    Raises:
        ConfigurationError: If an interactive flow is needed but the OAuth
            client ID or secret is missing.
        AuthenticationError: If every applicable flow failed.
    """
    if config is None:
        config = AuthConfig.from_env()
    if auth_type is None:
        auth_type = config.auth_type

    cache = CredentialCache(config.cache_dir)
    client = OAuthClient.from_config(config)
    client.on_tokens(cache.save)

    # If there are cached creds on disk, they always take precedence
    if _load_cached_credentials(client, cache):
        if cache.get_cached_account() is None:
            await asyncio.to_thread(fetch_and_cache_user_info, client, cache)
        print("Loaded cached credentials.")
        return client

    if auth_type is AuthType.CLOUD_SHELL:
        # Not cached: the metadata server handles its own refresh
        return await authenticate_cloud_shell(config)

    client.require_configured()

    if config.no_browser or not should_attempt_browser_launch():
        await _auth_with_user_code_retries(client)
        return client

    # Try web-based auth first, fall back to user code if it fails
    try:
        await _auth_with_browser(client)
        return client
    except Exception as web_error:
        logger.warning("Web-based authentication failed: %s", web_error)
        print("Web-based authentication failed, trying user code flow...")

        try:
            success = await auth_with_user_code(client)
        except Exception as code_error:
            raise AuthenticationError(
                f"Authentication failed. Browser flow error: {get_error_message(web_error)}. "
                f"User code flow error: {get_error_message(code_error)}"
            ) from code_error

        if not success:
            raise AuthenticationError(
                f"Authentication failed. Error: {get_error_message(web_error)}"
            ) from web_error
        return client


__all__ = [
    "AuthClient",
    "MAX_USER_CODE_ATTEMPTS",
    "get_oauth_client",
]
