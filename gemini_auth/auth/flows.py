"""Interactive and non-interactive sign-in flows.

- Manual user-code flow: print a consent URL with no redirect target and
  wait for the user to press Enter.
- Cloud Shell flow: take the identity of the VM from the metadata server.
- Browser launch helper for the loopback flow.
"""

from __future__ import annotations

import asyncio
import logging
import webbrowser

from gemini_auth.auth.oauth import CloudShellClient, OAuthClient
from gemini_auth.config import AuthConfig
from gemini_auth.utils.errors import AuthenticationError, get_error_message

logger = logging.getLogger(__name__)

CONFIRM_PROMPT = "\nPress Enter after you have completed authentication: "


async def auth_with_user_code(client: OAuthClient) -> bool:
    """Run the manual (out-of-band) sign-in flow.

    Prints the consent URL and blocks until the user confirms. The
    confirmation only signals intent: nothing checks that consent was
    actually granted on Google's side.

    Args:
        client: OAuth client used to build the consent URL.

    Returns:
        True once the user presses Enter, False if stdin is closed.
    """
    auth_url = client.generate_auth_url()

    print("\n🔐 Authentication Required")
    print("Please visit the following URL to authenticate:")
    print(auth_url)
    print("\nAfter authentication, you will be redirected to a page that may not load.")
    print("This is expected. You can close that page once you see the success message.")

    try:
        await asyncio.to_thread(input, CONFIRM_PROMPT)
    except EOFError:
        logger.warning("Input stream closed before authentication was confirmed")
        return False
    return True


async def authenticate_cloud_shell(config: AuthConfig) -> CloudShellClient:
    """Authenticate with the Cloud Shell VM's application default credentials.

    Args:
        config: Supplies the proxy for metadata server calls.

    Returns:
        A client holding a freshly issued access token.

    Raises:
        AuthenticationError: If the metadata server cannot issue a token.
    """
    print("Attempting to authenticate via Cloud Shell VM's ADC.")
    try:
        client = CloudShellClient(proxy=config.proxy)
        await asyncio.to_thread(client.refresh)
    except Exception as e:
        logger.error("Cloud Shell authentication failed: %s", e)
        raise AuthenticationError(
            "Could not authenticate using Cloud Shell credentials. Please select a "
            "different authentication method or ensure you are in a properly "
            f"configured environment. Error: {get_error_message(e)}",
            details={"error_type": type(e).__name__},
        ) from e

    print("Authentication successful.")
    return client


def open_browser(url: str) -> bool:
    """Try to open url in the user's browser. Returns False on failure."""
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        logger.warning("Failed to open browser automatically: %s", e)
        return False
    if not opened:
        logger.info("No browser available to open the authentication URL")
    return opened


__all__ = [
    "auth_with_user_code",
    "authenticate_cloud_shell",
    "open_browser",
]
