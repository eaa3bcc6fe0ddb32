"""Loopback callback listener for the browser sign-in flow.

auth_with_web() starts a small HTTP endpoint on an ephemeral localhost port,
builds the consent URL that redirects back to it and returns at once. The
caller shows the URL (or opens a browser) and awaits WebLogin.login_complete.

The listener services exactly one redirect. It answers with a success or
failure page, settles the future and stops serving, whatever the outcome.
Requests for other paths (favicon probes and the like) get a 404 and do not
count as the redirect.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import socket
from dataclasses import dataclass
from http import HTTPStatus
from urllib.parse import parse_qs, urlparse

from gemini_auth.auth.oauth import OAuthClient
from gemini_auth.utils.errors import AuthenticationError, TokenError, get_error_message

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "localhost"

SUCCESS_PAGE = (
    b"<html><body><h1>Authentication Successful!</h1>"
    b"<p>You can close this window now.</p>"
    b"<script>window.close();</script></body></html>"
)


def get_available_port() -> int:
    """Ask the OS for a free TCP port on the loopback interface.

    The socket is released before returning, so another process could grab
    the port before the listener binds it.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port: int = sock.getsockname()[1]
    return port


class CallbackListener:
    """One-shot HTTP endpoint that receives the OAuth redirect.

    Attributes:
        redirect_uri: URL the consent page redirects to.
        login_complete: Future resolved on a successful code exchange and
            failed with AuthenticationError otherwise.
    """

    def __init__(
        self,
        client: OAuthClient,
        port: int,
        state: str | None = None,
    ) -> None:
        self._client = client
        self._port = port
        self._state = state
        self.redirect_uri = f"http://{LOOPBACK_HOST}:{port}"
        self.login_complete: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._server: asyncio.Server | None = None
        self._handled = False
        self._closed = False

    @property
    def port(self) -> int:
        return self._port

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    async def start(self) -> None:
        self._server = await asyncio.start_server(
            self._handle_connection, LOOPBACK_HOST, self._port
        )
        logger.debug("OAuth callback listener bound to port %d", self._port)

    def close(self) -> None:
        """Stop accepting connections. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._server is not None:
            self._server.close()
            logger.debug("OAuth callback listener on port %d closed", self._port)

    async def aclose(self) -> None:
        """Close and wait until the server has fully shut down."""
        self.close()
        if self._server is not None:
            await self._server.wait_closed()

    # =========================================================================
    # Request handling
    # =========================================================================

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        try:
            target = await self._read_request_target(reader)
            if target is None:
                return

            parsed = urlparse(target)
            if parsed.path not in ("", "/"):
                await self._respond(writer, HTTPStatus.NOT_FOUND, b"Not found")
                return

            # A second redirect racing in after the first is ignored
            if self._handled:
                return
            self._handled = True

            try:
                outcome = await self._process(parse_qs(parsed.query), writer)
            except Exception as e:
                logger.error("Error in OAuth callback handler: %s", e)
                outcome = AuthenticationError(f"OAuth callback failed: {get_error_message(e)}")
            self._settle(outcome)
        finally:
            writer.close()
            if self._handled:
                self.close()

    async def _process(
        self, params: dict[str, list[str]], writer: asyncio.StreamWriter
    ) -> Exception | None:
        if "error" in params:
            oauth_error = params["error"][0]
            await self._respond(writer, HTTPStatus.BAD_REQUEST, b"Authentication failed")
            return AuthenticationError(
                f"OAuth error: {oauth_error}",
                details={"oauth_error": oauth_error},
            )

        if self._state is not None and "state" in params:
            if params["state"][0] != self._state:
                await self._respond(writer, HTTPStatus.BAD_REQUEST, b"State mismatch")
                # Don't leak state values in error details
                return AuthenticationError(
                    "State mismatch - possible CSRF attack",
                    details={"hint": "Request may have been tampered with"},
                )

        code = params.get("code", [None])[0]
        if not code:
            await self._respond(
                writer, HTTPStatus.BAD_REQUEST, b"No authorization code received"
            )
            return AuthenticationError(
                "No authorization code received",
                details={"params": sorted(params.keys())},
            )

        try:
            await asyncio.to_thread(self._client.get_token, code, self.redirect_uri)
        except Exception as e:
            await self._respond(
                writer, HTTPStatus.BAD_REQUEST, b"Failed to exchange code for tokens"
            )
            return TokenError(f"Token exchange failed: {get_error_message(e)}")

        await self._respond(writer, HTTPStatus.OK, SUCCESS_PAGE, content_type="text/html")
        return None

    def _settle(self, outcome: Exception | None) -> None:
        if self.login_complete.done():
            return
        if outcome is None:
            logger.info("Browser authentication completed")
            self.login_complete.set_result(None)
        else:
            logger.warning("Browser authentication failed: %s", get_error_message(outcome))
            self.login_complete.set_exception(outcome)

    @staticmethod
    async def _read_request_target(reader: asyncio.StreamReader) -> str | None:
        try:
            request_line = await reader.readline()
            if not request_line:
                # Browsers open speculative connections that never send a request
                return None
            parts = request_line.decode("latin-1").split()
            while True:
                line = await reader.readline()
                if line in (b"\r\n", b"\n", b""):
                    break
        except (ConnectionError, asyncio.IncompleteReadError, ValueError) as e:
            logger.debug("Discarding malformed callback request: %s", e)
            return None

        if len(parts) < 2:
            return None
        logger.debug("OAuth callback request: %s", parts[1].split("?", 1)[0])
        return parts[1]

    @staticmethod
    async def _respond(
        writer: asyncio.StreamWriter,
        status: HTTPStatus,
        body: bytes,
        content_type: str = "text/plain",
    ) -> None:
        head = (
            f"HTTP/1.1 {status.value} {status.phrase}\r\n"
            f"Content-Type: {content_type}; charset=utf-8\r\n"
            f"Content-Length: {len(body)}\r\n"
            "Connection: close\r\n\r\n"
        )
        try:
            writer.write(head.encode("latin-1") + body)
            await writer.drain()
        except ConnectionError as e:
            logger.debug("Browser disconnected before the response was sent: %s", e)


@dataclass
class WebLogin:
    """A started browser sign-in.

    Attributes:
        auth_url: Consent page URL to show or open.
        login_complete: Awaitable that finishes when the redirect arrives.
        listener: The callback endpoint, for shutdown.
    """

    auth_url: str
    login_complete: asyncio.Future[None]
    listener: CallbackListener


async def auth_with_web(client: OAuthClient) -> WebLogin:
    """Start the loopback browser flow.

    Args:
        client: OAuth client that will receive the exchanged tokens.

    Returns:
        The consent URL and the completion future.

    Raises:
        ConfigurationError: If the client is not configured.
        OSError: If the callback endpoint cannot be bound.
    """
    port = get_available_port()
    state = secrets.token_urlsafe(32)
    listener = CallbackListener(client, port, state=state)
    auth_url = client.generate_auth_url(redirect_uri=listener.redirect_uri, state=state)
    await listener.start()
    return WebLogin(auth_url=auth_url, login_complete=listener.login_complete, listener=listener)


__all__ = [
    "CallbackListener",
    "WebLogin",
    "auth_with_web",
    "get_available_port",
]
