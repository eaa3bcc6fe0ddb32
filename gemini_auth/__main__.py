"""Entry point for gemini-auth.

Usage:
    python -m gemini_auth [login|logout|status]
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

USAGE = "usage: gemini-auth [login|logout|status]"


def configure_logging() -> None:
    """Configure logging to stderr.

    stdout carries the user-facing prompts and URLs, so logs stay on stderr.
    Respects LOG_LEVEL env var (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    log_level_str = os.getenv("LOG_LEVEL", "WARNING").upper()
    log_level = logging.getLevelNamesMapping().get(log_level_str, logging.WARNING)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    # Reduce noise from Google libraries
    logging.getLogger("google.auth").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def login() -> int:
    from gemini_auth.auth.oauth import OAuthClient
    from gemini_auth.auth.orchestrator import get_oauth_client
    from gemini_auth.auth.storage import CredentialCache
    from gemini_auth.config import AuthConfig

    config = AuthConfig.from_env()
    client = asyncio.run(get_oauth_client(config=config))

    account = CredentialCache(config.cache_dir).get_cached_account()
    if isinstance(client, OAuthClient) and account:
        print(f"Signed in as {account}")
    else:
        print("Signed in.")
    return 0


def logout() -> int:
    from gemini_auth.auth.storage import CredentialCache
    from gemini_auth.config import AuthConfig

    cache = CredentialCache(AuthConfig.from_env().cache_dir)
    had_credentials = cache.clear()
    cache.clear_user_info()

    if had_credentials:
        print("Signed out. You will need to re-authenticate.")
    else:
        print("No credentials were stored. Already signed out.")
    return 0


def status() -> int:
    from gemini_auth.auth.storage import CredentialCache
    from gemini_auth.config import AuthConfig

    cache = CredentialCache(AuthConfig.from_env().cache_dir)
    if cache.load() is None:
        print("Not authenticated. Run `gemini-auth login` to sign in.")
        return 1

    account = cache.get_cached_account()
    print(f"Authenticated as {account}" if account else "Authenticated.")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point.

    Loads the environment, configures logging and dispatches the command.
    """
    # Load .env file if present
    load_dotenv()

    configure_logging()
    logger = logging.getLogger(__name__)

    args = sys.argv[1:] if argv is None else argv
    command = args[0] if args else "login"

    from gemini_auth.utils.errors import GeminiAuthError

    try:
        match command:
            case "login":
                exit_code = login()
            case "logout":
                exit_code = logout()
            case "status":
                exit_code = status()
            case _:
                print(USAGE, file=sys.stderr)
                exit_code = 2
    except GeminiAuthError as e:
        logger.error("%s failed: %s", command, e)
        print(f"Error: {e.message}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
