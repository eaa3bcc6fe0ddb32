"""On-disk cache for OAuth tokens and the account profile.

Two JSON files live in the cache directory (default ~/.gemini):

- oauth_creds.json: the current Token Bundle
- user_info.json: the userinfo profile of the signed-in account

Both are overwritten wholesale. Nothing here raises on I/O problems: a
missing or corrupt file reads as "not cached" and a failed write is logged
and ignored, so the cache can never break authentication.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from gemini_auth.config import CREDENTIAL_FILENAME, USER_INFO_FILENAME, default_cache_dir

logger = logging.getLogger(__name__)


def _read_json_object(path: Path) -> dict[str, Any] | None:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.debug("No cached file at %s", path)
        return None
    except (OSError, ValueError) as e:
        logger.debug("Ignoring unreadable cache file %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        logger.debug("Ignoring cache file %s: expected a JSON object", path)
        return None
    return data


def _write_json(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    try:
        # Restrict permissions to owner read/write only (0600)
        path.chmod(0o600)
    except OSError as e:
        logger.debug("Could not restrict permissions on %s: %s", path, e)


class CredentialCache:
    """File-based cache for the Token Bundle and account profile.

    Attributes:
        _cache_dir: Directory holding the cache files.

    Example:
        >>> cache = CredentialCache(Path("/tmp/gemini"))
        >>> cache.save({"access_token": "ya29...", "refresh_token": "1//..."})
        >>> cache.load()["access_token"]
        'ya29...'
    """

    def __init__(self, cache_dir: Path | None = None) -> None:
        """Initialize the cache.

        Args:
            cache_dir: Directory for the cache files. Defaults to ~/.gemini.
                The directory is created lazily on first write.
        """
        if cache_dir is None:
            cache_dir = default_cache_dir()
        self._cache_dir = cache_dir

    @property
    def credential_path(self) -> Path:
        return self._cache_dir / CREDENTIAL_FILENAME

    @property
    def user_info_path(self) -> Path:
        return self._cache_dir / USER_INFO_FILENAME

    # =========================================================================
    # Token Bundle
    # =========================================================================

    def load(self) -> dict[str, Any] | None:
        """Load the cached Token Bundle.

        Returns:
            The parsed bundle, or None if the file is missing, unreadable or
            does not contain a JSON object.
        """
        bundle = _read_json_object(self.credential_path)
        if bundle is not None:
            logger.debug("Loaded cached credentials from %s", self.credential_path)
        return bundle

    def save(self, bundle: dict[str, Any]) -> None:
        """Overwrite the cached Token Bundle.

        Failures are logged as warnings and swallowed.

        Args:
            bundle: Token Bundle to persist.
        """
        try:
            _write_json(self.credential_path, bundle)
            logger.info("Cached credentials at %s", self.credential_path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to cache credentials: %s", e)

    def clear(self) -> bool:
        """Delete the cached Token Bundle.

        Returns:
            True if a file was deleted, False if none existed or it could
            not be removed.
        """
        return self._remove(self.credential_path)

    def exists(self) -> bool:
        return self.credential_path.exists()

    # =========================================================================
    # Account profile
    # =========================================================================

    def load_user_info(self) -> dict[str, Any] | None:
        """Load the cached userinfo profile, or None if absent or corrupt."""
        return _read_json_object(self.user_info_path)

    def save_user_info(self, user_info: dict[str, Any]) -> None:
        """Overwrite the cached userinfo profile, logging failures."""
        try:
            _write_json(self.user_info_path, user_info)
            logger.debug("Cached user info at %s", self.user_info_path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to cache user info: %s", e)

    def get_cached_account(self) -> str | None:
        """Return the cached account email, if any."""
        user_info = self.load_user_info()
        if not user_info:
            return None
        email = user_info.get("email")
        return email if isinstance(email, str) and email else None

    def clear_user_info(self) -> bool:
        return self._remove(self.user_info_path)

    def _remove(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("Nothing to delete at %s", path)
            return False
        except OSError as e:
            logger.warning("Failed to delete %s: %s", path, e)
            return False
        logger.info("Deleted %s", path)
        return True


def clear_cached_credential_file(cache_dir: Path | None = None) -> None:
    """Remove the cached Token Bundle. A missing file is not an error."""
    CredentialCache(cache_dir).clear()


__all__ = [
    "CredentialCache",
    "clear_cached_credential_file",
]
