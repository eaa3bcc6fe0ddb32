"""Token Bundle conversion and refresh observation.

A Token Bundle is the JSON object persisted in oauth_creds.json. It uses the
field names of Google's Node auth library so the file can be shared with other
Gemini CLI tools:

    {
        "access_token": "ya29...",
        "refresh_token": "1//...",
        "scope": "https://www.googleapis.com/auth/cloud-platform ...",
        "token_type": "Bearer",
        "id_token": "eyJ...",
        "expiry_date": 1767225600000
    }

expiry_date is epoch milliseconds. Fields that are unknown are omitted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from google.oauth2.credentials import Credentials

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

TokenBundle = dict[str, Any]
RefreshCallback = Callable[[Credentials], None]


class ObservedCredentials(Credentials):
    """OAuth user credentials that report every successful refresh.

    google-auth refreshes credentials in place, either explicitly through
    refresh() or silently inside AuthorizedSession before a request. Both
    paths end in refresh(), so overriding it is enough to observe them all.
    """

    def __init__(self, *args: Any, on_refresh: RefreshCallback | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._on_refresh = on_refresh

    def refresh(self, request: Any) -> None:
        super().refresh(request)
        logger.debug("Access token refreshed")
        if self._on_refresh is not None:
            self._on_refresh(self)


def _expiry_from_millis(value: object) -> datetime | None:
    if value is None:
        return None
    try:
        seconds = float(value) / 1000  # type: ignore[arg-type]
    except (TypeError, ValueError):
        logger.debug("Ignoring unparseable expiry_date: %r", value)
        return None
    try:
        expiry = datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        logger.debug("Ignoring out-of-range expiry_date: %r", value)
        return None
    # google-auth compares expiry against naive UTC datetimes
    return expiry.replace(tzinfo=None)


def _expiry_to_millis(expiry: datetime) -> int:
    return round(expiry.replace(tzinfo=UTC).timestamp() * 1000)


def bundle_from_credentials(credentials: Credentials) -> TokenBundle:
    """Serialize google-auth credentials into a Token Bundle.

    Args:
        credentials: OAuth user credentials.

    Returns:
        A JSON-serializable Token Bundle.
    """
    bundle: TokenBundle = {}
    if credentials.token:
        bundle["access_token"] = credentials.token
    if credentials.refresh_token:
        bundle["refresh_token"] = credentials.refresh_token

    scopes = credentials.scopes or getattr(credentials, "granted_scopes", None)
    if scopes:
        bundle["scope"] = " ".join(scopes)

    bundle["token_type"] = "Bearer"

    id_token = credentials.id_token
    if isinstance(id_token, str) and id_token:
        bundle["id_token"] = id_token

    if credentials.expiry:
        bundle["expiry_date"] = _expiry_to_millis(credentials.expiry)

    return bundle


def credentials_from_bundle(
    bundle: TokenBundle,
    client_id: str,
    client_secret: str,
    on_refresh: RefreshCallback | None = None,
) -> ObservedCredentials:
    """Build observed credentials from a Token Bundle.

    Args:
        bundle: Token Bundle, typically loaded from the credential cache.
        client_id: OAuth client ID used for refreshing.
        client_secret: OAuth client secret used for refreshing.
        on_refresh: Called with the credentials after every refresh.

    Returns:
        Credentials ready to be used with google-auth transports.
    """
    scope = bundle.get("scope")
    scopes = scope.split() if isinstance(scope, str) and scope else None

    return ObservedCredentials(
        token=bundle.get("access_token"),
        refresh_token=bundle.get("refresh_token"),
        id_token=bundle.get("id_token"),
        token_uri=GOOGLE_TOKEN_URI,
        client_id=client_id or None,
        client_secret=client_secret or None,
        scopes=scopes,
        expiry=_expiry_from_millis(bundle.get("expiry_date")),
        on_refresh=on_refresh,
    )


__all__ = [
    "GOOGLE_TOKEN_URI",
    "ObservedCredentials",
    "RefreshCallback",
    "TokenBundle",
    "bundle_from_credentials",
    "credentials_from_bundle",
]
