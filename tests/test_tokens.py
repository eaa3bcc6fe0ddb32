"""Tests for Token Bundle conversion and refresh observation."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from unittest.mock import MagicMock

import pytest
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials

from gemini_auth.auth.oauth import OAUTH_SCOPES
from gemini_auth.auth.tokens import (
    GOOGLE_TOKEN_URI,
    ObservedCredentials,
    bundle_from_credentials,
    credentials_from_bundle,
)


class TestCredentialsFromBundle:
    """Tests for credentials_from_bundle."""

    def test_maps_all_fields(self, mock_token: dict[str, Any]) -> None:
        creds = credentials_from_bundle(mock_token, "client-id", "client-secret")

        assert isinstance(creds, ObservedCredentials)
        assert creds.token == "ya29.mock-access-token"
        assert creds.refresh_token == "1//mock-refresh-token"
        assert creds.id_token == mock_token["id_token"]
        assert creds.token_uri == GOOGLE_TOKEN_URI
        assert creds.client_id == "client-id"
        assert creds.client_secret == "client-secret"
        assert list(creds.scopes) == OAUTH_SCOPES
        # 1767225600123 ms = 2026-01-01T00:00:00.123 UTC, stored naive
        assert creds.expiry == datetime(2026, 1, 1, 0, 0, 0, 123000)

    def test_tolerates_minimal_bundle(self) -> None:
        creds = credentials_from_bundle({"access_token": "only"}, "id", "secret")

        assert creds.token == "only"
        assert creds.refresh_token is None
        assert creds.expiry is None
        assert creds.scopes is None

    def test_ignores_unparseable_expiry(self) -> None:
        creds = credentials_from_bundle(
            {"access_token": "t", "expiry_date": "soon"}, "id", "secret"
        )

        assert creds.expiry is None

    @pytest.mark.parametrize("expiry_date", [1e300, float("inf"), -1e300])
    def test_ignores_out_of_range_expiry(self, expiry_date: float) -> None:
        creds = credentials_from_bundle(
            {"access_token": "t", "expiry_date": expiry_date}, "id", "secret"
        )

        assert creds.token == "t"
        assert creds.expiry is None


class TestBundleFromCredentials:
    """Tests for bundle_from_credentials."""

    def test_round_trip(self, mock_token: dict[str, Any]) -> None:
        """Bundle -> credentials -> bundle keeps every field."""
        creds = credentials_from_bundle(mock_token, "client-id", "client-secret")

        assert bundle_from_credentials(creds) == mock_token

    def test_omits_absent_fields(self) -> None:
        creds = Credentials(token="ya29.only")  # type: ignore[no-untyped-call]

        assert bundle_from_credentials(creds) == {
            "access_token": "ya29.only",
            "token_type": "Bearer",
        }


class TestObservedCredentials:
    """Tests for refresh notifications."""

    def test_refresh_notifies_listener(self, mocker, mock_token: dict[str, Any]) -> None:
        def fake_refresh(self: Credentials, request: object) -> None:
            self.token = "ya29.refreshed"

        mocker.patch.object(Credentials, "refresh", autospec=True, side_effect=fake_refresh)
        on_refresh = MagicMock()
        creds = credentials_from_bundle(mock_token, "id", "secret", on_refresh=on_refresh)

        creds.refresh(MagicMock())

        on_refresh.assert_called_once_with(creds)
        assert creds.token == "ya29.refreshed"

    def test_failed_refresh_does_not_notify(self, mocker, mock_token: dict[str, Any]) -> None:
        mocker.patch.object(
            Credentials, "refresh", autospec=True, side_effect=RefreshError("invalid_grant")
        )
        on_refresh = MagicMock()
        creds = credentials_from_bundle(mock_token, "id", "secret", on_refresh=on_refresh)

        with pytest.raises(RefreshError):
            creds.refresh(MagicMock())

        on_refresh.assert_not_called()
