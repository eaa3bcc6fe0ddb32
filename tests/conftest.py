"""Pytest configuration and fixtures for gemini-auth tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from gemini_auth.auth.oauth import OAUTH_SCOPES
from gemini_auth.config import AuthConfig


@pytest.fixture(autouse=True)
def no_ci_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every test as if outside CI unless a test opts back in."""
    monkeypatch.delenv("CI", raising=False)
    monkeypatch.delenv("GITHUB_ACTIONS", raising=False)


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Isolated cache directory standing in for ~/.gemini."""
    return tmp_path / ".gemini"


@pytest.fixture
def auth_config(cache_dir: Path) -> AuthConfig:
    """Configured OAuth settings pointing at the isolated cache."""
    return AuthConfig(
        client_id="test-client-id.apps.googleusercontent.com",
        client_secret="test-client-secret",
        cache_dir=cache_dir,
    )


@pytest.fixture
def mock_token() -> dict[str, Any]:
    """Token Bundle in the on-disk format."""
    return {
        "access_token": "ya29.mock-access-token",
        "refresh_token": "1//mock-refresh-token",
        "scope": " ".join(OAUTH_SCOPES),
        "token_type": "Bearer",
        "id_token": "eyJhbGciOiJSUzI1NiJ9.mock.id-token",
        "expiry_date": 1767225600123,
    }
