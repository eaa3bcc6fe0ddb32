"""Tests for the command-line entry point."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from gemini_auth.__main__ import main
from gemini_auth.auth.oauth import OAuthClient
from gemini_auth.utils.errors import AuthenticationError


@pytest.fixture(autouse=True)
def isolated_env(cache_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Point the CLI at the isolated cache and skip .env loading."""
    monkeypatch.setenv("GEMINI_DIR", str(cache_dir))
    with patch("gemini_auth.__main__.load_dotenv"):
        yield


def _run(*args: str) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(list(args))
    return int(exc_info.value.code or 0)


class TestStatus:
    """Tests for the status command."""

    def test_not_authenticated(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run("status") == 1
        assert "Not authenticated" in capsys.readouterr().out

    def test_authenticated(
        self, cache_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        cache_dir.mkdir(parents=True)
        (cache_dir / "oauth_creds.json").write_text(json.dumps({"access_token": "t"}))
        (cache_dir / "user_info.json").write_text(json.dumps({"email": "user@example.com"}))

        assert _run("status") == 0
        assert "Authenticated as user@example.com" in capsys.readouterr().out


class TestLogout:
    """Tests for the logout command."""

    def test_removes_cache_files(
        self, cache_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        cache_dir.mkdir(parents=True)
        (cache_dir / "oauth_creds.json").write_text("{}")
        (cache_dir / "user_info.json").write_text("{}")

        assert _run("logout") == 0
        assert not (cache_dir / "oauth_creds.json").exists()
        assert not (cache_dir / "user_info.json").exists()
        assert "Signed out" in capsys.readouterr().out

    def test_already_signed_out(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run("logout") == 0
        assert "Already signed out" in capsys.readouterr().out


class TestLogin:
    """Tests for the login command."""

    def test_reports_account(
        self, cache_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        cache_dir.mkdir(parents=True)
        (cache_dir / "user_info.json").write_text(json.dumps({"email": "user@example.com"}))
        client = OAuthClient("id", "secret")

        with patch(
            "gemini_auth.auth.orchestrator.get_oauth_client",
            new_callable=AsyncMock,
            return_value=client,
        ):
            assert _run("login") == 0

        assert "Signed in as user@example.com" in capsys.readouterr().out

    def test_failure_exits_nonzero(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch(
            "gemini_auth.auth.orchestrator.get_oauth_client",
            new_callable=AsyncMock,
            side_effect=AuthenticationError("Failed to authenticate after multiple attempts."),
        ):
            assert _run("login") == 1

        assert "multiple attempts" in capsys.readouterr().err


def test_unknown_command(capsys: pytest.CaptureFixture[str]) -> None:
    assert _run("frobnicate") == 2
    assert "usage" in capsys.readouterr().err
