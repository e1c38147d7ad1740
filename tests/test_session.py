"""Tests for API-key login and the authentication gate."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import click
import pytest
from click.testing import CliRunner

from mgzon.cli.platform.auth import load_config, save_config
from mgzon.cli.platform.client import PlatformAPIError
from mgzon.cli.platform.types import LoginResult
from mgzon.cli.session import (
    AuthenticationError,
    describe_auth_failure,
    ensure_authenticated,
    login_with_api_key,
    requires_auth,
    validate_api_key,
)

LOGIN_RESULT = LoginResult.model_validate(
    {
        "user": {"_id": "u1", "email": "dev@example.com", "name": "Dev"},
        "session": {"token": "tok", "expiresIn": 3600},
    }
)


class TestHelpers:
    """Tests for validation and error descriptions."""

    def test_validate_api_key(self):
        assert validate_api_key("mz_1234567890") is True
        assert "at least 10" in validate_api_key("short")

    def test_describe_auth_failure(self):
        assert "Invalid or expired" in describe_auth_failure(
            PlatformAPIError(401, "Unauthorized")
        )
        assert "Too many" in describe_auth_failure(PlatformAPIError(429, "Slow"))
        assert "Could not reach" in describe_auth_failure(
            PlatformAPIError(0, "refused")
        )
        assert describe_auth_failure(PlatformAPIError(500, "Boom")) == "Boom"

    def test_login_with_api_key_saves(self):
        client = MagicMock()
        client.login.return_value = LOGIN_RESULT
        config = login_with_api_key("mz_1234567890", client)
        client.login.assert_called_once_with("mz_1234567890")
        assert config.email == "dev@example.com"
        assert load_config().session_token == "tok"


class TestEnsureAuthenticated:
    """Tests for the authentication gate."""

    def test_no_key_non_interactive(self):
        with patch("mgzon.cli.session.is_interactive", return_value=False):
            with pytest.raises(AuthenticationError, match="No API key"):
                ensure_authenticated()

    def test_valid_session_skips_login(self):
        expires = (datetime.now(UTC) + timedelta(hours=1)).isoformat()
        save_config(api_key="mz_1234567890", session_token="tok", expires_at=expires)
        with patch("mgzon.cli.session.login_with_api_key") as mock_login:
            config = ensure_authenticated()
        mock_login.assert_not_called()
        assert config.session_token == "tok"

    def test_env_key_is_verified(self, monkeypatch):
        expires = (datetime.now(UTC) + timedelta(hours=1)).isoformat()
        save_config(session_token="tok", expires_at=expires)
        monkeypatch.setenv("MGZON_API_KEY", "env_key_1234567")
        with patch("mgzon.cli.session.login_with_api_key") as mock_login:
            ensure_authenticated()
        mock_login.assert_called_once_with("env_key_1234567")

    def test_rejected_key_non_interactive(self):
        save_config(api_key="mz_1234567890")
        with (
            patch("mgzon.cli.session.is_interactive", return_value=False),
            patch(
                "mgzon.cli.session.login_with_api_key",
                side_effect=PlatformAPIError(401, "Unauthorized"),
            ),
        ):
            with pytest.raises(AuthenticationError, match="Invalid or expired"):
                ensure_authenticated()

    def test_unreachable_offers_login_once(self):
        save_config(api_key="mz_1234567890")
        with (
            patch("mgzon.cli.session.is_interactive", return_value=True),
            patch(
                "mgzon.cli.session.login_with_api_key",
                side_effect=PlatformAPIError(0, "refused"),
            ),
            patch("mgzon.cli.session.questionary") as mock_q,
        ):
            mock_q.confirm.return_value.ask.return_value = False
            with pytest.raises(AuthenticationError, match="Login declined"):
                ensure_authenticated()
        mock_q.confirm.assert_called_once()

    def test_retry_after_rejection(self):
        save_config(api_key="mz_1234567890")
        with (
            patch("mgzon.cli.session.is_interactive", return_value=True),
            patch(
                "mgzon.cli.session.login_with_api_key",
                side_effect=[PlatformAPIError(401, "Unauthorized"), "config"],
            ) as mock_login,
            patch("mgzon.cli.session.questionary") as mock_q,
            patch(
                "mgzon.cli.session.prompt_for_api_key", return_value="mz_new_key_12345"
            ),
        ):
            mock_q.confirm.return_value.ask.return_value = True
            assert ensure_authenticated() == "config"
        assert mock_login.call_args_list[-1].args == ("mz_new_key_12345",)

    def test_retry_declined(self):
        save_config(api_key="mz_1234567890")
        with (
            patch("mgzon.cli.session.is_interactive", return_value=True),
            patch(
                "mgzon.cli.session.login_with_api_key",
                side_effect=PlatformAPIError(401, "Unauthorized"),
            ),
            patch("mgzon.cli.session.questionary") as mock_q,
        ):
            mock_q.confirm.return_value.ask.return_value = False
            with pytest.raises(AuthenticationError, match="declined"):
                ensure_authenticated()


class TestRequiresAuth:
    """Tests for the requires_auth decorator."""

    @staticmethod
    def _command():
        @click.command()
        @requires_auth
        def protected():
            click.echo("ran")

        return protected

    def test_blocks_without_auth(self):
        with patch(
            "mgzon.cli.session.ensure_authenticated",
            side_effect=AuthenticationError("No API key configured."),
        ):
            result = CliRunner().invoke(self._command())
        assert result.exit_code == 1
        assert "Authentication required" in result.output
        assert "mz login" in result.output
        assert "MGZON_API_KEY" in result.output
        assert "ran" not in result.output

    def test_runs_when_authenticated(self, logged_in):
        result = CliRunner().invoke(self._command())
        assert result.exit_code == 0
        assert "ran" in result.output
