"""Tests for the apps and keys commands."""

from unittest.mock import MagicMock, patch

import pytest

from mgzon.cli.cli import cli
from mgzon.cli.platform.client import PlatformAPIError
from mgzon.cli.platform.types import ApiKey, App, AppList, AppLogList, Domain
from mgzon.cli.session import AuthenticationError


@pytest.fixture
def apps_client():
    with patch("mgzon.cli.commands.apps.PlatformClient") as mock_client_cls:
        mock_client = MagicMock()
        mock_client.base_url = "https://api.test/v1"
        mock_client_cls.return_value = mock_client
        yield mock_client


@pytest.fixture
def keys_client():
    with patch("mgzon.cli.commands.keys.PlatformClient") as mock_client_cls:
        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        yield mock_client


def _app(**overrides):
    data = {
        "_id": "app_1",
        "name": "My Shop",
        "slug": "my-shop",
        "status": "approved",
        "environment": "staging",
        **overrides,
    }
    return App.model_validate(data)


# ==================== apps ====================


class TestApps:
    """Tests for mz apps."""

    def test_requires_auth(self, runner, apps_client):
        with patch(
            "mgzon.cli.session.ensure_authenticated",
            side_effect=AuthenticationError("No API key configured."),
        ):
            result = runner.invoke(cli, ["apps", "--list"])
        assert result.exit_code == 1
        assert "Authentication required" in result.output
        apps_client.list_apps.assert_not_called()

    def test_list(self, runner, logged_in, apps_client):
        apps_client.list_apps.return_value = AppList(
            apps=[_app(isMarketplaceApp=True, targetAudience="SELLER")],
            pagination={"total": 1},
            stats={"marketplace": 1, "private": 0},
        )
        result = runner.invoke(cli, ["apps", "--list"])
        assert result.exit_code == 0, result.output
        assert "Found 1 app(s)" in result.output
        assert "My Shop" in result.output
        assert "APPROVED" in result.output
        assert "SELLER (Marketplace)" in result.output

    def test_list_empty(self, runner, logged_in, apps_client):
        apps_client.list_apps.return_value = AppList()
        result = runner.invoke(cli, ["apps", "--list"])
        assert result.exit_code == 0
        assert "No apps found" in result.output

    def test_create_short_name(self, runner, logged_in, apps_client):
        result = runner.invoke(cli, ["apps", "--create", "ab"])
        assert result.exit_code == 1
        assert "App name must be at least 3 characters" in result.output
        apps_client.create_app.assert_not_called()

    def test_create_non_interactive_defaults(self, runner, logged_in, apps_client):
        apps_client.create_app.return_value = _app(
            credentials={"clientId": "cid_1", "clientSecret": "secret_1"}
        )
        result = runner.invoke(cli, ["apps", "--create", "My Shop"])
        assert result.exit_code == 0, result.output
        apps_client.create_app.assert_called_once_with(
            {
                "name": "My Shop",
                "description": "My MGZON app: My Shop",
                "targetAudience": "DEVELOPER",
                "isMarketplaceApp": False,
                "environment": "staging",
            }
        )
        assert "IMPORTANT CREDENTIALS:" in result.output
        assert "secret_1" in result.output
        assert "mz deploy --app-id app_1" in result.output

    def test_create_with_options(self, runner, logged_in, apps_client):
        apps_client.create_app.return_value = _app()
        result = runner.invoke(
            cli,
            [
                "apps",
                "--create",
                "My Shop",
                "--audience",
                "seller",
                "--marketplace",
                "--environment",
                "production",
                "--description",
                "Storefront",
            ],
        )
        assert result.exit_code == 0, result.output
        payload = apps_client.create_app.call_args.args[0]
        assert payload["targetAudience"] == "SELLER"
        assert payload["isMarketplaceApp"] is True
        assert payload["environment"] == "production"
        assert payload["description"] == "Storefront"
        assert "IMPORTANT CREDENTIALS:" not in result.output

    def test_info(self, runner, logged_in, apps_client):
        apps_client.get_app.return_value = _app(
            domains=[{"domain": "shop.example.com", "verified": True}], rating=4.5
        )
        result = runner.invoke(cli, ["apps", "--info", "app_1"])
        assert result.exit_code == 0, result.output
        assert "https://my-shop.dev.mgzon.app" in result.output
        assert "shop.example.com (verified)" in result.output
        assert "4.5" in result.output

    def test_info_not_found(self, runner, logged_in, apps_client):
        apps_client.get_app.side_effect = PlatformAPIError(404, "App not found")
        result = runner.invoke(cli, ["apps", "--info", "nope"])
        assert result.exit_code == 1
        assert isinstance(result.exception, PlatformAPIError)

    def test_delete_confirmed(self, runner, logged_in, apps_client):
        apps_client.get_app.return_value = _app()
        result = runner.invoke(cli, ["apps", "--delete", "app_1"], input="y\n")
        assert result.exit_code == 0, result.output
        apps_client.delete_app.assert_called_once_with("app_1")
        assert "deleted" in result.output

    def test_delete_declined(self, runner, logged_in, apps_client):
        apps_client.get_app.return_value = _app()
        result = runner.invoke(cli, ["apps", "--delete", "app_1"], input="n\n")
        assert result.exit_code == 0
        assert "Deletion cancelled." in result.output
        apps_client.delete_app.assert_not_called()

    def test_domains_empty(self, runner, logged_in, apps_client):
        apps_client.list_domains.return_value = []
        result = runner.invoke(cli, ["apps", "--domains", "app_1"])
        assert result.exit_code == 0
        assert "https://api.test/v1/apps/app_1/domains" in result.output

    def test_domains(self, runner, logged_in, apps_client):
        apps_client.list_domains.return_value = [
            Domain(domain="shop.example.com", ssl_status="active")
        ]
        result = runner.invoke(cli, ["apps", "--domains", "app_1"])
        assert "shop.example.com" in result.output
        assert "active" in result.output

    def test_logs(self, runner, logged_in, apps_client):
        apps_client.get_app_logs.return_value = AppLogList.model_validate(
            {
                "logs": [
                    {"level": "error", "message": "Build failed", "source": "deploy"}
                ],
                "stats": {"total": 1, "byLevel": {"error": 1}},
            }
        )
        result = runner.invoke(cli, ["apps", "--logs", "app_1"])
        assert result.exit_code == 0, result.output
        assert "ERROR" in result.output
        assert "[deploy] Build failed" in result.output

    def test_no_option_prints_help(self, runner, logged_in, apps_client):
        result = runner.invoke(cli, ["apps"])
        assert result.exit_code == 0
        assert "--create" in result.output


# ==================== keys ====================


class TestKeys:
    """Tests for mz keys."""

    def test_list(self, runner, logged_in, keys_client):
        keys_client.list_keys.return_value = [
            ApiKey(
                id="k1",
                name="laptop",
                type="developer",
                permissions=["apps:read"],
            )
        ]
        result = runner.invoke(cli, ["keys", "--list"])
        assert result.exit_code == 0, result.output
        assert "1. laptop" in result.output
        assert "apps:read" in result.output
        assert "Never" in result.output

    def test_list_empty(self, runner, logged_in, keys_client):
        keys_client.list_keys.return_value = []
        result = runner.invoke(cli, ["keys", "--list"])
        assert "No API keys found" in result.output

    def test_generate(self, runner, logged_in, keys_client):
        keys_client.generate_key.return_value = ApiKey(
            id="k2", name="ci", key="mz_live_new_secret"
        )
        result = runner.invoke(
            cli, ["keys", "--generate", "--name", "ci", "--expires", "30"]
        )
        assert result.exit_code == 0, result.output
        name, key_type, permissions, expires_at = (
            keys_client.generate_key.call_args.args
        )
        assert (name, key_type) == ("ci", "developer")
        assert "apps:write" in permissions
        assert expires_at
        assert "mz_live_new_secret" in result.output
        assert "Copy this key now. It will not be shown again." in result.output

    def test_generate_seller(self, runner, logged_in, keys_client):
        keys_client.generate_key.return_value = ApiKey(id="k3", key="mz_s")
        result = runner.invoke(cli, ["keys", "--generate", "--type", "seller"])
        assert result.exit_code == 0
        assert keys_client.generate_key.call_args.args[1] == "seller"

    def test_revoke_with_yes(self, runner, logged_in, keys_client):
        result = runner.invoke(cli, ["keys", "--revoke", "k1", "--yes"])
        assert result.exit_code == 0
        keys_client.revoke_key.assert_called_once_with("k1")
        assert "Revoked API key k1" in result.output

    def test_revoke_cancelled(self, runner, logged_in, keys_client):
        result = runner.invoke(cli, ["keys", "--revoke", "k1"], input="n\n")
        assert result.exit_code == 0
        assert "Cancelled." in result.output
        keys_client.revoke_key.assert_not_called()

    def test_server_error_propagates(self, runner, logged_in, keys_client):
        keys_client.list_keys.side_effect = PlatformAPIError(500, "Boom")
        result = runner.invoke(cli, ["keys", "--list"])
        assert result.exit_code == 1
        assert isinstance(result.exception, PlatformAPIError)
