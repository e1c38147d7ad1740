"""Tests for the webhook command and its payload helpers."""

import hashlib
import hmac
import json
from unittest.mock import MagicMock, patch

import pytest

from mgzon.cli.cli import cli
from mgzon.cli.commands.webhook import (
    SIGNATURE_HEADER,
    TEST_SECRET,
    build_payload,
    developer_event_data,
    encode_payload,
    is_valid_url,
    sign_payload,
    store_event_data,
)
from mgzon.cli.platform.client import PlatformAPIError
from mgzon.cli.platform.types import App, Webhook, WebhookList


@pytest.fixture
def mock_client():
    with patch("mgzon.cli.commands.webhook.PlatformClient") as mock_client_cls:
        mock_client = MagicMock()
        mock_client_cls.return_value = mock_client
        yield mock_client


def _receiver_response(status=200, body=None):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    resp.json.return_value = body if body is not None else {"received": True}
    return resp


# ==================== Payloads ====================


class TestPayloads:
    """Tests for sample payloads and signing."""

    def test_store_fixture(self):
        data = store_event_data("inventory.updated")
        assert data["sku"] == "TEST-SKU-001"
        assert data["quantity"] == 100

    def test_store_order_created(self):
        data = store_event_data("order.created")
        assert data["orderId"].startswith("TEST-ORDER-")
        assert data["items"][0]["quantity"] == 2

    def test_store_unknown_event(self):
        assert store_event_data("custom.thing") == {"message": "Test webhook event"}

    def test_developer_event(self):
        data = developer_event_data("developer.app.installed", "app_1")
        assert data["appId"] == "app_1"
        assert data["metadata"]["platform"] == "web"

    def test_developer_unknown_event(self):
        data = developer_event_data("order.created", "app_1")
        assert data["message"] == "Test developer webhook event"
        assert "metadata" not in data

    def test_build_payload(self):
        payload = build_payload("shopify", "order.created", {"a": 1})
        assert payload["provider"] == "shopify"
        assert payload["event"] == "order.created"
        assert payload["data"] == {"a": 1}
        assert payload["timestamp"]

    def test_encode_is_compact(self):
        assert encode_payload({"a": 1, "b": [1, 2]}) == b'{"a":1,"b":[1,2]}'

    def test_sign_payload(self):
        body = b'{"event":"order.created"}'
        expected = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()
        assert sign_payload(body, "s3cret") == expected
        assert len(sign_payload(body, "s3cret")) == 64

    def test_is_valid_url(self):
        assert is_valid_url("https://example.com/hook")
        assert is_valid_url("http://localhost:3000/api")
        assert not is_valid_url("example.com")
        assert not is_valid_url("ftp://example.com")


# ==================== List / create / delete ====================


class TestWebhookManagement:
    """Tests for listing, creating and deleting webhooks."""

    def test_list_groups_by_type(self, runner, logged_in, mock_client):
        mock_client.list_webhooks.return_value = WebhookList(
            webhooks=[
                Webhook(id="w1", url="https://store.test/hook", provider="shopify"),
                Webhook(
                    id="w2",
                    name="Install hook",
                    url="https://dev.test/hook",
                    type="developer",
                    app_id="app_1",
                    status="failed",
                    retry_count=3,
                ),
            ],
            stats={"totalWebhooks": 2, "failedWebhooks": 1},
            pagination={"total": 10, "hasMore": True},
        )
        result = runner.invoke(cli, ["webhook", "--list", "--type", "developer"])
        assert result.exit_code == 0, result.output
        assert "System Webhooks" in result.output
        assert "Developer Webhooks" in result.output
        assert "Install hook" in result.output
        assert "shopify" in result.output
        assert "Webhook Statistics" in result.output
        assert "Showing 2 of 10 webhooks" in result.output
        mock_client.list_webhooks.assert_called_once_with(
            limit=50,
            skip=0,
            provider=None,
            status=None,
            type="developer",
            appId=None,
        )

    def test_list_empty(self, runner, logged_in, mock_client):
        mock_client.list_webhooks.return_value = WebhookList()
        result = runner.invoke(cli, ["webhook", "--list"])
        assert result.exit_code == 0
        assert "No webhooks found." in result.output

    def test_create_non_interactive(self, runner, logged_in, mock_client):
        mock_client.create_webhook.return_value = Webhook(
            id="w1", url="https://store.test/hook", events=["order.created"]
        )
        result = runner.invoke(
            cli,
            [
                "webhook",
                "--create",
                "--url",
                "https://store.test/hook",
                "-e",
                "order.created, order.shipped",
            ],
        )
        assert result.exit_code == 0, result.output
        mock_client.create_webhook.assert_called_once_with(
            {
                "url": "https://store.test/hook",
                "events": ["order.created", "order.shipped"],
                "provider": "custom",
            }
        )
        assert "mz webhook --simulate order.created" in result.output

    def test_create_default_events(self, runner, logged_in, mock_client):
        mock_client.create_webhook.return_value = Webhook(id="w1")
        result = runner.invoke(
            cli, ["webhook", "--create", "--url", "https://store.test/hook"]
        )
        assert result.exit_code == 0, result.output
        payload = mock_client.create_webhook.call_args.args[0]
        assert payload["events"] == ["order.created", "inventory.updated"]

    def test_create_invalid_url(self, runner, logged_in, mock_client):
        result = runner.invoke(cli, ["webhook", "--create", "--url", "not-a-url"])
        assert result.exit_code == 1
        assert "Invalid URL" in result.output
        mock_client.create_webhook.assert_not_called()

    def test_create_needs_url_without_terminal(self, runner, logged_in, mock_client):
        result = runner.invoke(cli, ["webhook", "--create"])
        assert result.exit_code == 1
        assert "--url is required" in result.output

    def test_create_dev_non_interactive(self, runner, logged_in, mock_client):
        mock_client.register_developer_webhook.return_value = {
            "id": "w9",
            "secret": "whsec_123",
        }
        result = runner.invoke(
            cli,
            [
                "webhook",
                "--create-dev",
                "--app-id",
                "app_1",
                "--url",
                "https://dev.test/hook",
            ],
        )
        assert result.exit_code == 0, result.output
        mock_client.register_developer_webhook.assert_called_once_with(
            {
                "url": "https://dev.test/hook",
                "events": ["developer.app.installed", "order.created"],
                "name": "Developer Webhook",
                "description": "Webhook for developer app",
                "appId": "app_1",
            }
        )
        assert "whsec_123" in result.output

    def test_create_dev_needs_app_id(self, runner, logged_in, mock_client):
        result = runner.invoke(
            cli, ["webhook", "--create-dev", "--url", "https://dev.test/hook"]
        )
        assert result.exit_code == 1
        assert "--app-id is required" in result.output

    def test_delete(self, runner, logged_in, mock_client):
        result = runner.invoke(cli, ["webhook", "--delete", "w1"])
        assert result.exit_code == 0
        mock_client.delete_webhook.assert_called_once_with("w1")
        assert "Webhook deleted" in result.output


# ==================== Simulate / test-dev ====================


class TestWebhookDelivery:
    """Tests for sending sample events."""

    def test_simulate_without_url_prints_example(self, runner, logged_in, mock_client):
        result = runner.invoke(cli, ["webhook", "--simulate", "order.shipped"])
        assert result.exit_code == 0, result.output
        assert "Webhook Test Example" in result.output
        assert '"carrier": "Test Carrier"' in result.output
        mock_client.send_webhook.assert_not_called()

    def test_simulate_delivers(self, runner, logged_in, mock_client):
        mock_client.send_webhook.return_value = _receiver_response()
        result = runner.invoke(
            cli,
            [
                "webhook",
                "--simulate",
                "inventory.updated",
                "--url",
                "https://store.test/hook",
                "--provider",
                "shopify",
            ],
        )
        assert result.exit_code == 0, result.output
        url, body, headers = mock_client.send_webhook.call_args.args
        assert url == "https://store.test/hook"
        sent = json.loads(body)
        assert sent["provider"] == "shopify"
        assert sent["event"] == "inventory.updated"
        assert headers is None
        assert "Webhook Test Results" in result.output
        assert '"received": true' in result.output

    def test_simulate_receiver_error(self, runner, logged_in, mock_client):
        mock_client.send_webhook.return_value = _receiver_response(500, {"e": 1})
        result = runner.invoke(
            cli,
            ["webhook", "--simulate", "order.created", "--url", "https://x.test/h"],
        )
        assert result.exit_code == 1
        assert "answered 500" in result.output

    def test_simulate_unreachable(self, runner, logged_in, mock_client):
        mock_client.send_webhook.side_effect = PlatformAPIError(0, "refused")
        result = runner.invoke(
            cli,
            ["webhook", "--simulate", "order.created", "--url", "https://x.test/h"],
        )
        assert result.exit_code == 1
        assert "refused" in result.output

    def test_test_dev_requires_app_id(self, runner, logged_in, mock_client):
        result = runner.invoke(cli, ["webhook", "--test-dev"])
        assert result.exit_code == 1
        assert "--app-id is required" in result.output

    def test_test_dev_signs_with_app_secret(self, runner, logged_in, mock_client):
        mock_client.get_app.return_value = App.model_validate(
            {
                "_id": "app_1",
                "name": "Dev App",
                "webhook": {"url": "https://dev.test/hook", "secret": "whsec_1"},
            }
        )
        mock_client.send_webhook.return_value = _receiver_response()
        result = runner.invoke(
            cli, ["webhook", "--test-dev", "--app-id", "app_1"]
        )
        assert result.exit_code == 0, result.output
        url, body, headers = mock_client.send_webhook.call_args.args
        assert url == "https://dev.test/hook"
        assert headers[SIGNATURE_HEADER] == sign_payload(body, "whsec_1")
        assert headers["x-developer-app-id"] == "app_1"
        assert headers["x-developer-api-key"] == "test_key"
        sent = json.loads(body)
        assert sent["provider"] == "developer"
        assert sent["event"] == "developer.app.installed"

    def test_test_dev_falls_back_to_url_and_test_secret(
        self, runner, logged_in, mock_client
    ):
        mock_client.get_app.return_value = App(id="app_1", name="Dev App")
        mock_client.send_webhook.return_value = _receiver_response()
        result = runner.invoke(
            cli,
            [
                "webhook",
                "--test-dev",
                "--app-id",
                "app_1",
                "--event",
                "developer.app.updated",
                "--url",
                "https://local.test/hook",
            ],
        )
        assert result.exit_code == 0, result.output
        url, body, headers = mock_client.send_webhook.call_args.args
        assert url == "https://local.test/hook"
        assert headers[SIGNATURE_HEADER] == sign_payload(body, TEST_SECRET)

    def test_test_dev_without_target(self, runner, logged_in, mock_client):
        mock_client.get_app.return_value = App(id="app_1", name="Dev App")
        result = runner.invoke(cli, ["webhook", "--test-dev", "--app-id", "app_1"])
        assert result.exit_code == 0, result.output
        assert "No webhook URL configured for app: Dev App" in result.output
        assert "Example payload:" in result.output
        mock_client.send_webhook.assert_not_called()
