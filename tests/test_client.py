"""Tests for the Platform API client."""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from mgzon.cli.platform.client import PlatformAPIError, PlatformClient

BASE_URL = "https://api.test/v1"


def _response(status=200, body=None, reason="OK"):
    resp = MagicMock()
    resp.status_code = status
    resp.reason = reason
    resp.content = b"" if body is None else json.dumps(body).encode()
    if body is None:
        resp.json.side_effect = ValueError("no body")
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def client():
    return PlatformClient(base_url=BASE_URL, api_key="mz_test_key_123456")


@pytest.fixture
def mock_request():
    with patch("requests.Session.request") as mock:
        yield mock


class TestRequest:
    """Tests for request building and error mapping."""

    def test_headers(self, client, mock_request):
        mock_request.return_value = _response(body={"success": True, "data": []})
        client.list_keys()
        _, kwargs = mock_request.call_args
        headers = kwargs["headers"]
        assert headers["Authorization"] == "Bearer mz_test_key_123456"
        assert headers["User-Agent"].startswith("mgzon-cli/")
        assert "X-CLI-Version" in headers

    def test_url_joined(self, client, mock_request):
        mock_request.return_value = _response(body={"success": True, "data": []})
        client.list_keys()
        args, _ = mock_request.call_args
        assert args == ("GET", f"{BASE_URL}/keys")

    def test_no_token_raises_401(self, mock_request):
        client = PlatformClient(base_url=BASE_URL)
        with pytest.raises(PlatformAPIError) as exc:
            client.list_keys()
        assert exc.value.status_code == 401
        mock_request.assert_not_called()

    def test_error_message_from_body(self, client, mock_request):
        mock_request.return_value = _response(
            404, {"success": False, "error": "App not found"}, reason="Not Found"
        )
        with pytest.raises(PlatformAPIError) as exc:
            client.get_app("missing")
        assert exc.value.status_code == 404
        assert exc.value.message == "App not found"

    def test_error_falls_back_to_reason(self, client, mock_request):
        mock_request.return_value = _response(502, reason="Bad Gateway")
        with pytest.raises(PlatformAPIError) as exc:
            client.list_apps()
        assert exc.value.status_code == 502
        assert exc.value.message == "Bad Gateway"

    def test_connection_error_is_status_zero(self, client, mock_request):
        mock_request.side_effect = requests.exceptions.ConnectionError()
        with pytest.raises(PlatformAPIError) as exc:
            client.list_apps()
        assert exc.value.status_code == 0
        assert "Cannot connect" in exc.value.message

    def test_timeout_is_status_zero(self, client, mock_request):
        mock_request.side_effect = requests.exceptions.Timeout()
        with pytest.raises(PlatformAPIError) as exc:
            client.list_apps()
        assert exc.value.status_code == 0

    def test_success_false_envelope(self, client, mock_request):
        mock_request.return_value = _response(
            body={"success": False, "error": "Quota exceeded"}
        )
        with pytest.raises(PlatformAPIError, match="Quota exceeded"):
            client.list_apps()

    def test_invalid_payload(self, client, mock_request):
        mock_request.return_value = _response(
            body={"success": True, "data": {"name": "no id"}}
        )
        with pytest.raises(PlatformAPIError) as exc:
            client.get_app("a1")
        assert "Unexpected response format" in exc.value.message


class TestAuth:
    """Tests for the auth endpoints."""

    def test_login_unauthenticated(self, mock_request):
        client = PlatformClient(base_url=BASE_URL)
        mock_request.return_value = _response(
            body={
                "success": True,
                "data": {
                    "user": {"_id": "u1", "email": "dev@example.com"},
                    "session": {"token": "tok"},
                },
            }
        )
        result = client.login("mz_test_key_123456")
        assert result.user.email == "dev@example.com"
        assert result.session.token == "tok"
        _, kwargs = mock_request.call_args
        assert "Authorization" not in kwargs["headers"]
        assert kwargs["json"] == {"apiKey": "mz_test_key_123456"}

    def test_verify_with_explicit_key(self, client, mock_request):
        mock_request.return_value = _response(
            body={
                "success": True,
                "data": {"key": {"name": "cli", "permissions": ["read"]}},
            }
        )
        result = client.verify_key("other_key_123456")
        assert result.key.permissions == ["read"]
        _, kwargs = mock_request.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer other_key_123456"

    def test_probe_returns_status(self, client, mock_request):
        mock_request.return_value = _response(401, {"error": "no"})
        assert client.probe("GET", "/apps") == 401

    def test_probe_unreachable(self, client, mock_request):
        mock_request.side_effect = requests.exceptions.ConnectionError()
        assert client.probe("GET", "/health") == 0


class TestResources:
    """Tests for resource endpoints and payload shapes."""

    def test_list_keys_shapes(self, client, mock_request):
        for body in (
            {"success": True, "data": {"apiKeys": [{"_id": "k1"}]}},
            {"success": True, "data": [{"_id": "k1"}]},
            {"success": True, "data": {}, "keys": [{"_id": "k1"}]},
        ):
            mock_request.return_value = _response(body=body)
            keys = client.list_keys()
            assert [k.id for k in keys] == ["k1"]

    def test_generate_key_unwraps(self, client, mock_request):
        mock_request.return_value = _response(
            body={
                "success": True,
                "data": {"apiKey": {"_id": "k2", "key": "mz_new", "name": "ci"}},
            }
        )
        key = client.generate_key("ci", "developer", ["read"], "2030-01-01")
        assert key.key == "mz_new"
        _, kwargs = mock_request.call_args
        assert kwargs["json"]["expiresAt"] == "2030-01-01"

    def test_create_app_merges_credentials(self, client, mock_request):
        mock_request.return_value = _response(
            body={
                "success": True,
                "data": {"_id": "a1", "name": "Shop"},
                "credentials": {"clientId": "cid", "clientSecret": "sec"},
            }
        )
        app = client.create_app({"name": "Shop"})
        assert app.credentials.client_id == "cid"
        assert app.credentials.client_secret == "sec"

    def test_db_status(self, client, mock_request):
        mock_request.return_value = _response(
            body={
                "success": True,
                "data": {"database": {"stats": {"collections": 4, "dataSize": 10}}},
            }
        )
        stats = client.db_status()
        assert stats.collections == 4
        assert stats.data_size == 10

    def test_db_status_without_stats(self, client, mock_request):
        mock_request.return_value = _response(body={"success": True, "data": {}})
        with pytest.raises(PlatformAPIError, match="no database statistics"):
            client.db_status()

    def test_db_operation_body(self, client, mock_request):
        mock_request.return_value = _response(
            body={"success": True, "data": {"message": "done"}}
        )
        assert client.db_operation("restore", backupFile="b.json") == {
            "message": "done"
        }
        _, kwargs = mock_request.call_args
        assert kwargs["json"] == {"operation": "restore", "backupFile": "b.json"}

    def test_list_webhooks_filters(self, client, mock_request):
        mock_request.return_value = _response(
            body={
                "success": True,
                "data": [{"_id": "w1", "url": "https://hook.test"}],
                "pagination": {"total": 1},
            }
        )
        listing = client.list_webhooks(limit=10, provider=None, type="developer")
        assert listing.webhooks[0].id == "w1"
        assert listing.pagination == {"total": 1}
        _, kwargs = mock_request.call_args
        assert kwargs["params"] == {"limit": 10, "type": "developer"}

    def test_delete_file_body(self, client, mock_request):
        mock_request.return_value = _response(body={"success": True})
        client.delete_file("mgzon-uploads/logo")
        args, kwargs = mock_request.call_args
        assert args[0] == "DELETE"
        assert kwargs["json"] == {"publicId": "mgzon-uploads/logo"}

    def test_upload_is_multipart(self, client, mock_request, tmp_path):
        path = tmp_path / "logo.png"
        path.write_bytes(b"\x89PNG")
        mock_request.return_value = _response(
            body={"success": True, "data": {"publicId": "mgzon-uploads/logo"}}
        )
        stored = client.upload_file(path, "image/png", folder="brand")
        assert stored.public_id == "mgzon-uploads/logo"
        _, kwargs = mock_request.call_args
        assert "Content-Type" not in kwargs["headers"]
        assert kwargs["files"]["file"][0] == "logo.png"
        assert kwargs["data"] == {"folder": "brand"}


class TestDownload:
    """Tests for streaming a stored file to disk."""

    def _stream(self, chunks):
        resp = MagicMock()
        resp.status_code = 200
        resp.iter_content.return_value = chunks
        stream = MagicMock()
        stream.__enter__.return_value = resp
        return stream

    def test_writes_chunks(self, client, tmp_path):
        dest = tmp_path / "logo.png"
        with patch("requests.Session.get") as mock_get:
            mock_get.return_value = self._stream([b"ab", b"cd"])
            written = client.download("https://cdn.test/logo.png", dest)
        assert written == 4
        assert dest.read_bytes() == b"abcd"

    def test_interrupted_stream_removes_partial_file(self, client, tmp_path):
        dest = tmp_path / "logo.png"

        def broken():
            yield b"ab"
            raise requests.exceptions.ChunkedEncodingError("connection reset")

        with patch("requests.Session.get") as mock_get:
            mock_get.return_value = self._stream(broken())
            with pytest.raises(PlatformAPIError) as exc:
                client.download("https://cdn.test/logo.png", dest)
        assert exc.value.status_code == 0
        assert not dest.exists()


class TestSendWebhook:
    """Tests for delivering webhook payloads to third-party receivers."""

    def test_sends_raw_body(self, client):
        with patch("requests.Session.post") as mock_post:
            mock_post.return_value = _response(body={"ok": True})
            client.send_webhook(
                "https://hook.test", b'{"a":1}', {"x-developer-signature": "abc"}
            )
        args, kwargs = mock_post.call_args
        assert args == ("https://hook.test",)
        assert kwargs["data"] == b'{"a":1}'
        assert kwargs["headers"]["x-developer-signature"] == "abc"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert "Authorization" not in kwargs["headers"]

    def test_transport_error(self, client):
        with patch("requests.Session.post") as mock_post:
            mock_post.side_effect = requests.exceptions.ConnectionError()
            with pytest.raises(PlatformAPIError) as exc:
                client.send_webhook("https://hook.test", b"{}")
        assert exc.value.status_code == 0
