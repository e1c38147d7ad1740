"""HTTP client for the MGZON Platform API."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from .auth import get_api_url, get_auth_token
from .config import (
    AUTH_TIMEOUT,
    CLI_VERSION,
    DEFAULT_TIMEOUT,
    DEPLOY_TIMEOUT,
    HEALTH_TIMEOUT,
    USER_AGENT,
)
from .types import (
    ApiKey,
    App,
    AppList,
    AppLogList,
    DatabaseStats,
    DeploymentResult,
    Domain,
    FileList,
    LoginResult,
    StoredFile,
    VerifyResult,
    Webhook,
    WebhookList,
)

logger = logging.getLogger(__name__)


class PlatformAPIError(Exception):
    """Platform API error with status code and message.

    A status code of 0 means the request never got an HTTP response
    (connection refused, DNS failure, timeout).
    """

    def __init__(
        self, status_code: int, message: str, details: dict | None = None
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{status_code}] {message}")


class PlatformClient:
    """HTTP client for the MGZON Platform API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
        api_key: str | None = None,
    ) -> None:
        """Initialize the Platform API client.

        Args:
            base_url: Base URL for the Platform API. Defaults to the configured
                URL (MGZON_API_URL or the config file).
            timeout: Default request timeout in seconds.
            api_key: Bearer token to use instead of the stored credentials.
        """
        self.base_url = (base_url or get_api_url()).rstrip("/")
        self.timeout = timeout
        self._api_key = api_key
        self._session = requests.Session()

    def _get_headers(
        self, authenticated: bool = True, token: str | None = None
    ) -> dict[str, str]:
        """Get request headers.

        Args:
            authenticated: Whether to include auth header.
            token: Explicit bearer token for this request.

        Returns:
            Headers dictionary.

        Raises:
            PlatformAPIError: If authenticated=True but no credentials found.
        """
        headers = {
            "User-Agent": USER_AGENT,
            "X-CLI-Version": CLI_VERSION,
            "Content-Type": "application/json",
        }
        if authenticated:
            token = token or self._api_key or get_auth_token()
            if not token:
                raise PlatformAPIError(401, "Not authenticated. Run 'mz login' first.")
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict | None = None,
        files: dict | None = None,
        data: dict | None = None,
        params: dict | None = None,
        authenticated: bool = True,
        token: str | None = None,
        timeout: int | None = None,
    ) -> requests.Response:
        """Make request to Platform API.

        Args:
            method: HTTP method.
            endpoint: API endpoint, appended to the base URL.
            json_data: JSON body data.
            files: Files for multipart upload.
            data: Form data for multipart upload.
            params: URL query parameters.
            authenticated: Whether to include auth header.
            token: Explicit bearer token for this request.
            timeout: Per-call timeout override in seconds.

        Returns:
            Response object.

        Raises:
            PlatformAPIError: On API errors or connection issues.
        """
        url = f"{self.base_url}{endpoint}"
        headers = self._get_headers(authenticated, token)

        # Remove Content-Type for multipart uploads
        if files:
            headers.pop("Content-Type", None)

        logger.debug(f"{method} {url}")
        try:
            response = self._session.request(
                method,
                url,
                headers=headers,
                json=json_data,
                files=files,
                data=data,
                params=params,
                timeout=timeout or self.timeout,
            )
        except requests.exceptions.ConnectionError as e:
            raise PlatformAPIError(0, f"Cannot connect to MGZON API at {url}") from e
        except requests.exceptions.Timeout as e:
            raise PlatformAPIError(0, "Request timed out") from e
        except requests.exceptions.RequestException as e:
            raise PlatformAPIError(0, "Network request failed") from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        if response.status_code >= 400:
            try:
                error_data = response.json() if response.content else {}
            except ValueError:
                error_data = {}
            if not isinstance(error_data, dict):
                error_data = {}
            detail = (
                error_data.get("error")
                or error_data.get("message")
                or error_data.get("detail")
            )
            if detail and not isinstance(detail, str):
                detail = json.dumps(detail)
            raise PlatformAPIError(
                response.status_code,
                detail or response.reason or f"HTTP {response.status_code}",
                error_data.get("details"),
            )
        return response

    @staticmethod
    def _safe_json(resp: requests.Response) -> Any:
        """Parse JSON from response, raising PlatformAPIError on failure."""
        try:
            return resp.json()
        except ValueError as e:
            raise PlatformAPIError(
                resp.status_code,
                "Unexpected response from server. Please try again.",
            ) from e

    def _unwrap(self, resp: requests.Response) -> Any:
        """Return the `data` member of a `{success, data, error}` envelope.

        Raises:
            PlatformAPIError: If the envelope reports `success: false`.
        """
        payload = self._safe_json(resp)
        if not isinstance(payload, dict):
            return payload
        if payload.get("success") is False:
            raise PlatformAPIError(
                resp.status_code,
                payload.get("error") or payload.get("message") or "Request failed",
            )
        return payload.get("data", payload)

    _T = TypeVar("_T", bound=BaseModel)

    @staticmethod
    def _safe_validate(model_cls: type[_T], data: Any) -> _T:
        """Validate data against a Pydantic model, raising PlatformAPIError on failure."""
        try:
            return model_cls.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Invalid {model_cls.__name__} payload: {e}")
            raise PlatformAPIError(
                0,
                "Unexpected response format from server. "
                "Try updating: mz update",
            ) from e

    # ==================== AUTH ====================

    def login(self, api_key: str) -> LoginResult:
        """Exchange an API key for a CLI session.

        Args:
            api_key: The user's API key.

        Returns:
            User profile and session token.
        """
        resp = self._request(
            "POST",
            "/cli/auth/login",
            json_data={"apiKey": api_key},
            authenticated=False,
            timeout=AUTH_TIMEOUT,
        )
        return self._safe_validate(LoginResult, self._unwrap(resp))

    def verify_key(self, api_key: str | None = None) -> VerifyResult:
        """Verify an API key and fetch its metadata.

        Args:
            api_key: Key to verify. Defaults to the stored credentials.
        """
        resp = self._request(
            "POST", "/auth/verify", token=api_key, timeout=AUTH_TIMEOUT
        )
        return self._safe_validate(VerifyResult, self._unwrap(resp) or {})

    def logout(self) -> None:
        """Invalidate the current session on the server."""
        self._request("POST", "/auth/logout", timeout=AUTH_TIMEOUT)

    def health(self) -> dict[str, Any]:
        """Check API availability. Does not require authentication."""
        resp = self._request(
            "GET", "/health", authenticated=False, timeout=HEALTH_TIMEOUT
        )
        payload = self._safe_json(resp)
        return payload if isinstance(payload, dict) else {}

    def probe(self, method: str, endpoint: str) -> int:
        """Send a request and return the HTTP status without raising on 4xx/5xx.

        Returns:
            The status code, or 0 if the server could not be reached.
        """
        url = f"{self.base_url}{endpoint}"
        headers = self._get_headers(authenticated=False)
        token = self._api_key or get_auth_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            resp = self._session.request(
                method, url, headers=headers, timeout=HEALTH_TIMEOUT
            )
        except requests.exceptions.RequestException as e:
            logger.debug(f"{method} {url} failed: {e}")
            return 0
        return resp.status_code

    # ==================== APPS ====================

    def list_apps(self) -> AppList:
        """List the user's apps with pagination and stats."""
        resp = self._request("GET", "/apps")
        return self._safe_validate(AppList, self._unwrap(resp))

    def create_app(self, payload: dict[str, Any]) -> App:
        """Create an app.

        Args:
            payload: App fields (name, description, targetAudience, ...).

        Returns:
            The created app, including client credentials when issued.
        """
        resp = self._request("POST", "/apps", json_data=payload)
        body = self._safe_json(resp)
        data = self._unwrap(resp)
        # Credentials may be returned beside the envelope data
        credentials = body.get("credentials") if isinstance(body, dict) else None
        if credentials and isinstance(data, dict):
            data = {**data, "credentials": credentials}
        return self._safe_validate(App, data)

    def get_app(self, app_id: str) -> App:
        resp = self._request("GET", f"/apps/{app_id}")
        return self._safe_validate(App, self._unwrap(resp))

    def delete_app(self, app_id: str) -> None:
        self._request("DELETE", f"/apps/{app_id}")

    def list_domains(self, app_id: str) -> list[Domain]:
        resp = self._request("GET", f"/apps/{app_id}/domains")
        data = self._unwrap(resp)
        items = data.get("domains", []) if isinstance(data, dict) else data
        return [self._safe_validate(Domain, d) for d in items or []]

    def get_app_logs(self, app_id: str, limit: int | None = None) -> AppLogList:
        params = {"limit": limit} if limit else None
        resp = self._request("GET", f"/apps/{app_id}/logs", params=params)
        return self._safe_validate(AppLogList, self._unwrap(resp))

    # ==================== API KEYS ====================

    def list_keys(self) -> list[ApiKey]:
        """List API keys.

        The server has returned the list under `apiKeys`, `keys` or as the
        bare `data` array; all three are accepted.
        """
        resp = self._request("GET", "/keys")
        body = self._safe_json(resp)
        data = self._unwrap(resp)
        if isinstance(data, dict):
            items = data.get("apiKeys") or data.get("keys") or []
        elif isinstance(data, list):
            items = data
        else:
            items = []
        if not items and isinstance(body, dict):
            items = body.get("keys") or []
        return [self._safe_validate(ApiKey, k) for k in items]

    def generate_key(
        self,
        name: str,
        key_type: str,
        permissions: list[str],
        expires_at: str,
    ) -> ApiKey:
        """Create a new API key. The secret is only returned once."""
        resp = self._request(
            "POST",
            "/keys",
            json_data={
                "name": name,
                "type": key_type,
                "permissions": permissions,
                "expiresAt": expires_at,
            },
        )
        data = self._unwrap(resp)
        if isinstance(data, dict) and isinstance(data.get("apiKey"), dict):
            data = data["apiKey"]
        return self._safe_validate(ApiKey, data)

    def revoke_key(self, key_id: str) -> None:
        self._request("DELETE", f"/keys/{key_id}")

    # ==================== DATABASE ====================

    def db_status(self) -> DatabaseStats:
        """Fetch database statistics (admin only)."""
        resp = self._request("GET", "/db")
        body = self._safe_json(resp)
        data = self._unwrap(resp)
        stats = None
        for source in (data, body):
            if isinstance(source, dict):
                stats = (source.get("database") or {}).get("stats")
            if stats:
                break
        if not stats:
            raise PlatformAPIError(
                resp.status_code, "Server returned no database statistics"
            )
        return self._safe_validate(DatabaseStats, stats)

    def db_operation(self, operation: str, **extra: Any) -> dict[str, Any]:
        """Run a database operation.

        Args:
            operation: One of migrate, seed, reset, backup, restore,
                create-migration.
            **extra: Additional body fields for the operation.

        Returns:
            Operation result (message, tables, filename, ...).
        """
        resp = self._request(
            "POST", "/db", json_data={"operation": operation, **extra}
        )
        data = self._unwrap(resp)
        return data if isinstance(data, dict) else {}

    # ==================== STORAGE ====================

    def list_files(self, folder: str | None = None) -> FileList:
        params = {"folder": folder} if folder else None
        resp = self._request("GET", "/storage", params=params)
        return self._safe_validate(FileList, self._unwrap(resp))

    def upload_file(
        self,
        file_path: Path,
        content_type: str,
        folder: str | None = None,
        public_id: str | None = None,
    ) -> StoredFile:
        """Upload a file as multipart form data.

        Args:
            file_path: Local file to upload.
            content_type: MIME type sent with the file part.
            folder: Destination folder.
            public_id: Explicit public ID for the stored file.
        """
        form: dict[str, str] = {}
        if folder:
            form["folder"] = folder
        if public_id:
            form["publicId"] = public_id
        with open(file_path, "rb") as f:
            resp = self._request(
                "POST",
                "/storage",
                files={"file": (file_path.name, f, content_type)},
                data=form,
            )
        return self._safe_validate(StoredFile, self._unwrap(resp))

    def get_file(self, file_id: str) -> StoredFile:
        resp = self._request("GET", f"/storage/{file_id}")
        return self._safe_validate(StoredFile, self._unwrap(resp))

    def update_file(
        self,
        file_id: str,
        tags: list[str] | None = None,
        description: str | None = None,
    ) -> StoredFile:
        body: dict[str, Any] = {}
        if tags is not None:
            body["tags"] = tags
        if description is not None:
            body["context"] = {"description": description}
        resp = self._request("PUT", f"/storage/{file_id}", json_data=body)
        return self._safe_validate(StoredFile, self._unwrap(resp))

    def delete_file(self, public_id: str) -> None:
        self._request("DELETE", "/storage", json_data={"publicId": public_id})

    def download(self, url: str, dest: Path) -> int:
        """Stream a file from a storage URL to disk.

        Returns:
            Number of bytes written.
        """
        try:
            with self._session.get(url, stream=True, timeout=self.timeout) as resp:
                if resp.status_code >= 400:
                    raise PlatformAPIError(resp.status_code, f"Download failed: {url}")
                written = 0
                with open(dest, "wb") as f:
                    for chunk in resp.iter_content(chunk_size=8192):
                        f.write(chunk)
                        written += len(chunk)
        except requests.exceptions.RequestException as e:
            dest.unlink(missing_ok=True)
            raise PlatformAPIError(0, f"Download failed: {e}") from e
        return written

    # ==================== WEBHOOKS ====================

    def list_webhooks(self, **filters: Any) -> WebhookList:
        """List webhooks.

        Args:
            **filters: Query parameters (limit, skip, provider, status, type,
                appId). None values are dropped.
        """
        params = {k: v for k, v in filters.items() if v is not None}
        resp = self._request("GET", "/webhooks", params=params)
        body = self._safe_json(resp)
        data = self._unwrap(resp)
        if isinstance(data, dict):
            listing = dict(data)
        else:
            listing = {"webhooks": data or []}
        if isinstance(body, dict):
            for key in ("pagination", "stats"):
                if key in body and key not in listing:
                    listing[key] = body[key]
        return self._safe_validate(WebhookList, listing)

    def create_webhook(self, payload: dict[str, Any]) -> Webhook:
        resp = self._request("POST", "/webhooks", json_data=payload)
        return self._safe_validate(Webhook, self._unwrap(resp))

    def register_developer_webhook(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Attach a webhook to a developer app."""
        resp = self._request("PUT", "/webhooks", json_data=payload)
        data = self._unwrap(resp)
        return data if isinstance(data, dict) else {}

    def delete_webhook(self, webhook_id: str) -> None:
        self._request("DELETE", "/webhooks", params={"id": webhook_id})

    def send_webhook(
        self,
        url: str,
        body: bytes,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        """POST an encoded webhook payload to an arbitrary receiver.

        The body is sent byte-for-byte so that signatures computed over it
        stay valid. The receiver's status code is returned as-is; only
        transport failures raise.
        """
        try:
            return self._session.post(
                url,
                data=body,
                headers={
                    "User-Agent": USER_AGENT,
                    "Content-Type": "application/json",
                    **(headers or {}),
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise PlatformAPIError(0, f"Could not deliver webhook to {url}: {e}") from e

    # ==================== DEPLOY ====================

    def deploy(self, package_path: Path, fields: dict[str, str]) -> DeploymentResult:
        """Upload a deployment package.

        Args:
            package_path: Path to the zip archive.
            fields: Form fields (appId, appName, environment, version, ...).

        Returns:
            The created deployment.
        """
        with open(package_path, "rb") as f:
            resp = self._request(
                "POST",
                "/deploy",
                files={"file": ("deployment.zip", f, "application/zip")},
                data=fields,
                timeout=DEPLOY_TIMEOUT,
            )
        return self._safe_validate(DeploymentResult, self._unwrap(resp))
