"""Data types for the local config file and Platform API contracts."""

from typing import Any

from pydantic import AliasChoices, BaseModel, Field
from pydantic.alias_generators import to_camel

from .config import DEFAULT_API_URL


class CliConfig(BaseModel):
    """Contents of ~/.mgzon/config.json.

    Keys are stored camelCase on disk; unknown keys are kept so that files
    written by other versions of the CLI survive a round trip.
    """

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "allow",
    }

    api_key: str | None = None
    api_url: str = DEFAULT_API_URL
    default_environment: str = "development"
    user_id: str | None = None
    email: str | None = None
    name: str | None = None
    role: str | None = None
    is_developer: bool | None = None
    is_seller: bool | None = None
    is_admin: bool | None = None
    theme: str | None = "default"
    editor: str | None = None
    current_project: str | None = None
    last_login: str | None = None
    session_token: str | None = None
    expires_at: str | None = None
    last_update_check: float | None = None


class _ApiModel(BaseModel):
    """Base for server payloads: camelCase keys, extra fields ignored."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class UserProfile(_ApiModel):
    id: str | None = Field(
        None, validation_alias=AliasChoices("_id", "id", "userId")
    )
    email: str | None = None
    name: str | None = None
    role: str | None = None
    type: str | None = None
    is_developer: bool = False
    is_seller: bool = False
    is_admin: bool = False

    @property
    def account_type(self) -> str:
        """Human-readable account type derived from the account flags."""
        if self.is_admin:
            return "Admin"
        if self.is_seller:
            return "Seller"
        if self.is_developer:
            return "Developer"
        return self.type or "User"


class AuthSession(_ApiModel):
    token: str | None = None
    expires_at: str | None = None
    expires_in: int | None = None


class LoginResult(_ApiModel):
    """Payload of POST /cli/auth/login."""

    user: UserProfile = Field(default_factory=UserProfile)
    session: AuthSession | None = None


class KeyInfo(_ApiModel):
    name: str | None = None
    type: str | None = None
    permissions: list[str] = Field(default_factory=list)
    expires_at: str | None = None


class RateLimit(_ApiModel):
    remaining: int | None = None
    limits: dict[str, Any] = Field(default_factory=dict)


class VerifyResult(_ApiModel):
    """Payload of POST /auth/verify."""

    user: UserProfile | None = None
    key: KeyInfo | None = None
    rate_limit: RateLimit | None = None


class ApiKey(_ApiModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str = "Unnamed"
    type: str | None = None
    key: str | None = None
    permissions: list[str] = Field(default_factory=list)
    created_at: str | None = None
    expires_at: str | None = None
    last_used: str | None = None


class AppCredentials(_ApiModel):
    client_id: str | None = None
    client_secret: str | None = None


class AppWebhook(_ApiModel):
    url: str | None = None
    secret: str | None = None


class Domain(_ApiModel):
    domain: str
    type: str | None = None
    verified: bool = False
    ssl_status: str | None = None
    created_at: str | None = None


class App(_ApiModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str
    slug: str = ""
    description: str | None = None
    status: str = "draft"
    environment: str | None = None
    target_audience: str | None = None
    is_marketplace_app: bool = False
    version: str | None = None
    domain: str | None = None
    domains: list[Domain] = Field(default_factory=list)
    installs: int | None = None
    rating: float | None = None
    webhook: AppWebhook | None = None
    credentials: AppCredentials | None = None
    created_at: str | None = None
    updated_at: str | None = None


class AppLog(_ApiModel):
    level: str = "info"
    message: str = ""
    source: str | None = None
    timestamp: str | None = None
    metadata: dict[str, Any] | None = None


class StoredFile(_ApiModel):
    id: str | None = Field(None, validation_alias=AliasChoices("_id", "id"))
    public_id: str
    original_filename: str | None = None
    format: str | None = None
    resource_type: str | None = None
    size: int = Field(0, validation_alias=AliasChoices("bytes", "size"))
    width: int | None = None
    height: int | None = None
    url: str | None = None
    secure_url: str | None = None
    download_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: str | None = None

    @property
    def display_name(self) -> str:
        return self.original_filename or self.public_id.rsplit("/", 1)[-1]

    @property
    def fetch_url(self) -> str | None:
        return self.download_url or self.secure_url or self.url


class Webhook(_ApiModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str | None = None
    url: str = ""
    description: str | None = None
    provider: str = "custom"
    type: str | None = None
    status: str = "active"
    events: list[str] = Field(default_factory=list)
    app_id: str | None = None
    retry_count: int = 0
    last_triggered: str | None = None
    created_at: str | None = None


class DeploymentResult(_ApiModel):
    """Payload of POST /deploy."""

    deployment_id: str = Field(
        validation_alias=AliasChoices("deploymentId", "_id", "id")
    )
    app_id: str | None = None
    app_name: str | None = None
    slug: str | None = None
    version: str | None = None
    environment: str | None = None
    status: str = "pending"
    url: str | None = None
    deployment_url: str | None = None
    download_url: str | None = None
    logs: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)


class AppList(_ApiModel):
    apps: list[App] = Field(default_factory=list)
    pagination: dict[str, Any] = Field(default_factory=dict)
    stats: dict[str, Any] = Field(default_factory=dict)


class AppLogList(_ApiModel):
    logs: list[AppLog] = Field(default_factory=list)
    stats: dict[str, Any] = Field(default_factory=dict)


class StorageUsage(_ApiModel):
    storage_used: int = 0


class FileList(_ApiModel):
    files: list[StoredFile] = Field(default_factory=list)
    folder: str = "mgzon-uploads"
    user: StorageUsage = Field(default_factory=StorageUsage)


class WebhookList(_ApiModel):
    webhooks: list[Webhook] = Field(default_factory=list)
    pagination: dict[str, Any] = Field(default_factory=dict)
    stats: dict[str, Any] = Field(default_factory=dict)


class DatabaseStats(_ApiModel):
    """MongoDB-style dbStats figures, sizes in bytes."""

    collections: int = 0
    objects: int = 0
    avg_obj_size: float = 0
    data_size: int = 0
    storage_size: int = 0
    indexes: int = 0
    index_size: int = 0
    file_size: int = 0

    @property
    def usage_percent(self) -> int:
        if self.file_size <= 0:
            return 0
        return round(self.storage_size / self.file_size * 100)


class PackageManifest(BaseModel):
    """Summary of a deployment archive."""

    name: str
    slug: str
    framework: str = "static"
    files: list[str] = Field(default_factory=list)
    size: int = 0
    checksum: str = ""
    created_at: str = ""
