"""MGZON Platform API client, local config and deployment packaging."""

from .auth import (
    clear_session,
    get_api_key,
    get_api_url,
    is_authenticated,
    load_config,
    save_config,
)
from .client import PlatformAPIError, PlatformClient
from .config import CONFIG_FILE, DEFAULT_API_URL
from .packaging import PackagingError, package_project
from .types import App, ApiKey, CliConfig, LoginResult, StoredFile, Webhook

__all__ = [
    # Config store
    "load_config",
    "save_config",
    "clear_session",
    "get_api_key",
    "get_api_url",
    "is_authenticated",
    # Client
    "PlatformClient",
    "PlatformAPIError",
    # Constants
    "CONFIG_FILE",
    "DEFAULT_API_URL",
    # Packaging
    "package_project",
    "PackagingError",
    # Types
    "CliConfig",
    "LoginResult",
    "App",
    "ApiKey",
    "StoredFile",
    "Webhook",
]
