"""Platform API configuration constants."""

import platform
from pathlib import Path

from mgzon import __version__

DEFAULT_API_URL = "https://api.mgzon.com/v1"
DASHBOARD_URL = "https://mgzon.com"
KEYS_URL = f"{DASHBOARD_URL}/developers/api-keys"
DOCS_URL = "https://docs.mgzon.com/cli"

API_KEY_ENV = "MGZON_API_KEY"
API_URL_ENV = "MGZON_API_URL"
DEBUG_ENV = "MGZON_DEBUG"
NO_UPDATE_CHECK_ENV = "MGZON_NO_UPDATE_CHECK"

MGZON_CONFIG_DIR = Path.home() / ".mgzon"
CONFIG_FILE = MGZON_CONFIG_DIR / "config.json"
PROJECT_CONFIG_FILE = ".mgzon.json"

CLI_VERSION = __version__
USER_AGENT = (
    f"mgzon-cli/{CLI_VERSION} ({platform.system().lower()}; {platform.machine()})"
)

DEFAULT_TIMEOUT = 30  # seconds
AUTH_TIMEOUT = 10  # seconds
HEALTH_TIMEOUT = 5  # seconds
DEPLOY_TIMEOUT = 300  # seconds

MIN_API_KEY_LENGTH = 10
ENVIRONMENTS = ("development", "staging", "production")

PYPI_URL = "https://pypi.org/pypi/mgzon-cli/json"
UPDATE_CHECK_INTERVAL = 24 * 60 * 60  # seconds
