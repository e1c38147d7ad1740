"""Config file and credential helpers for the Platform API."""

import json
import logging
import os
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from pydantic.alias_generators import to_camel

from .config import API_KEY_ENV, API_URL_ENV, CONFIG_FILE, PROJECT_CONFIG_FILE
from .types import CliConfig, LoginResult

logger = logging.getLogger(__name__)

# Fields removed from the config file on logout. Preferences survive.
SESSION_FIELDS = (
    "api_key",
    "user_id",
    "email",
    "name",
    "role",
    "is_developer",
    "is_seller",
    "is_admin",
    "session_token",
    "expires_at",
)


def _read_raw() -> dict[str, Any] | None:
    """Read the config file as a plain dict.

    Returns:
        The stored mapping, or None if the file is missing or unreadable.
    """
    if not CONFIG_FILE.exists():
        return None
    try:
        data = json.loads(CONFIG_FILE.read_text())
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable config file {CONFIG_FILE}: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config file {CONFIG_FILE}: not a JSON object")
        return None
    return data


def _write(config: CliConfig) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(
        config.model_dump_json(by_alias=True, exclude_none=True, indent=2)
    )
    # Restrict permissions to owner only
    CONFIG_FILE.chmod(0o600)
    logger.debug(f"Wrote config to {CONFIG_FILE}")


def load_config() -> CliConfig:
    """Load the CLI config, creating it with defaults on first use.

    A corrupt file is not overwritten here; defaults are returned and the
    next save replaces it.

    Returns:
        The parsed config.
    """
    if not CONFIG_FILE.exists():
        config = CliConfig()
        _write(config)
        return config

    raw = _read_raw()
    if raw is None:
        return CliConfig()
    try:
        return CliConfig.model_validate(raw)
    except ValueError as e:
        logger.warning(f"Ignoring invalid config file {CONFIG_FILE}: {e}")
        return CliConfig()


def _salvage(raw: dict[str, Any]) -> dict[str, Any]:
    """Keep the stored values that still validate, on top of the defaults."""
    kept = CliConfig().model_dump(by_alias=True, exclude_none=True)
    for key, value in raw.items():
        try:
            CliConfig.model_validate({**kept, key: value})
        except ValueError:
            logger.warning(f"Dropping invalid config value {key!r} from {CONFIG_FILE}")
            continue
        kept[key] = value
    return kept


def save_config(**updates: Any) -> CliConfig:
    """Shallow-merge updates into the stored config.

    Args:
        **updates: Config fields by their Python name. A value of None removes
            the key from the file.

    Returns:
        The config as written.
    """
    current = _read_raw()
    if current is None:
        current = CliConfig().model_dump(by_alias=True, exclude_none=True)
    else:
        try:
            CliConfig.model_validate(current)
        except ValueError:
            current = _salvage(current)

    for field, value in updates.items():
        key = to_camel(field)
        if value is None:
            current.pop(key, None)
        else:
            current[key] = value

    config = CliConfig.model_validate(current)
    _write(config)
    return config


def clear_session() -> None:
    """Forget the stored API key, user profile and session."""
    save_config(**{field: None for field in SESSION_FIELDS})


def save_login(api_key: str, result: LoginResult) -> CliConfig:
    """Persist the outcome of a successful login.

    Args:
        api_key: The key that was exchanged.
        result: Payload returned by the login endpoint.

    Returns:
        The updated config.
    """
    now = datetime.now(UTC)
    session = result.session
    expires_at = None
    if session and session.expires_at:
        expires_at = session.expires_at
    elif session and session.expires_in:
        expires_at = (now + timedelta(seconds=session.expires_in)).isoformat()

    user = result.user
    return save_config(
        api_key=api_key,
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        is_developer=user.is_developer,
        is_seller=user.is_seller,
        is_admin=user.is_admin,
        session_token=session.token if session else None,
        expires_at=expires_at,
        last_login=now.isoformat(),
    )


def get_api_key() -> str | None:
    """Return the API key, preferring the MGZON_API_KEY environment variable."""
    env_key = os.environ.get(API_KEY_ENV, "").strip()
    if env_key:
        return env_key
    return load_config().api_key or None


def api_key_from_env() -> bool:
    return bool(os.environ.get(API_KEY_ENV, "").strip())


def get_api_url() -> str:
    """Return the API base URL, preferring the MGZON_API_URL environment variable."""
    env_url = os.environ.get(API_URL_ENV, "").strip()
    url = env_url or load_config().api_url
    return url.rstrip("/")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp into an aware datetime, or None."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def has_valid_session(config: CliConfig | None = None) -> bool:
    """Check whether the stored session token is present and unexpired."""
    config = config or load_config()
    if not config.session_token:
        return False
    expires = parse_timestamp(config.expires_at)
    return expires is not None and expires > datetime.now(UTC)


def get_auth_token() -> str | None:
    """Return the bearer token for API requests.

    An environment key always wins. Otherwise an unexpired session token is
    used, falling back to the stored API key.
    """
    if api_key_from_env():
        return get_api_key()
    config = load_config()
    if has_valid_session(config):
        return config.session_token
    return config.api_key


def is_authenticated() -> bool:
    """Check if an API key is available.

    Returns:
        True if a key is set in the environment or config file.
    """
    return get_api_key() is not None


def load_project_config(project_dir: Path) -> dict[str, Any]:
    """Load .mgzon.json from a project directory.

    Returns:
        The project settings, or an empty dict if missing or invalid.
    """
    path = project_dir / PROJECT_CONFIG_FILE
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable {path}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def save_project_config(project_dir: Path, **updates: Any) -> None:
    """Shallow-merge updates into the project's .mgzon.json."""
    data = load_project_config(project_dir)
    data.update(updates)
    (project_dir / PROJECT_CONFIG_FILE).write_text(json.dumps(data, indent=2) + "\n")
