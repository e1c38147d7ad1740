"""API-key login and the authentication gate for platform commands."""

import functools
import logging
import sys
from collections.abc import Callable
from typing import Any

import click
import questionary

from .platform.auth import (
    api_key_from_env,
    get_api_key,
    has_valid_session,
    load_config,
    save_login,
)
from .platform.client import PlatformAPIError, PlatformClient
from .platform.config import API_KEY_ENV, MIN_API_KEY_LENGTH
from .platform.types import CliConfig
from .utils import PROMPT_STYLE, is_interactive

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when no usable credentials could be obtained."""


def validate_api_key(value: str) -> bool | str:
    """questionary validator: True or an error message."""
    if len(value.strip()) < MIN_API_KEY_LENGTH:
        return f"API key must be at least {MIN_API_KEY_LENGTH} characters"
    return True


def prompt_for_api_key() -> str | None:
    """Ask for an API key with masked input. None if cancelled."""
    answer = questionary.password(
        "Enter your MGZON API key:", validate=validate_api_key, style=PROMPT_STYLE
    ).ask()
    return answer.strip() if answer else None


def login_with_api_key(
    api_key: str, client: PlatformClient | None = None
) -> CliConfig:
    """Exchange an API key for a session and store it.

    Args:
        api_key: The key to log in with.
        client: Client to use; a fresh one by default.

    Returns:
        The saved config.

    Raises:
        PlatformAPIError: If the server rejects the key or is unreachable.
    """
    client = client or PlatformClient()
    result = client.login(api_key)
    logger.debug(f"Logged in as {result.user.email or result.user.id}")
    return save_login(api_key, result)


def describe_auth_failure(error: PlatformAPIError) -> str:
    """One-line explanation of why a login attempt failed."""
    if error.status_code == 401:
        return "Invalid or expired API key."
    if error.status_code == 429:
        return "Too many login attempts. Please wait and try again."
    if error.status_code == 0:
        return f"Could not reach the MGZON API: {error.message}"
    return error.message


def ensure_authenticated() -> CliConfig:
    """Make sure the user has a verified API key.

    Reads the key from MGZON_API_KEY or the config file, prompting once when
    neither has one. A stored, unexpired session is accepted as-is; otherwise
    the key is verified against the login endpoint. On failure the user may
    log in again once.

    Returns:
        The config after any login.

    Raises:
        AuthenticationError: If no valid key could be obtained.
    """
    config = load_config()
    api_key = get_api_key()
    interactive = is_interactive()

    if not api_key:
        if not interactive:
            raise AuthenticationError("No API key configured.")
        click.echo(click.style("You are not logged in.", fg="yellow"), err=True)
        api_key = prompt_for_api_key()
        if not api_key:
            raise AuthenticationError("No API key provided.")
    elif not api_key_from_env() and has_valid_session(config):
        return config

    try:
        return login_with_api_key(api_key)
    except PlatformAPIError as e:
        reason = describe_auth_failure(e)
        click.echo(click.style(f"Authentication failed: {reason}", fg="red"), err=True)
        if not interactive:
            raise AuthenticationError(reason) from e

    if not questionary.confirm("Login now?", default=True, style=PROMPT_STYLE).ask():
        raise AuthenticationError("Login declined.")
    api_key = prompt_for_api_key()
    if not api_key:
        raise AuthenticationError("No API key provided.")
    try:
        return login_with_api_key(api_key)
    except PlatformAPIError as e:
        raise AuthenticationError(describe_auth_failure(e)) from e


def requires_auth(f: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator for commands that call authenticated endpoints.

    Exits with status 1 and login instructions when authentication fails.
    """

    @functools.wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            ensure_authenticated()
        except AuthenticationError as e:
            message = f"Authentication required: {e}"
            click.echo(click.style(message, fg="red"), err=True)
            click.echo("  Run: mz login", err=True)
            click.echo(f"  Or set {API_KEY_ENV}=<your key>", err=True)
            sys.exit(1)
        return f(*args, **kwargs)

    return wrapper
