"""Interactive first-run setup.

Usage:
    mz setup
"""

import sys
from urllib.parse import urlparse

import click
import questionary

from mgzon.cli.platform.auth import get_api_key, get_api_url, save_config
from mgzon.cli.platform.client import PlatformAPIError
from mgzon.cli.platform.config import CONFIG_FILE, DEFAULT_API_URL, KEYS_URL
from mgzon.cli.session import (
    describe_auth_failure,
    login_with_api_key,
    prompt_for_api_key,
)
from mgzon.cli.utils import PROMPT_STYLE, field, heading, is_interactive, mask_key

LOCAL_API_URL = "http://localhost:3000/api/v1"


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


@click.command()
def setup() -> None:
    """Configure the API URL and log in interactively."""
    if not is_interactive():
        click.echo("Error: mz setup must be run in a terminal.", err=True)
        click.echo(
            "Use 'mz config --set apiUrl=URL' and 'mz login --api-key KEY'.", err=True
        )
        sys.exit(1)

    heading("MGZON CLI setup")
    field("API URL", get_api_url())
    field("Logged in", "Yes" if get_api_key() else "No")

    while True:
        action = questionary.select(
            "What would you like to do?",
            choices=[
                questionary.Choice("Configure API URL", value="url"),
                questionary.Choice("Log in with API key", value="login"),
                questionary.Choice("Generate a new API key", value="key"),
                questionary.Choice("View configuration", value="view"),
                questionary.Choice("Exit", value="exit"),
            ],
            style=PROMPT_STYLE,
        ).ask()

        if action in (None, "exit"):
            click.echo("Setup finished.")
            return
        if action == "url":
            _configure_url()
        elif action == "login":
            _login()
        elif action == "key":
            click.echo(f"\nCreate a key in the dashboard: {KEYS_URL}")
            click.echo("Then run: mz login --api-key <key>\n")
        elif action == "view":
            heading("Configuration")
            field("API URL", get_api_url())
            field("API key", mask_key(get_api_key(), head=8))
            field("Config file", CONFIG_FILE)
            click.echo()


def _configure_url() -> None:
    choice = questionary.select(
        "API server:",
        choices=[
            questionary.Choice(f"MGZON cloud ({DEFAULT_API_URL})", value=DEFAULT_API_URL),
            questionary.Choice(f"Local development ({LOCAL_API_URL})", value=LOCAL_API_URL),
            questionary.Choice("ngrok tunnel", value="ngrok"),
            questionary.Choice("Custom URL", value="custom"),
        ],
        style=PROMPT_STYLE,
    ).ask()
    if choice is None:
        return

    if choice == "ngrok":
        tunnel = questionary.text(
            "ngrok URL (https://xxxx.ngrok-free.app):",
            validate=lambda v: is_valid_url(v) or "Enter a valid http(s) URL",
            style=PROMPT_STYLE,
        ).ask()
        if not tunnel:
            return
        url = tunnel.rstrip("/") + "/api/v1"
    elif choice == "custom":
        url = questionary.text(
            "API URL:",
            validate=lambda v: is_valid_url(v) or "Enter a valid http(s) URL",
            style=PROMPT_STYLE,
        ).ask()
        if not url:
            return
    else:
        url = choice

    save_config(api_url=url.rstrip("/"))
    click.echo(click.style(f"API URL set to {url.rstrip('/')}", fg="green"))


def _login() -> None:
    api_key = prompt_for_api_key()
    if not api_key:
        return
    try:
        config = login_with_api_key(api_key)
    except PlatformAPIError as e:
        click.echo(click.style(f"Login failed: {describe_auth_failure(e)}", fg="red"))
        return
    click.echo(click.style(f"Logged in as {config.name or config.email}", fg="green"))
