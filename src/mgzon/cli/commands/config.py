"""Read and change CLI settings.

Usage:
    mz config --list
    mz config --get apiUrl
    mz config --set apiUrl=https://api.mgzon.com/v1
    mz config --reset
"""

import sys
from urllib.parse import urlparse

import click

from mgzon.cli.platform.auth import load_config, save_config
from mgzon.cli.platform.config import CONFIG_FILE, DEFAULT_API_URL, ENVIRONMENTS
from mgzon.cli.utils import heading, mask_key, rule

# Values masked when printed
SECRET_KEYS = ("apiKey", "sessionToken")

# Keys that `mz config --set` may change, by their on-disk name
SETTABLE_KEYS = {
    "apiUrl": "api_url",
    "defaultEnvironment": "default_environment",
    "theme": "theme",
    "editor": "editor",
}


def _validate(key: str, value: str) -> str | None:
    """Return an error message for an invalid value, else None."""
    if key == "apiUrl":
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return f"Invalid URL: {value}"
    if key == "defaultEnvironment" and value not in ENVIRONMENTS:
        return f"Environment must be one of: {', '.join(ENVIRONMENTS)}"
    return None


@click.command("config")
@click.option("--list", "-l", "list_all", is_flag=True, help="List all settings")
@click.option("--set", "-s", "assignment", metavar="KEY=VALUE", help="Set a value")
@click.option("--get", "-g", "key", metavar="KEY", help="Print a value")
@click.option("--reset", is_flag=True, help="Reset apiUrl and defaultEnvironment")
def config_cmd(list_all: bool, assignment: str | None, key: str | None, reset: bool):
    """Manage CLI configuration stored in ~/.mgzon/config.json."""
    if reset:
        save_config(api_url=DEFAULT_API_URL, default_environment="development")
        click.echo(click.style("Configuration reset to defaults.", fg="green"))
        return

    if assignment is not None:
        name, sep, value = assignment.partition("=")
        name, value = name.strip(), value.strip()
        if not sep or not name:
            click.echo("Error: use --set KEY=VALUE", err=True)
            sys.exit(1)
        if name not in SETTABLE_KEYS:
            click.echo(f"Error: '{name}' cannot be set.", err=True)
            click.echo(f"Settable keys: {', '.join(SETTABLE_KEYS)}", err=True)
            sys.exit(1)
        error = _validate(name, value)
        if error:
            click.echo(f"Error: {error}", err=True)
            sys.exit(1)
        if name == "apiUrl":
            value = value.rstrip("/")
            if not urlparse(value).path.endswith("/v1"):
                click.echo(
                    click.style(
                        "Warning: API URLs usually end with /v1 "
                        "(e.g. http://localhost:3000/api/v1)",
                        fg="yellow",
                    ),
                    err=True,
                )
        save_config(**{SETTABLE_KEYS[name]: value})
        click.echo(click.style(f"{name} = {value}", fg="green"))
        return

    stored = load_config().model_dump(by_alias=True, exclude_none=True)

    if key is not None:
        if key in stored:
            value = stored[key]
            click.echo(f"{key} = {mask_key(value) if key in SECRET_KEYS else value}")
        else:
            click.echo(f"{key} is not set")
        return

    if list_all:
        heading("Configuration")
        for name, value in stored.items():
            shown = mask_key(value) if name in SECRET_KEYS else value
            click.echo(f"  {name:<20} {shown}")
        rule()
        click.echo(click.style(f"File: {CONFIG_FILE}", dim=True))
        return

    click.echo(click.get_current_context().get_help())
