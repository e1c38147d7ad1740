"""Authenticate with the MGZON platform.

The `mz login` command exchanges an API key for a CLI session and stores both
in ~/.mgzon/config.json.

Usage:
    mz login                  # Prompt for an API key
    mz login --api-key KEY    # Use the given key
"""

import sys

import click

from mgzon.cli.platform.client import PlatformAPIError, PlatformClient
from mgzon.cli.platform.config import (
    API_KEY_ENV,
    CONFIG_FILE,
    KEYS_URL,
    MIN_API_KEY_LENGTH,
)
from mgzon.cli.session import (
    describe_auth_failure,
    login_with_api_key,
    prompt_for_api_key,
)
from mgzon.cli.utils import Spinner, field, heading, is_interactive, rule


@click.command()
@click.option("--api-key", "-k", help="API key for authentication")
def login(api_key: str | None) -> None:
    """Authenticate with an MGZON API key.

    Credentials are stored in ~/.mgzon/config.json. Generate a key in the
    MGZON dashboard under Developers > API Keys.

    \b
    Examples:
        mz login                  # Prompt for your key
        mz login --api-key KEY    # Use KEY
    """
    if not api_key:
        if not is_interactive():
            click.echo(
                "Error: --api-key is required when not running in a terminal", err=True
            )
            sys.exit(1)
        api_key = prompt_for_api_key()
        if not api_key:
            click.echo("Cancelled.", err=True)
            sys.exit(1)

    api_key = api_key.strip()
    if len(api_key) < MIN_API_KEY_LENGTH:
        click.echo(
            f"Error: API key must be at least {MIN_API_KEY_LENGTH} characters",
            err=True,
        )
        sys.exit(1)

    client = PlatformClient()
    spinner = Spinner()
    spinner.start("Verifying API key...")
    try:
        config = login_with_api_key(api_key, client)
    except PlatformAPIError as e:
        spinner.fail("Login failed")
        click.echo(f"Error: {describe_auth_failure(e)}", err=True)
        if e.status_code == 0:
            click.echo(f"  API URL: {client.base_url}", err=True)
            click.echo("  Check it with: mz config --get apiUrl", err=True)
        else:
            click.echo(f"  Get a valid key at: {KEYS_URL}", err=True)
        sys.exit(1)
    spinner.done("Logged in")

    heading("Account")
    field("Name", config.name or "Not set")
    field("Email", config.email or "Not set")
    field("Role", config.role or "Developer")
    field("Account", _account_type(config.is_admin, config.is_seller))
    rule()

    click.echo(click.style("\nNext steps:", fg="cyan"))
    click.echo("  mz init my-app      Create a new project")
    click.echo("  mz apps --list      List your apps")
    click.echo("  mz whoami           Show account details")
    click.echo()
    click.echo("Tip: set the key in your shell to skip this step:")
    click.echo(f"  export {API_KEY_ENV}={api_key[:10]}...")
    click.echo(click.style(f"\nConfig saved to {CONFIG_FILE}", dim=True))


def _account_type(is_admin: bool | None, is_seller: bool | None) -> str:
    if is_admin:
        return "Admin"
    if is_seller:
        return "Seller"
    return "Developer"
