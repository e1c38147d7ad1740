"""CLI command for managing API keys.

Usage:
    mz keys --list
    mz keys --generate [--name NAME] [--expires DAYS] [--type TYPE]
    mz keys --revoke KEY_ID
"""

from datetime import UTC, datetime, timedelta

import click

from ..platform.client import PlatformAPIError, PlatformClient
from ..platform.config import KEYS_URL
from ..platform.types import ApiKey
from ..session import requires_auth
from ..utils import (
    Spinner,
    days_until,
    expiry_color,
    format_timestamp,
    heading,
    rule,
)

DEFAULT_PERMISSIONS = [
    "products:read",
    "orders:read",
    "apps:read",
    "apps:write",
    "api:keys:read",
]


@click.command()
@click.option("--list", "-l", "list_keys", is_flag=True, help="List API keys")
@click.option("--generate", "-g", is_flag=True, help="Generate a new API key")
@click.option("--revoke", "-r", metavar="KEY_ID", help="Revoke an API key")
@click.option("--name", "-n", help="Name for the generated key")
@click.option(
    "--expires",
    default=365,
    show_default=True,
    type=click.IntRange(min=1),
    help="Days until the generated key expires",
)
@click.option(
    "--type",
    "key_type",
    default="developer",
    show_default=True,
    type=click.Choice(["developer", "seller"]),
    help="Key type",
)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@requires_auth
def keys(
    list_keys: bool,
    generate: bool,
    revoke: str | None,
    name: str | None,
    expires: int,
    key_type: str,
    yes: bool,
):
    """Manage MGZON API keys."""
    client = PlatformClient()

    if list_keys:
        _list(client)
    elif generate:
        _generate(client, name, expires, key_type)
    elif revoke:
        if not yes and not click.confirm(f"Revoke API key {revoke}?"):
            click.echo("Cancelled.")
            return
        spinner = Spinner()
        spinner.start(f"Revoking {revoke}...")
        try:
            client.revoke_key(revoke)
        except PlatformAPIError:
            spinner.fail()
            raise
        spinner.done(f"Revoked API key {revoke}")
    else:
        click.echo(click.get_current_context().get_help())
        click.echo()
        click.echo("Use developer keys for CLI access and seller keys for store APIs.")


def _list(client: PlatformClient) -> None:
    spinner = Spinner()
    spinner.start("Fetching API keys...")
    try:
        key_list = client.list_keys()
    except PlatformAPIError:
        spinner.fail()
        raise
    spinner.done(f"Found {len(key_list)} key(s)")

    if not key_list:
        click.echo("No API keys found. Generate one with: mz keys --generate")
        click.echo(f"Or manage keys in the dashboard: {KEYS_URL}")
        return

    heading("API Keys")
    for index, key in enumerate(key_list, start=1):
        _print_key(index, key)


def _print_key(index: int, key: ApiKey) -> None:
    click.echo(click.style(f"\n{index}. {key.name}", bold=True))
    click.echo(f"   ID:          {key.id}")
    click.echo(f"   Type:        {key.type or 'seller'}")
    click.echo(f"   Created:     {format_timestamp(key.created_at, short=True)}")
    days = days_until(key.expires_at)
    if days is None:
        click.echo(click.style("   Expires:     Never", fg="green"))
    else:
        click.echo(click.style(f"   Expires in:  {days} days", fg=expiry_color(days)))
    click.echo(f"   Permissions: {', '.join(key.permissions) or 'None'}")
    if key.last_used:
        click.echo(f"   Last used:   {format_timestamp(key.last_used, short=True)}")


def _generate(
    client: PlatformClient, name: str | None, expires: int, key_type: str
) -> None:
    now = datetime.now(UTC)
    key_name = name or f"CLI Key {now:%Y-%m-%d}"
    expires_at = (now + timedelta(days=expires)).isoformat()

    spinner = Spinner()
    spinner.start(f"Generating {key_type} key '{key_name}'...")
    try:
        new_key = client.generate_key(
            key_name, key_type, DEFAULT_PERMISSIONS, expires_at
        )
    except PlatformAPIError:
        spinner.fail()
        raise
    spinner.done("API key generated")

    heading("New API Key")
    click.echo(click.style(f"  Name:    {new_key.name}", fg="green"))
    click.echo(click.style(f"  Key:     {new_key.key or new_key.id}", fg="green"))
    click.echo(f"  ID:      {new_key.id}")
    click.echo(f"  Type:    {new_key.type or key_type}")
    expires = format_timestamp(new_key.expires_at or expires_at, short=True)
    click.echo(f"  Expires: {expires}")
    rule()
    click.echo(
        click.style(
            "Copy this key now. It will not be shown again.", fg="yellow", bold=True
        )
    )
    click.echo(f"Use it with: mz login --api-key {new_key.key or '<key>'}")
