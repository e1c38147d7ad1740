"""Show the current MGZON account.

Usage:
    mz whoami
"""

import click

from mgzon.cli.platform.auth import get_api_key, get_api_url, load_config
from mgzon.cli.platform.client import PlatformAPIError, PlatformClient
from mgzon.cli.utils import (
    days_until,
    expiry_color,
    field,
    format_timestamp,
    heading,
    mask_key,
    rule,
)


@click.command()
def whoami() -> None:
    """Show the logged-in user, verify the API key and test the connection."""
    config = load_config()
    api_key = get_api_key()
    if not api_key:
        click.echo(click.style("Not logged in.", fg="yellow"))
        click.echo("  Run: mz login")
        return

    api_url = get_api_url()

    heading("User")
    field("Name", config.name or "Not set")
    field("Email", config.email or "Not set")
    field("Role", config.role or "Unknown")
    field("User ID", config.user_id or "Unknown")
    field("API key", mask_key(api_key, head=10, tail=4))
    field("API URL", api_url)
    if config.last_login:
        field("Last login", format_timestamp(config.last_login))

    client = PlatformClient(base_url=api_url)

    heading("Verification")
    try:
        info = client.verify_key(api_key)
    except PlatformAPIError as e:
        if e.status_code == 401:
            click.echo(click.style("  API key is invalid or expired.", fg="red"))
            click.echo("  Run: mz login")
        else:
            click.echo(click.style(f"  Cannot verify with API: {e.message}", fg="red"))
    else:
        click.echo(click.style("  API key verified", fg="green"))
        if info.user:
            field("Live name", info.user.name or info.user.email or "Unknown")
            field("Live role", info.user.role or info.user.type or "Unknown")
        if info.key:
            field("Key name", info.key.name or "Unnamed")
            field("Key type", info.key.type or "Unknown")
            field("Permissions", f"{len(info.key.permissions)} permission(s)")
            days = days_until(info.key.expires_at)
            if days is None:
                field("Expires", "Never", fg="green")
            else:
                field("Expires in", f"{days} days", fg=expiry_color(days))
        if info.rate_limit:
            limit = info.rate_limit.limits.get("minute", "?")
            remaining = info.rate_limit.remaining
            field("Rate limit", f"{remaining if remaining is not None else '?'}/{limit}")

    heading("Connection")
    try:
        client.health()
        click.echo(click.style(f"  Connected to {api_url}", fg="green"))
    except PlatformAPIError as e:
        click.echo(click.style(f"  Cannot reach {api_url}: {e.message}", fg="red"))

    heading("Config")
    field("Environment", config.default_environment)
    field("Project", config.current_project or "None")
    rule()
    click.echo("Tips: 'mz config --list' shows all settings, 'mz logout' signs out.")
