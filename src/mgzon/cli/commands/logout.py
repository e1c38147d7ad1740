"""Log out from the MGZON platform.

The `mz logout` command ends the server session and clears the stored API key
and profile. Preferences such as apiUrl are kept.

Usage:
    mz logout
"""

import click

from mgzon.cli.platform.auth import clear_session, load_config
from mgzon.cli.platform.client import PlatformAPIError, PlatformClient


@click.command()
def logout() -> None:
    """Log out and clear stored credentials.

    Examples:
        mz logout
    """
    config = load_config()
    if not config.api_key and not config.session_token:
        click.echo("Not logged in.")
        return

    who = config.name or config.email
    if who:
        click.echo(f"Logging out {who}...")

    try:
        PlatformClient().logout()
    except PlatformAPIError as e:
        click.echo(
            click.style(
                f"Warning: could not end server session ({e.message})", fg="yellow"
            ),
            err=True,
        )

    clear_session()
    click.echo(click.style("Logged out successfully.", fg="green"))
