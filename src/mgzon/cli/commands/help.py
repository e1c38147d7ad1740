"""Documentation and support commands."""

import webbrowser

import click

from ..platform.config import DASHBOARD_URL, DOCS_URL

SUPPORT_CHANNELS = [
    ("Website", f"{DASHBOARD_URL}/support"),
    ("Email", "support@mgzon.com"),
    ("Discord", "https://discord.gg/mgzon"),
    ("GitHub", "https://github.com/mgzon/mgzon-cli/issues"),
]


@click.command()
@click.option("--offline", is_flag=True, help="Open the offline documentation")
def docs(offline: bool):
    """Open the CLI documentation in a browser."""
    url = f"{DOCS_URL}/offline" if offline else DOCS_URL
    if webbrowser.open(url):
        click.echo(click.style(f"Opening documentation at {url}", fg="green"))
    else:
        click.echo("Could not open a browser.")
        click.echo(f"Documentation: {url}")


@click.command()
def support():
    """Show ways to get help with MGZON."""
    click.echo(click.style("═" * 50, fg="cyan"))
    click.echo(click.style("MGZON Support", fg="cyan", bold=True))
    click.echo(click.style("═" * 50, fg="cyan"))
    for label, value in SUPPORT_CHANNELS:
        click.echo(click.style(f"{label + ':':<9}", fg="cyan") + f" {value}")
    click.echo(click.style("═" * 50, fg="cyan"))
