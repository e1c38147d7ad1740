"""CLI command for managing MGZON apps."""

import sys

import click
import questionary

from ..platform.client import PlatformAPIError, PlatformClient
from ..platform.config import ENVIRONMENTS
from ..platform.types import App
from ..session import requires_auth
from ..utils import (
    PROMPT_STYLE,
    Spinner,
    field,
    format_timestamp,
    heading,
    is_interactive,
    rule,
)

STATUS_COLORS = {
    "approved": "green",
    "pending": "yellow",
    "draft": "blue",
    "rejected": "red",
    "suspended": "white",
}

LOG_LEVEL_COLORS = {"info": "blue", "warn": "yellow", "error": "red"}

AUDIENCES = ["DEVELOPER", "SELLER", "BOTH"]


@click.command()
@click.option("--list", "-l", "list_apps", is_flag=True, help="List your apps")
@click.option("--create", "-c", metavar="NAME", help="Create an app")
@click.option("--info", "-i", metavar="APP_ID", help="Show app details")
@click.option("--delete", "-d", metavar="APP_ID", help="Delete an app")
@click.option("--domains", metavar="APP_ID", help="List an app's domains")
@click.option("--logs", metavar="APP_ID", help="Show an app's logs")
@click.option("--description", help="Description for --create")
@click.option(
    "--audience",
    type=click.Choice(AUDIENCES, case_sensitive=False),
    help="Target audience for --create",
)
@click.option(
    "--environment",
    type=click.Choice(ENVIRONMENTS),
    help="Environment for --create",
)
@click.option(
    "--marketplace/--private",
    default=None,
    help="Publish the created app to the marketplace",
)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@requires_auth
def apps(
    list_apps: bool,
    create: str | None,
    info: str | None,
    delete: str | None,
    domains: str | None,
    logs: str | None,
    description: str | None,
    audience: str | None,
    environment: str | None,
    marketplace: bool | None,
    yes: bool,
):
    """Manage your MGZON apps.

    \b
    Examples:
        mz apps --list
        mz apps --create my-store-app
        mz apps --info 65f1c0...
        mz apps --logs 65f1c0...
    """
    client = PlatformClient()

    if list_apps:
        _list(client)
    elif create is not None:
        _create(client, create, description, audience, environment, marketplace)
    elif info:
        _info(client, info)
    elif delete:
        _delete(client, delete, yes)
    elif domains:
        _domains(client, domains)
    elif logs:
        _logs(client, logs)
    else:
        click.echo(click.get_current_context().get_help())


def _fetch(spinner: Spinner, text: str, call, *args):
    """Run a client call under a spinner, failing the spinner on errors."""
    spinner.start(text)
    try:
        return call(*args)
    except PlatformAPIError:
        spinner.fail()
        raise


def _list(client: PlatformClient) -> None:
    spinner = Spinner()
    listing = _fetch(spinner, "Fetching apps...", client.list_apps)
    spinner.done(f"Found {len(listing.apps)} app(s)")

    if not listing.apps:
        click.echo("No apps found. Create one with: mz apps --create <name>")
        click.echo("Or deploy an existing project with: mz deploy")
        return

    heading("Your Apps")
    for index, app in enumerate(listing.apps, start=1):
        click.echo(click.style(f"\n{index}. {app.name}", bold=True))
        click.echo(f"   ID:          {app.id}")
        click.echo(f"   Slug:        {app.slug}")
        click.echo(f"   Description: {app.description or 'No description'}")
        color = STATUS_COLORS.get(app.status, "white")
        click.echo(click.style(f"   Status:      {app.status.upper()}", fg=color))
        click.echo(f"   Environment: {app.environment or 'unknown'}")
        kind = app.target_audience or "DEVELOPER"
        if app.is_marketplace_app:
            kind += " (Marketplace)"
        click.echo(f"   Type:        {kind}")
        click.echo(f"   Version:     {app.version or '-'}")
        click.echo(f"   Created:     {format_timestamp(app.created_at, short=True)}")
        if app.domain:
            click.echo(f"   Domain:      {app.domain}")

    heading("Stats")
    field("Total", listing.pagination.get("total", len(listing.apps)))
    field("Marketplace", listing.stats.get("marketplace", 0))
    field("Private", listing.stats.get("private", 0))


def _create(
    client: PlatformClient,
    name: str,
    description: str | None,
    audience: str | None,
    environment: str | None,
    marketplace: bool | None,
) -> None:
    name = name.strip()
    if len(name) < 3:
        click.echo("Error: App name must be at least 3 characters", err=True)
        sys.exit(1)

    interactive = is_interactive()

    if audience is None:
        if interactive:
            audience = questionary.select(
                "Target audience:",
                choices=[
                    questionary.Choice("Developers (private app)", value="DEVELOPER"),
                    questionary.Choice("Sellers (marketplace app)", value="SELLER"),
                    questionary.Choice("Both", value="BOTH"),
                ],
                style=PROMPT_STYLE,
            ).ask()
            if audience is None:
                click.echo("Cancelled.", err=True)
                sys.exit(1)
        else:
            audience = "DEVELOPER"
    audience = audience.upper()

    if marketplace is None:
        if interactive and audience != "DEVELOPER":
            marketplace = questionary.confirm(
                "Publish to marketplace?", default=False, style=PROMPT_STYLE
            ).ask()
            if marketplace is None:
                click.echo("Cancelled.", err=True)
                sys.exit(1)
        else:
            marketplace = False

    if description is None:
        default_description = f"My MGZON app: {name}"
        if interactive:
            description = questionary.text(
                "App description:", default=default_description, style=PROMPT_STYLE
            ).ask()
            if description is None:
                click.echo("Cancelled.", err=True)
                sys.exit(1)
        description = description or default_description

    if environment is None:
        if interactive:
            environment = questionary.select(
                "Environment:",
                choices=list(ENVIRONMENTS),
                default="staging",
                style=PROMPT_STYLE,
            ).ask()
            if environment is None:
                click.echo("Cancelled.", err=True)
                sys.exit(1)
        else:
            environment = "staging"

    spinner = Spinner()
    app = _fetch(
        spinner,
        "Creating app...",
        client.create_app,
        {
            "name": name,
            "description": description,
            "targetAudience": audience,
            "isMarketplaceApp": marketplace,
            "environment": environment,
        },
    )
    spinner.done(f"App '{app.name}' created")

    heading("App Details")
    _print_app(app)

    if app.credentials and app.credentials.client_id:
        click.echo(click.style("\nIMPORTANT CREDENTIALS:", fg="red", bold=True))
        field("Client ID", app.credentials.client_id, fg="green")
        field("Client secret", app.credentials.client_secret, fg="green")
        click.echo(
            click.style("Save these now. The secret won't be shown again!", fg="red")
        )

    click.echo(click.style("\nNext steps:", fg="yellow"))
    click.echo("  1. cd into your project directory")
    click.echo(f"  2. mz deploy --app-id {app.id}")


def _print_app(app: App) -> None:
    field("ID", app.id)
    field("Name", app.name)
    field("Slug", app.slug)
    field("Status", app.status, fg=STATUS_COLORS.get(app.status))
    field("Environment", app.environment or "unknown")
    field("Type", app.target_audience or "DEVELOPER")
    field("Created", format_timestamp(app.created_at))


def _info(client: PlatformClient, app_id: str) -> None:
    spinner = Spinner()
    app = _fetch(spinner, "Fetching app details...", client.get_app, app_id)
    spinner.done()

    heading(app.name)
    _print_app(app)
    field("Description", app.description or "No description")
    field("Version", app.version or "-")
    field("Marketplace", "Yes" if app.is_marketplace_app else "No")
    if app.installs is not None:
        field("Installs", app.installs)
    if app.rating is not None:
        field("Rating", f"{app.rating:.1f}")
    field("Updated", format_timestamp(app.updated_at))
    if app.slug:
        field("Dev URL", f"https://{app.slug}.dev.mgzon.app")
    if app.domains:
        click.echo("  Domains:")
        for domain in app.domains:
            mark = "verified" if domain.verified else "unverified"
            click.echo(f"    - {domain.domain} ({mark})")
    rule()


def _delete(client: PlatformClient, app_id: str, yes: bool) -> None:
    spinner = Spinner()
    app = _fetch(spinner, "Checking app...", client.get_app, app_id)
    spinner.stop()

    if not yes and not click.confirm(
        f"Delete app '{app.name}' ({app.slug})? This cannot be undone."
    ):
        click.echo("Deletion cancelled.")
        return

    _fetch(spinner, "Deleting app...", client.delete_app, app_id)
    spinner.done(f"App '{app.name}' deleted")


def _domains(client: PlatformClient, app_id: str) -> None:
    spinner = Spinner()
    domain_list = _fetch(spinner, "Fetching domains...", client.list_domains, app_id)
    spinner.done(f"Found {len(domain_list)} domain(s)")

    if not domain_list:
        click.echo("No domains found. Add one with:")
        click.echo(f"  curl -X POST {client.base_url}/apps/{app_id}/domains \\")
        click.echo('    -H "Authorization: Bearer $MGZON_API_KEY" \\')
        click.echo('    -H "Content-Type: application/json" \\')
        click.echo("""    -d '{"domain": "your-domain.com"}'""")
        return

    heading("App Domains")
    for index, domain in enumerate(domain_list, start=1):
        click.echo(click.style(f"\n{index}. {domain.domain}", bold=True))
        click.echo(f"   Type:     {domain.type or '-'}")
        click.echo(f"   SSL:      {domain.ssl_status or 'Unknown'}")
        click.echo(f"   Verified: {'yes' if domain.verified else 'no'}")
        click.echo(f"   Created:  {format_timestamp(domain.created_at, short=True)}")


def _logs(client: PlatformClient, app_id: str) -> None:
    spinner = Spinner()
    log_list = _fetch(spinner, "Fetching logs...", client.get_app_logs, app_id)
    spinner.done(f"Found {len(log_list.logs)} log(s)")

    if not log_list.logs:
        click.echo("No logs found.")
        return

    heading("App Logs")
    for entry in log_list.logs:
        level = entry.level.lower()
        stamp = format_timestamp(entry.timestamp)
        tag = click.style(f"{level.upper():<5}", fg=LOG_LEVEL_COLORS.get(level))
        source = f" [{entry.source}]" if entry.source else ""
        click.echo(f"{stamp} {tag}{source} {entry.message}")

    by_level = log_list.stats.get("byLevel") or {}
    if log_list.stats:
        heading("Stats")
        field("Total", log_list.stats.get("total", len(log_list.logs)))
        field("Errors", by_level.get("error", 0), fg="red")
        field("Warnings", by_level.get("warn", 0), fg="yellow")
        field("Info", by_level.get("info", 0), fg="blue")
