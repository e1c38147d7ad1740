"""CLI command for database operations (admin only).

Usage:
    mz db --stats
    mz db --migrate | --seed | --backup | --reset
    mz db --restore BACKUP
    mz db --create MIGRATION_NAME
"""

import sys

import click

from ..platform.client import PlatformAPIError, PlatformClient
from ..platform.types import DatabaseStats
from ..session import requires_auth
from ..utils import Spinner, field, heading, rule

USAGE_WARNING = 70  # percent
USAGE_CRITICAL = 85  # percent


def _mb(size: int) -> str:
    return f"{round(size / 1024 / 1024)} MB"


@click.command()
@click.option("--migrate", "-m", is_flag=True, help="Run database migrations")
@click.option("--seed", "-s", is_flag=True, help="Seed the database")
@click.option("--stats", "--status", "stats", is_flag=True, help="Show database statistics")
@click.option("--backup", is_flag=True, help="Create a database backup")
@click.option("--restore", metavar="BACKUP", help="Restore a database backup")
@click.option("--reset", is_flag=True, help="Reset ALL database data")
@click.option("--create", metavar="NAME", help="Create a new migration")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts")
@requires_auth
def db(
    migrate: bool,
    seed: bool,
    stats: bool,
    backup: bool,
    restore: str | None,
    reset: bool,
    create: str | None,
    yes: bool,
):
    """Run database operations on the MGZON platform.

    Database operations require admin privileges.
    """
    client = PlatformClient()
    spinner = Spinner()

    spinner.start("Testing API connection...")
    try:
        client.health()
    except PlatformAPIError as e:
        spinner.fail("Cannot connect to API server")
        click.echo(f"  URL:   {client.base_url}", err=True)
        click.echo(f"  Error: {e.message}", err=True)
        sys.exit(1)
    spinner.stop()

    try:
        if stats:
            _stats(client, spinner)
        elif migrate:
            if _confirm("Run database migrations?", yes):
                _run(
                    client,
                    spinner,
                    "migrate",
                    "Running migrations",
                    "Migrations completed",
                )
        elif seed:
            if _confirm("Seed the database with sample data?", yes):
                result = _run(client, spinner, "seed", "Seeding database", "Database seeded")
                if result.get("tables"):
                    click.echo(f"  Tables: {', '.join(result['tables'])}")
        elif backup:
            result = _run(client, spinner, "backup", "Creating backup", "Backup created")
            if result.get("filename"):
                click.echo(f"  File: {result['filename']}")
            if result.get("url"):
                click.echo(f"  URL:  {result['url']}")
        elif restore:
            if _confirm(f"Restore backup '{restore}'? Current data will be replaced.", yes):
                _run(
                    client,
                    spinner,
                    "restore",
                    "Restoring backup",
                    "Backup restored",
                    backup=restore,
                )
        elif reset:
            if _confirm(
                "DANGER: This will reset ALL database data. Are you sure?", yes
            ) and _confirm("FINAL WARNING: This cannot be undone. Continue?", yes):
                _run(client, spinner, "reset", "Resetting database", "Database reset")
                click.secho("All data has been reset to defaults.", fg="yellow")
        elif create is not None:
            if len(create.strip()) < 3:
                click.echo("Error: Migration name must be at least 3 characters", err=True)
                sys.exit(1)
            result = _run(
                client,
                spinner,
                "create-migration",
                f"Creating migration '{create}'",
                "Migration created",
                name=create.strip(),
            )
            if result.get("filename"):
                click.echo(f"  File: {result['filename']}")
        else:
            click.echo(click.get_current_context().get_help())
            click.echo()
            click.echo("Always back up (mz db --backup) before destructive operations.")
    except PlatformAPIError as e:
        if e.status_code == 403:
            click.echo(
                click.style(
                    "You need admin privileges for database operations.", fg="yellow"
                ),
                err=True,
            )
            click.echo("Contact your system administrator.", err=True)
            sys.exit(1)
        raise


def _confirm(message: str, yes: bool) -> bool:
    if yes or click.confirm(message, default=False):
        return True
    click.echo("Cancelled.")
    return False


def _run(
    client: PlatformClient,
    spinner: Spinner,
    operation: str,
    progress: str,
    success: str,
    **extra: str,
) -> dict:
    spinner.start(f"{progress}...")
    try:
        result = client.db_operation(operation, **extra)
    except PlatformAPIError:
        spinner.fail()
        raise
    spinner.done(success)
    click.echo(click.style(f"  {result.get('message') or success}", fg="cyan"))
    return result


def _stats(client: PlatformClient, spinner: Spinner) -> None:
    spinner.start("Checking database status...")
    try:
        db_stats = client.db_status()
    except PlatformAPIError:
        spinner.fail()
        raise
    spinner.done("Database status retrieved")
    print_stats(db_stats)


def print_stats(db_stats: DatabaseStats) -> None:
    heading("Database Status")
    field("Collections", db_stats.collections)
    field("Objects", f"{db_stats.objects:,}")
    field("Data size", _mb(db_stats.data_size))
    field("Storage size", _mb(db_stats.storage_size))
    field("Indexes", db_stats.indexes)
    field("Index size", _mb(db_stats.index_size))
    field("File size", _mb(db_stats.file_size))
    rule()

    usage = db_stats.usage_percent
    if usage < USAGE_WARNING:
        color, verdict = "green", "Excellent - plenty of space available"
    elif usage < USAGE_CRITICAL:
        color, verdict = "yellow", "Good - monitor storage usage"
    else:
        color, verdict = "red", "Warning - consider increasing storage"
    click.echo(click.style(f"Storage usage: {usage}%", fg=color))
    click.echo(click.style(f"Health: {verdict}", fg=color))
