"""CLI command for running the local development server."""

import subprocess
import sys
from pathlib import Path

import click

from ..platform.packaging import PackagingError, dependencies, load_package_json


@click.command()
@click.option("--port", "-p", default=3000, show_default=True, help="Port to listen on")
@click.option("--host", default="localhost", show_default=True, help="Host to bind")
@click.option("--webhook-url", help="Public URL that forwards webhooks to this server")
@click.option(
    "--watch/--no-watch",
    default=True,
    help="Reload on file changes (--no-watch serves a production build)",
)
def serve(port: int, host: str, webhook_url: str | None, watch: bool):
    """Start the Next.js development server for the current project."""
    project_dir = Path.cwd()
    try:
        package = load_package_json(project_dir)
    except PackagingError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Run this command from your project directory.", err=True)
        sys.exit(1)

    if "next" not in dependencies(package):
        click.echo("Error: Next.js not found in dependencies", err=True)
        click.echo("Create a Next.js app first: mz init <project-name>", err=True)
        sys.exit(1)

    mode = "dev" if watch else "start"
    command = ["npx", "next", mode, "-p", str(port), "-H", host]
    url = f"http://{host}:{port}"

    click.echo(click.style(f"Starting server on {url}", fg="green"))
    if webhook_url:
        click.echo()
        click.echo(click.style("Webhook testing:", bold=True))
        click.echo(f"  Webhook URL: {webhook_url}")
        click.echo(
            "  Send a sample event: "
            f"mz webhook --simulate order.created --url {webhook_url}"
        )
    click.echo(click.style("Press Ctrl+C to stop\n", dim=True))

    try:
        result = subprocess.run(command, cwd=project_dir)
    except FileNotFoundError:
        click.echo("Error: npx not found. Install Node.js to continue.", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nStopping server...")
        return
    if result.returncode != 0:
        sys.exit(result.returncode)
