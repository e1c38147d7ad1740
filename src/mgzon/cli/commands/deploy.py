"""CLI command for deploying projects to MGZON."""

import subprocess
import sys
from pathlib import Path
from typing import Any

import click
import questionary

from ..platform.auth import load_project_config
from ..platform.client import PlatformAPIError, PlatformClient
from ..platform.packaging import (
    PackagingError,
    load_package_json,
    package_project,
    project_slug,
)
from ..platform.types import PackageManifest
from ..session import requires_auth
from ..utils import PROMPT_STYLE, Spinner, field, format_size, is_interactive

DEPLOY_ENVIRONMENTS = ("staging", "production")

DEFAULT_BUILD_COMMANDS = {"nextjs": "next build", "react": "react-scripts build"}


def _run_build(package: dict[str, Any], project_dir: Path) -> bool:
    """Run the project's build script. Returns False when the build failed."""
    scripts = package.get("scripts") or {}
    script = next((s for s in ("build", "build:prod") if s in scripts), None)
    if script is None:
        click.echo(click.style("No build script found, skipping build", fg="yellow"))
        return True

    click.echo(f"Building project (npm run {script})...")
    try:
        subprocess.run(["npm", "run", script], cwd=project_dir, check=True)
    except (OSError, subprocess.CalledProcessError) as e:
        click.echo(click.style(f"Build failed: {e}", fg="red"), err=True)
        return False
    click.echo(click.style("✓ Build completed", fg="green"))
    return True


def _match_app(apps: list, name: str, slug: str, project_name: str):
    """First app whose name or slug matches the project, if any."""
    for app in apps:
        if app.name == name or app.slug == slug or project_name in app.name:
            return app
    return None


def _resolve_app(
    client: PlatformClient,
    spinner: Spinner,
    app_id: str | None,
    app_name: str,
    app_slug: str,
    project_name: str,
    environment: str,
    description: str,
    auto_approve: bool,
) -> tuple[str | None, str]:
    """Find the app to deploy to.

    Order: explicit id, then a name or slug match among the user's apps,
    then an interactive choice to create one or type an id.

    Returns:
        Tuple of (app_id or None if cancelled, app_name).
    """
    if app_id:
        return app_id, app_name

    spinner.start("Looking for existing app...")
    try:
        listing = client.list_apps()
    except PlatformAPIError as e:
        spinner.warn(f"Could not fetch apps list: {e.message}")
    else:
        found = _match_app(listing.apps, app_name, app_slug, project_name)
        if found:
            spinner.done(f"Found existing app: {found.name}")
            return found.id, found.name
        spinner.warn("No existing app found")

    if auto_approve or not is_interactive():
        return None, app_name

    action = questionary.select(
        "No app found. What would you like to do?",
        choices=[
            questionary.Choice("Create new app", value="create"),
            questionary.Choice("Enter app ID manually", value="manual"),
            questionary.Choice("Cancel deployment", value="cancel"),
        ],
        style=PROMPT_STYLE,
    ).ask()

    if action == "manual":
        entered = questionary.text(
            "Enter app ID:",
            validate=lambda v: bool(v.strip()) or "App ID is required",
            style=PROMPT_STYLE,
        ).ask()
        return (entered.strip() if entered else None), app_name

    if action == "create":
        new_name = questionary.text(
            "App name:",
            default=app_name,
            validate=lambda v: bool(v.strip()) or "App name is required",
            style=PROMPT_STYLE,
        ).ask()
        if not new_name:
            return None, app_name
        spinner.start("Creating new app...")
        try:
            app = client.create_app(
                {
                    "name": new_name.strip(),
                    "description": description,
                    "environment": environment,
                    "targetAudience": "DEVELOPER",
                }
            )
        except PlatformAPIError:
            spinner.fail("Failed to create app")
            raise
        spinner.done(f"App created: {app.name}")
        return app.id, app.name

    return None, app_name


def _print_summary(
    project_name: str,
    app_name: str,
    app_id: str,
    version: str,
    environment: str,
    manifest: PackageManifest,
) -> None:
    click.echo()
    click.echo(click.style("═" * 60, fg="cyan"))
    click.echo(click.style("Deployment Summary", bold=True))
    click.echo(click.style("═" * 60, fg="cyan"))
    field("Project", project_name, indent=0)
    field("App", f"{app_name} ({app_id[:8]}...)", indent=0)
    field("Version", version, indent=0)
    field("Environment", environment, indent=0)
    field("Framework", manifest.framework, indent=0)
    field("Files", len(manifest.files), indent=0)
    field("Package size", format_size(manifest.size), indent=0)
    click.echo(click.style("═" * 60, fg="cyan"))


@click.command("deploy")
@click.option(
    "--env",
    "-e",
    "environment",
    type=click.Choice(DEPLOY_ENVIRONMENTS),
    default="staging",
    show_default=True,
    help="Target environment",
)
@click.option("--auto-approve", is_flag=True, help="Deploy without confirmation")
@click.option(
    "--build/--no-build",
    default=True,
    help="Build first when the build directory is missing",
)
@click.option("--app-id", help="App to deploy to (default: from .mgzon.json)")
@click.option(
    "--build-dir",
    default=".next",
    show_default=True,
    help="Build output directory",
)
@click.option("--description", help="Deployment description")
@click.option(
    "--dir",
    "project_dir",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project directory (default: current directory)",
)
@requires_auth
def deploy(
    environment: str,
    auto_approve: bool,
    build: bool,
    app_id: str | None,
    build_dir: str,
    description: str | None,
    project_dir: str,
):
    """Deploy the current project to MGZON.

    \b
    Example:
        mz deploy
        mz deploy --env production --auto-approve
        mz deploy --app-id 65f1c0... --no-build
    """
    project_path = Path(project_dir)
    try:
        package = load_package_json(project_path)
    except PackagingError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Navigate to your project directory first,", err=True)
        click.echo("or create a project with: mz init <project-name>", err=True)
        sys.exit(1)

    project_name = package.get("name") or project_path.name
    version = package.get("version") or "1.0.0"
    description = (
        description or package.get("description") or f"Deployment of {project_name}"
    )

    if build and not (project_path / build_dir).is_dir():
        if not _run_build(package, project_path):
            if auto_approve or not click.confirm(
                "Continue deployment anyway?", default=False
            ):
                sys.exit(1)

    spinner = Spinner(show_elapsed=True)
    spinner.start("Creating deployment package...")
    try:
        package_path, manifest = package_project(project_path, build_dir)
    except PackagingError as e:
        spinner.fail("Failed to create deployment package")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    spinner.done(
        f"Packaged {len(manifest.files)} files ({format_size(manifest.size)})"
    )

    try:
        if not manifest.files:
            click.echo("Error: No files to deploy. Build your project first.", err=True)
            sys.exit(1)

        project_config = load_project_config(project_path)
        app_name = project_config.get("name") or project_name
        app_slug = project_config.get("slug") or project_slug(project_name)
        client = PlatformClient()

        resolved_id, app_name = _resolve_app(
            client,
            spinner,
            app_id or project_config.get("appId"),
            app_name,
            app_slug,
            project_name,
            environment,
            description,
            auto_approve,
        )
        if not resolved_id:
            click.echo("Error: App ID is required.", err=True)
            click.echo("  mz deploy --app-id <id>", err=True)
            click.echo("  or add appId to .mgzon.json", err=True)
            click.echo("  or create an app first: mz apps --create <name>", err=True)
            sys.exit(1)

        _print_summary(
            project_name, app_name, resolved_id, version, environment, manifest
        )
        if not auto_approve and not click.confirm(
            "Proceed with deployment?", default=False
        ):
            click.echo("Deployment cancelled.")
            return

        fields = {
            "appId": resolved_id,
            "appName": app_name,
            "environment": environment,
            "version": version,
            "type": manifest.framework,
            "framework": manifest.framework,
            "checksum": manifest.checksum,
            "description": description,
        }
        scripts = package.get("scripts") or {}
        build_command = scripts.get("build") or DEFAULT_BUILD_COMMANDS.get(
            manifest.framework
        )
        if build_command:
            fields["buildCommand"] = build_command
        repository = package.get("repository")
        if isinstance(repository, dict) and repository.get("url"):
            fields["repositoryUrl"] = repository["url"]

        spinner.start(f"Deploying to {environment}...")
        try:
            result = client.deploy(package_path, fields)
        except PlatformAPIError:
            spinner.fail("Deployment failed")
            click.echo("Troubleshooting:", err=True)
            click.echo("  1. Check authentication: mz whoami", err=True)
            click.echo("  2. Check API URL: mz config --get apiUrl", err=True)
            click.echo("  3. Verify the app exists: mz apps --list", err=True)
            click.echo("  4. Re-run with debug output: mz --debug deploy", err=True)
            raise
        spinner.done("Deployment successful")
    finally:
        package_path.unlink(missing_ok=True)

    click.echo()
    click.echo(click.style("Deployment Complete", bold=True))
    field("Deployment", result.deployment_id, indent=0)
    field("App", result.app_name or app_name, indent=0)
    field("Version", result.version or version, indent=0)
    field("Environment", result.environment or environment, indent=0)
    field("Status", result.status, indent=0)
    url = result.url or result.deployment_url
    if url:
        field("URL", click.style(url, fg="cyan"), indent=0)

    if result.logs:
        click.echo()
        click.echo(click.style("Deployment logs:", bold=True))
        for i, line in enumerate(result.logs, 1):
            click.echo(f"  {i}. {line}")
    if result.next_steps:
        click.echo()
        click.echo(click.style("Next steps:", bold=True))
        for i, step in enumerate(result.next_steps, 1):
            click.echo(click.style(f"  {i}. {step}", fg="yellow"))

    target_app = result.app_id or resolved_id
    click.echo()
    click.echo("Useful commands:")
    click.echo(f"  mz apps --info {target_app}")
    click.echo(f"  mz apps --logs {target_app}")
    if result.download_url:
        click.echo(f"  curl -O {result.download_url}")
