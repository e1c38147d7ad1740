"""CLI command for building the current project for production."""

import os
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path

import click

from ..platform.packaging import PackagingError, load_package_json
from ..utils import Spinner, field, format_elapsed, format_size, heading, rule

# Entries a complete Next.js build output contains
NEXT_BUILD_MARKERS = ("BUILD_ID", "static")


@dataclass
class BuildStats:
    total_size: int = 0
    file_count: int = 0


def collect_build_stats(build_path: Path) -> BuildStats:
    """Total size and file count of a build output directory."""
    stats = BuildStats()
    for item in build_path.rglob("*"):
        try:
            if item.is_file():
                stats.total_size += item.stat().st_size
                stats.file_count += 1
        except OSError:
            continue
    return stats


def build_env(minify: bool, sourcemap: bool) -> dict[str, str]:
    """Environment for the build process."""
    env = dict(os.environ)
    env["NODE_ENV"] = "production"
    env["MGZON_MINIFY"] = "true" if minify else "false"
    env["GENERATE_SOURCEMAP"] = "true" if sourcemap else "false"
    return env


@click.command()
@click.option("--analyze", is_flag=True, help="Run build:analyze when available")
@click.option(
    "--minify/--no-minify",
    default=True,
    help="Minify output (exported to the build as MGZON_MINIFY)",
)
@click.option("--sourcemap", is_flag=True, help="Emit source maps")
@click.option(
    "--output-dir",
    default=".next",
    show_default=True,
    help="Build output directory to report on",
)
def build(analyze: bool, minify: bool, sourcemap: bool, output_dir: str):
    """Build the current project for production."""
    project_dir = Path.cwd()
    try:
        package = load_package_json(project_dir)
    except PackagingError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Run this command from your project directory.", err=True)
        sys.exit(1)

    scripts = package.get("scripts") or {}
    if "build" not in scripts:
        click.echo("Error: No build script found in package.json", err=True)
        click.echo('  Example: "build": "next build"', err=True)
        sys.exit(1)

    script = "build"
    if analyze:
        if "build:analyze" in scripts:
            script = "build:analyze"
        else:
            click.echo(
                click.style("No build:analyze script found, using build", fg="yellow")
            )

    click.echo(f"Running npm run {script} (NODE_ENV=production)...")
    spinner = Spinner()
    start = time.monotonic()
    try:
        subprocess.run(
            ["npm", "run", script],
            cwd=project_dir,
            env=build_env(minify, sourcemap),
            check=True,
        )
    except FileNotFoundError:
        click.echo("Error: npm not found. Install Node.js to continue.", err=True)
        sys.exit(1)
    except subprocess.CalledProcessError as e:
        spinner.fail(f"Build failed (exit code {e.returncode})")
        click.echo("\nCommon solutions:")
        click.echo("  1. Run: npm install")
        click.echo("  2. Check for TypeScript errors")
        click.echo("  3. Ensure all dependencies are installed")
        sys.exit(1)
    spinner.done(f"Build completed in {format_elapsed(time.monotonic() - start)}")

    build_path = project_dir / output_dir
    if not build_path.is_dir():
        click.echo(click.style(f"Build directory not found: {output_dir}", fg="yellow"))
        click.echo("Check your build configuration.")
        return

    stats = collect_build_stats(build_path)
    heading("Build Statistics")
    field("Output", output_dir)
    field("Environment", "production")
    field("Total size", format_size(stats.total_size))
    field("Files", stats.file_count)
    missing = [m for m in NEXT_BUILD_MARKERS if not (build_path / m).exists()]
    if missing:
        field("Status", f"Missing: {', '.join(missing)}", fg="yellow")
    else:
        field("Status", "Valid Next.js build", fg="green")
    rule()

    click.echo("\nNext steps:")
    click.echo("  mz deploy                  # Deploy to MGZON")
    click.echo(f"  npx serve@latest {output_dir}    # Test locally")
    click.echo("  npx next start             # Start production server")
