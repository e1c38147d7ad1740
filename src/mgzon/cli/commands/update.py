"""Self-update command and the background release check."""

import logging
import os
import re
import subprocess
import sys
import time

import click
import requests

from ..platform.auth import load_config, save_config
from ..platform.config import (
    CLI_VERSION,
    NO_UPDATE_CHECK_ENV,
    PYPI_URL,
    UPDATE_CHECK_INTERVAL,
    USER_AGENT,
)

logger = logging.getLogger(__name__)

PACKAGE_NAME = "mgzon-cli"
UPDATE_CHECK_TIMEOUT = 3  # seconds


def _version_tuple(version: str) -> tuple[int, ...]:
    """Numeric release components of a version string ("1.4.0rc1" -> (1, 4, 0))."""
    parts = []
    for piece in version.split("."):
        match = re.match(r"\d+", piece)
        if not match:
            break
        parts.append(int(match.group()))
    return tuple(parts)


def is_newer(candidate: str, current: str) -> bool:
    """True when candidate is a later release than current."""
    current_parts = _version_tuple(current)
    return bool(current_parts) and _version_tuple(candidate) > current_parts


def fetch_latest_version() -> str | None:
    """Latest published version on PyPI, or None when it can't be fetched."""
    try:
        resp = requests.get(
            PYPI_URL,
            headers={"User-Agent": USER_AGENT},
            timeout=UPDATE_CHECK_TIMEOUT,
        )
        resp.raise_for_status()
        return resp.json()["info"]["version"]
    except (requests.exceptions.RequestException, ValueError, KeyError) as e:
        logger.debug(f"Update check failed: {e}")
        return None


def check_for_updates() -> None:
    """Print a notice on stderr when a newer release exists.

    Runs at most once per UPDATE_CHECK_INTERVAL, only on an interactive
    terminal and never when MGZON_NO_UPDATE_CHECK is set.
    """
    if os.environ.get(NO_UPDATE_CHECK_ENV) or not sys.stderr.isatty():
        return
    config = load_config()
    now = time.time()
    if config.last_update_check and now - config.last_update_check < UPDATE_CHECK_INTERVAL:
        return

    latest = fetch_latest_version()
    try:
        save_config(last_update_check=now)
    except OSError as e:
        logger.debug(f"Could not record update check: {e}")
    if latest and is_newer(latest, CLI_VERSION):
        click.echo(
            click.style(
                f"A new version of mz is available: {CLI_VERSION} -> {latest}",
                fg="yellow",
            ),
            err=True,
        )
        click.echo("Run 'mz update' to upgrade.\n", err=True)


@click.command()
def update():
    """Update the MGZON CLI to the latest version."""
    click.echo(f"Current version: {CLI_VERSION}")
    latest = fetch_latest_version()
    if latest and not is_newer(latest, CLI_VERSION) and CLI_VERSION != "unknown":
        click.echo(click.style("You are on the latest version.", fg="green"))
        return

    click.echo(f"Updating {PACKAGE_NAME}...")
    try:
        subprocess.run(
            [sys.executable, "-m", "pip", "install", "--upgrade", PACKAGE_NAME],
            check=True,
            capture_output=True,
            text=True,
        )
    except subprocess.CalledProcessError as e:
        click.echo(click.style("✗ Update failed", fg="red"), err=True)
        click.echo(e.stderr.strip(), err=True)
        click.echo(f"Try manually: pip install --upgrade {PACKAGE_NAME}", err=True)
        sys.exit(1)
    click.echo(click.style("✓ MGZON CLI updated successfully", fg="green"))
    if latest:
        click.echo(f"Installed version: {latest}")
