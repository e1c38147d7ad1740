#!/usr/bin/env python3
"""MGZON CLI - Command-line client for the MGZON platform

Usage:
    mz login [--api-key=KEY]
    mz logout | whoami | setup
    mz init | serve | build | generate
    mz deploy [--env=ENV]
    mz apps | keys | db | storage | webhook
    mz config [--list | --set KEY=VALUE | --get KEY | --reset]
    mz update | debug | docs | support
"""

import logging
import os
import sys

import click
import requests

from mgzon import __version__

from .commands import (
    apps,
    build,
    config,
    db,
    debug,
    deploy,
    generate,
    init,
    keys,
    login,
    logout,
    serve,
    setup,
    storage,
    webhook,
    whoami,
)
from .commands.help import docs, support
from .commands.update import check_for_updates, update
from .platform.client import PlatformAPIError
from .platform.config import DEBUG_ENV
from .utils import configure_logging

logger = logging.getLogger(__name__)

EPILOG = """\b
Quick start:
  1. mz login                    Authenticate
  2. mz init my-project          Create a project
  3. cd my-project && mz serve   Run locally
  4. mz deploy                   Deploy to MGZON

\b
Need help? Run 'mz docs' or 'mz support'.
"""


@click.group(epilog=EPILOG)
@click.version_option(version=__version__, prog_name="mz")
@click.option("--debug", "debug_mode", is_flag=True, help="Log HTTP requests to stderr")
def cli(debug_mode: bool):
    """MGZON CLI - Build, deploy and manage apps on the MGZON platform"""
    configure_logging(debug_mode or bool(os.environ.get(DEBUG_ENV)))
    check_for_updates()


# Authentication
cli.add_command(login.login)
cli.add_command(logout.logout)
cli.add_command(setup.setup)
cli.add_command(whoami.whoami)

# Project development
cli.add_command(init.init)
cli.add_command(serve.serve)
cli.add_command(build.build)
cli.add_command(generate.generate)
cli.add_command(deploy.deploy)

# Platform resources
cli.add_command(apps.apps)
cli.add_command(keys.keys)
cli.add_command(db.db)
cli.add_command(storage.storage)
cli.add_command(webhook.webhook)

# CLI management
cli.add_command(config.config_cmd)
cli.add_command(update)
cli.add_command(debug.debug)
cli.add_command(docs)
cli.add_command(support)


def main():
    """Main entry point for the CLI."""
    try:
        cli(standalone_mode=False)
    except PlatformAPIError as e:
        click.echo(f"Error: {e.message}", err=True)
        hint = {
            0: "Hint: Check your internet connection and 'mz config --get apiUrl'.",
            401: "Hint: Run 'mz login' to authenticate.",
            403: "Hint: You don't have permission for this action.",
            404: "Hint: Check the resource ID and your API URL "
            "('mz config --get apiUrl').",
            409: "Hint: Use a different name or delete the existing resource first.",
            422: "Hint: Check your input and try again.",
            429: "Hint: Too many requests. Please wait and try again.",
            500: "Hint: This is a server issue. Please try again later.",
            502: "Hint: The server is temporarily unavailable. Please try again later.",
            503: "Hint: The service is temporarily unavailable. Please try again later.",
        }.get(e.status_code)
        if hint:
            click.echo(hint, err=True)
        sys.exit(1)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except requests.exceptions.SSLError:
        click.echo("Error: SSL certificate verification failed.", err=True)
        click.echo("Hint: Check your network or try again later.", err=True)
        sys.exit(1)
    except requests.ConnectionError:
        click.echo("Error: Could not connect to the MGZON API.", err=True)
        click.echo("Hint: Check your internet connection and try again.", err=True)
        sys.exit(1)
    except requests.Timeout:
        click.echo("Error: Request timed out.", err=True)
        click.echo("Hint: The server may be busy. Please try again.", err=True)
        sys.exit(1)
    except requests.RequestException:
        click.echo("Error: Network request failed.", err=True)
        click.echo("Hint: Check your connection and try again.", err=True)
        sys.exit(1)
    except (click.Abort, KeyboardInterrupt):
        click.echo(err=True)
        sys.exit(130)
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        click.echo(f"Error: {e}", err=True)
        click.echo(
            "Hint: If this persists, try updating with 'mz update'.",
            err=True,
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
