"""CLI command for managing files in MGZON storage.

Usage:
    mz storage --list [--folder NAME]
    mz storage --upload FILE [--folder NAME] [--public-id ID]
    mz storage --info FILE_ID
    mz storage --download FILE_ID [--output PATH]
    mz storage --update FILE_ID [--tags a,b] [--description TEXT]
    mz storage --delete PUBLIC_ID
"""

import mimetypes
import sys
from pathlib import Path

import click

from ..platform.client import PlatformAPIError, PlatformClient
from ..platform.types import StoredFile
from ..session import requires_auth
from ..utils import Spinner, field, format_size, format_timestamp, heading, rule

MAX_UPLOAD_SIZE = 10 * 1024 * 1024  # bytes

ALLOWED_TYPES = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/zip",
)


def guess_content_type(path: Path) -> str:
    """MIME type for a file name, application/octet-stream if unknown."""
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or "application/octet-stream"


@click.command()
@click.option("--list", "-l", "list_files", is_flag=True, help="List stored files")
@click.option(
    "--upload",
    "-u",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Upload a file",
)
@click.option("--delete", "-d", metavar="PUBLIC_ID", help="Delete a file")
@click.option("--download", metavar="FILE_ID", help="Download a file")
@click.option("--info", metavar="FILE_ID", help="Show file details")
@click.option("--update", metavar="FILE_ID", help="Update tags or description")
@click.option("--folder", help="Storage folder")
@click.option("--public-id", help="Public ID for the uploaded file")
@click.option("--tags", help="Comma-separated tags for --update")
@click.option("--description", help="Description for --update")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Destination for --download",
)
@requires_auth
def storage(
    list_files: bool,
    upload: Path | None,
    delete: str | None,
    download: str | None,
    info: str | None,
    update: str | None,
    folder: str | None,
    public_id: str | None,
    tags: str | None,
    description: str | None,
    output: Path | None,
):
    """Upload, inspect and delete files in MGZON storage."""
    client = PlatformClient()
    spinner = Spinner()

    try:
        if list_files:
            _list(client, spinner, folder)
        elif upload:
            _upload(client, spinner, upload, folder, public_id)
        elif delete:
            spinner.start("Deleting file...")
            client.delete_file(delete)
            spinner.done(f"Deleted {delete}")
        elif download:
            _download(client, spinner, download, output)
        elif info:
            spinner.start("Fetching file details...")
            stored = client.get_file(info)
            spinner.done()
            _print_file(stored)
        elif update:
            if tags is None and description is None:
                click.echo("Error: --update needs --tags or --description", err=True)
                sys.exit(1)
            tag_list = (
                [t.strip() for t in tags.split(",") if t.strip()]
                if tags is not None
                else None
            )
            spinner.start("Updating file...")
            stored = client.update_file(update, tag_list, description)
            spinner.done("File updated")
            _print_file(stored)
        else:
            click.echo(click.get_current_context().get_help())
    except PlatformAPIError:
        spinner.fail()
        raise


def _list(client: PlatformClient, spinner: Spinner, folder: str | None) -> None:
    spinner.start("Fetching files...")
    listing = client.list_files(folder)
    spinner.done(f"Found {len(listing.files)} file(s) in '{listing.folder}'")

    if not listing.files:
        click.echo("No files found. Upload one with: mz storage --upload <file>")
        return

    heading("Storage Files")
    for index, stored in enumerate(listing.files, start=1):
        click.echo(click.style(f"\n{index}. {stored.display_name}", bold=True))
        click.echo(f"   Public ID: {stored.public_id}")
        kind = stored.format or stored.resource_type or "-"
        click.echo(f"   Type:      {kind.upper()}")
        click.echo(f"   Size:      {format_size(stored.size)}")
        if stored.width and stored.height:
            click.echo(f"   Size (px): {stored.width}x{stored.height}")
        if stored.tags:
            click.echo(f"   Tags:      {', '.join(stored.tags)}")
        click.echo(f"   Uploaded:  {format_timestamp(stored.created_at, short=True)}")
    rule()
    click.echo(f"Total size: {format_size(listing.user.storage_used)}")


def _upload(
    client: PlatformClient,
    spinner: Spinner,
    path: Path,
    folder: str | None,
    public_id: str | None,
) -> None:
    size = path.stat().st_size
    if size > MAX_UPLOAD_SIZE:
        click.echo(
            f"Error: File size exceeds {MAX_UPLOAD_SIZE // (1024 * 1024)}MB limit "
            f"({format_size(size)})",
            err=True,
        )
        sys.exit(1)

    content_type = guess_content_type(path)
    if content_type not in ALLOWED_TYPES:
        click.echo(f"Error: File type not allowed: {content_type}", err=True)
        click.echo(f"Allowed: {', '.join(ALLOWED_TYPES)}", err=True)
        sys.exit(1)

    spinner.start(f"Uploading {path.name} ({format_size(size)})...")
    stored = client.upload_file(path, content_type, folder, public_id)
    spinner.done("File uploaded")

    _print_file(stored)
    if stored.url and content_type.startswith("image/"):
        click.echo(click.style("\nUse in your app:", fg="cyan"))
        click.echo(f'  <img src="{stored.url}" alt="{path.name}" />')


def _download(
    client: PlatformClient, spinner: Spinner, file_id: str, output: Path | None
) -> None:
    spinner.start("Fetching file details...")
    stored = client.get_file(file_id)
    url = stored.fetch_url
    if not url:
        spinner.fail("File has no download URL")
        sys.exit(1)

    if output is None:
        name = Path(stored.display_name).name
        if name in ("", ".", ".."):
            spinner.fail(f"Cannot derive a file name from {stored.display_name!r}")
            click.echo("Use --output to choose where to save it.", err=True)
            sys.exit(1)
        dest = Path(name)
        if stored.format and not dest.suffix:
            dest = dest.with_suffix(f".{stored.format}")
    else:
        dest = output
    spinner.update(f"Downloading to {dest}...")
    written = client.download(url, dest)
    spinner.done(f"Saved {dest} ({format_size(written)})")


def _print_file(stored: StoredFile) -> None:
    heading("File Details")
    field("Name", stored.display_name)
    field("Public ID", stored.public_id)
    if stored.id:
        field("ID", stored.id)
    field("Format", (stored.format or "Unknown").upper())
    field("Size", format_size(stored.size))
    if stored.width and stored.height:
        field("Dimensions", f"{stored.width}x{stored.height}")
    if stored.tags:
        field("Tags", ", ".join(stored.tags))
    if stored.url:
        field("URL", stored.url)
    if stored.download_url:
        field("Download", stored.download_url)
    if stored.created_at:
        field("Uploaded", format_timestamp(stored.created_at))
    rule()
