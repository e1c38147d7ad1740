"""Project packaging for cloud deployment."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import tempfile
import zipfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .config import PROJECT_CONFIG_FILE
from .types import PackageManifest

logger = logging.getLogger(__name__)

PACKAGE_JSON = "package.json"

# Single files copied to the archive root when present
ROOT_FILES = (
    PACKAGE_JSON,
    PROJECT_CONFIG_FILE,
    "README.md",
    "next.config.js",
    "next.config.mjs",
    "next.config.ts",
    "vite.config.js",
    "vite.config.ts",
    "webpack.config.js",
    "rollup.config.js",
)

EXCLUDE_DIRS = {"node_modules", ".git", "__pycache__"}

# Top-level entries of the build directory that are never uploaded
BUILD_SKIP = {"cache"}

# Secrets stay on the developer's machine
EXCLUDE_FILE_PREFIXES = (".env",)
EXCLUDE_FILES = {".DS_Store", "Thumbs.db"}


class PackagingError(Exception):
    """Raised when a project cannot be packaged."""


def load_package_json(project_dir: Path) -> dict[str, Any]:
    """Read and parse the project's package.json.

    Raises:
        PackagingError: If the file is missing or not a JSON object.
    """
    path = project_dir / PACKAGE_JSON
    if not path.exists():
        raise PackagingError(f"No {PACKAGE_JSON} found in {project_dir}")
    try:
        data = json.loads(path.read_text())
    except ValueError as e:
        raise PackagingError(f"Invalid {PACKAGE_JSON}: {e}") from e
    if not isinstance(data, dict):
        raise PackagingError(f"{PACKAGE_JSON} must contain a JSON object")
    return data


def dependencies(package: dict[str, Any]) -> dict[str, str]:
    """Merge dependencies and devDependencies of a package.json."""
    return {**package.get("devDependencies", {}), **package.get("dependencies", {})}


def project_slug(name: str) -> str:
    """Turn a project name into a URL-safe slug ("My App" -> "my-app")."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "app"


def detect_framework(package: dict[str, Any]) -> str:
    """Return nextjs, react or static based on declared dependencies."""
    deps = dependencies(package)
    if "next" in deps:
        return "nextjs"
    if "react" in deps:
        return "react"
    return "static"


def package_project(
    project_dir: Path, build_dir: str = ".next"
) -> tuple[Path, PackageManifest]:
    """Package a built project for deployment.

    Creates a zip archive containing:
    - the build output directory (without its cache)
    - public/ static assets
    - package.json, .mgzon.json, README.md and bundler config files

    Args:
        project_dir: Path to the project root.
        build_dir: Build output directory, relative to the project root.

    Returns:
        Tuple of (package_path, manifest). The caller removes the file.

    Raises:
        PackagingError: If package.json is missing or invalid.
    """
    package = load_package_json(project_dir)
    name = package.get("name") or project_dir.name

    manifest = PackageManifest(
        name=name,
        slug=project_slug(name),
        framework=detect_framework(package),
        created_at=datetime.now(UTC).isoformat(),
    )

    fd, package_path_str = tempfile.mkstemp(prefix="mgzon-deploy-", suffix=".zip")
    os.close(fd)
    package_path = Path(package_path_str)

    try:
        _write_archive(package_path, project_dir, build_dir, manifest)
        manifest.size = package_path.stat().st_size
        manifest.checksum = _calculate_checksum(package_path)
    except Exception:
        package_path.unlink(missing_ok=True)
        raise
    logger.debug(
        f"Packaged {len(manifest.files)} files into {package_path} "
        f"({manifest.size} bytes)"
    )
    return package_path, manifest


def _write_archive(
    package_path: Path, project_dir: Path, build_dir: str, manifest: PackageManifest
) -> None:
    with zipfile.ZipFile(package_path, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.comment = f"MGZON Deployment - {manifest.created_at}".encode()

        build_path = project_dir / build_dir
        if build_path.is_dir():
            _add_directory_to_zip(
                zf, build_path, build_dir, manifest, skip=BUILD_SKIP
            )
        else:
            logger.warning(f"Build directory not found: {build_dir}")

        public_path = project_dir / "public"
        if public_path.is_dir():
            _add_directory_to_zip(zf, public_path, "public", manifest)

        for filename in ROOT_FILES:
            path = project_dir / filename
            if path.is_file():
                zf.write(path, arcname=filename)
                manifest.files.append(filename)


def _should_exclude(path: Path, root: Path, skip: set[str]) -> bool:
    rel = path.relative_to(root)
    if rel.parts[0] in skip:
        return True
    if any(part in EXCLUDE_DIRS for part in rel.parts[:-1]):
        return True
    if path.name in EXCLUDE_FILES:
        return True
    return any(path.name.startswith(p) for p in EXCLUDE_FILE_PREFIXES)


def _add_directory_to_zip(
    zf: zipfile.ZipFile,
    source_path: Path,
    arcname: str,
    manifest: PackageManifest,
    skip: set[str] | None = None,
) -> None:
    """Add directory to zip archive, skipping caches, VCS data and env files.

    Args:
        zf: Open zipfile.
        source_path: Source directory path.
        arcname: Archive name for the directory.
        manifest: Manifest whose file list is extended.
        skip: Top-level entries of source_path to leave out.
    """
    for item in sorted(source_path.rglob("*")):
        if not item.is_file() or _should_exclude(item, source_path, skip or set()):
            continue
        zip_path = f"{arcname}/{item.relative_to(source_path).as_posix()}"
        zf.write(item, arcname=zip_path)
        manifest.files.append(zip_path)


def _calculate_checksum(path: Path) -> str:
    """Calculate SHA256 checksum of a file.

    Args:
        path: Path to file.

    Returns:
        Hex-encoded SHA256 checksum.
    """
    sha256 = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256.update(chunk)
    return sha256.hexdigest()
