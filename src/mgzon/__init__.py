"""MGZON CLI - Command-line client for the MGZON platform.

Manages applications, API keys, databases, storage, webhooks and
deployments on MGZON, and scaffolds projects that deploy to it.

Example:
    $ mz login --api-key mz_live_...
    $ mz apps --list
    $ mz deploy --env production
"""

import importlib.metadata

try:
    __version__ = importlib.metadata.version("mgzon-cli")
except importlib.metadata.PackageNotFoundError:
    __version__ = "unknown"

__all__ = ["__version__"]
