"""The `mz` command-line interface."""
