"""Command implementations for the `mz` CLI."""
