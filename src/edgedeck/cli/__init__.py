"""Command line interface."""

from edgedeck.cli.main import cli_entrypoint, main

__all__ = ["cli_entrypoint", "main"]
