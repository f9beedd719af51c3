"""Command line interface for daybook."""

from daybook.cli.main import cli, main

__all__ = ["cli", "main"]
