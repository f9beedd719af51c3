"""Main CLI entry point for daybook.

This module provides the main click group and lazy loading
for command modules to keep startup fast.
"""

import logging

import click

from daybook.cli.common import console


class LazyGroup(click.Group):
    """A click Group that lazily loads commands.

    Command modules are only imported when they are invoked.
    """

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """List all available commands."""
        base = super().list_commands(ctx)
        lazy = list(self._lazy_subcommands.keys())
        return sorted(set(base + lazy))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Get a command by name, lazily loading if needed."""
        if cmd_name in self.commands:
            return self.commands[cmd_name]

        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)

        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        """Lazily load a command from its module path."""
        import importlib

        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        # Commands with dashed names are found by their click name
        cmd = getattr(module, cmd_name, None)
        if not isinstance(cmd, click.Command):
            cmd = None
            for attr_name in dir(module):
                attr = getattr(module, attr_name)
                if isinstance(attr, click.Command) and attr.name == cmd_name:
                    cmd = attr
                    break

        if cmd is None:
            raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")

        self.add_command(cmd)
        return cmd


LAZY_SUBCOMMANDS = {
    # Account
    "signup": "daybook.cli.auth",
    "login": "daybook.cli.auth",
    "logout": "daybook.cli.auth",
    "whoami": "daybook.cli.auth",
    "reset-password": "daybook.cli.auth",
    "change-email": "daybook.cli.auth",
    # Recording
    "log": "daybook.cli.entries",
    "lots": "daybook.cli.entries",
    "show": "daybook.cli.entries",
    "delete": "daybook.cli.entries",
    "remove-lot": "daybook.cli.entries",
    # Reports
    "summary": "daybook.cli.reports",
    "calendar": "daybook.cli.reports",
    "export": "daybook.cli.reports",
    "watch": "daybook.cli.reports",
    # Sharing
    "share": "daybook.cli.share",
    "shared": "daybook.cli.share",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def _setup_logging(verbose: bool) -> None:
    """Route log records through rich at the configured level."""
    from rich.logging import RichHandler

    from daybook.config import load_settings
    from daybook.errors import ConfigError

    if verbose:
        level = "DEBUG"
    else:
        try:
            level = load_settings().logging.level
        except ConfigError:
            # Reported by the command that loads settings
            level = "WARNING"

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="daybook")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """daybook - a day-trading journal for your terminal.

    Log daily profit/loss or individual buy/sell lots, review
    period statistics and calendars, export to CSV and share a
    read-only summary link.

    \b
    Quick Start:
      daybook signup                         # Create an account
      daybook log today --profit 120 --trades 3
      daybook summary --period month-to-date
    """
    ctx.ensure_object(dict)
    _setup_logging(verbose)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
