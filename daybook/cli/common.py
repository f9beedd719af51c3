"""Shared helpers for daybook CLI commands."""

from datetime import date, datetime, timedelta
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel

from daybook.errors import (
    AuthError,
    ConfigError,
    DaybookError,
    EntryValidationError,
    FieldValidationError,
    ModeLockedError,
    SessionExpiredError,
    ShareNotFoundError,
)

console = Console()


def format_money(value: float) -> str:
    """Signed dollar amount with two decimals."""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def colored_money(value: float) -> str:
    color = "green" if value > 0 else "red" if value < 0 else "dim"
    return f"[{color}]{format_money(value)}[/{color}]"


def parse_day(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[date]:
    """Click callback accepting YYYY-MM-DD, ``today`` or ``yesterday``."""
    if value is None:
        return None
    value = value.strip().lower()
    if value == "today":
        return date.today()
    if value == "yesterday":
        return date.today() - timedelta(days=1)
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"'{value}' is not a date. Use YYYY-MM-DD.")


def parse_month(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> tuple[int, int]:
    """Click callback for YYYY-MM, defaulting to the current month."""
    if not value:
        today = date.today()
        return today.year, today.month
    try:
        parsed = datetime.strptime(value.strip(), "%Y-%m")
    except ValueError:
        raise click.BadParameter(f"'{value}' is not a month. Use YYYY-MM.")
    return parsed.year, parsed.month


def report_error(e: Exception, title: str = "Error") -> None:
    """Render an error panel and exit with status 1."""
    if isinstance(e, SessionExpiredError):
        console.print(Panel(
            f"[yellow]{str(e)}[/yellow]\n\n"
            "Run [cyan]daybook login[/cyan] to sign in again.",
            title="[bold yellow]Session Expired[/bold yellow]",
            border_style="yellow",
        ))
        raise SystemExit(1)

    if isinstance(e, ConfigError):
        title = "Configuration Error"
    elif isinstance(e, AuthError):
        title = "Authentication Failed"
    elif isinstance(e, ShareNotFoundError):
        title = "Not Found"
    elif isinstance(e, (FieldValidationError, EntryValidationError, ModeLockedError)):
        title = "Invalid Input"

    console.print(Panel(
        f"[red]✗[/red] {str(e)}",
        title=f"[bold red]{title}[/bold red]",
        border_style="red",
    ))
    raise SystemExit(1)


def get_settings():
    """Load settings, exiting with an error panel if they are invalid."""
    from daybook.config import load_settings

    try:
        return load_settings()
    except ConfigError as e:
        report_error(e)


def open_backend(settings):
    """Build the configured backend, exiting on failure."""
    from daybook.backends import get_backend

    try:
        return get_backend(settings)
    except DaybookError as e:
        report_error(e)


def open_sessions(settings):
    """Backend plus the session manager for the stored sign-in."""
    from daybook.config import session_path
    from daybook.session import SessionManager

    backend = open_backend(settings)
    return SessionManager(backend, session_path())


def open_journal():
    """Journal for the signed-in user."""
    from daybook.journal import TradeJournal

    settings = get_settings()
    sessions = open_sessions(settings)
    return TradeJournal(sessions.backend, sessions, settings)
