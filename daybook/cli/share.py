"""Sharing commands for daybook CLI."""

import click
from rich.panel import Panel

from daybook.analytics import PERIOD_LABELS, PERIODS
from daybook.cli.common import console, get_settings, open_backend, open_journal, report_error
from daybook.cli.reports import stats_panel
from daybook.errors import DaybookError


@click.command()
def share() -> None:
    """Create (or show) the public link to your summary.

    Anyone with the link can see your totals and win rate, with your
    email partially masked. Lots and notes are not shown.
    """
    journal = open_journal()

    try:
        url = journal.get_or_create_share_link()
    except DaybookError as e:
        report_error(e, "Share Failed")

    console.print(Panel(
        f"[cyan]{url}[/cyan]\n\n"
        "[dim]Open it in a browser or view it here with\n"
        f"[cyan]daybook shared {url.rsplit('/', 1)[-1]}[/cyan][/dim]",
        title="[bold green]Share Link[/bold green]",
        border_style="green",
    ))


@click.command()
@click.argument("share_id")
@click.option("-p", "--period", type=click.Choice(PERIODS), default="all-time", show_default=True)
def shared(share_id: str, period: str) -> None:
    """Show the public summary behind SHARE_ID. No login needed."""
    from daybook.journal import load_shared_summary
    from daybook.retry import RetryPolicy

    settings = get_settings()
    backend = open_backend(settings)

    try:
        retry = RetryPolicy(**settings.retry.model_dump())
        summary = load_shared_summary(backend, share_id.rsplit("/", 1)[-1], retry)
    except DaybookError as e:
        report_error(e)

    console.print(f"[bold]{summary.email}[/bold]'s trading summary")
    if summary.updated_at is not None:
        console.print(f"[dim]Updated {summary.updated_at:%Y-%m-%d %H:%M}[/dim]")
    console.print(stats_panel(summary.stats(period), PERIOD_LABELS[period], show_streak=False))
