"""Reporting commands for daybook CLI.

Handles the period summary, month calendar/chart, CSV export and
the live-updating summary.
"""

from calendar import Calendar, month_name
from datetime import date
from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from daybook.analytics import PERIOD_LABELS, PERIODS
from daybook.cli.common import colored_money, console, open_journal, parse_month, report_error
from daybook.errors import DaybookError
from daybook.models import Stats, TradeDay

PERIOD_OPTION = click.Choice(PERIODS)
WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
CHART_WIDTH = 30


def stats_panel(stats: Stats, title: str, show_streak: bool = True) -> Panel:
    """Summary panel for aggregated stats."""
    lines = [
        f"[bold]Total P&L:[/bold] {colored_money(stats.profit)}",
        f"[bold]Total Trades:[/bold] {stats.trades}",
        f"[bold]Trading Days:[/bold] {stats.trading_days}",
        f"[bold]Win Rate:[/bold] {stats.win_rate:.1f}%",
    ]

    if show_streak:
        streak = stats.longest_streak
        if streak is None:
            lines.append("[bold]Longest Streak:[/bold] [dim]none[/dim]")
        else:
            lines.append(
                f"[bold]Longest Streak:[/bold] [green]{streak.days} day(s)[/green] "
                f"[dim]({streak.start_date:%b %d, %Y} - {streak.end_date:%b %d, %Y})[/dim]"
            )

    border = "green" if stats.profit > 0 else "red" if stats.profit < 0 else "cyan"
    return Panel("\n".join(lines), title=f"[bold]{title}[/bold]", border_style=border)


def calendar_table(days: list[TradeDay], year: int, month: int) -> Table:
    """Month grid with weeks starting on Sunday."""
    by_date = {day.date: day for day in days}
    table = Table(
        title=f"{month_name[month]} {year}",
        show_header=True,
        header_style="bold cyan",
        show_lines=True,
    )

    for weekday in WEEKDAYS:
        table.add_column(weekday, justify="center", min_width=9)

    for week in Calendar(firstweekday=6).monthdatescalendar(year, month):
        cells = []
        for cell_date in week:
            if cell_date.month != month:
                cells.append(f"[dim]{cell_date.day}[/dim]")
                continue
            record = by_date.get(cell_date)
            if record is None:
                cells.append(str(cell_date.day))
            else:
                cells.append(
                    f"[bold]{cell_date.day}[/bold]\n{colored_money(record.profit)}\n"
                    f"[dim]{record.trades_count} trade(s)[/dim]"
                )
        table.add_row(*cells)

    return table


def cumulative_chart(days: list[TradeDay], year: int, month: int) -> Table:
    """Bar chart of running P&L across the month's trading days."""
    table = Table(
        title=f"Cumulative P&L - {month_name[month]} {year}",
        show_header=True,
        header_style="bold cyan",
    )

    table.add_column("Date", style="bold")
    table.add_column("P&L", justify="right")
    table.add_column("Cumulative", justify="right")
    table.add_column("", min_width=CHART_WIDTH)

    running = []
    total = 0.0
    for day in sorted(days, key=lambda d: d.date):
        total += day.profit
        running.append((day, total))

    scale = max((abs(value) for _, value in running), default=0.0)
    for day, value in running:
        width = round(abs(value) / scale * CHART_WIDTH) if scale else 0
        color = "green" if value >= 0 else "red"
        table.add_row(
            day.date.strftime("%b %d"),
            colored_money(day.profit),
            colored_money(value),
            f"[{color}]{'█' * width}[/{color}]",
        )

    return table


@click.command()
@click.option("-p", "--period", type=PERIOD_OPTION, default="all-time", show_default=True, help="Period to summarize.")
def summary(period: str) -> None:
    """Show profit, trades, win rate and longest winning streak.

    \b
    Examples:
      daybook summary
      daybook summary --period week-to-date
    """
    journal = open_journal()

    try:
        journal.fetch_trade_days()
    except DaybookError as e:
        report_error(e)

    console.print(stats_panel(journal.summary(period), f"Summary - {PERIOD_LABELS[period]}"))


@click.command(name="calendar")
@click.option("-m", "--month", "year_month", default=None, callback=parse_month, help="Month as YYYY-MM (default: current).")
@click.option("--view", type=click.Choice(["calendar", "chart"]), default="calendar", show_default=True)
def calendar_view(year_month: tuple[int, int], view: str) -> None:
    """Show a month as a calendar grid or cumulative P&L chart.

    \b
    Examples:
      daybook calendar
      daybook calendar --month 2024-01 --view chart
    """
    year, month = year_month
    journal = open_journal()

    try:
        journal.fetch_trade_days()
    except DaybookError as e:
        report_error(e)

    days = journal.month_days(year, month)
    console.print(stats_panel(
        journal.month_stats(year, month),
        f"{month_name[month]} {year}",
        show_streak=False,
    ))

    if not days:
        console.print("[dim]No trades recorded this month.[/dim]")
        return

    if view == "chart":
        console.print(cumulative_chart(days, year, month))
    else:
        console.print(calendar_table(days, year, month))


@click.command()
@click.option("-p", "--period", type=PERIOD_OPTION, default="all-time", show_default=True, help="Period for the summary line.")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Output file (default: daybook_trades_<today>.csv).")
@click.option("--notes", "include_notes", is_flag=True, default=False, help="Add notes and tags columns.")
def export(period: str, output: Optional[Path], include_notes: bool) -> None:
    """Export trade days to CSV.

    Every recorded day is written, followed by a summary line for
    the selected period.
    """
    from daybook.export import default_filename, export_csv, write_csv

    journal = open_journal()

    try:
        days = journal.fetch_trade_days()
    except DaybookError as e:
        report_error(e)

    if not days:
        console.print("[yellow]No trade days recorded. Writing the header and summary only.[/yellow]")

    content = export_csv(days, period, include_notes=include_notes)
    path = write_csv(output or Path(default_filename(date.today())), content)
    console.print(f"[green]✓[/green] Exported {len(days)} day(s) to [cyan]{path}[/cyan]")


@click.command()
@click.option("-p", "--period", type=PERIOD_OPTION, default="all-time", show_default=True, help="Period to summarize.")
def watch(period: str) -> None:
    """Show a summary that updates when trade data changes.

    Press Ctrl+C to stop watching.
    """
    import time
    from rich.live import Live

    journal = open_journal()
    title = f"Summary - {PERIOD_LABELS[period]} (Ctrl+C to stop)"

    try:
        journal.fetch_trade_days()
        with Live(stats_panel(journal.summary(period), title), console=console) as live_display:
            journal.watch(lambda days: live_display.update(stats_panel(journal.summary(period), title)))
            while True:
                time.sleep(1)
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped watching.[/dim]")
    except DaybookError as e:
        report_error(e)
    finally:
        journal.close()
