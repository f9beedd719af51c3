"""Recording commands for daybook CLI.

Handles manual day entry, detailed buy/sell lots, viewing and
deleting a day.
"""

from datetime import date
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from daybook.cli.common import colored_money, console, open_journal, parse_day, report_error
from daybook.editor import STRATEGY_TAGS
from daybook.errors import DaybookError, FieldValidationError, ModeLockedError

ENTRY_FORMAT = "SIDE SYMBOL QUANTITY PRICE [COMMISSION]"


def parse_entry(line: str) -> dict:
    """Split ``"BUY AAPL 10 100 1.5"`` into ``add_entry`` arguments.

    Raises:
        FieldValidationError: If the line does not have 4 or 5 parts.
    """
    parts = line.split()
    if len(parts) not in (4, 5):
        raise FieldValidationError("entry", f"Invalid entry '{line}'. Use: {ENTRY_FORMAT}")

    return {
        "transaction_type": parts[0],
        "symbol": parts[1],
        "quantity": parts[2],
        "price": parts[3],
        "commission": parts[4] if len(parts) == 5 else "",
    }


def _entries_table(entries, title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")

    table.add_column("#", justify="right", style="dim")
    table.add_column("Type")
    table.add_column("Symbol", style="bold")
    table.add_column("Qty", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Commission", justify="right", style="dim")
    table.add_column("Total", justify="right")

    for i, entry in enumerate(entries, start=1):
        side_color = "green" if entry.transaction_type == "Buy" else "red"
        table.add_row(
            str(i),
            f"[{side_color}]{entry.transaction_type}[/{side_color}]",
            entry.symbol,
            f"{entry.quantity:g}",
            f"${entry.price:,.2f}",
            f"${entry.commission:,.2f}",
            f"${entry.total_amount:,.4f}",
        )

    return table


@click.command()
@click.argument("day", callback=parse_day)
@click.option("-p", "--profit", default=None, help="Net profit/loss for the day (negative for a loss).")
@click.option("-t", "--trades", default=None, help="Number of trades taken.")
@click.option("-n", "--notes", default=None, help="Free-text notes.")
@click.option(
    "--tag",
    "tags",
    multiple=True,
    type=click.Choice(STRATEGY_TAGS),
    help="Strategy tag (repeatable).",
)
@click.option("--replace", is_flag=True, default=False, help="Discard detailed lots saved for the day.")
def log(
    day: date,
    profit: Optional[str],
    trades: Optional[str],
    notes: Optional[str],
    tags: tuple[str, ...],
    replace: bool,
) -> None:
    """Record DAY's profit/loss and trade count.

    DAY is YYYY-MM-DD, "today" or "yesterday". Saving again for the
    same day overwrites the earlier values.

    \b
    Examples:
      daybook log today --profit 250 --trades 4
      daybook log 2024-01-05 -p -80 -t 2 --tag scalping
    """
    journal = open_journal()

    try:
        editor = journal.load_editor(day)
        if editor.mode == "detailed":
            if not replace:
                raise ModeLockedError(
                    f"{day.isoformat()} has detailed lots. "
                    "Pass --replace to overwrite them with manual values."
                )
            editor.clear()
            editor.set_mode("manual")

        editor.set_manual(profit, trades, notes, tags or None)
        saved = journal.save_trade_day(day, editor.manual_payload())
    except DaybookError as e:
        report_error(e, "Save Failed")

    console.print(Panel(
        f"[green]✓[/green] Saved {day.isoformat()}\n\n"
        f"[bold]P&L:[/bold] {colored_money(saved.profit)}\n"
        f"[bold]Trades:[/bold] {saved.trades_count}",
        title="[bold green]Trade Day Saved[/bold green]",
        border_style="green",
    ))


@click.command()
@click.argument("day", callback=parse_day)
@click.option(
    "-e", "--entry",
    "lines",
    multiple=True,
    help=f"Lot to add as \"{ENTRY_FORMAT}\" (repeatable).",
)
@click.option("-r", "--remove", "removals", multiple=True, type=int, help="Remove lot number N (repeatable).")
@click.option("--replace", is_flag=True, default=False, help="Start from an empty list instead of the saved lots.")
@click.option("--dry-run", is_flag=True, default=False, help="Show the preview without saving.")
def lots(
    day: date,
    lines: tuple[str, ...],
    removals: tuple[int, ...],
    replace: bool,
    dry_run: bool,
) -> None:
    """Record DAY as individual buy/sell lots.

    New lots are added after the lots already saved for the day.
    Every symbol needs matching Buy and Sell quantities before the
    day can be saved. Profit and trade count are derived from the lots.

    \b
    Examples:
      daybook lots today -e "BUY AAPL 10 100" -e "SELL AAPL 10 110"
      daybook lots 2024-01-05 -e "sell tsla 5 250 1.25"
      daybook lots today --remove 2 --dry-run
    """
    journal = open_journal()

    try:
        editor = journal.load_editor(day)
        if replace:
            editor.clear()
        editor.set_mode("detailed")

        for index in sorted(set(removals), reverse=True):
            if not 1 <= index <= len(editor.entries):
                raise FieldValidationError("remove", f"No lot number {index}")
            editor.remove_entry(index - 1)

        for line in lines:
            editor.add_entry(**parse_entry(line))

        preview = editor.preview()
        console.print(_entries_table(editor.entries, f"Lots for {day.isoformat()}"))
        console.print(
            f"\n[bold]Preview:[/bold] {colored_money(preview['profit'])} "
            f"over {preview['trades_count']} round trip(s)"
        )

        if dry_run:
            return

        saved = journal.save_trade_entries(day, editor.detailed_payload())
    except ModeLockedError as e:
        report_error(
            ModeLockedError(f"{str(e)} Pass --replace to discard the manual values."),
            "Save Failed",
        )
    except DaybookError as e:
        report_error(e, "Save Failed")

    profit = saved.profit if saved is not None else preview["profit"]
    console.print(Panel(
        f"[green]✓[/green] Saved {len(editor.entries)} lot(s) for {day.isoformat()}\n\n"
        f"[bold]P&L:[/bold] {colored_money(profit)}",
        title="[bold green]Trade Day Saved[/bold green]",
        border_style="green",
    ))


@click.command()
@click.argument("day", callback=parse_day)
def show(day: date) -> None:
    """Show DAY's record and lots."""
    journal = open_journal()

    try:
        record = journal.find_day(day)
        entries = journal.fetch_entries(day) if record is not None else []
    except DaybookError as e:
        report_error(e)

    if record is None:
        console.print(Panel(
            f"[dim]Nothing recorded for {day.isoformat()}[/dim]",
            title=f"[bold]{day:%A, %B %d, %Y}[/bold]",
            border_style="dim",
        ))
        return

    console.print(Panel(
        f"[bold]P&L:[/bold] {colored_money(record.profit)}\n"
        f"[bold]Trades:[/bold] {record.trades_count}\n"
        f"[bold]Entry mode:[/bold] {record.entry_mode or 'manual'}\n"
        f"[bold]Tags:[/bold] {', '.join(record.tags) or '-'}\n"
        f"[bold]Notes:[/bold] {record.notes or '-'}",
        title=f"[bold]{day:%A, %B %d, %Y}[/bold]",
        border_style="green" if record.is_win else "red",
    ))

    if entries:
        console.print(_entries_table(entries, "Lots"))


@click.command()
@click.argument("day", callback=parse_day)
@click.option("-y", "--yes", is_flag=True, default=False, help="Do not ask for confirmation.")
def delete(day: date, yes: bool) -> None:
    """Delete DAY's record and lots."""
    journal = open_journal()

    if not yes:
        click.confirm(f"Delete all trade data for {day.isoformat()}?", abort=True)

    try:
        deleted = journal.delete_trade_day(day)
    except DaybookError as e:
        report_error(e, "Delete Failed")

    if not deleted:
        console.print(f"[yellow]Nothing recorded for {day.isoformat()}.[/yellow]")
        return

    console.print(f"[green]✓[/green] Deleted {day.isoformat()}")


@click.command(name="remove-lot")
@click.argument("day", callback=parse_day)
@click.argument("number", type=click.IntRange(min=1))
def remove_lot(day: date, number: int) -> None:
    """Delete saved lot NUMBER of DAY.

    Lot numbers are the ones shown by ``daybook show``. The day's profit
    and trade count are re-derived from the remaining lots.
    """
    journal = open_journal()

    try:
        record = journal.delete_trade_entry(day, number - 1)
    except DaybookError as e:
        report_error(e, "Delete Failed")

    console.print(f"[green]✓[/green] Deleted lot {number} of {day.isoformat()}")
    if record is not None:
        console.print(f"Day total: {colored_money(record.profit)} over {record.trades_count} round trip(s)")
