"""CSV export of trade days."""

import csv
import io
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Union

from daybook.analytics.stats import calculate_stats
from daybook.models import Stats, TradeDay


CSV_HEADER = ["Date", "Profit/Loss ($)", "No. of Trades", "Win/Loss"]


def format_amount(value: float) -> str:
    """Format a dollar amount with grouping and at most 3 decimals.

    ``1234.5`` becomes ``1,234.5`` and ``170.0`` becomes ``170``.
    """
    text = f"{abs(value):,.3f}".rstrip("0").rstrip(".")
    return text or "0"


def format_profit(value: float) -> str:
    """Signed dollar string, e.g. ``$170`` or ``-$20.5``."""
    sign = "-" if value < 0 else ""
    return f"{sign}${format_amount(value)}"


def _format_number(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return repr(value)


def summary_line(stats: Stats) -> str:
    """Free-text summary of aggregated stats."""
    return (
        f"Total Profit/Loss: {format_profit(stats.profit)}, "
        f"Total Trades: {stats.trades}, "
        f"Trading Days: {stats.trading_days}, "
        f"Win Rate: {stats.win_rate:.0f}%"
    )


def export_csv(
    days: Iterable[TradeDay],
    period: str = "all-time",
    now: Union[date, datetime, None] = None,
    include_notes: bool = False,
) -> str:
    """Render trade days as CSV text.

    Every day is listed in ascending date order. The trailing summary
    line is computed over the selected period.

    Args:
        days: All trade days.
        period: Period for the summary line.
        now: Reference date for the period boundary.
        include_notes: Append Notes and Tags columns.

    Returns:
        CSV content.
    """
    ordered = sorted(days, key=lambda d: d.date)
    stats = calculate_stats(ordered, period, now)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    header = list(CSV_HEADER)
    if include_notes:
        header += ["Notes", "Tags"]
    writer.writerow(header)

    for day in ordered:
        row = [
            day.date.isoformat(),
            _format_number(day.profit),
            day.trades_count,
            "Win" if day.profit > 0 else "Loss",
        ]
        if include_notes:
            row += [day.notes or "", ";".join(day.tags)]
        writer.writerow(row)

    writer.writerow([])
    writer.writerow(["Summary", summary_line(stats)])
    return buffer.getvalue()


def default_filename(today: Union[date, None] = None) -> str:
    """Download name for an export made on ``today``."""
    today = today or date.today()
    return f"daybook_trades_{today.isoformat()}.csv"


def write_csv(path: Path, content: str) -> Path:
    """Write CSV content to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
