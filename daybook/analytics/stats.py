"""Statistics aggregation over trade days.

This module provides the pure functions behind every summary view:
period filtering, profit/trade totals, win rate, and longest winning
streak detection. Nothing here performs I/O.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, Literal, Optional, Union

from daybook.models import Stats, Streak, TradeDay


Period = Literal["all-time", "year-to-date", "month-to-date", "week-to-date"]

PERIODS: tuple[str, ...] = (
    "all-time",
    "year-to-date",
    "month-to-date",
    "week-to-date",
)

PERIOD_LABELS = {
    "all-time": "All Time",
    "year-to-date": "Year to Date",
    "month-to-date": "Month to Date",
    "week-to-date": "Week to Date",
}

# Totals below this magnitude are floating-point noise and reported as 0
PROFIT_EPSILON = 1e-10


def _as_date(value: Union[date, datetime, None]) -> date:
    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    return value


def normalize_profit(value: float) -> float:
    """Collapse floating-point noise to exactly zero.

    Args:
        value: Raw summed profit.

    Returns:
        0.0 if ``|value| < 1e-10``, otherwise ``value`` unchanged.
    """
    if abs(value) < PROFIT_EPSILON:
        return 0.0
    return value


def period_start(period: str, now: Union[date, datetime, None] = None) -> Optional[date]:
    """Get the first day covered by a period.

    Weeks start on Sunday.

    Args:
        period: One of ``PERIODS``.
        now: Reference date (defaults to today).

    Returns:
        The boundary date, or None for all-time.

    Raises:
        ValueError: If period is unknown.
    """
    today = _as_date(now)

    if period == "all-time":
        return None
    if period == "year-to-date":
        return today.replace(month=1, day=1)
    if period == "month-to-date":
        return today.replace(day=1)
    if period == "week-to-date":
        # date.weekday(): Monday=0 ... Sunday=6
        return today - timedelta(days=(today.weekday() + 1) % 7)

    raise ValueError(f"Unknown period: {period}. Expected one of {', '.join(PERIODS)}")


def filter_by_period(
    days: Iterable[TradeDay],
    period: str,
    now: Union[date, datetime, None] = None,
) -> list[TradeDay]:
    """Keep the days on or after the period's start boundary.

    The boundary day itself is included. All-time keeps everything.
    """
    start = period_start(period, now)
    if start is None:
        return list(days)
    return [day for day in days if day.date >= start]


def find_longest_winning_streak(days: Iterable[TradeDay]) -> Optional[Streak]:
    """Find the longest run of consecutive profitable trading days.

    Days are sorted ascending by date first. Consecutive means adjacent in
    that sorted list of records: a calendar gap with no record does not
    break a streak, only a recorded day with profit <= 0 does. When two
    runs have the same length the most recent one is reported.

    Args:
        days: Trade days in any order.

    Returns:
        The longest streak, or None if no day is profitable.
    """
    current = 0
    longest = 0
    current_start: Optional[date] = None
    longest_start: Optional[date] = None
    longest_end: Optional[date] = None

    for day in sorted(days, key=lambda d: d.date):
        if day.profit > 0:
            if current == 0:
                current_start = day.date
            current += 1

            if current >= longest:
                longest = current
                longest_start = current_start
                longest_end = day.date
        else:
            current = 0
            current_start = None

    if longest == 0 or longest_start is None or longest_end is None:
        return None

    return Streak(days=longest, start_date=longest_start, end_date=longest_end)


def _aggregate(days: list[TradeDay]) -> dict:
    trading_days = len(days)
    profitable_days = sum(1 for day in days if day.profit > 0)
    win_rate = (profitable_days / trading_days * 100) if trading_days > 0 else 0.0

    return {
        "profit": normalize_profit(sum(day.profit for day in days)),
        "trades": sum(day.trades_count for day in days),
        "trading_days": trading_days,
        "win_rate": win_rate,
    }


def calculate_stats(
    days: Iterable[TradeDay],
    period: str = "all-time",
    now: Union[date, datetime, None] = None,
) -> Stats:
    """Calculate summary statistics for a period.

    Args:
        days: All trade days for a user, in any order.
        period: One of ``PERIODS``.
        now: Reference date for the period boundary (defaults to today).

    Returns:
        Stats with profit, trades, trading days, win rate and the longest
        winning streak of the filtered days.
    """
    filtered = filter_by_period(days, period, now)
    return Stats(
        **_aggregate(filtered),
        longest_streak=find_longest_winning_streak(filtered),
    )


def month_days(days: Iterable[TradeDay], year: int, month: int) -> list[TradeDay]:
    """Days falling in the given calendar month, sorted by date."""
    return sorted(
        (day for day in days if day.date.year == year and day.date.month == month),
        key=lambda d: d.date,
    )


def calculate_month_stats(days: Iterable[TradeDay], year: int, month: int) -> Stats:
    """Calculate statistics for a single calendar month.

    Same reduction as ``calculate_stats`` restricted to one month,
    without streak detection.
    """
    return Stats(**_aggregate(month_days(days, year, month)))
