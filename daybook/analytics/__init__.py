"""Pure aggregation over trade days and detailed entries."""

from daybook.analytics.stats import (
    PERIOD_LABELS,
    PERIODS,
    Period,
    calculate_month_stats,
    calculate_stats,
    filter_by_period,
    find_longest_winning_streak,
    month_days,
    normalize_profit,
    period_start,
)
from daybook.analytics.reconcile import (
    Reconciliation,
    day_profit,
    day_trade_count,
    group_by_symbol,
    reconcile,
    symbol_profit,
    validate_entries,
)

__all__ = [
    "PERIOD_LABELS",
    "PERIODS",
    "Period",
    "Reconciliation",
    "calculate_month_stats",
    "calculate_stats",
    "day_profit",
    "day_trade_count",
    "filter_by_period",
    "find_longest_winning_streak",
    "group_by_symbol",
    "month_days",
    "normalize_profit",
    "period_start",
    "reconcile",
    "symbol_profit",
    "validate_entries",
]
