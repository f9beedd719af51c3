"""Reconciliation of detailed buy/sell lots into a day's result."""

from typing import Iterable, NamedTuple

from daybook.errors import EntryValidationError
from daybook.models import TradeEntry


# Buy and sell quantities per symbol must agree within this tolerance
QUANTITY_TOLERANCE = 0.0001


class Reconciliation(NamedTuple):
    """Net result of a day's detailed entries."""

    profit: float
    trades_count: int
    symbols: dict[str, float]


def group_by_symbol(entries: Iterable[TradeEntry]) -> dict[str, list[TradeEntry]]:
    """Group lots by symbol, preserving first-seen symbol order."""
    groups: dict[str, list[TradeEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.symbol, []).append(entry)
    return groups


def _quantity(entries: Iterable[TradeEntry], side: str) -> float:
    return sum(e.quantity for e in entries if e.transaction_type == side)


def symbol_profit(entries: Iterable[TradeEntry]) -> float:
    """Profit for one symbol's lots.

    Sell proceeds net of commission minus buy cost plus commission.
    """
    buy_total = 0.0
    sell_total = 0.0
    for entry in entries:
        if entry.transaction_type == "Buy":
            buy_total += entry.gross
        else:
            sell_total += entry.gross
    return sell_total - buy_total


def day_profit(entries: Iterable[TradeEntry]) -> float:
    """Net profit over every symbol traded in the day."""
    return sum(symbol_profit(lots) for lots in group_by_symbol(entries).values())


def day_trade_count(entries: Iterable[TradeEntry]) -> int:
    """Number of symbols with at least one Buy and at least one Sell."""
    count = 0
    for lots in group_by_symbol(entries).values():
        sides = {e.transaction_type for e in lots}
        if "Buy" in sides and "Sell" in sides:
            count += 1
    return count


def validate_entries(entries: Iterable[TradeEntry]) -> None:
    """Check that a day's lots can be saved.

    Every symbol needs at least one Buy and one Sell, and its total Buy
    quantity must equal its total Sell quantity within 0.0001. Missing
    counterparts are reported before quantity mismatches.

    Args:
        entries: The day's lots.

    Raises:
        EntryValidationError: Naming the offending symbols.
    """
    groups = group_by_symbol(entries)

    if not groups:
        raise EntryValidationError("Add at least one trade entry")

    missing: list[tuple[str, str]] = []
    mismatches: list[tuple[str, str]] = []

    for symbol, lots in groups.items():
        has_buy = any(e.transaction_type == "Buy" for e in lots)
        has_sell = any(e.transaction_type == "Sell" for e in lots)

        if not has_buy or not has_sell:
            missing.append((symbol, "Buy" if not has_buy else "Sell"))
            continue

        buy_qty = _quantity(lots, "Buy")
        sell_qty = _quantity(lots, "Sell")
        if abs(buy_qty - sell_qty) > QUANTITY_TOLERANCE:
            mismatches.append((symbol, f"{symbol} (Buy: {buy_qty:.8f}, Sell: {sell_qty:.8f})"))

    if missing:
        plural = "s" if len(missing) > 1 else ""
        names = ", ".join(f"{symbol} {side}" for symbol, side in missing)
        raise EntryValidationError(
            f"Missing {names} transaction{plural}",
            symbols=[symbol for symbol, _ in missing],
        )

    if mismatches:
        details = ", ".join(detail for _, detail in mismatches)
        raise EntryValidationError(
            f"Quantity mismatch for: {details}",
            symbols=[symbol for symbol, _ in mismatches],
        )


def reconcile(entries: list[TradeEntry]) -> Reconciliation:
    """Validate lots and compute the day's profit and trade count.

    Raises:
        EntryValidationError: If the lots do not reconcile.
    """
    validate_entries(entries)
    groups = group_by_symbol(entries)
    return Reconciliation(
        profit=day_profit(entries),
        trades_count=day_trade_count(entries),
        symbols={symbol: symbol_profit(lots) for symbol, lots in groups.items()},
    )
