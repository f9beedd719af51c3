"""Trade-day editor session.

A draft for one calendar date that is filled either manually (a single
profit figure and trade count) or in detail (individual buy/sell lots).
Once the draft holds data in one mode, switching to the other is refused
until the draft is cleared, so the two representations are never mixed.
"""

from datetime import date
from typing import Iterable, Optional

from daybook.analytics.reconcile import (
    QUANTITY_TOLERANCE,
    day_profit,
    day_trade_count,
    validate_entries,
)
from daybook.errors import EntryValidationError, FieldValidationError, ModeLockedError
from daybook.models import EntryMode, TradeDay, TradeEntry


STRATEGY_TAGS = (
    "daytrade",
    "scalping",
    "breakout",
    "pullback",
    "reversal",
    "high volume",
    "momentum",
    "news play",
    "earnings play",
    "meme stock",
    "swing trade",
    "other",
)

MAX_ABS_PROFIT = 100_000_000
MAX_TRADES = 1_000_000


def _parse_number(field: str, raw: object, label: str) -> float:
    text = "" if raw is None else str(raw).strip()
    if not text:
        raise FieldValidationError(field, f"{label} is required")
    try:
        value = float(text)
    except ValueError:
        raise FieldValidationError(field, f"{label} must be a valid number")
    if value != value or value in (float("inf"), float("-inf")):
        raise FieldValidationError(field, f"{label} must be a valid number")
    return value


def _check_tags(tags: Iterable[str]) -> list[str]:
    result = []
    for tag in tags:
        tag = tag.strip().lower()
        if tag not in STRATEGY_TAGS:
            raise FieldValidationError(
                "tags", f"Unknown tag '{tag}'. Choose from: {', '.join(STRATEGY_TAGS)}"
            )
        if tag not in result:
            result.append(tag)
    return result


class TradeDayEditor:
    """Draft of one day's trade data being edited."""

    def __init__(
        self,
        day: date,
        existing: Optional[TradeDay] = None,
        existing_entries: Iterable[TradeEntry] = (),
    ):
        """Initialize the editor.

        Args:
            day: Date being edited.
            existing: Saved record for the date, if any.
            existing_entries: Saved lots for the date. When present the
                editor opens in detailed mode.
        """
        self.date = day
        self.existing = existing
        self._entries: list[TradeEntry] = list(existing_entries)
        self._mode: EntryMode = "detailed" if self._entries else "manual"
        self._profit = ""
        self._trades = ""
        self.notes = ""
        self.tags: list[str] = []

        if existing is not None and not self._entries:
            self._profit = str(existing.profit)
            self._trades = str(existing.trades_count)
            self.notes = existing.notes or ""
            self.tags = list(existing.tags)

    @property
    def mode(self) -> EntryMode:
        return self._mode

    @property
    def entries(self) -> list[TradeEntry]:
        return list(self._entries)

    @property
    def is_dirty(self) -> bool:
        """Whether the draft holds manual input or at least one lot."""
        return bool(self._profit.strip() or self._trades.strip() or self._entries)

    def set_mode(self, mode: EntryMode) -> None:
        """Switch between manual and detailed entry.

        Raises:
            ModeLockedError: If the draft already holds data.
            ValueError: If mode is unknown.
        """
        if mode not in ("manual", "detailed"):
            raise ValueError(f"Unknown entry mode: {mode}")
        if mode == self._mode:
            return
        if self.is_dirty:
            raise ModeLockedError(
                f"Cannot switch to {mode} entry mode while the {self._mode} draft "
                "has data. Clear the draft first."
            )
        self._mode = mode

    def clear(self) -> None:
        """Discard all draft data, unlocking the mode switch."""
        self._entries = []
        self._profit = ""
        self._trades = ""
        self.notes = ""
        self.tags = []

    # ==================== Manual mode ====================

    def set_manual(
        self,
        profit: Optional[object] = None,
        trades: Optional[object] = None,
        notes: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> None:
        """Set manual-mode fields. Values are kept raw until saved.

        Raises:
            ModeLockedError: If the editor is in detailed mode.
            FieldValidationError: If a tag is not a known strategy tag.
        """
        if self._mode != "manual":
            raise ModeLockedError("Switch to manual entry mode first")
        if profit is not None:
            self._profit = str(profit)
        if trades is not None:
            self._trades = str(trades)
        if notes is not None:
            self.notes = notes
        if tags is not None:
            self.tags = _check_tags(tags)

    def manual_payload(self) -> dict:
        """Validate manual fields and build the record to upsert.

        Raises:
            FieldValidationError: Naming the first invalid field.
        """
        profit = _parse_number("profit", self._profit, "Profit/Loss")
        if abs(profit) > MAX_ABS_PROFIT:
            raise FieldValidationError(
                "profit", f"Profit/Loss must be within ±{MAX_ABS_PROFIT:,}"
            )

        trades = _parse_number("trades", self._trades, "Number of trades")
        if trades < 1:
            raise FieldValidationError("trades", "Must be at least 1 trade")
        if trades != int(trades):
            raise FieldValidationError("trades", "Number of trades must be a whole number")
        if trades > MAX_TRADES:
            raise FieldValidationError("trades", f"Must be at most {MAX_TRADES:,} trades")

        return {
            "date": self.date,
            "profit": profit,
            "trades_count": int(trades),
            "notes": self.notes or None,
            "tags": list(self.tags),
            "entry_mode": "manual",
        }

    # ==================== Detailed mode ====================

    def add_entry(
        self,
        transaction_type: str,
        symbol: str,
        quantity: object,
        price: object,
        commission: object = "",
        notes: Optional[str] = None,
        tags: Iterable[str] = (),
    ) -> TradeEntry:
        """Add a buy or sell lot to the draft.

        A Sell requires an earlier Buy of the same symbol and may not take
        the sold quantity above the bought quantity.

        Raises:
            ModeLockedError: If the editor is in manual mode.
            FieldValidationError: If symbol, quantity, price or commission
                is invalid.
            EntryValidationError: If a Sell has no matching Buy quantity.
        """
        if self._mode != "detailed":
            raise ModeLockedError("Switch to detailed entry mode first")

        side = transaction_type.strip().capitalize()
        if side not in ("Buy", "Sell"):
            raise FieldValidationError(
                "transaction_type", "Transaction type must be Buy or Sell"
            )

        symbol = (symbol or "").strip().upper()
        if not symbol:
            raise FieldValidationError("symbol", "Symbol is required")

        qty = _parse_number("quantity", quantity, "Quantity")
        if qty <= 0:
            raise FieldValidationError("quantity", "Quantity must be greater than 0")

        px = _parse_number("price", price, "Price")
        if px <= 0:
            raise FieldValidationError("price", "Price must be greater than 0")

        fee = 0.0
        if commission is not None and str(commission).strip():
            fee = _parse_number("commission", commission, "Commission")
            if fee < 0:
                raise FieldValidationError("commission", "Commission cannot be negative")

        if side == "Sell":
            same_symbol = [e for e in self._entries if e.symbol == symbol]
            bought = sum(e.quantity for e in same_symbol if e.transaction_type == "Buy")
            sold = sum(e.quantity for e in same_symbol if e.transaction_type == "Sell")

            if not any(e.transaction_type == "Buy" for e in same_symbol):
                raise EntryValidationError(
                    f"Add a Buy transaction for {symbol} first", symbols=[symbol]
                )
            if sold + qty > bought + QUANTITY_TOLERANCE:
                raise EntryValidationError(
                    f"Cannot sell more than bought quantity ({bought:g} shares) for {symbol}",
                    symbols=[symbol],
                )

        entry = TradeEntry(
            transaction_type=side,
            symbol=symbol,
            quantity=qty,
            price=px,
            commission=fee,
            notes=notes or None,
            tags=_check_tags(tags),
        )
        self._entries.append(entry)
        return entry

    def remove_entry(self, index: int) -> TradeEntry:
        """Remove a lot by its position in ``entries``.

        Raises:
            IndexError: If index is out of range.
        """
        return self._entries.pop(index)

    def preview(self) -> dict:
        """Running totals for the current lots, without validation."""
        return {
            "profit": day_profit(self._entries),
            "trades_count": day_trade_count(self._entries),
        }

    def detailed_payload(self) -> list[TradeEntry]:
        """Validate the lots and return them for saving.

        Raises:
            ModeLockedError: If the editor is in manual mode.
            EntryValidationError: If the lots do not reconcile.
        """
        if self._mode != "detailed":
            raise ModeLockedError("Switch to detailed entry mode first")
        validate_entries(self._entries)
        return list(self._entries)
