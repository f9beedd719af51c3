"""Tests for the trade-day editor.

**Feature: daybook**
"""

from datetime import date

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from daybook.editor import MAX_ABS_PROFIT, MAX_TRADES, TradeDayEditor
from daybook.errors import EntryValidationError, FieldValidationError, ModeLockedError
from daybook.models import TradeDay, TradeEntry

DAY = date(2024, 1, 5)


@pytest.fixture
def editor() -> TradeDayEditor:
    return TradeDayEditor(DAY)


class TestModeLock:
    """
    **Feature: daybook, Property 11: Mode Lock**

    Entry mode can only change while the draft is empty.
    """

    def test_starts_manual(self, editor: TradeDayEditor):
        assert editor.mode == "manual"
        assert not editor.is_dirty

    def test_switch_when_empty(self, editor: TradeDayEditor):
        editor.set_mode("detailed")

        assert editor.mode == "detailed"

    def test_manual_input_locks_mode(self, editor: TradeDayEditor):
        editor.set_manual(profit="100")

        with pytest.raises(ModeLockedError):
            editor.set_mode("detailed")

    def test_lot_locks_mode(self, editor: TradeDayEditor):
        editor.set_mode("detailed")
        editor.add_entry("Buy", "AAPL", "10", "100")

        with pytest.raises(ModeLockedError):
            editor.set_mode("manual")

    def test_clear_unlocks(self, editor: TradeDayEditor):
        editor.set_manual(profit="100", trades="2")
        editor.clear()
        editor.set_mode("detailed")

        assert editor.mode == "detailed"
        assert not editor.is_dirty

    def test_opens_detailed_with_saved_lots(self):
        lots = [TradeEntry(transaction_type="Buy", symbol="AAPL", quantity=1, price=1)]

        editor = TradeDayEditor(DAY, existing_entries=lots)

        assert editor.mode == "detailed"
        assert editor.is_dirty

    def test_prefills_saved_manual_day(self):
        existing = TradeDay(date=DAY, profit=42.5, trades_count=3, notes="gap up", tags=["breakout"])

        editor = TradeDayEditor(DAY, existing)
        payload = editor.manual_payload()

        assert payload["profit"] == 42.5
        assert payload["trades_count"] == 3
        assert payload["notes"] == "gap up"
        assert payload["tags"] == ["breakout"]

    def test_unknown_mode(self, editor: TradeDayEditor):
        with pytest.raises(ValueError):
            editor.set_mode("hybrid")


class TestManualValidation:
    """
    **Feature: daybook, Property 12: Manual Field Validation**

    Profit and trade count are required, numeric and bounded.
    """

    def test_valid_payload(self, editor: TradeDayEditor):
        editor.set_manual(profit="-35.5", trades="4", notes="chop", tags=["Scalping"])

        payload = editor.manual_payload()

        assert payload == {
            "date": DAY,
            "profit": -35.5,
            "trades_count": 4,
            "notes": "chop",
            "tags": ["scalping"],
            "entry_mode": "manual",
        }

    @pytest.mark.parametrize(
        "profit,trades,field",
        [
            ("", "1", "profit"),
            ("abc", "1", "profit"),
            (str(MAX_ABS_PROFIT + 1), "1", "profit"),
            ("10", "", "trades"),
            ("10", "0", "trades"),
            ("10", "1.5", "trades"),
            ("10", str(MAX_TRADES + 1), "trades"),
        ],
    )
    def test_invalid_fields(self, editor: TradeDayEditor, profit: str, trades: str, field: str):
        editor.set_manual(profit=profit, trades=trades)

        with pytest.raises(FieldValidationError) as exc:
            editor.manual_payload()

        assert exc.value.field == field

    def test_unknown_tag(self, editor: TradeDayEditor):
        with pytest.raises(FieldValidationError) as exc:
            editor.set_manual(tags=["yolo"])

        assert exc.value.field == "tags"

    @given(
        profit=st.floats(min_value=-MAX_ABS_PROFIT, max_value=MAX_ABS_PROFIT, allow_nan=False),
        trades=st.integers(min_value=1, max_value=MAX_TRADES),
    )
    @settings(max_examples=100)
    def test_in_range_values_accepted(self, profit: float, trades: int):
        editor = TradeDayEditor(DAY)
        editor.set_manual(profit=repr(profit), trades=str(trades))

        payload = editor.manual_payload()

        assert payload["profit"] == profit
        assert payload["trades_count"] == trades


class TestDetailedEntry:
    """
    **Feature: daybook, Property 13: Sell Needs Prior Buy**

    A Sell lot needs an earlier Buy and may not oversell.
    """

    @pytest.fixture
    def detailed(self, editor: TradeDayEditor) -> TradeDayEditor:
        editor.set_mode("detailed")
        return editor

    def test_round_trip_preview(self, detailed: TradeDayEditor):
        detailed.add_entry("buy", "aapl", "10", "100")
        detailed.add_entry("SELL", "AAPL", "10", "110")

        assert detailed.preview() == {"profit": 100, "trades_count": 1}
        assert len(detailed.detailed_payload()) == 2

    def test_sell_without_buy(self, detailed: TradeDayEditor):
        with pytest.raises(EntryValidationError) as exc:
            detailed.add_entry("Sell", "AAPL", "10", "110")

        assert str(exc.value) == "Add a Buy transaction for AAPL first"

    def test_oversell(self, detailed: TradeDayEditor):
        detailed.add_entry("Buy", "AAPL", "10", "100")
        detailed.add_entry("Sell", "AAPL", "6", "110")

        with pytest.raises(EntryValidationError) as exc:
            detailed.add_entry("Sell", "AAPL", "5", "110")

        assert "Cannot sell more than bought quantity (10 shares) for AAPL" in str(exc.value)

    @pytest.mark.parametrize(
        "symbol,quantity,price,commission,field",
        [
            ("", "1", "1", "", "symbol"),
            ("AAPL", "0", "1", "", "quantity"),
            ("AAPL", "x", "1", "", "quantity"),
            ("AAPL", "1", "-2", "", "price"),
            ("AAPL", "1", "1", "-1", "commission"),
        ],
    )
    def test_invalid_lot(self, detailed, symbol, quantity, price, commission, field):
        with pytest.raises(FieldValidationError) as exc:
            detailed.add_entry("Buy", symbol, quantity, price, commission)

        assert exc.value.field == field

    def test_remove_entry(self, detailed: TradeDayEditor):
        detailed.add_entry("Buy", "AAPL", "10", "100")
        removed = detailed.remove_entry(0)

        assert removed.symbol == "AAPL"
        assert detailed.entries == []
        assert not detailed.is_dirty

    def test_unbalanced_payload_rejected(self, detailed: TradeDayEditor):
        detailed.add_entry("Buy", "AAPL", "10", "100")

        with pytest.raises(EntryValidationError):
            detailed.detailed_payload()

    def test_manual_only_in_manual_mode(self, detailed: TradeDayEditor):
        with pytest.raises(ModeLockedError):
            detailed.set_manual(profit="5")
