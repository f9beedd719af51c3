"""Property-based tests for detailed-entry reconciliation.

**Feature: daybook**
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from daybook.analytics import (
    day_profit,
    day_trade_count,
    group_by_symbol,
    reconcile,
    symbol_profit,
    validate_entries,
)
from daybook.errors import EntryValidationError
from daybook.models import TradeEntry


def lot(side: str, symbol: str, quantity: float, price: float, commission: float = 0.0) -> TradeEntry:
    return TradeEntry(
        transaction_type=side,
        symbol=symbol,
        quantity=quantity,
        price=price,
        commission=commission,
    )


quantities = st.floats(min_value=0.01, max_value=10_000, allow_nan=False, allow_infinity=False)
prices = st.floats(min_value=0.01, max_value=10_000, allow_nan=False, allow_infinity=False)
symbols = st.sampled_from(["AAPL", "TSLA", "MSFT", "NVDA", "SPY"])


class TestSingleRoundTrip:
    """
    **Feature: daybook, Property 7: Round Trip Profit**

    Buying 10 AAPL at 100 and selling 10 at 110 makes 100 over one trade.
    """

    def test_example_round_trip(self):
        entries = [lot("Buy", "AAPL", 10, 100), lot("Sell", "AAPL", 10, 110)]

        result = reconcile(entries)

        assert result.profit == 100
        assert result.trades_count == 1
        assert result.symbols == {"AAPL": 100}

    def test_commission_reduces_profit(self):
        entries = [lot("Buy", "AAPL", 10, 100, 1.5), lot("Sell", "AAPL", 10, 110, 2.5)]

        assert reconcile(entries).profit == pytest.approx(96)

    def test_scaling_in_and_out(self):
        entries = [
            lot("Buy", "TSLA", 5, 200),
            lot("Buy", "TSLA", 5, 210),
            lot("Sell", "TSLA", 3, 220),
            lot("Sell", "TSLA", 7, 205),
        ]

        assert reconcile(entries).profit == pytest.approx(660 + 1435 - 1000 - 1050)

    @given(side_qty=quantities, buy=prices, sell=prices)
    @settings(max_examples=100)
    def test_balanced_lots_accepted(self, side_qty: float, buy: float, sell: float):
        """*For any* equal Buy and Sell quantity, the day reconciles."""
        entries = [lot("Buy", "AAPL", side_qty, buy), lot("Sell", "AAPL", side_qty, sell)]

        result = reconcile(entries)

        assert result.trades_count == 1
        assert result.profit == pytest.approx(side_qty * (sell - buy), abs=1e-6)


class TestMultipleSymbols:
    """
    **Feature: daybook, Property 8: Per-Symbol Aggregation**

    Day profit is the sum of symbol profits; trade count is the number of
    symbols with both sides.
    """

    def test_two_symbols(self):
        entries = [
            lot("Buy", "AAPL", 10, 100),
            lot("Buy", "MSFT", 2, 300),
            lot("Sell", "MSFT", 2, 290),
            lot("Sell", "AAPL", 10, 110),
        ]

        result = reconcile(entries)

        assert result.trades_count == 2
        assert result.profit == pytest.approx(80)
        assert list(result.symbols) == ["AAPL", "MSFT"]

    def test_group_order_is_first_seen(self):
        entries = [lot("Buy", "TSLA", 1, 1), lot("Buy", "AAPL", 1, 1), lot("Sell", "TSLA", 1, 2)]

        assert list(group_by_symbol(entries)) == ["TSLA", "AAPL"]

    def test_trade_count_ignores_one_sided_symbols(self):
        entries = [lot("Buy", "AAPL", 1, 10), lot("Sell", "AAPL", 1, 11), lot("Buy", "TSLA", 1, 5)]

        assert day_trade_count(entries) == 1

    @given(
        lots=st.lists(
            st.tuples(st.sampled_from(["Buy", "Sell"]), symbols, quantities, prices),
            min_size=1,
            max_size=20,
        )
    )
    @settings(max_examples=100)
    def test_day_profit_is_sum_of_symbols(self, lots):
        entries = [lot(*args) for args in lots]

        expected = sum(symbol_profit(group) for group in group_by_symbol(entries).values())

        assert day_profit(entries) == pytest.approx(expected)


class TestEntryValidation:
    """
    **Feature: daybook, Property 9: Unbalanced Days Rejected**

    A symbol missing a side, or with unequal quantities, blocks the save.
    """

    def test_buy_only_rejected(self):
        with pytest.raises(EntryValidationError) as exc:
            validate_entries([lot("Buy", "AAPL", 10, 100)])

        assert str(exc.value) == "Missing AAPL Sell transaction"
        assert exc.value.symbols == ["AAPL"]

    def test_sell_only_rejected(self):
        with pytest.raises(EntryValidationError) as exc:
            validate_entries([lot("Sell", "TSLA", 1, 100)])

        assert str(exc.value) == "Missing TSLA Buy transaction"

    def test_several_missing_sides_listed(self):
        entries = [lot("Buy", "AAPL", 1, 1), lot("Sell", "TSLA", 1, 1)]

        with pytest.raises(EntryValidationError) as exc:
            validate_entries(entries)

        assert str(exc.value) == "Missing AAPL Sell, TSLA Buy transactions"
        assert exc.value.symbols == ["AAPL", "TSLA"]

    def test_quantity_mismatch_rejected(self):
        entries = [lot("Buy", "AAPL", 10, 100), lot("Sell", "AAPL", 5, 110)]

        with pytest.raises(EntryValidationError) as exc:
            validate_entries(entries)

        assert str(exc.value) == (
            "Quantity mismatch for: AAPL (Buy: 10.00000000, Sell: 5.00000000)"
        )

    def test_missing_side_reported_before_mismatch(self):
        entries = [
            lot("Buy", "AAPL", 10, 100),
            lot("Sell", "AAPL", 5, 110),
            lot("Buy", "TSLA", 1, 100),
        ]

        with pytest.raises(EntryValidationError) as exc:
            validate_entries(entries)

        assert str(exc.value).startswith("Missing TSLA Sell")

    def test_tolerance(self):
        validate_entries([lot("Buy", "AAPL", 1.00005, 10), lot("Sell", "AAPL", 1, 11)])

        with pytest.raises(EntryValidationError):
            validate_entries([lot("Buy", "AAPL", 1.001, 10), lot("Sell", "AAPL", 1, 11)])

    def test_empty_rejected(self):
        with pytest.raises(EntryValidationError):
            validate_entries([])


class TestTradeEntryModel:
    """
    **Feature: daybook, Property 10: Lot Normalization**

    Symbols are upper-cased and the total amount is rounded to 4 places.
    """

    def test_symbol_and_total(self):
        entry = lot("Buy", " aapl ", 3, 1.23456)

        assert entry.symbol == "AAPL"
        assert entry.total_amount == 3.7037
        assert entry.gross == pytest.approx(3.70368)

    def test_rejects_non_positive_quantity(self):
        with pytest.raises(ValueError):
            lot("Buy", "AAPL", 0, 10)
