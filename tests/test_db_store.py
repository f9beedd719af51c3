"""Property-based tests for the database store.

**Feature: daybook**
"""

import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from daybook.db.store import DataStore
from daybook.models import TradeDay, TradeEntry


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        yield DataStore(db_path)


def lot(side: str, symbol: str, quantity: float, price: float) -> TradeEntry:
    return TradeEntry(transaction_type=side, symbol=symbol, quantity=quantity, price=price)


class TestDatabaseSchemaCompleteness:
    """
    **Feature: daybook, Property 19: Database Schema Completeness**

    *For any* fresh database, all required tables (users, profiles,
    trades, trade_entries, auth_tokens) should exist.
    """

    def test_schema_completeness(self, temp_db: DataStore):
        """Test that all required tables exist in a fresh database."""
        tables = temp_db.get_tables()

        for table in DataStore.REQUIRED_TABLES:
            assert table in tables, f"Required table '{table}' is missing"

    @given(st.integers(min_value=1, max_value=5))
    @settings(max_examples=10)
    def test_schema_completeness_multiple_instances(self, num_instances: int):
        """
        *For any* number of DataStore instances created with fresh databases,
        all required tables should exist in each.
        """
        with tempfile.TemporaryDirectory() as tmpdir:
            for i in range(num_instances):
                store = DataStore(Path(tmpdir) / f"test_{i}.db")
                tables = store.get_tables()

                for table in DataStore.REQUIRED_TABLES:
                    assert table in tables, f"Required table '{table}' missing in instance {i}"

    def test_reopen_keeps_data(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "test.db"
            user_id = DataStore(db_path).create_user("a@example.com", None)

            assert DataStore(db_path).get_user(user_id)["email"] == "a@example.com"


class TestTradeDayUpsert:
    """
    **Feature: daybook, Property 20: One Record Per User and Date**

    *For any* sequence of saves for the same date, one record remains
    holding the last values.
    """

    @given(
        profits=st.lists(
            st.floats(min_value=-1e6, max_value=1e6, allow_nan=False),
            min_size=1,
            max_size=5,
        )
    )
    @settings(max_examples=25)
    def test_last_write_wins(self, profits: list[float]):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = DataStore(Path(tmpdir) / "test.db")
            user_id = store.create_user("a@example.com", None)
            day = date(2024, 1, 2)

            for profit in profits:
                store.upsert_trade_day(
                    user_id, TradeDay(date=day, profit=profit, trades_count=1, entry_mode="manual")
                )

            days = store.get_trade_days(user_id)
            assert len(days) == 1
            assert days[0].profit == profits[-1]

    def test_upsert_keeps_id(self, temp_db: DataStore):
        user_id = temp_db.create_user("a@example.com", None)
        first = temp_db.upsert_trade_day(user_id, TradeDay(date=date(2024, 1, 2), profit=1, trades_count=1))
        second = temp_db.upsert_trade_day(user_id, TradeDay(date=date(2024, 1, 2), profit=2, trades_count=1))

        assert first.id == second.id
        assert second.profit == 2

    def test_days_sorted_and_isolated_per_user(self, temp_db: DataStore):
        alice = temp_db.create_user("alice@example.com", None)
        bob = temp_db.create_user("bob@example.com", None)
        for offset in (3, 1, 2):
            temp_db.upsert_trade_day(
                alice,
                TradeDay(date=date(2024, 1, 1) + timedelta(days=offset), profit=offset, trades_count=1, tags=["momentum"]),
            )
        temp_db.upsert_trade_day(bob, TradeDay(date=date(2024, 1, 1), profit=9, trades_count=1))

        days = temp_db.get_trade_days(alice)

        assert [d.date.day for d in days] == [2, 3, 4]
        assert days[0].tags == ["momentum"]
        assert len(temp_db.get_trade_days(bob)) == 1


class TestEntryDerivation:
    """
    **Feature: daybook, Property 21: Derived Day Aggregates**

    Replacing a day's entries re-derives its profit and trade count.
    """

    def test_replace_entries_recomputes(self, temp_db: DataStore):
        user_id = temp_db.create_user("a@example.com", None)
        day = temp_db.upsert_trade_day(user_id, TradeDay(date=date(2024, 1, 2), profit=0, trades_count=0))

        stored = temp_db.replace_entries(day.id, [lot("Buy", "AAPL", 10, 100), lot("Sell", "AAPL", 10, 110)])
        updated = temp_db.get_trade_day(user_id, date(2024, 1, 2))

        assert [e.transaction_type for e in stored] == ["Buy", "Sell"]
        assert stored[0].total_amount == 1000
        assert updated.profit == 100
        assert updated.trades_count == 1
        assert updated.entry_mode == "detailed"

    def test_delete_entry_recomputes(self, temp_db: DataStore):
        user_id = temp_db.create_user("a@example.com", None)
        day = temp_db.upsert_trade_day(user_id, TradeDay(date=date(2024, 1, 2), profit=0, trades_count=0))
        stored = temp_db.replace_entries(
            day.id,
            [lot("Buy", "AAPL", 10, 100), lot("Sell", "AAPL", 10, 110), lot("Buy", "TSLA", 1, 50)],
        )

        assert temp_db.delete_entry(stored[2].id) == day.id
        assert temp_db.delete_entry("missing") is None
        assert len(temp_db.get_entries(day.id)) == 2

    def test_delete_day_cascades(self, temp_db: DataStore):
        user_id = temp_db.create_user("a@example.com", None)
        day = temp_db.upsert_trade_day(user_id, TradeDay(date=date(2024, 1, 2), profit=0, trades_count=0))
        temp_db.replace_entries(day.id, [lot("Buy", "AAPL", 1, 1), lot("Sell", "AAPL", 1, 2)])

        temp_db.delete_trade_day(day.id)

        assert temp_db.get_trade_days(user_id) == []
        assert temp_db.get_entries(day.id) == []
        assert temp_db.get_stats()["trade_entries"] == 0


class TestTokens:
    """
    **Feature: daybook, Property 22: One-Time Tokens**

    Tokens are valid until used, revoked or expired.
    """

    def test_consume_once(self, temp_db: DataStore):
        user_id = temp_db.create_user("a@example.com", None)
        temp_db.save_token("tok", user_id, "magic_link", datetime.now() + timedelta(hours=1))

        assert temp_db.consume_token("tok", "magic_link")["user_id"] == user_id
        assert temp_db.consume_token("tok", "magic_link") is None

    def test_expired_and_wrong_kind(self, temp_db: DataStore):
        user_id = temp_db.create_user("a@example.com", None)
        temp_db.save_token("old", user_id, "access", datetime.now() - timedelta(seconds=1))
        temp_db.save_token("new", user_id, "access", datetime.now() + timedelta(hours=1))

        assert temp_db.get_token("old", "access") is None
        assert temp_db.get_token("new", "refresh") is None
        assert temp_db.get_token("new", "access") is not None

    def test_revoke(self, temp_db: DataStore):
        user_id = temp_db.create_user("a@example.com", None)
        temp_db.save_token("a1", user_id, "access", datetime.now() + timedelta(hours=1))
        temp_db.save_token("r1", user_id, "refresh", datetime.now() + timedelta(hours=1))

        temp_db.revoke_tokens(user_id, ("access",))

        assert temp_db.get_token("a1", "access") is None
        assert temp_db.get_token("r1", "refresh") is not None


class TestProfiles:
    """
    **Feature: daybook, Property 23: Profiles Follow Users**

    Every user gets a profile that tracks email and share token.
    """

    def test_profile_lifecycle(self, temp_db: DataStore):
        user_id = temp_db.create_user("a@example.com", None)

        assert temp_db.get_profile(user_id).share_id is None

        temp_db.set_share_id(user_id, "abc123")
        temp_db.update_user_email(user_id, "b@example.com")

        profile = temp_db.get_profile_by_share_id("abc123")
        assert profile.id == user_id
        assert profile.email == "b@example.com"
        assert temp_db.get_profile_by_share_id("nope") is None
