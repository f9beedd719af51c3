"""Tests for the trade journal service.

**Feature: daybook**
"""

import tempfile
from datetime import date
from pathlib import Path

import pytest

from daybook.backends.local import LocalBackend
from daybook.config import Settings
from daybook.db.store import DataStore
from daybook.errors import (
    EntryValidationError,
    FieldValidationError,
    SessionExpiredError,
    ShareNotFoundError,
)
from daybook.journal import TradeJournal, load_shared_summary
from daybook.models import TradeEntry
from daybook.retry import RetryPolicy
from daybook.session import SessionManager


@pytest.fixture
def setup():
    """Signed-in journal over a temporary local backend."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        backend = LocalBackend(DataStore(root / "test.db"))
        sessions = SessionManager(backend, root / "session.json")
        sessions.sign_in(backend.sign_up("trader@example.com", "secret1"))
        sleeps = []
        journal = TradeJournal(
            backend,
            sessions,
            Settings(),
            retry=RetryPolicy(jitter=0, sleep=lambda _: None),
            sleep=sleeps.append,
        )
        yield journal, sleeps


def manual(profit: float, trades: int = 1) -> dict:
    return {"profit": profit, "trades_count": trades, "notes": None, "tags": []}


def round_trip(symbol: str = "AAPL", buy: float = 100, sell: float = 110) -> list[TradeEntry]:
    return [
        TradeEntry(transaction_type="Buy", symbol=symbol, quantity=10, price=buy),
        TradeEntry(transaction_type="Sell", symbol=symbol, quantity=10, price=sell),
    ]


class TestManualDays:
    """
    **Feature: daybook, Property 32: Save Then Re-fetch**

    Saves upsert by date and the cached list is replaced by a re-fetch.
    """

    def test_save_and_summary(self, setup):
        journal, _ = setup
        for offset, profit in enumerate([100, 50, -20, 30, 10], start=1):
            journal.save_trade_day(date(2024, 1, offset), manual(profit, 2))

        stats = journal.summary("all-time")

        assert len(journal.days) == 5
        assert stats.profit == 170
        assert stats.win_rate == 80
        assert stats.longest_streak.start_date == date(2024, 1, 4)

    def test_resave_overwrites(self, setup):
        journal, _ = setup
        journal.save_trade_day(date(2024, 1, 2), manual(10))
        journal.save_trade_day(date(2024, 1, 2), manual(-5, 3))

        assert len(journal.days) == 1
        assert journal.find_day(date(2024, 1, 2)).profit == -5

    def test_delete(self, setup):
        journal, _ = setup
        journal.save_trade_day(date(2024, 1, 2), manual(10))

        assert journal.delete_trade_day(date(2024, 1, 2))
        assert journal.days == []
        assert not journal.delete_trade_day(date(2024, 1, 2))

    def test_requires_session(self, setup):
        journal, _ = setup
        journal.sessions.sign_out()

        with pytest.raises(SessionExpiredError):
            journal.save_trade_day(date(2024, 1, 2), manual(10))

    def test_month_views(self, setup):
        journal, _ = setup
        journal.save_trade_day(date(2024, 1, 31), manual(10))
        journal.save_trade_day(date(2024, 2, 1), manual(-4))

        assert [d.date for d in journal.month_days(2024, 2)] == [date(2024, 2, 1)]
        assert journal.month_stats(2024, 1).profit == 10


class TestDetailedDays:
    """
    **Feature: daybook, Property 33: Detailed Save Derivation**

    Lots are validated before saving and the day's totals come back from
    the backend after the re-fetch delay.
    """

    def test_save_entries_creates_day(self, setup):
        journal, sleeps = setup

        saved = journal.save_trade_entries(date(2024, 1, 2), round_trip())

        assert sleeps == [0.5]
        assert saved.profit == 100
        assert saved.trades_count == 1
        assert saved.entry_mode == "detailed"
        assert len(journal.fetch_entries(date(2024, 1, 2))) == 2

    def test_invalid_entries_never_saved(self, setup):
        journal, sleeps = setup

        with pytest.raises(EntryValidationError):
            journal.save_trade_entries(date(2024, 1, 2), round_trip()[:1])

        assert sleeps == []
        assert journal.fetch_trade_days() == []

    def test_editor_reopens_detailed(self, setup):
        journal, _ = setup
        journal.save_trade_entries(date(2024, 1, 2), round_trip())

        editor = journal.load_editor(date(2024, 1, 2))

        assert editor.mode == "detailed"
        assert len(editor.entries) == 2

    def test_manual_save_drops_lots(self, setup):
        journal, _ = setup
        journal.save_trade_entries(date(2024, 1, 2), round_trip())

        journal.save_trade_day(date(2024, 1, 2), manual(7))

        assert journal.fetch_entries(date(2024, 1, 2)) == []
        assert journal.find_day(date(2024, 1, 2)).entry_mode == "manual"
        assert journal.load_editor(date(2024, 1, 2)).mode == "manual"

    def test_delete_single_lot_rederives_day(self, setup):
        journal, sleeps = setup
        lots = round_trip() + round_trip("TSLA", buy=200, sell=190)
        journal.save_trade_entries(date(2024, 1, 2), lots)

        updated = journal.delete_trade_entry(date(2024, 1, 2), 3)

        remaining = journal.fetch_entries(date(2024, 1, 2))
        assert [(e.symbol, e.transaction_type) for e in remaining] == [
            ("AAPL", "Buy"),
            ("AAPL", "Sell"),
            ("TSLA", "Buy"),
        ]
        assert updated.profit == -1900
        assert updated.trades_count == 1
        assert sleeps == [0.5, 0.5]

    def test_delete_missing_lot(self, setup):
        journal, sleeps = setup
        journal.save_trade_entries(date(2024, 1, 2), round_trip())

        with pytest.raises(FieldValidationError, match="No lot number 3"):
            journal.delete_trade_entry(date(2024, 1, 2), 2)

        assert len(journal.fetch_entries(date(2024, 1, 2))) == 2
        assert sleeps == [0.5]


class TestSharing:
    """
    **Feature: daybook, Property 34: Stable Share Links**

    The share token is created once and resolves to a masked summary.
    """

    def test_link_is_stable(self, setup):
        journal, _ = setup

        first = journal.get_or_create_share_link("https://daybook.example")
        second = journal.get_or_create_share_link("https://daybook.example")

        assert first == second
        assert first.startswith("https://daybook.example/share/")

    def test_shared_summary(self, setup):
        journal, _ = setup
        journal.save_trade_day(date(2024, 1, 2), manual(25, 2))
        share_id = journal.get_or_create_share_link().rsplit("/", 1)[-1]

        summary = load_shared_summary(journal.backend, share_id)

        assert summary.email == "tra***@example.com"
        assert summary.stats().profit == 25

    def test_unknown_share(self, setup):
        journal, _ = setup

        with pytest.raises(ShareNotFoundError, match="Share link not found"):
            load_shared_summary(journal.backend, "missing")


class TestWatch:
    """
    **Feature: daybook, Property 35: Change Events Re-fetch**

    Change events trigger a re-fetch until the journal is closed.
    """

    def test_events_refetch_until_closed(self, setup):
        journal, _ = setup
        seen = []
        journal.watch(lambda days: seen.append(len(days)))

        journal.save_trade_day(date(2024, 1, 2), manual(10))
        journal.close()
        journal.backend.upsert_trade_day(
            journal.sessions.require().user_id,
            journal.days[0].model_copy(update={"profit": 99.0}),
        )

        assert seen == [1]
