"""Trade journal service.

Coordinates the backend, the signed-in session and the pure analytics.
The CLI talks to this module only.
"""

import logging
import time
from datetime import date, datetime
from typing import Callable, Optional, Union

from daybook.analytics import (
    calculate_month_stats,
    calculate_stats,
    month_days,
    validate_entries,
)
from daybook.backends.base import BaseBackend, ChangeEvent, PollingWatcher, Subscription
from daybook.config import Settings
from daybook.editor import TradeDayEditor
from daybook.errors import DaybookError, FieldValidationError, ShareNotFoundError
from daybook.models import Stats, TradeDay, TradeEntry
from daybook.retry import RetryPolicy
from daybook.session import SessionManager
from daybook.share import SharedSummary, generate_share_id, mask_email, share_url

logger = logging.getLogger(__name__)

DaysCallback = Callable[[list[TradeDay]], None]


def _retry_policy(settings: Settings, sleep: Callable[[float], None]) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.retry.max_attempts,
        base_delay=settings.retry.base_delay,
        backoff=settings.retry.backoff,
        jitter=settings.retry.jitter,
        sleep=sleep,
    )


class TradeJournal:
    """A signed-in user's trade journal."""

    def __init__(
        self,
        backend: BaseBackend,
        sessions: SessionManager,
        settings: Optional[Settings] = None,
        retry: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the journal.

        Args:
            backend: Record store and auth collaborator.
            sessions: Session manager holding the signed-in user.
            settings: Loaded settings (defaults when omitted).
            retry: Retry policy for backend calls.
            sleep: Sleep function (injectable for tests).
        """
        self.backend = backend
        self.sessions = sessions
        self.settings = settings or Settings()
        self._sleep = sleep
        self.retry = retry or _retry_policy(self.settings, sleep)
        self._days: list[TradeDay] = []
        self._mounted = True
        self._subscription: Optional[Subscription] = None
        self._watcher: Optional[PollingWatcher] = None

    @property
    def days(self) -> list[TradeDay]:
        """Trade days from the most recent fetch."""
        return list(self._days)

    def _user_id(self) -> str:
        self.sessions.refresh_if_needed()
        return self.sessions.require().user_id

    # ==================== Trade days ====================

    def fetch_trade_days(self) -> list[TradeDay]:
        """Fetch the user's trade days, replacing the cached list.

        Results that arrive after ``close`` are discarded.
        """
        user_id = self._user_id()
        days = self.retry.call(self.backend.fetch_trade_days, user_id)
        if self._mounted:
            self._days = days
            logger.debug("Fetched %d trade days", len(days))
        return days

    def find_day(self, day: date) -> Optional[TradeDay]:
        """Cached record for a date, fetching once if the cache is empty."""
        if not self._days:
            self.fetch_trade_days()
        for record in self._days:
            if record.date == day:
                return record
        return None

    def save_trade_day(self, day: date, payload: dict) -> TradeDay:
        """Save a manually entered day.

        Any detailed lots previously saved for the date are removed so the
        manual values stand on their own.

        Args:
            day: Trading date.
            payload: Fields from ``TradeDayEditor.manual_payload``.

        Raises:
            SessionExpiredError: If nobody is signed in.
        """
        user_id = self._user_id()
        existing = self.find_day(day)
        if existing is not None and existing.entry_mode == "detailed" and existing.id:
            self.retry.call(self.backend.delete_entries, existing.id)

        record = TradeDay(
            user_id=user_id,
            date=day,
            profit=payload["profit"],
            trades_count=payload["trades_count"],
            notes=payload.get("notes"),
            tags=payload.get("tags", []),
            entry_mode="manual",
        )
        saved = self.retry.call(self.backend.upsert_trade_day, user_id, record)
        logger.info("Saved trade day %s", day.isoformat())
        self.fetch_trade_days()
        return saved

    def delete_trade_day(self, day: date) -> bool:
        """Delete a day and its lots.

        Returns:
            True if a record existed for the date.
        """
        self._user_id()
        existing = self.find_day(day)
        if existing is None or not existing.id:
            return False

        self.retry.call(self.backend.delete_entries, existing.id)
        self.retry.call(self.backend.delete_trade_day, existing.id)
        logger.info("Deleted trade day %s", day.isoformat())
        self.fetch_trade_days()
        return True

    # ==================== Detailed entries ====================

    def fetch_entries(self, day: date) -> list[TradeEntry]:
        existing = self.find_day(day)
        if existing is None or not existing.id:
            return []
        return self.retry.call(self.backend.fetch_entries, existing.id)

    def save_trade_entries(self, day: date, entries: list[TradeEntry]) -> Optional[TradeDay]:
        """Save a day's detailed lots.

        The lots are validated before any backend call. A missing day is
        created first with zero profit. The backend derives the day's
        totals, so the journal waits ``refetch_delay`` seconds before
        re-fetching.

        Returns:
            The day as re-fetched after the save.

        Raises:
            EntryValidationError: If the lots do not reconcile.
            SessionExpiredError: If nobody is signed in.
        """
        validate_entries(entries)
        user_id = self._user_id()

        existing = self.find_day(day)
        if existing is None:
            existing = self.retry.call(
                self.backend.upsert_trade_day,
                user_id,
                TradeDay(user_id=user_id, date=day, profit=0.0, trades_count=0, entry_mode="detailed"),
            )

        self.retry.call(self.backend.replace_entries, existing.id, entries)
        logger.info("Saved %d entries for %s", len(entries), day.isoformat())

        self._sleep(self.settings.journal.refetch_delay)
        self.fetch_trade_days()
        return self.find_day(day)

    def delete_trade_entry(self, day: date, position: int) -> Optional[TradeDay]:
        """Delete one saved lot of a day.

        The backend re-derives the day's totals from the remaining lots,
        so the journal waits ``refetch_delay`` seconds before re-fetching.

        Args:
            day: Trading date.
            position: Zero-based index into the day's saved lots.

        Returns:
            The day as re-fetched after the delete.

        Raises:
            FieldValidationError: If there is no lot at ``position``.
        """
        self._user_id()
        entries = self.fetch_entries(day)
        if not 0 <= position < len(entries) or not entries[position].id:
            raise FieldValidationError("remove", f"No lot number {position + 1}")

        self.retry.call(self.backend.delete_entry, entries[position].id)
        logger.info("Deleted lot %d of %s", position + 1, day.isoformat())

        self._sleep(self.settings.journal.refetch_delay)
        self.fetch_trade_days()
        return self.find_day(day)

    def load_editor(self, day: date) -> TradeDayEditor:
        """Editor for a date, pre-filled from the saved record and lots."""
        return TradeDayEditor(day, self.find_day(day), self.fetch_entries(day))

    # ==================== Statistics ====================

    def summary(
        self,
        period: str = "all-time",
        now: Union[date, datetime, None] = None,
    ) -> Stats:
        """Statistics over the fetched days for a period."""
        return calculate_stats(self._days, period, now)

    def month_stats(self, year: int, month: int) -> Stats:
        return calculate_month_stats(self._days, year, month)

    def month_days(self, year: int, month: int) -> list[TradeDay]:
        return month_days(self._days, year, month)

    # ==================== Sharing ====================

    def get_or_create_share_link(self, base_url: Optional[str] = None) -> str:
        """Public link to the user's summary, creating a token on first use."""
        user_id = self._user_id()
        profile = self.retry.call(self.backend.get_profile, user_id)
        share_id = profile.share_id if profile is not None else None

        if not share_id:
            share_id = generate_share_id()
            self.retry.call(self.backend.set_share_id, user_id, share_id)
            logger.info("Created share link for user %s", user_id)

        return share_url(base_url or self.settings.journal.share_base_url, share_id)

    # ==================== Changes ====================

    def _refresh(self, callback: DaysCallback) -> None:
        if not self._mounted:
            return
        days = self.fetch_trade_days()
        if self._mounted:
            callback(days)

    def watch(self, callback: DaysCallback) -> None:
        """Re-fetch and call back on every change event and poll tick.

        Stops when ``close`` is called.
        """
        user_id = self._user_id()

        def on_change(event: ChangeEvent) -> None:
            logger.debug("Change event %s on %s", event.event, event.table)
            try:
                self._refresh(callback)
            except DaybookError as e:
                # The next event or poll tick fetches again
                logger.warning("Refresh after change failed: %s", e)

        self._subscription = self.backend.subscribe(user_id, on_change)
        self._watcher = PollingWatcher(
            lambda: self._refresh(callback), self.settings.journal.poll_interval
        )
        self._watcher.start()

    def close(self) -> None:
        """Stop watching and discard any results still in flight."""
        self._mounted = False
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None


def load_shared_summary(
    backend: BaseBackend,
    share_id: str,
    retry: Optional[RetryPolicy] = None,
) -> SharedSummary:
    """Load the public summary behind a share token.

    Raises:
        ShareNotFoundError: If no profile owns the token.
    """
    retry = retry or RetryPolicy()
    profile = retry.call(backend.get_profile_by_share_id, share_id)
    if profile is None:
        raise ShareNotFoundError()

    days = retry.call(backend.fetch_trade_days, profile.id)
    return SharedSummary(
        share_id=share_id,
        email=mask_email(profile.email),
        updated_at=profile.updated_at,
        days=days,
    )
