"""Base backend interface for daybook.

A backend is the external collaborator that stores records, issues
sessions and announces changes. daybook never owns the data itself.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, NamedTuple, Optional

from daybook.models import Profile, Session, TradeDay, TradeEntry

logger = logging.getLogger(__name__)


class ChangeEvent(NamedTuple):
    """Notification that a user's records changed."""

    table: str
    event: str  # INSERT, UPDATE or DELETE
    user_id: str


ChangeCallback = Callable[[ChangeEvent], None]


class Subscription:
    """Handle returned by ``subscribe``. Call ``unsubscribe`` to stop."""

    def __init__(self, unsubscribe: Callable[[], None]):
        self._unsubscribe = unsubscribe
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._unsubscribe()


class PollingWatcher(threading.Thread):
    """Background thread that calls ``check`` every ``interval`` seconds.

    Used where the backend cannot push change events to this client.
    """

    def __init__(self, check: Callable[[], None], interval: float):
        super().__init__(daemon=True, name="daybook-poller")
        self._check = check
        self._interval = interval
        self._stopped = threading.Event()

    def run(self) -> None:
        while not self._stopped.wait(self._interval):
            try:
                self._check()
            except Exception as e:
                # A failed poll is retried on the next tick
                logger.warning("Change poll failed: %s", e)

    def stop(self) -> None:
        self._stopped.set()


class BaseBackend(ABC):
    """Abstract base class for backend implementations.

    All backends (local SQLite, Supabase) must inherit from this class
    and implement all abstract methods. Data methods raise
    ``BackendError`` on failure; auth methods raise ``AuthError``.
    """

    def use_session(self, session: Optional[Session]) -> None:
        """Attach (or detach) the bearer session used for data calls."""

    # ==================== Auth ====================

    @abstractmethod
    def sign_up(self, email: str, password: str) -> Optional[Session]:
        """Register with email and password.

        Returns:
            A session, or None if the account must be confirmed by email
            before signing in.
        """

    @abstractmethod
    def sign_in_with_password(self, email: str, password: str) -> Session:
        """Sign in with email and password."""

    @abstractmethod
    def send_magic_link(self, email: str) -> Optional[str]:
        """Start a passwordless sign-in.

        Returns:
            The one-time token when the backend hands it to the caller
            directly (local), otherwise None (it is emailed).
        """

    @abstractmethod
    def verify_magic_link(self, email: str, token: str) -> Session:
        """Complete a passwordless sign-in with the emailed token."""

    @abstractmethod
    def send_password_reset(self, email: str) -> Optional[str]:
        """Start a password reset. Returns the token like ``send_magic_link``."""

    @abstractmethod
    def reset_password(self, email: str, token: str, new_password: str) -> Session:
        """Complete a password reset and sign in."""

    @abstractmethod
    def change_email(self, session: Session, new_email: str) -> None:
        """Request an email change for the signed-in user."""

    @abstractmethod
    def refresh_session(self, session: Session) -> Session:
        """Exchange the refresh token for a new session."""

    @abstractmethod
    def sign_out(self, session: Session) -> None:
        """Invalidate the session."""

    # ==================== Trade days ====================

    @abstractmethod
    def fetch_trade_days(self, user_id: str) -> list[TradeDay]:
        """Get all trade days for a user, ordered by date ascending."""

    @abstractmethod
    def upsert_trade_day(self, user_id: str, day: TradeDay) -> TradeDay:
        """Insert or update the record for (user, date). Last write wins."""

    @abstractmethod
    def delete_trade_day(self, trade_id: str) -> None:
        """Delete a trade day."""

    # ==================== Trade entries ====================

    @abstractmethod
    def fetch_entries(self, trade_id: str) -> list[TradeEntry]:
        """Get a trade day's detailed entries in creation order."""

    @abstractmethod
    def replace_entries(self, trade_id: str, entries: list[TradeEntry]) -> None:
        """Replace a trade day's entries.

        The parent day's profit and trade count are derived by the
        backend after the write, not by the caller.
        """

    @abstractmethod
    def delete_entries(self, trade_id: str) -> None:
        """Delete all entries of a trade day."""

    @abstractmethod
    def delete_entry(self, entry_id: str) -> None:
        """Delete a single entry."""

    # ==================== Profiles ====================

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[Profile]:
        """Get a user's profile."""

    @abstractmethod
    def get_profile_by_share_id(self, share_id: str) -> Optional[Profile]:
        """Get the profile owning a share token."""

    @abstractmethod
    def set_share_id(self, user_id: str, share_id: str) -> None:
        """Store a share token on a user's profile."""

    # ==================== Changes ====================

    @abstractmethod
    def subscribe(self, user_id: str, callback: ChangeCallback) -> Subscription:
        """Call ``callback`` whenever the user's trade records change."""
