"""Auth session state.

The session is passed explicitly to whoever needs it and persisted to a
token file, so every process on the same profile shares one sign-in.
Deleting the file signs all of them out.
"""

import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from daybook.backends.base import BaseBackend
from daybook.errors import AuthError, SessionExpiredError
from daybook.models import Session

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"
AUTH_ERROR = "AUTH_ERROR"

AuthListener = Callable[[str, Optional[Session]], None]

DEFAULT_REFRESH_MARGIN = timedelta(minutes=5)


class SessionManager:
    """Holds the signed-in session and tells listeners when it changes."""

    def __init__(self, backend: BaseBackend, token_path: Path):
        """Initialize the session manager.

        Args:
            backend: Auth collaborator used for refresh and sign-out.
            token_path: File the session is persisted to.
        """
        self.backend = backend
        self.token_path = token_path
        self._listeners: list[AuthListener] = []
        self._session: Optional[Session] = self._load_session()
        self.backend.use_session(self._session)

    def _save_session(self) -> None:
        """Save session tokens to file."""
        if self._session is None:
            return

        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        self.token_path.write_text(self._session.model_dump_json())

    def _load_session(self) -> Optional[Session]:
        """Load session tokens from file.

        Returns:
            The stored session, or None if there is no usable one.
        """
        if not self.token_path.exists():
            return None

        try:
            return Session.model_validate(json.loads(self.token_path.read_text()))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.token_path, e)
            return None

    def _clear_session(self) -> None:
        """Clear stored session tokens."""
        self._session = None
        if self.token_path.exists():
            self.token_path.unlink()

    def _emit(self, event: str) -> None:
        logger.debug("Auth event %s", event)
        for listener in list(self._listeners):
            listener(event, self._session)

    def on_change(self, listener: AuthListener) -> Callable[[], None]:
        """Register an auth state listener.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _reload(self) -> None:
        """Pick up a session another process stored or removed."""
        if not self.token_path.exists():
            if self._session is not None:
                self._session = None
                self.backend.use_session(None)
                self._emit(SIGNED_OUT)
            return

        stored = self._load_session()
        if stored is None or stored == self._session:
            return

        was_signed_in = self._session is not None
        self._session = stored
        self.backend.use_session(stored)
        self._emit(TOKEN_REFRESHED if was_signed_in else SIGNED_IN)

    def current(self) -> Optional[Session]:
        """The active session, re-read from disk.

        A session removed by another process counts as signed out, and one
        refreshed by another process replaces the one held here.
        """
        self._reload()
        return self._session

    def require(self) -> Session:
        """The active session.

        Raises:
            SessionExpiredError: If nobody is signed in.
        """
        session = self.current()
        if session is None:
            raise SessionExpiredError()
        return session

    def sign_in(self, session: Session) -> None:
        self._session = session
        self._save_session()
        self.backend.use_session(session)
        self._emit(SIGNED_IN)

    def sign_out(self) -> None:
        """Sign out locally and with the backend.

        The local session is cleared even when the backend call fails.
        """
        session = self._session
        self._clear_session()
        self.backend.use_session(None)
        try:
            if session is not None:
                self.backend.sign_out(session)
        finally:
            self._emit(SIGNED_OUT)

    def expire(self) -> None:
        """Drop a session the backend no longer accepts."""
        self._clear_session()
        self.backend.use_session(None)
        self._emit(AUTH_ERROR)

    def refresh_if_needed(self, margin: timedelta = DEFAULT_REFRESH_MARGIN) -> Optional[Session]:
        """Refresh the session if it expires within ``margin``.

        Raises:
            SessionExpiredError: If the refresh is rejected. The stored
                session is cleared first.
        """
        session = self.current()
        if session is None or not session.expires_within(margin):
            return session

        try:
            refreshed = self.backend.refresh_session(session)
        except AuthError as e:
            # Another process may have spent the refresh token first.
            self._reload()
            if self._session is not None and self._session != session:
                return self._session
            logger.warning("Session refresh failed: %s", e)
            self.expire()
            raise SessionExpiredError() from e

        self._session = refreshed
        self._save_session()
        self.backend.use_session(refreshed)
        self._emit(TOKEN_REFRESHED)
        return refreshed
