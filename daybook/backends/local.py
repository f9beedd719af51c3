"""Local SQLite backend.

Plays the role of the hosted backend when running offline: stores
records in a ``DataStore``, issues bearer sessions, derives a day's
aggregates whenever its detailed entries change, and notifies
in-process subscribers after every write.
"""

import hashlib
import hmac
import logging
import secrets
import sqlite3
import threading
from datetime import datetime, timedelta
from typing import Optional

from daybook.backends.base import BaseBackend, ChangeCallback, ChangeEvent, Subscription
from daybook.db.store import DataStore
from daybook.errors import AuthError, BackendError, FieldValidationError
from daybook.models import Profile, Session, TradeDay, TradeEntry

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TTL = timedelta(hours=1)
REFRESH_TOKEN_TTL = timedelta(days=30)
ONE_TIME_TOKEN_TTL = timedelta(hours=1)
MIN_PASSWORD_LENGTH = 6
PBKDF2_ITERATIONS = 200_000


def hash_password(password: str, salt: Optional[bytes] = None) -> str:
    """Hash a password as ``pbkdf2_sha256$iterations$salt$digest``."""
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt.hex()}${digest.hex()}"


def verify_password(password: str, encoded: Optional[str]) -> bool:
    """Check a password against an encoded hash."""
    if not encoded:
        return False
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), bytes.fromhex(salt), int(iterations)
    )
    return hmac.compare_digest(digest.hex(), expected)


def _check_password(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise FieldValidationError(
            "password", f"Password should be at least {MIN_PASSWORD_LENGTH} characters"
        )


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise FieldValidationError("email", "Enter a valid email address")
    return email


class LocalBackend(BaseBackend):
    """SQLite implementation of the record store and auth collaborator."""

    def __init__(self, data_store: DataStore):
        """Initialize the local backend.

        Args:
            data_store: DataStore instance for persistence.
        """
        self._data_store = data_store
        self._subscribers: dict[str, list[ChangeCallback]] = {}
        self._lock = threading.Lock()

    def _store_call(self, action: str, fn, *args):
        try:
            return fn(*args)
        except sqlite3.Error as e:
            logger.error("Local store failed to %s: %s", action, e)
            raise BackendError(f"Failed to {action}: {e}") from e

    # ==================== Sessions ====================

    def _issue_session(self, user_id: str, email: str) -> Session:
        now = datetime.now()
        access_token = secrets.token_urlsafe(32)
        refresh_token = secrets.token_urlsafe(32)
        self._data_store.save_token(access_token, user_id, "access", now + ACCESS_TOKEN_TTL)
        self._data_store.save_token(refresh_token, user_id, "refresh", now + REFRESH_TOKEN_TTL)
        logger.debug("Issued session for user %s", user_id)
        return Session(
            access_token=access_token,
            refresh_token=refresh_token,
            user_id=user_id,
            email=email,
            expires_at=now + ACCESS_TOKEN_TTL,
        )

    def _one_time_token(self, user_id: str, kind: str, payload: Optional[str] = None) -> str:
        token = secrets.token_urlsafe(24)
        self._data_store.save_token(
            token, user_id, kind, datetime.now() + ONE_TIME_TOKEN_TTL, payload
        )
        return token

    def is_session_valid(self, session: Session) -> bool:
        """Whether the session's access token is known and unexpired."""
        found = self._data_store.get_token(session.access_token, "access")
        return found is not None and found["user_id"] == session.user_id

    # ==================== Auth ====================

    def sign_up(self, email: str, password: str) -> Optional[Session]:
        email = _normalize_email(email)
        _check_password(password)

        if self._data_store.get_user_by_email(email) is not None:
            raise AuthError("User already registered")

        user_id = self._store_call("create user", self._data_store.create_user, email, hash_password(password))
        return self._issue_session(user_id, email)

    def sign_in_with_password(self, email: str, password: str) -> Session:
        email = _normalize_email(email)
        user = self._data_store.get_user_by_email(email)
        if user is None or not verify_password(password, user["password_hash"]):
            raise AuthError("Invalid login credentials")
        return self._issue_session(user["id"], user["email"])

    def send_magic_link(self, email: str) -> Optional[str]:
        email = _normalize_email(email)
        user = self._data_store.get_user_by_email(email)
        if user is None:
            # Passwordless sign-in registers unknown emails
            user_id = self._store_call("create user", self._data_store.create_user, email, None)
        else:
            user_id = user["id"]
        return self._one_time_token(user_id, "magic_link")

    def verify_magic_link(self, email: str, token: str) -> Session:
        email = _normalize_email(email)
        user = self._data_store.get_user_by_email(email)
        found = self._data_store.consume_token(token, "magic_link")
        if user is None or found is None or found["user_id"] != user["id"]:
            raise AuthError("Magic link is invalid or has expired")
        return self._issue_session(user["id"], user["email"])

    def send_password_reset(self, email: str) -> Optional[str]:
        email = _normalize_email(email)
        user = self._data_store.get_user_by_email(email)
        if user is None:
            # Do not reveal which emails are registered
            return None
        return self._one_time_token(user["id"], "recovery")

    def reset_password(self, email: str, token: str, new_password: str) -> Session:
        email = _normalize_email(email)
        _check_password(new_password)
        user = self._data_store.get_user_by_email(email)
        found = self._data_store.consume_token(token, "recovery")
        if user is None or found is None or found["user_id"] != user["id"]:
            raise AuthError("Password reset link is invalid or has expired")

        self._data_store.update_user_password(user["id"], hash_password(new_password))
        self._data_store.revoke_tokens(user["id"], ("access", "refresh"))
        return self._issue_session(user["id"], user["email"])

    def change_email(self, session: Session, new_email: str) -> None:
        new_email = _normalize_email(new_email)
        if not self.is_session_valid(session):
            raise AuthError("Session is invalid or has expired")
        existing = self._data_store.get_user_by_email(new_email)
        if existing is not None and existing["id"] != session.user_id:
            raise AuthError("A user with this email address has already been registered")
        self._store_call("change email", self._data_store.update_user_email, session.user_id, new_email)

    def refresh_session(self, session: Session) -> Session:
        found = self._data_store.consume_token(session.refresh_token, "refresh")
        if found is None or found["user_id"] != session.user_id:
            raise AuthError("Invalid Refresh Token")
        user = self._data_store.get_user(session.user_id)
        if user is None:
            raise AuthError("User not found")
        self._data_store.revoke_tokens(session.user_id, ("access",))
        return self._issue_session(user["id"], user["email"])

    def sign_out(self, session: Session) -> None:
        self._data_store.revoke_tokens(session.user_id, ("access", "refresh"))

    # ==================== Trade days ====================

    def fetch_trade_days(self, user_id: str) -> list[TradeDay]:
        return self._store_call("fetch trade days", self._data_store.get_trade_days, user_id)

    def upsert_trade_day(self, user_id: str, day: TradeDay) -> TradeDay:
        existed = self._data_store.get_trade_day(user_id, day.date) is not None
        stored = self._store_call("save trade day", self._data_store.upsert_trade_day, user_id, day)
        self._notify(ChangeEvent("trades", "UPDATE" if existed else "INSERT", user_id))
        return stored

    def delete_trade_day(self, trade_id: str) -> None:
        owner = self._data_store.get_trade_owner(trade_id)
        self._store_call("delete trade day", self._data_store.delete_trade_day, trade_id)
        if owner:
            self._notify(ChangeEvent("trades", "DELETE", owner))

    # ==================== Trade entries ====================

    def fetch_entries(self, trade_id: str) -> list[TradeEntry]:
        return self._store_call("fetch trade entries", self._data_store.get_entries, trade_id)

    def replace_entries(self, trade_id: str, entries: list[TradeEntry]) -> None:
        owner = self._data_store.get_trade_owner(trade_id)
        if owner is None:
            raise BackendError(f"Trade {trade_id} not found")
        self._store_call("save trade entries", self._data_store.replace_entries, trade_id, entries)
        self._notify(ChangeEvent("trades", "UPDATE", owner))

    def delete_entries(self, trade_id: str) -> None:
        owner = self._data_store.get_trade_owner(trade_id)
        self._store_call("delete trade entries", self._data_store.delete_entries, trade_id)
        if owner:
            self._notify(ChangeEvent("trade_entries", "DELETE", owner))

    def delete_entry(self, entry_id: str) -> None:
        trade_id = self._store_call("delete trade entry", self._data_store.delete_entry, entry_id)
        owner = self._data_store.get_trade_owner(trade_id) if trade_id else None
        if owner:
            self._notify(ChangeEvent("trades", "UPDATE", owner))

    # ==================== Profiles ====================

    def get_profile(self, user_id: str) -> Optional[Profile]:
        return self._store_call("fetch profile", self._data_store.get_profile, user_id)

    def get_profile_by_share_id(self, share_id: str) -> Optional[Profile]:
        return self._store_call(
            "fetch profile", self._data_store.get_profile_by_share_id, share_id
        )

    def set_share_id(self, user_id: str, share_id: str) -> None:
        self._store_call("save share link", self._data_store.set_share_id, user_id, share_id)

    # ==================== Changes ====================

    def subscribe(self, user_id: str, callback: ChangeCallback) -> Subscription:
        with self._lock:
            self._subscribers.setdefault(user_id, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(user_id, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return Subscription(unsubscribe)

    def _notify(self, event: ChangeEvent) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(event.user_id, []))
        for callback in callbacks:
            callback(event)
