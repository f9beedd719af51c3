"""Supabase backend implementation using supabase-py.

Expects the hosted project to provide ``trades``, ``trade_entries`` and
``profiles`` tables with row-level security keyed on ``auth.uid()``, and
a database trigger that re-derives ``trades.profit`` and
``trades.trades_count`` after ``trade_entries`` change.
"""

import hashlib
import json
import logging
from datetime import date, datetime
from typing import Any, Optional

from supabase import Client, create_client

from daybook.backends.base import (
    BaseBackend,
    ChangeCallback,
    ChangeEvent,
    PollingWatcher,
    Subscription,
)
from daybook.errors import AuthError, BackendError
from daybook.models import Profile, Session, TradeDay, TradeEntry

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    # PostgREST returns ISO 8601 with a trailing Z
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _row_to_trade_day(row: dict) -> TradeDay:
    return TradeDay(
        id=str(row["id"]),
        user_id=row.get("user_id"),
        date=date.fromisoformat(row["date"]),
        profit=row.get("profit") or 0.0,
        trades_count=row.get("trades_count") or 0,
        notes=row.get("notes"),
        tags=row.get("tags") or [],
        entry_mode=row.get("entry_mode"),
    )


def _row_to_entry(row: dict) -> TradeEntry:
    return TradeEntry(
        id=str(row["id"]) if row.get("id") is not None else None,
        trade_id=str(row["trade_id"]) if row.get("trade_id") is not None else None,
        transaction_type=row["transaction_type"],
        symbol=row["symbol"],
        quantity=row["quantity"],
        price=row["price"],
        commission=row.get("commission") or 0.0,
        notes=row.get("notes"),
        tags=row.get("tags") or [],
        created_at=_parse_timestamp(row.get("created_at")),
    )


def _row_to_profile(row: dict) -> Profile:
    return Profile(
        id=str(row["id"]),
        email=row.get("email"),
        share_id=row.get("share_id"),
        updated_at=_parse_timestamp(row.get("updated_at")),
    )


class SupabaseBackend(BaseBackend):
    """Hosted backend using Supabase Postgres, Auth and PostgREST."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        poll_interval: float = 30.0,
        redirect_url: Optional[str] = None,
        client: Optional[Client] = None,
    ):
        """Initialize the Supabase backend.

        Args:
            url: Supabase project URL.
            anon_key: Project anon (public) API key.
            poll_interval: Seconds between change polls for ``subscribe``.
            redirect_url: Where emailed auth links should land.
            client: Pre-built client (mainly for tests).
        """
        if client is None and (not url or not anon_key):
            raise AuthError("Missing Supabase URL or anon key")
        self._client = client or create_client(url, anon_key)
        self._anon_key = anon_key
        self._poll_interval = poll_interval
        self._redirect_url = redirect_url

    def use_session(self, session: Optional[Session]) -> None:
        if session is not None:
            self._client.postgrest.auth(session.access_token)
        elif self._anon_key:
            # Back to anonymous access, as a fresh client starts
            self._client.postgrest.auth(self._anon_key)

    def _to_session(self, response: Any) -> Session:
        session = getattr(response, "session", None)
        if session is None:
            raise AuthError("No session returned")
        user = getattr(session, "user", None) or getattr(response, "user", None)
        expires_at = getattr(session, "expires_at", None)
        return Session(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            user_id=str(user.id),
            email=getattr(user, "email", None),
            expires_at=(
                datetime.fromtimestamp(expires_at) if expires_at else datetime.now()
            ),
        )

    def _auth_call(self, action: str, fn, *args) -> Any:
        try:
            return fn(*args)
        except AuthError:
            raise
        except Exception as e:
            logger.error("Supabase auth failed to %s: %s", action, e)
            raise AuthError(str(e) or f"Failed to {action}") from e

    def _data_call(self, action: str, query) -> list[dict]:
        try:
            response = query.execute()
        except Exception as e:
            logger.error("Supabase failed to %s: %s", action, e)
            raise BackendError(f"Failed to {action}: {e}") from e
        logger.debug("Supabase %s ok", action)
        return response.data or []

    # ==================== Auth ====================

    def sign_up(self, email: str, password: str) -> Optional[Session]:
        response = self._auth_call(
            "sign up",
            self._client.auth.sign_up,
            {"email": email, "password": password},
        )
        if getattr(response, "session", None) is None:
            # Email confirmation is enabled on the project
            return None
        return self._to_session(response)

    def sign_in_with_password(self, email: str, password: str) -> Session:
        response = self._auth_call(
            "sign in",
            self._client.auth.sign_in_with_password,
            {"email": email, "password": password},
        )
        return self._to_session(response)

    def send_magic_link(self, email: str) -> Optional[str]:
        credentials: dict = {"email": email}
        if self._redirect_url:
            credentials["options"] = {"email_redirect_to": self._redirect_url}
        self._auth_call("send magic link", self._client.auth.sign_in_with_otp, credentials)
        return None

    def verify_magic_link(self, email: str, token: str) -> Session:
        response = self._auth_call(
            "verify magic link",
            self._client.auth.verify_otp,
            {"email": email, "token": token, "type": "email"},
        )
        return self._to_session(response)

    def send_password_reset(self, email: str) -> Optional[str]:
        options = {"redirect_to": self._redirect_url} if self._redirect_url else {}
        self._auth_call(
            "send password reset",
            self._client.auth.reset_password_for_email,
            email,
            options,
        )
        return None

    def reset_password(self, email: str, token: str, new_password: str) -> Session:
        response = self._auth_call(
            "verify reset token",
            self._client.auth.verify_otp,
            {"email": email, "token": token, "type": "recovery"},
        )
        session = self._to_session(response)
        self._auth_call(
            "update password",
            self._client.auth.update_user,
            {"password": new_password},
        )
        return session

    def change_email(self, session: Session, new_email: str) -> None:
        self._auth_call(
            "set session",
            self._client.auth.set_session,
            session.access_token,
            session.refresh_token,
        )
        # Supabase emails a confirmation link to the new address
        self._auth_call("change email", self._client.auth.update_user, {"email": new_email})

    def refresh_session(self, session: Session) -> Session:
        response = self._auth_call(
            "refresh session", self._client.auth.refresh_session, session.refresh_token
        )
        return self._to_session(response)

    def sign_out(self, session: Session) -> None:
        """Revoke the session's refresh token on the server.

        A new process holds no gotrue session, so the stored one is
        loaded before signing out.
        """
        self._auth_call(
            "set session",
            self._client.auth.set_session,
            session.access_token,
            session.refresh_token,
        )
        self._auth_call("sign out", self._client.auth.sign_out)

    # ==================== Trade days ====================

    def fetch_trade_days(self, user_id: str) -> list[TradeDay]:
        rows = self._data_call(
            "fetch trade days",
            self._client.table("trades")
            .select("*")
            .eq("user_id", user_id)
            .order("date"),
        )
        return [_row_to_trade_day(row) for row in rows]

    def upsert_trade_day(self, user_id: str, day: TradeDay) -> TradeDay:
        row = {
            "user_id": user_id,
            "date": day.date.isoformat(),
            "profit": day.profit,
            "trades_count": day.trades_count,
            "notes": day.notes,
            "tags": day.tags,
            "entry_mode": day.entry_mode,
        }
        rows = self._data_call(
            "save trade day",
            self._client.table("trades").upsert(row, on_conflict="user_id,date"),
        )
        if not rows:
            raise BackendError("Failed to save trade day: no row returned")
        return _row_to_trade_day(rows[0])

    def delete_trade_day(self, trade_id: str) -> None:
        self._data_call(
            "delete trade day",
            self._client.table("trades").delete().eq("id", trade_id),
        )

    # ==================== Trade entries ====================

    def fetch_entries(self, trade_id: str) -> list[TradeEntry]:
        rows = self._data_call(
            "fetch trade entries",
            self._client.table("trade_entries")
            .select("*")
            .eq("trade_id", trade_id)
            .order("created_at"),
        )
        return [_row_to_entry(row) for row in rows]

    def replace_entries(self, trade_id: str, entries: list[TradeEntry]) -> None:
        self.delete_entries(trade_id)
        if not entries:
            return
        rows = [
            {
                "trade_id": trade_id,
                "transaction_type": entry.transaction_type,
                "symbol": entry.symbol,
                "quantity": entry.quantity,
                "price": entry.price,
                "commission": entry.commission,
                "total_amount": entry.total_amount,
                "notes": entry.notes,
                "tags": entry.tags,
            }
            for entry in entries
        ]
        self._data_call(
            "save trade entries",
            self._client.table("trade_entries").insert(rows),
        )

    def delete_entries(self, trade_id: str) -> None:
        self._data_call(
            "delete trade entries",
            self._client.table("trade_entries").delete().eq("trade_id", trade_id),
        )

    def delete_entry(self, entry_id: str) -> None:
        self._data_call(
            "delete trade entry",
            self._client.table("trade_entries").delete().eq("id", entry_id),
        )

    # ==================== Profiles ====================

    def get_profile(self, user_id: str) -> Optional[Profile]:
        rows = self._data_call(
            "fetch profile",
            self._client.table("profiles").select("*").eq("id", user_id).limit(1),
        )
        return _row_to_profile(rows[0]) if rows else None

    def get_profile_by_share_id(self, share_id: str) -> Optional[Profile]:
        rows = self._data_call(
            "fetch profile",
            self._client.table("profiles").select("*").eq("share_id", share_id).limit(1),
        )
        return _row_to_profile(rows[0]) if rows else None

    def set_share_id(self, user_id: str, share_id: str) -> None:
        self._data_call(
            "save share link",
            self._client.table("profiles").update({"share_id": share_id}).eq("id", user_id),
        )

    # ==================== Changes ====================

    def _fingerprint(self, user_id: str) -> str:
        days = self.fetch_trade_days(user_id)
        payload = json.dumps([day.model_dump(mode="json") for day in days], sort_keys=True)
        return hashlib.sha256(payload.encode()).hexdigest()

    def subscribe(self, user_id: str, callback: ChangeCallback) -> Subscription:
        """Poll the user's trades and call back when they change.

        The synchronous client has no realtime channel, so changes are
        detected by comparing snapshots every ``poll_interval`` seconds.
        """
        last = {"fingerprint": self._fingerprint(user_id)}

        def check() -> None:
            current = self._fingerprint(user_id)
            if current != last["fingerprint"]:
                last["fingerprint"] = current
                callback(ChangeEvent("trades", "UPDATE", user_id))

        watcher = PollingWatcher(check, self._poll_interval)
        watcher.start()
        return Subscription(watcher.stop)
