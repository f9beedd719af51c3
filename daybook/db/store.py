"""SQLite data store for daybook."""

import json
import sqlite3
import uuid
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from daybook.analytics.reconcile import day_profit, day_trade_count
from daybook.models import Profile, TradeDay, TradeEntry


class DataStore:
    """SQLite-based data store for daybook."""

    REQUIRED_TABLES = [
        "users",
        "profiles",
        "trades",
        "trade_entries",
        "auth_tokens",
    ]

    def __init__(self, db_path: Path):
        """Initialize the data store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_schema(self) -> None:
        """Initialize database schema on first run."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            # Users table (local auth)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT,
                    created_at TEXT NOT NULL
                )
            """)

            # Profiles table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS profiles (
                    id TEXT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
                    email TEXT,
                    share_id TEXT UNIQUE,
                    updated_at TEXT NOT NULL
                )
            """)

            # Trades table: one row per user per date
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS trades (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    profit REAL NOT NULL DEFAULT 0,
                    trades_count INTEGER NOT NULL DEFAULT 0,
                    notes TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    entry_mode TEXT,
                    UNIQUE(user_id, date)
                )
            """)

            # Detailed buy/sell lots
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS trade_entries (
                    id TEXT PRIMARY KEY,
                    trade_id TEXT NOT NULL REFERENCES trades(id) ON DELETE CASCADE,
                    transaction_type TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    quantity REAL NOT NULL,
                    price REAL NOT NULL,
                    commission REAL NOT NULL DEFAULT 0,
                    total_amount REAL NOT NULL,
                    notes TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL
                )
            """)

            # One-time and bearer tokens
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS auth_tokens (
                    token TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    kind TEXT NOT NULL,
                    payload TEXT,
                    expires_at TEXT NOT NULL,
                    used INTEGER NOT NULL DEFAULT 0
                )
            """)

            conn.commit()
        finally:
            conn.close()

    def get_tables(self) -> list[str]:
        """Get list of all tables in the database."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            return [row["name"] for row in cursor.fetchall()]
        finally:
            conn.close()

    # ==================== Users ====================

    def create_user(self, email: str, password_hash: Optional[str]) -> str:
        """Create a user and its profile.

        Args:
            email: Account email (must be unique).
            password_hash: Encoded password hash, or None for
                passwordless accounts.

        Returns:
            The new user ID.

        Raises:
            sqlite3.IntegrityError: If the email is already registered.
        """
        user_id = str(uuid.uuid4())
        now = datetime.now().isoformat()
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO users (id, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
                (user_id, email, password_hash, now),
            )
            cursor.execute(
                "INSERT INTO profiles (id, email, share_id, updated_at) VALUES (?, ?, NULL, ?)",
                (user_id, email, now),
            )
            conn.commit()
            return user_id
        finally:
            conn.close()

    def get_user_by_email(self, email: str) -> Optional[dict]:
        """Get a user row by email.

        Returns:
            Dict with id, email and password_hash, or None.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT id, email, password_hash FROM users WHERE email = ?",
                (email,),
            )
            row = cursor.fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def get_user(self, user_id: str) -> Optional[dict]:
        """Get a user row by ID."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT id, email, password_hash FROM users WHERE id = ?",
                (user_id,),
            )
            row = cursor.fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def update_user_email(self, user_id: str, email: str) -> None:
        """Change a user's email on both the user and profile rows."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("UPDATE users SET email = ? WHERE id = ?", (email, user_id))
            cursor.execute(
                "UPDATE profiles SET email = ?, updated_at = ? WHERE id = ?",
                (email, datetime.now().isoformat(), user_id),
            )
            conn.commit()
        finally:
            conn.close()

    def update_user_password(self, user_id: str, password_hash: str) -> None:
        """Replace a user's password hash."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE users SET password_hash = ? WHERE id = ?",
                (password_hash, user_id),
            )
            conn.commit()
        finally:
            conn.close()

    # ==================== Profiles ====================

    def _row_to_profile(self, row: sqlite3.Row) -> Profile:
        return Profile(
            id=row["id"],
            email=row["email"],
            share_id=row["share_id"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def get_profile(self, user_id: str) -> Optional[Profile]:
        """Get a user's profile.

        Args:
            user_id: User ID.

        Returns:
            Profile if found, None otherwise.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT id, email, share_id, updated_at FROM profiles WHERE id = ?",
                (user_id,),
            )
            row = cursor.fetchone()
            return self._row_to_profile(row) if row else None
        finally:
            conn.close()

    def get_profile_by_share_id(self, share_id: str) -> Optional[Profile]:
        """Get the profile owning a share token."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT id, email, share_id, updated_at FROM profiles WHERE share_id = ?",
                (share_id,),
            )
            row = cursor.fetchone()
            return self._row_to_profile(row) if row else None
        finally:
            conn.close()

    def set_share_id(self, user_id: str, share_id: str) -> None:
        """Store a share token on a user's profile."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE profiles SET share_id = ?, updated_at = ? WHERE id = ?",
                (share_id, datetime.now().isoformat(), user_id),
            )
            conn.commit()
        finally:
            conn.close()

    # ==================== Trade days ====================

    def _row_to_trade_day(self, row: sqlite3.Row) -> TradeDay:
        return TradeDay(
            id=row["id"],
            user_id=row["user_id"],
            date=date.fromisoformat(row["date"]),
            profit=row["profit"],
            trades_count=row["trades_count"],
            notes=row["notes"],
            tags=json.loads(row["tags"] or "[]"),
            entry_mode=row["entry_mode"],
        )

    def get_trade_days(self, user_id: str) -> list[TradeDay]:
        """Get all trade days for a user, ordered by date ascending."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, user_id, date, profit, trades_count, notes, tags, entry_mode
                FROM trades
                WHERE user_id = ?
                ORDER BY date
                """,
                (user_id,),
            )
            return [self._row_to_trade_day(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def get_trade_day(self, user_id: str, trade_date: date) -> Optional[TradeDay]:
        """Get a user's trade day for a date."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, user_id, date, profit, trades_count, notes, tags, entry_mode
                FROM trades
                WHERE user_id = ? AND date = ?
                """,
                (user_id, trade_date.isoformat()),
            )
            row = cursor.fetchone()
            return self._row_to_trade_day(row) if row else None
        finally:
            conn.close()

    def upsert_trade_day(self, user_id: str, day: TradeDay) -> TradeDay:
        """Insert or replace the trade day for (user, date).

        The row ID is kept when the date already exists, so detailed
        entries stay attached. Last write wins.

        Args:
            user_id: Owning user.
            day: Trade day values.

        Returns:
            The stored trade day.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO trades
                (id, user_id, date, profit, trades_count, notes, tags, entry_mode)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, date) DO UPDATE SET
                    profit = excluded.profit,
                    trades_count = excluded.trades_count,
                    notes = excluded.notes,
                    tags = excluded.tags,
                    entry_mode = excluded.entry_mode
                """,
                (
                    day.id or str(uuid.uuid4()),
                    user_id,
                    day.date.isoformat(),
                    day.profit,
                    day.trades_count,
                    day.notes,
                    json.dumps(day.tags),
                    day.entry_mode,
                ),
            )
            conn.commit()
        finally:
            conn.close()
        return self.get_trade_day(user_id, day.date)

    def delete_trade_day(self, trade_id: str) -> None:
        """Delete a trade day and, by cascade, its entries."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM trades WHERE id = ?", (trade_id,))
            conn.commit()
        finally:
            conn.close()

    def get_trade_owner(self, trade_id: str) -> Optional[str]:
        """Get the user ID owning a trade day."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT user_id FROM trades WHERE id = ?", (trade_id,))
            row = cursor.fetchone()
            return row["user_id"] if row else None
        finally:
            conn.close()

    # ==================== Trade entries ====================

    def _row_to_entry(self, row: sqlite3.Row) -> TradeEntry:
        return TradeEntry(
            id=row["id"],
            trade_id=row["trade_id"],
            transaction_type=row["transaction_type"],
            symbol=row["symbol"],
            quantity=row["quantity"],
            price=row["price"],
            commission=row["commission"] or 0.0,
            notes=row["notes"],
            tags=json.loads(row["tags"] or "[]"),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def get_entries(self, trade_id: str) -> list[TradeEntry]:
        """Get a trade day's entries in insertion order."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, trade_id, transaction_type, symbol, quantity, price,
                       commission, total_amount, notes, tags, created_at
                FROM trade_entries
                WHERE trade_id = ?
                ORDER BY created_at, rowid
                """,
                (trade_id,),
            )
            return [self._row_to_entry(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def _recompute_trade(self, cursor: sqlite3.Cursor, trade_id: str) -> None:
        """Derive a trade day's profit and trade count from its entries."""
        cursor.execute(
            """
            SELECT id, trade_id, transaction_type, symbol, quantity, price,
                   commission, total_amount, notes, tags, created_at
            FROM trade_entries WHERE trade_id = ?
            """,
            (trade_id,),
        )
        entries = [self._row_to_entry(row) for row in cursor.fetchall()]
        cursor.execute(
            """
            UPDATE trades SET profit = ?, trades_count = ?, entry_mode = 'detailed'
            WHERE id = ?
            """,
            (day_profit(entries), day_trade_count(entries), trade_id),
        )

    def replace_entries(self, trade_id: str, entries: list[TradeEntry]) -> list[TradeEntry]:
        """Replace all entries of a trade day.

        The parent row's profit and trade count are re-derived from the
        new entries in the same transaction.

        Args:
            trade_id: Parent trade day ID.
            entries: New entries (IDs are ignored and regenerated).

        Returns:
            The stored entries.
        """
        now = datetime.now().isoformat()
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM trade_entries WHERE trade_id = ?", (trade_id,))
            for entry in entries:
                cursor.execute(
                    """
                    INSERT INTO trade_entries
                    (id, trade_id, transaction_type, symbol, quantity, price,
                     commission, total_amount, notes, tags, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(uuid.uuid4()),
                        trade_id,
                        entry.transaction_type,
                        entry.symbol,
                        entry.quantity,
                        entry.price,
                        entry.commission,
                        entry.total_amount,
                        entry.notes,
                        json.dumps(entry.tags),
                        now,
                    ),
                )
            self._recompute_trade(cursor, trade_id)
            conn.commit()
        finally:
            conn.close()
        return self.get_entries(trade_id)

    def delete_entries(self, trade_id: str) -> None:
        """Delete all entries of a trade day."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM trade_entries WHERE trade_id = ?", (trade_id,))
            conn.commit()
        finally:
            conn.close()

    def delete_entry(self, entry_id: str) -> Optional[str]:
        """Delete one entry and re-derive its parent's aggregates.

        Returns:
            The parent trade ID, or None if the entry did not exist.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT trade_id FROM trade_entries WHERE id = ?", (entry_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            trade_id = row["trade_id"]
            cursor.execute("DELETE FROM trade_entries WHERE id = ?", (entry_id,))
            self._recompute_trade(cursor, trade_id)
            conn.commit()
            return trade_id
        finally:
            conn.close()

    # ==================== Auth tokens ====================

    def save_token(
        self,
        token: str,
        user_id: str,
        kind: str,
        expires_at: datetime,
        payload: Optional[str] = None,
    ) -> None:
        """Store an auth token.

        Args:
            token: Token value.
            user_id: Owning user.
            kind: Token kind (access, refresh, magic_link, recovery,
                email_change).
            expires_at: Expiry timestamp.
            payload: Optional extra data (e.g. the requested new email).
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO auth_tokens (token, user_id, kind, payload, expires_at, used)
                VALUES (?, ?, ?, ?, ?, 0)
                """,
                (token, user_id, kind, payload, expires_at.isoformat()),
            )
            conn.commit()
        finally:
            conn.close()

    def get_token(self, token: str, kind: str) -> Optional[dict]:
        """Get an unused, unexpired token.

        Returns:
            Dict with token, user_id, kind, payload and expires_at, or None.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT token, user_id, kind, payload, expires_at
                FROM auth_tokens
                WHERE token = ? AND kind = ? AND used = 0
                """,
                (token, kind),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            if datetime.fromisoformat(row["expires_at"]) <= datetime.now():
                return None
            return dict(row)
        finally:
            conn.close()

    def consume_token(self, token: str, kind: str) -> Optional[dict]:
        """Get a valid token and mark it used so it cannot be replayed."""
        found = self.get_token(token, kind)
        if found is None:
            return None
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("UPDATE auth_tokens SET used = 1 WHERE token = ?", (token,))
            conn.commit()
        finally:
            conn.close()
        return found

    def revoke_tokens(self, user_id: str, kinds: tuple[str, ...]) -> None:
        """Mark all of a user's tokens of the given kinds as used."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            placeholders = ", ".join("?" for _ in kinds)
            cursor.execute(
                f"UPDATE auth_tokens SET used = 1 WHERE user_id = ? AND kind IN ({placeholders})",
                (user_id, *kinds),
            )
            conn.commit()
        finally:
            conn.close()

    # ==================== Stats ====================

    def get_stats(self) -> dict:
        """Get database statistics.

        Returns:
            Dictionary with table record counts.
        """
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            stats = {}
            for table in self.REQUIRED_TABLES:
                cursor.execute(f"SELECT COUNT(*) as count FROM {table}")
                stats[table] = cursor.fetchone()["count"]
            return stats
        finally:
            conn.close()
