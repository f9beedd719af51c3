"""SQLite persistence for the local backend."""

from daybook.db.store import DataStore

__all__ = ["DataStore"]
