"""Data models for daybook."""

from daybook.models.trade_day import EntryMode, TradeDay
from daybook.models.trade_entry import TradeEntry, TransactionType
from daybook.models.profile import Profile
from daybook.models.session import Session
from daybook.models.stats import Stats, Streak

__all__ = [
    "EntryMode",
    "Profile",
    "Session",
    "Stats",
    "Streak",
    "TradeDay",
    "TradeEntry",
    "TransactionType",
]
