"""Read-only share links for a user's summary."""

import secrets
import string
from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, Field

from daybook.analytics.stats import calculate_stats
from daybook.models import Stats, TradeDay


SHARE_ID_ALPHABET = string.ascii_lowercase + string.digits
SHARE_ID_LENGTH = 11


def generate_share_id(length: int = SHARE_ID_LENGTH) -> str:
    """Generate a random opaque base36 share token."""
    return "".join(secrets.choice(SHARE_ID_ALPHABET) for _ in range(length))


def share_url(base_url: str, share_id: str) -> str:
    """Public URL for a share token."""
    return f"{base_url.rstrip('/')}/share/{share_id}"


def mask_email(email: Optional[str]) -> str:
    """Partially mask an email address for public display.

    The first three characters of the local part are kept and the rest
    replaced with asterisks: ``johndoe@x.com`` -> ``joh****@x.com``.
    """
    if not email:
        return "Anonymous"

    username, _, domain = email.partition("@")
    if not username or not domain:
        return email

    if len(username) > 3:
        username = username[:3] + "*" * (len(username) - 3)
    return f"{username}@{domain}"


class SharedSummary(BaseModel):
    """Public, read-only view of one user's trade days."""

    share_id: str = Field(..., description="Share token")
    email: str = Field(..., description="Masked owner email")
    updated_at: Optional[datetime] = Field(default=None, description="Profile update time")
    days: list[TradeDay] = Field(default_factory=list, description="Owner's trade days")

    model_config = {"frozen": True}

    def stats(
        self,
        period: str = "all-time",
        now: Union[date, datetime, None] = None,
    ) -> Stats:
        """Aggregate the shared days for a period.

        The public view shows totals and win rate only.
        """
        full = calculate_stats(self.days, period, now)
        return full.model_copy(update={"longest_streak": None})
