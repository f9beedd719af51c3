"""TradeDay data model."""

from datetime import date as date_type
from typing import Literal, Optional

from pydantic import BaseModel, Field


EntryMode = Literal["manual", "detailed"]


class TradeDay(BaseModel):
    """One user's trading result for a single calendar date."""

    id: Optional[str] = Field(default=None, description="Record ID")
    user_id: Optional[str] = Field(default=None, description="Owning user ID")
    date: date_type = Field(..., description="Trading date")
    profit: float = Field(..., description="Net profit/loss for the day")
    trades_count: int = Field(..., ge=0, description="Number of trades")
    notes: Optional[str] = Field(default=None, description="Free-text notes")
    tags: list[str] = Field(default_factory=list, description="Strategy tags")
    entry_mode: Optional[EntryMode] = Field(
        default=None, description="How the day was recorded (manual/detailed)"
    )

    model_config = {"frozen": True}

    @property
    def is_win(self) -> bool:
        """Whether the day closed with a positive profit."""
        return self.profit > 0
