"""Aggregated statistics models."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class Streak(BaseModel):
    """A run of consecutive profitable trading days."""

    days: int = Field(..., gt=0, description="Streak length in trading days")
    start_date: date = Field(..., description="First day of the streak")
    end_date: date = Field(..., description="Last day of the streak")

    model_config = {"frozen": True}


class Stats(BaseModel):
    """Summary statistics over a set of trade days."""

    profit: float = Field(default=0.0, description="Total profit/loss")
    trades: int = Field(default=0, ge=0, description="Total number of trades")
    trading_days: int = Field(default=0, ge=0, description="Days with a record")
    win_rate: float = Field(default=0.0, ge=0, le=100, description="Profitable days %")
    longest_streak: Optional[Streak] = Field(
        default=None, description="Longest winning streak"
    )

    model_config = {"frozen": True}
