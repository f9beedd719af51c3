"""TradeEntry (detailed lot) data model."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


TransactionType = Literal["Buy", "Sell"]


class TradeEntry(BaseModel):
    """A single buy or sell lot contributing to a day's profit."""

    id: Optional[str] = Field(default=None, description="Record ID")
    trade_id: Optional[str] = Field(default=None, description="Parent trade day ID")
    transaction_type: TransactionType = Field(..., description="Buy or Sell")
    symbol: str = Field(..., min_length=1, description="Traded symbol")
    quantity: float = Field(..., gt=0, description="Lot quantity")
    price: float = Field(..., gt=0, description="Execution price")
    commission: float = Field(default=0.0, ge=0, description="Commission paid")
    total_amount: float = Field(default=0.0, description="quantity x price")
    notes: Optional[str] = Field(default=None, description="Lot notes")
    tags: list[str] = Field(default_factory=list, description="Strategy tags")
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp")

    model_config = {"frozen": True}

    @field_validator("symbol")
    @classmethod
    def _upper_symbol(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("Symbol is required")
        return value

    @model_validator(mode="before")
    @classmethod
    def _compute_total(cls, data: Any) -> Any:
        if isinstance(data, dict):
            try:
                total = float(data["quantity"]) * float(data["price"])
            except (KeyError, TypeError, ValueError):
                return data
            data = {**data, "total_amount": round(total, 4)}
        return data

    @property
    def gross(self) -> float:
        """Cash effect of the lot including commission.

        Buys cost ``quantity * price + commission``; sells return
        ``quantity * price - commission``.
        """
        if self.transaction_type == "Buy":
            return self.quantity * self.price + self.commission
        return self.quantity * self.price - self.commission
