"""Profile data model."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Profile(BaseModel):
    """Per-user profile carrying the public share token."""

    id: str = Field(..., description="User ID")
    email: Optional[str] = Field(default=None, description="Account email")
    share_id: Optional[str] = Field(default=None, description="Public share token")
    updated_at: Optional[datetime] = Field(default=None, description="Last update")

    model_config = {"frozen": True}
