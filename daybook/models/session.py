"""Session data model."""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field


class Session(BaseModel):
    """Bearer session issued by the auth collaborator."""

    access_token: str = Field(..., min_length=1, description="Bearer token")
    refresh_token: str = Field(..., min_length=1, description="Refresh token")
    user_id: str = Field(..., description="Authenticated user ID")
    email: Optional[str] = Field(default=None, description="User email")
    expires_at: datetime = Field(..., description="Access token expiry")

    model_config = {"frozen": True}

    def expires_within(self, margin: timedelta, now: Optional[datetime] = None) -> bool:
        """Whether the access token expires within ``margin`` of ``now``."""
        now = now or datetime.now()
        return self.expires_at - now <= margin
