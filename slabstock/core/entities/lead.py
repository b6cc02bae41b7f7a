"""Lead domain entity."""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from slabstock.core.entities.time import utc_now


class Lead(BaseModel):
    """A prospective customer captured through a sales link."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(min_length=2, max_length=255)
    email: str | None = None
    phone: str | None = None
    sales_link_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def preferred_contact(self) -> str:
        """Email if present, otherwise phone, otherwise empty."""
        if self.email:
            return self.email
        if self.phone:
            return self.phone
        return ""
