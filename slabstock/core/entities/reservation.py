"""Reservation domain entities."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from slabstock.core.entities.batch import Batch
from slabstock.core.entities.lead import Lead
from slabstock.core.entities.money import amount_to_float
from slabstock.core.entities.time import require_utc_timestamp, utc_now


class ReservationStatus(str, Enum):
    """Reservation lifecycle status. ACTIVE is the only non-terminal state."""

    ACTIVE = "ACTIVE"
    CONFIRMED_SALE = "CONFIRMED_SALE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class Reservation(BaseModel):
    """A time-boxed hold of one batch by one actor."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    batch_id: str
    reserved_by_user_id: str
    lead_id: str | None = None
    customer_name: str | None = None
    customer_contact: str | None = None
    status: ReservationStatus = ReservationStatus.ACTIVE
    notes: str | None = Field(default=None, max_length=500)
    reserved_price_cents: int | None = None  # industry price when reserved
    expires_at: datetime
    created_at: datetime = Field(default_factory=utc_now)
    is_active: bool = True

    # Read-through enrichment, never persisted
    batch: Batch | None = None
    lead: Lead | None = None

    @field_validator("expires_at", "created_at")
    @classmethod
    def _require_utc(cls, v: datetime, info) -> datetime:
        require_utc_timestamp(info.field_name, v)
        return v

    @property
    def reserved_price(self) -> float | None:
        if self.reserved_price_cents is None:
            return None
        return amount_to_float(self.reserved_price_cents)

    def is_expired(self, now: datetime | None = None) -> bool:
        """True iff past expiry while still ACTIVE."""
        now = now or utc_now()
        return now > self.expires_at and self.status == ReservationStatus.ACTIVE


class ReservationFilters(BaseModel):
    """Filters for listing reservations."""

    batch_id: str | None = None
    reserved_by_user_id: str | None = None
    status: ReservationStatus | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)
