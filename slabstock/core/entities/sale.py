"""Sale domain entities.

A Sale is the immutable ledger record produced when a reservation is
confirmed. It is written once, inside the confirming transaction, and is
never updated or deleted.
"""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from slabstock.core.entities.batch import PriceUnit
from slabstock.core.entities.money import amount_to_float
from slabstock.core.entities.time import require_utc_timestamp, utc_now


class Sale(BaseModel):
    """Immutable record of a completed sale."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    batch_id: str
    reservation_id: str
    sold_by_user_id: str
    industry_id: str
    lead_id: str | None = None
    customer_name: str = ""
    customer_contact: str = ""
    sale_price_cents: int = Field(gt=0)
    net_industry_value_cents: int = Field(ge=0)
    broker_commission_cents: int = Field(ge=0)
    price_unit: PriceUnit = PriceUnit.M2
    invoice_url: str | None = None
    notes: str | None = Field(default=None, max_length=1000)
    sale_date: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("sale_date", "created_at")
    @classmethod
    def _require_utc(cls, v: datetime, info) -> datetime:
        require_utc_timestamp(info.field_name, v)
        return v

    @model_validator(mode="after")
    def _check_ledger(self) -> "Sale":
        """sale_price >= net_industry_value and commission is the difference."""
        if self.sale_price_cents < self.net_industry_value_cents:
            raise ValueError("sale_price must be >= net_industry_value")
        expected = self.sale_price_cents - self.net_industry_value_cents
        if self.broker_commission_cents != expected:
            raise ValueError(
                f"broker_commission must equal sale_price - net_industry_value ({expected})"
            )
        return self

    @property
    def sale_price(self) -> float:
        return amount_to_float(self.sale_price_cents)

    @property
    def net_industry_value(self) -> float:
        return amount_to_float(self.net_industry_value_cents)

    @property
    def broker_commission(self) -> float:
        return amount_to_float(self.broker_commission_cents)


class SaleFilters(BaseModel):
    """Filters for sale history queries."""

    start_date: datetime | None = None
    end_date: datetime | None = None
    sold_by_user_id: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)
