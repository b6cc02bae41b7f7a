"""Batch domain entities.

A batch is a physical lot of identical stone slabs tracked as one
inventory unit. Availability predicates and price/area math live here
and are pure: no I/O, no clock.
"""

import re
from datetime import date, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from slabstock.core.entities.money import amount_from_float, amount_to_float
from slabstock.core.entities.time import require_utc_timestamp, utc_now

# 1 m² = 10.76391042 ft²
FT2_PER_M2 = 10.76391042

_BATCH_CODE_RE = re.compile(r"^[A-Z]{3}-\d{6}$")


class BatchStatus(str, Enum):
    """Availability status of a batch."""

    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    SOLD = "SOLD"
    INACTIVE = "INACTIVE"


class PriceUnit(str, Enum):
    """Area unit a price is quoted in."""

    M2 = "M2"
    FT2 = "FT2"


def convert_price(price: float, from_unit: PriceUnit, to_unit: PriceUnit) -> float:
    """
    Convert a per-area price between units.

    A price per ft² is lower than the same price per m², so M2 -> FT2
    divides by the factor and FT2 -> M2 multiplies.
    """
    if from_unit == to_unit:
        return price
    if from_unit == PriceUnit.M2 and to_unit == PriceUnit.FT2:
        return price / FT2_PER_M2
    return price * FT2_PER_M2


def normalize_batch_code(code: str) -> str:
    """Upper-case and validate a batch code (format AAA-999999)."""
    normalized = code.strip().upper()
    if not _BATCH_CODE_RE.match(normalized):
        raise ValueError("invalid batch code, expected format AAA-999999")
    return normalized


class Batch(BaseModel):
    """A physical lot of slabs owned by an industry."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    industry_id: str
    product_id: str | None = None
    batch_code: str
    height: float = Field(gt=0, le=1000)  # cm
    width: float = Field(gt=0, le=1000)  # cm
    thickness: float = Field(gt=0, le=100)  # cm
    quantity_slabs: int = Field(gt=0)
    available_slabs: int | None = None  # defaults to quantity_slabs
    total_area: float = 0.0  # m², derived
    industry_price_cents: int = Field(gt=0)
    price_unit: PriceUnit = PriceUnit.M2
    origin_quarry: str | None = Field(default=None, max_length=100)
    entry_date: date = Field(default_factory=date.today)
    status: BatchStatus = BatchStatus.AVAILABLE
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("batch_code")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        return normalize_batch_code(v)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _require_utc(cls, v: datetime, info) -> datetime:
        require_utc_timestamp(info.field_name, v)
        return v

    @model_validator(mode="after")
    def _check_slabs(self) -> "Batch":
        """Default available slabs and enforce 0 <= available <= quantity."""
        if self.available_slabs is None:
            self.available_slabs = self.quantity_slabs
        if not 0 <= self.available_slabs <= self.quantity_slabs:
            raise ValueError(
                f"available_slabs must be within [0, {self.quantity_slabs}], "
                f"got {self.available_slabs}"
            )
        self.total_area = self.calculate_total_area()
        return self

    @property
    def industry_price(self) -> float:
        """Industry price per ``price_unit`` as a float."""
        return amount_to_float(self.industry_price_cents)

    def set_industry_price(self, value: float) -> None:
        self.industry_price_cents = amount_from_float(value)

    def is_available(self) -> bool:
        """Available for reservation iff AVAILABLE, active and has free slabs."""
        return (
            self.status == BatchStatus.AVAILABLE
            and self.is_active
            and (self.available_slabs or 0) > 0
        )

    def has_available_slabs(self, quantity: int) -> bool:
        return self.is_active and (self.available_slabs or 0) >= quantity

    def get_price_in_unit(self, unit: PriceUnit) -> float:
        return convert_price(self.industry_price, self.price_unit, unit)

    def calculate_total_area(self) -> float:
        """Total area in m² (dimensions are in cm)."""
        return (self.height * self.width * self.quantity_slabs) / 10000

    def calculate_total_price(self) -> float:
        return self.get_price_in_unit(PriceUnit.M2) * self.calculate_total_area()


class BatchFilters(BaseModel):
    """Filters for listing an industry's batches."""

    product_id: str | None = None
    status: BatchStatus | None = None
    code: str | None = None  # partial match
    only_with_available: bool = False
    include_archived: bool = False
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)
