"""Core domain entities."""

from slabstock.core.entities.batch import (
    FT2_PER_M2,
    Batch,
    BatchFilters,
    BatchStatus,
    PriceUnit,
    convert_price,
    normalize_batch_code,
)
from slabstock.core.entities.lead import Lead
from slabstock.core.entities.money import amount_from_float, amount_to_float
from slabstock.core.entities.reservation import (
    Reservation,
    ReservationFilters,
    ReservationStatus,
)
from slabstock.core.entities.sale import Sale, SaleFilters

__all__ = [
    # Batch
    "Batch",
    "BatchFilters",
    "BatchStatus",
    "PriceUnit",
    "FT2_PER_M2",
    "convert_price",
    "normalize_batch_code",
    # Lead
    "Lead",
    # Reservation
    "Reservation",
    "ReservationFilters",
    "ReservationStatus",
    # Sale
    "Sale",
    "SaleFilters",
    # Money
    "amount_to_float",
    "amount_from_float",
]
