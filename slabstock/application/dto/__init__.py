"""Data Transfer Objects.

Request DTOs: Validate and parse incoming requests.
Response DTOs: Structure and serialize results.
"""

from slabstock.application.dto.requests import (
    ConfirmSaleRequest,
    CreateReservationRequest,
)
from slabstock.application.dto.responses import (
    BatchSummaryResponse,
    ErrorResponse,
    ExpireReservationsResponse,
    LeadSummaryResponse,
    ReservationListResponse,
    ReservationResponse,
    SaleResponse,
)

__all__ = [
    # Requests
    "CreateReservationRequest",
    "ConfirmSaleRequest",
    # Responses
    "BatchSummaryResponse",
    "LeadSummaryResponse",
    "ReservationResponse",
    "ReservationListResponse",
    "SaleResponse",
    "ExpireReservationsResponse",
    "ErrorResponse",
]
