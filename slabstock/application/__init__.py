"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates business logic by:
1. Defining request/response DTOs for caller contracts
2. Implementing use cases that coordinate core services
3. Providing factory functions for dependency injection
"""

from slabstock.application.dto import (
    ConfirmSaleRequest,
    CreateReservationRequest,
    ErrorResponse,
    ExpireReservationsResponse,
    ReservationListResponse,
    ReservationResponse,
    SaleResponse,
)
from slabstock.application.services import (
    get_expiration_sweeper,
    get_reservation_service,
    reset_services,
)
from slabstock.application.use_cases import (
    CancelReservationUseCase,
    ConfirmSaleUseCase,
    CreateReservationUseCase,
    ExpireReservationsUseCase,
    ListActiveReservationsUseCase,
)

__all__ = [
    # DTOs
    "CreateReservationRequest",
    "ConfirmSaleRequest",
    "ReservationResponse",
    "ReservationListResponse",
    "SaleResponse",
    "ExpireReservationsResponse",
    "ErrorResponse",
    # Factories
    "get_reservation_service",
    "get_expiration_sweeper",
    "reset_services",
    # Use cases
    "CreateReservationUseCase",
    "CancelReservationUseCase",
    "ConfirmSaleUseCase",
    "ListActiveReservationsUseCase",
    "ExpireReservationsUseCase",
]
