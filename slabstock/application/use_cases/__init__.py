"""Application use cases."""

from slabstock.application.use_cases.cancel_reservation import CancelReservationUseCase
from slabstock.application.use_cases.confirm_sale import ConfirmSaleUseCase
from slabstock.application.use_cases.create_reservation import CreateReservationUseCase
from slabstock.application.use_cases.expire_reservations import ExpireReservationsUseCase
from slabstock.application.use_cases.list_active_reservations import (
    ListActiveReservationsUseCase,
)

__all__ = [
    "CreateReservationUseCase",
    "CancelReservationUseCase",
    "ConfirmSaleUseCase",
    "ListActiveReservationsUseCase",
    "ExpireReservationsUseCase",
]
