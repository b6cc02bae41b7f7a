"""
Core business logic services.

Layer-pure services that depend only on:
- slabstock/core/entities/*
- slabstock/core/interfaces/*
- slabstock/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from slabstock.core.services.expiration_sweeper import ExpirationSweeper
from slabstock.core.services.reservation_service import (
    DEFAULT_RESERVATION_TTL,
    ReservationService,
    SweepResult,
)

__all__ = [
    # Reservation lifecycle
    "ReservationService",
    "DEFAULT_RESERVATION_TTL",
    "SweepResult",
    # Expiration
    "ExpirationSweeper",
]
