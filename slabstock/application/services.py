"""
Service factory functions for dependency injection.

This module wires the SQLite stores to core services. Use cases should
import from here.

Clean Architecture: Application layer orchestrates DI, not core layer.
"""

from datetime import timedelta
from typing import TYPE_CHECKING

from slabstock.config import get_settings
from slabstock.core.services import ExpirationSweeper, ReservationService

if TYPE_CHECKING:
    from slabstock.core.interfaces import (
        IBatchStore,
        ILeadStore,
        IReservationStore,
        ISaleStore,
        ITransactionManager,
    )


# Singleton service instances
_reservation_service: ReservationService | None = None
_expiration_sweeper: ExpirationSweeper | None = None


def get_reservation_service(
    batch_store: "IBatchStore | None" = None,
    reservation_store: "IReservationStore | None" = None,
    sale_store: "ISaleStore | None" = None,
    lead_store: "ILeadStore | None" = None,
    tx_manager: "ITransactionManager | None" = None,
) -> ReservationService:
    """
    Get or create ReservationService instance.

    Creates SQLite stores for any dependency not provided. Only the
    fully default-wired instance is cached.
    """
    global _reservation_service

    overridden = any(
        dep is not None
        for dep in (batch_store, reservation_store, sale_store, lead_store, tx_manager)
    )
    if _reservation_service is not None and not overridden:
        return _reservation_service

    # Lazy import infrastructure to avoid circular imports
    from slabstock.infrastructure.storage.sqlite import (
        SQLiteTransactionManager,
        get_batch_store,
        get_lead_store,
        get_reservation_store,
        get_sale_store,
    )

    settings = get_settings()
    service = ReservationService(
        batch_store=batch_store or get_batch_store(),
        reservation_store=reservation_store or get_reservation_store(),
        sale_store=sale_store or get_sale_store(),
        lead_store=lead_store or get_lead_store(),
        tx_manager=tx_manager or SQLiteTransactionManager(),
        default_ttl=timedelta(days=settings.reservation.default_ttl_days),
        lock_price_at_reservation=settings.reservation.lock_price_at_reservation,
    )

    if not overridden:
        _reservation_service = service

    return service


def get_expiration_sweeper(
    reservation_service: ReservationService | None = None,
) -> ExpirationSweeper:
    """Get or create the periodic expiration sweeper."""
    global _expiration_sweeper

    if _expiration_sweeper is not None and reservation_service is None:
        return _expiration_sweeper

    settings = get_settings()
    sweeper = ExpirationSweeper(
        reservation_service or get_reservation_service(),
        interval_seconds=settings.sweeper.interval_seconds,
        run_on_start=settings.sweeper.run_on_start,
    )

    if reservation_service is None:
        _expiration_sweeper = sweeper

    return sweeper


def reset_services() -> None:
    """Drop cached service instances (for testing)."""
    global _reservation_service, _expiration_sweeper
    _reservation_service = None
    _expiration_sweeper = None
