"""Abstract interface for reservation storage."""

from abc import ABC, abstractmethod
from datetime import datetime

from slabstock.core.entities.reservation import (
    Reservation,
    ReservationFilters,
    ReservationStatus,
)
from slabstock.core.interfaces.transaction import TxHandle


class IReservationStore(ABC):
    """Interface for reservation persistence."""

    @abstractmethod
    async def create_in_tx(self, tx: TxHandle, reservation: Reservation) -> Reservation:
        """Insert a reservation inside the transaction holding its batch lock."""
        pass

    @abstractmethod
    async def get(self, reservation_id: str) -> Reservation | None:
        pass

    @abstractmethod
    async def get_in_tx(self, tx: TxHandle, reservation_id: str) -> Reservation | None:
        """Read a reservation through the caller's transaction."""
        pass

    @abstractmethod
    async def find_by_batch(self, batch_id: str) -> list[Reservation]:
        pass

    @abstractmethod
    async def find_active(
        self, user_id: str, now: datetime | None = None
    ) -> list[Reservation]:
        """ACTIVE, unexpired reservations held by ``user_id``, soonest expiry first."""
        pass

    @abstractmethod
    async def find_expired(self, now: datetime | None = None) -> list[Reservation]:
        """ACTIVE reservations whose expiry is before ``now``."""
        pass

    @abstractmethod
    async def update_status(self, reservation_id: str, status: ReservationStatus) -> None:
        pass

    @abstractmethod
    async def update_status_in_tx(
        self, tx: TxHandle, reservation_id: str, status: ReservationStatus
    ) -> None:
        pass

    @abstractmethod
    async def cancel(self, reservation_id: str) -> None:
        pass

    @abstractmethod
    async def cancel_in_tx(self, tx: TxHandle, reservation_id: str) -> None:
        """Mark CANCELLED and inactive."""
        pass

    @abstractmethod
    async def list(self, filters: ReservationFilters | None = None) -> list[Reservation]:
        pass
