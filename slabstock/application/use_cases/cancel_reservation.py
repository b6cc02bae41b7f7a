"""Cancel Reservation Use Case: release a held batch."""

from slabstock.application.dto.responses import ReservationResponse
from slabstock.config import get_logger
from slabstock.core.entities.reservation import Reservation
from slabstock.core.services import ReservationService

logger = get_logger(__name__)


class CancelReservationUseCase:
    """Cancel an ACTIVE reservation; its batch becomes AVAILABLE again."""

    def __init__(self, reservation_service: ReservationService | None = None):
        self._service = reservation_service

    def _get_service(self) -> ReservationService:
        if self._service is None:
            from slabstock.application.services import get_reservation_service

            self._service = get_reservation_service()
        return self._service

    async def execute(
        self, reservation_id: str, *, timeout: float | None = None
    ) -> Reservation:
        logger.info("cancel_reservation_started", reservation_id=reservation_id)
        return await self._get_service().cancel(reservation_id, timeout=timeout)

    def to_response(self, reservation: Reservation) -> ReservationResponse:
        return ReservationResponse.from_entity(reservation)
