"""Create Reservation Use Case: lock a batch and hold it for a customer."""

from slabstock.application.dto.requests import CreateReservationRequest
from slabstock.application.dto.responses import ReservationResponse
from slabstock.config import get_logger
from slabstock.core.entities.reservation import Reservation
from slabstock.core.services import ReservationService

logger = get_logger(__name__)


class CreateReservationUseCase:
    """Reserve a whole batch on behalf of a lead or customer."""

    def __init__(self, reservation_service: ReservationService | None = None):
        self._service = reservation_service

    def _get_service(self) -> ReservationService:
        if self._service is None:
            from slabstock.application.services import get_reservation_service

            self._service = get_reservation_service()
        return self._service

    async def execute(
        self,
        actor_id: str,
        request: CreateReservationRequest,
        *,
        timeout: float | None = None,
    ) -> Reservation:
        """Execute create reservation use case."""
        logger.info("create_reservation_started", actor_id=actor_id, batch_id=request.batch_id)

        return await self._get_service().create(
            actor_id,
            request.batch_id,
            lead_id=request.lead_id,
            customer_name=request.customer_name,
            customer_contact=request.customer_contact,
            expires_at=request.expires_at,
            notes=request.notes,
            timeout=timeout,
        )

    def to_response(self, reservation: Reservation) -> ReservationResponse:
        return ReservationResponse.from_entity(reservation)
