"""List Active Reservations Use Case."""

from slabstock.application.dto.responses import ReservationListResponse, ReservationResponse
from slabstock.core.entities.reservation import Reservation
from slabstock.core.services import ReservationService


class ListActiveReservationsUseCase:
    """ACTIVE, unexpired reservations held by one actor, with batch and lead."""

    def __init__(self, reservation_service: ReservationService | None = None):
        self._service = reservation_service

    def _get_service(self) -> ReservationService:
        if self._service is None:
            from slabstock.application.services import get_reservation_service

            self._service = get_reservation_service()
        return self._service

    async def execute(
        self, actor_id: str, *, timeout: float | None = None
    ) -> list[Reservation]:
        return await self._get_service().list_active(actor_id, timeout=timeout)

    def to_response(self, reservations: list[Reservation]) -> ReservationListResponse:
        return ReservationListResponse(
            items=[ReservationResponse.from_entity(r) for r in reservations],
            total=len(reservations),
        )
