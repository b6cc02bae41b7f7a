"""
Expire Reservations Use Case.

One-shot expiry sweep for schedulers that invoke jobs externally; the
in-process loop lives in ExpirationSweeper.
"""

from slabstock.application.dto.responses import ExpireReservationsResponse
from slabstock.core.services import ReservationService, SweepResult


class ExpireReservationsUseCase:
    """Expire every ACTIVE reservation past its expiry."""

    def __init__(self, reservation_service: ReservationService | None = None):
        self._service = reservation_service

    def _get_service(self) -> ReservationService:
        if self._service is None:
            from slabstock.application.services import get_reservation_service

            self._service = get_reservation_service()
        return self._service

    async def execute(self, *, timeout: float | None = None) -> SweepResult:
        return await self._get_service().expire_reservations(timeout=timeout)

    def to_response(self, result: SweepResult) -> ExpireReservationsResponse:
        return ExpireReservationsResponse(
            expired=result.expired,
            found=result.found,
            skipped=result.skipped,
            failed_ids=list(result.failed_ids),
        )
