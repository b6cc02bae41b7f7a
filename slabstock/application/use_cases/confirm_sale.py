"""Confirm Sale Use Case: turn an active reservation into a ledger entry."""

from slabstock.application.dto.requests import ConfirmSaleRequest
from slabstock.application.dto.responses import SaleResponse
from slabstock.config import get_logger
from slabstock.core.entities.sale import Sale
from slabstock.core.services import ReservationService

logger = get_logger(__name__)


class ConfirmSaleUseCase:
    """Confirm a sale for an ACTIVE, unexpired reservation."""

    def __init__(self, reservation_service: ReservationService | None = None):
        self._service = reservation_service

    def _get_service(self) -> ReservationService:
        if self._service is None:
            from slabstock.application.services import get_reservation_service

            self._service = get_reservation_service()
        return self._service

    async def execute(
        self,
        reservation_id: str,
        actor_id: str,
        request: ConfirmSaleRequest,
        *,
        timeout: float | None = None,
    ) -> Sale:
        """Execute confirm sale use case."""
        logger.info(
            "confirm_sale_started",
            reservation_id=reservation_id,
            actor_id=actor_id,
            final_sold_price=request.final_sold_price,
        )

        return await self._get_service().confirm_sale(
            reservation_id,
            actor_id,
            final_sold_price=request.final_sold_price,
            invoice_url=request.invoice_url,
            notes=request.notes,
            timeout=timeout,
        )

    def to_response(self, sale: Sale) -> SaleResponse:
        return SaleResponse.from_entity(sale)
