"""Tests for the reservation use cases."""

from unittest.mock import AsyncMock

import pytest

from slabstock.application.dto import ConfirmSaleRequest, CreateReservationRequest
from slabstock.application.use_cases import (
    CancelReservationUseCase,
    ConfirmSaleUseCase,
    CreateReservationUseCase,
    ExpireReservationsUseCase,
    ListActiveReservationsUseCase,
)
from slabstock.core.entities import ReservationStatus, Sale
from slabstock.core.exceptions import BatchNotAvailableError
from slabstock.core.services import SweepResult


@pytest.fixture
def mock_service():
    return AsyncMock()


class TestCreateReservationUseCase:
    async def test_passes_request_through(self, mock_service, reservation_factory):
        reservation = reservation_factory("b-1")
        mock_service.create.return_value = reservation
        use_case = CreateReservationUseCase(reservation_service=mock_service)
        request = CreateReservationRequest(
            batch_id="b-1",
            customer_name="Maria Souza",
            customer_contact="maria@example.com",
            expires_at="2030-01-01T00:00:00Z",
            notes="VIP",
        )

        result = await use_case.execute("actor-1", request, timeout=3)

        assert result is reservation
        mock_service.create.assert_awaited_once_with(
            "actor-1",
            "b-1",
            lead_id=None,
            customer_name="Maria Souza",
            customer_contact="maria@example.com",
            expires_at="2030-01-01T00:00:00Z",
            notes="VIP",
            timeout=3,
        )
        assert use_case.to_response(result).id == reservation.id

    async def test_errors_propagate(self, mock_service):
        mock_service.create.side_effect = BatchNotAvailableError("b-1", "RESERVED")
        use_case = CreateReservationUseCase(reservation_service=mock_service)

        with pytest.raises(BatchNotAvailableError):
            await use_case.execute(
                "actor-1", CreateReservationRequest(batch_id="b-1", lead_id="l-1")
            )


class TestCancelReservationUseCase:
    async def test_cancel(self, mock_service, reservation_factory):
        cancelled = reservation_factory(
            "b-1", status=ReservationStatus.CANCELLED, is_active=False
        )
        mock_service.cancel.return_value = cancelled
        use_case = CancelReservationUseCase(reservation_service=mock_service)

        result = await use_case.execute(cancelled.id)

        mock_service.cancel.assert_awaited_once_with(cancelled.id, timeout=None)
        assert use_case.to_response(result).status == "CANCELLED"


class TestConfirmSaleUseCase:
    async def test_confirm(self, mock_service):
        sale = Sale(
            batch_id="b-1",
            reservation_id="r-1",
            sold_by_user_id="actor-1",
            industry_id="industry-1",
            sale_price_cents=50000,
            net_industry_value_cents=40000,
            broker_commission_cents=10000,
        )
        mock_service.confirm_sale.return_value = sale
        use_case = ConfirmSaleUseCase(reservation_service=mock_service)

        result = await use_case.execute(
            "r-1", "actor-1", ConfirmSaleRequest(final_sold_price=500.0, notes="paid")
        )

        mock_service.confirm_sale.assert_awaited_once_with(
            "r-1",
            "actor-1",
            final_sold_price=500.0,
            invoice_url=None,
            notes="paid",
            timeout=None,
        )
        assert use_case.to_response(result).broker_commission == 100.0


class TestListActiveReservationsUseCase:
    async def test_list(self, mock_service, reservation_factory):
        items = [reservation_factory("b-1"), reservation_factory("b-2")]
        mock_service.list_active.return_value = items
        use_case = ListActiveReservationsUseCase(reservation_service=mock_service)

        result = await use_case.execute("actor-1")
        response = use_case.to_response(result)

        assert response.total == 2
        assert [r.batch_id for r in response.items] == ["b-1", "b-2"]


class TestExpireReservationsUseCase:
    async def test_expire(self, mock_service):
        mock_service.expire_reservations.return_value = SweepResult(
            expired=2, found=4, skipped=1, failed_ids=["r-9"]
        )
        use_case = ExpireReservationsUseCase(reservation_service=mock_service)

        result = await use_case.execute(timeout=10)
        response = use_case.to_response(result)

        mock_service.expire_reservations.assert_awaited_once_with(timeout=10)
        assert response.expired == 2
        assert response.failed_ids == ["r-9"]


class TestDefaultWiring:
    async def test_lazy_service_from_factory(self, monkeypatch, mock_service):
        import slabstock.application.services as services_module

        monkeypatch.setattr(
            services_module, "get_reservation_service", lambda: mock_service
        )
        mock_service.list_active.return_value = []
        use_case = ListActiveReservationsUseCase()

        assert await use_case.execute("actor-1") == []
