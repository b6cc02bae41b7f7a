"""
Unit tests for ReservationService.

Stores are AsyncMocks; the transaction manager records commits and
rollbacks so atomicity can be asserted without a database.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from slabstock.core.entities import BatchStatus, ReservationStatus
from slabstock.core.exceptions import (
    BatchNotAvailableError,
    BatchNotFoundError,
    InvalidPriceError,
    InvalidStatusTransitionError,
    LeadNotFoundError,
    ReservationExpiredError,
    ReservationNotActiveError,
    ReservationNotFoundError,
    ValidationError,
)
from slabstock.core.interfaces import ITransactionManager
from slabstock.core.services import ReservationService

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FakeTxManager(ITransactionManager):
    """Counts commits and rollbacks instead of talking to a database."""

    def __init__(self):
        self.handle = object()
        self.commits = 0
        self.rollbacks = 0
        self.timeouts = []

    @asynccontextmanager
    async def transaction(self, timeout=None):
        self.timeouts.append(timeout)
        try:
            yield self.handle
        except BaseException:
            self.rollbacks += 1
            raise
        else:
            self.commits += 1


@pytest.fixture
def tx():
    return FakeTxManager()


@pytest.fixture
def batch(batch_factory):
    return batch_factory()


@pytest.fixture
def reserved_batch(batch_factory):
    return batch_factory(status=BatchStatus.RESERVED)


@pytest.fixture
def active_reservation(reservation_factory, reserved_batch):
    return reservation_factory(
        reserved_batch.id, created_at=NOW, expires_at=NOW + timedelta(days=1)
    )


@pytest.fixture
def stores(batch):
    batch_store = AsyncMock()
    batch_store.get_for_update.return_value = batch
    reservation_store = AsyncMock()
    sale_store = AsyncMock()
    lead_store = AsyncMock()
    return batch_store, reservation_store, sale_store, lead_store


@pytest.fixture
def logger():
    return MagicMock()


@pytest.fixture
def service(stores, tx, logger):
    batch_store, reservation_store, sale_store, lead_store = stores
    return ReservationService(
        batch_store,
        reservation_store,
        sale_store,
        lead_store,
        tx,
        clock=lambda: NOW,
        logger=logger,
    )


def _logged_events(logger) -> list[str]:
    return [c.args[0] for c in logger.info.call_args_list]


class TestCreate:
    """Tests for ReservationService.create()."""

    @pytest.mark.asyncio
    async def test_customer_reservation(self, service, stores, tx, batch, logger):
        batch_store, reservation_store, _, _ = stores

        reservation = await service.create(
            "actor-1",
            batch.id,
            customer_name="Maria Souza",
            customer_contact="maria@example.com",
        )

        assert reservation.status == ReservationStatus.ACTIVE
        assert reservation.batch_id == batch.id
        assert reservation.reserved_by_user_id == "actor-1"
        assert reservation.expires_at == NOW + timedelta(days=7)
        assert reservation.reserved_price_cents == batch.industry_price_cents
        batch_store.get_for_update.assert_awaited_once_with(tx.handle, batch.id)
        batch_store.update_status_in_tx.assert_awaited_once_with(
            tx.handle, batch.id, BatchStatus.RESERVED
        )
        reservation_store.create_in_tx.assert_awaited_once_with(tx.handle, reservation)
        assert tx.commits == 1
        assert "reservation_placed" in _logged_events(logger)

    @pytest.mark.asyncio
    async def test_lead_reservation(self, service, stores, batch, lead_factory):
        _, _, _, lead_store = stores
        lead = lead_factory()
        lead_store.get_in_tx.return_value = lead

        reservation = await service.create("actor-1", batch.id, lead_id=lead.id)

        assert reservation.lead_id == lead.id
        assert reservation.customer_name is None

    @pytest.mark.asyncio
    async def test_missing_lead(self, service, stores, tx, batch):
        batch_store, reservation_store, _, lead_store = stores
        lead_store.get_in_tx.return_value = None

        with pytest.raises(LeadNotFoundError):
            await service.create("actor-1", batch.id, lead_id="ghost")

        batch_store.update_status_in_tx.assert_not_awaited()
        reservation_store.create_in_tx.assert_not_awaited()
        assert tx.rollbacks == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"status": BatchStatus.RESERVED},
            {"status": BatchStatus.SOLD},
            {"is_active": False},
            {"available_slabs": 0},
        ],
    )
    async def test_unavailable_batch(
        self, service, stores, tx, batch_factory, overrides
    ):
        batch_store, reservation_store, _, _ = stores
        batch_store.get_for_update.return_value = batch_factory(**overrides)

        with pytest.raises(BatchNotAvailableError):
            await service.create(
                "actor-1", "b-1", customer_name="Maria", customer_contact="m@x.com"
            )

        batch_store.update_status_in_tx.assert_not_awaited()
        reservation_store.create_in_tx.assert_not_awaited()
        assert tx.rollbacks == 1

    @pytest.mark.asyncio
    async def test_missing_batch(self, service, stores, tx):
        batch_store, _, _, _ = stores
        batch_store.get_for_update.side_effect = BatchNotFoundError("b-404")

        with pytest.raises(BatchNotFoundError):
            await service.create(
                "actor-1", "b-404", customer_name="Maria", customer_contact="m@x.com"
            )
        assert tx.rollbacks == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "party",
        [
            {},
            {"customer_name": "Maria"},
            {"customer_contact": "m@x.com"},
            {"lead_id": "l-1", "customer_name": "Maria"},
            {"lead_id": "l-1", "customer_name": "Maria", "customer_contact": "m@x.com"},
        ],
    )
    async def test_party_validation(self, service, tx, batch, party):
        """Exactly one of a lead or a named customer with contact."""
        with pytest.raises(ValidationError):
            await service.create("actor-1", batch.id, **party)

        assert tx.commits == tx.rollbacks == 0

    @pytest.mark.asyncio
    async def test_explicit_expiry_string(self, service, batch):
        reservation = await service.create(
            "actor-1",
            batch.id,
            customer_name="Maria",
            customer_contact="m@x.com",
            expires_at="2026-03-04T09:30:00Z",
        )

        assert reservation.expires_at == datetime(2026, 3, 4, 9, 30, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_offset_expiry_converted_to_utc(self, service, batch):
        brt = timezone(timedelta(hours=-3))
        reservation = await service.create(
            "actor-1",
            batch.id,
            customer_name="Maria",
            customer_contact="m@x.com",
            expires_at=datetime(2026, 3, 2, 9, 0, tzinfo=brt),
        )

        assert reservation.expires_at == datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
        assert reservation.expires_at.utcoffset() == timedelta(0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "expires_at",
        [
            "2026-02-28T00:00:00Z",
            NOW,
            "not-a-date",
            "2026-03-04T09:30:00",
            datetime(2026, 3, 4, 9, 30),
        ],
    )
    async def test_invalid_expiry(self, service, tx, batch, expires_at):
        with pytest.raises(ValidationError) as exc_info:
            await service.create(
                "actor-1",
                batch.id,
                customer_name="Maria",
                customer_contact="m@x.com",
                expires_at=expires_at,
            )

        assert exc_info.value.details["field"] == "expires_at"
        assert tx.commits == tx.rollbacks == 0

    @pytest.mark.asyncio
    async def test_custom_default_ttl(self, stores, tx, batch):
        service = ReservationService(
            *stores, tx, default_ttl=timedelta(hours=48), clock=lambda: NOW
        )

        reservation = await service.create(
            "actor-1", batch.id, customer_name="Maria", customer_contact="m@x.com"
        )

        assert reservation.expires_at == NOW + timedelta(hours=48)

    @pytest.mark.asyncio
    async def test_timeout_rolls_back(self, service, stores, tx, batch):
        batch_store, _, _, _ = stores

        async def slow_lock(*_):
            await asyncio.sleep(5)
            return batch

        batch_store.get_for_update.side_effect = slow_lock

        with pytest.raises(TimeoutError):
            await service.create(
                "actor-1",
                batch.id,
                customer_name="Maria",
                customer_contact="m@x.com",
                timeout=0.01,
            )

        assert tx.rollbacks == 1
        assert tx.commits == 0

    @pytest.mark.asyncio
    async def test_timeout_bounds_lock_wait(self, service, tx, batch):
        await service.create(
            "actor-1",
            batch.id,
            customer_name="Maria",
            customer_contact="m@x.com",
            timeout=2.5,
        )

        assert tx.timeouts == [2.5]

    @pytest.mark.asyncio
    async def test_notes_at_limit(self, service, batch):
        reservation = await service.create(
            "actor-1",
            batch.id,
            customer_name="Maria",
            customer_contact="m@x.com",
            notes="x" * 500,
        )

        assert len(reservation.notes) == 500

    @pytest.mark.asyncio
    async def test_notes_too_long(self, service, stores, tx, batch):
        batch_store, _, _, _ = stores

        with pytest.raises(ValidationError) as exc_info:
            await service.create(
                "actor-1",
                batch.id,
                customer_name="Maria",
                customer_contact="m@x.com",
                notes="x" * 501,
            )

        assert exc_info.value.details["field"] == "notes"
        assert tx.timeouts == []
        batch_store.get_for_update.assert_not_awaited()


class TestCancel:
    """Tests for ReservationService.cancel()."""

    @pytest.mark.asyncio
    async def test_cancel_releases_batch(
        self, service, stores, tx, active_reservation, reserved_batch
    ):
        batch_store, reservation_store, _, _ = stores
        reservation_store.get_in_tx.return_value = active_reservation
        batch_store.get_for_update.return_value = reserved_batch

        result = await service.cancel(active_reservation.id)

        assert result.status == ReservationStatus.CANCELLED
        assert result.is_active is False
        reservation_store.cancel_in_tx.assert_awaited_once_with(
            tx.handle, active_reservation.id
        )
        batch_store.update_status_in_tx.assert_awaited_once_with(
            tx.handle, reserved_batch.id, BatchStatus.AVAILABLE
        )
        assert tx.commits == 1

    @pytest.mark.asyncio
    async def test_cancel_missing(self, service, stores):
        _, reservation_store, _, _ = stores
        reservation_store.get_in_tx.return_value = None

        with pytest.raises(ReservationNotFoundError):
            await service.cancel("ghost")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status",
        [
            ReservationStatus.CANCELLED,
            ReservationStatus.EXPIRED,
            ReservationStatus.CONFIRMED_SALE,
        ],
    )
    async def test_cancel_terminal(self, service, stores, tx, active_reservation, status):
        batch_store, reservation_store, _, _ = stores
        reservation_store.get_in_tx.return_value = active_reservation.model_copy(
            update={"status": status}
        )

        with pytest.raises(ReservationNotActiveError):
            await service.cancel(active_reservation.id)

        batch_store.get_for_update.assert_not_awaited()
        reservation_store.cancel_in_tx.assert_not_awaited()
        assert tx.rollbacks == 1

    @pytest.mark.asyncio
    async def test_cancel_sold_batch_refused(
        self, service, stores, active_reservation, batch_factory
    ):
        batch_store, reservation_store, _, _ = stores
        reservation_store.get_in_tx.return_value = active_reservation
        batch_store.get_for_update.return_value = batch_factory(status=BatchStatus.SOLD)

        with pytest.raises(InvalidStatusTransitionError):
            await service.cancel(active_reservation.id)

        reservation_store.cancel_in_tx.assert_not_awaited()


class TestConfirmSale:
    """Tests for ReservationService.confirm_sale()."""

    @pytest.fixture(autouse=True)
    def _wire(self, stores, active_reservation, reserved_batch):
        batch_store, reservation_store, _, _ = stores
        reservation_store.get_in_tx.return_value = active_reservation
        batch_store.get_for_update.return_value = reserved_batch

    @pytest.mark.asyncio
    async def test_confirm_writes_sale_then_statuses(
        self, service, stores, tx, active_reservation, reserved_batch, logger
    ):
        batch_store, reservation_store, sale_store, _ = stores
        order: list[str] = []
        sale_store.create_in_tx.side_effect = lambda *a: order.append("sale")
        batch_store.update_status_in_tx.side_effect = lambda *a: order.append(
            f"batch:{a[2].value}"
        )
        reservation_store.update_status_in_tx.side_effect = lambda *a: order.append(
            f"reservation:{a[2].value}"
        )

        sale = await service.confirm_sale(
            active_reservation.id,
            "actor-1",
            final_sold_price=500.0,
            invoice_url="https://invoices/1",
        )

        assert sale.sale_price_cents == 50000
        assert sale.net_industry_value_cents == 40000
        assert sale.broker_commission_cents == 10000
        assert sale.industry_id == reserved_batch.industry_id
        assert sale.customer_name == "Maria Souza"
        assert sale.customer_contact == "maria@example.com"
        assert sale.sale_date == NOW
        assert order == ["sale", "batch:SOLD", "reservation:CONFIRMED_SALE"]
        assert tx.commits == 1
        assert "sale_confirmed" in _logged_events(logger)

    @pytest.mark.asyncio
    async def test_price_equal_to_floor(self, service, active_reservation):
        sale = await service.confirm_sale(
            active_reservation.id, "actor-1", final_sold_price=400.0
        )
        assert sale.broker_commission_cents == 0

    @pytest.mark.asyncio
    async def test_price_below_floor(self, service, stores, tx, active_reservation):
        batch_store, reservation_store, sale_store, _ = stores

        with pytest.raises(InvalidPriceError) as exc_info:
            await service.confirm_sale(
                active_reservation.id, "actor-1", final_sold_price=399.99
            )

        assert exc_info.value.details["floor"] == 400.0
        sale_store.create_in_tx.assert_not_awaited()
        batch_store.update_status_in_tx.assert_not_awaited()
        reservation_store.update_status_in_tx.assert_not_awaited()
        assert tx.rollbacks == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", [0, -10.0, float("nan"), float("inf")])
    async def test_invalid_price(self, service, tx, active_reservation, price):
        with pytest.raises(ValidationError) as exc_info:
            await service.confirm_sale(
                active_reservation.id, "actor-1", final_sold_price=price
            )

        assert exc_info.value.details["field"] == "final_sold_price"
        assert tx.timeouts == []

    @pytest.mark.asyncio
    async def test_notes_too_long(self, service, stores, tx, active_reservation):
        _, _, sale_store, _ = stores

        with pytest.raises(ValidationError) as exc_info:
            await service.confirm_sale(
                active_reservation.id,
                "actor-1",
                final_sold_price=450.0,
                notes="x" * 1001,
            )

        assert exc_info.value.details["field"] == "notes"
        assert tx.timeouts == []
        sale_store.create_in_tx.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_timeout_passed_to_transaction(self, service, tx, active_reservation):
        await service.confirm_sale(
            active_reservation.id, "actor-1", final_sold_price=450.0, timeout=1.5
        )

        assert tx.timeouts == [1.5]

    @pytest.mark.asyncio
    async def test_expired_but_not_swept(self, service, stores, active_reservation):
        _, reservation_store, sale_store, _ = stores
        reservation_store.get_in_tx.return_value = active_reservation.model_copy(
            update={"expires_at": NOW - timedelta(seconds=1)}
        )

        with pytest.raises(ReservationExpiredError):
            await service.confirm_sale(
                active_reservation.id, "actor-1", final_sold_price=500.0
            )
        sale_store.create_in_tx.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_already_confirmed(self, service, stores, active_reservation):
        _, reservation_store, sale_store, _ = stores
        reservation_store.get_in_tx.return_value = active_reservation.model_copy(
            update={"status": ReservationStatus.CONFIRMED_SALE}
        )

        with pytest.raises(ReservationNotActiveError):
            await service.confirm_sale(
                active_reservation.id, "actor-1", final_sold_price=500.0
            )
        sale_store.create_in_tx.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_customer_taken_from_lead(
        self, service, stores, active_reservation, lead_factory
    ):
        _, reservation_store, _, lead_store = stores
        lead = lead_factory(email=None)
        reservation_store.get_in_tx.return_value = active_reservation.model_copy(
            update={"lead_id": lead.id, "customer_name": None, "customer_contact": None}
        )
        lead_store.get_in_tx.return_value = lead

        sale = await service.confirm_sale(
            active_reservation.id, "actor-1", final_sold_price=450.0
        )

        assert sale.lead_id == lead.id
        assert sale.customer_name == "Joao Lima"
        assert sale.customer_contact == "+55 11 99999-0000"

    @pytest.mark.asyncio
    async def test_missing_lead_falls_back(self, service, stores, active_reservation):
        _, reservation_store, _, lead_store = stores
        reservation_store.get_in_tx.return_value = active_reservation.model_copy(
            update={"lead_id": "gone", "customer_name": None, "customer_contact": None}
        )
        lead_store.get_in_tx.return_value = None

        sale = await service.confirm_sale(
            active_reservation.id, "actor-1", final_sold_price=450.0
        )

        assert sale.customer_name == ""
        assert sale.customer_contact == ""

    @pytest.mark.asyncio
    async def test_uses_current_batch_price_by_default(
        self, service, stores, active_reservation
    ):
        """A price raise after reserving applies to the confirmation."""
        _, reservation_store, _, _ = stores
        reservation_store.get_in_tx.return_value = active_reservation.model_copy(
            update={"reserved_price_cents": 30000}
        )

        with pytest.raises(InvalidPriceError):
            await service.confirm_sale(
                active_reservation.id, "actor-1", final_sold_price=350.0
            )

    @pytest.mark.asyncio
    async def test_locked_price(self, stores, tx, active_reservation):
        _, reservation_store, _, _ = stores
        reservation_store.get_in_tx.return_value = active_reservation.model_copy(
            update={"reserved_price_cents": 30000}
        )
        service = ReservationService(
            *stores, tx, lock_price_at_reservation=True, clock=lambda: NOW
        )

        sale = await service.confirm_sale(
            active_reservation.id, "actor-1", final_sold_price=350.0
        )

        assert sale.net_industry_value_cents == 30000
        assert sale.broker_commission_cents == 5000

    @pytest.mark.asyncio
    async def test_failure_after_sale_insert_rolls_back(
        self, service, stores, tx, active_reservation
    ):
        _, reservation_store, _, _ = stores
        reservation_store.update_status_in_tx.side_effect = RuntimeError("disk full")

        with pytest.raises(RuntimeError):
            await service.confirm_sale(
                active_reservation.id, "actor-1", final_sold_price=500.0
            )

        assert tx.rollbacks == 1
        assert tx.commits == 0


class TestListActive:
    """Tests for ReservationService.list_active()."""

    @pytest.mark.asyncio
    async def test_enriches_batch_and_lead(
        self, service, stores, active_reservation, reserved_batch, lead_factory
    ):
        batch_store, reservation_store, _, lead_store = stores
        lead = lead_factory()
        with_lead = active_reservation.model_copy(update={"lead_id": lead.id})
        reservation_store.find_active.return_value = [active_reservation, with_lead]
        batch_store.get.return_value = reserved_batch
        lead_store.get.return_value = lead

        result = await service.list_active("actor-1")

        reservation_store.find_active.assert_awaited_once_with("actor-1", NOW)
        assert [r.batch for r in result] == [reserved_batch, reserved_batch]
        assert result[0].lead is None
        assert result[1].lead == lead
        lead_store.get.assert_awaited_once_with(lead.id)

    @pytest.mark.asyncio
    async def test_enrichment_failure_is_logged(
        self, service, stores, active_reservation, logger
    ):
        batch_store, reservation_store, _, _ = stores
        reservation_store.find_active.return_value = [active_reservation]
        batch_store.get.side_effect = RuntimeError("boom")

        result = await service.list_active("actor-1")

        assert len(result) == 1
        assert result[0].batch is None
        logger.warning.assert_called_once()
        assert logger.warning.call_args.args[0] == "reservation_batch_enrichment_failed"

    @pytest.mark.asyncio
    async def test_empty(self, service, stores):
        _, reservation_store, _, _ = stores
        reservation_store.find_active.return_value = []

        assert await service.list_active("actor-1") == []


class TestExpireReservations:
    """Tests for the expiry sweep."""

    def _overdue(self, reservation_factory, batch_id, **overrides):
        data = {"created_at": NOW - timedelta(days=8), "expires_at": NOW - timedelta(hours=1)}
        data.update(overrides)
        return reservation_factory(batch_id, **data)

    @pytest.mark.asyncio
    async def test_expires_and_releases(
        self, service, stores, tx, reserved_batch, reservation_factory
    ):
        batch_store, reservation_store, _, _ = stores
        overdue = self._overdue(reservation_factory, reserved_batch.id)
        reservation_store.find_expired.return_value = [overdue]
        reservation_store.get_in_tx.return_value = overdue
        batch_store.get_for_update.return_value = reserved_batch

        result = await service.expire_reservations()

        assert (result.found, result.expired, result.skipped, result.failed) == (1, 1, 0, 0)
        reservation_store.find_expired.assert_awaited_once_with(NOW)
        reservation_store.update_status_in_tx.assert_awaited_once_with(
            tx.handle, overdue.id, ReservationStatus.EXPIRED
        )
        batch_store.update_status_in_tx.assert_awaited_once_with(
            tx.handle, reserved_batch.id, BatchStatus.AVAILABLE
        )

    @pytest.mark.asyncio
    async def test_skips_reservation_that_changed_meanwhile(
        self, service, stores, reserved_batch, reservation_factory
    ):
        """A reservation confirmed after the scan is left alone."""
        batch_store, reservation_store, _, _ = stores
        overdue = self._overdue(reservation_factory, reserved_batch.id)
        reservation_store.find_expired.return_value = [overdue]
        reservation_store.get_in_tx.return_value = overdue.model_copy(
            update={"status": ReservationStatus.CONFIRMED_SALE}
        )

        result = await service.expire_reservations()

        assert (result.expired, result.skipped) == (0, 1)
        batch_store.get_for_update.assert_not_awaited()
        reservation_store.update_status_in_tx.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_sweep(
        self, service, stores, tx, reserved_batch, batch_factory, reservation_factory, logger
    ):
        batch_store, reservation_store, _, _ = stores
        bad = self._overdue(reservation_factory, "b-bad")
        good = self._overdue(reservation_factory, reserved_batch.id)
        reservation_store.find_expired.return_value = [bad, good]
        reservation_store.get_in_tx.side_effect = lambda _tx, rid: {
            bad.id: bad,
            good.id: good,
        }[rid]
        batch_store.get_for_update.side_effect = lambda _tx, bid: (
            batch_factory(id=bid, status=BatchStatus.SOLD) if bid == "b-bad" else reserved_batch
        )

        result = await service.expire_reservations()

        assert result.expired == 1
        assert result.failed_ids == [bad.id]
        assert tx.rollbacks == 1
        logger.error.assert_called_once()
        assert logger.error.call_args.args[0] == "reservation_expiry_failed"

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, service, stores, logger):
        _, reservation_store, _, _ = stores
        reservation_store.find_expired.return_value = []

        result = await service.expire_reservations()

        assert result.found == 0
        assert "expiration_sweep_complete" in _logged_events(logger)

    @pytest.mark.asyncio
    async def test_expire_one_missing(self, service, stores):
        _, reservation_store, _, _ = stores
        reservation_store.get_in_tx.return_value = None

        with pytest.raises(ReservationNotFoundError):
            await service.expire_one("ghost")

    @pytest.mark.asyncio
    async def test_expire_one_not_yet_due(self, service, stores, active_reservation):
        _, reservation_store, _, _ = stores
        reservation_store.get_in_tx.return_value = active_reservation

        assert await service.expire_one(active_reservation.id) is False
        reservation_store.update_status_in_tx.assert_not_awaited()


class TestGetById:
    @pytest.mark.asyncio
    async def test_missing(self, service, stores):
        _, reservation_store, _, _ = stores
        reservation_store.get.return_value = None

        with pytest.raises(ReservationNotFoundError):
            await service.get_by_id("ghost")
