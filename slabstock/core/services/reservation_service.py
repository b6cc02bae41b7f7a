"""
Reservation lifecycle service.

Orchestrates batch locking, status transitions and ledger writes. Every
mutating operation runs in one write transaction: the batch is read
through ``get_for_update`` and re-validated under the lock before any
write, and all writes commit or roll back together.
"""

import asyncio
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from slabstock.config import get_logger
from slabstock.core.entities.batch import Batch, BatchStatus
from slabstock.core.entities.money import amount_from_float, amount_to_float
from slabstock.core.entities.reservation import Reservation, ReservationStatus
from slabstock.core.entities.sale import Sale
from slabstock.core.entities.time import parse_iso_timestamp, utc_now
from slabstock.core.exceptions import (
    InvalidPriceError,
    LeadNotFoundError,
    ReservationExpiredError,
    ReservationNotActiveError,
    ReservationNotFoundError,
    ValidationError,
)
from slabstock.core.interfaces import (
    IBatchStore,
    ILeadStore,
    IReservationStore,
    ISaleStore,
    ITransactionManager,
    TxHandle,
)
from slabstock.core.state_machine import (
    ensure_reservable,
    validate_batch_transition,
    validate_reservation_transition,
)

DEFAULT_RESERVATION_TTL = timedelta(days=7)

RESERVATION_NOTES_MAX_LENGTH = 500
SALE_NOTES_MAX_LENGTH = 1000


@dataclass
class SweepResult:
    """Outcome of one expiry sweep."""

    expired: int = 0
    found: int = 0
    skipped: int = 0
    failed_ids: list[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_ids)


class ReservationService:
    """
    Create, cancel and confirm reservations against batches.

    Pure service: stores, the transaction boundary and the logger are
    injected via the constructor.
    """

    def __init__(
        self,
        batch_store: IBatchStore,
        reservation_store: IReservationStore,
        sale_store: ISaleStore,
        lead_store: ILeadStore,
        tx_manager: ITransactionManager,
        *,
        default_ttl: timedelta = DEFAULT_RESERVATION_TTL,
        lock_price_at_reservation: bool = False,
        clock: Callable[[], datetime] = utc_now,
        logger=None,
    ):
        self._batches = batch_store
        self._reservations = reservation_store
        self._sales = sale_store
        self._leads = lead_store
        self._tx = tx_manager
        self._default_ttl = default_ttl
        self._lock_price = lock_price_at_reservation
        self._clock = clock
        self._logger = logger or get_logger(__name__)

    async def create(
        self,
        actor_id: str,
        batch_id: str,
        *,
        lead_id: str | None = None,
        customer_name: str | None = None,
        customer_contact: str | None = None,
        expires_at: str | datetime | None = None,
        notes: str | None = None,
        timeout: float | None = None,
    ) -> Reservation:
        """
        Reserve a whole batch for a lead or a named customer.

        Raises:
            ValidationError: party, expiry or notes input is invalid.
            BatchNotFoundError / LeadNotFoundError: referenced row missing.
            BatchNotAvailableError: batch failed the availability check under lock.
        """
        self._validate_party(lead_id, customer_name, customer_contact)
        self._validate_notes(notes, RESERVATION_NOTES_MAX_LENGTH)
        now = self._clock()
        expiry = self._resolve_expiry(expires_at, now)

        async with asyncio.timeout(timeout):
            async with self._tx.transaction(timeout) as tx:
                batch = await self._batches.get_for_update(tx, batch_id)
                ensure_reservable(batch)

                if lead_id is not None and await self._leads.get_in_tx(tx, lead_id) is None:
                    raise LeadNotFoundError(lead_id)

                await self._batches.update_status_in_tx(tx, batch.id, BatchStatus.RESERVED)

                reservation = Reservation(
                    batch_id=batch.id,
                    reserved_by_user_id=actor_id,
                    lead_id=lead_id,
                    customer_name=None if lead_id else customer_name,
                    customer_contact=None if lead_id else customer_contact,
                    status=ReservationStatus.ACTIVE,
                    notes=notes,
                    reserved_price_cents=batch.industry_price_cents,
                    expires_at=expiry,
                    created_at=now,
                )
                await self._reservations.create_in_tx(tx, reservation)

        self._logger.info(
            "reservation_placed",
            reservation_id=reservation.id,
            batch_id=batch_id,
            actor_id=actor_id,
            expires_at=expiry.isoformat(),
        )
        return reservation

    async def get_by_id(self, reservation_id: str) -> Reservation:
        reservation = await self._reservations.get(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        return reservation

    async def cancel(
        self, reservation_id: str, *, timeout: float | None = None
    ) -> Reservation:
        """Cancel an ACTIVE reservation and release its batch."""
        async with asyncio.timeout(timeout):
            async with self._tx.transaction(timeout) as tx:
                reservation = await self._load_active(tx, reservation_id)
                validate_reservation_transition(
                    reservation.status, ReservationStatus.CANCELLED
                )

                batch = await self._batches.get_for_update(tx, reservation.batch_id)
                validate_batch_transition(batch.status, BatchStatus.AVAILABLE)

                await self._reservations.cancel_in_tx(tx, reservation_id)
                await self._batches.update_status_in_tx(tx, batch.id, BatchStatus.AVAILABLE)

        self._logger.info(
            "reservation_cancelled_and_released",
            reservation_id=reservation_id,
            batch_id=reservation.batch_id,
        )
        return reservation.model_copy(
            update={"status": ReservationStatus.CANCELLED, "is_active": False}
        )

    async def confirm_sale(
        self,
        reservation_id: str,
        actor_id: str,
        *,
        final_sold_price: float,
        invoice_url: str | None = None,
        notes: str | None = None,
        timeout: float | None = None,
    ) -> Sale:
        """
        Convert an ACTIVE, unexpired reservation into a sale.

        Writes the sale row, marks the batch SOLD and the reservation
        CONFIRMED_SALE in one transaction.

        Raises:
            ValidationError: price is not a positive finite amount or notes too long.
            ReservationNotActiveError: reservation already left ACTIVE.
            ReservationExpiredError: past expiry but not yet swept.
            InvalidPriceError: final price below the industry's net value.
        """
        if not math.isfinite(final_sold_price) or final_sold_price <= 0:
            raise ValidationError(
                "final_sold_price", "must be a finite amount greater than 0", final_sold_price
            )
        self._validate_notes(notes, SALE_NOTES_MAX_LENGTH)
        sale_price_cents = amount_from_float(final_sold_price)

        async with asyncio.timeout(timeout):
            async with self._tx.transaction(timeout) as tx:
                now = self._clock()
                reservation = await self._load_active(tx, reservation_id)
                if reservation.is_expired(now):
                    raise ReservationExpiredError(
                        reservation_id, reservation.expires_at.isoformat()
                    )

                batch = await self._batches.get_for_update(tx, reservation.batch_id)
                validate_reservation_transition(
                    reservation.status, ReservationStatus.CONFIRMED_SALE
                )
                validate_batch_transition(batch.status, BatchStatus.SOLD)

                net_cents = self._net_industry_value_cents(batch, reservation)
                if sale_price_cents < net_cents:
                    raise InvalidPriceError(final_sold_price, amount_to_float(net_cents))

                customer_name, customer_contact = await self._resolve_customer(
                    tx, reservation
                )
                sale = Sale(
                    batch_id=batch.id,
                    reservation_id=reservation.id,
                    sold_by_user_id=actor_id,
                    industry_id=batch.industry_id,
                    lead_id=reservation.lead_id,
                    customer_name=customer_name,
                    customer_contact=customer_contact,
                    sale_price_cents=sale_price_cents,
                    net_industry_value_cents=net_cents,
                    broker_commission_cents=sale_price_cents - net_cents,
                    price_unit=batch.price_unit,
                    invoice_url=invoice_url,
                    notes=notes,
                    sale_date=now,
                    created_at=now,
                )

                await self._sales.create_in_tx(tx, sale)
                await self._batches.update_status_in_tx(tx, batch.id, BatchStatus.SOLD)
                await self._reservations.update_status_in_tx(
                    tx, reservation.id, ReservationStatus.CONFIRMED_SALE
                )

        self._logger.info(
            "sale_confirmed",
            sale_id=sale.id,
            reservation_id=reservation_id,
            batch_id=sale.batch_id,
            sale_price=sale.sale_price,
            broker_commission=sale.broker_commission,
        )
        return sale

    async def list_active(
        self, actor_id: str, *, timeout: float | None = None
    ) -> list[Reservation]:
        """
        ACTIVE, unexpired reservations held by ``actor_id``, enriched
        with their batch and lead. Enrichment failures are logged and the
        reservation is returned without them.
        """
        async with asyncio.timeout(timeout):
            reservations = await self._reservations.find_active(actor_id, self._clock())

            enriched = []
            for reservation in reservations:
                update: dict = {}
                try:
                    update["batch"] = await self._batches.get(reservation.batch_id)
                except Exception as e:
                    self._logger.warning(
                        "reservation_batch_enrichment_failed",
                        reservation_id=reservation.id,
                        error=str(e),
                    )
                if reservation.lead_id:
                    try:
                        update["lead"] = await self._leads.get(reservation.lead_id)
                    except Exception as e:
                        self._logger.warning(
                            "reservation_lead_enrichment_failed",
                            reservation_id=reservation.id,
                            error=str(e),
                        )
                enriched.append(reservation.model_copy(update=update))

        return enriched

    async def expire_reservations(self, *, timeout: float | None = None) -> SweepResult:
        """
        Expire every ACTIVE reservation past its expiry.

        Each reservation is expired in its own transaction; failures are
        logged and counted, never raised, so one bad row does not block
        the rest.
        """
        result = SweepResult()

        async with asyncio.timeout(timeout):
            candidates = await self._reservations.find_expired(self._clock())
            result.found = len(candidates)

            for reservation in candidates:
                try:
                    if await self.expire_one(reservation.id, timeout=timeout):
                        result.expired += 1
                    else:
                        result.skipped += 1
                except Exception as e:
                    result.failed_ids.append(reservation.id)
                    self._logger.error(
                        "reservation_expiry_failed",
                        reservation_id=reservation.id,
                        batch_id=reservation.batch_id,
                        error=str(e),
                    )

        self._logger.info(
            "expiration_sweep_complete",
            found=result.found,
            expired=result.expired,
            skipped=result.skipped,
            failed=result.failed,
        )
        return result

    async def expire_one(
        self, reservation_id: str, *, timeout: float | None = None
    ) -> bool:
        """
        Expire a single reservation and release its batch.

        Returns False when the reservation already left ACTIVE or is not
        yet past expiry, which happens when a cancel or confirmation wins
        the batch lock first.
        """
        async with self._tx.transaction(timeout) as tx:
            reservation = await self._reservations.get_in_tx(tx, reservation_id)
            if reservation is None:
                raise ReservationNotFoundError(reservation_id)
            if not reservation.is_expired(self._clock()):
                return False

            batch = await self._batches.get_for_update(tx, reservation.batch_id)
            validate_reservation_transition(reservation.status, ReservationStatus.EXPIRED)
            validate_batch_transition(batch.status, BatchStatus.AVAILABLE)

            await self._reservations.update_status_in_tx(
                tx, reservation_id, ReservationStatus.EXPIRED
            )
            await self._batches.update_status_in_tx(tx, batch.id, BatchStatus.AVAILABLE)

        self._logger.info(
            "reservation_expired",
            reservation_id=reservation_id,
            batch_id=reservation.batch_id,
        )
        return True

    async def _load_active(self, tx: TxHandle, reservation_id: str) -> Reservation:
        reservation = await self._reservations.get_in_tx(tx, reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        if reservation.status != ReservationStatus.ACTIVE:
            raise ReservationNotActiveError(reservation_id, reservation.status.value)
        return reservation

    async def _resolve_customer(
        self, tx: TxHandle, reservation: Reservation
    ) -> tuple[str, str]:
        """Customer name/contact for the sale, from the lead when linked."""
        if reservation.lead_id:
            lead = await self._leads.get_in_tx(tx, reservation.lead_id)
            if lead is not None:
                return lead.name, lead.preferred_contact
        return reservation.customer_name or "", reservation.customer_contact or ""

    def _net_industry_value_cents(self, batch: Batch, reservation: Reservation) -> int:
        if self._lock_price and reservation.reserved_price_cents is not None:
            return reservation.reserved_price_cents
        return batch.industry_price_cents

    def _resolve_expiry(self, expires_at: str | datetime | None, now: datetime) -> datetime:
        if expires_at is None or expires_at == "":
            return now + self._default_ttl

        if isinstance(expires_at, datetime):
            if expires_at.tzinfo is None:
                raise ValidationError(
                    "expires_at", "must include a UTC offset", expires_at
                )
            expiry = expires_at.astimezone(UTC)
        else:
            try:
                expiry = parse_iso_timestamp(expires_at)
            except ValueError as e:
                raise ValidationError("expires_at", str(e), expires_at) from e

        if expiry <= now:
            raise ValidationError("expires_at", "must be in the future", expires_at)
        return expiry

    @staticmethod
    def _validate_party(
        lead_id: str | None,
        customer_name: str | None,
        customer_contact: str | None,
    ) -> None:
        """Exactly one of a lead or a named customer with contact."""
        has_customer = bool(customer_name) and bool(customer_contact)
        if lead_id and (customer_name or customer_contact):
            raise ValidationError(
                "lead_id", "provide either a lead or customer details, not both"
            )
        if not lead_id and not has_customer:
            raise ValidationError(
                "customer_name",
                "a lead or both customer name and contact are required",
            )

    @staticmethod
    def _validate_notes(notes: str | None, max_length: int) -> None:
        if notes is not None and len(notes) > max_length:
            raise ValidationError(
                "notes",
                f"must be at most {max_length} characters",
                f"{len(notes)} characters",
            )
