"""SQLite implementation of reservation storage."""

from __future__ import annotations

from datetime import datetime

import aiosqlite

from slabstock.config import get_logger
from slabstock.core.entities.reservation import (
    Reservation,
    ReservationFilters,
    ReservationStatus,
)
from slabstock.core.entities.time import utc_now
from slabstock.core.exceptions import ReservationNotFoundError
from slabstock.core.interfaces.reservation_store import IReservationStore
from slabstock.infrastructure.storage.sqlite.connection import get_connection, get_transaction
from slabstock.infrastructure.storage.sqlite.rows import from_db_timestamp, to_db_timestamp

logger = get_logger(__name__)


class SQLiteReservationStore(IReservationStore):
    """SQLite implementation of reservation storage."""

    async def create_in_tx(
        self, tx: aiosqlite.Connection, reservation: Reservation
    ) -> Reservation:
        await tx.execute(
            """
            INSERT INTO reservations (
                id, batch_id, reserved_by_user_id, lead_id,
                customer_name, customer_contact, status, notes,
                reserved_price_cents, expires_at, created_at, is_active
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                reservation.id,
                reservation.batch_id,
                reservation.reserved_by_user_id,
                reservation.lead_id,
                reservation.customer_name,
                reservation.customer_contact,
                reservation.status.value,
                reservation.notes,
                reservation.reserved_price_cents,
                to_db_timestamp(reservation.expires_at),
                to_db_timestamp(reservation.created_at),
                int(reservation.is_active),
            ),
        )
        logger.info(
            "reservation_created",
            reservation_id=reservation.id,
            batch_id=reservation.batch_id,
            expires_at=reservation.expires_at.isoformat(),
        )
        return reservation

    async def get(self, reservation_id: str) -> Reservation | None:
        """Get reservation by ID."""
        async with get_connection() as conn:
            return await self._fetch_one(conn, reservation_id)

    async def get_in_tx(
        self, tx: aiosqlite.Connection, reservation_id: str
    ) -> Reservation | None:
        return await self._fetch_one(tx, reservation_id)

    async def find_by_batch(self, batch_id: str) -> list[Reservation]:
        """All reservations ever made on a batch, newest first."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM reservations
                WHERE batch_id = ?
                ORDER BY created_at DESC
                """,
                (batch_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_reservation(row) for row in rows]

    async def find_active(
        self, user_id: str, now: datetime | None = None
    ) -> list[Reservation]:
        now = now or utc_now()
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM reservations
                WHERE reserved_by_user_id = ?
                  AND status = ?
                  AND is_active = 1
                  AND expires_at > ?
                ORDER BY expires_at ASC
                """,
                (user_id, ReservationStatus.ACTIVE.value, to_db_timestamp(now)),
            )
            rows = await cursor.fetchall()
            return [self._row_to_reservation(row) for row in rows]

    async def find_expired(self, now: datetime | None = None) -> list[Reservation]:
        now = now or utc_now()
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM reservations
                WHERE status = ? AND expires_at < ?
                ORDER BY expires_at ASC
                """,
                (ReservationStatus.ACTIVE.value, to_db_timestamp(now)),
            )
            rows = await cursor.fetchall()
            return [self._row_to_reservation(row) for row in rows]

    async def update_status(self, reservation_id: str, status: ReservationStatus) -> None:
        async with get_transaction() as conn:
            await self.update_status_in_tx(conn, reservation_id, status)

    async def update_status_in_tx(
        self, tx: aiosqlite.Connection, reservation_id: str, status: ReservationStatus
    ) -> None:
        cursor = await tx.execute(
            "UPDATE reservations SET status = ? WHERE id = ?",
            (status.value, reservation_id),
        )
        if cursor.rowcount == 0:
            raise ReservationNotFoundError(reservation_id)
        logger.info(
            "reservation_status_updated",
            reservation_id=reservation_id,
            status=status.value,
        )

    async def cancel(self, reservation_id: str) -> None:
        async with get_transaction() as conn:
            await self.cancel_in_tx(conn, reservation_id)

    async def cancel_in_tx(self, tx: aiosqlite.Connection, reservation_id: str) -> None:
        cursor = await tx.execute(
            "UPDATE reservations SET status = ?, is_active = 0 WHERE id = ?",
            (ReservationStatus.CANCELLED.value, reservation_id),
        )
        if cursor.rowcount == 0:
            raise ReservationNotFoundError(reservation_id)
        logger.info("reservation_cancelled", reservation_id=reservation_id)

    async def list(self, filters: ReservationFilters | None = None) -> list[Reservation]:
        filters = filters or ReservationFilters()
        where: list[str] = []
        params: list = []

        if filters.batch_id:
            where.append("batch_id = ?")
            params.append(filters.batch_id)
        if filters.reserved_by_user_id:
            where.append("reserved_by_user_id = ?")
            params.append(filters.reserved_by_user_id)
        if filters.status:
            where.append("status = ?")
            params.append(filters.status.value)

        clause = f"WHERE {' AND '.join(where)}" if where else ""
        offset = (filters.page - 1) * filters.limit

        async with get_connection() as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM reservations
                {clause}
                ORDER BY created_at DESC
                LIMIT ? OFFSET ?
                """,
                [*params, filters.limit, offset],
            )
            rows = await cursor.fetchall()
            return [self._row_to_reservation(row) for row in rows]

    async def _fetch_one(
        self, conn: aiosqlite.Connection, reservation_id: str
    ) -> Reservation | None:
        cursor = await conn.execute(
            "SELECT * FROM reservations WHERE id = ?", (reservation_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_reservation(row)

    @staticmethod
    def _row_to_reservation(row: aiosqlite.Row) -> Reservation:
        """Convert a database row to a Reservation entity."""
        return Reservation(
            id=row["id"],
            batch_id=row["batch_id"],
            reserved_by_user_id=row["reserved_by_user_id"],
            lead_id=row["lead_id"],
            customer_name=row["customer_name"],
            customer_contact=row["customer_contact"],
            status=ReservationStatus(row["status"]),
            notes=row["notes"],
            reserved_price_cents=row["reserved_price_cents"],
            expires_at=from_db_timestamp(row["expires_at"]),
            created_at=from_db_timestamp(row["created_at"]),
            is_active=bool(row["is_active"]),
        )
