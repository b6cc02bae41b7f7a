"""SQLite implementation of batch storage."""

from __future__ import annotations

import aiosqlite

from slabstock.config import get_logger
from slabstock.core.entities.batch import Batch, BatchFilters, BatchStatus, PriceUnit
from slabstock.core.entities.time import utc_now
from slabstock.core.exceptions import (
    BatchInUseError,
    BatchNotFoundError,
    DuplicateBatchCodeError,
    InvalidSlabQuantityError,
    TransactionRequiredError,
    ValidationError,
)
from slabstock.core.interfaces.batch_store import IBatchStore
from slabstock.infrastructure.storage.sqlite.connection import get_connection, get_transaction
from slabstock.infrastructure.storage.sqlite.rows import (
    from_db_date,
    from_db_timestamp,
    to_db_timestamp,
)

logger = get_logger(__name__)


class SQLiteBatchStore(IBatchStore):
    """SQLite implementation of batch storage."""

    async def create(self, batch: Batch) -> Batch:
        """Insert a new batch. Batch codes are unique per industry."""
        now = utc_now()
        batch.created_at = now
        batch.updated_at = now
        batch.total_area = batch.calculate_total_area()
        async with get_transaction() as conn:
            try:
                await conn.execute(
                    """
                    INSERT INTO batches (
                        id, industry_id, product_id, batch_code,
                        height, width, thickness,
                        quantity_slabs, available_slabs, total_area,
                        industry_price_cents, price_unit, origin_quarry,
                        entry_date, status, is_active, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        batch.id,
                        batch.industry_id,
                        batch.product_id,
                        batch.batch_code,
                        batch.height,
                        batch.width,
                        batch.thickness,
                        batch.quantity_slabs,
                        batch.available_slabs,
                        batch.total_area,
                        batch.industry_price_cents,
                        batch.price_unit.value,
                        batch.origin_quarry,
                        batch.entry_date.isoformat(),
                        batch.status.value,
                        int(batch.is_active),
                        to_db_timestamp(batch.created_at),
                        to_db_timestamp(batch.updated_at),
                    ),
                )
            except aiosqlite.IntegrityError as e:
                if "UNIQUE" in str(e):
                    raise DuplicateBatchCodeError(batch.industry_id, batch.batch_code) from e
                raise
        logger.info(
            "batch_created",
            batch_id=batch.id,
            industry_id=batch.industry_id,
            batch_code=batch.batch_code,
        )
        return batch

    async def get(self, batch_id: str) -> Batch | None:
        """Get batch by ID."""
        async with get_connection() as conn:
            cursor = await conn.execute("SELECT * FROM batches WHERE id = ?", (batch_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_batch(row)

    async def get_for_update(self, tx: aiosqlite.Connection, batch_id: str) -> Batch:
        """
        Read a batch inside the caller's write transaction.

        Transactions are opened with ``BEGIN IMMEDIATE`` so the database
        write lock is already held by ``tx``; any other writer blocks
        until it ends.
        """
        if not tx.in_transaction:
            raise TransactionRequiredError("get_for_update")
        cursor = await tx.execute("SELECT * FROM batches WHERE id = ?", (batch_id,))
        row = await cursor.fetchone()
        if row is None:
            raise BatchNotFoundError(batch_id)
        return self._row_to_batch(row)

    async def update(self, batch: Batch) -> Batch:
        """Update descriptive fields, dimensions, quantity and price."""
        batch.updated_at = utc_now()
        batch.total_area = batch.calculate_total_area()
        async with get_transaction() as conn:
            try:
                cursor = await conn.execute(
                    """
                    UPDATE batches SET
                        product_id = ?,
                        batch_code = ?,
                        height = ?,
                        width = ?,
                        thickness = ?,
                        quantity_slabs = ?,
                        available_slabs = ?,
                        total_area = ?,
                        industry_price_cents = ?,
                        price_unit = ?,
                        origin_quarry = ?,
                        entry_date = ?,
                        updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        batch.product_id,
                        batch.batch_code,
                        batch.height,
                        batch.width,
                        batch.thickness,
                        batch.quantity_slabs,
                        batch.available_slabs,
                        batch.total_area,
                        batch.industry_price_cents,
                        batch.price_unit.value,
                        batch.origin_quarry,
                        batch.entry_date.isoformat(),
                        to_db_timestamp(batch.updated_at),
                        batch.id,
                    ),
                )
            except aiosqlite.IntegrityError as e:
                if "UNIQUE" in str(e):
                    raise DuplicateBatchCodeError(batch.industry_id, batch.batch_code) from e
                raise
            if cursor.rowcount == 0:
                raise BatchNotFoundError(batch.id)
        logger.info("batch_updated", batch_id=batch.id)
        return batch

    async def update_status(self, batch_id: str, status: BatchStatus) -> None:
        async with get_transaction() as conn:
            await self.update_status_in_tx(conn, batch_id, status)

    async def update_status_in_tx(
        self, tx: aiosqlite.Connection, batch_id: str, status: BatchStatus
    ) -> None:
        cursor = await tx.execute(
            "UPDATE batches SET status = ?, updated_at = ? WHERE id = ?",
            (status.value, to_db_timestamp(utc_now()), batch_id),
        )
        if cursor.rowcount == 0:
            raise BatchNotFoundError(batch_id)
        logger.info("batch_status_updated", batch_id=batch_id, status=status.value)

    async def decrement_available_slabs(self, batch_id: str, quantity: int) -> None:
        async with get_transaction() as conn:
            await self.decrement_available_slabs_in_tx(conn, batch_id, quantity)

    async def decrement_available_slabs_in_tx(
        self, tx: aiosqlite.Connection, batch_id: str, quantity: int
    ) -> None:
        """Take ``quantity`` slabs; never lets available_slabs go negative."""
        if quantity <= 0:
            raise ValidationError("quantity", "must be positive", quantity)
        cursor = await tx.execute(
            """
            UPDATE batches SET
                available_slabs = available_slabs - ?,
                updated_at = ?
            WHERE id = ? AND available_slabs >= ?
            """,
            (quantity, to_db_timestamp(utc_now()), batch_id, quantity),
        )
        if cursor.rowcount == 0:
            await self._raise_quantity_error(tx, batch_id, -quantity)
        logger.info("batch_slabs_decremented", batch_id=batch_id, quantity=quantity)

    async def increment_available_slabs(self, batch_id: str, quantity: int) -> None:
        async with get_transaction() as conn:
            await self.increment_available_slabs_in_tx(conn, batch_id, quantity)

    async def increment_available_slabs_in_tx(
        self, tx: aiosqlite.Connection, batch_id: str, quantity: int
    ) -> None:
        """Return ``quantity`` slabs; never exceeds quantity_slabs."""
        if quantity <= 0:
            raise ValidationError("quantity", "must be positive", quantity)
        cursor = await tx.execute(
            """
            UPDATE batches SET
                available_slabs = available_slabs + ?,
                updated_at = ?
            WHERE id = ? AND available_slabs + ? <= quantity_slabs
            """,
            (quantity, to_db_timestamp(utc_now()), batch_id, quantity),
        )
        if cursor.rowcount == 0:
            await self._raise_quantity_error(tx, batch_id, quantity)
        logger.info("batch_slabs_incremented", batch_id=batch_id, quantity=quantity)

    async def update_slab_counts(
        self, batch_id: str, available_slabs: int, quantity_slabs: int | None = None
    ) -> None:
        async with get_transaction() as conn:
            await self.update_slab_counts_in_tx(
                conn, batch_id, available_slabs, quantity_slabs
            )

    async def update_slab_counts_in_tx(
        self,
        tx: aiosqlite.Connection,
        batch_id: str,
        available_slabs: int,
        quantity_slabs: int | None = None,
    ) -> None:
        """Set absolute slab counts; recomputes total_area when quantity changes."""
        cursor = await tx.execute(
            "SELECT available_slabs, quantity_slabs, height, width FROM batches WHERE id = ?",
            (batch_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            raise BatchNotFoundError(batch_id)

        total = quantity_slabs if quantity_slabs is not None else row["quantity_slabs"]
        if total <= 0 or not 0 <= available_slabs <= total:
            raise InvalidSlabQuantityError(
                batch_id, available_slabs, row["available_slabs"], total
            )

        total_area = (row["height"] * row["width"] * total) / 10000
        await tx.execute(
            """
            UPDATE batches SET
                available_slabs = ?,
                quantity_slabs = ?,
                total_area = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (available_slabs, total, total_area, to_db_timestamp(utc_now()), batch_id),
        )
        logger.info(
            "batch_slab_counts_updated",
            batch_id=batch_id,
            available_slabs=available_slabs,
            quantity_slabs=total,
        )

    async def exists_by_code(self, industry_id: str, batch_code: str) -> bool:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT 1 FROM batches WHERE industry_id = ? AND batch_code = ?",
                (industry_id, batch_code.strip().upper()),
            )
            return await cursor.fetchone() is not None

    async def archive(self, batch_id: str) -> None:
        """Soft-archive a batch. Refused while a reservation holds it."""
        async with get_transaction() as conn:
            cursor = await conn.execute(
                "SELECT status FROM batches WHERE id = ?", (batch_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                raise BatchNotFoundError(batch_id)
            if row["status"] == BatchStatus.RESERVED.value:
                raise BatchInUseError(batch_id, "batch has an active reservation")
            await conn.execute(
                "UPDATE batches SET is_active = 0, updated_at = ? WHERE id = ?",
                (to_db_timestamp(utc_now()), batch_id),
            )
        logger.info("batch_archived", batch_id=batch_id)

    async def restore(self, batch_id: str) -> None:
        async with get_transaction() as conn:
            cursor = await conn.execute(
                "UPDATE batches SET is_active = 1, updated_at = ? WHERE id = ?",
                (to_db_timestamp(utc_now()), batch_id),
            )
            if cursor.rowcount == 0:
                raise BatchNotFoundError(batch_id)
        logger.info("batch_restored", batch_id=batch_id)

    async def delete(self, batch_id: str) -> None:
        """Hard delete. Referenced batches must be archived instead."""
        async with get_transaction() as conn:
            cursor = await conn.execute(
                "SELECT COUNT(*) FROM reservations WHERE batch_id = ?", (batch_id,)
            )
            if (await cursor.fetchone())[0] > 0:
                raise BatchInUseError(batch_id, "batch is referenced by reservations")
            cursor = await conn.execute(
                "SELECT COUNT(*) FROM sales WHERE batch_id = ?", (batch_id,)
            )
            if (await cursor.fetchone())[0] > 0:
                raise BatchInUseError(batch_id, "batch is referenced by sales")
            cursor = await conn.execute("DELETE FROM batches WHERE id = ?", (batch_id,))
            if cursor.rowcount == 0:
                raise BatchNotFoundError(batch_id)
        logger.info("batch_deleted", batch_id=batch_id)

    async def list(
        self, industry_id: str, filters: BatchFilters | None = None
    ) -> tuple[list[Batch], int]:
        """List an industry's batches, newest entry first."""
        filters = filters or BatchFilters()
        where = ["industry_id = ?"]
        params: list = [industry_id]

        if not filters.include_archived:
            where.append("is_active = 1")
        if filters.product_id:
            where.append("product_id = ?")
            params.append(filters.product_id)
        if filters.status:
            where.append("status = ?")
            params.append(filters.status.value)
        if filters.code:
            where.append("batch_code LIKE ?")
            params.append(f"%{filters.code.strip().upper()}%")
        if filters.only_with_available:
            where.append("available_slabs > 0")

        clause = " AND ".join(where)
        offset = (filters.page - 1) * filters.limit

        async with get_connection() as conn:
            cursor = await conn.execute(
                f"SELECT COUNT(*) FROM batches WHERE {clause}", params
            )
            total = (await cursor.fetchone())[0]

            cursor = await conn.execute(
                f"""
                SELECT * FROM batches
                WHERE {clause}
                ORDER BY entry_date DESC, created_at DESC
                LIMIT ? OFFSET ?
                """,
                [*params, filters.limit, offset],
            )
            rows = await cursor.fetchall()
            return [self._row_to_batch(row) for row in rows], total

    @staticmethod
    async def _raise_quantity_error(
        tx: aiosqlite.Connection, batch_id: str, requested: int
    ) -> None:
        """Explain why a guarded slab update matched no row."""
        cursor = await tx.execute(
            "SELECT available_slabs, quantity_slabs FROM batches WHERE id = ?",
            (batch_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            raise BatchNotFoundError(batch_id)
        raise InvalidSlabQuantityError(
            batch_id, requested, row["available_slabs"], row["quantity_slabs"]
        )

    @staticmethod
    def _row_to_batch(row: aiosqlite.Row) -> Batch:
        """Convert a database row to a Batch entity."""
        return Batch(
            id=row["id"],
            industry_id=row["industry_id"],
            product_id=row["product_id"],
            batch_code=row["batch_code"],
            height=float(row["height"]),
            width=float(row["width"]),
            thickness=float(row["thickness"]),
            quantity_slabs=row["quantity_slabs"],
            available_slabs=row["available_slabs"],
            total_area=float(row["total_area"]),
            industry_price_cents=row["industry_price_cents"],
            price_unit=PriceUnit(row["price_unit"]),
            origin_quarry=row["origin_quarry"],
            entry_date=from_db_date(row["entry_date"]),
            status=BatchStatus(row["status"]),
            is_active=bool(row["is_active"]),
            created_at=from_db_timestamp(row["created_at"]),
            updated_at=from_db_timestamp(row["updated_at"]),
        )
