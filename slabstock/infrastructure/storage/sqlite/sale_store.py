"""SQLite implementation of the sale ledger."""

from __future__ import annotations

import aiosqlite

from slabstock.config import get_logger
from slabstock.core.entities.batch import PriceUnit
from slabstock.core.entities.sale import Sale, SaleFilters
from slabstock.core.exceptions import ConflictError
from slabstock.core.interfaces.sale_store import ISaleStore
from slabstock.infrastructure.storage.sqlite.connection import get_connection
from slabstock.infrastructure.storage.sqlite.rows import from_db_timestamp, to_db_timestamp

logger = get_logger(__name__)


class SQLiteSaleStore(ISaleStore):
    """
    Append-only sale ledger.

    Rows are only ever inserted; triggers in the schema abort any UPDATE
    or DELETE on the table.
    """

    async def create_in_tx(self, tx: aiosqlite.Connection, sale: Sale) -> Sale:
        try:
            await tx.execute(
                """
                INSERT INTO sales (
                    id, batch_id, reservation_id, sold_by_user_id, industry_id,
                    lead_id, customer_name, customer_contact,
                    sale_price_cents, net_industry_value_cents, broker_commission_cents,
                    price_unit, invoice_url, notes, sale_date, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    sale.id,
                    sale.batch_id,
                    sale.reservation_id,
                    sale.sold_by_user_id,
                    sale.industry_id,
                    sale.lead_id,
                    sale.customer_name,
                    sale.customer_contact,
                    sale.sale_price_cents,
                    sale.net_industry_value_cents,
                    sale.broker_commission_cents,
                    sale.price_unit.value,
                    sale.invoice_url,
                    sale.notes,
                    to_db_timestamp(sale.sale_date),
                    to_db_timestamp(sale.created_at),
                ),
            )
        except aiosqlite.IntegrityError as e:
            if "sales.reservation_id" in str(e):
                raise ConflictError(
                    f"Sale already recorded for reservation {sale.reservation_id}",
                    code="SALE_ALREADY_RECORDED",
                    details={"reservation_id": sale.reservation_id},
                ) from e
            raise
        logger.info(
            "sale_recorded",
            sale_id=sale.id,
            reservation_id=sale.reservation_id,
            batch_id=sale.batch_id,
            sale_price_cents=sale.sale_price_cents,
            broker_commission_cents=sale.broker_commission_cents,
        )
        return sale

    async def get(self, sale_id: str) -> Sale | None:
        async with get_connection() as conn:
            cursor = await conn.execute("SELECT * FROM sales WHERE id = ?", (sale_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_sale(row)

    async def get_by_reservation(self, reservation_id: str) -> Sale | None:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM sales WHERE reservation_id = ?", (reservation_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_sale(row)

    async def list_by_seller(
        self, user_id: str, filters: SaleFilters | None = None
    ) -> tuple[list[Sale], int]:
        return await self._list("sold_by_user_id = ?", user_id, filters)

    async def list_by_industry(
        self, industry_id: str, filters: SaleFilters | None = None
    ) -> tuple[list[Sale], int]:
        return await self._list("industry_id = ?", industry_id, filters)

    async def _list(
        self, owner_clause: str, owner_id: str, filters: SaleFilters | None
    ) -> tuple[list[Sale], int]:
        """Sales for one owner within an optional date window, newest first."""
        filters = filters or SaleFilters()
        where = [owner_clause]
        params: list = [owner_id]

        if filters.sold_by_user_id:
            where.append("sold_by_user_id = ?")
            params.append(filters.sold_by_user_id)
        if filters.start_date:
            where.append("sale_date >= ?")
            params.append(to_db_timestamp(filters.start_date))
        if filters.end_date:
            where.append("sale_date <= ?")
            params.append(to_db_timestamp(filters.end_date))

        clause = " AND ".join(where)
        offset = (filters.page - 1) * filters.limit

        async with get_connection() as conn:
            cursor = await conn.execute(f"SELECT COUNT(*) FROM sales WHERE {clause}", params)
            total = (await cursor.fetchone())[0]

            cursor = await conn.execute(
                f"""
                SELECT * FROM sales
                WHERE {clause}
                ORDER BY sale_date DESC
                LIMIT ? OFFSET ?
                """,
                [*params, filters.limit, offset],
            )
            rows = await cursor.fetchall()
            return [self._row_to_sale(row) for row in rows], total

    @staticmethod
    def _row_to_sale(row: aiosqlite.Row) -> Sale:
        """Convert a database row to a Sale entity."""
        return Sale(
            id=row["id"],
            batch_id=row["batch_id"],
            reservation_id=row["reservation_id"],
            sold_by_user_id=row["sold_by_user_id"],
            industry_id=row["industry_id"],
            lead_id=row["lead_id"],
            customer_name=row["customer_name"],
            customer_contact=row["customer_contact"],
            sale_price_cents=row["sale_price_cents"],
            net_industry_value_cents=row["net_industry_value_cents"],
            broker_commission_cents=row["broker_commission_cents"],
            price_unit=PriceUnit(row["price_unit"]),
            invoice_url=row["invoice_url"],
            notes=row["notes"],
            sale_date=from_db_timestamp(row["sale_date"]),
            created_at=from_db_timestamp(row["created_at"]),
        )
