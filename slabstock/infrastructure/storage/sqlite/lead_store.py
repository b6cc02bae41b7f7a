"""SQLite implementation of lead storage."""

import aiosqlite

from slabstock.config import get_logger
from slabstock.core.entities.lead import Lead
from slabstock.core.interfaces.lead_store import ILeadStore
from slabstock.infrastructure.storage.sqlite.connection import get_connection, get_transaction
from slabstock.infrastructure.storage.sqlite.rows import from_db_timestamp, to_db_timestamp

logger = get_logger(__name__)


class SQLiteLeadStore(ILeadStore):
    """SQLite implementation of lead storage."""

    async def create(self, lead: Lead) -> Lead:
        async with get_transaction() as conn:
            await conn.execute(
                """
                INSERT INTO leads (id, name, email, phone, sales_link_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    lead.id,
                    lead.name,
                    lead.email,
                    lead.phone,
                    lead.sales_link_id,
                    to_db_timestamp(lead.created_at),
                ),
            )
        logger.info("lead_created", lead_id=lead.id)
        return lead

    async def get(self, lead_id: str) -> Lead | None:
        async with get_connection() as conn:
            return await self.get_in_tx(conn, lead_id)

    async def get_in_tx(self, tx: aiosqlite.Connection, lead_id: str) -> Lead | None:
        cursor = await tx.execute("SELECT * FROM leads WHERE id = ?", (lead_id,))
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_lead(row)

    @staticmethod
    def _row_to_lead(row: aiosqlite.Row) -> Lead:
        return Lead(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            sales_link_id=row["sales_link_id"],
            created_at=from_db_timestamp(row["created_at"]),
        )
