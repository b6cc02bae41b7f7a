"""SQLite storage implementations."""

from slabstock.infrastructure.storage.sqlite.batch_store import SQLiteBatchStore
from slabstock.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)
from slabstock.infrastructure.storage.sqlite.lead_store import SQLiteLeadStore
from slabstock.infrastructure.storage.sqlite.reservation_store import SQLiteReservationStore
from slabstock.infrastructure.storage.sqlite.sale_store import SQLiteSaleStore
from slabstock.infrastructure.storage.sqlite.transaction import SQLiteTransactionManager

# Singleton instances
_batch_store: SQLiteBatchStore | None = None
_reservation_store: SQLiteReservationStore | None = None
_sale_store: SQLiteSaleStore | None = None
_lead_store: SQLiteLeadStore | None = None


def get_batch_store() -> SQLiteBatchStore:
    """Get singleton batch store instance."""
    global _batch_store
    if _batch_store is None:
        _batch_store = SQLiteBatchStore()
    return _batch_store


def get_reservation_store() -> SQLiteReservationStore:
    """Get singleton reservation store instance."""
    global _reservation_store
    if _reservation_store is None:
        _reservation_store = SQLiteReservationStore()
    return _reservation_store


def get_sale_store() -> SQLiteSaleStore:
    """Get singleton sale store instance."""
    global _sale_store
    if _sale_store is None:
        _sale_store = SQLiteSaleStore()
    return _sale_store


def get_lead_store() -> SQLiteLeadStore:
    """Get singleton lead store instance."""
    global _lead_store
    if _lead_store is None:
        _lead_store = SQLiteLeadStore()
    return _lead_store


__all__ = [
    # Connection
    "ConnectionPool",
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
    "SQLiteTransactionManager",
    # Store classes
    "SQLiteBatchStore",
    "SQLiteLeadStore",
    "SQLiteReservationStore",
    "SQLiteSaleStore",
    # Factory functions
    "get_batch_store",
    "get_lead_store",
    "get_reservation_store",
    "get_sale_store",
]
