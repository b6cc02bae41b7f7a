"""Storage infrastructure implementations."""

from slabstock.infrastructure.storage.sqlite import (
    SQLiteBatchStore,
    SQLiteLeadStore,
    SQLiteReservationStore,
    SQLiteSaleStore,
    SQLiteTransactionManager,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)

__all__ = [
    # SQLite stores
    "SQLiteBatchStore",
    "SQLiteLeadStore",
    "SQLiteReservationStore",
    "SQLiteSaleStore",
    "SQLiteTransactionManager",
    # Connection pool
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
]
