"""SQLite transaction boundary."""

from contextlib import AbstractAsyncContextManager

import aiosqlite

from slabstock.core.interfaces.transaction import ITransactionManager
from slabstock.infrastructure.storage.sqlite.connection import get_transaction


class SQLiteTransactionManager(ITransactionManager):
    """
    Opens ``BEGIN IMMEDIATE`` transactions on the global pool.

    The yielded handle is the pooled ``aiosqlite.Connection``; pass it to
    the stores' ``*_in_tx`` methods.
    """

    def transaction(
        self, timeout: float | None = None
    ) -> AbstractAsyncContextManager[aiosqlite.Connection]:
        return get_transaction(timeout)
