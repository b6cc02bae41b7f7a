"""Abstract interface for the transaction boundary."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from typing import Any, TypeVar

T = TypeVar("T")

# Opaque handle owned by the storage backend. Stores accept it in their
# ``*_in_tx`` methods; services only pass it through.
TxHandle = Any


class ITransactionManager(ABC):
    """Opens write transactions that commit on success and roll back otherwise."""

    @abstractmethod
    def transaction(
        self, timeout: float | None = None
    ) -> AbstractAsyncContextManager[TxHandle]:
        """
        Open a write transaction.

        Rolls back on any exception, including task cancellation, and
        commits when the block exits normally. ``timeout`` bounds the wait
        for the write lock; exceeding it raises TimeoutError.
        """
        pass

    async def run_in_transaction(
        self,
        fn: Callable[[TxHandle], Awaitable[T]],
        *,
        timeout: float | None = None,
    ) -> T:
        """Run ``fn`` inside a transaction and return its result."""
        async with self.transaction(timeout) as tx:
            return await fn(tx)
