"""Abstract interface for batch storage."""

from abc import ABC, abstractmethod

from slabstock.core.entities.batch import Batch, BatchFilters, BatchStatus
from slabstock.core.interfaces.transaction import TxHandle


class IBatchStore(ABC):
    """
    Interface for batch persistence.

    Mutators come in pairs: ``*_in_tx`` joins a caller-owned transaction,
    the plain variant opens and commits its own.
    """

    @abstractmethod
    async def create(self, batch: Batch) -> Batch:
        """Insert a new batch."""
        pass

    @abstractmethod
    async def get(self, batch_id: str) -> Batch | None:
        """Get batch by ID. Never blocks on row locks."""
        pass

    @abstractmethod
    async def get_for_update(self, tx: TxHandle, batch_id: str) -> Batch:
        """
        Read a batch holding an exclusive lock until ``tx`` ends.

        Raises TransactionRequiredError outside a transaction and
        BatchNotFoundError when the batch does not exist.
        """
        pass

    @abstractmethod
    async def update(self, batch: Batch) -> Batch:
        """Update descriptive fields, dimensions, quantity and price."""
        pass

    @abstractmethod
    async def update_status(self, batch_id: str, status: BatchStatus) -> None:
        pass

    @abstractmethod
    async def update_status_in_tx(
        self, tx: TxHandle, batch_id: str, status: BatchStatus
    ) -> None:
        pass

    @abstractmethod
    async def decrement_available_slabs(self, batch_id: str, quantity: int) -> None:
        pass

    @abstractmethod
    async def decrement_available_slabs_in_tx(
        self, tx: TxHandle, batch_id: str, quantity: int
    ) -> None:
        pass

    @abstractmethod
    async def increment_available_slabs(self, batch_id: str, quantity: int) -> None:
        pass

    @abstractmethod
    async def increment_available_slabs_in_tx(
        self, tx: TxHandle, batch_id: str, quantity: int
    ) -> None:
        pass

    @abstractmethod
    async def update_slab_counts(
        self, batch_id: str, available_slabs: int, quantity_slabs: int | None = None
    ) -> None:
        pass

    @abstractmethod
    async def update_slab_counts_in_tx(
        self,
        tx: TxHandle,
        batch_id: str,
        available_slabs: int,
        quantity_slabs: int | None = None,
    ) -> None:
        pass

    @abstractmethod
    async def exists_by_code(self, industry_id: str, batch_code: str) -> bool:
        pass

    @abstractmethod
    async def list(
        self, industry_id: str, filters: BatchFilters | None = None
    ) -> tuple[list[Batch], int]:
        """List an industry's batches. Returns (page, total)."""
        pass

    @abstractmethod
    async def archive(self, batch_id: str) -> None:
        """Soft-archive a batch that is not held by an active reservation."""
        pass

    @abstractmethod
    async def restore(self, batch_id: str) -> None:
        pass

    @abstractmethod
    async def delete(self, batch_id: str) -> None:
        """Hard delete a batch that no reservation or sale references."""
        pass
