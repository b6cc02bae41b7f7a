"""Abstract interface for the sale ledger."""

from abc import ABC, abstractmethod

from slabstock.core.entities.sale import Sale, SaleFilters
from slabstock.core.interfaces.transaction import TxHandle


class ISaleStore(ABC):
    """Append-only sale ledger. There is no update or delete."""

    @abstractmethod
    async def create_in_tx(self, tx: TxHandle, sale: Sale) -> Sale:
        """Append a sale; at most one sale per reservation."""
        pass

    @abstractmethod
    async def get(self, sale_id: str) -> Sale | None:
        pass

    @abstractmethod
    async def get_by_reservation(self, reservation_id: str) -> Sale | None:
        pass

    @abstractmethod
    async def list_by_seller(
        self, user_id: str, filters: SaleFilters | None = None
    ) -> tuple[list[Sale], int]:
        pass

    @abstractmethod
    async def list_by_industry(
        self, industry_id: str, filters: SaleFilters | None = None
    ) -> tuple[list[Sale], int]:
        pass
