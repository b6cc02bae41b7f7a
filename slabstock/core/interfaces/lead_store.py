"""Abstract interface for lead storage."""

from abc import ABC, abstractmethod

from slabstock.core.entities.lead import Lead
from slabstock.core.interfaces.transaction import TxHandle


class ILeadStore(ABC):
    """Interface for lead lookups used by the reservation lifecycle."""

    @abstractmethod
    async def create(self, lead: Lead) -> Lead:
        pass

    @abstractmethod
    async def get(self, lead_id: str) -> Lead | None:
        pass

    @abstractmethod
    async def get_in_tx(self, tx: TxHandle, lead_id: str) -> Lead | None:
        pass
