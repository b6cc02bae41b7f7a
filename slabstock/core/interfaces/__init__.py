"""Core interfaces (ports) for dependency injection."""

from slabstock.core.interfaces.batch_store import IBatchStore
from slabstock.core.interfaces.lead_store import ILeadStore
from slabstock.core.interfaces.reservation_store import IReservationStore
from slabstock.core.interfaces.sale_store import ISaleStore
from slabstock.core.interfaces.transaction import ITransactionManager, TxHandle

__all__ = [
    "IBatchStore",
    "ILeadStore",
    "IReservationStore",
    "ISaleStore",
    "ITransactionManager",
    "TxHandle",
]
