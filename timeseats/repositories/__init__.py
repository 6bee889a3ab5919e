from timeseats.repositories.base import (
    InventoryRepository,
    OrderRepository,
    ProductRepository,
    SalesSlotRepository,
    TicketRepository,
    UnitOfWork,
)
from timeseats.repositories.memory import MemoryStore, memory_uow_factory

__all__ = [
    "InventoryRepository",
    "OrderRepository",
    "ProductRepository",
    "SalesSlotRepository",
    "TicketRepository",
    "UnitOfWork",
    "MemoryStore",
    "memory_uow_factory",
]
