"""
TimesEats — Repository protocols

Capability interfaces the services depend on. Two backends implement them:
SQLAlchemy (production) and in-memory (tests, local runs).

Counter operations on inventory rows (reserve / release / settle) and the
monotonic ticket flags (mark_paid / mark_delivered) are guarded single-step
updates: they either apply completely or report False, never read-then-write.
"""
from datetime import datetime
from typing import Protocol, Sequence, runtime_checkable

from timeseats.schemas.entities import (
    Order,
    OrderItem,
    OrderStatus,
    OrderTicket,
    Product,
    ProductInventory,
    SalesSlot,
)


@runtime_checkable
class ProductRepository(Protocol):
    async def add(self, product: Product) -> Product:
        ...

    async def get(self, product_id: str) -> Product | None:
        ...

    async def list_all(self) -> list[Product]:
        ...

    async def update(self, product_id: str, name: str, price: int) -> Product | None:
        ...

    async def delete(self, product_id: str) -> bool:
        ...


@runtime_checkable
class SalesSlotRepository(Protocol):
    async def add(self, slot: SalesSlot) -> SalesSlot:
        ...

    async def get(self, slot_id: str) -> SalesSlot | None:
        ...

    async def list_all(self, active_only: bool = False) -> list[SalesSlot]:
        ...

    async def update_times(self, slot_id: str, start_time: datetime, end_time: datetime) -> SalesSlot | None:
        ...

    async def set_active(self, slot_id: str, is_active: bool) -> SalesSlot | None:
        ...

    async def delete(self, slot_id: str) -> bool:
        """Delete the slot together with its inventory rows."""
        ...


@runtime_checkable
class InventoryRepository(Protocol):
    async def add(self, inventory: ProductInventory) -> ProductInventory:
        """Insert a row; raises DuplicateInventoryError for an existing pair."""
        ...

    async def get(self, slot_id: str, product_id: str) -> ProductInventory | None:
        ...

    async def list_by_slot(self, slot_id: str) -> list[ProductInventory]:
        ...

    async def exists_for_product(self, product_id: str) -> bool:
        ...

    async def reserve(self, slot_id: str, product_id: str, quantity: int) -> bool:
        """reserved += quantity iff reserved + sold + quantity <= initial."""
        ...

    async def release(self, slot_id: str, product_id: str, quantity: int) -> bool:
        """reserved -= quantity iff reserved >= quantity."""
        ...

    async def settle(self, slot_id: str, product_id: str, quantity: int) -> bool:
        """Move quantity from reserved to sold iff reserved >= quantity."""
        ...

    async def set_initial_quantity(self, slot_id: str, product_id: str, initial_quantity: int) -> bool:
        """initial := initial_quantity iff reserved + sold <= initial_quantity."""
        ...


@runtime_checkable
class OrderRepository(Protocol):
    async def add(self, order: Order) -> Order:
        ...

    async def get(self, order_id: str) -> Order | None:
        ...

    async def list_all(self, status: OrderStatus | None = None, slot_id: str | None = None) -> list[Order]:
        ...

    async def exists_for_slot(self, slot_id: str) -> bool:
        ...

    async def lock_in_status(self, order_id: str, status: OrderStatus) -> bool:
        """Lock the order row for the rest of the unit of work iff it has `status`."""
        ...

    async def append_items(self, order_id: str, items: Sequence[OrderItem], total_amount: int) -> Order | None:
        ...

    async def transition(
        self, order_id: str, from_statuses: Sequence[OrderStatus], to_status: OrderStatus
    ) -> bool:
        """Set status to `to_status` iff the current status is one of `from_statuses`."""
        ...


@runtime_checkable
class TicketRepository(Protocol):
    async def add(self, ticket: OrderTicket) -> OrderTicket:
        """Insert; raises DuplicateTicketError / DuplicateTicketNumberError."""
        ...

    async def get(self, ticket_id: str) -> OrderTicket | None:
        ...

    async def get_by_number(self, ticket_number: str) -> OrderTicket | None:
        ...

    async def get_by_order(self, order_id: str) -> OrderTicket | None:
        ...

    async def list_all(self, created_from: datetime | None = None, created_to: datetime | None = None) -> list[OrderTicket]:
        ...

    async def mark_paid(self, ticket_id: str, transaction_id: str | None) -> bool:
        """is_paid := true iff currently unpaid."""
        ...

    async def mark_delivered(self, ticket_id: str) -> bool:
        """is_delivered := true iff currently paid and undelivered."""
        ...

    async def overwrite_flags(
        self,
        ticket_id: str,
        *,
        is_paid: bool | None = None,
        is_delivered: bool | None = None,
        transaction_id: str | None = None,
    ) -> bool:
        """Unguarded write used for the non-business "set to false" updates."""
        ...


@runtime_checkable
class UnitOfWork(Protocol):
    """
    One all-or-nothing scope over every repository.

    Usage:
        async with uow_factory() as uow:
            await uow.inventories.reserve(...)
            await uow.orders.add(...)

    Leaving the block normally commits; leaving it with an exception rolls
    back every write made through the repositories, counters included.
    """

    products: ProductRepository
    slots: SalesSlotRepository
    inventories: InventoryRepository
    orders: OrderRepository
    tickets: TicketRepository

    async def __aenter__(self) -> "UnitOfWork":
        ...

    async def __aexit__(self, exc_type, exc, tb) -> None:
        ...
