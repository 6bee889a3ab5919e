"""
TimesEats — In-memory repositories and unit of work

Same contract as the SQL backend, kept in process memory:
  - every inventory counter update runs under a lock scoped to its
    (slot, product) row, so different rows never contend;
  - every write is journalled, and a unit of work that exits with an
    exception replays the journal backwards. Counter writes are undone with
    compensating deltas rather than snapshots, so concurrent units of work
    touching the same row are never clobbered.

Selected with STORAGE_BACKEND=memory; the test-suite runs on it.
"""
import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Callable, Sequence

from timeseats.core.errors import (
    DuplicateInventoryError,
    DuplicateTicketError,
    DuplicateTicketNumberError,
)
from timeseats.schemas.entities import (
    Order,
    OrderItem,
    OrderStatus,
    OrderTicket,
    Product,
    ProductInventory,
    SalesSlot,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStore:
    """Shared state behind every MemoryUnitOfWork created from it."""

    def __init__(self):
        self.products: dict[str, Product] = {}
        self.slots: dict[str, SalesSlot] = {}
        self.inventories: dict[tuple[str, str], ProductInventory] = {}
        self.orders: dict[str, Order] = {}
        self.tickets: dict[str, OrderTicket] = {}
        self._row_locks: dict[tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)

    def row_lock(self, slot_id: str, product_id: str) -> asyncio.Lock:
        return self._row_locks[(slot_id, product_id)]


class _Journal:
    def __init__(self):
        self._undo: list[Callable[[], None]] = []

    def record(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def restore(self, table: dict, key, previous) -> None:
        """Record that `table[key]` held `previous` (or nothing) before a write."""
        def undo():
            if previous is _MISSING:
                table.pop(key, None)
            else:
                table[key] = previous
        self.record(undo)

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()

    def discard(self) -> None:
        self._undo.clear()


class _MemoryRepository:
    def __init__(self, store: MemoryStore, journal: _Journal):
        self.store = store
        self.journal = journal

    def _put(self, table: dict, key, value) -> None:
        self.journal.restore(table, key, table.get(key, _MISSING))
        table[key] = value


# ── Products ──────────────────────────────────────────────────────────────────
class MemoryProductRepository(_MemoryRepository):
    async def add(self, product: Product) -> Product:
        self._put(self.store.products, product.id, product.model_copy(deep=True))
        return product.model_copy(deep=True)

    async def get(self, product_id: str) -> Product | None:
        product = self.store.products.get(product_id)
        return product.model_copy(deep=True) if product else None

    async def list_all(self) -> list[Product]:
        return [p.model_copy(deep=True) for p in self.store.products.values()]

    async def update(self, product_id: str, name: str, price: int) -> Product | None:
        current = self.store.products.get(product_id)
        if current is None:
            return None
        updated = current.model_copy(update={"name": name, "price": price, "updated_at": _now()})
        self._put(self.store.products, product_id, updated)
        return updated.model_copy(deep=True)

    async def delete(self, product_id: str) -> bool:
        if product_id not in self.store.products:
            return False
        self.journal.restore(self.store.products, product_id, self.store.products.pop(product_id))
        return True


# ── Sales slots ───────────────────────────────────────────────────────────────
class MemorySalesSlotRepository(_MemoryRepository):
    async def add(self, slot: SalesSlot) -> SalesSlot:
        self._put(self.store.slots, slot.id, slot.model_copy(deep=True))
        return slot.model_copy(deep=True)

    async def get(self, slot_id: str) -> SalesSlot | None:
        slot = self.store.slots.get(slot_id)
        return slot.model_copy(deep=True) if slot else None

    async def list_all(self, active_only: bool = False) -> list[SalesSlot]:
        slots = sorted(self.store.slots.values(), key=lambda s: s.start_time)
        return [s.model_copy(deep=True) for s in slots if s.is_active or not active_only]

    async def _patch(self, slot_id: str, **changes) -> SalesSlot | None:
        current = self.store.slots.get(slot_id)
        if current is None:
            return None
        updated = current.model_copy(update={**changes, "updated_at": _now()})
        self._put(self.store.slots, slot_id, updated)
        return updated.model_copy(deep=True)

    async def update_times(self, slot_id: str, start_time: datetime, end_time: datetime) -> SalesSlot | None:
        return await self._patch(slot_id, start_time=start_time, end_time=end_time)

    async def set_active(self, slot_id: str, is_active: bool) -> SalesSlot | None:
        return await self._patch(slot_id, is_active=is_active)

    async def delete(self, slot_id: str) -> bool:
        if slot_id not in self.store.slots:
            return False
        for key in [k for k in self.store.inventories if k[0] == slot_id]:
            self.journal.restore(self.store.inventories, key, self.store.inventories.pop(key))
        self.journal.restore(self.store.slots, slot_id, self.store.slots.pop(slot_id))
        return True


# ── Inventory ledger rows ─────────────────────────────────────────────────────
class MemoryInventoryRepository(_MemoryRepository):
    async def add(self, inventory: ProductInventory) -> ProductInventory:
        key = (inventory.sales_slot_id, inventory.product_id)
        async with self.store.row_lock(*key):
            if key in self.store.inventories:
                raise DuplicateInventoryError()
            self._put(self.store.inventories, key, inventory.model_copy(deep=True))
        return inventory.model_copy(deep=True)

    async def get(self, slot_id: str, product_id: str) -> ProductInventory | None:
        row = self.store.inventories.get((slot_id, product_id))
        return row.model_copy(deep=True) if row else None

    async def list_by_slot(self, slot_id: str) -> list[ProductInventory]:
        return [r.model_copy(deep=True) for (s, _), r in self.store.inventories.items() if s == slot_id]

    async def exists_for_product(self, product_id: str) -> bool:
        return any(p == product_id for _, p in self.store.inventories)

    def _shift(self, key: tuple[str, str], reserved: int, sold: int) -> None:
        row = self.store.inventories.get(key)
        if row is None:
            return
        self.store.inventories[key] = row.model_copy(update={
            "reserved_quantity": row.reserved_quantity + reserved,
            "sold_quantity": row.sold_quantity + sold,
            "updated_at": _now(),
        })

    async def _load(self, key: tuple[str, str]) -> ProductInventory | None:
        return self.store.inventories.get(key)

    async def _guarded_shift(self, slot_id: str, product_id: str, reserved: int, sold: int, guard) -> bool:
        key = (slot_id, product_id)
        # The read-check-write below is only atomic because of the row lock.
        async with self.store.row_lock(slot_id, product_id):
            row = await self._load(key)
            if row is None or not guard(row):
                return False
            self._shift(key, reserved, sold)
            self.journal.record(lambda: self._shift(key, -reserved, -sold))
        return True

    async def set_initial_quantity(self, slot_id: str, product_id: str, initial_quantity: int) -> bool:
        key = (slot_id, product_id)
        async with self.store.row_lock(slot_id, product_id):
            row = await self._load(key)
            if row is None or row.reserved_quantity + row.sold_quantity > initial_quantity:
                return False
            delta = initial_quantity - row.initial_quantity
            self._resize(key, delta)
            self.journal.record(lambda: self._resize(key, -delta))
        return True

    def _resize(self, key: tuple[str, str], delta: int) -> None:
        row = self.store.inventories.get(key)
        if row is None:
            return
        self.store.inventories[key] = row.model_copy(update={
            "initial_quantity": row.initial_quantity + delta,
            "updated_at": _now(),
        })

    async def reserve(self, slot_id: str, product_id: str, quantity: int) -> bool:
        return await self._guarded_shift(
            slot_id, product_id, quantity, 0,
            lambda r: r.reserved_quantity + r.sold_quantity + quantity <= r.initial_quantity,
        )

    async def release(self, slot_id: str, product_id: str, quantity: int) -> bool:
        return await self._guarded_shift(
            slot_id, product_id, -quantity, 0,
            lambda r: r.reserved_quantity >= quantity,
        )

    async def settle(self, slot_id: str, product_id: str, quantity: int) -> bool:
        return await self._guarded_shift(
            slot_id, product_id, -quantity, quantity,
            lambda r: r.reserved_quantity >= quantity,
        )


# ── Orders ────────────────────────────────────────────────────────────────────
class MemoryOrderRepository(_MemoryRepository):
    async def add(self, order: Order) -> Order:
        self._put(self.store.orders, order.id, order.model_copy(deep=True))
        return order.model_copy(deep=True)

    async def get(self, order_id: str) -> Order | None:
        order = self.store.orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    async def list_all(self, status: OrderStatus | None = None, slot_id: str | None = None) -> list[Order]:
        return [
            o.model_copy(deep=True)
            for o in self.store.orders.values()
            if (status is None or o.status == status) and (slot_id is None or o.sales_slot_id == slot_id)
        ]

    async def exists_for_slot(self, slot_id: str) -> bool:
        return any(o.sales_slot_id == slot_id for o in self.store.orders.values())

    async def lock_in_status(self, order_id: str, status: OrderStatus) -> bool:
        current = self.store.orders.get(order_id)
        return current is not None and current.status == status

    async def append_items(self, order_id: str, items: Sequence[OrderItem], total_amount: int) -> Order | None:
        current = self.store.orders.get(order_id)
        if current is None or current.status != OrderStatus.RESERVED:
            return None
        updated = current.model_copy(deep=True, update={
            "items": [*current.items, *(i.model_copy() for i in items)],
            "total_amount": total_amount,
            "updated_at": _now(),
        })
        self._put(self.store.orders, order_id, updated)
        return updated.model_copy(deep=True)

    async def transition(
        self, order_id: str, from_statuses: Sequence[OrderStatus], to_status: OrderStatus
    ) -> bool:
        current = self.store.orders.get(order_id)
        if current is None or current.status not in from_statuses:
            return False
        self._put(self.store.orders, order_id, current.model_copy(update={"status": to_status, "updated_at": _now()}))
        return True


# ── Tickets ───────────────────────────────────────────────────────────────────
class MemoryTicketRepository(_MemoryRepository):
    async def add(self, ticket: OrderTicket) -> OrderTicket:
        existing = self.store.tickets.values()
        if any(t.ticket_number == ticket.ticket_number for t in existing):
            raise DuplicateTicketNumberError()
        if any(t.order_id == ticket.order_id for t in existing):
            raise DuplicateTicketError()
        self._put(self.store.tickets, ticket.id, ticket.model_copy(deep=True))
        return ticket.model_copy(deep=True)

    def _find(self, predicate) -> OrderTicket | None:
        for ticket in self.store.tickets.values():
            if predicate(ticket):
                return ticket.model_copy(deep=True)
        return None

    async def get(self, ticket_id: str) -> OrderTicket | None:
        ticket = self.store.tickets.get(ticket_id)
        return ticket.model_copy(deep=True) if ticket else None

    async def get_by_number(self, ticket_number: str) -> OrderTicket | None:
        return self._find(lambda t: t.ticket_number == ticket_number)

    async def get_by_order(self, order_id: str) -> OrderTicket | None:
        return self._find(lambda t: t.order_id == order_id)

    async def list_all(self, created_from: datetime | None = None, created_to: datetime | None = None) -> list[OrderTicket]:
        tickets = sorted(self.store.tickets.values(), key=lambda t: t.created_at or _now())
        return [
            t.model_copy(deep=True)
            for t in tickets
            if (created_from is None or t.created_at >= created_from)
            and (created_to is None or t.created_at < created_to)
        ]

    def _patch(self, ticket_id: str, changes: dict) -> None:
        current = self.store.tickets[ticket_id]
        self._put(self.store.tickets, ticket_id, current.model_copy(update={**changes, "updated_at": _now()}))

    async def mark_paid(self, ticket_id: str, transaction_id: str | None) -> bool:
        current = self.store.tickets.get(ticket_id)
        if current is None or current.is_paid:
            return False
        changes = {"is_paid": True}
        if transaction_id is not None:
            changes["transaction_id"] = transaction_id
        self._patch(ticket_id, changes)
        return True

    async def mark_delivered(self, ticket_id: str) -> bool:
        current = self.store.tickets.get(ticket_id)
        if current is None or not current.is_paid or current.is_delivered:
            return False
        self._patch(ticket_id, {"is_delivered": True})
        return True

    async def overwrite_flags(
        self,
        ticket_id: str,
        *,
        is_paid: bool | None = None,
        is_delivered: bool | None = None,
        transaction_id: str | None = None,
    ) -> bool:
        if ticket_id not in self.store.tickets:
            return False
        changes = {
            k: v for k, v in
            (("is_paid", is_paid), ("is_delivered", is_delivered), ("transaction_id", transaction_id))
            if v is not None
        }
        if changes:
            self._patch(ticket_id, changes)
        return True


# ── Unit of work ──────────────────────────────────────────────────────────────
class MemoryUnitOfWork:
    def __init__(self, store: MemoryStore):
        self.store = store
        self._journal = _Journal()
        self.products = MemoryProductRepository(store, self._journal)
        self.slots = MemorySalesSlotRepository(store, self._journal)
        self.inventories = MemoryInventoryRepository(store, self._journal)
        self.orders = MemoryOrderRepository(store, self._journal)
        self.tickets = MemoryTicketRepository(store, self._journal)

    async def __aenter__(self) -> "MemoryUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self._journal.discard()
        else:
            logger.debug("Rolling back in-memory unit of work after %s", exc_type.__name__)
            self._journal.rollback()


def memory_uow_factory(store: MemoryStore | None = None):
    """Return a zero-argument callable producing MemoryUnitOfWork scopes over one store."""
    store = store or MemoryStore()

    def factory() -> MemoryUnitOfWork:
        return MemoryUnitOfWork(store)

    factory.store = store
    return factory
