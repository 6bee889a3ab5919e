"""
TimesEats — SQLAlchemy repositories and unit of work

Inventory counters and ticket flags change only through guarded single-
statement UPDATEs; `rowcount == 0` means the guard rejected the write:

    UPDATE product_inventories
       SET reserved_quantity = reserved_quantity + :q
     WHERE sales_slot_id = :slot AND product_id = :product
       AND reserved_quantity + sold_quantity + :q <= initial_quantity

The row lock taken by the UPDATE is held until the unit of work commits, so
reservers of the same (slot, product) row serialise on it and re-evaluate
the guard against committed counters. Rows of other pairs never block.
"""
import asyncio
import logging
from datetime import datetime
from functools import partial
from typing import Sequence

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timeseats import models
from timeseats.core.errors import (
    DuplicateInventoryError,
    DuplicateTicketError,
    DuplicateTicketNumberError,
    StorageFailureError,
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

# asyncpg raises OSError subclasses for refused/dropped connections, outside SQLAlchemy.
STORAGE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class _SqlRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _fetch_one(self, stmt):
        # populate_existing: guarded UPDATEs bypass the identity map.
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def _fetch_all(self, stmt):
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        return result.scalars().all()

    async def _update(self, stmt) -> int:
        result = await self.session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount


# ── Products ──────────────────────────────────────────────────────────────────
class SqlProductRepository(_SqlRepository):
    async def add(self, product: Product) -> Product:
        row = models.Product(**product.model_dump(exclude_none=True))
        self.session.add(row)
        await self.session.flush()
        return Product.model_validate(row)

    async def get(self, product_id: str) -> Product | None:
        row = await self._fetch_one(select(models.Product).where(models.Product.id == product_id))
        return Product.model_validate(row) if row else None

    async def list_all(self) -> list[Product]:
        rows = await self._fetch_all(select(models.Product).order_by(models.Product.created_at))
        return [Product.model_validate(r) for r in rows]

    async def update(self, product_id: str, name: str, price: int) -> Product | None:
        count = await self._update(
            update(models.Product)
            .where(models.Product.id == product_id)
            .values(name=name, price=price)
        )
        return await self.get(product_id) if count else None

    async def delete(self, product_id: str) -> bool:
        result = await self.session.execute(delete(models.Product).where(models.Product.id == product_id))
        return result.rowcount > 0


# ── Sales slots ───────────────────────────────────────────────────────────────
class SqlSalesSlotRepository(_SqlRepository):
    async def add(self, slot: SalesSlot) -> SalesSlot:
        row = models.SalesSlot(**slot.model_dump(exclude_none=True))
        self.session.add(row)
        await self.session.flush()
        return SalesSlot.model_validate(row)

    async def get(self, slot_id: str) -> SalesSlot | None:
        row = await self._fetch_one(select(models.SalesSlot).where(models.SalesSlot.id == slot_id))
        return SalesSlot.model_validate(row) if row else None

    async def list_all(self, active_only: bool = False) -> list[SalesSlot]:
        stmt = select(models.SalesSlot).order_by(models.SalesSlot.start_time)
        if active_only:
            stmt = stmt.where(models.SalesSlot.is_active.is_(True))
        return [SalesSlot.model_validate(r) for r in await self._fetch_all(stmt)]

    async def update_times(self, slot_id: str, start_time: datetime, end_time: datetime) -> SalesSlot | None:
        count = await self._update(
            update(models.SalesSlot)
            .where(models.SalesSlot.id == slot_id)
            .values(start_time=start_time, end_time=end_time)
        )
        return await self.get(slot_id) if count else None

    async def set_active(self, slot_id: str, is_active: bool) -> SalesSlot | None:
        count = await self._update(
            update(models.SalesSlot)
            .where(models.SalesSlot.id == slot_id)
            .values(is_active=is_active)
        )
        return await self.get(slot_id) if count else None

    async def delete(self, slot_id: str) -> bool:
        await self.session.execute(
            delete(models.ProductInventory).where(models.ProductInventory.sales_slot_id == slot_id)
        )
        result = await self.session.execute(delete(models.SalesSlot).where(models.SalesSlot.id == slot_id))
        return result.rowcount > 0


# ── Inventory ledger rows ─────────────────────────────────────────────────────
class SqlInventoryRepository(_SqlRepository):
    async def add(self, inventory: ProductInventory) -> ProductInventory:
        row = models.ProductInventory(**inventory.model_dump(exclude_none=True))
        self.session.add(row)
        try:
            await self.session.flush()
        except IntegrityError as e:
            if "uq_product_inventories_slot_product" in str(e.orig):
                raise DuplicateInventoryError() from e
            raise
        return ProductInventory.model_validate(row)

    def _pair(self, slot_id: str, product_id: str):
        inv = models.ProductInventory
        return (inv.sales_slot_id == slot_id, inv.product_id == product_id)

    async def get(self, slot_id: str, product_id: str) -> ProductInventory | None:
        row = await self._fetch_one(select(models.ProductInventory).where(*self._pair(slot_id, product_id)))
        return ProductInventory.model_validate(row) if row else None

    async def list_by_slot(self, slot_id: str) -> list[ProductInventory]:
        inv = models.ProductInventory
        rows = await self._fetch_all(select(inv).where(inv.sales_slot_id == slot_id).order_by(inv.created_at))
        return [ProductInventory.model_validate(r) for r in rows]

    async def exists_for_product(self, product_id: str) -> bool:
        inv = models.ProductInventory
        return bool(await self.session.scalar(select(exists().where(inv.product_id == product_id))))

    async def reserve(self, slot_id: str, product_id: str, quantity: int) -> bool:
        inv = models.ProductInventory
        count = await self._update(
            update(inv)
            .where(
                *self._pair(slot_id, product_id),
                inv.reserved_quantity + inv.sold_quantity + quantity <= inv.initial_quantity,
            )
            .values(reserved_quantity=inv.reserved_quantity + quantity)
        )
        return count == 1

    async def release(self, slot_id: str, product_id: str, quantity: int) -> bool:
        inv = models.ProductInventory
        count = await self._update(
            update(inv)
            .where(*self._pair(slot_id, product_id), inv.reserved_quantity >= quantity)
            .values(reserved_quantity=inv.reserved_quantity - quantity)
        )
        return count == 1

    async def set_initial_quantity(self, slot_id: str, product_id: str, initial_quantity: int) -> bool:
        inv = models.ProductInventory
        count = await self._update(
            update(inv)
            .where(
                *self._pair(slot_id, product_id),
                inv.reserved_quantity + inv.sold_quantity <= initial_quantity,
            )
            .values(initial_quantity=initial_quantity)
        )
        return count == 1

    async def settle(self, slot_id: str, product_id: str, quantity: int) -> bool:
        inv = models.ProductInventory
        count = await self._update(
            update(inv)
            .where(*self._pair(slot_id, product_id), inv.reserved_quantity >= quantity)
            .values(
                reserved_quantity=inv.reserved_quantity - quantity,
                sold_quantity=inv.sold_quantity + quantity,
            )
        )
        return count == 1


# ── Orders ────────────────────────────────────────────────────────────────────
class SqlOrderRepository(_SqlRepository):
    async def add(self, order: Order) -> Order:
        row = models.Order(**order.model_dump(exclude_none=True, exclude={"items"}))
        row.items = [
            models.OrderItem(**item.model_dump(exclude_none=True), position=position)
            for position, item in enumerate(order.items)
        ]
        self.session.add(row)
        await self.session.flush()
        return Order.model_validate(row)

    async def get(self, order_id: str) -> Order | None:
        row = await self._fetch_one(select(models.Order).where(models.Order.id == order_id))
        return Order.model_validate(row) if row else None

    async def list_all(self, status: OrderStatus | None = None, slot_id: str | None = None) -> list[Order]:
        stmt = select(models.Order).order_by(models.Order.created_at)
        if status is not None:
            stmt = stmt.where(models.Order.status == status)
        if slot_id is not None:
            stmt = stmt.where(models.Order.sales_slot_id == slot_id)
        return [Order.model_validate(r) for r in await self._fetch_all(stmt)]

    async def exists_for_slot(self, slot_id: str) -> bool:
        return bool(await self.session.scalar(
            select(exists().where(models.Order.sales_slot_id == slot_id))
        ))

    async def lock_in_status(self, order_id: str, status: OrderStatus) -> bool:
        order_id = await self.session.scalar(
            select(models.Order.id)
            .where(models.Order.id == order_id, models.Order.status == status)
            .with_for_update()
        )
        return order_id is not None

    async def append_items(self, order_id: str, items: Sequence[OrderItem], total_amount: int) -> Order | None:
        # Guarded on RESERVED so a concurrent cancel/confirm cannot interleave.
        count = await self._update(
            update(models.Order)
            .where(models.Order.id == order_id, models.Order.status == OrderStatus.RESERVED)
            .values(total_amount=total_amount)
        )
        if not count:
            return None
        offset = await self.session.scalar(
            select(func.count()).select_from(models.OrderItem).where(models.OrderItem.order_id == order_id)
        )
        for position, item in enumerate(items, start=offset or 0):
            self.session.add(models.OrderItem(**item.model_dump(exclude_none=True), position=position))
        await self.session.flush()
        return await self.get(order_id)

    async def transition(
        self, order_id: str, from_statuses: Sequence[OrderStatus], to_status: OrderStatus
    ) -> bool:
        count = await self._update(
            update(models.Order)
            .where(models.Order.id == order_id, models.Order.status.in_(list(from_statuses)))
            .values(status=to_status)
        )
        return count == 1


# ── Tickets ───────────────────────────────────────────────────────────────────
class SqlTicketRepository(_SqlRepository):
    async def add(self, ticket: OrderTicket) -> OrderTicket:
        row = models.OrderTicket(**ticket.model_dump(exclude_none=True))
        self.session.add(row)
        try:
            await self.session.flush()
        except IntegrityError as e:
            detail = str(e.orig)
            if "ticket_number" in detail:
                raise DuplicateTicketNumberError() from e
            if "uq_order_tickets_order_id" in detail:
                raise DuplicateTicketError() from e
            raise
        return OrderTicket.model_validate(row)

    async def _get_where(self, *criteria) -> OrderTicket | None:
        row = await self._fetch_one(select(models.OrderTicket).where(*criteria))
        return OrderTicket.model_validate(row) if row else None

    async def get(self, ticket_id: str) -> OrderTicket | None:
        return await self._get_where(models.OrderTicket.id == ticket_id)

    async def get_by_number(self, ticket_number: str) -> OrderTicket | None:
        return await self._get_where(models.OrderTicket.ticket_number == ticket_number)

    async def get_by_order(self, order_id: str) -> OrderTicket | None:
        return await self._get_where(models.OrderTicket.order_id == order_id)

    async def list_all(self, created_from: datetime | None = None, created_to: datetime | None = None) -> list[OrderTicket]:
        t = models.OrderTicket
        stmt = select(t).order_by(t.created_at)
        if created_from is not None:
            stmt = stmt.where(t.created_at >= created_from)
        if created_to is not None:
            stmt = stmt.where(t.created_at < created_to)
        return [OrderTicket.model_validate(r) for r in await self._fetch_all(stmt)]

    async def mark_paid(self, ticket_id: str, transaction_id: str | None) -> bool:
        t = models.OrderTicket
        values = {"is_paid": True}
        if transaction_id is not None:
            values["transaction_id"] = transaction_id
        count = await self._update(
            update(t).where(t.id == ticket_id, t.is_paid.is_(False)).values(**values)
        )
        return count == 1

    async def mark_delivered(self, ticket_id: str) -> bool:
        t = models.OrderTicket
        count = await self._update(
            update(t)
            .where(t.id == ticket_id, t.is_paid.is_(True), t.is_delivered.is_(False))
            .values(is_delivered=True)
        )
        return count == 1

    async def overwrite_flags(
        self,
        ticket_id: str,
        *,
        is_paid: bool | None = None,
        is_delivered: bool | None = None,
        transaction_id: str | None = None,
    ) -> bool:
        t = models.OrderTicket
        values = {}
        if is_paid is not None:
            values["is_paid"] = is_paid
        if is_delivered is not None:
            values["is_delivered"] = is_delivered
        if transaction_id is not None:
            values["transaction_id"] = transaction_id
        if not values:
            return await self.get(ticket_id) is not None
        return await self._update(update(t).where(t.id == ticket_id).values(**values)) == 1


# ── Unit of work ──────────────────────────────────────────────────────────────
class SqlAlchemyUnitOfWork:
    """
    One session, one transaction. Driver and network failures (SQLAlchemy
    errors, refused or dropped connections, timeouts) surface as
    StorageFailureError.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory
        self.session: AsyncSession | None = None

    async def __aenter__(self) -> "SqlAlchemyUnitOfWork":
        self.session = self._session_factory()
        self.products = SqlProductRepository(self.session)
        self.slots = SqlSalesSlotRepository(self.session)
        self.inventories = SqlInventoryRepository(self.session)
        self.orders = SqlOrderRepository(self.session)
        self.tickets = SqlTicketRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                await self.session.commit()
            else:
                await self.session.rollback()
        except STORAGE_ERRORS as e:
            logger.exception("%s failed", "Commit" if exc_type is None else "Rollback")
            raise StorageFailureError(f"Storage operation failed: {str(e)[:200]}") from e
        finally:
            await self.session.close()

        if isinstance(exc, STORAGE_ERRORS):
            logger.exception("Storage operation failed", exc_info=exc)
            raise StorageFailureError(f"Storage operation failed: {str(exc)[:200]}") from exc


def sql_uow_factory(session_factory: async_sessionmaker):
    """Return a zero-argument callable producing fresh SqlAlchemyUnitOfWork scopes."""
    return partial(SqlAlchemyUnitOfWork, session_factory)
