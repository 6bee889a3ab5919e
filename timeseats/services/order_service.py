"""
TimesEats — Order lifecycle

State machine:

    RESERVED --confirm--> CONFIRMED --complete--> COMPLETED
    RESERVED --cancel---> CANCELLED

CANCELLED and COMPLETED are terminal. Confirmation settles the reserved
units into sold units, so a CONFIRMED order can no longer be cancelled.

Creating an order, or appending lines to one, reserves stock for every line
inside a single unit of work together with the order writes: either every
reservation and the order land, or none of them do. Duplicate product lines
are reserved and stored independently, never merged.
"""
import logging
from typing import Iterable

from timeseats.core.errors import (
    InvalidOrderStatusError,
    InvalidRequestError,
    NotFoundError,
    SlotNotActiveError,
)
from timeseats.repositories.base import UnitOfWork
from timeseats.schemas.entities import Order, OrderItem, OrderLine, OrderStatus
from timeseats.services.base import UowFactory, new_id, utcnow
from timeseats.services.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


def to_order_lines(items: Iterable) -> list[OrderLine]:
    """Accept OrderLine / (product_id, quantity) tuples / objects with those attributes."""
    lines = []
    for item in items:
        if isinstance(item, tuple):
            line = OrderLine(*item)
        else:
            line = OrderLine(item.product_id, item.quantity)
        if not isinstance(line.quantity, int) or isinstance(line.quantity, bool) or line.quantity <= 0:
            raise InvalidRequestError(
                f"Quantity for product '{line.product_id}' must be a positive integer, got {line.quantity!r}."
            )
        lines.append(line)
    if not lines:
        raise InvalidRequestError("Order must contain at least one item.")
    return lines


def _in_lock_order(lines):
    """Every path that touches inventory rows walks them in product-id order."""
    return sorted(lines, key=lambda line: line.product_id)


class OrderService:
    def __init__(self, uow_factory: UowFactory, ledger: InventoryLedger | None = None):
        self._uow_factory = uow_factory
        self.ledger = ledger or InventoryLedger(uow_factory)

    # ── Reservation helpers ───────────────────────────────────────────────────
    async def _require_active_slot(self, uow: UnitOfWork, slot_id: str) -> None:
        slot = await uow.slots.get(slot_id)
        if slot is None:
            raise NotFoundError("SalesSlot", slot_id)
        if not slot.is_active:
            raise SlotNotActiveError(f"Sales slot '{slot_id}' is not accepting orders.")

    async def _reserve_lines(
        self, uow: UnitOfWork, slot_id: str, order_id: str, lines: list[OrderLine]
    ) -> list[OrderItem]:
        prices: dict[str, int] = {}
        for line in lines:
            if line.product_id not in prices:
                product = await uow.products.get(line.product_id)
                if product is None:
                    raise NotFoundError("Product", line.product_id)
                prices[line.product_id] = product.price

        # Rows are locked in product order so concurrent multi-line orders cannot deadlock.
        for line in _in_lock_order(lines):
            await self.ledger.reserve(slot_id, line.product_id, line.quantity, uow=uow)

        return [
            OrderItem(
                id=new_id(),
                order_id=order_id,
                product_id=line.product_id,
                quantity=line.quantity,
                price=prices[line.product_id],
            )
            for line in lines
        ]

    async def _get(self, uow: UnitOfWork, order_id: str) -> Order:
        order = await uow.orders.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    # ── Lifecycle operations ──────────────────────────────────────────────────
    async def create_order(self, slot_id: str, items: Iterable) -> Order:
        lines = to_order_lines(items)
        async with self._uow_factory() as uow:
            await self._require_active_slot(uow, slot_id)
            order_id = new_id()
            order_items = await self._reserve_lines(uow, slot_id, order_id, lines)
            now = utcnow()
            order = await uow.orders.add(Order(
                id=order_id,
                sales_slot_id=slot_id,
                status=OrderStatus.RESERVED,
                total_amount=sum(item.subtotal for item in order_items),
                items=order_items,
                created_at=now,
                updated_at=now,
            ))

        logger.info(
            "Order %s reserved in slot %s: %d line(s), total=%d",
            order.id, slot_id, len(order.items), order.total_amount,
        )
        return order

    async def add_items(self, order_id: str, items: Iterable) -> Order:
        lines = to_order_lines(items)
        async with self._uow_factory() as uow:
            # Order row first, then inventory rows: the same order confirm and cancel use.
            if not await uow.orders.lock_in_status(order_id, OrderStatus.RESERVED):
                order = await self._get(uow, order_id)
                raise InvalidOrderStatusError(
                    f"Cannot add items to order '{order_id}' with status {order.status.value}."
                )
            order = await self._get(uow, order_id)
            await self._require_active_slot(uow, order.sales_slot_id)
            new_items = await self._reserve_lines(uow, order.sales_slot_id, order_id, lines)
            total = order.total_amount + sum(item.subtotal for item in new_items)
            updated = await uow.orders.append_items(order_id, new_items, total)
            if updated is None:
                raise InvalidOrderStatusError(f"Order '{order_id}' changed status concurrently.")

        logger.info("Order %s: %d line(s) added, total=%d", order_id, len(new_items), updated.total_amount)
        return updated

    async def confirm_order(self, order_id: str) -> Order:
        async with self._uow_factory() as uow:
            order = await self._get(uow, order_id)
            if order.status != OrderStatus.RESERVED:
                raise InvalidOrderStatusError(
                    f"Only RESERVED orders can be confirmed; order '{order_id}' is {order.status.value}."
                )
            # The status guard runs first so two concurrent confirms cannot both settle.
            if not await uow.orders.transition(order_id, [OrderStatus.RESERVED], OrderStatus.CONFIRMED):
                raise InvalidOrderStatusError(f"Order '{order_id}' changed status concurrently.")
            for item in _in_lock_order(order.items):
                await self.ledger.settle(order.sales_slot_id, item.product_id, item.quantity, uow=uow)
            confirmed = await self._get(uow, order_id)

        logger.info("Order %s confirmed; %d line(s) settled", order_id, len(order.items))
        return confirmed

    async def cancel_order(self, order_id: str) -> Order:
        async with self._uow_factory() as uow:
            order = await self._get(uow, order_id)
            if order.status == OrderStatus.CONFIRMED:
                raise InvalidOrderStatusError(
                    f"Order '{order_id}' is CONFIRMED; its stock is settled and cannot be released."
                )
            if order.status != OrderStatus.RESERVED:
                raise InvalidOrderStatusError(
                    f"Cannot cancel order '{order_id}' with status {order.status.value}."
                )
            if not await uow.orders.transition(order_id, [OrderStatus.RESERVED], OrderStatus.CANCELLED):
                raise InvalidOrderStatusError(f"Order '{order_id}' changed status concurrently.")
            for item in _in_lock_order(order.items):
                await self.ledger.release(order.sales_slot_id, item.product_id, item.quantity, uow=uow)
            cancelled = await self._get(uow, order_id)

        logger.info("Order %s cancelled; %d line(s) released", order_id, len(order.items))
        return cancelled

    async def complete_order(self, order_id: str) -> Order:
        async with self._uow_factory() as uow:
            order = await self._get(uow, order_id)
            if order.status != OrderStatus.CONFIRMED or not await uow.orders.transition(
                order_id, [OrderStatus.CONFIRMED], OrderStatus.COMPLETED
            ):
                raise InvalidOrderStatusError(
                    f"Only CONFIRMED orders can be completed; order '{order_id}' is {order.status.value}."
                )
            completed = await self._get(uow, order_id)

        logger.info("Order %s completed", order_id)
        return completed

    # ── Queries ───────────────────────────────────────────────────────────────
    async def get_order(self, order_id: str) -> Order:
        async with self._uow_factory() as uow:
            return await self._get(uow, order_id)

    async def list_orders(self, status: OrderStatus | None = None, slot_id: str | None = None) -> list[Order]:
        async with self._uow_factory() as uow:
            return await uow.orders.list_all(status=status, slot_id=slot_id)

    async def list_by_status(self, status: OrderStatus) -> list[Order]:
        try:
            status = OrderStatus(status)
        except ValueError:
            raise InvalidRequestError(f"Unknown order status {status!r}.") from None
        return await self.list_orders(status=status)

    async def list_by_slot(self, slot_id: str) -> list[Order]:
        return await self.list_orders(slot_id=slot_id)

    async def get_order_by_ticket_number(self, ticket_number: str) -> Order:
        async with self._uow_factory() as uow:
            ticket = await uow.tickets.get_by_number(ticket_number)
            if ticket is None:
                raise NotFoundError("OrderTicket", ticket_number)
            return await self._get(uow, ticket.order_id)
