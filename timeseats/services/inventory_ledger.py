"""
TimesEats — Inventory ledger

Per (slot, product) counters: initial, reserved, sold. Invariant, always:

    0 <= reserved,  0 <= sold,  reserved + sold <= initial

Every counter change is delegated to a guarded single-step repository
operation, so concurrent callers on the same row serialise on that row
and callers on different rows do not contend at all.

Operations accept an optional `uow` so the order lifecycle can run several
of them inside its own all-or-nothing unit of work; without one, each call
commits on its own.
"""
import logging
from contextlib import asynccontextmanager

from timeseats.core.errors import (
    DuplicateInventoryError,
    InsufficientStockError,
    InvalidRequestError,
    InventoryUnderflowError,
    NotFoundError,
)
from timeseats.repositories.base import UnitOfWork
from timeseats.schemas.entities import ProductInventory
from timeseats.services.base import UowFactory, new_id, utcnow

logger = logging.getLogger(__name__)


def _inventory_key(slot_id: str, product_id: str) -> str:
    return f"{slot_id}/{product_id}"


def _require_positive(quantity: int) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise InvalidRequestError(f"Quantity must be a positive integer, got {quantity!r}.")


class InventoryLedger:
    def __init__(self, uow_factory: UowFactory):
        self._uow_factory = uow_factory

    @asynccontextmanager
    async def _scope(self, uow: UnitOfWork | None):
        if uow is not None:
            yield uow
            return
        async with self._uow_factory() as own:
            yield own

    async def create_entry(
        self, slot_id: str, product_id: str, initial_quantity: int, *, uow: UnitOfWork | None = None
    ) -> ProductInventory:
        if not isinstance(initial_quantity, int) or isinstance(initial_quantity, bool) or initial_quantity < 0:
            raise InvalidRequestError(f"Initial quantity must be a non-negative integer, got {initial_quantity!r}.")

        async with self._scope(uow) as uow:
            if await uow.slots.get(slot_id) is None:
                raise NotFoundError("SalesSlot", slot_id)
            if await uow.products.get(product_id) is None:
                raise NotFoundError("Product", product_id)
            if await uow.inventories.get(slot_id, product_id) is not None:
                raise DuplicateInventoryError(
                    f"Product '{product_id}' is already allocated to slot '{slot_id}'."
                )
            now = utcnow()
            # The unique (slot, product) constraint still backs the pre-check above.
            inventory = await uow.inventories.add(ProductInventory(
                id=new_id(),
                sales_slot_id=slot_id,
                product_id=product_id,
                initial_quantity=initial_quantity,
                reserved_quantity=0,
                sold_quantity=0,
                created_at=now,
                updated_at=now,
            ))

        logger.info("Allocated product %s to slot %s with %d unit(s)", product_id, slot_id, initial_quantity)
        return inventory

    async def get_entry(self, slot_id: str, product_id: str, *, uow: UnitOfWork | None = None) -> ProductInventory:
        async with self._scope(uow) as uow:
            inventory = await uow.inventories.get(slot_id, product_id)
        if inventory is None:
            raise NotFoundError("ProductInventory", _inventory_key(slot_id, product_id))
        return inventory

    async def set_initial_quantity(
        self, slot_id: str, product_id: str, initial_quantity: int, *, uow: UnitOfWork | None = None
    ) -> ProductInventory:
        """
        Restock (or shrink) an allocation. Reserved and sold counters are kept,
        so the new quantity may not drop below what is already committed.
        """
        if not isinstance(initial_quantity, int) or isinstance(initial_quantity, bool) or initial_quantity < 0:
            raise InvalidRequestError(f"Initial quantity must be a non-negative integer, got {initial_quantity!r}.")

        async with self._scope(uow) as uow:
            if not await uow.inventories.set_initial_quantity(slot_id, product_id, initial_quantity):
                inventory = await uow.inventories.get(slot_id, product_id)
                if inventory is None:
                    raise NotFoundError("ProductInventory", _inventory_key(slot_id, product_id))
                committed = inventory.reserved_quantity + inventory.sold_quantity
                raise InvalidRequestError(
                    f"Cannot set {_inventory_key(slot_id, product_id)} to {initial_quantity} unit(s): "
                    f"{committed} already reserved or sold."
                )
            inventory = await uow.inventories.get(slot_id, product_id)

        logger.info("Inventory %s set to %d unit(s)", _inventory_key(slot_id, product_id), initial_quantity)
        return inventory

    async def reserve(
        self, slot_id: str, product_id: str, quantity: int, *, uow: UnitOfWork | None = None
    ) -> None:
        """Hold `quantity` units; InsufficientStockError if the row cannot take them."""
        _require_positive(quantity)
        async with self._scope(uow) as uow:
            if await uow.inventories.reserve(slot_id, product_id, quantity):
                return
            inventory = await uow.inventories.get(slot_id, product_id)
            if inventory is None:
                raise NotFoundError("ProductInventory", _inventory_key(slot_id, product_id))
            logger.warning(
                "Reservation rejected for %s: requested=%d, available=%d",
                _inventory_key(slot_id, product_id), quantity, inventory.available_quantity,
            )
            raise InsufficientStockError(slot_id, product_id, quantity, inventory.available_quantity)

    async def release(
        self, slot_id: str, product_id: str, quantity: int, *, uow: UnitOfWork | None = None
    ) -> None:
        """Give back `quantity` reserved units."""
        _require_positive(quantity)
        async with self._scope(uow) as uow:
            if await uow.inventories.release(slot_id, product_id, quantity):
                return
            await self._raise_underflow(uow, slot_id, product_id, quantity, "release")

    async def settle(
        self, slot_id: str, product_id: str, quantity: int, *, uow: UnitOfWork | None = None
    ) -> None:
        """Turn `quantity` reserved units into sold units."""
        _require_positive(quantity)
        async with self._scope(uow) as uow:
            if await uow.inventories.settle(slot_id, product_id, quantity):
                return
            await self._raise_underflow(uow, slot_id, product_id, quantity, "settle")

    async def _raise_underflow(self, uow: UnitOfWork, slot_id: str, product_id: str, quantity: int, action: str):
        inventory = await uow.inventories.get(slot_id, product_id)
        if inventory is None:
            raise NotFoundError("ProductInventory", _inventory_key(slot_id, product_id))
        raise InventoryUnderflowError(
            f"Cannot {action} {quantity} unit(s) of {_inventory_key(slot_id, product_id)}: "
            f"only {inventory.reserved_quantity} reserved."
        )
