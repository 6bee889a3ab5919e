"""
TimesEats — Sales slot manager

A slot is a time window plus the products allocated to it. Activation is an
explicit switch, never inferred from the clock: orders are accepted only
while `is_active` is set.
"""
import logging
from datetime import datetime

from timeseats.core.errors import InvalidTimeRangeError, NotFoundError, SlotInUseError
from timeseats.schemas.entities import ProductInventory, SalesSlot
from timeseats.services.base import UowFactory, as_utc, new_id, utcnow
from timeseats.services.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)


def _check_range(start_time: datetime, end_time: datetime) -> tuple[datetime, datetime]:
    start_time, end_time = as_utc(start_time), as_utc(end_time)
    if end_time <= start_time:
        raise InvalidTimeRangeError(
            f"End time {end_time.isoformat()} must be after start time {start_time.isoformat()}."
        )
    return start_time, end_time


class SalesSlotService:
    def __init__(self, uow_factory: UowFactory, ledger: InventoryLedger | None = None):
        self._uow_factory = uow_factory
        self.ledger = ledger or InventoryLedger(uow_factory)

    async def create_slot(self, start_time: datetime, end_time: datetime) -> SalesSlot:
        start_time, end_time = _check_range(start_time, end_time)
        now = utcnow()
        async with self._uow_factory() as uow:
            slot = await uow.slots.add(SalesSlot(
                id=new_id(), start_time=start_time, end_time=end_time,
                is_active=False, created_at=now, updated_at=now,
            ))
        logger.info("Sales slot created: %s [%s, %s)", slot.id, start_time.isoformat(), end_time.isoformat())
        return slot

    async def get_slot(self, slot_id: str) -> SalesSlot:
        async with self._uow_factory() as uow:
            slot = await uow.slots.get(slot_id)
        if slot is None:
            raise NotFoundError("SalesSlot", slot_id)
        return slot

    async def list_slots(self, active_only: bool = False) -> list[SalesSlot]:
        async with self._uow_factory() as uow:
            return await uow.slots.list_all(active_only=active_only)

    async def list_active_slots(self) -> list[SalesSlot]:
        return await self.list_slots(active_only=True)

    async def update_slot(self, slot_id: str, start_time: datetime, end_time: datetime) -> SalesSlot:
        start_time, end_time = _check_range(start_time, end_time)
        async with self._uow_factory() as uow:
            slot = await uow.slots.update_times(slot_id, start_time, end_time)
        if slot is None:
            raise NotFoundError("SalesSlot", slot_id)
        return slot

    async def delete_slot(self, slot_id: str) -> None:
        async with self._uow_factory() as uow:
            if await uow.slots.get(slot_id) is None:
                raise NotFoundError("SalesSlot", slot_id)
            if await uow.orders.exists_for_slot(slot_id):
                raise SlotInUseError(f"Sales slot '{slot_id}' has orders and cannot be deleted.")
            await uow.slots.delete(slot_id)
        logger.info("Sales slot deleted: %s", slot_id)

    async def _set_active(self, slot_id: str, is_active: bool) -> SalesSlot:
        async with self._uow_factory() as uow:
            slot = await uow.slots.set_active(slot_id, is_active)
        if slot is None:
            raise NotFoundError("SalesSlot", slot_id)
        logger.info("Sales slot %s %s", slot_id, "activated" if is_active else "deactivated")
        return slot

    async def activate(self, slot_id: str) -> SalesSlot:
        return await self._set_active(slot_id, True)

    async def deactivate(self, slot_id: str) -> SalesSlot:
        return await self._set_active(slot_id, False)

    async def add_product(self, slot_id: str, product_id: str, initial_quantity: int) -> ProductInventory:
        return await self.ledger.create_entry(slot_id, product_id, initial_quantity)

    async def update_inventory_quantity(
        self, slot_id: str, product_id: str, initial_quantity: int
    ) -> ProductInventory:
        return await self.ledger.set_initial_quantity(slot_id, product_id, initial_quantity)

    async def get_inventory(self, slot_id: str, product_id: str) -> ProductInventory:
        return await self.ledger.get_entry(slot_id, product_id)

    async def list_inventories(self, slot_id: str) -> list[ProductInventory]:
        async with self._uow_factory() as uow:
            if await uow.slots.get(slot_id) is None:
                raise NotFoundError("SalesSlot", slot_id)
            return await uow.inventories.list_by_slot(slot_id)
