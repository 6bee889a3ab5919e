"""
TimesEats — Sales slot routes
"""
from fastapi import APIRouter, Depends, Query, Response, status

from timeseats.api.deps import get_services
from timeseats.schemas.entities import Order, ProductInventory, SalesSlot
from timeseats.schemas.requests import AddProductRequest, InventoryUpdateRequest, SalesSlotRequest
from timeseats.services.factory import SalesServices

router = APIRouter(prefix="/api/v1/sales-slots", tags=["sales-slots"])


@router.post("", response_model=SalesSlot, status_code=status.HTTP_201_CREATED)
async def create_slot(payload: SalesSlotRequest, services: SalesServices = Depends(get_services)):
    """Slots are created inactive; activate explicitly to open them for orders."""
    return await services.slots.create_slot(payload.start_time, payload.end_time)


@router.get("", response_model=list[SalesSlot])
async def list_slots(
    active_only: bool = Query(False, description="Only slots currently accepting orders"),
    services: SalesServices = Depends(get_services),
):
    return await services.slots.list_slots(active_only=active_only)


@router.get("/active", response_model=list[SalesSlot])
async def list_active_slots(services: SalesServices = Depends(get_services)):
    return await services.slots.list_active_slots()


@router.get("/{slot_id}", response_model=SalesSlot)
async def get_slot(slot_id: str, services: SalesServices = Depends(get_services)):
    return await services.slots.get_slot(slot_id)


@router.put("/{slot_id}", response_model=SalesSlot)
async def update_slot(slot_id: str, payload: SalesSlotRequest, services: SalesServices = Depends(get_services)):
    return await services.slots.update_slot(slot_id, payload.start_time, payload.end_time)


@router.delete("/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_slot(slot_id: str, services: SalesServices = Depends(get_services)):
    await services.slots.delete_slot(slot_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{slot_id}/activate", response_model=SalesSlot)
async def activate_slot(slot_id: str, services: SalesServices = Depends(get_services)):
    return await services.slots.activate(slot_id)


@router.put("/{slot_id}/deactivate", response_model=SalesSlot)
async def deactivate_slot(slot_id: str, services: SalesServices = Depends(get_services)):
    return await services.slots.deactivate(slot_id)


@router.post("/{slot_id}/products", response_model=ProductInventory, status_code=status.HTTP_201_CREATED)
async def add_product(slot_id: str, payload: AddProductRequest, services: SalesServices = Depends(get_services)):
    return await services.slots.add_product(slot_id, payload.product_id, payload.initial_quantity)


@router.get("/{slot_id}/products", response_model=list[ProductInventory])
async def list_inventories(slot_id: str, services: SalesServices = Depends(get_services)):
    return await services.slots.list_inventories(slot_id)


@router.get("/{slot_id}/products/{product_id}", response_model=ProductInventory)
async def get_inventory(slot_id: str, product_id: str, services: SalesServices = Depends(get_services)):
    return await services.slots.get_inventory(slot_id, product_id)


@router.put("/{slot_id}/products/{product_id}", response_model=ProductInventory)
async def update_inventory(
    slot_id: str, product_id: str, payload: InventoryUpdateRequest, services: SalesServices = Depends(get_services)
):
    """Change the allocated quantity; reserved and sold counts are kept."""
    return await services.slots.update_inventory_quantity(slot_id, product_id, payload.initial_quantity)


@router.get("/{slot_id}/orders", response_model=list[Order])
async def list_slot_orders(slot_id: str, services: SalesServices = Depends(get_services)):
    return await services.orders.list_by_slot(slot_id)
