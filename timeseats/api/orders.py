"""
TimesEats — Order routes

Flow:
  1. POST /orders reserves stock for every line and stores the order (RESERVED)
  2. PUT /orders/{id}/confirm settles the reservation into sales (CONFIRMED)
  3. A ticket is issued against the confirmed order (see order_tickets)
  4. PUT /orders/{id}/complete closes it (COMPLETED)
PUT /orders/{id}/cancel releases the reservation of a RESERVED order.
"""
from fastapi import APIRouter, Depends, Query, status

from timeseats.api.deps import get_services
from timeseats.schemas.entities import Order, OrderStatus
from timeseats.schemas.requests import OrderCreateRequest, OrderItemsRequest
from timeseats.services.factory import SalesServices

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


@router.post("", response_model=Order, status_code=status.HTTP_201_CREATED)
async def create_order(payload: OrderCreateRequest, services: SalesServices = Depends(get_services)):
    return await services.orders.create_order(payload.sales_slot_id, payload.items)


@router.get("", response_model=list[Order])
async def list_orders(
    status: OrderStatus | None = Query(None, description="Filter by status"),
    slot_id: str | None = Query(None, description="Filter by sales slot"),
    services: SalesServices = Depends(get_services),
):
    return await services.orders.list_orders(status=status, slot_id=slot_id)


@router.get("/status/{order_status}", response_model=list[Order])
async def list_orders_by_status(order_status: OrderStatus, services: SalesServices = Depends(get_services)):
    return await services.orders.list_by_status(order_status)


@router.get("/ticket/{ticket_number}", response_model=Order)
async def get_order_by_ticket(ticket_number: str, services: SalesServices = Depends(get_services)):
    return await services.orders.get_order_by_ticket_number(ticket_number)


@router.get("/{order_id}", response_model=Order)
async def get_order(order_id: str, services: SalesServices = Depends(get_services)):
    return await services.orders.get_order(order_id)


@router.post("/{order_id}/items", response_model=Order)
async def add_items(order_id: str, payload: OrderItemsRequest, services: SalesServices = Depends(get_services)):
    return await services.orders.add_items(order_id, payload.items)


@router.put("/{order_id}/confirm", response_model=Order)
async def confirm_order(order_id: str, services: SalesServices = Depends(get_services)):
    return await services.orders.confirm_order(order_id)


@router.put("/{order_id}/cancel", response_model=Order)
async def cancel_order(order_id: str, services: SalesServices = Depends(get_services)):
    return await services.orders.cancel_order(order_id)


@router.put("/{order_id}/complete", response_model=Order)
async def complete_order(order_id: str, services: SalesServices = Depends(get_services)):
    return await services.orders.complete_order(order_id)
