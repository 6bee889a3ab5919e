"""
TimesEats — Order ticket routes
"""
from datetime import date, datetime, timezone
from fastapi import APIRouter, Depends, Query, status

from timeseats.api.deps import get_services
from timeseats.schemas.entities import OrderTicket, TicketSummary
from timeseats.schemas.requests import DeliveryUpdateRequest, PaymentUpdateRequest, TicketCreateRequest
from timeseats.services.factory import SalesServices

router = APIRouter(prefix="/api/v1/order-tickets", tags=["order-tickets"])


@router.post("", response_model=OrderTicket, status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketCreateRequest, services: SalesServices = Depends(get_services)):
    return await services.tickets.create_ticket(payload.order_id, payload.ticket_number, payload.payment_method)


@router.get("", response_model=list[OrderTicket])
async def list_tickets(services: SalesServices = Depends(get_services)):
    return await services.tickets.list_tickets()


@router.get("/summary/daily", response_model=TicketSummary)
async def daily_summary(
    day: date | None = Query(None, description="UTC date, defaults to today"),
    services: SalesServices = Depends(get_services),
):
    return await services.tickets.daily_summary(day or datetime.now(timezone.utc).date())


@router.get("/number/{ticket_number}", response_model=OrderTicket)
async def get_ticket_by_number(ticket_number: str, services: SalesServices = Depends(get_services)):
    return await services.tickets.get_ticket_by_number(ticket_number)


@router.get("/{ticket_id}", response_model=OrderTicket)
async def get_ticket(ticket_id: str, services: SalesServices = Depends(get_services)):
    return await services.tickets.get_ticket(ticket_id)


@router.put("/{ticket_id}/payment", response_model=OrderTicket)
async def update_payment(
    ticket_id: str, payload: PaymentUpdateRequest, services: SalesServices = Depends(get_services)
):
    return await services.tickets.update_payment_status(ticket_id, payload.is_paid, payload.transaction_id)


@router.put("/{ticket_id}/deliver", response_model=OrderTicket)
async def update_delivery(
    ticket_id: str, payload: DeliveryUpdateRequest, services: SalesServices = Depends(get_services)
):
    return await services.tickets.update_delivery_status(ticket_id, payload.is_delivered)
