"""
TimesEats — Ticket issuance & fulfillment

One ticket per CONFIRMED order, numbered by the caller with a globally
unique ticket number. Per ticket:

    (unpaid, undelivered) -> (paid, undelivered) -> (paid, delivered)

Marking paid twice fails with AlreadyPaid; delivering before payment fails
with PaymentRequired; delivering twice fails with AlreadyDelivered. The
"set to false" writes are accepted as plain updates.
"""
import logging
from collections import Counter
from datetime import date, datetime, time, timedelta, timezone

from timeseats.core.errors import (
    AlreadyDeliveredError,
    AlreadyPaidError,
    DuplicateTicketError,
    DuplicateTicketNumberError,
    InvalidOrderStatusError,
    InvalidRequestError,
    NotFoundError,
    PaymentRequiredError,
)
from timeseats.repositories.base import UnitOfWork
from timeseats.schemas.entities import OrderStatus, OrderTicket, PaymentMethod, TicketSummary
from timeseats.services.base import UowFactory, new_id, utcnow

logger = logging.getLogger(__name__)


class TicketService:
    def __init__(self, uow_factory: UowFactory):
        self._uow_factory = uow_factory

    async def _get(self, uow: UnitOfWork, ticket_id: str) -> OrderTicket:
        ticket = await uow.tickets.get(ticket_id)
        if ticket is None:
            raise NotFoundError("OrderTicket", ticket_id)
        return ticket

    async def create_ticket(
        self, order_id: str, ticket_number: str, payment_method: PaymentMethod = PaymentMethod.CASH
    ) -> OrderTicket:
        """
        Issue the ticket for a confirmed order.

        Preconditions are checked in this order: order exists, order is
        CONFIRMED, order has no ticket yet, ticket number is unused.
        """
        if not ticket_number or not ticket_number.strip():
            raise InvalidRequestError("Ticket number must not be empty.")
        try:
            payment_method = PaymentMethod(payment_method)
        except ValueError:
            raise InvalidRequestError(f"Unknown payment method {payment_method!r}.") from None

        async with self._uow_factory() as uow:
            order = await uow.orders.get(order_id)
            if order is None:
                raise NotFoundError("Order", order_id)
            if order.status != OrderStatus.CONFIRMED:
                raise InvalidOrderStatusError(
                    f"Tickets are issued for CONFIRMED orders only; order '{order_id}' is {order.status.value}."
                )
            if await uow.tickets.get_by_order(order_id) is not None:
                raise DuplicateTicketError(f"A ticket has already been issued for order '{order_id}'.")
            if await uow.tickets.get_by_number(ticket_number) is not None:
                raise DuplicateTicketNumberError(f"Ticket number '{ticket_number}' is already in use.")

            now = utcnow()
            ticket = await uow.tickets.add(OrderTicket(
                id=new_id(),
                ticket_number=ticket_number,
                order_id=order_id,
                payment_method=payment_method,
                is_paid=False,
                is_delivered=False,
                created_at=now,
                updated_at=now,
            ))

        logger.info("Ticket %s issued for order %s (%s)", ticket_number, order_id, payment_method.value)
        return ticket

    async def update_payment_status(
        self, ticket_id: str, is_paid: bool, transaction_id: str | None = None
    ) -> OrderTicket:
        async with self._uow_factory() as uow:
            ticket = await self._get(uow, ticket_id)
            if is_paid:
                # The guarded write also catches a concurrent payer that won the race.
                if ticket.is_paid or not await uow.tickets.mark_paid(ticket_id, transaction_id):
                    raise AlreadyPaidError(f"Ticket '{ticket.ticket_number}' is already paid.")
                logger.info("Ticket %s paid (transaction=%s)", ticket.ticket_number, transaction_id)
            else:
                await uow.tickets.overwrite_flags(ticket_id, is_paid=False, transaction_id=transaction_id)
            return await self._get(uow, ticket_id)

    async def update_delivery_status(self, ticket_id: str, is_delivered: bool) -> OrderTicket:
        async with self._uow_factory() as uow:
            ticket = await self._get(uow, ticket_id)
            if is_delivered:
                if not ticket.is_paid:
                    raise PaymentRequiredError(f"Ticket '{ticket.ticket_number}' must be paid before delivery.")
                if ticket.is_delivered:
                    raise AlreadyDeliveredError(f"Ticket '{ticket.ticket_number}' is already delivered.")
                if not await uow.tickets.mark_delivered(ticket_id):
                    raise AlreadyDeliveredError(f"Ticket '{ticket.ticket_number}' is already delivered.")
                logger.info("Ticket %s delivered", ticket.ticket_number)
            else:
                await uow.tickets.overwrite_flags(ticket_id, is_delivered=False)
            return await self._get(uow, ticket_id)

    async def get_ticket(self, ticket_id: str) -> OrderTicket:
        async with self._uow_factory() as uow:
            return await self._get(uow, ticket_id)

    async def get_ticket_by_number(self, ticket_number: str) -> OrderTicket:
        async with self._uow_factory() as uow:
            ticket = await uow.tickets.get_by_number(ticket_number)
        if ticket is None:
            raise NotFoundError("OrderTicket", ticket_number)
        return ticket

    async def list_tickets(self) -> list[OrderTicket]:
        async with self._uow_factory() as uow:
            return await uow.tickets.list_all()

    async def daily_summary(self, day: date) -> TicketSummary:
        """Counts over tickets created on `day` (UTC)."""
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        async with self._uow_factory() as uow:
            tickets = await uow.tickets.list_all(created_from=start, created_to=start + timedelta(days=1))

        by_method = Counter(t.payment_method for t in tickets)
        return TicketSummary(
            day=day,
            total=len(tickets),
            by_payment_method={method: by_method.get(method, 0) for method in PaymentMethod},
            paid=sum(1 for t in tickets if t.is_paid),
            delivered=sum(1 for t in tickets if t.is_delivered),
        )
