"""
Ticket issuance, payment and delivery guards.
"""
from datetime import datetime, timedelta, timezone
import pytest
import pytest_asyncio

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
from timeseats.schemas.entities import PaymentMethod


@pytest_asyncio.fixture
async def ticket(services, confirmed_order):
    return await services.tickets.create_ticket(confirmed_order.id, "T1", PaymentMethod.CASH)


@pytest.mark.asyncio
async def test_issue_ticket_and_duplicates(services, stocked_slot, product, confirmed_order):
    t1 = await services.tickets.create_ticket(confirmed_order.id, "T1", PaymentMethod.CASH)
    assert (t1.is_paid, t1.is_delivered) == (False, False)
    assert t1.payment_method == PaymentMethod.CASH

    with pytest.raises(DuplicateTicketError):
        await services.tickets.create_ticket(confirmed_order.id, "T2", PaymentMethod.CASH)

    other = await services.orders.create_order(stocked_slot.id, [(product.id, 1)])
    other = await services.orders.confirm_order(other.id)
    with pytest.raises(DuplicateTicketNumberError):
        await services.tickets.create_ticket(other.id, "T1", PaymentMethod.CASH)


@pytest.mark.asyncio
async def test_ticket_requires_confirmed_order(services, stocked_slot, product):
    with pytest.raises(NotFoundError):
        await services.tickets.create_ticket("missing", "T1")

    reserved = await services.orders.create_order(stocked_slot.id, [(product.id, 1)])
    with pytest.raises(InvalidOrderStatusError):
        await services.tickets.create_ticket(reserved.id, "T1")
    # Issuing a ticket never confirms the order on its own.
    assert (await services.orders.get_order(reserved.id)).status.value == "RESERVED"


@pytest.mark.asyncio
async def test_status_check_precedes_duplicate_checks(services, stocked_slot, product, confirmed_order):
    await services.tickets.create_ticket(confirmed_order.id, "T1")
    reserved = await services.orders.create_order(stocked_slot.id, [(product.id, 1)])
    with pytest.raises(InvalidOrderStatusError):
        await services.tickets.create_ticket(reserved.id, "T1")


@pytest.mark.asyncio
async def test_empty_ticket_number(services, confirmed_order):
    with pytest.raises(InvalidRequestError):
        await services.tickets.create_ticket(confirmed_order.id, "  ")


@pytest.mark.asyncio
async def test_unknown_payment_method(services, confirmed_order):
    with pytest.raises(InvalidRequestError):
        await services.tickets.create_ticket(confirmed_order.id, "T9", "BITCOIN")
    assert await services.tickets.list_tickets() == []


@pytest.mark.asyncio
async def test_payment_is_one_way(services, ticket):
    paid = await services.tickets.update_payment_status(ticket.id, True, "tx-42")
    assert paid.is_paid
    assert paid.transaction_id == "tx-42"

    with pytest.raises(AlreadyPaidError):
        await services.tickets.update_payment_status(ticket.id, True, "tx-43")
    assert (await services.tickets.get_ticket(ticket.id)).transaction_id == "tx-42"


@pytest.mark.asyncio
async def test_delivery_requires_payment(services, ticket):
    with pytest.raises(PaymentRequiredError):
        await services.tickets.update_delivery_status(ticket.id, True)

    await services.tickets.update_payment_status(ticket.id, True)
    delivered = await services.tickets.update_delivery_status(ticket.id, True)
    assert delivered.is_delivered

    with pytest.raises(AlreadyDeliveredError):
        await services.tickets.update_delivery_status(ticket.id, True)


@pytest.mark.asyncio
async def test_false_updates_are_plain_writes(services, ticket):
    await services.tickets.update_payment_status(ticket.id, True)
    unpaid = await services.tickets.update_payment_status(ticket.id, False)
    assert unpaid.is_paid is False

    undelivered = await services.tickets.update_delivery_status(ticket.id, False)
    assert undelivered.is_delivered is False


@pytest.mark.asyncio
async def test_unknown_ticket(services):
    with pytest.raises(NotFoundError):
        await services.tickets.update_payment_status("missing", True)
    with pytest.raises(NotFoundError):
        await services.tickets.update_delivery_status("missing", True)
    with pytest.raises(NotFoundError):
        await services.tickets.get_ticket_by_number("missing")


@pytest.mark.asyncio
async def test_lookup_and_listing(services, ticket):
    assert (await services.tickets.get_ticket_by_number("T1")).id == ticket.id
    assert [t.id for t in await services.tickets.list_tickets()] == [ticket.id]


@pytest.mark.asyncio
async def test_daily_summary(services, stocked_slot, product, ticket):
    other = await services.orders.confirm_order(
        (await services.orders.create_order(stocked_slot.id, [(product.id, 2)])).id
    )
    second = await services.tickets.create_ticket(other.id, "T2", PaymentMethod.PAYPAY)
    await services.tickets.update_payment_status(second.id, True, "pp-1")
    await services.tickets.update_delivery_status(second.id, True)

    today = datetime.now(timezone.utc).date()
    summary = await services.tickets.daily_summary(today)
    assert summary.total == 2
    assert summary.by_payment_method == {PaymentMethod.CASH: 1, PaymentMethod.PAYPAY: 1}
    assert (summary.paid, summary.delivered) == (1, 1)

    empty = await services.tickets.daily_summary(today - timedelta(days=1))
    assert empty.total == 0
    assert empty.by_payment_method == {PaymentMethod.CASH: 0, PaymentMethod.PAYPAY: 0}
