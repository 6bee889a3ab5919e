"""
TimesEats — Service wiring

The only place that decides which storage backend the services run on.
Services themselves only ever see a unit-of-work factory.
"""
from dataclasses import dataclass

from timeseats.core.config import Settings, get_settings
from timeseats.repositories.memory import memory_uow_factory
from timeseats.services.base import UowFactory
from timeseats.services.inventory_ledger import InventoryLedger
from timeseats.services.order_service import OrderService
from timeseats.services.product_service import ProductService
from timeseats.services.sales_slot_service import SalesSlotService
from timeseats.services.ticket_service import TicketService


@dataclass
class SalesServices:
    products: ProductService
    slots: SalesSlotService
    ledger: InventoryLedger
    orders: OrderService
    tickets: TicketService


def build_services(uow_factory: UowFactory) -> SalesServices:
    ledger = InventoryLedger(uow_factory)
    return SalesServices(
        products=ProductService(uow_factory),
        slots=SalesSlotService(uow_factory, ledger),
        ledger=ledger,
        orders=OrderService(uow_factory, ledger),
        tickets=TicketService(uow_factory),
    )


def build_uow_factory(settings: Settings | None = None, session_factory=None) -> UowFactory:
    """
    Pick the backend from STORAGE_BACKEND. The SQL backend needs the
    session factory created alongside the engine at startup.
    """
    settings = settings or get_settings()
    if settings.STORAGE_BACKEND == "memory":
        return memory_uow_factory()
    if session_factory is None:
        raise ValueError("session_factory is required for the postgres storage backend")
    # Imported here so the memory backend never pulls in the SQL layer.
    from timeseats.repositories.sql import sql_uow_factory

    return sql_uow_factory(session_factory)
