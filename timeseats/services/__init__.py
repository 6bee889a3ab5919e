from timeseats.services.factory import SalesServices, build_services, build_uow_factory
from timeseats.services.inventory_ledger import InventoryLedger
from timeseats.services.order_service import OrderService
from timeseats.services.product_service import ProductService
from timeseats.services.sales_slot_service import SalesSlotService
from timeseats.services.ticket_service import TicketService

__all__ = [
    "SalesServices",
    "build_services",
    "build_uow_factory",
    "InventoryLedger",
    "OrderService",
    "ProductService",
    "SalesSlotService",
    "TicketService",
]
