"""
TimesEats — Business and storage error kinds

Every failure surfaced by the core is a SalesError subclass so callers can
tell "stock exhausted" from "slot not found" from "storage is down".
`code` is the machine-readable kind; `status_code` is what the HTTP layer
answers with.
"""


class SalesError(Exception):
    """Base class for all errors raised by the sales core."""
    code = "SALES_ERROR"
    status_code = 400

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__ or self.code)

    @property
    def message(self) -> str:
        return str(self)


class NotFoundError(SalesError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found.")


class InvalidRequestError(SalesError):
    """Request is malformed."""
    code = "VALIDATION_ERROR"
    status_code = 422


class InvalidTimeRangeError(SalesError):
    """End time must be after start time."""
    code = "INVALID_TIME_RANGE"
    status_code = 400


class SlotNotActiveError(SalesError):
    """Sales slot is not accepting orders."""
    code = "SLOT_NOT_ACTIVE"
    status_code = 409


class InvalidOrderStatusError(SalesError):
    """Order status does not allow this operation."""
    code = "INVALID_ORDER_STATUS"
    status_code = 409


class InsufficientStockError(SalesError):
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, slot_id: str, product_id: str, requested: int, available: int | None = None):
        self.slot_id = slot_id
        self.product_id = product_id
        self.requested = requested
        self.available = available
        detail = f"Insufficient stock for product '{product_id}' in slot '{slot_id}': requested={requested}"
        if available is not None:
            detail += f", available={available}"
        super().__init__(detail)


class InventoryUnderflowError(SalesError):
    """Cannot release or settle more than is currently reserved."""
    code = "INVENTORY_UNDERFLOW"
    status_code = 409


class DuplicateInventoryError(SalesError):
    """Product is already allocated to this sales slot."""
    code = "DUPLICATE_INVENTORY"
    status_code = 409


class ProductInUseError(SalesError):
    """Product is referenced by inventory and can no longer change."""
    code = "PRODUCT_IN_USE"
    status_code = 409


class SlotInUseError(SalesError):
    """Sales slot has orders and cannot be deleted."""
    code = "SLOT_IN_USE"
    status_code = 409


class DuplicateTicketError(SalesError):
    """A ticket has already been issued for this order."""
    code = "DUPLICATE_TICKET"
    status_code = 409


class DuplicateTicketNumberError(SalesError):
    """Ticket number is already in use."""
    code = "DUPLICATE_TICKET_NUMBER"
    status_code = 409


class AlreadyPaidError(SalesError):
    """Ticket is already paid."""
    code = "ALREADY_PAID"
    status_code = 409


class AlreadyDeliveredError(SalesError):
    """Ticket is already delivered."""
    code = "ALREADY_DELIVERED"
    status_code = 409


class PaymentRequiredError(SalesError):
    """Ticket must be paid before delivery."""
    code = "PAYMENT_REQUIRED"
    status_code = 402


class StorageFailureError(SalesError):
    """Persistence layer failed."""
    code = "STORAGE_FAILURE"
    status_code = 503
