"""
TimesEats — Domain entities

Plain pydantic snapshots handed across the repository boundary. Repositories
build them from ORM rows (SQL backend) or keep them directly (memory
backend); services never see storage objects.
"""
from datetime import date, datetime
from enum import Enum
from typing import NamedTuple
from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    RESERVED = "RESERVED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    PAYPAY = "PAYPAY"


class Entity(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class Product(Entity):
    id: str
    name: str
    price: int = Field(..., ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SalesSlot(Entity):
    id: str
    start_time: datetime
    end_time: datetime
    is_active: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductInventory(Entity):
    id: str
    sales_slot_id: str
    product_id: str
    initial_quantity: int = Field(..., ge=0)
    reserved_quantity: int = Field(default=0, ge=0)
    sold_quantity: int = Field(default=0, ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def available_quantity(self) -> int:
        return self.initial_quantity - self.reserved_quantity - self.sold_quantity


class OrderItem(Entity):
    id: str
    order_id: str
    product_id: str
    quantity: int = Field(..., gt=0)
    price: int = Field(..., ge=0)

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity


class Order(Entity):
    id: str
    sales_slot_id: str
    status: OrderStatus = OrderStatus.RESERVED
    total_amount: int = 0
    items: list[OrderItem] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderTicket(Entity):
    id: str
    ticket_number: str
    order_id: str
    payment_method: PaymentMethod = PaymentMethod.CASH
    transaction_id: str | None = None
    is_paid: bool = False
    is_delivered: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderLine(NamedTuple):
    """One requested (product, quantity) pair of an order request."""
    product_id: str
    quantity: int


class TicketSummary(BaseModel):
    day: date
    total: int
    by_payment_method: dict[PaymentMethod, int]
    paid: int
    delivered: int
