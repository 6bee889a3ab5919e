"""
TimesEats — HTTP request / response bodies
"""
from datetime import datetime
from pydantic import BaseModel, Field

from timeseats.schemas.entities import PaymentMethod


class ProductCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Yakisoba"])
    price: int = Field(..., ge=0, examples=[400])


class ProductUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    price: int | None = Field(None, ge=0)


class SalesSlotRequest(BaseModel):
    start_time: datetime
    end_time: datetime


class AddProductRequest(BaseModel):
    product_id: str
    initial_quantity: int = Field(..., ge=0)


class InventoryUpdateRequest(BaseModel):
    initial_quantity: int = Field(..., ge=0)


class OrderItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)


class OrderCreateRequest(BaseModel):
    sales_slot_id: str
    items: list[OrderItemRequest] = Field(..., min_length=1)


class OrderItemsRequest(BaseModel):
    items: list[OrderItemRequest] = Field(..., min_length=1)


class TicketCreateRequest(BaseModel):
    order_id: str
    ticket_number: str = Field(..., min_length=1, max_length=64)
    payment_method: PaymentMethod = PaymentMethod.CASH


class PaymentUpdateRequest(BaseModel):
    is_paid: bool
    transaction_id: str | None = Field(None, max_length=255)


class DeliveryUpdateRequest(BaseModel):
    is_delivered: bool

