"""
TimesEats — ORM tables

[CONFIG DATA]        products, sales_slots, product_inventories
[TRANSACTIONAL DATA] orders, order_items, order_tickets
"""
from timeseats.models.inventory import Product, ProductInventory, SalesSlot
from timeseats.models.order import Order, OrderItem
from timeseats.models.ticket import OrderTicket

__all__ = ["Product", "SalesSlot", "ProductInventory", "Order", "OrderItem", "OrderTicket"]
