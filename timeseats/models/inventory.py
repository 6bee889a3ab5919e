"""
TimesEats — Catalogue and inventory ledger tables
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from timeseats.db.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(Base):
    """
    [CONFIG DATA] — sellable item. Frozen once allocated to any slot.
    """
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)  # minor currency units
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (CheckConstraint("price >= 0", name="ck_products_price_non_negative"),)


class SalesSlot(Base):
    """
    [CONFIG DATA] — time window during which allocated products can be ordered.
    """
    __tablename__ = "sales_slots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (CheckConstraint("end_time > start_time", name="ck_sales_slots_time_range"),)


class ProductInventory(Base):
    """
    [TRANSACTIONAL DATA during ordering] / [CONFIG DATA for initial_quantity]
    Counters are only ever changed by guarded single-statement UPDATEs;
    the CHECK constraint is the last line against overselling.
    """
    __tablename__ = "product_inventories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sales_slot_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sales_slots.id", ondelete="CASCADE"), index=True, nullable=False
    )
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id"), index=True, nullable=False
    )
    initial_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reserved_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sold_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint("sales_slot_id", "product_id", name="uq_product_inventories_slot_product"),
        CheckConstraint(
            "reserved_quantity >= 0 AND sold_quantity >= 0 "
            "AND reserved_quantity + sold_quantity <= initial_quantity",
            name="ck_product_inventories_no_oversell",
        ),
    )
