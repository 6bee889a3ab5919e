"""
TimesEats — Order ticket table

[TRANSACTIONAL DATA] — at most one ticket per order, ticket numbers are
globally unique. Both rules are enforced by constraints as well as by the
service pre-checks so concurrent issuers cannot slip past each other.
"""
import uuid
from datetime import datetime
from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from timeseats.db.database import Base
from timeseats.models.inventory import _utcnow
from timeseats.schemas.entities import PaymentMethod


class OrderTicket(Base):
    __tablename__ = "order_tickets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    ticket_number: Mapped[str] = mapped_column(String(64), nullable=False)
    order_id: Mapped[str] = mapped_column(String(36), ForeignKey("orders.id"), nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, name="payment_method"), default=PaymentMethod.CASH, nullable=False
    )
    transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_delivered: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint("ticket_number", name="uq_order_tickets_ticket_number"),
        UniqueConstraint("order_id", name="uq_order_tickets_order_id"),
    )
