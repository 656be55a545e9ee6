"""Order database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from sunsano.database import Base

if TYPE_CHECKING:
    from sunsano.models.payment import Payment


class Order(Base):
    """Customer order."""

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)

    # Status (see domain/order_state.py)
    status: Mapped[str] = mapped_column(
        String(20), default="pending", index=True
    )  # pending, processing, paid, failed, cancelled, shipped, delivered

    # Customer
    customer_firstname: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_lastname: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    customer_phone: Mapped[str | None] = mapped_column(String(30))
    customer_address: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_zipcode: Mapped[str] = mapped_column(String(10), nullable=False)
    customer_city: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_notes: Mapped[str | None] = mapped_column(Text)

    # Lines: [{product_id, name, price, quantity}]
    items: Mapped[list[dict]] = mapped_column(JSON, nullable=False)

    # Pricing
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    delivery_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="eur")

    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)  # cash, card, paypal

    # Stripe
    stripe_session_id: Mapped[str | None] = mapped_column(String(255), index=True)
    stripe_payment_id: Mapped[str | None] = mapped_column(String(255), index=True)

    # Timestamps
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    notes: Mapped[list[OrderNote]] = relationship(
        "OrderNote",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderNote.created_at",
        lazy="selectin",
    )
    payments: Mapped[list[Payment]] = relationship(
        "Payment", back_populates="order", cascade="all, delete-orphan"
    )

    @property
    def customer_name(self) -> str:
        return f"{self.customer_firstname} {self.customer_lastname}"


class OrderNote(Base):
    """Free-text note or status change record attached to an order."""

    __tablename__ = "order_notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    note_type: Mapped[str] = mapped_column(String(30), default="general")  # general, status_update
    status: Mapped[str | None] = mapped_column(String(20))  # order status after a status_update
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    order: Mapped[Order] = relationship("Order", back_populates="notes")
