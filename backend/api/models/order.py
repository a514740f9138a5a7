"""Order models - customers, sticker orders and their line items.

Orders are written after a fulfillment order is created at Printful, either
directly from the order form or from the Stripe checkout webhook.
"""

import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Customer(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Recipient of sticker orders, keyed by lowercased email."""

    __tablename__ = "customers"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    orders: Mapped[list["Order"]] = relationship(
        "Order",
        back_populates="customer",
        lazy="noload",
    )


class Order(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A sticker order placed with Printful.

    Attributes:
        customer_id: Who receives the order
        user_id: Account that paid for it (webhook orders only)
        microsite_id: Microsite whose QR code is printed (webhook orders only)
        printful_order_id: Order id at Printful
        external_id: Our id sent to Printful
        status: Printful order status (pending, fulfilled, ...)
        total_cost: Sum of line totals
        shipping_address: Address as submitted
        qr_data_url: QR image that was printed
        stripe_session_id: Checkout session that paid for the order
    """

    __tablename__ = "orders"

    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("customers.id"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    microsite_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("microsites.id", ondelete="SET NULL"),
        nullable=True,
    )
    printful_order_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    external_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    total_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    shipping_address: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    qr_data_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    stripe_session_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    customer: Mapped["Customer"] = relationship("Customer", back_populates="orders", lazy="joined")
    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class OrderItem(Base, UUIDPrimaryKeyMixin):
    """One product line in an order."""

    __tablename__ = "order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    variant_id: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    size: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    material: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="items")
