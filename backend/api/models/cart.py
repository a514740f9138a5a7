"""Cart models - one shopping cart per user holding sticker line items."""

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Cart(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A user's cart."""

    __tablename__ = "carts"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="cart")  # noqa: F821
    line_items: Mapped[list["CartLineItem"]] = relationship(
        "CartLineItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartLineItem.created_at",
        lazy="selectin",
    )

    @property
    def item_count(self) -> int:
        """Total number of stickers across all lines."""
        return sum(item.quantity for item in self.line_items)

    @property
    def total(self) -> Decimal:
        """Sum of unit price times quantity across all lines."""
        return sum((item.line_total for item in self.line_items), Decimal("0"))


class CartLineItem(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A sticker product for one microsite's QR code.

    Lines are unique per (cart, microsite, product, variant); adding the same
    combination again increases the quantity.
    """

    __tablename__ = "cart_line_items"

    cart_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("carts.id", ondelete="CASCADE"),
        nullable=False,
    )
    microsite_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("microsites.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[str] = mapped_column(String(100), nullable=False)
    variant_id: Mapped[str] = mapped_column(String(100), nullable=False)
    printful_variant_id: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="Printful sync variant id, when mapped",
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    size: Mapped[str] = mapped_column(String(20), nullable=False)
    material: Mapped[str] = mapped_column(String(50), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    qr_data_url: Mapped[str] = mapped_column(Text, nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    variant_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index(
            "ix_cart_line_items_unique_line",
            "cart_id",
            "microsite_id",
            "product_id",
            "variant_id",
            unique=True,
        ),
    )

    cart: Mapped["Cart"] = relationship("Cart", back_populates="line_items")
    microsite: Mapped["Microsite"] = relationship("Microsite", lazy="joined")  # noqa: F821

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.unit_price) * self.quantity
