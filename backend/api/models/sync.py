"""Printful sync product/variant mappings.

Printful orders for store products reference *sync* variants, which are
created on demand from catalog variants and cached here.
"""

import uuid

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class SyncProduct(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Printful store product created for a catalog product."""

    __tablename__ = "sync_products"

    catalog_product_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    printful_sync_product_id: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    variants: Mapped[list["SyncVariant"]] = relationship(
        "SyncVariant",
        back_populates="sync_product",
        cascade="all, delete-orphan",
        lazy="noload",
    )


class SyncVariant(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Printful store variant created for a catalog variant."""

    __tablename__ = "sync_variants"

    catalog_variant_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    printful_sync_variant_id: Mapped[str] = mapped_column(String(100), nullable=False)
    sync_product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("sync_products.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[str | None] = mapped_column(String(50), nullable=True)
    color: Mapped[str | None] = mapped_column(String(50), nullable=True)

    sync_product: Mapped["SyncProduct"] = relationship("SyncProduct", back_populates="variants")


class VariantMapping(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Fast lookup from catalog variant id to sync variant id."""

    __tablename__ = "variant_mappings"

    catalog_variant_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    sync_variant_id: Mapped[str] = mapped_column(String(100), nullable=False)
