"""Microsite models - landing pages, their content, cards, buttons and scans.

A microsite is reachable at ``/m/<url>`` once published. Its page content
lives in one ``MicrositeContent`` row plus an ordered list of cards, each
holding up to three action buttons.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utc_now

STATUS_DRAFT = "draft"
STATUS_PUBLISHED = "published"

DEFAULT_THEME: dict[str, str] = {
    "primary": "#1a1a1a",
    "text": "#1a1a1a",
    "background": "#ffffff",
}


class Microsite(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A user-owned branded landing page.

    Attributes:
        user_id: Owner
        name: Display name in the dashboard
        url: Public slug, unique across all microsites
        status: ``draft`` or ``published``
        scan_count: Number of recorded public visits
        last_scan_at: Time of the latest visit
        qr_data_url: Last generated QR code as a PNG data URL
    """

    __tablename__ = "microsites"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_DRAFT)
    scan_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_scan_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    qr_data_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="microsites")  # noqa: F821
    content: Mapped["MicrositeContent | None"] = relationship(
        "MicrositeContent",
        back_populates="microsite",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="noload",
    )
    cards: Mapped[list["MicrositeCard"]] = relationship(
        "MicrositeCard",
        back_populates="microsite",
        cascade="all, delete-orphan",
        order_by="MicrositeCard.sort_order",
        lazy="noload",
    )

    @property
    def is_published(self) -> bool:
        return self.status == STATUS_PUBLISHED

    def __repr__(self) -> str:
        return f"<Microsite(id={self.id}, url={self.url}, status={self.status})>"


class MicrositeContent(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Page-level content: title, header image and colour theme."""

    __tablename__ = "microsite_content"

    microsite_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("microsites.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    title: Mapped[str | None] = mapped_column(String(60), nullable=True)
    header_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    theme_config: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        default=lambda: dict(DEFAULT_THEME),
    )

    microsite: Mapped["Microsite"] = relationship("Microsite", back_populates="content")


class MicrositeCard(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A content block on a microsite page."""

    __tablename__ = "microsite_cards"

    microsite_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("microsites.id", ondelete="CASCADE"),
        nullable=False,
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    media_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_collapsed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (Index("ix_microsite_cards_microsite_sort", "microsite_id", "sort_order"),)

    microsite: Mapped["Microsite"] = relationship("Microsite", back_populates="cards")
    buttons: Mapped[list["MicrositeButton"]] = relationship(
        "MicrositeButton",
        back_populates="card",
        cascade="all, delete-orphan",
        order_by="MicrositeButton.sort_order",
        lazy="selectin",
    )


class MicrositeButton(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """An action button on a card (phone call, email or link)."""

    __tablename__ = "microsite_buttons"

    card_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("microsite_cards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    label: Mapped[str] = mapped_column(String(30), nullable=False)
    action_type: Mapped[str] = mapped_column(String(10), nullable=False)
    action_value: Mapped[str] = mapped_column(Text, nullable=False)

    card: Mapped["MicrositeCard"] = relationship("MicrositeCard", back_populates="buttons")


class MicrositeScan(Base, UUIDPrimaryKeyMixin):
    """One public visit to a published microsite."""

    __tablename__ = "microsite_scans"

    microsite_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("microsites.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    scanned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
