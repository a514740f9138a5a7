"""User model - synced from Supabase Auth.

Users are created/updated on first API interaction after sign-in.
The primary key is the Supabase auth user id (``sub`` claim), so rows in
other tables can reference the same id the auth provider issues.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """Application user profile.

    Attributes:
        id: Supabase auth user id (sub claim)
        email: User email
        first_name: Given name from sign-up metadata
        last_name: Family name from sign-up metadata
        company_name: Optional company
        subscription_status: Plan status (default: free)
        is_admin: Grants access to the admin panel
        last_login: Timestamp of last API access
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        comment="Supabase auth user id (sub claim)",
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    first_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subscription_status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="free",
    )
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last API access timestamp",
    )

    # Relationships
    microsites: Mapped[list["Microsite"]] = relationship(  # noqa: F821
        "Microsite",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="noload",
    )
    cart: Mapped["Cart | None"] = relationship(  # noqa: F821
        "Cart",
        back_populates="user",
        cascade="all, delete-orphan",
        uselist=False,
        lazy="noload",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
