"""User service - sync Supabase users to PostgreSQL and admin user management.

Handles user creation/update on first API interaction after sign-in.
This ensures we have a local user record for foreign keys.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.models import Customer, Microsite, Order, User

if TYPE_CHECKING:
    from api.auth.models import AuthUser

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"first_name", "last_name", "company_name", "subscription_status", "is_admin"}


@dataclass
class UserStats:
    """A user row with the counters shown in the admin panel."""

    user: User
    microsite_count: int = 0
    sticker_order_count: int = 0


class UserService:
    """Service for managing user records synced from Supabase Auth."""

    def __init__(self, db: AsyncSession):
        """Initialize with database session.

        Args:
            db: Async SQLAlchemy session
        """
        self.db = db

    async def get_or_create_from_auth(self, auth_user: "AuthUser") -> User:
        """Get existing user or create from token claims.

        Called on each authenticated API request to ensure user exists.
        Updates last_login timestamp on every call.

        Args:
            auth_user: Validated Supabase token claims

        Returns:
            The User record (existing or newly created)
        """
        user_id = uuid.UUID(auth_user.id)
        email = auth_user.email or ""
        user = await self.get_by_id(user_id)

        if user is None:
            user = User(
                id=user_id,
                email=email,
                first_name=auth_user.first_name,
                last_name=auth_user.last_name,
                company_name=auth_user.company_name,
                is_admin=auth_user.is_admin_claim,
            )
            self.db.add(user)
            logger.info(f"Created new user from Supabase: {email}")
        elif email and user.email != email:
            user.email = email
            logger.info(f"Updated email for user {user.id}")

        # Always update last_login
        user.last_login = datetime.now(UTC)

        await self.db.flush()
        await self.db.refresh(user)
        return user

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        """Get user by id.

        Args:
            user_id: Supabase auth user id

        Returns:
            User if found, None otherwise
        """
        query = select(User).where(User.id == user_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email (case-insensitive)."""
        query = select(User).where(func.lower(User.email) == email.strip().lower())
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_with_stats(self, search: str | None = None) -> list[UserStats]:
        """List all users with microsite and sticker order counts, newest first.

        Sticker orders are matched to a user through the customer email.

        Args:
            search: Optional case-insensitive filter on email and name
        """
        microsite_counts = (
            select(Microsite.user_id, func.count(Microsite.id).label("microsite_count"))
            .group_by(Microsite.user_id)
            .subquery()
        )
        order_counts = (
            select(
                func.lower(Customer.email).label("email"),
                func.count(Order.id).label("order_count"),
            )
            .join(Order, Order.customer_id == Customer.id)
            .group_by(func.lower(Customer.email))
            .subquery()
        )

        query = (
            select(
                User,
                func.coalesce(microsite_counts.c.microsite_count, 0),
                func.coalesce(order_counts.c.order_count, 0),
            )
            .outerjoin(microsite_counts, microsite_counts.c.user_id == User.id)
            .outerjoin(order_counts, order_counts.c.email == func.lower(User.email))
            .order_by(User.created_at.desc())
        )

        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    User.email.ilike(pattern),
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                )
            )

        result = await self.db.execute(query)
        return [
            UserStats(user=user, microsite_count=microsites, sticker_order_count=orders)
            for user, microsites, orders in result.all()
        ]

    async def update(self, user_id: uuid.UUID, **fields: Any) -> User | None:
        """Update profile fields of a user.

        Only first/last/company name, subscription status and the admin
        flag can be changed. ``None`` values are ignored.

        Returns:
            Updated user if found, None otherwise
        """
        user = await self.get_by_id(user_id)
        if user is None:
            return None

        for key, value in fields.items():
            if key in UPDATABLE_FIELDS and value is not None:
                setattr(user, key, value)

        await self.db.flush()
        await self.db.refresh(user)
        logger.info(f"Updated user {user_id}")
        return user

    async def delete(self, user_id: uuid.UUID) -> bool:
        """Delete a user. Microsites and cart cascade in the database.

        Returns:
            True if deleted, False if not found
        """
        result = await self.db.execute(delete(User).where(User.id == user_id))
        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted user {user_id}")
        return deleted
