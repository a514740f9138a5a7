"""Order history lookups."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.models import Customer, Order


class OrderService:
    """Read access to sticker orders."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def history_for_email(self, email: str) -> list[Order]:
        """Orders whose customer has this email (with items), newest first."""
        query = (
            select(Order)
            .join(Customer, Order.customer_id == Customer.id)
            .where(Customer.email == email.strip().lower())
            .order_by(Order.created_at.desc())
        )
        result = await self.db.execute(query)
        return list(result.unique().scalars().all())

    async def get_for_email(self, order_id: uuid.UUID, email: str) -> Order | None:
        """Get one order if it belongs to the customer with this email."""
        query = (
            select(Order)
            .join(Customer, Order.customer_id == Customer.id)
            .where(Order.id == order_id, Customer.email == email.strip().lower())
        )
        result = await self.db.execute(query)
        return result.unique().scalar_one_or_none()

    async def count_for_email(self, email: str) -> int:
        query = (
            select(func.count(Order.id))
            .join(Customer, Order.customer_id == Customer.id)
            .where(Customer.email == email.strip().lower())
        )
        result = await self.db.execute(query)
        return result.scalar_one()
