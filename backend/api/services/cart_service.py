"""Cart service - one cart per user holding sticker line items.

Unit prices are computed here from the sticker price table rather than
taken from the client, and recomputed when a line's quantity changes.
"""

import logging
import uuid
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.models import Cart, CartLineItem
from api.services.pricing import unit_price

logger = logging.getLogger(__name__)


class CartService:
    """Service for the current user's shopping cart."""

    def __init__(self, db: AsyncSession):
        """Initialize with database session.

        Args:
            db: Async SQLAlchemy session
        """
        self.db = db

    async def get_by_user(self, user_id: uuid.UUID) -> Cart | None:
        query = (
            select(Cart)
            .where(Cart.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_id(self, cart_id: uuid.UUID) -> Cart | None:
        """Get a cart with its line items (and each item's microsite)."""
        query = select(Cart).where(Cart.id == cart_id).execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_or_create(self, user_id: uuid.UUID) -> Cart:
        cart = await self.get_by_user(user_id)
        if cart is None:
            cart = Cart(user_id=user_id)
            self.db.add(cart)
            await self.db.flush()
            await self.db.refresh(cart)
            logger.info(f"Created cart {cart.id} for user {user_id}")
        return cart

    async def _get_line(self, user_id: uuid.UUID, item_id: uuid.UUID) -> CartLineItem | None:
        query = (
            select(CartLineItem)
            .join(Cart, CartLineItem.cart_id == Cart.id)
            .where(CartLineItem.id == item_id, Cart.user_id == user_id)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def add_item(
        self,
        user_id: uuid.UUID,
        microsite_id: uuid.UUID,
        product_id: str,
        variant_id: str,
        quantity: int,
        size: str,
        material: str,
        qr_data_url: str,
        product_name: str,
        variant_name: str,
        product_image_url: str | None = None,
        printful_variant_id: str | None = None,
        currency: str = "USD",
    ) -> CartLineItem:
        """Add stickers to the cart.

        A line with the same microsite, product and variant is merged by
        adding the quantities.

        Raises:
            PricingError: If size, material or quantity is invalid
        """
        cart = await self.get_or_create(user_id)

        existing = next(
            (
                item
                for item in cart.line_items
                if item.microsite_id == microsite_id
                and item.product_id == product_id
                and item.variant_id == variant_id
            ),
            None,
        )

        if existing is not None:
            existing.quantity += quantity
            existing.unit_price = unit_price(existing.size, existing.material, existing.quantity)
            line = existing
            logger.info(f"Merged {quantity} into cart line {line.id} (now {line.quantity})")
        else:
            line = CartLineItem(
                microsite_id=microsite_id,
                product_id=product_id,
                variant_id=variant_id,
                printful_variant_id=printful_variant_id,
                quantity=quantity,
                size=size,
                material=material,
                unit_price=unit_price(size, material, quantity),
                currency=currency,
                qr_data_url=qr_data_url,
                product_name=product_name,
                variant_name=variant_name,
                product_image_url=product_image_url,
            )
            cart.line_items.append(line)
            logger.info(f"Added {quantity} x {variant_id} to cart {cart.id}")

        await self.db.flush()
        await self.db.refresh(line)
        return line

    async def get_with_items(self, user_id: uuid.UUID) -> Cart | None:
        """Get the user's cart with items, or None if none exists yet."""
        return await self.get_by_user(user_id)

    async def update_quantity(self, user_id: uuid.UUID, item_id: uuid.UUID, quantity: int) -> bool:
        """Set a line's quantity; zero or less removes the line.

        Returns:
            True if the line existed, False otherwise
        """
        if quantity <= 0:
            return await self.remove_item(user_id, item_id)

        line = await self._get_line(user_id, item_id)
        if line is None:
            return False

        line.quantity = quantity
        line.unit_price = unit_price(line.size, line.material, quantity)
        await self.db.flush()
        return True

    async def remove_item(self, user_id: uuid.UUID, item_id: uuid.UUID) -> bool:
        """Drop a line from the user's cart so its total no longer counts it."""
        cart = await self.get_by_user(user_id)
        if cart is None:
            return False
        line = next((item for item in cart.line_items if item.id == item_id), None)
        if line is None:
            return False

        # delete-orphan removes the row on flush
        cart.line_items.remove(line)
        await self.db.flush()
        logger.info(f"Removed cart line {item_id}")
        return True

    async def clear(self, user_id: uuid.UUID) -> None:
        """Remove every line from the user's cart."""
        cart = await self.get_by_user(user_id)
        if cart is None:
            return
        await self.db.execute(delete(CartLineItem).where(CartLineItem.cart_id == cart.id))
        await self.db.flush()

    async def delete_cart(self, cart_id: uuid.UUID) -> None:
        """Delete a cart and its lines (after a completed checkout)."""
        await self.db.execute(delete(CartLineItem).where(CartLineItem.cart_id == cart_id))
        await self.db.execute(delete(Cart).where(Cart.id == cart_id))
        await self.db.flush()
        logger.info(f"Cleared cart {cart_id}")

    async def item_count(self, user_id: uuid.UUID) -> int:
        cart = await self.get_by_user(user_id)
        return cart.item_count if cart else 0

    async def total(self, user_id: uuid.UUID) -> Decimal:
        cart = await self.get_by_user(user_id)
        return cart.total if cart else Decimal("0")
