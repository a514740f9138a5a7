"""Stripe Checkout session creation for a cart."""

import logging
import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from api.services.cart_service import CartService
from api.services.stripe_client import StripeClient
from common.config import settings

logger = logging.getLogger(__name__)

LINE_ITEM_NAME = "QR Code Stickers"


class CheckoutError(Exception):
    """Cart cannot be checked out."""

    pass


def to_cents(amount: Decimal) -> int:
    """Dollars to the smallest currency unit, rounding half up."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_session_params(
    cart_id: uuid.UUID,
    total: Decimal,
    success_url: str,
    cancel_url: str,
) -> dict[str, Any]:
    """Form parameters for ``POST /v1/checkout/sessions``.

    The whole cart is charged as one line so shipping and tax are handled
    by the order itself rather than per sticker variant.
    """
    return {
        "mode": "payment",
        "payment_method_types": ["card"],
        "line_items": [
            {
                "price_data": {
                    "currency": settings.stripe_currency,
                    "product_data": {"name": LINE_ITEM_NAME},
                    "unit_amount": to_cents(total),
                },
                "quantity": 1,
            }
        ],
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": {"cart_id": str(cart_id)},
        "shipping_address_collection": {
            "allowed_countries": list(settings.stripe_shipping_countries),
        },
        "phone_number_collection": {"enabled": True},
    }


class CheckoutService:
    """Turns a cart into a Stripe Checkout session."""

    def __init__(self, db: AsyncSession, stripe: StripeClient):
        self.db = db
        self.stripe = stripe

    async def create_session(
        self,
        cart_id: uuid.UUID,
        origin: str,
        success_url: str | None = None,
        cancel_url: str | None = None,
        user_id: uuid.UUID | None = None,
    ) -> dict[str, str]:
        """Create a checkout session charging the cart total.

        Args:
            cart_id: Cart to charge
            origin: Site origin used for the default redirect URLs
            success_url: Redirect after payment (default ``{origin}/checkout/success``)
            cancel_url: Redirect on cancel (default ``{origin}/cart``)
            user_id: When given, the cart must belong to this user

        Returns:
            ``{"session_id", "url"}``

        Raises:
            CheckoutError: If the cart is missing or empty
            StripeError: If Stripe rejects the request
        """
        cart = await CartService(self.db).get_by_id(cart_id)
        if cart is None or (user_id is not None and cart.user_id != user_id):
            raise CheckoutError("Cart not found")
        if not cart.line_items:
            raise CheckoutError("Cart is empty")

        origin = origin.rstrip("/")
        params = build_session_params(
            cart.id,
            cart.total,
            success_url or f"{origin}/checkout/success",
            cancel_url or f"{origin}/cart",
        )
        session = await self.stripe.create_checkout_session(params)
        logger.info(f"Created checkout session {session.get('id')} for cart {cart_id}")
        return {"session_id": session["id"], "url": session.get("url") or ""}
