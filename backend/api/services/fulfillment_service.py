"""Order fulfillment for completed Stripe Checkout sessions.

A paid cart becomes one Printful order per microsite, since every
microsite prints its own QR code. Each group is processed in its own
savepoint so one failing group does not undo the others.
"""

import logging
import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.models import Cart, CartLineItem, Order, OrderItem, User
from api.services.cart_service import CartService
from api.services.printful_client import PrintfulClient
from api.services.printful_service import PrintfulService

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


def group_by_microsite(items: list[CartLineItem]) -> dict[uuid.UUID, list[CartLineItem]]:
    """Cart lines keyed by microsite, in cart order."""
    groups: dict[uuid.UUID, list[CartLineItem]] = defaultdict(list)
    for item in items:
        groups[item.microsite_id].append(item)
    return dict(groups)


def split_name(name: str | None) -> tuple[str, str]:
    parts = (name or "").strip().split(None, 1)
    if not parts:
        return "Customer", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


def session_recipient(session: dict[str, Any], email: str) -> dict[str, Any]:
    """Printful recipient from the session's customer and shipping details."""
    details = session.get("customer_details") or {}
    shipping = session.get("shipping_details") or {}
    address = shipping.get("address") or details.get("address") or {}
    return {
        "name": details.get("name") or shipping.get("name") or "Customer",
        "email": email,
        "address1": address.get("line1") or "",
        "address2": address.get("line2") or "",
        "city": address.get("city") or "",
        "state_code": address.get("state") or "",
        "country_code": address.get("country") or "US",
        "zip": address.get("postal_code") or "",
        "phone": shipping.get("phone") or details.get("phone") or "",
    }


class FulfillmentService:
    """Handles Stripe webhook events that result in Printful orders."""

    def __init__(self, db: AsyncSession, printful: PrintfulClient):
        self.db = db
        self.printful = printful
        self.printful_service = PrintfulService(db, printful)

    async def handle_event(self, event: dict[str, Any]) -> dict[str, Any]:
        """Process a verified Stripe event.

        Returns:
            ``{"received": True}`` for events other than a completed
            checkout, otherwise ``{"success", "orders", "cart_cleared"}``

        Raises:
            ValueError: If the session has no cart id, or the cart is missing
                (and the session has no orders yet) or empty
        """
        event_type = event.get("type")
        logger.info(f"Received Stripe webhook event: {event_type}")
        if event_type != CHECKOUT_COMPLETED:
            return {"received": True}

        session = (event.get("data") or {}).get("object") or {}
        return await self.fulfill_session(session)

    async def _already_fulfilled(self, session_id: str | None) -> bool:
        """Whether orders exist for this checkout session (a redelivered event)."""
        if not session_id:
            return False
        query = (
            select(func.count())
            .select_from(Order)
            .where(Order.stripe_session_id == session_id)
        )
        result = await self.db.execute(query)
        return result.scalar_one() > 0

    async def fulfill_session(self, session: dict[str, Any]) -> dict[str, Any]:
        cart_id = (session.get("metadata") or {}).get("cart_id")
        if not cart_id:
            raise ValueError("Cart ID not found in Stripe session metadata")

        cart_service = CartService(self.db)
        cart = await cart_service.get_by_id(uuid.UUID(str(cart_id)))
        if cart is None:
            if await self._already_fulfilled(session.get("id")):
                logger.info(f"Checkout session {session.get('id')} was already fulfilled")
                return {"received": True}
            raise ValueError("Cart not found")
        if not cart.line_items:
            raise ValueError("Cart is empty")

        logger.info(f"Processing order for cart {cart.id} with {len(cart.line_items)} items")

        email, first_name, last_name = await self._customer_identity(session, cart)
        customer = await self.printful_service.upsert_customer(email, first_name, last_name)
        recipient = session_recipient(session, email)

        results = []
        for microsite_id, items in group_by_microsite(cart.line_items).items():
            try:
                async with self.db.begin_nested():
                    result = await self._fulfill_group(
                        session, cart, customer.id, recipient, microsite_id, items
                    )
                results.append(result)
            except Exception as e:
                logger.exception(f"Error processing order for microsite {microsite_id}")
                results.append({"microsite_id": microsite_id, "error": str(e)})

        succeeded = any("error" not in result for result in results)
        if succeeded:
            await cart_service.delete_cart(cart.id)

        logger.info(f"Order processing complete for session {session.get('id')}: {results}")
        return {"success": True, "orders": results, "cart_cleared": succeeded}

    async def _customer_identity(self, session: dict[str, Any], cart: Cart) -> tuple[str, str, str]:
        details = session.get("customer_details") or {}
        first_name, last_name = split_name(details.get("name"))
        email = details.get("email") or session.get("customer_email")
        if not email:
            user = await self.db.get(User, cart.user_id)
            if user is None:
                raise ValueError("No customer email on session")
            email = user.email
            if not details.get("name"):
                first_name, last_name = user.first_name or "Customer", user.last_name
        return email, first_name, last_name

    async def _upload_qr(self, microsite_id: uuid.UUID, qr_data_url: str | None) -> Any:
        """Upload the group's QR image; a failed upload leaves the order without files."""
        if not qr_data_url:
            return None
        try:
            uploaded = await self.printful_service.upload_data_url(
                qr_data_url, filename=f"qr-{microsite_id}.png"
            )
        except Exception as e:
            logger.error(f"Error uploading QR code for microsite {microsite_id}: {e}")
            return None
        logger.info(f"Uploaded QR code file {uploaded['file_id']}")
        return uploaded["file_id"]

    async def _fulfill_group(
        self,
        session: dict[str, Any],
        cart: Cart,
        customer_id: uuid.UUID,
        recipient: dict[str, Any],
        microsite_id: uuid.UUID,
        items: list[CartLineItem],
    ) -> dict[str, Any]:
        microsite = items[0].microsite
        qr_data_url = (microsite.qr_data_url if microsite else None) or items[0].qr_data_url
        file_id = await self._upload_qr(microsite_id, qr_data_url)

        printful_items = []
        for item in items:
            if not item.printful_variant_id:
                raise ValueError(f"Cart line {item.id} has no Printful variant")
            line: dict[str, Any] = {
                "sync_variant_id": int(item.printful_variant_id),
                "quantity": item.quantity,
            }
            if file_id:
                line["files"] = [{"id": file_id, "type": "default"}]
            printful_items.append(line)

        external_id = f"stripe-{session.get('id')}-{microsite_id}"
        printful_order = await self.printful.create_order(
            {"external_id": external_id, "recipient": recipient, "items": printful_items}
        )
        printful_id = str(printful_order["id"])
        logger.info(f"Created Printful order {printful_id} for microsite {microsite_id}")

        order = Order(
            customer_id=customer_id,
            user_id=cart.user_id,
            microsite_id=microsite_id,
            printful_order_id=printful_id,
            external_id=external_id,
            status="pending",
            total_cost=sum((item.line_total for item in items), Decimal("0")),
            currency=items[0].currency,
            shipping_address=recipient,
            qr_data_url=qr_data_url,
            stripe_session_id=session.get("id"),
        )
        self.db.add(order)
        await self.db.flush()

        for item in items:
            self.db.add(
                OrderItem(
                    order_id=order.id,
                    product_id=item.product_id,
                    variant_id=item.printful_variant_id,
                    quantity=item.quantity,
                    size=item.size,
                    material=item.material,
                    unit_price=item.unit_price,
                )
            )
        await self.db.flush()

        return {
            "microsite_id": microsite_id,
            "microsite_name": microsite.name if microsite else None,
            "printful_order_id": printful_id,
            "local_order_id": order.id,
            "item_count": len(items),
        }
