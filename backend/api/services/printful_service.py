"""Printful fulfillment operations backed by the local database.

Each public method corresponds to one function-style endpoint: list
sticker products, upload a print file, create an order, refresh an
order's status and map catalog variants to store (sync) variants.
"""

import asyncio
import logging
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.models import Customer, Order, OrderItem, SyncProduct, SyncVariant, VariantMapping
from api.services.printful_client import PrintfulClient
from api.services.qr_service import decode_image_data_url
from common.config import settings

logger = logging.getLogger(__name__)

STICKER_KEYWORDS = ("sticker", "decal")
PRINT_FILE_TYPES = {"image/png", "image/jpeg", "image/jpg"}


class FulfillmentError(Exception):
    """Order or file request is invalid, or storing its result failed."""

    pass


def is_sticker_product(product: dict[str, Any]) -> bool:
    title = (product.get("title") or "").lower()
    return any(keyword in title for keyword in STICKER_KEYWORDS)


def build_recipient(
    name: str,
    email: str,
    phone: str | None,
    address: dict[str, Any],
) -> dict[str, Any]:
    """Printful recipient block from a submitted shipping address."""
    return {
        "name": name,
        "email": email,
        "phone": phone or "",
        "address1": address.get("address1") or "",
        "address2": address.get("address2") or "",
        "city": address.get("city") or "",
        "state_code": address.get("state") or "",
        "country_code": address.get("country") or "US",
        "zip": address.get("zip") or "",
    }


class PrintfulService:
    """Printful operations that also read or write local rows."""

    def __init__(self, db: AsyncSession | None, client: PrintfulClient):
        """Initialize the service.

        Args:
            db: Async SQLAlchemy session (not needed for catalog/file calls)
            client: Printful API client
        """
        self.db = db
        self.client = client

    async def list_sticker_products(self) -> list[dict[str, Any]]:
        """Catalog products whose title mentions stickers or decals, with variants.

        Products whose detail request fails are left out.
        """
        products = [p for p in await self.client.list_products() if is_sticker_product(p)]
        logger.info(f"Found {len(products)} sticker products")

        details = await asyncio.gather(
            *(self.client.get_product(p["id"]) for p in products),
            return_exceptions=True,
        )

        result = []
        for product, detail in zip(products, details, strict=True):
            if isinstance(detail, Exception):
                logger.error(f"Failed to fetch product {product['id']}: {detail}")
                continue
            result.append(
                {
                    "id": product["id"],
                    "title": product.get("title"),
                    "description": product.get("description"),
                    "image": product.get("image"),
                    "variants": detail.get("variants") or [],
                    "type": product.get("type"),
                    "type_name": product.get("type_name"),
                }
            )
        return result

    async def upload_data_url(
        self, image_data_url: str, filename: str = "qr-code.png"
    ) -> dict[str, Any]:
        """Upload a PNG/JPEG data URL as a print file.

        Returns:
            ``{"file_id", "file_url", "filename"}``

        Raises:
            FulfillmentError: If the data URL is malformed, of the wrong type or too large
            PrintfulError: If Printful rejects the upload
        """
        if not image_data_url:
            raise FulfillmentError("Image data URL is required")
        try:
            mime_type, data = decode_image_data_url(image_data_url)
        except ValueError as e:
            raise FulfillmentError(str(e)) from e

        if mime_type not in PRINT_FILE_TYPES:
            raise FulfillmentError("Unsupported image format. Only PNG and JPEG are supported.")

        max_size = settings.print_file_max_bytes
        if len(data) > max_size:
            raise FulfillmentError(
                f"File too large: {len(data)} bytes. Maximum allowed: {max_size} bytes"
            )

        uploaded = await self.client.upload_file(data, filename, mime_type)
        return {
            "file_id": uploaded["id"],
            "file_url": uploaded.get("preview_url"),
            "filename": uploaded.get("filename", filename),
        }

    async def upsert_customer(
        self, email: str, first_name: str, last_name: str, phone: str | None = None
    ) -> Customer:
        """Create or update the customer keyed by lowercased email."""
        email = email.strip().lower()
        result = await self.db.execute(select(Customer).where(Customer.email == email))
        customer = result.scalar_one_or_none()
        if customer is None:
            customer = Customer(email=email, first_name="", last_name="")
            self.db.add(customer)

        customer.first_name = first_name.strip()
        customer.last_name = last_name.strip()
        customer.phone = (phone or "").strip()
        await self.db.flush()
        await self.db.refresh(customer)
        return customer

    async def create_order(
        self,
        customer: dict[str, Any],
        items: list[dict[str, Any]],
        file_id: int | str | None,
        qr_data_url: str | None,
        shipping_address: dict[str, Any] | None,
    ) -> dict[str, Any]:
        """Place a Printful order for the given print file and store it locally.

        Args:
            customer: ``first_name``, ``last_name``, ``email`` and optional ``phone``
            items: Lines with ``variant_id``, ``quantity``, ``unit_price`` and
                optional ``product_id``, ``size``, ``material``
            file_id: Printful file id of the uploaded QR code
            qr_data_url: The printed image, kept on the order
            shipping_address: ``address1``, ``address2``, ``city``, ``state``,
                ``country``, ``zip``

        Returns:
            ``{"order_id", "printful_order_id", "status": "success"}``

        Raises:
            FulfillmentError: On invalid input, zero total, or when storing
                order items fails (the local order is then removed)
            PrintfulError: If Printful rejects the order
        """
        if not (customer.get("first_name") and customer.get("last_name") and customer.get("email")):
            raise FulfillmentError("Customer first name, last name, and email are required")
        if not items:
            raise FulfillmentError("At least one order item is required")
        if not file_id:
            raise FulfillmentError("File ID is required")
        if not shipping_address:
            raise FulfillmentError("Shipping address is required")

        printful_items = []
        total = Decimal("0")
        for index, item in enumerate(items):
            try:
                variant = int(item["variant_id"])
                quantity = int(item["quantity"])
                price = Decimal(str(item.get("unit_price") or 0))
            except (KeyError, TypeError, ValueError) as e:
                raise FulfillmentError(f"Invalid order item at index {index}: {e}") from e
            if quantity <= 0:
                raise FulfillmentError(f"Invalid order item at index {index}: quantity")
            printful_items.append(
                {
                    "variant_id": variant,
                    "quantity": quantity,
                    "files": [{"type": "default", "id": file_id}],
                }
            )
            total += price * quantity

        if total <= 0:
            raise FulfillmentError("Invalid order total: must be greater than 0")

        db_customer = await self.upsert_customer(
            customer["email"], customer["first_name"], customer["last_name"], customer.get("phone")
        )

        external_id = f"order-{uuid.uuid4().hex[:16]}"
        printful_order = await self.client.create_order(
            {
                "external_id": external_id,
                "recipient": build_recipient(
                    f"{customer['first_name']} {customer['last_name']}",
                    customer["email"],
                    customer.get("phone"),
                    shipping_address,
                ),
                "items": printful_items,
            }
        )
        printful_id = str(printful_order["id"])

        order = Order(
            customer_id=db_customer.id,
            printful_order_id=printful_id,
            external_id=printful_order.get("external_id") or external_id,
            status=printful_order.get("status") or "pending",
            total_cost=total,
            shipping_address=shipping_address,
            qr_data_url=qr_data_url,
        )
        self.db.add(order)
        await self.db.flush()

        try:
            async with self.db.begin_nested():
                for item in items:
                    self.db.add(
                        OrderItem(
                            order_id=order.id,
                            product_id=str(item.get("product_id") or ""),
                            variant_id=str(item["variant_id"]),
                            quantity=int(item["quantity"]),
                            size=item.get("size") or "",
                            material=item.get("material") or "",
                            unit_price=Decimal(str(item["unit_price"])),
                        )
                    )
        except SQLAlchemyError as e:
            logger.error(
                f"CRITICAL: order items failed to store for Printful order {printful_id}; "
                f"removing local order {order.id}"
            )
            await self.db.delete(order)
            await self.db.flush()
            raise FulfillmentError(
                f"Failed to store order items: {e}. "
                f"Printful order {printful_id} may need manual cleanup."
            ) from e

        logger.info(f"Stored order {order.id} for Printful order {printful_id}")
        return {"order_id": order.id, "printful_order_id": printful_id, "status": "success"}

    async def order_status(self, order_id: uuid.UUID) -> dict[str, Any]:
        """Fetch an order's status from Printful and store it when it changed.

        Raises:
            FulfillmentError: If the order does not exist or was never sent to Printful
            PrintfulError: If the Printful request fails
        """
        order = await self.db.get(Order, order_id)
        if order is None:
            raise FulfillmentError("Order not found")
        if not order.printful_order_id:
            raise FulfillmentError("Order has no Printful order id")

        remote = await self.client.get_order(order.printful_order_id)
        status = remote.get("status") or order.status
        if status != order.status:
            logger.info(f"Order {order_id} status {order.status} -> {status}")
            order.status = status
            await self.db.flush()

        return {
            "order_id": order_id,
            "status": status,
            "tracking": remote.get("shipments") or [],
            "created": remote.get("created"),
            "updated": remote.get("updated"),
        }

    async def sync_variant(
        self,
        product_id: str,
        variant_id: str | None = None,
        file_url: str | None = None,
    ) -> dict[str, Any]:
        """Resolve (or create) the store variant for a catalog variant.

        Mappings are cached in ``variant_mappings``; the store product is
        created once per catalog product.

        Returns:
            ``{"success", "sync_variant_id", "sync_product_id", "cached"}``

        Raises:
            FulfillmentError: If the catalog product or variant does not exist
            PrintfulError: If a Printful request fails
        """
        if variant_id:
            result = await self.db.execute(
                select(VariantMapping).where(VariantMapping.catalog_variant_id == variant_id)
            )
            mapping = result.scalar_one_or_none()
            if mapping is not None:
                logger.info(f"Found existing sync variant: {mapping.sync_variant_id}")
                return {
                    "success": True,
                    "sync_variant_id": mapping.sync_variant_id,
                    "sync_product_id": None,
                    "cached": True,
                }

        catalog = await self.client.list_products()
        target = next((p for p in catalog if str(p.get("id")) == str(product_id)), None)
        if target is None:
            raise FulfillmentError(f"Catalog product {product_id} not found")
        detail = await self.client.get_product(product_id)

        result = await self.db.execute(
            select(SyncProduct).where(SyncProduct.catalog_product_id == str(product_id))
        )
        sync_product = result.scalar_one_or_none()
        if sync_product is None:
            remote_product = await self.client.create_sync_product(
                name=f"{target.get('title')} - Custom QR Stickers",
                thumbnail=target.get("image"),
            )
            sync_product = SyncProduct(
                catalog_product_id=str(product_id),
                printful_sync_product_id=str(remote_product["id"]),
                name=remote_product.get("name") or target.get("title") or "",
            )
            self.db.add(sync_product)
            await self.db.flush()
            logger.info(f"Created sync product {sync_product.printful_sync_product_id}")

        if not variant_id:
            return {
                "success": True,
                "sync_variant_id": None,
                "sync_product_id": sync_product.printful_sync_product_id,
                "cached": False,
            }

        variant = next(
            (v for v in detail.get("variants") or [] if str(v.get("id")) == str(variant_id)),
            None,
        )
        if variant is None:
            raise FulfillmentError(f"Catalog variant {variant_id} not found")

        remote_variant = await self.client.create_sync_variant(
            sync_product.printful_sync_product_id,
            int(variant_id),
            file_url or settings.printful_placeholder_file_url,
        )
        sync_variant_id = str(remote_variant["id"])

        self.db.add(
            SyncVariant(
                catalog_variant_id=str(variant_id),
                printful_sync_variant_id=sync_variant_id,
                sync_product_id=sync_product.id,
                name=variant.get("name") or "",
                size=variant.get("size"),
                color=variant.get("color"),
            )
        )
        self.db.add(
            VariantMapping(catalog_variant_id=str(variant_id), sync_variant_id=sync_variant_id)
        )
        await self.db.flush()
        logger.info(f"Created sync variant {sync_variant_id} for catalog variant {variant_id}")

        return {
            "success": True,
            "sync_variant_id": sync_variant_id,
            "sync_product_id": sync_product.printful_sync_product_id,
            "cached": False,
        }
