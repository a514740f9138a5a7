"""Pydantic schemas for the Printful function endpoints."""

import uuid
from decimal import Decimal
from typing import Any

from pydantic import ConfigDict, Field

from api.schemas.base import CamelModel


class ProductVariant(CamelModel):
    model_config = ConfigDict(extra="allow")

    id: int
    name: str | None = None
    size: str | None = None
    color: str | None = None
    price: str | None = None


class StickerProduct(CamelModel):
    id: int
    title: str | None = None
    description: str | None = None
    image: str | None = None
    variants: list[ProductVariant] = Field(default_factory=list)
    type: str | None = None
    type_name: str | None = Field(None, serialization_alias="type_name")


class ProductsResponse(CamelModel):
    products: list[StickerProduct]


class UploadFileRequest(CamelModel):
    image_data_url: str = ""
    filename: str = Field("qr-code.png", max_length=255)


class UploadFileResponse(CamelModel):
    file_id: int | str
    file_url: str | None = None
    filename: str


class OrderCustomer(CamelModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str | None = None


class ShippingAddress(CamelModel):
    address1: str = ""
    address2: str | None = None
    city: str = ""
    state: str = ""
    country: str = "US"
    zip: str = ""


class OrderItemInput(CamelModel):
    variant_id: int | str
    quantity: int
    unit_price: Decimal = Decimal("0")
    product_id: int | str | None = None
    size: str | None = None
    material: str | None = None


class CreateOrderRequest(CamelModel):
    customer: OrderCustomer
    order_items: list[OrderItemInput] = Field(default_factory=list)
    file_id: int | str | None = None
    qr_data_url: str | None = None
    shipping_address: ShippingAddress | None = None


class CreateOrderResponse(CamelModel):
    order_id: uuid.UUID
    printful_order_id: str
    status: str


class OrderStatusRequest(CamelModel):
    order_id: uuid.UUID


class OrderStatusResponse(CamelModel):
    order_id: uuid.UUID
    status: str
    tracking: list[dict[str, Any]] = Field(default_factory=list)
    created: int | str | None = None
    updated: int | str | None = None


class SyncVariantRequest(CamelModel):
    product_id: int | str
    variant_id: int | str | None = None
    file_url: str | None = None


class SyncVariantResponse(CamelModel):
    success: bool
    sync_variant_id: str | None = None
    sync_product_id: str | None = None
    cached: bool = False
    message: str | None = None
