"""Pydantic schemas for the shopping cart."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class CartItemCreate(BaseModel):
    """Schema for adding stickers to the cart.

    The unit price is not accepted from the client; it is computed from
    size, material and quantity.
    """

    microsite_id: uuid.UUID
    product_id: str = Field(..., min_length=1, max_length=100)
    variant_id: str | None = Field(
        None, max_length=100, description="Defaults to <product>_<size>_<material>"
    )
    printful_variant_id: str | None = Field(None, max_length=100)
    quantity: int = Field(..., ge=1, le=10000)
    size: str = Field(..., max_length=20)
    material: str = Field(..., max_length=50)
    qr_data_url: str = Field(..., min_length=1)
    product_name: str = Field(..., min_length=1, max_length=255)
    variant_name: str = Field(..., min_length=1, max_length=255)
    product_image_url: str | None = None
    currency: str = Field("USD", min_length=3, max_length=3)


class CartItemUpdate(BaseModel):
    """New quantity for a line; zero or less removes it."""

    quantity: int


class CartMicrosite(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    url: str


class CartItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    cart_id: uuid.UUID
    microsite_id: uuid.UUID
    product_id: str
    variant_id: str
    printful_variant_id: str | None
    quantity: int
    size: str
    material: str
    unit_price: Decimal
    line_total: Decimal
    currency: str
    qr_data_url: str
    product_name: str
    variant_name: str
    product_image_url: str | None
    created_at: datetime
    microsite: CartMicrosite | None = None


class CartResponse(BaseModel):
    """The current user's cart. ``id`` is None until something is added."""

    id: uuid.UUID | None = None
    items: list[CartItemResponse] = Field(default_factory=list)
    item_count: int = 0
    total: Decimal = Decimal("0")


class CartUpdateResponse(BaseModel):
    updated: bool
    id: uuid.UUID


class CartCountResponse(BaseModel):
    item_count: int
