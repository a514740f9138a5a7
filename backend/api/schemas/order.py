"""Pydantic schemas for order history."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict


class OrderCustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone: str | None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: str
    variant_id: str
    quantity: int
    size: str
    material: str
    unit_price: Decimal


class OrderResponse(BaseModel):
    """Schema for an order in the user's order history."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    printful_order_id: str | None
    external_id: str | None
    microsite_id: uuid.UUID | None
    status: str
    total_cost: Decimal
    currency: str
    shipping_address: dict[str, Any]
    qr_data_url: str | None
    stripe_session_id: str | None
    created_at: datetime
    updated_at: datetime
    customer: OrderCustomerResponse
    items: list[OrderItemResponse]


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
