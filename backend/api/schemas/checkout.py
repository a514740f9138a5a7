"""Pydantic schemas for checkout and the Stripe webhook."""

import uuid

from pydantic import Field

from api.schemas.base import CamelModel


class CheckoutSessionRequest(CamelModel):
    cart_id: uuid.UUID
    success_url: str | None = Field(None, max_length=2048)
    cancel_url: str | None = Field(None, max_length=2048)


class CheckoutSessionResponse(CamelModel):
    session_id: str
    url: str


class WebhookOrderResult(CamelModel):
    """Outcome for one microsite's group of cart lines."""

    microsite_id: uuid.UUID
    microsite_name: str | None = None
    printful_order_id: str | None = None
    local_order_id: uuid.UUID | None = None
    item_count: int | None = None
    error: str | None = None


class WebhookResponse(CamelModel):
    success: bool
    orders: list[WebhookOrderResult]
    cart_cleared: bool
