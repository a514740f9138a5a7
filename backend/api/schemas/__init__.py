"""API schemas package."""

from api.schemas.cart import CartItemCreate, CartItemResponse, CartItemUpdate, CartResponse
from api.schemas.checkout import CheckoutSessionRequest, CheckoutSessionResponse, WebhookResponse
from api.schemas.content import (
    ButtonCreate,
    ButtonResponse,
    ButtonUpdate,
    CardCreate,
    CardResponse,
    CardUpdate,
    ContentResponse,
    ContentUpdate,
    MicrositeContentResponse,
)
from api.schemas.microsite import (
    MicrositeCreate,
    MicrositeListResponse,
    MicrositeResponse,
    MicrositeUpdate,
    PublicMicrositeResponse,
)
from api.schemas.order import OrderListResponse, OrderResponse
from api.schemas.user import AdminUserResponse, UserResponse, UserUpdate

__all__ = [
    "AdminUserResponse",
    "ButtonCreate",
    "ButtonResponse",
    "ButtonUpdate",
    "CardCreate",
    "CardResponse",
    "CardUpdate",
    "CartItemCreate",
    "CartItemResponse",
    "CartItemUpdate",
    "CartResponse",
    "CheckoutSessionRequest",
    "CheckoutSessionResponse",
    "ContentResponse",
    "ContentUpdate",
    "MicrositeContentResponse",
    "MicrositeCreate",
    "MicrositeListResponse",
    "MicrositeResponse",
    "MicrositeUpdate",
    "OrderListResponse",
    "OrderResponse",
    "PublicMicrositeResponse",
    "UserResponse",
    "UserUpdate",
    "WebhookResponse",
]
