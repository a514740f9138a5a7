"""SQLAlchemy models for QR Microsites.

This module exports all database models and the declarative base.
"""

from api.models.base import Base
from api.models.cart import Cart, CartLineItem
from api.models.microsite import (
    Microsite,
    MicrositeButton,
    MicrositeCard,
    MicrositeContent,
    MicrositeScan,
)
from api.models.order import Customer, Order, OrderItem
from api.models.sync import SyncProduct, SyncVariant, VariantMapping
from api.models.user import User

__all__ = [
    "Base",
    "Cart",
    "CartLineItem",
    "Customer",
    "Microsite",
    "MicrositeButton",
    "MicrositeCard",
    "MicrositeContent",
    "MicrositeScan",
    "Order",
    "OrderItem",
    "SyncProduct",
    "SyncVariant",
    "User",
    "VariantMapping",
]
