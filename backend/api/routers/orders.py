"""Orders router - the current user's sticker order history."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.auth.dependencies import get_db_user
from api.models import User
from api.schemas.order import OrderListResponse, OrderResponse
from api.services.database import get_db
from api.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=OrderListResponse, summary="Order history")
async def list_orders(
    user: User = Depends(get_db_user),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Orders placed for the user's email, newest first, with items and customer."""
    orders = await OrderService(db).history_for_email(user.email)
    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        total=len(orders),
    )


@router.get("/{order_id}", response_model=OrderResponse, summary="Get an order")
async def get_order(
    order_id: uuid.UUID,
    user: User = Depends(get_db_user),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    order = await OrderService(db).get_for_email(order_id, user.email)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return OrderResponse.model_validate(order)
