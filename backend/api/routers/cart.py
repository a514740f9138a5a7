"""Cart router - the current user's sticker cart and the price table."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.auth.dependencies import get_db_user, get_owner_scope
from api.models import Cart, User
from api.schemas.cart import (
    CartCountResponse,
    CartItemCreate,
    CartItemResponse,
    CartItemUpdate,
    CartResponse,
    CartUpdateResponse,
)
from api.schemas.qr import PriceOption, PriceTableResponse, QuoteRequest, QuoteResponse
from api.services.cart_service import CartService
from api.services.database import get_db
from api.services.microsite_service import MicrositeService
from api.services.pricing import (
    MARKUP,
    MATERIALS,
    QUANTITY_OPTIONS,
    SIZES,
    PricingError,
    quote,
    variant_id,
)

router = APIRouter(tags=["cart"])


def _cart_response(cart: Cart | None) -> CartResponse:
    if cart is None:
        return CartResponse()
    return CartResponse(
        id=cart.id,
        items=[CartItemResponse.model_validate(item) for item in cart.line_items],
        item_count=cart.item_count,
        total=cart.total,
    )


@router.get("/cart", response_model=CartResponse, summary="Get the cart")
async def get_cart(
    user: User = Depends(get_db_user),
    db: AsyncSession = Depends(get_db),
) -> CartResponse:
    """The user's cart with items and their microsites; empty if none exists yet."""
    return _cart_response(await CartService(db).get_with_items(user.id))


@router.get("/cart/count", response_model=CartCountResponse, summary="Stickers in the cart")
async def get_cart_count(
    user: User = Depends(get_db_user),
    db: AsyncSession = Depends(get_db),
) -> CartCountResponse:
    return CartCountResponse(item_count=await CartService(db).item_count(user.id))


@router.post(
    "/cart/items",
    response_model=CartItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add stickers to the cart",
)
async def add_cart_item(
    request: CartItemCreate,
    user: User = Depends(get_db_user),
    owner_id: uuid.UUID | None = Depends(get_owner_scope),
    db: AsyncSession = Depends(get_db),
) -> CartItemResponse:
    """Add stickers for one of the user's microsites.

    A line for the same microsite, product and variant is merged.

    Raises:
        HTTPException: 400 for an unknown size/material, 404 if the microsite is not found
    """
    microsite = await MicrositeService(db).get_by_id(request.microsite_id, user_id=owner_id)
    if microsite is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Microsite not found")

    try:
        line = await CartService(db).add_item(
            user_id=user.id,
            microsite_id=microsite.id,
            product_id=request.product_id,
            variant_id=request.variant_id
            or variant_id(request.product_id, request.size, request.material),
            quantity=request.quantity,
            size=request.size,
            material=request.material,
            qr_data_url=request.qr_data_url,
            product_name=request.product_name,
            variant_name=request.variant_name,
            product_image_url=request.product_image_url,
            printful_variant_id=request.printful_variant_id,
            currency=request.currency,
        )
    except PricingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return CartItemResponse.model_validate(line)


@router.patch("/cart/items/{item_id}", response_model=CartUpdateResponse, summary="Change quantity")
async def update_cart_item(
    item_id: uuid.UUID,
    request: CartItemUpdate,
    user: User = Depends(get_db_user),
    db: AsyncSession = Depends(get_db),
) -> CartUpdateResponse:
    """Set a line's quantity; zero or less removes the line."""
    try:
        updated = await CartService(db).update_quantity(user.id, item_id, request.quantity)
    except PricingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart item not found")
    return CartUpdateResponse(updated=True, id=item_id)


@router.delete("/cart/items/{item_id}", response_model=CartUpdateResponse, summary="Remove a line")
async def remove_cart_item(
    item_id: uuid.UUID,
    user: User = Depends(get_db_user),
    db: AsyncSession = Depends(get_db),
) -> CartUpdateResponse:
    if not await CartService(db).remove_item(user.id, item_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart item not found")
    return CartUpdateResponse(updated=True, id=item_id)


@router.delete("/cart", response_model=CartResponse, summary="Empty the cart")
async def clear_cart(
    user: User = Depends(get_db_user),
    db: AsyncSession = Depends(get_db),
) -> CartResponse:
    service = CartService(db)
    await service.clear(user.id)
    return _cart_response(await service.get_with_items(user.id))


@router.get("/pricing", response_model=PriceTableResponse, summary="Sticker price table")
async def price_table() -> PriceTableResponse:
    return PriceTableResponse(
        sizes=[PriceOption(key=k, label=label, value=v) for k, (label, v) in SIZES.items()],
        materials=[PriceOption(key=k, label=label, value=v) for k, (label, v) in MATERIALS.items()],
        quantities=QUANTITY_OPTIONS,
        markup=MARKUP,
    )


@router.post("/pricing/quote", response_model=QuoteResponse, summary="Price a sticker order")
async def price_quote(request: QuoteRequest) -> QuoteResponse:
    try:
        result = quote(request.size, request.material, request.quantity)
    except PricingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return QuoteResponse(
        size=result.size,
        material=result.material,
        quantity=result.quantity,
        unit_price=result.unit_price,
        total=result.total,
    )
