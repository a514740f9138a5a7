"""Function-style endpoints for checkout, the Stripe webhook and Printful.

These endpoints keep a flat contract: camelCase JSON bodies, and any
failure is logged and returned as HTTP 500 with ``{"error": message}``.
"""

import logging

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from stripe import SignatureVerificationError

from api.auth.dependencies import get_db_user
from api.models import User
from api.schemas.checkout import CheckoutSessionRequest, CheckoutSessionResponse, WebhookResponse
from api.schemas.printful import (
    CreateOrderRequest,
    CreateOrderResponse,
    OrderStatusRequest,
    OrderStatusResponse,
    ProductsResponse,
    SyncVariantRequest,
    SyncVariantResponse,
    UploadFileRequest,
    UploadFileResponse,
)
from api.services.checkout_service import CheckoutService
from api.services.database import get_db
from api.services.fulfillment_service import FulfillmentService
from api.services.order_service import OrderService
from api.services.printful_client import PrintfulClient, get_printful_client
from api.services.printful_service import PrintfulService
from api.services.stripe_client import StripeClient, StripeError, get_stripe_client
from common.config import settings
from common.debug import observe

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["functions"])


def error_response(e: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(e)})


@router.post(
    "/create-checkout-session",
    response_model=CheckoutSessionResponse,
    summary="Start a Stripe Checkout for the cart",
)
async def create_checkout_session(
    body: CheckoutSessionRequest,
    request: Request,
    user: User = Depends(get_db_user),
    db: AsyncSession = Depends(get_db),
    stripe: StripeClient = Depends(get_stripe_client),
):
    """Create a checkout session charging the whole cart as one line."""
    origin = request.headers.get("origin") or settings.public_site_url
    service = observe(CheckoutService(db, stripe), "create-checkout-session")
    try:
        session = await service.create_session(
            body.cart_id,
            origin,
            success_url=body.success_url,
            cancel_url=body.cancel_url,
            user_id=user.id,
        )
    except Exception as e:
        logger.error(f"Error creating checkout session: {e}")
        return error_response(e)
    return CheckoutSessionResponse(**session)


@router.post(
    "/stripe-webhook-order",
    response_model=None,
    summary="Stripe webhook that places Printful orders",
)
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
    printful: PrintfulClient = Depends(get_printful_client),
):
    """Verify the Stripe signature and fulfil completed checkouts.

    Events other than ``checkout.session.completed`` are acknowledged with
    ``{"received": true}``. A bad signature is rejected with 400.
    """
    payload = await request.body()
    try:
        event = StripeClient.construct_event(payload, stripe_signature)
    except (SignatureVerificationError, StripeError) as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        return error_response(e, status.HTTP_400_BAD_REQUEST)

    service = observe(FulfillmentService(db, printful), "stripe-webhook-order")
    try:
        result = await service.handle_event(event)
    except Exception as e:
        logger.error(f"Error in Stripe webhook: {e}")
        return error_response(e)

    if "received" in result:
        return result
    return WebhookResponse.model_validate(result)


@router.get("/printful-products", response_model=ProductsResponse, summary="Sticker products")
async def printful_products(
    user: User = Depends(get_db_user),
    printful: PrintfulClient = Depends(get_printful_client),
):
    service = observe(PrintfulService(None, printful), "printful-products")
    try:
        products = await service.list_sticker_products()
    except Exception as e:
        logger.error(f"Error fetching Printful products: {e}")
        return error_response(e)
    return ProductsResponse.model_validate({"products": products})


@router.post(
    "/printful-upload-file",
    response_model=UploadFileResponse,
    summary="Upload a print file",
)
async def printful_upload_file(
    body: UploadFileRequest,
    user: User = Depends(get_db_user),
    printful: PrintfulClient = Depends(get_printful_client),
):
    service = observe(PrintfulService(None, printful), "printful-upload-file")
    try:
        uploaded = await service.upload_data_url(body.image_data_url, body.filename)
    except Exception as e:
        logger.error(f"Error uploading file to Printful: {e}")
        return error_response(e)
    return UploadFileResponse.model_validate(uploaded)


@router.post(
    "/printful-create-order",
    response_model=CreateOrderResponse,
    summary="Place a Printful order for an uploaded file",
)
async def printful_create_order(
    body: CreateOrderRequest,
    user: User = Depends(get_db_user),
    db: AsyncSession = Depends(get_db),
    printful: PrintfulClient = Depends(get_printful_client),
):
    service = observe(PrintfulService(db, printful), "printful-create-order")
    try:
        result = await service.create_order(
            customer=body.customer.model_dump(),
            items=[item.model_dump() for item in body.order_items],
            file_id=body.file_id,
            qr_data_url=body.qr_data_url,
            shipping_address=body.shipping_address.model_dump() if body.shipping_address else None,
        )
    except Exception as e:
        logger.error(f"Error creating Printful order: {e}")
        return error_response(e)
    return CreateOrderResponse.model_validate(result)


@router.post(
    "/printful-order-status",
    response_model=OrderStatusResponse,
    summary="Refresh an order's status from Printful",
)
async def printful_order_status(
    body: OrderStatusRequest,
    user: User = Depends(get_db_user),
    db: AsyncSession = Depends(get_db),
    printful: PrintfulClient = Depends(get_printful_client),
):
    """Refresh the status of one of the caller's orders.

    Orders placed under another email are reported as 404.
    """
    order = await OrderService(db).get_for_email(body.order_id, user.email)
    if order is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND, content={"error": "Order not found"}
        )

    service = observe(PrintfulService(db, printful), "printful-order-status")
    try:
        result = await service.order_status(body.order_id)
    except Exception as e:
        logger.error(f"Error fetching order status: {e}")
        return error_response(e)
    return OrderStatusResponse.model_validate(result)


@router.post(
    "/printful-sync-management",
    response_model=SyncVariantResponse,
    summary="Map a catalog variant to a store variant",
)
async def printful_sync_management(
    body: SyncVariantRequest,
    user: User = Depends(get_db_user),
    db: AsyncSession = Depends(get_db),
    printful: PrintfulClient = Depends(get_printful_client),
):
    """Return the cached store variant or create it at Printful.

    Failures are reported as ``{"success": false, "error": ...}``.
    """
    service = observe(PrintfulService(db, printful), "printful-sync-management")
    try:
        result = await service.sync_variant(
            str(body.product_id),
            str(body.variant_id) if body.variant_id else None,
            file_url=body.file_url,
        )
    except Exception as e:
        logger.error(f"Error in sync management: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(e)},
        )
    if result["sync_variant_id"] is None:
        result["message"] = "Sync product ready, no specific variant requested"
    return SyncVariantResponse.model_validate(result)
