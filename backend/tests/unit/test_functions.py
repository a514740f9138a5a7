"""Unit tests for checkout, Stripe webhook and Printful function endpoints."""

import hashlib
import hmac
import json
import time
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.auth.dependencies import get_db_user
from api.models import User
from api.routers.functions import router
from api.services.checkout_service import CheckoutError
from api.services.database import get_db
from api.services.printful_client import PrintfulError, get_printful_client
from api.services.stripe_client import get_stripe_client

app = FastAPI()
app.include_router(router)

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def mock_user():
    return User(id=uuid.uuid4(), email="ada@example.com", first_name="Ada", last_name="Lovelace")


@pytest.fixture
def client(mock_user):
    """Create test client with auth, database and API clients overridden."""

    async def override_get_db():
        yield AsyncMock()

    async def override_get_db_user():
        return mock_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_db_user] = override_get_db_user
    app.dependency_overrides[get_stripe_client] = lambda: AsyncMock()
    app.dependency_overrides[get_printful_client] = lambda: AsyncMock()

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client():
    """Create test client without an authenticated user."""

    async def override_get_db():
        yield AsyncMock()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_printful_client] = lambda: AsyncMock()

    yield TestClient(app)

    app.dependency_overrides.clear()


def _signed(event: dict) -> tuple[bytes, dict]:
    payload = json.dumps(event).encode()
    timestamp = int(time.time())
    signature = hmac.new(
        WEBHOOK_SECRET.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256
    ).hexdigest()
    return payload, {"Stripe-Signature": f"t={timestamp},v1={signature}"}


class TestCreateCheckoutSession:
    """Tests for /functions/create-checkout-session."""

    def test_returns_session(self, client, mock_user):
        cart_id = uuid.uuid4()
        with patch("api.routers.functions.CheckoutService") as MockService:
            MockService.return_value.create_session = AsyncMock(
                return_value={"session_id": "cs_test_1", "url": "https://checkout.stripe.com/c/1"}
            )

            response = client.post(
                "/functions/create-checkout-session",
                json={"cartId": str(cart_id)},
                headers={"origin": "https://shop.example.com"},
            )

            MockService.return_value.create_session.assert_awaited_once_with(
                cart_id,
                "https://shop.example.com",
                success_url=None,
                cancel_url=None,
                user_id=mock_user.id,
            )

        assert response.status_code == 200
        assert response.json() == {
            "sessionId": "cs_test_1",
            "url": "https://checkout.stripe.com/c/1",
        }

    def test_origin_defaults_to_site_url(self, client):
        with patch("api.routers.functions.CheckoutService") as MockService:
            MockService.return_value.create_session = AsyncMock(
                return_value={"session_id": "cs_test_1", "url": ""}
            )

            client.post("/functions/create-checkout-session", json={"cartId": str(uuid.uuid4())})

            origin = MockService.return_value.create_session.await_args.args[1]
            assert origin == "https://qr.example.com"

    def test_error_body(self, client):
        with patch("api.routers.functions.CheckoutService") as MockService:
            MockService.return_value.create_session = AsyncMock(
                side_effect=CheckoutError("Cart is empty")
            )

            response = client.post(
                "/functions/create-checkout-session", json={"cartId": str(uuid.uuid4())}
            )

        assert response.status_code == 500
        assert response.json() == {"error": "Cart is empty"}


class TestStripeWebhook:
    """Tests for /functions/stripe-webhook-order."""

    def test_rejects_bad_signature(self, client):
        payload, _ = _signed({"type": "checkout.session.completed"})

        with patch("api.routers.functions.FulfillmentService") as MockService:
            response = client.post(
                "/functions/stripe-webhook-order",
                content=payload,
                headers={"Stripe-Signature": "t=1,v1=deadbeef"},
            )

            MockService.assert_not_called()

        assert response.status_code == 400
        assert "error" in response.json()

    def test_rejects_missing_signature(self, client):
        response = client.post("/functions/stripe-webhook-order", content=b"{}")

        assert response.status_code == 400

    def test_acknowledges_other_events(self, client):
        payload, headers = _signed({"type": "payment_intent.created"})

        with patch("api.routers.functions.FulfillmentService") as MockService:
            MockService.return_value.handle_event = AsyncMock(return_value={"received": True})

            response = client.post(
                "/functions/stripe-webhook-order", content=payload, headers=headers
            )

        assert response.status_code == 200
        assert response.json() == {"received": True}

    def test_reports_orders(self, client):
        microsite_id = uuid.uuid4()
        event = {"type": "checkout.session.completed", "data": {"object": {"id": "cs_1"}}}
        payload, headers = _signed(event)

        with patch("api.routers.functions.FulfillmentService") as MockService:
            MockService.return_value.handle_event = AsyncMock(
                return_value={
                    "success": True,
                    "orders": [
                        {
                            "microsite_id": microsite_id,
                            "microsite_name": "Coffee Shop",
                            "printful_order_id": "9001",
                            "item_count": 2,
                        }
                    ],
                    "cart_cleared": True,
                }
            )

            response = client.post(
                "/functions/stripe-webhook-order", content=payload, headers=headers
            )

            received = MockService.return_value.handle_event.await_args.args[0]
            assert received["type"] == "checkout.session.completed"
            assert received["data"]["object"]["id"] == "cs_1"

        assert response.status_code == 200
        data = response.json()
        assert data["cartCleared"] is True
        assert data["orders"][0]["micrositeId"] == str(microsite_id)
        assert data["orders"][0]["printfulOrderId"] == "9001"

    def test_fulfillment_error(self, client):
        payload, headers = _signed({"type": "checkout.session.completed"})

        with patch("api.routers.functions.FulfillmentService") as MockService:
            MockService.return_value.handle_event = AsyncMock(
                side_effect=ValueError("Cart ID not found in session metadata")
            )

            response = client.post(
                "/functions/stripe-webhook-order", content=payload, headers=headers
            )

        assert response.status_code == 500
        assert response.json() == {"error": "Cart ID not found in session metadata"}


class TestPrintfulFunctions:
    """Tests for the Printful function endpoints."""

    def test_products(self, client):
        with patch("api.routers.functions.PrintfulService") as MockService:
            MockService.return_value.list_sticker_products = AsyncMock(
                return_value=[
                    {
                        "id": 358,
                        "title": "Kiss-Cut Stickers",
                        "variants": [{"id": 10163, "size": '3"x3"'}],
                        "type_name": "Sticker",
                    }
                ]
            )

            response = client.get("/functions/printful-products")

        assert response.status_code == 200
        product = response.json()["products"][0]
        assert product["id"] == 358
        assert product["type_name"] == "Sticker"
        assert product["variants"][0]["id"] == 10163

    def test_products_error(self, client):
        with patch("api.routers.functions.PrintfulService") as MockService:
            MockService.return_value.list_sticker_products = AsyncMock(
                side_effect=PrintfulError("Printful API error: 401", 401)
            )

            response = client.get("/functions/printful-products")

        assert response.status_code == 500
        assert response.json() == {"error": "Printful API error: 401"}

    def test_upload_file(self, client):
        with patch("api.routers.functions.PrintfulService") as MockService:
            MockService.return_value.upload_data_url = AsyncMock(
                return_value={
                    "file_id": 42,
                    "file_url": "https://files.printful.com/42.png",
                    "filename": "qr.png",
                }
            )

            response = client.post(
                "/functions/printful-upload-file",
                json={"imageDataUrl": "data:image/png;base64,QUFB", "filename": "qr.png"},
            )

            MockService.return_value.upload_data_url.assert_awaited_once_with(
                "data:image/png;base64,QUFB", "qr.png"
            )

        assert response.json() == {
            "fileId": 42,
            "fileUrl": "https://files.printful.com/42.png",
            "filename": "qr.png",
        }

    def test_upload_without_image(self, client):
        with patch("api.routers.functions.PrintfulService") as MockService:
            MockService.return_value.upload_data_url = AsyncMock(
                side_effect=ValueError("Image data URL is required")
            )

            response = client.post("/functions/printful-upload-file", json={})

        assert response.status_code == 500
        assert response.json() == {"error": "Image data URL is required"}

    def test_create_order(self, client):
        order_id = uuid.uuid4()
        with patch("api.routers.functions.PrintfulService") as MockService:
            MockService.return_value.create_order = AsyncMock(
                return_value={"order_id": order_id, "printful_order_id": "9001", "status": "draft"}
            )

            response = client.post(
                "/functions/printful-create-order",
                json={
                    "customer": {"firstName": "Ada", "lastName": "Lovelace", "email": "a@b.co"},
                    "orderItems": [{"variantId": 777, "quantity": 25, "unitPrice": "19.43"}],
                    "fileId": 42,
                    "shippingAddress": {"address1": "1 Main St", "city": "Springfield"},
                },
            )

            kwargs = MockService.return_value.create_order.await_args.kwargs
            assert kwargs["customer"]["first_name"] == "Ada"
            assert kwargs["items"][0]["variant_id"] == 777
            assert kwargs["file_id"] == 42
            assert kwargs["shipping_address"]["country"] == "US"

        assert response.status_code == 200
        assert response.json() == {
            "orderId": str(order_id),
            "printfulOrderId": "9001",
            "status": "draft",
        }

    def test_order_status(self, client, mock_user):
        order_id = uuid.uuid4()
        with (
            patch("api.routers.functions.OrderService") as MockOrders,
            patch("api.routers.functions.PrintfulService") as MockService,
        ):
            MockOrders.return_value.get_for_email = AsyncMock(return_value=MagicMock())
            MockService.return_value.order_status = AsyncMock(
                return_value={"order_id": order_id, "status": "fulfilled", "tracking": []}
            )

            response = client.post(
                "/functions/printful-order-status", json={"orderId": str(order_id)}
            )

            MockOrders.return_value.get_for_email.assert_awaited_once_with(
                order_id, mock_user.email
            )

        assert response.status_code == 200
        assert response.json()["status"] == "fulfilled"

    def test_order_status_of_other_customer(self, client):
        with (
            patch("api.routers.functions.OrderService") as MockOrders,
            patch("api.routers.functions.PrintfulService") as MockService,
        ):
            MockOrders.return_value.get_for_email = AsyncMock(return_value=None)

            response = client.post(
                "/functions/printful-order-status", json={"orderId": str(uuid.uuid4())}
            )

            MockService.return_value.order_status.assert_not_called()

        assert response.status_code == 404
        assert response.json() == {"error": "Order not found"}

    def test_sync_product_only(self, client):
        with patch("api.routers.functions.PrintfulService") as MockService:
            MockService.return_value.sync_variant = AsyncMock(
                return_value={
                    "success": True,
                    "sync_variant_id": None,
                    "sync_product_id": "55",
                    "cached": False,
                }
            )

            response = client.post("/functions/printful-sync-management", json={"productId": 358})

            MockService.return_value.sync_variant.assert_awaited_once_with(
                "358", None, file_url=None
            )

        data = response.json()
        assert data["syncProductId"] == "55"
        assert data["message"] == "Sync product ready, no specific variant requested"

    def test_sync_failure(self, client):
        with patch("api.routers.functions.PrintfulService") as MockService:
            MockService.return_value.sync_variant = AsyncMock(
                side_effect=ValueError("Product not found")
            )

            response = client.post(
                "/functions/printful-sync-management",
                json={"productId": 1, "variantId": 2},
            )

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Product not found"}


class TestPrintfulFunctionsRequireAuth:
    """Printful endpoints reject callers without a token."""

    @pytest.mark.parametrize(
        "method,path,body",
        [
            ("get", "/functions/printful-products", None),
            ("post", "/functions/printful-upload-file", {"imageDataUrl": "data:image/png;base64,"}),
            (
                "post",
                "/functions/printful-create-order",
                {
                    "customer": {"firstName": "Ada", "lastName": "Lovelace", "email": "a@b.co"},
                    "orderItems": [{"variantId": 777, "quantity": 25, "unitPrice": "19.43"}],
                    "fileId": 42,
                },
            ),
            ("post", "/functions/printful-order-status", {"orderId": str(uuid.uuid4())}),
            ("post", "/functions/printful-sync-management", {"productId": 358}),
        ],
    )
    def test_requires_token(self, anonymous_client, method, path, body):
        with patch("api.routers.functions.PrintfulService") as MockService:
            if body is None:
                response = anonymous_client.request(method, path)
            else:
                response = anonymous_client.request(method, path, json=body)

            MockService.assert_not_called()

        assert response.status_code == 401
