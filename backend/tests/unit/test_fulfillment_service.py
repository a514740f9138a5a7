"""Unit tests for Stripe webhook fulfillment."""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from api.models import Cart, CartLineItem, Customer, Microsite, Order, OrderItem, User
from api.services.fulfillment_service import (
    FulfillmentService,
    group_by_microsite,
    session_recipient,
    split_name,
)
from api.services.printful_client import PrintfulError


@pytest.fixture
def mock_db():
    db = AsyncMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    db.get = AsyncMock()
    db.begin_nested = MagicMock()
    return db


@pytest.fixture
def mock_printful():
    printful = AsyncMock()
    printful.create_order.return_value = {"id": 9001}
    return printful


@pytest.fixture
def service(mock_db, mock_printful):
    service = FulfillmentService(mock_db, mock_printful)
    service.printful_service.upsert_customer = AsyncMock(
        return_value=Customer(id=uuid.uuid4(), email="ada@example.com")
    )
    service.printful_service.upload_data_url = AsyncMock(return_value={"file_id": 42})
    return service


def _microsite(name="Coffee Shop"):
    return Microsite(
        id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        name=name,
        url=name.lower().replace(" ", "-"),
        status="published",
        qr_data_url="data:image/png;base64,QUFB",
    )


def _line(microsite, printful_variant_id="777", quantity=25):
    return CartLineItem(
        id=uuid.uuid4(),
        microsite_id=microsite.id,
        microsite=microsite,
        product_id="358",
        variant_id="358_3x3_vinyl",
        printful_variant_id=printful_variant_id,
        quantity=quantity,
        size="3x3",
        material="vinyl",
        unit_price=Decimal("19.43"),
        currency="USD",
        qr_data_url="data:image/png;base64,QkJC",
        product_name="Kiss-Cut Stickers",
        variant_name='3" x 3" Vinyl',
    )


def _count(value):
    result = MagicMock()
    result.scalar_one.return_value = value
    return result


def _cart(*lines):
    cart = Cart(id=uuid.uuid4(), user_id=uuid.uuid4())
    cart.line_items = list(lines)
    return cart


def _session(cart, **extra):
    session = {
        "id": "cs_test_1",
        "metadata": {"cart_id": str(cart.id)},
        "customer_details": {"name": "Ada King Lovelace", "email": "ada@example.com"},
        "shipping_details": {
            "name": "Ada Lovelace",
            "address": {
                "line1": "1 Main St",
                "city": "Springfield",
                "state": "IL",
                "country": "US",
                "postal_code": "62701",
            },
        },
    }
    session.update(extra)
    return session


def _event(session):
    return {"type": "checkout.session.completed", "data": {"object": session}}


class TestHelpers:
    """Tests for module helpers."""

    def test_split_name(self):
        assert split_name("Ada King Lovelace") == ("Ada", "King Lovelace")
        assert split_name("Prince") == ("Prince", "")
        assert split_name("  ") == ("Customer", "")
        assert split_name(None) == ("Customer", "")

    def test_group_by_microsite_keeps_order(self):
        first, second = _microsite("One"), _microsite("Two")
        lines = [_line(first), _line(second), _line(first)]

        groups = group_by_microsite(lines)

        assert list(groups) == [first.id, second.id]
        assert groups[first.id] == [lines[0], lines[2]]

    def test_session_recipient(self):
        cart = _cart()
        recipient = session_recipient(_session(cart), "ada@example.com")

        assert recipient["name"] == "Ada King Lovelace"
        assert recipient["address1"] == "1 Main St"
        assert recipient["state_code"] == "IL"
        assert recipient["zip"] == "62701"

    def test_session_recipient_defaults(self):
        recipient = session_recipient({}, "a@b.c")

        assert recipient["name"] == "Customer"
        assert recipient["country_code"] == "US"


class TestHandleEvent:
    """Tests for FulfillmentService.handle_event()."""

    async def test_ignores_other_events(self, service, mock_printful):
        result = await service.handle_event({"type": "payment_intent.created"})

        assert result == {"received": True}
        mock_printful.create_order.assert_not_awaited()

    async def test_one_order_per_microsite(self, service, mock_db, mock_printful):
        first, second = _microsite("One"), _microsite("Two")
        cart = _cart(_line(first), _line(second, "888", quantity=100), _line(first, "779"))
        mock_printful.create_order.side_effect = [{"id": 1}, {"id": 2}]

        with patch("api.services.fulfillment_service.CartService") as MockCart:
            MockCart.return_value.get_by_id = AsyncMock(return_value=cart)
            MockCart.return_value.delete_cart = AsyncMock()

            result = await service.handle_event(_event(_session(cart)))

            MockCart.return_value.delete_cart.assert_awaited_once_with(cart.id)

        assert result["success"] is True
        assert result["cart_cleared"] is True
        assert [o["printful_order_id"] for o in result["orders"]] == ["1", "2"]
        assert result["orders"][0]["item_count"] == 2
        assert result["orders"][0]["microsite_name"] == "One"

        first_order = mock_printful.create_order.await_args_list[0].args[0]
        assert first_order["external_id"] == f"stripe-cs_test_1-{first.id}"
        assert first_order["items"] == [
            {"sync_variant_id": 777, "quantity": 25, "files": [{"id": 42, "type": "default"}]},
            {"sync_variant_id": 779, "quantity": 25, "files": [{"id": 42, "type": "default"}]},
        ]
        assert first_order["recipient"]["email"] == "ada@example.com"

        added = [call.args[0] for call in mock_db.add.call_args_list]
        orders = [obj for obj in added if isinstance(obj, Order)]
        items = [obj for obj in added if isinstance(obj, OrderItem)]
        assert len(orders) == 2
        assert len(items) == 3
        assert orders[0].total_cost == Decimal("19.43") * 50
        assert orders[0].stripe_session_id == "cs_test_1"
        assert orders[0].user_id == cart.user_id
        assert orders[0].qr_data_url == first.qr_data_url

    async def test_failed_group_is_reported(self, service, mock_printful):
        first, second = _microsite("One"), _microsite("Two")
        cart = _cart(_line(first), _line(second))
        mock_printful.create_order.side_effect = [PrintfulError("rejected", 400), {"id": 2}]

        with patch("api.services.fulfillment_service.CartService") as MockCart:
            MockCart.return_value.get_by_id = AsyncMock(return_value=cart)
            MockCart.return_value.delete_cart = AsyncMock()

            result = await service.handle_event(_event(_session(cart)))

        assert result["orders"][0] == {"microsite_id": first.id, "error": "rejected"}
        assert result["orders"][1]["printful_order_id"] == "2"
        assert result["cart_cleared"] is True

    async def test_cart_kept_when_every_group_fails(self, service):
        cart = _cart(_line(_microsite(), printful_variant_id=None))

        with patch("api.services.fulfillment_service.CartService") as MockCart:
            MockCart.return_value.get_by_id = AsyncMock(return_value=cart)
            MockCart.return_value.delete_cart = AsyncMock()

            result = await service.handle_event(_event(_session(cart)))

            MockCart.return_value.delete_cart.assert_not_awaited()

        assert result["cart_cleared"] is False
        assert "no Printful variant" in result["orders"][0]["error"]

    async def test_upload_failure_sends_order_without_files(self, service, mock_printful):
        cart = _cart(_line(_microsite()))
        service.printful_service.upload_data_url.side_effect = PrintfulError("down", 503)

        with patch("api.services.fulfillment_service.CartService") as MockCart:
            MockCart.return_value.get_by_id = AsyncMock(return_value=cart)
            MockCart.return_value.delete_cart = AsyncMock()

            await service.handle_event(_event(_session(cart)))

        sent = mock_printful.create_order.await_args.args[0]
        assert "files" not in sent["items"][0]

    async def test_email_falls_back_to_cart_owner(self, service, mock_db, mock_printful):
        cart = _cart(_line(_microsite()))
        mock_db.get.return_value = User(
            id=cart.user_id, email="owner@example.com", first_name="Grace", last_name="Hopper"
        )
        session = _session(cart, customer_details={})

        with patch("api.services.fulfillment_service.CartService") as MockCart:
            MockCart.return_value.get_by_id = AsyncMock(return_value=cart)
            MockCart.return_value.delete_cart = AsyncMock()

            await service.handle_event(_event(session))

        service.printful_service.upsert_customer.assert_awaited_once_with(
            "owner@example.com", "Grace", "Hopper"
        )

    async def test_missing_cart_id(self, service):
        with pytest.raises(ValueError, match="Cart ID not found"):
            await service.handle_event(_event({"id": "cs_1", "metadata": {}}))

    @pytest.mark.parametrize("cart,message", [(None, "Cart not found"), ("empty", "Cart is empty")])
    async def test_missing_or_empty_cart(self, service, mock_db, cart, message):
        cart = _cart() if cart == "empty" else None
        mock_db.execute.return_value = _count(0)
        session = {"id": "cs_1", "metadata": {"cart_id": str(uuid.uuid4())}}

        with patch("api.services.fulfillment_service.CartService") as MockCart:
            MockCart.return_value.get_by_id = AsyncMock(return_value=cart)

            with pytest.raises(ValueError, match=message):
                await service.handle_event(_event(session))

    async def test_redelivered_event_is_acknowledged(self, service, mock_db, mock_printful):
        """A session whose orders were already placed is acknowledged, not reordered."""
        mock_db.execute.return_value = _count(2)
        session = {"id": "cs_1", "metadata": {"cart_id": str(uuid.uuid4())}}

        with patch("api.services.fulfillment_service.CartService") as MockCart:
            MockCart.return_value.get_by_id = AsyncMock(return_value=None)

            result = await service.handle_event(_event(session))

        assert result == {"received": True}
        mock_printful.create_order.assert_not_awaited()
        query = mock_db.execute.await_args.args[0]
        assert "stripe_session_id" in str(query)
        assert query.compile().params == {"stripe_session_id_1": "cs_1"}
