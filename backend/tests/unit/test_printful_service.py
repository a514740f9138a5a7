"""Unit tests for Printful fulfillment operations."""

import base64
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from api.models import Customer, Order, OrderItem, SyncProduct, VariantMapping
from api.services.printful_client import PrintfulError
from api.services.printful_service import (
    FulfillmentError,
    PrintfulService,
    build_recipient,
    is_sticker_product,
)

PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode()


@pytest.fixture
def mock_db():
    """Create a mock async database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    db.delete = AsyncMock()
    db.get = AsyncMock()
    db.begin_nested = MagicMock()
    return db


@pytest.fixture
def mock_client():
    return AsyncMock()


@pytest.fixture
def service(mock_db, mock_client):
    return PrintfulService(mock_db, mock_client)


@pytest.fixture
def order_request():
    return {
        "customer": {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "Ada@Example.com",
            "phone": "555-0100",
        },
        "items": [
            {
                "product_id": "358",
                "variant_id": "10163",
                "quantity": 25,
                "unit_price": 19.43,
                "size": "3x3",
                "material": "vinyl",
            }
        ],
        "file_id": 42,
        "qr_data_url": PNG_DATA_URL,
        "shipping_address": {
            "address1": "1 Main St",
            "city": "Springfield",
            "state": "IL",
            "country": "US",
            "zip": "62701",
        },
    }


def _scalar(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def test_is_sticker_product():
    assert is_sticker_product({"title": "Kiss-Cut Stickers"})
    assert is_sticker_product({"title": "Bumper DECAL"})
    assert not is_sticker_product({"title": "Mug"})
    assert not is_sticker_product({})


def test_build_recipient_defaults_country():
    recipient = build_recipient("Ada Lovelace", "ada@example.com", None, {"city": "London"})

    assert recipient["country_code"] == "US"
    assert recipient["phone"] == ""
    assert recipient["city"] == "London"
    assert recipient["address2"] == ""


class TestListStickerProducts:
    """Tests for PrintfulService.list_sticker_products()."""

    async def test_filters_and_skips_failures(self, service, mock_client):
        mock_client.list_products.return_value = [
            {"id": 358, "title": "Kiss-Cut Stickers", "image": "a.png", "type": "STICKER"},
            {"id": 19, "title": "White Mug"},
            {"id": 505, "title": "Sticker Sheet"},
        ]

        async def get_product(product_id):
            if product_id == 505:
                raise PrintfulError("boom", 500)
            return {"variants": [{"id": 10163, "name": "3x3"}]}

        mock_client.get_product.side_effect = get_product

        products = await service.list_sticker_products()

        assert [p["id"] for p in products] == [358]
        assert products[0]["variants"] == [{"id": 10163, "name": "3x3"}]
        assert products[0]["image"] == "a.png"


class TestUploadDataUrl:
    """Tests for PrintfulService.upload_data_url()."""

    async def test_uploads(self, service, mock_client):
        mock_client.upload_file.return_value = {
            "id": 42,
            "preview_url": "https://files/preview.png",
            "filename": "qr-code.png",
        }

        result = await service.upload_data_url(PNG_DATA_URL)

        assert result == {
            "file_id": 42,
            "file_url": "https://files/preview.png",
            "filename": "qr-code.png",
        }
        mock_client.upload_file.assert_awaited_once_with(
            b"\x89PNG fake", "qr-code.png", "image/png"
        )

    async def test_requires_data_url(self, service):
        with pytest.raises(FulfillmentError, match="required"):
            await service.upload_data_url("")

    async def test_rejects_gif(self, service):
        with pytest.raises(FulfillmentError, match="Only PNG and JPEG"):
            await service.upload_data_url("data:image/gif;base64,R0lGOD")

    async def test_rejects_large_file(self, service, monkeypatch):
        monkeypatch.setattr("api.services.printful_service.settings.print_file_max_bytes", 4)

        with pytest.raises(FulfillmentError, match="File too large"):
            await service.upload_data_url(PNG_DATA_URL)


class TestUpsertCustomer:
    """Tests for PrintfulService.upsert_customer()."""

    async def test_creates_with_lowercased_email(self, service, mock_db):
        mock_db.execute.return_value = _scalar(None)

        customer = await service.upsert_customer(" Ada@Example.com ", "Ada", "Lovelace")

        mock_db.add.assert_called_once_with(customer)
        assert customer.email == "ada@example.com"
        assert customer.phone == ""

    async def test_updates_existing(self, service, mock_db):
        existing = Customer(id=uuid.uuid4(), email="ada@example.com", first_name="A", last_name="L")
        mock_db.execute.return_value = _scalar(existing)

        customer = await service.upsert_customer("ada@example.com", "Ada", "King", "555")

        assert customer is existing
        assert customer.last_name == "King"
        assert customer.phone == "555"
        mock_db.add.assert_not_called()


class TestCreateOrder:
    """Tests for PrintfulService.create_order()."""

    async def test_places_and_stores_order(self, service, mock_db, mock_client, order_request):
        mock_db.execute.return_value = _scalar(None)
        mock_client.create_order.return_value = {"id": 9001, "status": "draft"}

        result = await service.create_order(**order_request)

        assert result["printful_order_id"] == "9001"
        assert result["status"] == "success"

        sent = mock_client.create_order.await_args.args[0]
        assert sent["external_id"].startswith("order-")
        assert sent["recipient"]["name"] == "Ada Lovelace"
        assert sent["recipient"]["state_code"] == "IL"
        assert sent["items"] == [
            {"variant_id": 10163, "quantity": 25, "files": [{"type": "default", "id": 42}]}
        ]

        added = [call.args[0] for call in mock_db.add.call_args_list]
        order = next(obj for obj in added if isinstance(obj, Order))
        item = next(obj for obj in added if isinstance(obj, OrderItem))
        assert order.total_cost == Decimal("19.43") * 25
        assert order.status == "draft"
        assert order.qr_data_url == PNG_DATA_URL
        assert item.variant_id == "10163"
        assert item.unit_price == Decimal("19.43")

    @pytest.mark.parametrize(
        "field,value,message",
        [
            ("customer", {"first_name": "Ada", "email": "a@b.c"}, "Customer"),
            ("items", [], "At least one"),
            ("file_id", None, "File ID"),
            ("shipping_address", None, "Shipping address"),
        ],
    )
    async def test_validation(self, service, mock_client, order_request, field, value, message):
        order_request[field] = value

        with pytest.raises(FulfillmentError, match=message):
            await service.create_order(**order_request)

        mock_client.create_order.assert_not_awaited()

    async def test_bad_item(self, service, mock_client, order_request):
        order_request["items"] = [{"quantity": 1, "unit_price": 1}]

        with pytest.raises(FulfillmentError, match="index 0"):
            await service.create_order(**order_request)

    async def test_zero_total(self, service, mock_client, order_request):
        order_request["items"][0]["unit_price"] = 0

        with pytest.raises(FulfillmentError, match="total"):
            await service.create_order(**order_request)

        mock_client.create_order.assert_not_awaited()

    async def test_item_storage_failure_removes_order(
        self, service, mock_db, mock_client, order_request
    ):
        mock_db.execute.return_value = _scalar(None)
        mock_client.create_order.return_value = {"id": 9001}
        mock_db.begin_nested.return_value.__aexit__.side_effect = IntegrityError(
            "INSERT", {}, Exception("duplicate")
        )

        with pytest.raises(FulfillmentError, match="manual cleanup"):
            await service.create_order(**order_request)

        deleted = mock_db.delete.await_args.args[0]
        assert isinstance(deleted, Order)


class TestOrderStatus:
    """Tests for PrintfulService.order_status()."""

    async def test_updates_changed_status(self, service, mock_db, mock_client):
        order = Order(id=uuid.uuid4(), printful_order_id="9001", status="pending")
        mock_db.get.return_value = order
        mock_client.get_order.return_value = {
            "status": "fulfilled",
            "shipments": [{"tracking_number": "1Z"}],
            "created": 1700000000,
            "updated": 1700000500,
        }

        result = await service.order_status(order.id)

        assert result["status"] == "fulfilled"
        assert result["tracking"] == [{"tracking_number": "1Z"}]
        assert order.status == "fulfilled"
        mock_db.flush.assert_awaited_once()

    async def test_unchanged_status_is_not_written(self, service, mock_db, mock_client):
        order = Order(id=uuid.uuid4(), printful_order_id="9001", status="pending")
        mock_db.get.return_value = order
        mock_client.get_order.return_value = {"status": "pending"}

        result = await service.order_status(order.id)

        assert result["tracking"] == []
        mock_db.flush.assert_not_awaited()

    async def test_missing_order(self, service, mock_db):
        mock_db.get.return_value = None

        with pytest.raises(FulfillmentError, match="Order not found"):
            await service.order_status(uuid.uuid4())

    async def test_order_never_sent(self, service, mock_db):
        mock_db.get.return_value = Order(id=uuid.uuid4(), printful_order_id=None)

        with pytest.raises(FulfillmentError, match="no Printful order id"):
            await service.order_status(uuid.uuid4())


class TestSyncVariant:
    """Tests for PrintfulService.sync_variant()."""

    async def test_cached_mapping(self, service, mock_db, mock_client):
        mock_db.execute.return_value = _scalar(
            VariantMapping(catalog_variant_id="10163", sync_variant_id="777")
        )

        result = await service.sync_variant("358", "10163")

        assert result == {
            "success": True,
            "sync_variant_id": "777",
            "sync_product_id": None,
            "cached": True,
        }
        mock_client.list_products.assert_not_awaited()

    async def test_creates_product_and_variant(self, service, mock_db, mock_client):
        mock_db.execute.side_effect = [_scalar(None), _scalar(None)]
        mock_client.list_products.return_value = [
            {"id": 358, "title": "Kiss-Cut Stickers", "image": "a.png"}
        ]
        mock_client.get_product.return_value = {
            "variants": [{"id": 10163, "name": '3" x 3"', "size": "3x3"}]
        }
        mock_client.create_sync_product.return_value = {"id": 555, "name": "Stickers"}
        mock_client.create_sync_variant.return_value = {"id": 777}

        result = await service.sync_variant("358", "10163")

        assert result == {
            "success": True,
            "sync_variant_id": "777",
            "sync_product_id": "555",
            "cached": False,
        }
        mock_client.create_sync_product.assert_awaited_once_with(
            name="Kiss-Cut Stickers - Custom QR Stickers", thumbnail="a.png"
        )
        mock_client.create_sync_variant.assert_awaited_once_with(
            "555", 10163, "https://via.placeholder.com/300x300.png"
        )
        added = [call.args[0] for call in mock_db.add.call_args_list]
        assert any(isinstance(obj, VariantMapping) for obj in added)

    async def test_product_only(self, service, mock_db, mock_client):
        existing = SyncProduct(
            id=uuid.uuid4(), catalog_product_id="358", printful_sync_product_id="555", name="S"
        )
        mock_db.execute.return_value = _scalar(existing)
        mock_client.list_products.return_value = [{"id": 358, "title": "Kiss-Cut Stickers"}]
        mock_client.get_product.return_value = {"variants": []}

        result = await service.sync_variant("358")

        assert result["sync_variant_id"] is None
        assert result["sync_product_id"] == "555"
        mock_client.create_sync_product.assert_not_awaited()

    async def test_unknown_product(self, service, mock_db, mock_client):
        mock_db.execute.return_value = _scalar(None)
        mock_client.list_products.return_value = []

        with pytest.raises(FulfillmentError, match="Catalog product 358 not found"):
            await service.sync_variant("358", "10163")

    async def test_unknown_variant(self, service, mock_db, mock_client):
        existing = SyncProduct(
            id=uuid.uuid4(), catalog_product_id="358", printful_sync_product_id="555", name="S"
        )
        mock_db.execute.side_effect = [_scalar(None), _scalar(existing)]
        mock_client.list_products.return_value = [{"id": 358, "title": "Stickers"}]
        mock_client.get_product.return_value = {"variants": [{"id": 1}]}

        with pytest.raises(FulfillmentError, match="Catalog variant 999 not found"):
            await service.sync_variant("358", "999")
