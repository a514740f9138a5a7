"""Unit tests for the Printful client."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from api.services.printful_client import PrintfulClient, PrintfulError


def _client(handler) -> PrintfulClient:
    return PrintfulClient(
        httpx.AsyncClient(
            base_url="https://api.printful.com", transport=httpx.MockTransport(handler)
        )
    )


class TestRequests:
    """Tests for envelope handling."""

    async def test_returns_result_part(self):
        client = _client(
            lambda request: httpx.Response(200, json={"code": 200, "result": [{"id": 358}]})
        )

        assert await client.list_products() == [{"id": 358}]

    async def test_error_message_from_envelope(self):
        client = _client(
            lambda request: httpx.Response(
                404, json={"code": 404, "result": "Not found", "error": {"message": "Not found"}}
            )
        )

        with pytest.raises(PrintfulError) as exc_info:
            await client.get_product(1)

        assert exc_info.value.status_code == 404
        assert "Not found" in str(exc_info.value)

    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(PrintfulError, match="request failed"):
            await _client(handler).get_order(1)


class TestUploadFile:
    """Tests for PrintfulClient.upload_file()."""

    async def test_retries_server_errors(self):
        responses = iter(
            [
                httpx.Response(502, json={"code": 502, "result": "Bad gateway"}),
                httpx.Response(500, json={"code": 500, "result": "Oops"}),
                httpx.Response(200, json={"code": 200, "result": {"id": 42, "filename": "q.png"}}),
            ]
        )
        client = _client(lambda request: next(responses))

        with patch("api.services.printful_client.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            result = await client.upload_file(b"png", "q.png", "image/png")

        assert result["id"] == 42
        assert [call.args[0] for call in mock_sleep.await_args_list] == [1, 2]

    async def test_gives_up_after_three_attempts(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, json={"code": 503, "result": "Unavailable"})

        with patch("api.services.printful_client.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(PrintfulError):
                await _client(handler).upload_file(b"png", "q.png", "image/png")

        assert len(calls) == 3

    async def test_client_errors_are_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, json={"code": 400, "error": {"message": "Bad file"}})

        with pytest.raises(PrintfulError, match="Bad file"):
            await _client(handler).upload_file(b"png", "q.png", "image/png")

        assert len(calls) == 1

    async def test_missing_file_id(self):
        client = _client(lambda request: httpx.Response(200, json={"code": 200, "result": {}}))

        with pytest.raises(PrintfulError, match="no file ID"):
            await client.upload_file(b"png", "q.png", "image/png")


class TestOrders:
    """Tests for order endpoints."""

    async def test_create_order_sends_json(self):
        captured = {}

        def handler(request):
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(
                200, json={"code": 200, "result": {"id": 9001, "external_id": "order-1"}}
            )

        result = await _client(handler).create_order({"external_id": "order-1", "items": []})

        assert result["id"] == 9001
        assert captured["path"] == "/orders"
        assert captured["body"]["external_id"] == "order-1"

    async def test_create_order_without_id(self):
        client = _client(lambda request: httpx.Response(200, json={"code": 200, "result": {}}))

        with pytest.raises(PrintfulError, match="no ID"):
            await client.create_order({})

    async def test_create_sync_variant_payload(self):
        captured = {}

        def handler(request):
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"code": 200, "result": {"id": 77}})

        await _client(handler).create_sync_variant(555, 10163, "https://files/qr.png")

        assert captured["path"] == "/store/products/555/variants"
        assert captured["body"]["sync_variant"] == {
            "external_id": "variant_10163",
            "variant_id": 10163,
            "files": [{"type": "default", "url": "https://files/qr.png"}],
        }
