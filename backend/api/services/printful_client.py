"""Printful REST client.

Wraps the catalog, file library, order and store-product endpoints used
for printing QR code stickers. Every response from Printful is an envelope
``{"code": ..., "result": ...}``; methods return the ``result`` part.
"""

import asyncio
import logging
from functools import lru_cache
from typing import Any

import httpx

from common.config import settings
from common.debug import get_debug_recorder, httpx_debug_hooks
from common.tracing import add_response_attributes, external_span

logger = logging.getLogger(__name__)

UPLOAD_ATTEMPTS = 3


class PrintfulError(Exception):
    """Printful API call failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        if isinstance(body.get("result"), str):
            return body["result"]
    return response.text


class PrintfulClient:
    """Async client for the Printful API."""

    def __init__(self, client: httpx.AsyncClient | None = None):
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, authenticated with the API token."""
        if self._client is None:
            token = settings.resolved_printful_api_token
            if not token:
                raise PrintfulError("PRINTFUL_API_TOKEN not configured")
            self._client = httpx.AsyncClient(
                base_url=settings.printful_api_base,
                timeout=settings.http_timeout_seconds,
                headers={"Authorization": f"Bearer {token}"},
                event_hooks=httpx_debug_hooks(get_debug_recorder(), "Printful API"),
            )
        return self._client

    async def _request(self, method: str, path: str, operation: str, **kwargs: Any) -> Any:
        with external_span("printful", operation, path=path) as subsegment:
            try:
                response = await self.client.request(method, path, **kwargs)
            except httpx.HTTPError as e:
                raise PrintfulError(f"Printful request failed: {e}") from e
            add_response_attributes(subsegment, status_code=response.status_code)

        if response.is_error:
            detail = _error_detail(response)
            logger.error(f"Printful API error {response.status_code} on {method} {path}: {detail}")
            raise PrintfulError(
                f"Printful API error: {response.status_code} - {detail}",
                response.status_code,
            )
        return response.json().get("result")

    async def list_products(self) -> list[dict[str, Any]]:
        """List catalog products."""
        return await self._request("GET", "/products", "products.list") or []

    async def get_product(self, product_id: int | str) -> dict[str, Any]:
        """Get a catalog product with its ``variants``."""
        return await self._request("GET", f"/products/{product_id}", "products.get") or {}

    async def upload_file(self, content: bytes, filename: str, mime_type: str) -> dict[str, Any]:
        """Add a print file to the file library.

        Server errors and connection failures are retried up to three
        attempts, waiting 1s then 2s between them.

        Returns:
            The file record (``id``, ``filename``, ``preview_url``, ...)

        Raises:
            PrintfulError: If every attempt fails or Printful rejects the file
        """
        last_error: PrintfulError | None = None
        for attempt in range(UPLOAD_ATTEMPTS):
            try:
                result = await self._request(
                    "POST",
                    "/files",
                    "files.upload",
                    files={"files[]": (filename, content, mime_type)},
                    data={"type": "default"},
                )
            except PrintfulError as e:
                retryable = e.status_code is None or e.status_code >= 500
                if not retryable or attempt == UPLOAD_ATTEMPTS - 1:
                    raise
                last_error = e
                delay = 2**attempt
                logger.warning(f"Upload attempt {attempt + 1} failed ({e}); retrying in {delay}s")
                await asyncio.sleep(delay)
                continue

            if not result or not result.get("id"):
                raise PrintfulError("Upload succeeded but no file ID returned")
            logger.info(f"Uploaded print file {filename} as {result['id']}")
            return result

        raise last_error or PrintfulError("Upload failed")

    async def create_order(self, order: dict[str, Any]) -> dict[str, Any]:
        """Create a fulfillment order.

        Raises:
            PrintfulError: If the order is rejected or no id is returned
        """
        result = await self._request("POST", "/orders", "orders.create", json=order)
        if not result or not result.get("id"):
            raise PrintfulError("Printful order created but no ID returned")
        logger.info(
            f"Printful order created: id={result['id']} external_id={result.get('external_id')}"
        )
        return result

    async def get_order(self, order_id: int | str) -> dict[str, Any]:
        """Get an order with its status and shipments."""
        return await self._request("GET", f"/orders/{order_id}", "orders.get") or {}

    async def create_sync_product(self, name: str, thumbnail: str | None = None) -> dict[str, Any]:
        """Create a store (sync) product."""
        payload = {"sync_product": {"name": name, "thumbnail": thumbnail}}
        return await self._request("POST", "/store/products", "store.products.create", json=payload)

    async def create_sync_variant(
        self, sync_product_id: int | str, catalog_variant_id: int, file_url: str
    ) -> dict[str, Any]:
        """Add a variant to a store product."""
        payload = {
            "sync_variant": {
                "external_id": f"variant_{catalog_variant_id}",
                "variant_id": catalog_variant_id,
                "files": [{"type": "default", "url": file_url}],
            }
        }
        return await self._request(
            "POST",
            f"/store/products/{sync_product_id}/variants",
            "store.variants.create",
            json=payload,
        )


@lru_cache
def get_printful_client() -> PrintfulClient:
    """Get cached Printful client."""
    return PrintfulClient()
