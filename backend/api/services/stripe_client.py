"""Stripe client: hosted checkout sessions and webhook events.

Thin async wrapper over the ``stripe`` SDK that adds X-Ray spans and
debug recording around the calls made at checkout.
"""

import logging
import time
from functools import lru_cache
from typing import Any

import stripe

from common.config import settings
from common.debug import get_debug_recorder
from common.tracing import add_response_attributes, external_span

logger = logging.getLogger(__name__)


class StripeError(Exception):
    """Stripe API call failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StripeClient:
    """Async client for the parts of the Stripe API used at checkout."""

    def __init__(self, client: stripe.StripeClient | None = None):
        self._client = client

    @property
    def client(self) -> stripe.StripeClient:
        """Get the SDK client, authenticated with the secret key."""
        if self._client is None:
            secret_key = settings.resolved_stripe_secret_key
            if not secret_key:
                raise StripeError("Stripe secret key not configured")
            self._client = stripe.StripeClient(
                secret_key,
                base_addresses={"api": settings.stripe_api_base},
                http_client=stripe.HTTPXClient(timeout=settings.http_timeout_seconds),
            )
        return self._client

    async def create_checkout_session(self, params: dict[str, Any]) -> dict[str, Any]:
        """Create a hosted Checkout Session.

        Args:
            params: Session parameters as nested dicts, as the SDK takes them

        Returns:
            ``{"id": ..., "url": ...}`` of the created session

        Raises:
            StripeError: If Stripe rejects the request
        """
        started = time.perf_counter()
        with external_span("stripe", "checkout.sessions.create") as subsegment:
            try:
                session = await self.client.checkout.sessions.create_async(params=params)
            except stripe.StripeError as e:
                add_response_attributes(subsegment, status_code=e.http_status)
                self._record(params, started, e.http_status or 500, error=str(e))
                logger.error(f"Stripe API error: {e}")
                raise StripeError(f"Stripe API error: {e.http_status}", e.http_status) from e
            add_response_attributes(subsegment, status_code=200)

        result = {"id": session.id, "url": session.url}
        self._record(params, started, 200, response=result)
        logger.info(f"Created Stripe checkout session: {session.id}")
        return result

    def _record(
        self,
        params: dict[str, Any],
        started: float,
        status: int,
        response: Any = None,
        error: str | None = None,
    ) -> None:
        get_debug_recorder().record(
            "error" if error else "fetch",
            "Stripe API",
            method="POST",
            url=f"{settings.stripe_api_base}/v1/checkout/sessions",
            request=params,
            response=response,
            duration=int((time.perf_counter() - started) * 1000),
            status=status,
            error=error,
        )

    @staticmethod
    def construct_event(payload: bytes, signature_header: str | None) -> dict[str, Any]:
        """Verify a webhook delivery and parse its event.

        Raises:
            stripe.SignatureVerificationError: If the header is missing, the
                secret is not configured, or the signature does not match
            StripeError: If the payload is not valid JSON
        """
        if not signature_header:
            raise stripe.SignatureVerificationError(
                "Missing Stripe-Signature header", signature_header, payload
            )
        secret = settings.resolved_stripe_webhook_secret
        if not secret:
            raise stripe.SignatureVerificationError(
                "Webhook secret not configured", signature_header, payload
            )

        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature_header,
                secret,
                tolerance=settings.stripe_webhook_tolerance_seconds,
            )
        except ValueError as e:
            raise StripeError(f"Invalid webhook payload: {e}") from e
        return event.to_dict()


@lru_cache
def get_stripe_client() -> StripeClient:
    """Get cached Stripe client."""
    return StripeClient()
