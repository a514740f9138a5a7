"""
AWS X-Ray tracing for calls to external providers.

Subsegment wrapper for Stripe, Printful and Supabase requests.
No-op when running outside Lambda (no active X-Ray segment).
"""

import os
from contextlib import contextmanager
from typing import Any

from aws_xray_sdk.core import patch_all, xray_recorder

# Auto-patch supported libraries (boto3, httpx, etc.)
if os.environ.get("AWS_LAMBDA_FUNCTION_NAME"):
    patch_all()

_MAX_METADATA_CHARS = 500


def _truncate(value: Any) -> Any:
    if isinstance(value, str) and len(value) > _MAX_METADATA_CHARS:
        return value[:_MAX_METADATA_CHARS] + "..."
    return value


@contextmanager
def external_span(provider: str, operation: str, **attributes: Any):
    """Create an X-Ray subsegment for a call to an external provider.

    Gracefully no-ops when no active segment exists (e.g., in tests or local dev).
    """
    with xray_recorder.in_subsegment(f"{provider}.{operation}") as subsegment:
        if subsegment is None:
            yield None
        else:
            subsegment.put_annotation("provider", provider)
            subsegment.put_annotation("operation", operation)
            for key, value in attributes.items():
                subsegment.put_metadata(key, _truncate(value))
            yield subsegment


def add_response_attributes(subsegment, **attributes: Any) -> None:
    """Add response metadata to subsegment. No-op if subsegment is None."""
    if subsegment is None:
        return
    for key, value in attributes.items():
        subsegment.put_metadata(key, _truncate(value))
