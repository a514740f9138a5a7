"""Pytest configuration for smoke tests against a deployed stage.

Run with ``pytest backend/tests/smoke --api-url https://<api-gateway-url>``.
"""

import os

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--api-url",
        action="store",
        default=os.getenv("API_ENDPOINT", "http://localhost:8000"),
        help="Base URL of the QR Microsites API",
    )


@pytest.fixture
def api_url(request):
    return request.config.getoption("--api-url").rstrip("/")
