"""Unit tests for health endpoint."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from api.main import app
from api.services.database import get_db


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def mock_db():
    db = AsyncMock()
    app.dependency_overrides[get_db] = _override(db)
    yield db
    app.dependency_overrides.clear()


def _override(db):
    async def override_get_db():
        yield db

    return override_get_db


def test_health_check_returns_200(client: TestClient) -> None:
    """Health endpoint should return 200 OK."""
    response = client.get("/health")
    assert response.status_code == 200


def test_health_check_returns_healthy_status(client: TestClient) -> None:
    """Health endpoint should return healthy status."""
    response = client.get("/health")
    data = response.json()
    assert data["status"] == "healthy"
    assert data["environment"] == "testing"


def test_health_check_returns_version(client: TestClient) -> None:
    """Health endpoint should return version."""
    response = client.get("/health")
    data = response.json()
    assert "version" in data
    assert data["version"] == "0.1.0"


def test_readiness_check_ok(client: TestClient, mock_db) -> None:
    """Readiness succeeds when the database answers."""
    response = client.get("/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "database": "ok"}
    mock_db.execute.assert_awaited_once()


def test_readiness_check_database_down(client: TestClient, mock_db) -> None:
    """Readiness returns 503 when the database is unreachable."""
    mock_db.execute.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))
    response = client.get("/health/ready")
    assert response.status_code == 503
    assert response.json()["database"] == "unreachable"
