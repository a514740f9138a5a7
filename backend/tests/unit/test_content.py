"""Unit tests for content, card and button endpoints."""

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.models import Microsite, MicrositeButton, MicrositeCard, MicrositeContent
from api.routers.content import router
from api.routers.microsites import get_owned_microsite
from api.services.autosave import AutoSaveRegistry, get_autosave_registry
from api.services.content_service import ButtonLimitError, HeaderImageError
from api.services.database import get_db
from api.services.supabase_client import StorageError, get_supabase_client

app = FastAPI()
app.include_router(router)


@pytest.fixture
def microsite():
    microsite = Microsite(
        id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        name="Coffee Shop",
        url="coffee-shop",
        status="draft",
        scan_count=0,
    )
    microsite.created_at = datetime.now(UTC)
    microsite.updated_at = datetime.now(UTC)
    return microsite


@pytest.fixture
def content(microsite):
    content = MicrositeContent(
        id=uuid.uuid4(),
        microsite_id=microsite.id,
        title="Welcome",
        header_image_url=None,
        theme_config={"primary": "#1a1a1a", "text": "#1a1a1a", "background": "#ffffff"},
    )
    content.created_at = datetime.now(UTC)
    content.updated_at = datetime.now(UTC)
    return content


@pytest.fixture
def card(microsite):
    card = MicrositeCard(
        id=uuid.uuid4(),
        microsite_id=microsite.id,
        sort_order=0,
        title="Menu",
        content="",
        media_url=None,
        is_collapsed=False,
    )
    card.buttons = []
    return card


@pytest.fixture
def registry():
    return AutoSaveRegistry(delay=60, session_factory=MagicMock())


@pytest.fixture
def storage():
    return AsyncMock()


@pytest.fixture
def client(microsite, registry, storage):
    """Create test client with ownership, database and autosave overridden."""

    async def override_get_db():
        yield AsyncMock()

    async def override_owned():
        return microsite

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_owned_microsite] = override_owned
    app.dependency_overrides[get_autosave_registry] = lambda: registry
    app.dependency_overrides[get_supabase_client] = lambda: storage

    yield TestClient(app)

    app.dependency_overrides.clear()


class TestContent:
    """Tests for page content endpoints."""

    def test_get_content(self, client, microsite, content, card):
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.load = AsyncMock(return_value=(content, [card]))

            response = client.get(f"/microsites/{microsite.id}/content")

        assert response.status_code == 200
        data = response.json()
        assert data["content"]["title"] == "Welcome"
        assert data["cards"][0]["title"] == "Menu"

    def test_update_content_sends_only_set_fields(self, client, microsite, content):
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.get_or_create_content = AsyncMock(return_value=content)
            MockService.return_value.update_content = AsyncMock(return_value=content)

            response = client.patch(
                f"/microsites/{microsite.id}/content", json={"title": "New title"}
            )

            MockService.return_value.update_content.assert_awaited_once_with(
                content.id, {"title": "New title"}
            )

        assert response.status_code == 200

    def test_title_too_long(self, client, microsite):
        response = client.patch(f"/microsites/{microsite.id}/content", json={"title": "x" * 61})

        assert response.status_code == 422


class TestAutosave:
    """Tests for autosave endpoints."""

    def test_queue_reports_pending(self, client, microsite, content, registry):
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.get_or_create_content = AsyncMock(return_value=content)

            response = client.post(
                f"/microsites/{microsite.id}/content/autosave",
                json={"title": "Draft", "theme_config": {"primary": "#ff0000"}},
            )

        assert response.status_code == 202
        data = response.json()
        assert data["has_pending_updates"] is True
        assert data["pending_fields"] == ["theme_config", "title"]

    def test_status_without_content(self, client, microsite):
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.get_content = AsyncMock(return_value=None)

            response = client.get(f"/microsites/{microsite.id}/content/autosave")

        assert response.json() == {
            "is_saving": False,
            "has_pending_updates": False,
            "pending_fields": [],
        }

    def test_flush_failure(self, client, microsite, content, registry):
        registry.flush = AsyncMock(return_value=False)
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.get_content = AsyncMock(return_value=content)

            response = client.post(f"/microsites/{microsite.id}/content/flush")

        assert response.status_code == 500
        assert "still pending" in response.json()["detail"]

    def test_flush(self, client, microsite, content, registry):
        registry.flush = AsyncMock(return_value=True)
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.get_content = AsyncMock(return_value=content)

            response = client.post(f"/microsites/{microsite.id}/content/flush")

        assert response.status_code == 200
        assert response.json()["has_pending_updates"] is False
        registry.flush.assert_awaited_once_with(content.id)


class TestHeaderImage:
    """Tests for header image upload."""

    def test_upload(self, client, microsite, content, storage):
        content.header_image_url = "https://cdn.example.com/h.png"
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.upload_header_image = AsyncMock(return_value=content)

            response = client.post(
                f"/microsites/{microsite.id}/content/header-image",
                files={"file": ("h.png", b"\x89PNG", "image/png")},
            )

            args = MockService.return_value.upload_header_image.await_args.args
            assert args == (microsite.id, b"\x89PNG", "image/png", storage)

        assert response.status_code == 200
        assert response.json()["header_image_url"] == "https://cdn.example.com/h.png"

    def test_wrong_type(self, client, microsite):
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.upload_header_image = AsyncMock(
                side_effect=HeaderImageError("Please upload a JPG or PNG image only.")
            )

            response = client.post(
                f"/microsites/{microsite.id}/content/header-image",
                files={"file": ("h.gif", b"GIF89a", "image/gif")},
            )

        assert response.status_code == 400

    def test_storage_failure(self, client, microsite):
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.upload_header_image = AsyncMock(
                side_effect=StorageError("Upload failed: Bucket not found")
            )

            response = client.post(
                f"/microsites/{microsite.id}/content/header-image",
                files={"file": ("h.png", b"\x89PNG", "image/png")},
            )

        assert response.status_code == 502


class TestCardsAndButtons:
    """Tests for card and button endpoints."""

    def test_add_card(self, client, microsite, card):
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.add_card = AsyncMock(return_value=card)

            response = client.post(f"/microsites/{microsite.id}/cards", json={})

        assert response.status_code == 201
        assert response.json()["buttons"] == []

    def test_update_missing_card(self, client, microsite):
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.update_card = AsyncMock(return_value=None)

            response = client.patch(
                f"/microsites/{microsite.id}/cards/{uuid.uuid4()}", json={"title": "x"}
            )

        assert response.status_code == 404

    def test_reorder_cards(self, client, microsite, card):
        ids = [str(uuid.uuid4()), str(uuid.uuid4())]
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.reorder_cards = AsyncMock(return_value=[card])

            response = client.put(f"/microsites/{microsite.id}/cards/order", json={"ids": ids})

            called_ids = MockService.return_value.reorder_cards.await_args.args[1]
            assert [str(i) for i in called_ids] == ids

        assert response.status_code == 200

    def test_add_button(self, client, microsite, card):
        button = MicrositeButton(
            id=uuid.uuid4(),
            card_id=card.id,
            sort_order=0,
            label="Email us",
            action_type="mailto",
            action_value="hi@example.com",
        )
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.add_button = AsyncMock(return_value=button)

            response = client.post(
                f"/microsites/{microsite.id}/cards/{card.id}/buttons",
                json={
                    "label": "Email us",
                    "action_type": "mailto",
                    "action_value": "hi@example.com",
                },
            )

        assert response.status_code == 201
        assert response.json()["action_type"] == "mailto"

    def test_add_button_invalid_value(self, client, microsite, card):
        response = client.post(
            f"/microsites/{microsite.id}/cards/{card.id}/buttons",
            json={"action_type": "url", "action_value": "example.com"},
        )

        assert response.status_code == 422

    def test_add_button_limit(self, client, microsite, card):
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.add_button = AsyncMock(
                side_effect=ButtonLimitError("A card can have at most 3 buttons")
            )

            response = client.post(f"/microsites/{microsite.id}/cards/{card.id}/buttons", json={})

        assert response.status_code == 400

    def test_delete_missing_button(self, client, microsite):
        with patch("api.routers.content.ContentService") as MockService:
            MockService.return_value.delete_button = AsyncMock(return_value=False)

            response = client.delete(f"/microsites/{microsite.id}/buttons/{uuid.uuid4()}")

        assert response.status_code == 404
