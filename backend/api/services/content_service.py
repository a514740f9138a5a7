"""Content service - page content, cards and buttons of a microsite.

All operations are scoped by ``microsite_id``; the caller checks that the
current user may edit that microsite first.
"""

import logging
import time
import uuid
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.models import MicrositeButton, MicrositeCard, MicrositeContent
from api.models.microsite import DEFAULT_THEME
from api.schemas.content import MAX_BUTTONS_PER_CARD, validate_action
from api.services.supabase_client import SupabaseClient
from common.config import settings

logger = logging.getLogger(__name__)

CONTENT_FIELDS = {"title", "header_image_url", "theme_config"}
CARD_FIELDS = {"title", "content", "media_url", "is_collapsed"}

HEADER_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
}


class ButtonLimitError(ValueError):
    """Card already holds the maximum number of buttons."""

    pass


class InvalidButtonError(ValueError):
    """Button action value does not match its action type."""

    pass


class HeaderImageError(ValueError):
    """Uploaded header image has the wrong type or size."""

    pass


def normalize_theme(theme: Any) -> dict[str, str]:
    """Fill missing theme keys with defaults; non-objects become the default theme."""
    if not isinstance(theme, dict):
        return dict(DEFAULT_THEME)
    return {key: theme.get(key) or default for key, default in DEFAULT_THEME.items()}


class ContentService:
    """Service for editing microsite content."""

    def __init__(self, db: AsyncSession):
        """Initialize with database session.

        Args:
            db: Async SQLAlchemy session
        """
        self.db = db

    # ------------------------------------------------------------------
    # Page content
    # ------------------------------------------------------------------

    async def get_content(self, microsite_id: uuid.UUID) -> MicrositeContent | None:
        query = select(MicrositeContent).where(MicrositeContent.microsite_id == microsite_id)
        result = await self.db.execute(query)
        content = result.scalar_one_or_none()
        if content is not None:
            content.theme_config = normalize_theme(content.theme_config)
        return content

    async def get_or_create_content(self, microsite_id: uuid.UUID) -> MicrositeContent:
        """Get the content row, creating it with default theme when missing."""
        content = await self.get_content(microsite_id)
        if content is None:
            content = MicrositeContent(
                microsite_id=microsite_id,
                title=None,
                header_image_url=None,
                theme_config=dict(DEFAULT_THEME),
            )
            self.db.add(content)
            await self.db.flush()
            await self.db.refresh(content)
            logger.info(f"Created default content for microsite {microsite_id}")
        return content

    async def load(
        self, microsite_id: uuid.UUID
    ) -> tuple[MicrositeContent, list[MicrositeCard]]:
        """Load content plus cards (ordered, each with ordered buttons)."""
        content = await self.get_or_create_content(microsite_id)
        cards = await self.list_cards(microsite_id)
        return content, cards

    async def update_content(
        self, content_id: uuid.UUID, updates: dict[str, Any]
    ) -> MicrositeContent | None:
        """Apply field updates to a content row.

        Unknown keys are ignored. Also used as the autosave flush target.

        Returns:
            The refreshed content row, None if it does not exist
        """
        values = {k: v for k, v in updates.items() if k in CONTENT_FIELDS}
        if "theme_config" in values:
            values["theme_config"] = normalize_theme(values["theme_config"])

        content = await self.db.get(MicrositeContent, content_id)
        if content is None:
            return None

        for key, value in values.items():
            setattr(content, key, value)

        await self.db.flush()
        await self.db.refresh(content)
        content.theme_config = normalize_theme(content.theme_config)
        logger.info(f"Saved content {content_id} fields: {sorted(values)}")
        return content

    async def upload_header_image(
        self,
        microsite_id: uuid.UUID,
        data: bytes,
        content_type: str,
        storage: SupabaseClient,
    ) -> MicrositeContent:
        """Store a header image and point the content row at it.

        Raises:
            HeaderImageError: If the file is not JPG/PNG or larger than 1MB
            StorageError: If the upload fails
        """
        extension = HEADER_IMAGE_TYPES.get((content_type or "").lower())
        if extension is None:
            raise HeaderImageError("Please upload a JPG or PNG image only.")
        if len(data) > settings.header_image_max_bytes:
            raise HeaderImageError("Image must be smaller than 1MB.")

        path = f"{microsite_id}/header-{int(time.time() * 1000)}.{extension}"
        public_url = await storage.upload(settings.storage_bucket, path, data, content_type)

        content = await self.get_or_create_content(microsite_id)
        content.header_image_url = public_url
        await self.db.flush()
        await self.db.refresh(content)
        content.theme_config = normalize_theme(content.theme_config)
        return content

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    async def list_cards(self, microsite_id: uuid.UUID) -> list[MicrositeCard]:
        query = (
            select(MicrositeCard)
            .where(MicrositeCard.microsite_id == microsite_id)
            .order_by(MicrositeCard.sort_order)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_card(self, card_id: uuid.UUID, microsite_id: uuid.UUID) -> MicrositeCard | None:
        query = select(MicrositeCard).where(
            MicrositeCard.id == card_id,
            MicrositeCard.microsite_id == microsite_id,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def add_card(self, microsite_id: uuid.UUID, **fields: Any) -> MicrositeCard:
        """Append a card after the current last one."""
        result = await self.db.execute(
            select(func.max(MicrositeCard.sort_order)).where(
                MicrositeCard.microsite_id == microsite_id
            )
        )
        max_order = result.scalar()
        card = MicrositeCard(
            microsite_id=microsite_id,
            sort_order=0 if max_order is None else max_order + 1,
            title=fields.get("title"),
            content=fields.get("content", ""),
            media_url=fields.get("media_url"),
            is_collapsed=bool(fields.get("is_collapsed", False)),
        )
        self.db.add(card)
        await self.db.flush()
        await self.db.refresh(card)
        logger.info(f"Added card {card.id} to microsite {microsite_id}")
        return card

    async def update_card(
        self, card_id: uuid.UUID, microsite_id: uuid.UUID, **fields: Any
    ) -> MicrositeCard | None:
        card = await self.get_card(card_id, microsite_id)
        if card is None:
            return None

        for key, value in fields.items():
            if key in CARD_FIELDS and value is not None:
                setattr(card, key, value)

        await self.db.flush()
        await self.db.refresh(card)
        return card

    async def delete_card(self, card_id: uuid.UUID, microsite_id: uuid.UUID) -> bool:
        card = await self.get_card(card_id, microsite_id)
        if card is None:
            return False

        await self.db.delete(card)
        await self.db.flush()
        logger.info(f"Deleted card {card_id}")
        return True

    async def reorder_cards(
        self, microsite_id: uuid.UUID, card_ids: list[uuid.UUID]
    ) -> list[MicrositeCard]:
        """Set each card's sort_order to its index in ``card_ids``.

        Ids that do not belong to the microsite are ignored.
        """
        for index, card_id in enumerate(card_ids):
            await self.db.execute(
                update(MicrositeCard)
                .where(MicrositeCard.id == card_id, MicrositeCard.microsite_id == microsite_id)
                .values(sort_order=index)
            )
        await self.db.flush()
        return await self.list_cards(microsite_id)

    # ------------------------------------------------------------------
    # Buttons
    # ------------------------------------------------------------------

    async def get_button(
        self, button_id: uuid.UUID, microsite_id: uuid.UUID
    ) -> MicrositeButton | None:
        query = (
            select(MicrositeButton)
            .join(MicrositeCard, MicrositeButton.card_id == MicrositeCard.id)
            .where(MicrositeButton.id == button_id, MicrositeCard.microsite_id == microsite_id)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def add_button(
        self,
        card_id: uuid.UUID,
        microsite_id: uuid.UUID,
        action_type: str = "url",
        action_value: str = "https://example.com",
        label: str | None = None,
    ) -> MicrositeButton | None:
        """Add a button to a card.

        Returns:
            The new button, None if the card is not on this microsite

        Raises:
            ButtonLimitError: If the card already has three buttons
            InvalidButtonError: If the action value does not match the type
        """
        card = await self.get_card(card_id, microsite_id)
        if card is None:
            return None
        if len(card.buttons) >= MAX_BUTTONS_PER_CARD:
            raise ButtonLimitError(f"A card can have at most {MAX_BUTTONS_PER_CARD} buttons")
        try:
            validate_action(action_type, action_value)
        except ValueError as e:
            raise InvalidButtonError(str(e)) from e

        sort_order = max((b.sort_order for b in card.buttons), default=-1) + 1
        button = MicrositeButton(
            card_id=card.id,
            sort_order=sort_order,
            label=label or f"Button {sort_order + 1}",
            action_type=action_type,
            action_value=action_value,
        )
        self.db.add(button)
        await self.db.flush()
        await self.db.refresh(button)
        logger.info(f"Added button {button.id} to card {card_id}")
        return button

    async def update_button(
        self,
        button_id: uuid.UUID,
        microsite_id: uuid.UUID,
        label: str | None = None,
        action_type: str | None = None,
        action_value: str | None = None,
    ) -> MicrositeButton | None:
        """Update a button, validating the resulting action type/value pair.

        Raises:
            InvalidButtonError: If the action value does not match the type
        """
        button = await self.get_button(button_id, microsite_id)
        if button is None:
            return None

        new_type = action_type or button.action_type
        new_value = action_value if action_value is not None else button.action_value
        if action_type is not None or action_value is not None:
            try:
                validate_action(new_type, new_value)
            except ValueError as e:
                raise InvalidButtonError(str(e)) from e

        if label is not None:
            button.label = label
        button.action_type = new_type
        button.action_value = new_value

        await self.db.flush()
        await self.db.refresh(button)
        return button

    async def delete_button(self, button_id: uuid.UUID, microsite_id: uuid.UUID) -> bool:
        button = await self.get_button(button_id, microsite_id)
        if button is None:
            return False

        await self.db.delete(button)
        await self.db.flush()
        return True

    async def reorder_buttons(
        self, card_id: uuid.UUID, microsite_id: uuid.UUID, button_ids: list[uuid.UUID]
    ) -> MicrositeCard | None:
        """Set each button's sort_order to its index in ``button_ids``."""
        card = await self.get_card(card_id, microsite_id)
        if card is None:
            return None

        for index, button_id in enumerate(button_ids):
            await self.db.execute(
                update(MicrositeButton)
                .where(MicrositeButton.id == button_id, MicrositeButton.card_id == card_id)
                .values(sort_order=index)
            )
        await self.db.flush()
        await self.db.refresh(card, attribute_names=["buttons"])
        return card
