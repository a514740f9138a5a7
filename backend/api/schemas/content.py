"""Pydantic schemas for microsite content, cards and buttons."""

import re
import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

ActionType = Literal["tel", "mailto", "url"]

MAX_BUTTONS_PER_CARD = 3

ACTION_PATTERNS: dict[str, re.Pattern] = {
    "tel": re.compile(r"^[+]?[0-9\s\-()]+$"),
    "mailto": re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$"),
    "url": re.compile(r"^https?://.+"),
}

ACTION_ERRORS = {
    "tel": "Please enter a valid phone number",
    "mailto": "Please enter a valid email address",
    "url": "Please enter a valid URL starting with http:// or https://",
}


def validate_action(action_type: str, action_value: str) -> None:
    """Raise ``ValueError`` if ``action_value`` does not suit ``action_type``."""
    pattern = ACTION_PATTERNS.get(action_type)
    if pattern is None:
        raise ValueError(f"Unsupported action type: {action_type}")
    if not pattern.match(action_value or ""):
        raise ValueError(ACTION_ERRORS[action_type])


class ThemeConfig(BaseModel):
    """Colour theme of a microsite page."""

    primary: str = Field("#1a1a1a", max_length=32)
    text: str = Field("#1a1a1a", max_length=32)
    background: str = Field("#ffffff", max_length=32)


class ContentUpdate(BaseModel):
    """Schema for updating page content. All fields optional."""

    title: str | None = Field(None, max_length=60, description="Page title (max 60 characters)")
    header_image_url: str | None = Field(None, max_length=2048)
    theme_config: ThemeConfig | None = None


class ContentResponse(BaseModel):
    """Schema for page content in API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    microsite_id: uuid.UUID
    title: str | None
    header_image_url: str | None
    theme_config: ThemeConfig
    created_at: datetime
    updated_at: datetime


class AutosaveStatus(BaseModel):
    """State of the debounced saver for a content row."""

    is_saving: bool
    has_pending_updates: bool
    pending_fields: list[str] = Field(default_factory=list)


class ButtonCreate(BaseModel):
    """Schema for adding a button. Defaults to a link button."""

    label: str | None = Field(None, min_length=1, max_length=30)
    action_type: ActionType = "url"
    action_value: str = Field("https://example.com", max_length=2048)

    @model_validator(mode="after")
    def check_action(self) -> "ButtonCreate":
        validate_action(self.action_type, self.action_value)
        return self


class ButtonUpdate(BaseModel):
    """Schema for updating a button. Action is re-validated against the stored type."""

    label: str | None = Field(None, min_length=1, max_length=30)
    action_type: ActionType | None = None
    action_value: str | None = Field(None, max_length=2048)


class ButtonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    card_id: uuid.UUID
    sort_order: int
    label: str
    action_type: ActionType
    action_value: str


class CardCreate(BaseModel):
    """Schema for adding a card. An empty card is created by default."""

    title: str | None = Field(None, max_length=255)
    content: str | None = Field("", max_length=20000)
    media_url: str | None = Field(None, max_length=2048)
    is_collapsed: bool = False


class CardUpdate(BaseModel):
    """Schema for updating a card. All fields optional."""

    title: str | None = Field(None, max_length=255)
    content: str | None = Field(None, max_length=20000)
    media_url: str | None = Field(None, max_length=2048)
    is_collapsed: bool | None = None


class CardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    microsite_id: uuid.UUID
    sort_order: int
    title: str | None
    content: str | None
    media_url: str | None
    is_collapsed: bool
    buttons: list[ButtonResponse] = Field(default_factory=list)


class ReorderRequest(BaseModel):
    """New order of items; each id's position becomes its sort_order."""

    ids: list[uuid.UUID] = Field(..., min_length=1)


class MicrositeContentResponse(BaseModel):
    """Everything the editor needs to render a microsite."""

    content: ContentResponse
    cards: list[CardResponse]


class DeleteResponse(BaseModel):
    """Schema for delete confirmation."""

    deleted: bool
    id: uuid.UUID
