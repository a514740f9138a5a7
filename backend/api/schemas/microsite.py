"""Pydantic schemas for microsite endpoints."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from api.schemas.content import CardResponse, ContentResponse

SLUG_PATTERN = r"^[a-z0-9][a-z0-9\-_]*$"

StatusFilter = Literal["all", "draft", "published"]
SortField = Literal["name", "created_at", "scan_count", "status"]
SortOrder = Literal["asc", "desc"]


class MicrositeCreate(BaseModel):
    """Schema for creating a microsite. The name defaults to a timestamped one."""

    name: str | None = Field(None, min_length=1, max_length=255)


class MicrositeUpdate(BaseModel):
    """Schema for renaming a microsite or changing its public URL."""

    name: str | None = Field(None, min_length=1, max_length=255)
    url: str | None = Field(None, min_length=3, max_length=255, pattern=SLUG_PATTERN)


class MicrositeResponse(BaseModel):
    """Schema for a microsite in API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    url: str
    status: str
    scan_count: int
    last_scan_at: datetime | None
    qr_data_url: str | None = None
    created_at: datetime
    updated_at: datetime


class MicrositeListItem(BaseModel):
    """Dashboard row: a microsite plus its owner's name and email."""

    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    url: str
    status: str
    scan_count: int
    last_scan_at: datetime | None
    created_at: datetime
    updated_at: datetime
    owner_first_name: str
    owner_last_name: str
    owner_email: str


class MicrositeListResponse(BaseModel):
    """Schema for a page of microsites."""

    items: list[MicrositeListItem]
    total: int
    page: int
    page_size: int


class PublicMicrositeResponse(BaseModel):
    """A published microsite as rendered for visitors."""

    id: uuid.UUID
    name: str
    url: str
    content: ContentResponse | None
    cards: list[CardResponse]
