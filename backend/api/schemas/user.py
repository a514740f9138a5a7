"""Pydantic schemas for user profile and admin endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserResponse(BaseModel):
    """Schema for a user profile."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    company_name: str | None
    subscription_status: str
    is_admin: bool
    last_login: datetime | None
    created_at: datetime


class AdminUserResponse(UserResponse):
    """User row in the admin panel, with usage counters."""

    microsite_count: int = 0
    sticker_order_count: int = 0


class UserUpdate(BaseModel):
    """Admin update of a user. All fields optional."""

    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)
    company_name: str | None = Field(None, max_length=255)
    subscription_status: str | None = Field(None, max_length=50)
    is_admin: bool | None = None


class UserDeleteResponse(BaseModel):
    deleted: bool
    id: uuid.UUID
