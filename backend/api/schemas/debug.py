"""Pydantic schemas for the admin debug recorder endpoints."""

from typing import Any

from pydantic import BaseModel


class DebugEntryResponse(BaseModel):
    id: str
    timestamp: str
    type: str
    source: str
    method: str | None = None
    url: str | None = None
    request: Any = None
    response: Any = None
    duration: float | None = None
    status: int | None = None
    error: str | None = None


class DebugLogResponse(BaseModel):
    enabled: bool
    capacity: int
    entries: list[DebugEntryResponse]


class DebugToggleResponse(BaseModel):
    enabled: bool
