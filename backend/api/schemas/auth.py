"""Pydantic schemas for magic-link authentication."""

from typing import Any

from pydantic import BaseModel, Field


class SignInRequest(BaseModel):
    email: str = Field("", max_length=255)


class SignUpRequest(BaseModel):
    """Schema for creating an account through a magic link."""

    email: str = Field("", max_length=255)
    first_name: str = Field("", max_length=255)
    last_name: str = Field("", max_length=255)
    company_name: str | None = Field(None, max_length=255)


class VerifyOtpRequest(BaseModel):
    email: str = Field(..., max_length=255)
    token: str = Field(..., min_length=1, max_length=64)


class MagicLinkResponse(BaseModel):
    """Confirmation shown after a magic link was sent."""

    message: str


class SessionResponse(BaseModel):
    """Session returned by the auth provider after verifying a code."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str = "bearer"
    user: dict[str, Any] | None = None


class SignOutResponse(BaseModel):
    signed_out: bool = True
