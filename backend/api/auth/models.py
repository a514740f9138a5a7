"""User model for authenticated requests."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AuthUser:
    """Authenticated user from a Supabase access token."""

    id: str  # Supabase 'sub' claim
    email: str | None = None
    role: str | None = None
    user_metadata: dict[str, Any] = field(default_factory=dict)
    app_metadata: dict[str, Any] = field(default_factory=dict)
    access_token: str | None = None

    @property
    def sub(self) -> str:
        """Alias for id (sub claim)."""
        return self.id

    @property
    def first_name(self) -> str:
        return self.user_metadata.get("first_name") or ""

    @property
    def last_name(self) -> str:
        return self.user_metadata.get("last_name") or ""

    @property
    def company_name(self) -> str | None:
        return self.user_metadata.get("company_name") or None

    @property
    def is_admin_claim(self) -> bool:
        """Admin role granted through app metadata.

        Only ``app_metadata`` is set server-side; ``user_metadata`` is writable
        by the user and never grants a role.
        """
        return self.app_metadata.get("role") == "admin"

    @classmethod
    def from_token_payload(cls, payload: dict, access_token: str | None = None) -> "AuthUser":
        """Create AuthUser from decoded JWT token payload.

        Args:
            payload: Decoded JWT claims from a Supabase access token.
            access_token: Raw token, kept for calls made on the user's behalf.

        Returns:
            AuthUser instance with extracted claims.
        """
        return cls(
            id=payload.get("sub", ""),
            email=payload.get("email"),
            role=payload.get("role"),
            user_metadata=payload.get("user_metadata") or {},
            app_metadata=payload.get("app_metadata") or {},
            access_token=access_token,
        )
