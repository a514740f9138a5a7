"""Magic-link authentication flows.

Validates the sign-in/sign-up forms and delegates to Supabase GoTrue,
which emails the one-time code. Sessions are issued by GoTrue; the API
only validates their tokens afterwards.
"""

import logging
from typing import Any

from api.services.supabase_client import SupabaseClient
from common.config import settings

logger = logging.getLogger(__name__)

SIGN_IN_MESSAGE = "Magic link sent! Check your email for the magic link to sign in."
SIGN_UP_MESSAGE = (
    "Magic link sent! Check your email for the magic link to complete your account setup."
)


class AuthValidationError(ValueError):
    """Sign-in or sign-up form is incomplete or malformed."""

    pass


def validate_email(email: str | None) -> str:
    """Return the trimmed email or raise ``AuthValidationError``."""
    email = (email or "").strip()
    if not email:
        raise AuthValidationError("Email is required")
    if "@" not in email:
        raise AuthValidationError("Please enter a valid email address")
    return email


class AuthService:
    """Passwordless sign-in and sign-up."""

    def __init__(self, client: SupabaseClient):
        self.client = client

    @property
    def redirect_url(self) -> str:
        return f"{settings.public_site_url.rstrip('/')}/auth/callback"

    async def sign_in_with_email(self, email: str | None) -> str:
        """Send a sign-in magic link to an existing account.

        Returns:
            Message to show the user

        Raises:
            AuthValidationError: If the email is missing or malformed
            AuthProviderError: If GoTrue rejects the request
        """
        email = validate_email(email)
        await self.client.send_magic_link(
            email,
            create_user=False,
            redirect_to=self.redirect_url,
        )
        return SIGN_IN_MESSAGE

    async def sign_up_with_email(
        self,
        email: str | None,
        first_name: str | None,
        last_name: str | None,
        company_name: str | None = None,
    ) -> str:
        """Send a magic link that creates the account on first use.

        Raises:
            AuthValidationError: If the email or name fields are missing
            AuthProviderError: If GoTrue rejects the request
        """
        email = validate_email(email)
        first_name = (first_name or "").strip()
        last_name = (last_name or "").strip()
        if not first_name or not last_name:
            raise AuthValidationError("Please enter your first and last name")

        await self.client.send_magic_link(
            email,
            create_user=True,
            user_metadata={
                "first_name": first_name,
                "last_name": last_name,
                "company_name": (company_name or "").strip(),
            },
            redirect_to=self.redirect_url,
        )
        logger.info(f"Sign-up magic link sent to {email}")
        return SIGN_UP_MESSAGE

    async def verify_otp(self, email: str | None, token: str) -> dict[str, Any]:
        """Exchange the emailed one-time code for a session."""
        email = validate_email(email)
        return await self.client.verify_otp(email, token.strip())

    async def sign_out(self, access_token: str) -> None:
        await self.client.sign_out(access_token)
