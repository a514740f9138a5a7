"""Supabase REST client for magic-link auth (GoTrue) and Storage.

Only the handful of endpoints the API needs are wrapped. Token validation
happens locally in ``api.auth.supabase``; this client talks to the
provider for sending magic links, exchanging one-time codes and storing
header images.
"""

import logging
from functools import lru_cache
from typing import Any

import httpx

from common.config import settings
from common.debug import get_debug_recorder, httpx_debug_hooks
from common.tracing import add_response_attributes, external_span

logger = logging.getLogger(__name__)


class AuthProviderError(Exception):
    """GoTrue rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StorageError(Exception):
    """Supabase Storage rejected an upload or could not be reached."""

    pass


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return (
            body.get("msg")
            or body.get("message")
            or body.get("error_description")
            or body.get("error")
            or response.reason_phrase
        )
    return response.reason_phrase


class SupabaseClient:
    """Thin async client over the Supabase Auth and Storage REST APIs."""

    def __init__(self, client: httpx.AsyncClient | None = None):
        """Initialize the client.

        Args:
            client: Optional preconfigured httpx client. If not provided,
                one is created against ``settings.supabase_url``.
        """
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client."""
        if self._client is None:
            if not settings.supabase_url:
                raise ValueError("Supabase URL not configured")
            self._client = httpx.AsyncClient(
                base_url=settings.supabase_url.rstrip("/"),
                timeout=settings.http_timeout_seconds,
                headers={"apikey": settings.supabase_anon_key},
                event_hooks=httpx_debug_hooks(get_debug_recorder(), "Supabase", "supabase"),
            )
        return self._client

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def send_magic_link(
        self,
        email: str,
        create_user: bool = False,
        user_metadata: dict[str, Any] | None = None,
        redirect_to: str | None = None,
    ) -> None:
        """Send a magic link / one-time code to ``email``.

        Args:
            email: Recipient address
            create_user: Whether GoTrue may create the account
            user_metadata: Metadata stored on a newly created account
            redirect_to: Where the emailed link should land

        Raises:
            AuthProviderError: If GoTrue rejects the request
        """
        payload: dict[str, Any] = {"email": email, "create_user": create_user}
        if user_metadata:
            payload["data"] = user_metadata
        params = {"redirect_to": redirect_to} if redirect_to else None

        with external_span("supabase", "auth.otp", create_user=create_user):
            response = await self.client.post("/auth/v1/otp", json=payload, params=params)

        if response.is_error:
            raise AuthProviderError(_error_message(response), response.status_code)
        logger.info(f"Magic link requested for {email} (create_user={create_user})")

    async def verify_otp(self, email: str, token: str, otp_type: str = "email") -> dict[str, Any]:
        """Exchange a one-time code for a session.

        Returns:
            GoTrue session: access_token, refresh_token, expires_in, user

        Raises:
            AuthProviderError: If the code is invalid or expired
        """
        with external_span("supabase", "auth.verify") as subsegment:
            response = await self.client.post(
                "/auth/v1/verify",
                json={"type": otp_type, "email": email, "token": token},
            )
            add_response_attributes(subsegment, status_code=response.status_code)

        if response.is_error:
            raise AuthProviderError(_error_message(response), response.status_code)
        return response.json()

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session behind ``access_token``."""
        with external_span("supabase", "auth.logout"):
            response = await self.client.post(
                "/auth/v1/logout",
                headers={"Authorization": f"Bearer {access_token}"},
            )

        if response.is_error and response.status_code != 401:
            raise AuthProviderError(_error_message(response), response.status_code)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        """Upload an object and return its public URL.

        Raises:
            StorageError: If the upload fails
        """
        service_key = settings.resolved_supabase_service_role_key
        if not service_key:
            raise StorageError("Supabase service role key not configured")

        with external_span("supabase", "storage.upload", bucket=bucket, path=path) as subsegment:
            try:
                response = await self.client.post(
                    f"/storage/v1/object/{bucket}/{path}",
                    content=content,
                    headers={
                        "Authorization": f"Bearer {service_key}",
                        "Content-Type": content_type,
                        "Cache-Control": "3600",
                        "x-upsert": "true" if upsert else "false",
                    },
                )
            except httpx.HTTPError as e:
                raise StorageError(f"Upload failed: {e}") from e
            add_response_attributes(subsegment, status_code=response.status_code, size=len(content))

        if response.is_error:
            raise StorageError(f"Upload failed: {_error_message(response)}")

        logger.info(f"Uploaded {len(content)} bytes to {bucket}/{path}")
        return self.public_url(bucket, path)

    def public_url(self, bucket: str, path: str) -> str:
        """Public URL of an object in a public bucket."""
        return f"{settings.supabase_storage_url}/object/public/{bucket}/{path}"


@lru_cache
def get_supabase_client() -> SupabaseClient:
    """Get cached Supabase REST client."""
    return SupabaseClient()
