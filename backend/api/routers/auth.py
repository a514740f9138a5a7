"""Auth router - passwordless magic-link sign-in and sign-up."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from api.auth.dependencies import get_current_user
from api.auth.models import AuthUser
from api.schemas.auth import (
    MagicLinkResponse,
    SessionResponse,
    SignInRequest,
    SignOutResponse,
    SignUpRequest,
    VerifyOtpRequest,
)
from api.services.auth_service import AuthService, AuthValidationError
from api.services.supabase_client import AuthProviderError, SupabaseClient, get_supabase_client
from common.debug import observe

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(client: SupabaseClient = Depends(get_supabase_client)) -> AuthService:
    return observe(AuthService(client), "Auth", type="supabase")


def _provider_error(e: AuthProviderError) -> HTTPException:
    code = e.status_code if e.status_code and 400 <= e.status_code < 500 else None
    return HTTPException(status_code=code or status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/sign-in", response_model=MagicLinkResponse, summary="Send a sign-in magic link")
async def sign_in(
    request: SignInRequest,
    service: AuthService = Depends(get_auth_service),
) -> MagicLinkResponse:
    """Email a magic link to an existing account.

    Raises:
        HTTPException: 400 for a missing/invalid email, provider status otherwise
    """
    try:
        message = await service.sign_in_with_email(request.email)
    except AuthValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except AuthProviderError as e:
        logger.error(f"Sign-in failed: {e}")
        raise _provider_error(e)
    return MagicLinkResponse(message=message)


@router.post("/sign-up", response_model=MagicLinkResponse, summary="Send a sign-up magic link")
async def sign_up(
    request: SignUpRequest,
    service: AuthService = Depends(get_auth_service),
) -> MagicLinkResponse:
    """Email a magic link that creates the account with the given names."""
    try:
        message = await service.sign_up_with_email(
            request.email,
            request.first_name,
            request.last_name,
            request.company_name,
        )
    except AuthValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except AuthProviderError as e:
        logger.error(f"Sign-up failed: {e}")
        raise _provider_error(e)
    return MagicLinkResponse(message=message)


@router.post("/verify", response_model=SessionResponse, summary="Exchange a one-time code")
async def verify(
    request: VerifyOtpRequest,
    service: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    try:
        session = await service.verify_otp(request.email, request.token)
    except AuthValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except AuthProviderError as e:
        raise _provider_error(e)
    return SessionResponse.model_validate(session)


@router.post("/sign-out", response_model=SignOutResponse, summary="Revoke the current session")
async def sign_out(
    auth_user: AuthUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> SignOutResponse:
    try:
        await service.sign_out(auth_user.access_token or "")
    except AuthProviderError as e:
        raise _provider_error(e)
    return SignOutResponse()
