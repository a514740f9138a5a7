"""FastAPI dependencies for authentication."""

import logging
import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from api.auth.models import AuthUser
from api.auth.supabase import (
    InvalidTokenError,
    SupabaseAuth,
    SupabaseAuthError,
    TokenExpiredError,
    get_supabase_auth,
)
from api.models import User
from api.services.database import get_db
from api.services.user_service import UserService

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme for OpenAPI docs
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth: SupabaseAuth = Depends(get_supabase_auth),
) -> AuthUser:
    """FastAPI dependency to get the current authenticated user.

    Extracts and validates the JWT token from the Authorization header.

    Raises:
        HTTPException: 401 if token is missing, expired, or invalid
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = credentials.credentials

    try:
        payload = auth.decode_token(token)
        return AuthUser.from_token_payload(payload, access_token=token)
    except TokenExpiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth: SupabaseAuth = Depends(get_supabase_auth),
) -> AuthUser | None:
    """Same as get_current_user but returns None when no valid token is given."""
    if credentials is None:
        return None

    try:
        payload = auth.decode_token(credentials.credentials)
        return AuthUser.from_token_payload(payload, access_token=credentials.credentials)
    except SupabaseAuthError:
        return None


async def get_db_user(
    auth_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get or create the database user for the authenticated token.

    Creates the profile row on first access and refreshes last_login.
    """
    user_service = UserService(db)
    return await user_service.get_or_create_from_auth(auth_user)


async def require_admin(
    user: User = Depends(get_db_user),
    auth_user: AuthUser = Depends(get_current_user),
) -> User:
    """FastAPI dependency restricting a route to administrators.

    Raises:
        HTTPException: 403 if the user is not an admin
    """
    if not (user.is_admin or auth_user.is_admin_claim):
        logger.warning(f"Non-admin user {user.id} attempted an admin action")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def is_admin(user: User, auth_user: AuthUser | None = None) -> bool:
    """Whether ``user`` may see and edit every microsite."""
    return user.is_admin or bool(auth_user and auth_user.is_admin_claim)


async def get_owner_scope(
    user: User = Depends(get_db_user),
    auth_user: AuthUser = Depends(get_current_user),
) -> uuid.UUID | None:
    """Owner filter for microsite queries: None for admins, the user's id otherwise."""
    return None if is_admin(user, auth_user) else user.id
