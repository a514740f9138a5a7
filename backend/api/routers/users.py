"""Users router - current profile and the admin user panel."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.auth.dependencies import get_db_user, require_admin
from api.models import User
from api.schemas.user import AdminUserResponse, UserDeleteResponse, UserResponse, UserUpdate
from api.services.database import get_db
from api.services.user_service import UserService

router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserResponse, summary="Current user profile")
async def get_me(user: User = Depends(get_db_user)) -> UserResponse:
    return UserResponse.model_validate(user)


@router.get(
    "/admin/users",
    response_model=list[AdminUserResponse],
    summary="List users with usage counters",
)
async def list_users(
    search: str | None = Query(None, max_length=255),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[AdminUserResponse]:
    """List every user, newest first, with microsite and sticker order counts.

    Admin only.
    """
    rows = await UserService(db).list_with_stats(search=search)
    return [
        AdminUserResponse.model_validate(row.user).model_copy(
            update={
                "microsite_count": row.microsite_count,
                "sticker_order_count": row.sticker_order_count,
            }
        )
        for row in rows
    ]


@router.get("/admin/users/{user_id}", response_model=UserResponse, summary="Get a user")
async def get_user(
    user_id: uuid.UUID,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    user = await UserService(db).get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserResponse.model_validate(user)


@router.patch("/admin/users/{user_id}", response_model=UserResponse, summary="Update a user")
async def update_user(
    user_id: uuid.UUID,
    request: UserUpdate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    user = await UserService(db).update(user_id, **request.model_dump(exclude_unset=True))
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserResponse.model_validate(user)


@router.delete(
    "/admin/users/{user_id}",
    response_model=UserDeleteResponse,
    summary="Delete a user",
)
async def delete_user(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserDeleteResponse:
    """Delete a user together with their microsites and cart.

    Raises:
        HTTPException: 400 when deleting yourself, 404 if not found
    """
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account",
        )
    deleted = await UserService(db).delete(user_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserDeleteResponse(deleted=True, id=user_id)
