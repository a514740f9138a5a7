"""Microsites router - dashboard CRUD and publishing.

Owners see and edit their own microsites; admins see and edit all of them.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.auth.dependencies import get_db_user, get_owner_scope
from api.models import Microsite, User
from api.schemas.content import DeleteResponse
from api.schemas.microsite import (
    MicrositeCreate,
    MicrositeListItem,
    MicrositeListResponse,
    MicrositeResponse,
    MicrositeUpdate,
    SortField,
    SortOrder,
    StatusFilter,
)
from api.services.database import get_db
from api.services.microsite_service import PAGE_SIZE, MicrositeService, PublishError, SlugTakenError

router = APIRouter(prefix="/microsites", tags=["microsites"])


async def get_owned_microsite(
    microsite_id: uuid.UUID,
    owner_id: uuid.UUID | None = Depends(get_owner_scope),
    db: AsyncSession = Depends(get_db),
) -> Microsite:
    """Load a microsite the caller may edit.

    Raises:
        HTTPException: 404 if not found or not owned
    """
    microsite = await MicrositeService(db).get_by_id(microsite_id, user_id=owner_id)
    if microsite is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Microsite not found")
    return microsite


def _list_item(microsite: Microsite) -> MicrositeListItem:
    owner = microsite.user
    return MicrositeListItem(
        id=microsite.id,
        user_id=microsite.user_id,
        name=microsite.name,
        url=microsite.url,
        status=microsite.status,
        scan_count=microsite.scan_count,
        last_scan_at=microsite.last_scan_at,
        created_at=microsite.created_at,
        updated_at=microsite.updated_at,
        owner_first_name=owner.first_name if owner else "",
        owner_last_name=owner.last_name if owner else "",
        owner_email=owner.email if owner else "",
    )


@router.post(
    "",
    response_model=MicrositeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a microsite",
)
async def create_microsite(
    request: MicrositeCreate | None = None,
    user: User = Depends(get_db_user),
    db: AsyncSession = Depends(get_db),
) -> MicrositeResponse:
    """Create a draft microsite with a random public URL and default content."""
    microsite = await MicrositeService(db).create(user.id, name=request.name if request else None)
    return MicrositeResponse.model_validate(microsite)


@router.get("", response_model=MicrositeListResponse, summary="List microsites")
async def list_microsites(
    search: str | None = Query(None, max_length=255),
    status_filter: StatusFilter = Query("all", alias="status"),
    sort_by: SortField = Query("created_at"),
    sort_order: SortOrder = Query("desc"),
    page: int = Query(1, ge=1),
    owner_id: uuid.UUID | None = Depends(get_owner_scope),
    db: AsyncSession = Depends(get_db),
) -> MicrositeListResponse:
    """List microsites with owner details, 20 per page.

    Args:
        search: Matches name, owner email or owner full name
        status_filter: ``all``, ``draft`` or ``published``
        sort_by: Column to sort on
        sort_order: ``asc`` or ``desc``
        page: 1-based page number
    """
    items, total = await MicrositeService(db).list_with_owners(
        user_id=owner_id,
        search=search,
        status_filter=status_filter,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
    )
    return MicrositeListResponse(
        items=[_list_item(m) for m in items],
        total=total,
        page=page,
        page_size=PAGE_SIZE,
    )


@router.get("/{microsite_id}", response_model=MicrositeResponse, summary="Get a microsite")
async def get_microsite(microsite: Microsite = Depends(get_owned_microsite)) -> MicrositeResponse:
    return MicrositeResponse.model_validate(microsite)


@router.patch("/{microsite_id}", response_model=MicrositeResponse, summary="Update a microsite")
async def update_microsite(
    microsite_id: uuid.UUID,
    request: MicrositeUpdate,
    owner_id: uuid.UUID | None = Depends(get_owner_scope),
    db: AsyncSession = Depends(get_db),
) -> MicrositeResponse:
    """Rename a microsite or change its public URL.

    Raises:
        HTTPException: 404 if not found, 409 if the URL is taken
    """
    try:
        microsite = await MicrositeService(db).update(
            microsite_id, owner_id, name=request.name, url=request.url
        )
    except SlugTakenError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if microsite is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Microsite not found")
    return MicrositeResponse.model_validate(microsite)


@router.delete("/{microsite_id}", response_model=DeleteResponse, summary="Delete a microsite")
async def delete_microsite(
    microsite_id: uuid.UUID,
    owner_id: uuid.UUID | None = Depends(get_owner_scope),
    db: AsyncSession = Depends(get_db),
) -> DeleteResponse:
    deleted = await MicrositeService(db).delete(microsite_id, owner_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Microsite not found")
    return DeleteResponse(deleted=True, id=microsite_id)


@router.post(
    "/{microsite_id}/publish",
    response_model=MicrositeResponse,
    summary="Toggle published state",
)
async def toggle_publish(
    microsite_id: uuid.UUID,
    owner_id: uuid.UUID | None = Depends(get_owner_scope),
    db: AsyncSession = Depends(get_db),
) -> MicrositeResponse:
    """Publish a draft or unpublish a published microsite.

    Raises:
        HTTPException: 400 when publishing without a title, 404 if not found
    """
    try:
        microsite = await MicrositeService(db).toggle_publish(microsite_id, owner_id)
    except PublishError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if microsite is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Microsite not found")
    return MicrositeResponse.model_validate(microsite)
