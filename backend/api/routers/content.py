"""Content router - page content, cards and buttons of a microsite.

Content edits can be saved immediately or queued through the debounced
autosave, which writes coalesced edits after a quiet period.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.models import Microsite
from api.routers.microsites import get_owned_microsite
from api.schemas.content import (
    AutosaveStatus,
    ButtonCreate,
    ButtonResponse,
    ButtonUpdate,
    CardCreate,
    CardResponse,
    CardUpdate,
    ContentResponse,
    ContentUpdate,
    DeleteResponse,
    MicrositeContentResponse,
    ReorderRequest,
)
from api.services.autosave import AutoSaveRegistry, DebouncedSaver, get_autosave_registry
from api.services.content_service import (
    ButtonLimitError,
    ContentService,
    HeaderImageError,
    InvalidButtonError,
)
from api.services.database import get_db
from api.services.supabase_client import StorageError, SupabaseClient, get_supabase_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/microsites/{microsite_id}", tags=["content"])


def _status(saver: DebouncedSaver | None) -> AutosaveStatus:
    if saver is None:
        return AutosaveStatus(is_saving=False, has_pending_updates=False)
    return AutosaveStatus(
        is_saving=saver.is_saving,
        has_pending_updates=saver.has_pending_updates,
        pending_fields=saver.pending_fields,
    )


@router.get("/content", response_model=MicrositeContentResponse, summary="Load page content")
async def get_content(
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
) -> MicrositeContentResponse:
    """Content row (created with defaults if missing) plus ordered cards and buttons."""
    content, cards = await ContentService(db).load(microsite.id)
    return MicrositeContentResponse(
        content=ContentResponse.model_validate(content),
        cards=[CardResponse.model_validate(c) for c in cards],
    )


@router.patch("/content", response_model=ContentResponse, summary="Save page content now")
async def update_content(
    request: ContentUpdate,
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
) -> ContentResponse:
    service = ContentService(db)
    content = await service.get_or_create_content(microsite.id)
    content = await service.update_content(content.id, request.model_dump(exclude_unset=True))
    return ContentResponse.model_validate(content)


@router.post(
    "/content/autosave",
    response_model=AutosaveStatus,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue content edits",
)
async def queue_autosave(
    request: ContentUpdate,
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
    registry: AutoSaveRegistry = Depends(get_autosave_registry),
) -> AutosaveStatus:
    """Queue field edits; they are written together once editing pauses."""
    content = await ContentService(db).get_or_create_content(microsite.id)
    saver = registry.queue(content.id, request.model_dump(exclude_unset=True))
    return _status(saver)


@router.get("/content/autosave", response_model=AutosaveStatus, summary="Autosave state")
async def autosave_status(
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
    registry: AutoSaveRegistry = Depends(get_autosave_registry),
) -> AutosaveStatus:
    content = await ContentService(db).get_content(microsite.id)
    return _status(registry.get(content.id) if content else None)


@router.post("/content/flush", response_model=AutosaveStatus, summary="Save queued edits now")
async def flush_autosave(
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
    registry: AutoSaveRegistry = Depends(get_autosave_registry),
) -> AutosaveStatus:
    """Write queued edits immediately.

    Raises:
        HTTPException: 500 if the save failed (edits stay queued)
    """
    content = await ContentService(db).get_content(microsite.id)
    if content is None:
        return _status(None)
    if not await registry.flush(content.id):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Autosave failed; changes are still pending",
        )
    return _status(registry.get(content.id))


@router.post("/content/header-image", response_model=ContentResponse, summary="Upload header image")
async def upload_header_image(
    file: UploadFile = File(...),
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
    storage: SupabaseClient = Depends(get_supabase_client),
) -> ContentResponse:
    """Store a JPG/PNG (max 1MB) and set it as the page's header image.

    Raises:
        HTTPException: 400 for a wrong type or size, 502 if storage fails
    """
    data = await file.read()
    try:
        content = await ContentService(db).upload_header_image(
            microsite.id, data, file.content_type or "", storage
        )
    except HeaderImageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StorageError as e:
        logger.error(f"Header image upload failed for {microsite.id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return ContentResponse.model_validate(content)


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


@router.post(
    "/cards",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a card",
)
async def add_card(
    request: CardCreate,
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
) -> CardResponse:
    card = await ContentService(db).add_card(microsite.id, **request.model_dump())
    return CardResponse.model_validate(card)


@router.put("/cards/order", response_model=list[CardResponse], summary="Reorder cards")
async def reorder_cards(
    request: ReorderRequest,
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
) -> list[CardResponse]:
    cards = await ContentService(db).reorder_cards(microsite.id, request.ids)
    return [CardResponse.model_validate(c) for c in cards]


@router.patch("/cards/{card_id}", response_model=CardResponse, summary="Update a card")
async def update_card(
    card_id: uuid.UUID,
    request: CardUpdate,
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
) -> CardResponse:
    card = await ContentService(db).update_card(
        card_id, microsite.id, **request.model_dump(exclude_unset=True)
    )
    if card is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Card not found")
    return CardResponse.model_validate(card)


@router.delete("/cards/{card_id}", response_model=DeleteResponse, summary="Delete a card")
async def delete_card(
    card_id: uuid.UUID,
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
) -> DeleteResponse:
    if not await ContentService(db).delete_card(card_id, microsite.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Card not found")
    return DeleteResponse(deleted=True, id=card_id)


# ---------------------------------------------------------------------------
# Buttons
# ---------------------------------------------------------------------------


@router.post(
    "/cards/{card_id}/buttons",
    response_model=ButtonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a button to a card",
)
async def add_button(
    card_id: uuid.UUID,
    request: ButtonCreate,
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
) -> ButtonResponse:
    """Add a button (at most three per card).

    Raises:
        HTTPException: 400 when the card is full, 404 if the card is not found
    """
    try:
        button = await ContentService(db).add_button(
            card_id,
            microsite.id,
            action_type=request.action_type,
            action_value=request.action_value,
            label=request.label,
        )
    except (ButtonLimitError, InvalidButtonError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if button is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Card not found")
    return ButtonResponse.model_validate(button)


@router.put(
    "/cards/{card_id}/buttons/order",
    response_model=CardResponse,
    summary="Reorder a card's buttons",
)
async def reorder_buttons(
    card_id: uuid.UUID,
    request: ReorderRequest,
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
) -> CardResponse:
    card = await ContentService(db).reorder_buttons(card_id, microsite.id, request.ids)
    if card is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Card not found")
    return CardResponse.model_validate(card)


@router.patch("/buttons/{button_id}", response_model=ButtonResponse, summary="Update a button")
async def update_button(
    button_id: uuid.UUID,
    request: ButtonUpdate,
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
) -> ButtonResponse:
    try:
        button = await ContentService(db).update_button(
            button_id,
            microsite.id,
            label=request.label,
            action_type=request.action_type,
            action_value=request.action_value,
        )
    except InvalidButtonError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if button is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Button not found")
    return ButtonResponse.model_validate(button)


@router.delete("/buttons/{button_id}", response_model=DeleteResponse, summary="Delete a button")
async def delete_button(
    button_id: uuid.UUID,
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
) -> DeleteResponse:
    if not await ContentService(db).delete_button(button_id, microsite.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Button not found")
    return DeleteResponse(deleted=True, id=button_id)
