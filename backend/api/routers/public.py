"""Public router - published microsite pages reached by scanning a QR code."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.content import CardResponse, ContentResponse
from api.schemas.microsite import PublicMicrositeResponse
from api.services.content_service import normalize_theme
from api.services.database import get_db
from api.services.microsite_service import MicrositeService

router = APIRouter(tags=["public"])


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.get("/m/{slug}", response_model=PublicMicrositeResponse, summary="Published microsite")
async def view_microsite(
    slug: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> PublicMicrositeResponse:
    """Return a published microsite's page and record the visit.

    Drafts are not visible. A failure to record the scan does not affect
    the response.

    Raises:
        HTTPException: 404 if no published microsite has this URL
    """
    service = MicrositeService(db)
    microsite = await service.get_published_by_slug(slug)
    if microsite is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Microsite not found")

    await service.track_scan(
        microsite.id,
        user_agent=request.headers.get("user-agent"),
        ip_address=_client_ip(request),
    )

    content = microsite.content
    if content is not None:
        content.theme_config = normalize_theme(content.theme_config)
    return PublicMicrositeResponse(
        id=microsite.id,
        name=microsite.name,
        url=microsite.url,
        content=ContentResponse.model_validate(content) if content else None,
        cards=[CardResponse.model_validate(c) for c in microsite.cards],
    )
