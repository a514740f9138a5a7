"""QR router - QR codes that point at a microsite's public page."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.models import Microsite
from api.routers.microsites import get_owned_microsite
from api.schemas.qr import QRCodeRequest, QRCodeResponse
from api.services.database import get_db
from api.services.qr_service import QROptions, generate_png, microsite_public_url, to_data_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/microsites/{microsite_id}/qr", tags=["qr"])


def _options(request: QRCodeRequest) -> QROptions:
    return QROptions(
        size=request.size,
        error_correction=request.error_correction,
        dark_color=request.dark_color,
        light_color=request.light_color,
        margin=request.margin,
    )


@router.post("", response_model=QRCodeResponse, summary="Generate a QR code")
async def create_qr_code(
    request: QRCodeRequest,
    microsite: Microsite = Depends(get_owned_microsite),
    db: AsyncSession = Depends(get_db),
) -> QRCodeResponse:
    """Render the microsite's QR code as a PNG data URL.

    With ``save`` set, the data URL is stored on the microsite and used
    when stickers are ordered.
    """
    url = microsite_public_url(microsite.url)
    try:
        data_url = to_data_url(generate_png(url, _options(request)))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if request.save:
        microsite.qr_data_url = data_url
        await db.flush()
        logger.info(f"Saved QR code for microsite {microsite.id}")
    return QRCodeResponse(url=url, data_url=data_url)


@router.get("/download", summary="Download the QR code as PNG")
async def download_qr_code(
    size: int = 1024,
    error_correction: str = "H",
    microsite: Microsite = Depends(get_owned_microsite),
) -> Response:
    try:
        png = generate_png(
            microsite_public_url(microsite.url),
            QROptions(size=size, error_correction=error_correction),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{microsite.url}-qr.png"'},
    )
