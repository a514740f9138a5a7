"""QR code generation for microsite links.

Codes are rendered with ``qrcode`` onto a Pillow image and scaled to the
requested pixel size without smoothing so modules stay crisp for print.
"""

import base64
import binascii
import io
import logging
from dataclasses import dataclass

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q

from common.config import settings

logger = logging.getLogger(__name__)

ERROR_CORRECTION = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}

MIN_SIZE = 128
MAX_SIZE = 2048
PNG_DATA_URL_PREFIX = "data:image/png;base64,"


@dataclass(frozen=True)
class QROptions:
    size: int = 1024
    error_correction: str = "H"
    dark_color: str = "#000000"
    light_color: str = "#ffffff"
    margin: int = 2


def microsite_public_url(slug: str) -> str:
    """Public address a printed code points to."""
    return f"{settings.public_site_url.rstrip('/')}/m/{slug}"


def generate_png(data: str, options: QROptions | None = None) -> bytes:
    """Render ``data`` as a square PNG QR code.

    Raises:
        ValueError: If size or error correction level is out of range
    """
    options = options or QROptions()
    if not MIN_SIZE <= options.size <= MAX_SIZE:
        raise ValueError(f"Size must be between {MIN_SIZE} and {MAX_SIZE} pixels")
    level = ERROR_CORRECTION.get(options.error_correction.upper())
    if level is None:
        raise ValueError("Error correction must be one of L, M, Q, H")

    qr = qrcode.QRCode(error_correction=level, box_size=10, border=options.margin)
    qr.add_data(data)
    qr.make(fit=True)

    image = qr.make_image(
        fill_color=options.dark_color,
        back_color=options.light_color,
    ).get_image()
    image = image.convert("RGB").resize(
        (options.size, options.size),
        Image.Resampling.NEAREST,
    )

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    logger.debug(f"Generated {options.size}px QR code (version {qr.version}) for {data}")
    return buffer.getvalue()


def to_data_url(png: bytes) -> str:
    return PNG_DATA_URL_PREFIX + base64.b64encode(png).decode("ascii")


def decode_image_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a ``data:image/...;base64,...`` URL into (mime type, bytes).

    Raises:
        ValueError: If the URL is malformed or not base64 encoded
    """
    if not data_url or not data_url.startswith("data:image/"):
        raise ValueError("Invalid image data URL format")
    header, _, encoded = data_url.partition(",")
    if not encoded:
        raise ValueError("Malformed data URL")
    mime_type = header.split(";")[0].split(":", 1)[1]
    try:
        return mime_type, base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("Invalid base64 image data") from e


def microsite_qr_data_url(slug: str, options: QROptions | None = None) -> str:
    """QR code for a microsite's public page as a PNG data URL."""
    return to_data_url(generate_png(microsite_public_url(slug), options))
