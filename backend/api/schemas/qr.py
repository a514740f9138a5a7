"""Pydantic schemas for QR code generation and sticker pricing."""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class QRCodeRequest(BaseModel):
    """Rendering options for a microsite QR code."""

    size: int = Field(1024, ge=128, le=2048, description="Width and height in pixels")
    error_correction: Literal["L", "M", "Q", "H"] = "H"
    dark_color: str = Field("#000000", pattern=HEX_COLOR)
    light_color: str = Field("#ffffff", pattern=HEX_COLOR)
    margin: int = Field(2, ge=0, le=16)
    save: bool = Field(False, description="Store the data URL on the microsite")


class QRCodeResponse(BaseModel):
    url: str
    data_url: str


class PriceOption(BaseModel):
    key: str
    label: str
    value: Decimal


class PriceTableResponse(BaseModel):
    """Sizes with base prices, material multipliers and offered quantities."""

    sizes: list[PriceOption]
    materials: list[PriceOption]
    quantities: list[int]
    markup: Decimal


class QuoteRequest(BaseModel):
    size: str
    material: str
    quantity: int = Field(..., ge=1)


class QuoteResponse(BaseModel):
    size: str
    material: str
    quantity: int
    unit_price: Decimal
    total: Decimal
