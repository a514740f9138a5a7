"""Sticker pricing.

Unit price = base price for the size, times the quantity discount, times
the material multiplier, times a 1.5 markup, rounded up to the cent.
Prices are computed with ``Decimal`` so exact cent values are not pushed
up by binary floating point error.
"""

from dataclasses import dataclass
from decimal import ROUND_CEILING, Decimal

MARKUP = Decimal("1.5")

SIZES: dict[str, tuple[str, Decimal]] = {
    "2x2": ('2" x 2"', Decimal("8.95")),
    "3x3": ('3" x 3"', Decimal("12.95")),
    "4x4": ('4" x 4"', Decimal("16.95")),
    "6x6": ('6" x 6"', Decimal("24.95")),
}

MATERIALS: dict[str, tuple[str, Decimal]] = {
    "vinyl": ("Vinyl (Matte)", Decimal("1.0")),
    "transparent": ("Transparent", Decimal("1.2")),
    "holographic": ("Holographic", Decimal("1.5")),
}

# Checked from the largest threshold down; first match wins.
QUANTITY_DISCOUNTS: list[tuple[int, Decimal]] = [
    (500, Decimal("0.7")),
    (250, Decimal("0.75")),
    (100, Decimal("0.8")),
    (50, Decimal("0.85")),
]

QUANTITY_OPTIONS = [25, 50, 100, 250, 500]


class PricingError(ValueError):
    """Unknown size or material, or a non-positive quantity."""

    pass


@dataclass(frozen=True)
class Quote:
    size: str
    material: str
    quantity: int
    unit_price: Decimal
    total: Decimal


def quantity_discount(quantity: int) -> Decimal:
    for threshold, factor in QUANTITY_DISCOUNTS:
        if quantity >= threshold:
            return factor
    return Decimal("1")


def unit_price(size: str, material: str, quantity: int) -> Decimal:
    """Price of one sticker in dollars.

    Raises:
        PricingError: If size or material is unknown or quantity < 1
    """
    if size not in SIZES:
        raise PricingError(f"Unknown sticker size: {size}")
    if material not in MATERIALS:
        raise PricingError(f"Unknown sticker material: {material}")
    if quantity < 1:
        raise PricingError("Quantity must be at least 1")

    price = SIZES[size][1] * quantity_discount(quantity) * MATERIALS[material][1] * MARKUP
    return price.quantize(Decimal("0.01"), rounding=ROUND_CEILING)


def quote(size: str, material: str, quantity: int) -> Quote:
    price = unit_price(size, material, quantity)
    return Quote(
        size=size,
        material=material,
        quantity=quantity,
        unit_price=price,
        total=price * quantity,
    )


def variant_id(product_id: str | int, size: str, material: str) -> str:
    """Variant key used for cart lines, e.g. ``358_3x3_vinyl``."""
    return f"{product_id}_{size}_{material}"
