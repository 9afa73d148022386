"""Fixed-point helpers shared by pricing, BOM and stock code."""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from catalog_engine.config import settings


ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a numeric value to Decimal without passing through binary floats.

    Floats are converted via their shortest repr so 1.3 becomes Decimal("1.3").
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def quantize_currency(amount: Decimal, places: int = None) -> Decimal:
    """Round a currency amount half-up to presentation precision."""
    if places is None:
        places = settings.CURRENCY_DECIMAL_PLACES
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def quantize_quantity(quantity: Decimal, places: int = None) -> Decimal:
    """Round a material quantity half-up to storage precision (NUMERIC(12,4))."""
    if places is None:
        places = settings.BOM_QUANTITY_DECIMAL_PLACES
    return quantity.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
