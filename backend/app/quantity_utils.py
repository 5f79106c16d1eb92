from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

"""
Fixed-point helpers for ingredient quantities and lot costs.

- Quantities are Decimal with 4 places (matches Numeric(14, 4) columns).
- Lot unit costs are Decimal cents with 6 places (Numeric(18, 6)).
- Money leaving the ledger (sale COGS, API totals) is whole cents, half-up.
"""

QTY_PLACES = Decimal("0.0001")
UNIT_COST_PLACES = Decimal("0.000001")
ZERO = Decimal("0")


def as_decimal(value) -> Decimal:
    """Coerce DB/driver numbers to Decimal without float artifacts."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def quantize_qty(value) -> Decimal:
    return as_decimal(value).quantize(QTY_PLACES, rounding=ROUND_HALF_UP)


def quantize_unit_cost(value) -> Decimal:
    return as_decimal(value).quantize(UNIT_COST_PLACES, rounding=ROUND_HALF_UP)


def round_cents(value) -> int:
    """Nearest whole cent, half-up."""
    return int(as_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def qty_to_str(value) -> Optional[str]:
    """Serialize a quantity for JSON ("9.5", "10", "0.25")."""
    if value is None:
        return None
    d = quantize_qty(value).normalize()
    # normalize() turns 10 into 1E+1
    return format(d, "f")


def cost_to_str(value) -> Optional[str]:
    if value is None:
        return None
    return format(quantize_unit_cost(value).normalize(), "f")
