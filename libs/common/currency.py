"""Currency conversion utilities.

Stored / API unit: rupees as Decimal (e.g. Decimal("1499.00")).
Gateway unit: paise, the minor currency unit (100 paise = ₹1).
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

PAISE_PER_RUPEE: int = 100

TWO_PLACES = Decimal("0.01")


def to_money(value) -> Decimal:
    """Coerce a number to a two-decimal Decimal (round half-up)."""
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def rupees_to_paise(rupees) -> int:
    """Convert rupees to paise (round half-up). ₹1 = 100 paise."""
    return int(
        (Decimal(str(rupees)) * PAISE_PER_RUPEE).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
    )
