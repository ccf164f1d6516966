"""Money arithmetic.

Amounts are stored as floats on aggregates and computed as two-place
decimals, so every sum and discount rounds the same way.
"""

from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def minor_units(value) -> int:
    """Amount in the currency's minor unit (paise), as the gateway reports it."""
    return int(money(value) * 100)
