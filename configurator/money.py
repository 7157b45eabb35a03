"""
Currency helpers shared by pricing, payment split and progress.

Storefront amounts are whole yuan once rounded; halves always round up
(0.5 → 1, 2.5 → 3), unlike Python's banker's rounding.
"""

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    # str() first so float artifacts like 0.49999999999999994 stay below the half
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_currency(value: float) -> str:
    """¥12,999 style display string. Drops the fraction for whole amounts."""
    if float(value).is_integer():
        return f"¥{int(value):,}"
    return f"¥{value:,.2f}"
