"""
Format helpers for values coming back from the store.
No business logic, only conversions.
"""
from decimal import ROUND_HALF_UP, Decimal


CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Coerce a stored amount to a two-place Decimal; None becomes 0.00"""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        # via str() so a float keeps its printed value
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)

