from decimal import Decimal, ROUND_HALF_UP

ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Coerce ints, strings and floats (via str) to Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value, places: int = 2) -> Decimal:
    """Round half-up to a fixed number of decimal places."""
    return to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
