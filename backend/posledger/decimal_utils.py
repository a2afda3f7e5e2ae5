from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional


# Quantum for amounts already held in cents: rounds to a whole cent
WHOLE_CENT = Decimal("1")


def to_decimal(value: Any, *, field: str = "value") -> Decimal:
    """
    Coerce int / str / Decimal input to Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    Raises ValueError for booleans, NaN/Infinity, and unparseable input.
    """
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a number")
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, (int, float, str)):
        try:
            dec = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"{field} must be a number")
    else:
        raise ValueError(f"{field} must be a number")
    if not dec.is_finite():
        raise ValueError(f"{field} must be a finite number")
    return dec


def round_half_up(value: Decimal, exp: Decimal = WHOLE_CENT) -> Decimal:
    return value.quantize(exp, rounding=ROUND_HALF_UP)


def decimal_str(value: Optional[Decimal]) -> Optional[str]:
    """Decimal -> plain string without trailing zeros ('5.000' -> '5', '1.50' -> '1.5')."""
    if value is None:
        return None
    return format(Decimal(value).normalize(), "f")
