# Overview: Payload validation for stock items; column-driven coercion plus business rules.

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, String, Text

from .decimal_utils import to_decimal
from .errors import ValidationError
from .models.inventory import UNIT_ITEM, VALID_UNITS


# Largest price a StockItem may carry: 9,999,999.99 in cents
MAX_PRICE_CENTS = 999_999_999

_TRUE_STRINGS = {"true", "1", "yes"}
_FALSE_STRINGS = {"false", "0", "no"}


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which fields a caller may write, and which a create must carry.

    writable_fields is the allowlist: anything else in a payload is rejected,
    so clients cannot set id, version_id or timestamps.
    """
    writable_fields: frozenset[str] | set[str]
    required_on_create: frozenset[str] | set[str] = field(default_factory=frozenset)


def _invalid(name: str, message: str) -> ValidationError:
    return ValidationError(f"{name} {message}", details={"field": name})


def _as_int(name: str, value) -> int:
    # Cents are whole numbers; 10.0, "1e3" and "10.5" are all refused
    if isinstance(value, bool):
        raise _invalid(name, "must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("+-").isdigit():
        return int(value.strip())
    raise _invalid(name, "must be a whole number of cents")


def _as_decimal(name: str, value) -> Decimal:
    try:
        return to_decimal(value, field=name)
    except ValueError as e:
        raise ValidationError(str(e), details={"field": name})


def _as_bool(name: str, value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise _invalid(name, "must be true or false")


def _coerce(column, value):
    """Convert a JSON value to the Python type the column stores."""
    coltype = column.type
    if isinstance(coltype, Integer):
        return _as_int(column.key, value)
    if isinstance(coltype, Numeric):
        return _as_decimal(column.key, value)
    if isinstance(coltype, Boolean):
        return _as_bool(column.key, value)
    if isinstance(coltype, (String, Text)):
        text = str(value).strip()
        if not text and not column.nullable:
            raise _invalid(column.key, "cannot be blank")
        length = getattr(coltype, "length", None)
        if length and len(text) > length:
            raise _invalid(column.key, f"is longer than {length} characters")
        return text
    return value


def validate_payload(*, model, payload, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Check a JSON payload against the model's columns and a policy.

    partial=False (create): every required_on_create field must be present
    and non-null. partial=True (update): only the given keys are checked.
    Returns a patch dict of coerced values.
    """
    payload = {} if payload is None else payload
    if not isinstance(payload, dict):
        raise ValidationError("Payload must be a JSON object")

    columns = {c.key: c for c in model.__mapper__.columns}

    unknown = sorted(k for k in payload if k not in policy.writable_fields or k not in columns)
    if unknown:
        raise ValidationError(
            f"Field not allowed: {', '.join(unknown)}",
            details={"fields": unknown},
        )

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) is None)
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )

    patch: dict = {}
    for key, raw in payload.items():
        column = columns[key]
        if raw is None:
            if not column.nullable:
                raise _invalid(key, "cannot be null")
            patch[key] = None
        else:
            patch[key] = _coerce(column, raw)
    return patch


def clamp_percent(value: Decimal) -> Decimal:
    """Discounts are clamped into [0, 100] at input time."""
    return min(max(value, Decimal("0")), Decimal("100"))


def enforce_rules_stock_item(patch: dict) -> None:
    """
    Rules for a complete (merged) stock item that column types cannot express.

    Mutates patch: discount_percent is clamped rather than rejected.
    """
    for name in ("buying_price_cents", "selling_price_cents"):
        price = patch.get(name)
        if price is None:
            continue
        if price < 0:
            raise _invalid(name, "must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise _invalid(name, f"cannot exceed {MAX_PRICE_CENTS}")

    unit = patch.get("unit")
    if unit is not None and unit not in VALID_UNITS:
        raise ValidationError(
            f"unit must be one of {', '.join(VALID_UNITS)}",
            details={"field": "unit", "value": unit},
        )

    qty = patch.get("quantity")
    if qty is not None:
        if qty < 0:
            raise ValidationError("quantity must be >= 0", details={"field": "quantity", "value": str(qty)})
        if unit == UNIT_ITEM and qty != qty.to_integral_value():
            raise ValidationError(
                "quantity must be a whole number for unit 'item'",
                details={"field": "quantity", "value": str(qty)},
            )

    if patch.get("discount_percent") is not None:
        patch["discount_percent"] = clamp_percent(patch["discount_percent"])
