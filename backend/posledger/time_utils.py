# Overview: Canonical clock and ISO-8601 helpers; every stored datetime is UTC-naive.

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from .errors import ValidationError


def utcnow() -> datetime:
    """Now, in UTC with tzinfo stripped (the form every column stores)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str], *, field: str = "datetime") -> Optional[datetime]:
    """
    Read an ISO-8601 string from a request or a JSON snapshot.

    Blank -> None. A trailing Z or an offset is folded into UTC; a value
    without offset is taken to already be UTC.

    Raises:
        ValidationError: value is not ISO-8601
    """
    text = (value or "").strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime", details={"field": field, "value": value})

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second-precision ISO-8601 with a Z suffix; naive input counts as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"
