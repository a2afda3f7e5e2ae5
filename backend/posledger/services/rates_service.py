# Overview: Rate table; operator-entered exchange rates persisted in settings.

from __future__ import annotations

import json
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Setting
from ..decimal_utils import decimal_str, to_decimal
from ..errors import InvalidRate, ValidationError
from .concurrency import run_atomic


RATES_SETTING_KEY = "exchange_rates"

# Seeded on first run when no rate table exists
DEFAULT_RATES = {"USD": Decimal("36.5"), "EUR": Decimal("39.2")}


def base_currency() -> str:
    return current_app.config["BASE_CURRENCY"].upper()


def _normalize_code(code) -> str:
    if not isinstance(code, str) or not code.strip():
        raise ValidationError("Currency code is required")
    return code.strip().upper()


def _validate_rate(code: str, value) -> Decimal:
    try:
        rate = to_decimal(value, field=f"rate for {code}")
    except ValueError as e:
        raise InvalidRate(str(e), details={"currency": code, "rate": value})
    if rate <= 0:
        raise InvalidRate(
            f"Exchange rate for {code} must be greater than zero",
            details={"currency": code, "rate": str(rate)},
        )
    return rate


def get_rates() -> dict[str, Decimal]:
    """Current rate table: {code: base units per one unit of code}."""
    row = db.session.get(Setting, RATES_SETTING_KEY)
    if row is None or not row.value:
        return {}
    raw = json.loads(row.value)
    return {code: Decimal(str(value)) for code, value in raw.items()}


def _write_rates(rates: dict[str, Decimal], user: str | None) -> None:
    payload = json.dumps({code: decimal_str(rate) for code, rate in sorted(rates.items())})
    row = db.session.get(Setting, RATES_SETTING_KEY)
    if row is None:
        row = Setting(key=RATES_SETTING_KEY)
        db.session.add(row)
    row.value = payload
    row.updated_by = user


def set_rate(code: str, rate, user: str | None = None) -> dict[str, Decimal]:
    """Set (or add) one secondary currency rate."""
    currency = _normalize_code(code)
    if currency == base_currency():
        raise InvalidRate(
            f"{currency} is the base currency and has no exchange rate",
            details={"currency": currency},
        )
    value = _validate_rate(currency, rate)

    def _op():
        rates = get_rates()
        rates[currency] = value
        _write_rates(rates, user)
        return rates

    return run_atomic(_op, action="exchange rate")


def replace_rates(new_rates: dict, user: str | None = None) -> dict[str, Decimal]:
    """
    Replace the whole rate table.

    Every rate is validated before anything is written.
    """
    if not isinstance(new_rates, dict):
        raise ValidationError("rates must be an object of {currency: rate}")

    validated: dict[str, Decimal] = {}
    for code, value in new_rates.items():
        currency = _normalize_code(code)
        if currency == base_currency():
            raise InvalidRate(
                f"{currency} is the base currency and has no exchange rate",
                details={"currency": currency},
            )
        validated[currency] = _validate_rate(currency, value)

    def _op():
        _write_rates(validated, user)
        return validated

    return run_atomic(_op, action="exchange rates")


def ensure_default_rates(user: str | None = None) -> dict[str, Decimal]:
    """Seed DEFAULT_RATES when no rate table exists yet. Idempotent."""
    existing = get_rates()
    if existing:
        return existing
    return replace_rates(dict(DEFAULT_RATES), user=user)


def rates_to_dict(rates: dict[str, Decimal]) -> dict[str, str]:
    return {code: decimal_str(rate) for code, rate in sorted(rates.items())}
