# Overview: Pricing engine; pure currency, discount and tax arithmetic.

"""
Pricing Engine

All functions are pure: they take a rate-table snapshot or line values and
return Decimal amounts. Nothing here reads the database.

Money conventions:
- Stored amounts are integer cents of the base currency.
- Intermediate math is exact Decimal; rounding to whole cents (half-up)
  happens once, at the money boundary, via to_cents().

Rate semantics:
- rates[code] = base-currency units per ONE unit of `code`.
  Converting a base amount to `code` therefore divides by the rate.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Mapping

from ..decimal_utils import round_half_up, to_decimal
from ..errors import InvalidRate


DEFAULT_TAX_RATE_PERCENT = Decimal("10")

CURRENCY_SYMBOLS = {
    "BS": "Bs",
    "USD": "$",
    "EUR": "€",
}

_HUNDRED = Decimal("100")
_ZERO = Decimal("0")


def convert(
    amount_in_base,
    target_currency: str,
    rates: Mapping[str, Decimal],
    *,
    base_currency: str,
) -> Decimal:
    """
    Convert an amount in the base currency to target_currency.

    Raises:
        InvalidRate: target currency unknown, or its rate is <= 0
    """
    amount = to_decimal(amount_in_base, field="amount")
    code = (target_currency or "").strip().upper()

    if code == base_currency.upper():
        return amount

    if code not in rates:
        raise InvalidRate(
            f"No exchange rate configured for {code or '(blank)'}",
            details={"currency": code, "known_currencies": sorted(rates)},
        )

    rate = to_decimal(rates[code], field="rate")
    if rate <= 0:
        raise InvalidRate(
            f"Exchange rate for {code} must be greater than zero",
            details={"currency": code, "rate": str(rate)},
        )

    return amount / rate


def apply_line_adjustments(selling_price, discount_percent, apply_discount: bool) -> Decimal:
    """
    Effective unit price of a line.

    The percent is assumed already clamped to [0, 100] at input time.
    """
    price = to_decimal(selling_price, field="selling_price")
    percent = to_decimal(discount_percent or 0, field="discount_percent")
    if not apply_discount or percent <= 0:
        return price
    return price * (1 - percent / _HUNDRED)


def line_tax(
    effective_price,
    quantity,
    includes_tax: bool,
    tax_rate_percent=DEFAULT_TAX_RATE_PERCENT,
) -> Decimal:
    """Tax owed on a line: rate% of effective_price * quantity, or 0 when untaxed."""
    if not includes_tax:
        return _ZERO
    price = to_decimal(effective_price, field="effective_price")
    qty = to_decimal(quantity, field="quantity")
    rate = to_decimal(tax_rate_percent, field="tax_rate_percent")
    return price * qty * rate / _HUNDRED


def to_cents(amount) -> int:
    """Round a Decimal amount of cents to a whole number of cents (half-up)."""
    return int(round_half_up(to_decimal(amount, field="amount")))


def format_price(
    amount_cents: int,
    currency: str,
    rates: Mapping[str, Decimal],
    *,
    base_currency: str,
) -> str:
    """Display string for a base-currency amount shown in `currency` ("$ 1.10")."""
    code = (currency or "").strip().upper()
    converted = convert(Decimal(amount_cents) / _HUNDRED, code, rates, base_currency=base_currency)
    symbol = CURRENCY_SYMBOLS.get(code, code)
    return f"{symbol} {round_half_up(converted, Decimal('0.01')):,.2f}"
