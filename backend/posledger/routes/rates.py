# Overview: Flask API routes for exchange rates; parses input and returns JSON responses.

# backend/posledger/routes/rates.py
"""
Exchange rate routes.

Rates are base-currency units per ONE unit of the secondary currency.
Reading and converting is open to any operator; changing rates requires an
elevated operator.
"""
from decimal import Decimal

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import LedgerError, ValidationError
from ..services import rates_service
from ..services.pricing import convert, format_price
from ..decimal_utils import round_half_up, to_decimal
from ..decorators import require_operator, require_elevated


rates_bp = Blueprint("rates", __name__, url_prefix="/api/rates")


def _rates_response(rates):
    return {
        "base_currency": rates_service.base_currency(),
        "rates": rates_service.rates_to_dict(rates),
    }


@rates_bp.get("")
def list_rates_route():
    """Current rate table."""
    return jsonify(_rates_response(rates_service.get_rates())), 200


@rates_bp.put("")
@require_operator
@require_elevated
def update_rates_route():
    """
    Set rates.

    Body:
    - {"rates": {"USD": "36.5", ...}} replaces the whole table
    - {"currency": "USD", "rate": "37"} sets one rate
    """
    payload = request.get_json(silent=True) or {}

    try:
        if "rates" in payload:
            rates = rates_service.replace_rates(payload["rates"], user=g.operator_id)
        elif "currency" in payload:
            rates = rates_service.set_rate(payload.get("currency"), payload.get("rate"), user=g.operator_id)
        else:
            raise ValidationError("Provide either rates or currency and rate")
        return jsonify(_rates_response(rates)), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update exchange rates")
        return jsonify({"error": "Internal server error"}), 500


@rates_bp.get("/convert")
def convert_route():
    """
    Convert a base-currency amount.

    Query params:
    - amount_cents: int (required) - amount in base-currency cents
    - currency: str (required) - target currency code
    """
    amount_cents = request.args.get("amount_cents", type=int)
    currency = (request.args.get("currency") or "").strip().upper()

    try:
        if amount_cents is None:
            raise ValidationError("amount_cents is required", details={"field": "amount_cents"})
        if not currency:
            raise ValidationError("currency is required", details={"field": "currency"})

        rates = rates_service.get_rates()
        base = rates_service.base_currency()
        amount = to_decimal(amount_cents, field="amount_cents") / 100
        converted = convert(amount, currency, rates, base_currency=base)

        return jsonify({
            "amount_cents": amount_cents,
            "base_currency": base,
            "currency": currency,
            "converted": str(round_half_up(converted, Decimal("0.01"))),
            "display": format_price(amount_cents, currency, rates, base_currency=base),
        }), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to convert amount")
        return jsonify({"error": "Internal server error"}), 500
