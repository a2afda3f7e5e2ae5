# Overview: Flask API routes for the transaction ledger; returns and receipt images.

# backend/posledger/routes/transactions.py
"""
Transaction ledger routes.

Transactions are read-only apart from returns and receipt images. Listing
omits image payloads (image_count only); fetch one transaction for them.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..errors import LedgerError, ValidationError
from ..services import ledger_service
from ..decorators import require_operator


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_operator
def list_transactions_route():
    """
    List transactions, newest first.

    Query params:
    - user_id: str (optional) - only this operator's sales
    - q: str (optional) - transaction id or item name substring
    """
    user_id = request.args.get("user_id")
    txns = ledger_service.list_transactions(user_id=user_id, search=request.args.get("q"))
    return jsonify({"transactions": [t.to_dict(include_images=False) for t in txns]}), 200


@transactions_bp.get("/<transaction_id>")
@require_operator
def get_transaction_route(transaction_id: str):
    try:
        txn = ledger_service.get_transaction(transaction_id)
        return jsonify({"transaction": txn.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@transactions_bp.post("/<transaction_id>/returns")
@require_operator
def return_item_route(transaction_id: str):
    """
    Return part of a sold line to stock.

    Body: {"line_id": int, "quantity": number}
    """
    data = request.get_json(silent=True) or {}

    try:
        line_id = data.get("line_id")
        if isinstance(line_id, bool) or not isinstance(line_id, int):
            raise ValidationError("line_id must be an integer", details={"field": "line_id"})
        if data.get("quantity") is None:
            raise ValidationError("quantity is required", details={"field": "quantity"})

        line = ledger_service.return_item(transaction_id, line_id, data["quantity"], g.operator_id)
        return jsonify({"line": line.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to process return")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<transaction_id>/images")
@require_operator
def attach_image_route(transaction_id: str):
    """
    Attach a receipt image.

    Body: {"image": str} - a base64 data URI or an external URI.
    Returns 413 above the configured size limit.
    """
    data = request.get_json(silent=True) or {}

    try:
        txn = ledger_service.attach_image(transaction_id, data.get("image"))
        return jsonify({"transaction_id": txn.id, "image_count": len(txn.images or [])}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to attach receipt image")
        return jsonify({"error": "Internal server error"}), 500
