# Overview: Flask API routes for stock items; parses input and returns JSON responses.

# backend/posledger/routes/items.py
"""
Stock item routes.

SECURITY:
- Reads are open to any identified operator.
- Create, update and delete require an elevated operator; the operator id
  is recorded as the acting user in the audit history.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..errors import LedgerError
from ..services import inventory_service
from ..decorators import require_operator, require_elevated


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.get("")
@require_operator
def list_items_route():
    """
    List or search stock items.

    Query params:
    - q: str (optional) - case-insensitive substring
    - field: all | name | barcode (default all)
    """
    term = request.args.get("q")
    field = request.args.get("field", "all")

    try:
        items = inventory_service.search_items(term, field)
        return jsonify({"items": [i.to_dict() for i in items]}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@items_bp.get("/summary")
@require_operator
def inventory_summary_route():
    """Dashboard figures: counts, valuation and low stock."""
    return jsonify(inventory_service.get_inventory_summary()), 200


@items_bp.post("")
@require_operator
@require_elevated
def create_item_route():
    payload = request.get_json(silent=True) or {}

    try:
        item = inventory_service.create_item(payload, g.operator_id)
        return jsonify({"item": item.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create stock item")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.get("/<item_id>")
@require_operator
def get_item_route(item_id: str):
    try:
        item = inventory_service.get_item(item_id)
        return jsonify({"item": item.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@items_bp.put("/<item_id>")
@require_operator
@require_elevated
def update_item_route(item_id: str):
    """
    Update a stock item.

    Body: any of the item's writable fields, plus optional "notes" which
    are recorded in the audit history.
    """
    payload = dict(request.get_json(silent=True) or {})
    notes = payload.pop("notes", None)

    try:
        item = inventory_service.update_item(item_id, payload, g.operator_id, notes=notes)
        return jsonify({"item": item.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update stock item")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.delete("/<item_id>")
@require_operator
@require_elevated
def delete_item_route(item_id: str):
    """Hard delete. Idempotent: deleting an unknown id still answers 200."""
    try:
        deleted = inventory_service.delete_item(item_id, g.operator_id)
        return jsonify({"ok": True, "deleted": deleted}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete stock item")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.get("/<item_id>/history")
@require_operator
def item_history_route(item_id: str):
    try:
        history = inventory_service.get_history(item_id)
        return jsonify({"item_id": item_id, "history": [h.to_dict() for h in history]}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
