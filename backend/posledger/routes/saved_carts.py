# Overview: Flask API routes for parked carts; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..errors import LedgerError, ValidationError
from ..services import cart_service, saved_cart_service
from ..decorators import require_operator


saved_carts_bp = Blueprint("saved_carts", __name__, url_prefix="/api/saved-carts")


@saved_carts_bp.get("")
@require_operator
def list_saved_carts_route():
    saved = saved_cart_service.list_saved_carts()
    return jsonify({"saved_carts": [s.to_dict() for s in saved]}), 200


@saved_carts_bp.post("/<saved_id>/load")
@require_operator
def load_saved_cart_route(saved_id: str):
    """
    Restore a saved cart into a live cart.

    Body: {"cart_id": str}. The cart's current contents are replaced.
    """
    data = request.get_json(silent=True) or {}

    try:
        cart_id = data.get("cart_id")
        if not cart_id:
            raise ValidationError("cart_id is required", details={"field": "cart_id"})
        cart = saved_cart_service.load_cart(saved_id, cart_id)
        return jsonify({"cart": cart_service.cart_summary(cart)}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load saved cart")
        return jsonify({"error": "Internal server error"}), 500


@saved_carts_bp.delete("/<saved_id>")
@require_operator
def delete_saved_cart_route(saved_id: str):
    try:
        deleted = saved_cart_service.delete_saved_cart(saved_id)
        return jsonify({"ok": True, "deleted": deleted}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete saved cart")
        return jsonify({"error": "Internal server error"}), 500
