# Overview: Flask API routes for the sale-in-progress; cart lines, payments and checkout.

# backend/posledger/routes/carts.py
"""
Cart and checkout routes.

Every response that returns a cart includes its derived totals, so the
front end never does money arithmetic of its own.

Checkout flow:
- POST /payments adds a tender; once the total is covered the sale commits
  in the same request and the response carries the transaction.
- POST /checkout commits a cart that is already covered.
- POST /cancel drops pending payments and notes, keeping the lines.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..errors import LedgerError, ValidationError
from ..services import cart_service, checkout_service, saved_cart_service
from ..decorators import require_operator


carts_bp = Blueprint("carts", __name__, url_prefix="/api/carts")


def _cart_response(cart_id: str, status: int = 200):
    cart = cart_service.get_cart(cart_id)
    body = cart_service.cart_summary(cart)
    body["state"] = checkout_service.checkout_state(cart)
    return jsonify({"cart": body}), status


@carts_bp.post("")
@require_operator
def create_cart_route():
    try:
        cart = cart_service.create_cart(g.operator_id)
        return _cart_response(cart.id, 201)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create cart")
        return jsonify({"error": "Internal server error"}), 500


@carts_bp.get("/<cart_id>")
@require_operator
def get_cart_route(cart_id: str):
    try:
        return _cart_response(cart_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@carts_bp.delete("/<cart_id>")
@require_operator
def discard_cart_route(cart_id: str):
    try:
        checkout_service.discard_cart(cart_id)
        return jsonify({"ok": True}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to discard cart")
        return jsonify({"error": "Internal server error"}), 500


@carts_bp.post("/<cart_id>/lines")
@require_operator
def add_line_route(cart_id: str):
    """
    Add an item to the cart.

    Body: {"item_id": str, "quantity": number (default 1)}

    Returns 409 with item name, requested and available quantity when stock
    would be exceeded.
    """
    data = request.get_json(silent=True) or {}

    try:
        item_id = data.get("item_id")
        if not item_id:
            raise ValidationError("item_id is required", details={"field": "item_id"})
        cart_service.add_line(cart_id, item_id, data.get("quantity", 1))
        return _cart_response(cart_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add cart line")
        return jsonify({"error": "Internal server error"}), 500


@carts_bp.patch("/<cart_id>/lines/<item_id>")
@require_operator
def set_line_quantity_route(cart_id: str, item_id: str):
    """Body: {"quantity": number}. Zero or less removes the line."""
    data = request.get_json(silent=True) or {}

    try:
        if data.get("quantity") is None:
            raise ValidationError("quantity is required", details={"field": "quantity"})
        cart_service.set_line_quantity(cart_id, item_id, data["quantity"])
        return _cart_response(cart_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update cart line")
        return jsonify({"error": "Internal server error"}), 500


@carts_bp.delete("/<cart_id>/lines/<item_id>")
@require_operator
def remove_line_route(cart_id: str, item_id: str):
    try:
        cart_service.remove_line(cart_id, item_id)
        return _cart_response(cart_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to remove cart line")
        return jsonify({"error": "Internal server error"}), 500


@carts_bp.post("/<cart_id>/lines/<item_id>/discount")
@require_operator
def toggle_discount_route(cart_id: str, item_id: str):
    """Body: {"apply": bool}"""
    data = request.get_json(silent=True) or {}

    try:
        apply = data.get("apply")
        if not isinstance(apply, bool):
            raise ValidationError("apply must be a boolean", details={"field": "apply"})
        cart_service.toggle_line_discount(cart_id, item_id, apply)
        return _cart_response(cart_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to toggle line discount")
        return jsonify({"error": "Internal server error"}), 500


@carts_bp.put("/<cart_id>/notes")
@require_operator
def set_notes_route(cart_id: str):
    data = request.get_json(silent=True) or {}

    try:
        cart_service.set_notes(cart_id, data.get("notes"))
        return _cart_response(cart_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to set cart notes")
        return jsonify({"error": "Internal server error"}), 500


@carts_bp.post("/<cart_id>/payments")
@require_operator
def add_payment_route(cart_id: str):
    """
    Add a tender.

    Body: {"method": str, "amount_cents": int}

    Returns the checkout result: state, totals, remaining and change due,
    and the committed transaction once SETTLED.
    """
    data = request.get_json(silent=True) or {}

    try:
        result = checkout_service.add_payment(
            cart_id,
            data.get("method"),
            data.get("amount_cents"),
            g.operator_id,
        )
        status = 201 if result.transaction is not None else 200
        return jsonify({"checkout": result.to_dict()}), status
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add payment")
        return jsonify({"error": "Internal server error"}), 500


@carts_bp.post("/<cart_id>/checkout")
@require_operator
def commit_sale_route(cart_id: str):
    try:
        result = checkout_service.commit_sale(cart_id, g.operator_id)
        return jsonify({"checkout": result.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to commit sale")
        return jsonify({"error": "Internal server error"}), 500


@carts_bp.post("/<cart_id>/cancel")
@require_operator
def cancel_checkout_route(cart_id: str):
    try:
        checkout_service.cancel_checkout(cart_id)
        return _cart_response(cart_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel checkout")
        return jsonify({"error": "Internal server error"}), 500


@carts_bp.post("/<cart_id>/save")
@require_operator
def save_cart_route(cart_id: str):
    """Body: {"name": str (optional)}. Empties the live cart."""
    data = request.get_json(silent=True) or {}

    try:
        saved = saved_cart_service.save_cart(cart_id, data.get("name"))
        return jsonify({"saved_cart": saved.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to save cart")
        return jsonify({"error": "Internal server error"}), 500
