# Overview: Parked carts; save a sale-in-progress and restore it later.

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Cart, CartLine, PendingPayment, SavedCart
from ..errors import NotFound, ValidationError
from posledger.time_utils import utcnow, parse_iso_datetime
from .cart_service import _clear_cart_inner, get_cart
from .concurrency import run_atomic


def _default_name() -> str:
    return f"Cart - {db.session.query(SavedCart).count() + 1}"


def _payment_snapshot(payment: PendingPayment) -> dict:
    # Full precision so a reload restores the exact timestamp
    return {
        "method": payment.method,
        "amount_cents": payment.amount_cents,
        "timestamp": payment.created_at.isoformat() if payment.created_at else None,
    }


def list_saved_carts() -> list[SavedCart]:
    return db.session.query(SavedCart).order_by(SavedCart.saved_at.desc(), SavedCart.id.desc()).all()


def get_saved_cart(saved_id: str) -> SavedCart:
    saved = db.session.get(SavedCart, saved_id)
    if saved is None:
        raise NotFound(f"Saved cart {saved_id} not found", details={"saved_cart_id": saved_id})
    return saved


def save_cart(cart_id: str, name: str | None = None) -> SavedCart:
    """
    Park the cart's lines, payments and notes under a name and empty the
    live cart.

    Raises:
        ValidationError: the cart has no lines
    """
    def _op():
        cart = get_cart(cart_id)
        if not cart.lines:
            raise ValidationError("Cannot save an empty cart", details={"cart_id": cart.id})

        saved = SavedCart(
            name=(name or "").strip() or _default_name(),
            saved_at=utcnow(),
            items=[line.to_dict() for line in cart.lines],
            payments=[_payment_snapshot(p) for p in cart.payments],
            notes=cart.notes or "",
        )
        db.session.add(saved)
        _clear_cart_inner(cart)
        db.session.flush()
        return saved

    saved = run_atomic(_op, action="saved cart")
    current_app.logger.info("Cart %s saved as %r (%s)", cart_id, saved.name, saved.id)
    return saved


def load_cart(saved_id: str, cart_id: str) -> Cart:
    """
    Replace the cart's contents with a saved snapshot, order preserved.

    The snapshot is restored as-is: prices stay frozen and stock is not
    re-checked until more is added or the sale commits. The saved entry is
    kept until deleted.
    """
    def _op():
        saved = get_saved_cart(saved_id)
        cart = get_cart(cart_id)
        _clear_cart_inner(cart)

        for position, data in enumerate(saved.items or []):
            cart.lines.append(
                CartLine(
                    item_id=data["item_id"],
                    position=position,
                    name=data["name"],
                    barcode=data["barcode"],
                    unit=data["unit"],
                    selling_price_cents=data["selling_price_cents"],
                    discount_percent=Decimal(data["discount_percent"]),
                    includes_tax=data["includes_tax"],
                    requested_quantity=Decimal(data["requested_quantity"]),
                    apply_discount=data["apply_discount"],
                )
            )
        for data in saved.payments or []:
            cart.payments.append(
                PendingPayment(
                    method=data["method"],
                    amount_cents=data["amount_cents"],
                    created_at=parse_iso_datetime(data.get("timestamp"), field="timestamp") or utcnow(),
                )
            )
        cart.notes = saved.notes or ""
        db.session.flush()
        return cart

    return run_atomic(_op, action="cart load")


def delete_saved_cart(saved_id: str) -> bool:
    """Idempotent: returns False when nothing was there."""
    def _op():
        saved = db.session.get(SavedCart, saved_id)
        if saved is None:
            return False
        db.session.delete(saved)
        return True

    return run_atomic(_op, action="saved cart deletion")
