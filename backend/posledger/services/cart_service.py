# Overview: Sale-in-progress; cart lines, stock reservation checks and derived totals.

"""
Cart Service

WHY: The cart is the working selection for the sale being rung up. It is
persisted (write-through) so an open ticket survives a restart, but its
money figures are never stored: subtotal, tax, total, amount paid and
remaining due are derived from the current lines and payments on every read.

SNAPSHOT POLICY:
- A CartLine copies the item's name, price, discount percent and tax flag
  when first added. Later edits to the StockItem do not reach it.
- Quantity availability is always checked against the LIVE StockItem.

RESERVATION:
- A reservation is arithmetic only: reserved + requested <= on hand.
  Nothing is locked or decremented until checkout commits.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Cart, CartLine
from ..models.inventory import UNIT_ITEM
from ..decimal_utils import decimal_str, to_decimal
from ..errors import InsufficientStock, NotFound, ValidationError
from .concurrency import run_atomic
from .inventory_service import find_item
from .pricing import apply_line_adjustments, line_tax, to_cents


@dataclass(frozen=True)
class CartTotals:
    subtotal_cents: int
    tax_cents: int
    total_cents: int
    amount_paid_cents: int
    remaining_due_cents: int

    @property
    def change_due_cents(self) -> int:
        """Change owed to the customer when overpaid, else 0."""
        return -self.remaining_due_cents if self.remaining_due_cents < 0 else 0

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "remaining_due_cents": self.remaining_due_cents,
            "change_due_cents": self.change_due_cents,
        }


def _quantity(value, *, field: str = "quantity") -> Decimal:
    try:
        return to_decimal(value, field=field)
    except ValueError as e:
        raise ValidationError(str(e), details={"field": field})


def _live_item(item_id: str):
    item = find_item(item_id)
    if item is None:
        raise NotFound(f"Stock item {item_id} not found", details={"item_id": item_id})
    return item


def _check_whole_units(item, quantity: Decimal) -> None:
    if item.unit == UNIT_ITEM and quantity != quantity.to_integral_value():
        raise ValidationError(
            f"{item.name} is sold by the item; quantity must be a whole number",
            details={"item_id": item.id, "name": item.name, "requested": decimal_str(quantity)},
        )


def _find_line(cart: Cart, item_id: str) -> CartLine | None:
    for line in cart.lines:
        if line.item_id == item_id:
            return line
    return None


def _require_line(cart: Cart, item_id: str) -> CartLine:
    line = _find_line(cart, item_id)
    if line is None:
        raise NotFound(
            f"Item {item_id} is not in the cart",
            details={"cart_id": cart.id, "item_id": item_id},
        )
    return line


def create_cart(user: str | None = None) -> Cart:
    """Create an empty cart."""
    def _op():
        cart = Cart(notes="", created_by=user)
        db.session.add(cart)
        db.session.flush()
        return cart

    return run_atomic(_op, action="cart")


def get_cart(cart_id: str) -> Cart:
    cart = db.session.get(Cart, cart_id)
    if cart is None:
        raise NotFound(f"Cart {cart_id} not found", details={"cart_id": cart_id})
    return cart


def reserved_quantity(cart: Cart, item_id: str) -> Decimal:
    line = _find_line(cart, item_id)
    return Decimal(line.requested_quantity) if line else Decimal("0")


def add_line(cart_id: str, item_id: str, quantity) -> CartLine:
    """
    Add quantity of an item to the cart.

    Increments an existing line or appends a new snapshot line with the
    discount not applied.

    Raises:
        InsufficientStock: quantity <= 0, or reserved + quantity > on hand
        NotFound: unknown cart or item
    """
    qty = _quantity(quantity)

    def _op():
        cart = get_cart(cart_id)
        item = _live_item(item_id)
        reserved = reserved_quantity(cart, item_id)
        available = Decimal(item.quantity)

        if qty <= 0 or reserved + qty > available:
            raise InsufficientStock(
                f"Not enough {item.name} in stock: requested {decimal_str(reserved + qty)}, "
                f"available {decimal_str(available)}",
                details={
                    "item_id": item.id,
                    "name": item.name,
                    "requested": decimal_str(qty),
                    "already_in_cart": decimal_str(reserved),
                    "available": decimal_str(available),
                },
            )
        _check_whole_units(item, qty)

        line = _find_line(cart, item_id)
        if line is not None:
            line.requested_quantity = Decimal(line.requested_quantity) + qty
        else:
            line = CartLine(
                item_id=item.id,
                position=len(cart.lines),
                name=item.name,
                barcode=item.barcode,
                unit=item.unit,
                selling_price_cents=item.selling_price_cents,
                discount_percent=item.discount_percent,
                includes_tax=item.includes_tax,
                requested_quantity=qty,
                apply_discount=False,
            )
            cart.lines.append(line)
        db.session.flush()
        return line

    return run_atomic(_op, action="cart line")


def set_line_quantity(cart_id: str, item_id: str, quantity) -> CartLine | None:
    """
    Set a line's requested quantity.

    quantity <= 0 removes the line (returns None). More than the live stock
    raises InsufficientStock and leaves the line unchanged.
    """
    qty = _quantity(quantity)

    def _op():
        cart = get_cart(cart_id)
        line = _require_line(cart, item_id)

        if qty <= 0:
            cart.lines.remove(line)
            db.session.delete(line)
            db.session.flush()
            return None

        item = _live_item(item_id)
        available = Decimal(item.quantity)
        if qty > available:
            raise InsufficientStock(
                f"Not enough {item.name} in stock: requested {decimal_str(qty)}, "
                f"available {decimal_str(available)}",
                details={
                    "item_id": item.id,
                    "name": item.name,
                    "requested": decimal_str(qty),
                    "available": decimal_str(available),
                },
            )
        _check_whole_units(item, qty)

        line.requested_quantity = qty
        db.session.flush()
        return line

    return run_atomic(_op, action="cart line")


def remove_line(cart_id: str, item_id: str) -> None:
    """Remove a line; a no-op when the item is not in the cart."""
    def _op():
        cart = get_cart(cart_id)
        line = _find_line(cart, item_id)
        if line is not None:
            cart.lines.remove(line)
            db.session.delete(line)

    run_atomic(_op, action="cart line")


def toggle_line_discount(cart_id: str, item_id: str, apply: bool) -> CartLine:
    """Turn the per-line discount on or off. Totals follow on the next read."""
    def _op():
        cart = get_cart(cart_id)
        line = _require_line(cart, item_id)
        line.apply_discount = bool(apply)
        return line

    return run_atomic(_op, action="cart line")


def set_notes(cart_id: str, notes: str | None) -> Cart:
    def _op():
        cart = get_cart(cart_id)
        cart.notes = (notes or "").strip()
        return cart

    return run_atomic(_op, action="cart notes")


def _clear_payments_inner(cart: Cart) -> None:
    for payment in list(cart.payments):
        cart.payments.remove(payment)
        db.session.delete(payment)
    cart.notes = ""


def _clear_cart_inner(cart: Cart) -> None:
    for line in list(cart.lines):
        cart.lines.remove(line)
        db.session.delete(line)
    _clear_payments_inner(cart)
    db.session.flush()


def clear_cart(cart_id: str) -> Cart:
    """Drop lines, payments and notes."""
    def _op():
        cart = get_cart(cart_id)
        _clear_cart_inner(cart)
        return cart

    return run_atomic(_op, action="cart")


def effective_price(line: CartLine) -> Decimal:
    return apply_line_adjustments(line.selling_price_cents, line.discount_percent, line.apply_discount)


def compute_totals(cart: Cart, *, tax_rate_percent=None) -> CartTotals:
    """
    Derive the cart's money figures from its current lines and payments.

    subtotal = sum(effective price * qty); tax = sum(line tax);
    total = subtotal + tax; remaining = total - paid (negative = change owed).
    """
    if tax_rate_percent is None:
        tax_rate_percent = current_app.config["TAX_RATE_PERCENT"]

    subtotal = Decimal("0")
    tax = Decimal("0")
    for line in cart.lines:
        price = effective_price(line)
        qty = Decimal(line.requested_quantity)
        subtotal += price * qty
        tax += line_tax(price, qty, line.includes_tax, tax_rate_percent)

    subtotal_cents = to_cents(subtotal)
    tax_cents = to_cents(tax)
    total_cents = subtotal_cents + tax_cents
    paid_cents = sum(p.amount_cents for p in cart.payments)

    return CartTotals(
        subtotal_cents=subtotal_cents,
        tax_cents=tax_cents,
        total_cents=total_cents,
        amount_paid_cents=paid_cents,
        remaining_due_cents=total_cents - paid_cents,
    )


def cart_summary(cart: Cart) -> dict:
    totals = compute_totals(cart)
    return {
        "id": cart.id,
        "notes": cart.notes,
        "created_by": cart.created_by,
        "lines": [
            dict(line.to_dict(), effective_price_cents=to_cents(effective_price(line)))
            for line in cart.lines
        ],
        "payments": [p.to_dict() for p in cart.payments],
        "totals": totals.to_dict(),
    }
