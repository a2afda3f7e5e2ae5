# Overview: Checkout orchestration; payment state machine and the atomic sale commit.

"""
Checkout Orchestrator

WHY: Moving a cart into the ledger touches three things at once: stock
quantities, the transaction ledger and the cart itself. They must land
together or not at all.

STATE MACHINE (derived, never stored):
- OPEN: cart has no pending payments
- COLLECTING_PAYMENT: payments recorded, remaining_due > 0
- SETTLED: remaining_due <= 0 and the sale has been committed

COMMIT RULES:
- Crossing remaining_due <= 0 commits immediately. Change due is reported
  alongside the committed transaction; acknowledging it is a UI concern.
- The commit is ONE database transaction: every stock decrement, the
  transaction append and the cart clear. Any failure rolls all of it back
  and the cart is left exactly as it was.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..models import Cart, PendingPayment, Transaction
from ..errors import ValidationError
from posledger.time_utils import utcnow
from .cart_service import (
    CartTotals,
    _clear_cart_inner,
    _clear_payments_inner,
    compute_totals,
    get_cart,
)
from .concurrency import run_atomic
from .inventory_service import _adjust_quantity_inner
from .ledger_service import record_transaction


STATE_OPEN = "OPEN"
STATE_COLLECTING_PAYMENT = "COLLECTING_PAYMENT"
STATE_SETTLED = "SETTLED"


@dataclass(frozen=True)
class CheckoutResult:
    state: str
    totals: CartTotals
    transaction: Transaction | None = None

    @property
    def remaining_due_cents(self) -> int:
        return max(self.totals.remaining_due_cents, 0)

    @property
    def change_due_cents(self) -> int:
        return self.totals.change_due_cents

    def to_dict(self) -> dict:
        return {
            "state": self.state,
            "totals": self.totals.to_dict(),
            "remaining_due_cents": self.remaining_due_cents,
            "change_due_cents": self.change_due_cents,
            "transaction": self.transaction.to_dict(include_images=False) if self.transaction else None,
        }


def _require_user(user) -> str:
    if user is None or not str(user).strip():
        raise ValidationError("Acting user is required to take payments")
    return str(user).strip()


def _require_lines(cart: Cart) -> None:
    if not cart.lines:
        raise ValidationError("Cart is empty", details={"cart_id": cart.id})


def checkout_state(cart: Cart) -> str:
    """Current state of a cart that has not been committed."""
    if not cart.payments:
        return STATE_OPEN
    return STATE_COLLECTING_PAYMENT


def _commit_sale_inner(cart: Cart, user: str, totals: CartTotals) -> Transaction:
    """Decrement stock, append the transaction and clear the cart, without committing."""
    lines = []
    for line in cart.lines:
        qty = Decimal(line.requested_quantity)
        _adjust_quantity_inner(
            item_id=line.item_id,
            delta=-qty,
            user=user,
            reason="sale",
        )
        lines.append({
            "item_id": line.item_id,
            "name": line.name,
            "unit_price_cents": line.selling_price_cents,
            "quantity": qty,
            "discount_applied": line.apply_discount,
            "discount_percent": line.discount_percent,
            "includes_tax": line.includes_tax,
        })

    payments = [p.to_dict() for p in cart.payments]

    txn = record_transaction(
        user_id=user,
        lines=lines,
        subtotal_cents=totals.subtotal_cents,
        tax_cents=totals.tax_cents,
        total_cents=totals.total_cents,
        payments=payments,
        amount_paid_cents=totals.amount_paid_cents,
        change_due_cents=totals.change_due_cents,
        notes=cart.notes,
        commit=False,
    )

    _clear_cart_inner(cart)
    return txn


def _log_commit(txn: Transaction) -> None:
    current_app.logger.info(
        "Sale committed: transaction %s by %s total_cents=%s change_due_cents=%s",
        txn.id, txn.user_id, txn.total_cents, txn.change_due_cents,
    )


def add_payment(cart_id: str, method: str, amount_cents, user: str) -> CheckoutResult:
    """
    Record one tender against the cart and settle when it covers the total.

    remaining > 0 keeps collecting. remaining <= 0 commits the sale in the
    same unit as the payment, so a failed commit also drops the payment.

    Raises:
        ValidationError: non-positive amount, blank method, empty cart
        NotFound: unknown cart
        PersistenceFailure: the commit could not be written
    """
    user = _require_user(user)
    method = (method or "").strip() if isinstance(method, str) else ""
    if not method:
        raise ValidationError("Payment method is required", details={"field": "method"})
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise ValidationError("amount_cents must be an integer", details={"field": "amount_cents"})
    if amount_cents <= 0:
        raise ValidationError(
            "Payment amount must be greater than zero",
            details={"field": "amount_cents", "value": amount_cents},
        )

    def _op():
        cart = get_cart(cart_id)
        _require_lines(cart)

        cart.payments.append(
            PendingPayment(method=method, amount_cents=amount_cents, created_at=utcnow())
        )
        db.session.flush()

        totals = compute_totals(cart)
        if totals.remaining_due_cents > 0:
            return CheckoutResult(state=STATE_COLLECTING_PAYMENT, totals=totals)

        txn = _commit_sale_inner(cart, user, totals)
        return CheckoutResult(state=STATE_SETTLED, totals=totals, transaction=txn)

    result = run_atomic(_op, action="payment")
    if result.transaction is not None:
        _log_commit(result.transaction)
    return result


def commit_sale(cart_id: str, user: str) -> CheckoutResult:
    """
    Commit a fully paid cart.

    Only needed when the total is already covered without a further payment
    (a zero-total cart, or a retry after a failed commit).
    """
    user = _require_user(user)

    def _op():
        cart = get_cart(cart_id)
        _require_lines(cart)
        totals = compute_totals(cart)
        if totals.remaining_due_cents > 0:
            raise ValidationError(
                "Cart is not fully paid",
                details={
                    "cart_id": cart.id,
                    "total_cents": totals.total_cents,
                    "remaining_due_cents": totals.remaining_due_cents,
                },
            )
        txn = _commit_sale_inner(cart, user, totals)
        return CheckoutResult(state=STATE_SETTLED, totals=totals, transaction=txn)

    result = run_atomic(_op, action="sale")
    _log_commit(result.transaction)
    return result


def cancel_checkout(cart_id: str) -> Cart:
    """Abandon payment collection: drop pending payments and notes, keep the lines."""
    def _op():
        cart = get_cart(cart_id)
        _clear_payments_inner(cart)
        db.session.flush()
        return cart

    return run_atomic(_op, action="checkout cancel")


def discard_cart(cart_id: str) -> None:
    """Throw away the whole sale-in-progress and delete the cart."""
    def _op():
        cart = get_cart(cart_id)
        db.session.delete(cart)

    run_atomic(_op, action="cart discard")
