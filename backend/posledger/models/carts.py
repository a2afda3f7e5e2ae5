from __future__ import annotations

import uuid

from ..extensions import db
from posledger.time_utils import to_utc_z
from posledger.decimal_utils import decimal_str


def _new_id() -> str:
    return uuid.uuid4().hex


class Cart(db.Model):
    """
    Sale-in-progress (a ticket).

    WHY persisted: write-through persistence means an open ticket survives a
    restart. Totals are never stored here; cart_service derives them from the
    current lines and payments on every read.
    """
    __tablename__ = "carts"

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    notes = db.Column(db.Text, nullable=False, default="")
    created_by = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    lines = db.relationship(
        "CartLine",
        back_populates="cart",
        order_by="CartLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    payments = db.relationship(
        "PendingPayment",
        back_populates="cart",
        order_by="PendingPayment.id",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Cart id={self.id} lines={len(self.lines)} payments={len(self.payments)}>"


class CartLine(db.Model):
    """
    Point-in-time copy of a StockItem plus the requested quantity.

    Price, discount percent and tax flag are frozen when the line is added;
    later edits to the StockItem do not reach a line already in the cart.
    Stock availability is always checked against the live item.
    """
    __tablename__ = "cart_lines"
    __table_args__ = (
        db.UniqueConstraint("cart_id", "item_id", name="uq_cart_lines_cart_item"),
        db.CheckConstraint("requested_quantity > 0", name="ck_cart_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.String(32), db.ForeignKey("carts.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    # Not a foreign key: the snapshot outlives edits and deletes of the item
    item_id = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(128), nullable=False)
    unit = db.Column(db.String(16), nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    includes_tax = db.Column(db.Boolean, nullable=False, default=False)

    requested_quantity = db.Column(db.Numeric(18, 3), nullable=False)
    apply_discount = db.Column(db.Boolean, nullable=False, default=False)

    cart = db.relationship("Cart", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "name": self.name,
            "barcode": self.barcode,
            "unit": self.unit,
            "selling_price_cents": self.selling_price_cents,
            "discount_percent": decimal_str(self.discount_percent),
            "includes_tax": self.includes_tax,
            "requested_quantity": decimal_str(self.requested_quantity),
            "apply_discount": self.apply_discount,
        }


class PendingPayment(db.Model):
    """One tender toward the open cart's total, in base-currency cents."""
    __tablename__ = "pending_payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_pending_payments_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.String(32), db.ForeignKey("carts.id"), nullable=False, index=True)

    method = db.Column(db.String(64), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    cart = db.relationship("Cart", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "amount_cents": self.amount_cents,
            "timestamp": to_utc_z(self.created_at),
        }


class SavedCart(db.Model):
    """
    Frozen snapshot of a cart's working set.

    Kept as plain JSON: saved carts are ephemeral working state, not part of
    the ledger of record.
    """
    __tablename__ = "saved_carts"

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    name = db.Column(db.String(255), nullable=False)
    saved_at = db.Column(db.DateTime(timezone=True), nullable=False)

    items = db.Column(db.JSON, nullable=False, default=list)
    payments = db.Column(db.JSON, nullable=False, default=list)
    notes = db.Column(db.Text, nullable=False, default="")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "saved_at": to_utc_z(self.saved_at),
            "items": list(self.items or []),
            "payments": list(self.payments or []),
            "notes": self.notes,
        }
