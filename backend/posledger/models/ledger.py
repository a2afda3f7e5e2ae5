from __future__ import annotations

import uuid

from ..extensions import db
from posledger.time_utils import to_utc_z
from posledger.decimal_utils import decimal_str


def _new_id() -> str:
    return uuid.uuid4().hex


class Transaction(db.Model):
    """
    Committed sale (ledger of record).

    subtotal/tax/total are computed once at commit and never recomputed,
    not even after returns: returns are tracked per line as
    quantity_returned. The only post-commit amendments are
    TransactionLine.quantity_returned and the append-only images list.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_user_occurred", "user_id", "occurred_at"),
    )

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    user_id = db.Column(db.String(128), nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    # [{"method", "amount_cents", "timestamp"}, ...]
    payments = db.Column(db.JSON, nullable=False, default=list)
    amount_paid_cents = db.Column(db.Integer, nullable=False)
    change_due_cents = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.Text, nullable=False, default="")
    # Base64 data URIs or external URIs, append-only
    images = db.Column(db.JSON, nullable=False, default=list)

    lines = db.relationship(
        "TransactionLine",
        back_populates="transaction",
        order_by="TransactionLine.id",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} total_cents={self.total_cents}>"

    def to_dict(self, *, include_images: bool = True) -> dict:
        data = {
            "id": self.id,
            "occurred_at": to_utc_z(self.occurred_at),
            "user_id": self.user_id,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "payments": list(self.payments or []),
            "amount_paid_cents": self.amount_paid_cents,
            "change_due_cents": self.change_due_cents,
            "notes": self.notes,
            "image_count": len(self.images or []),
            "lines": [line.to_dict() for line in self.lines],
        }
        if include_images:
            data["images"] = list(self.images or [])
        return data


class TransactionLine(db.Model):
    """Item sold on a transaction, frozen at commit except quantity_returned."""
    __tablename__ = "transaction_lines"
    __table_args__ = (
        db.CheckConstraint(
            "quantity_returned >= 0 AND quantity_returned <= quantity",
            name="ck_transaction_lines_returned_bounds",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(32), db.ForeignKey("transactions.id"), nullable=False, index=True)

    item_id = db.Column(db.String(32), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Numeric(18, 3), nullable=False)
    quantity_returned = db.Column(db.Numeric(18, 3), nullable=False, default=0)

    discount_applied = db.Column(db.Boolean, nullable=False, default=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    includes_tax = db.Column(db.Boolean, nullable=False, default=False)

    transaction = db.relationship("Transaction", back_populates="lines")

    @property
    def returnable_quantity(self):
        return self.quantity - self.quantity_returned

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "item_id": self.item_id,
            "name": self.name,
            "unit_price_cents": self.unit_price_cents,
            "quantity": decimal_str(self.quantity),
            "quantity_returned": decimal_str(self.quantity_returned),
            "discount_applied": self.discount_applied,
            "discount_percent": decimal_str(self.discount_percent),
            "includes_tax": self.includes_tax,
        }
