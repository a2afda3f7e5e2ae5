from __future__ import annotations

import uuid

from ..extensions import db
from posledger.time_utils import to_utc_z
from posledger.decimal_utils import decimal_str


UNIT_ITEM = "item"
UNIT_WEIGHT = "weight"
UNIT_VOLUME = "volume"
VALID_UNITS = (UNIT_ITEM, UNIT_WEIGHT, UNIT_VOLUME)

ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_SALE = "sale"
ACTION_RETURN = "return"
ACTION_DELETE = "delete"
VALID_ACTIONS = (ACTION_CREATE, ACTION_UPDATE, ACTION_SALE, ACTION_RETURN, ACTION_DELETE)


def _new_id() -> str:
    return uuid.uuid4().hex


class StockItem(db.Model):
    """
    Stock-keeping unit.

    Prices are authoritative in cents of the base currency; other currencies
    are display-time conversions. quantity is Decimal so weight and volume
    units can hold fractional stock, while unit='item' is kept integral by
    the inventory service.

    INVARIANT: quantity >= 0, and every change to quantity appends exactly
    one AuditRecord carrying previous_quantity/new_quantity.
    """
    __tablename__ = "stock_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_stock_items_quantity_non_negative"),
        db.CheckConstraint(
            "discount_percent >= 0 AND discount_percent <= 100",
            name="ck_stock_items_discount_range",
        ),
        db.Index("ix_stock_items_name", "name"),
    )

    id = db.Column(db.String(32), primary_key=True, default=_new_id)

    name = db.Column(db.String(255), nullable=False)
    # Search key, not unique: the same barcode may be re-used for variants
    barcode = db.Column(db.String(128), nullable=False, index=True)

    buying_price_cents = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=False)

    quantity = db.Column(db.Numeric(18, 3), nullable=False, default=0)
    unit = db.Column(db.String(16), nullable=False, default=UNIT_ITEM)
    includes_tax = db.Column(db.Boolean, nullable=False, default=False)
    currency = db.Column(db.String(8), nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # Hard delete removes the trail with the item
    history = db.relationship(
        "AuditRecord",
        back_populates="item",
        order_by="AuditRecord.id",
        cascade="all, delete-orphan",
        lazy=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<StockItem id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self, *, include_history: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "barcode": self.barcode,
            "buying_price_cents": self.buying_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "quantity": decimal_str(self.quantity),
            "unit": self.unit,
            "includes_tax": self.includes_tax,
            "currency": self.currency,
            "discount_percent": decimal_str(self.discount_percent),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_history:
            data["history"] = [r.to_dict() for r in self.history]
        return data


class AuditRecord(db.Model):
    """
    Append-only audit entry for a StockItem.

    previous_quantity and new_quantity are either both set (quantity moved)
    or both null (note-only update). Rows are never updated.
    """
    __tablename__ = "audit_records"
    __table_args__ = (
        db.CheckConstraint(
            "(previous_quantity IS NULL AND new_quantity IS NULL) OR "
            "(previous_quantity IS NOT NULL AND new_quantity IS NOT NULL)",
            name="ck_audit_records_quantity_pair",
        ),
        db.Index("ix_audit_records_item_occurred", "item_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(
        db.String(32),
        db.ForeignKey("stock_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    action = db.Column(db.String(16), nullable=False)
    details = db.Column(db.Text, nullable=True)
    user = db.Column(db.String(128), nullable=False)

    previous_quantity = db.Column(db.Numeric(18, 3), nullable=True)
    new_quantity = db.Column(db.Numeric(18, 3), nullable=True)

    item = db.relationship("StockItem", back_populates="history")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "action": self.action,
            "details": self.details,
            "user": self.user,
            "previous_quantity": decimal_str(self.previous_quantity),
            "new_quantity": decimal_str(self.new_quantity),
        }
