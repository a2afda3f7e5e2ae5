# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/posledger/services/inventory_service.py

"""
Inventory Store Invariants (authoritative)

- StockItem.quantity is a stored value (not ledger-derived) and is never < 0.
- Every change to quantity appends exactly ONE AuditRecord in the same DB
  transaction, carrying previous_quantity and new_quantity.
- A note-only update appends a record without quantity fields.
- An update that changes neither quantity nor notes appends nothing.
- History is append-only; the only way it disappears is a hard delete of
  the owning item.
- Sales that would drive stock negative are clamped to zero (best-effort
  oversell policy), never rejected.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import StockItem, AuditRecord
from ..models.inventory import (
    ACTION_CREATE,
    ACTION_UPDATE,
    ACTION_SALE,
    ACTION_RETURN,
    UNIT_ITEM,
    UNIT_WEIGHT,
    UNIT_VOLUME,
)
from ..decimal_utils import decimal_str, to_decimal
from ..errors import NotFound, ValidationError
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_stock_item
from posledger.time_utils import utcnow
from .concurrency import lock_for_update, run_atomic
from .pricing import to_cents


STOCK_ITEM_FIELDS = {
    "name",
    "barcode",
    "buying_price_cents",
    "selling_price_cents",
    "quantity",
    "unit",
    "includes_tax",
    "currency",
    "discount_percent",
}

STOCK_ITEM_POLICY = ModelValidationPolicy(
    writable_fields=STOCK_ITEM_FIELDS,
    required_on_create={"name", "barcode", "buying_price_cents", "selling_price_cents", "quantity"},
)

SEARCH_FIELDS = ("all", "name", "barcode")

ADJUST_REASONS = {"sale": ACTION_SALE, "return": ACTION_RETURN}


def _fmt(qty: Decimal) -> str:
    return decimal_str(qty)


def _append_audit(
    item: StockItem,
    *,
    action: str,
    user: str,
    details: str | None,
    previous_quantity: Decimal | None = None,
    new_quantity: Decimal | None = None,
) -> AuditRecord:
    record = AuditRecord(
        item_id=item.id,
        occurred_at=utcnow(),
        action=action,
        details=details,
        user=user,
        previous_quantity=previous_quantity,
        new_quantity=new_quantity,
    )
    item.history.append(record)
    db.session.flush()
    return record


def _require_user(user) -> str:
    if user is None or not str(user).strip():
        raise ValidationError("Acting user is required for audit attribution")
    return str(user).strip()


def _get_item(item_id: str, *, lock: bool = False) -> StockItem:
    query = db.session.query(StockItem).filter_by(id=item_id)
    if lock:
        query = lock_for_update(query)
    item = query.first()
    if item is None:
        raise NotFound(f"Stock item {item_id} not found", details={"item_id": item_id})
    return item


def get_item(item_id: str) -> StockItem:
    return _get_item(item_id)


def find_item(item_id: str) -> StockItem | None:
    return db.session.get(StockItem, item_id)


def list_items() -> list[StockItem]:
    return db.session.query(StockItem).order_by(StockItem.name.asc(), StockItem.id.asc()).all()


def search_items(term: str | None, field: str = "all") -> list[StockItem]:
    """
    Case-insensitive substring search by name, barcode, or both.

    A blank term returns every item.
    """
    if field not in SEARCH_FIELDS:
        raise ValidationError(
            f"field must be one of {', '.join(SEARCH_FIELDS)}",
            details={"field": field},
        )

    query = db.session.query(StockItem)
    needle = (term or "").strip().lower()
    if needle:
        pattern = f"%{needle}%"
        name_match = func.lower(StockItem.name).like(pattern)
        barcode_match = func.lower(StockItem.barcode).like(pattern)
        if field == "name":
            query = query.filter(name_match)
        elif field == "barcode":
            query = query.filter(barcode_match)
        else:
            query = query.filter(or_(name_match, barcode_match))

    return query.order_by(StockItem.name.asc(), StockItem.id.asc()).all()


def get_history(item_id: str) -> list[AuditRecord]:
    item = _get_item(item_id)
    return list(item.history)


def create_item(data: dict, user: str) -> StockItem:
    """
    Create a stock item and its initial `create` audit record.

    Requires name, barcode, both prices and quantity >= 0. The create record
    reads as a move from 0 to the opening quantity.
    """
    user = _require_user(user)
    patch = validate_payload(model=StockItem, payload=data, policy=STOCK_ITEM_POLICY, partial=False)
    patch.setdefault("unit", UNIT_ITEM)
    patch.setdefault("includes_tax", False)
    patch.setdefault("discount_percent", Decimal("0"))
    if not patch.get("currency"):
        patch["currency"] = current_app.config["BASE_CURRENCY"].upper()
    enforce_rules_stock_item(patch)

    def _op():
        item = StockItem(**patch)
        db.session.add(item)
        db.session.flush()
        _append_audit(
            item,
            action=ACTION_CREATE,
            user=user,
            details="Item created",
            previous_quantity=Decimal("0"),
            new_quantity=item.quantity,
        )
        return item

    return run_atomic(_op, action="stock item")


def update_item(item_id: str, data: dict, user: str, notes: str | None = None) -> StockItem:
    """
    Replace an item's mutable fields.

    Fields missing from `data` keep their current value. Appends an `update`
    audit record when quantity changes (with the delta and any notes), or a
    note-only record when quantity is unchanged but notes were given.
    """
    user = _require_user(user)
    patch = validate_payload(model=StockItem, payload=data, policy=STOCK_ITEM_POLICY, partial=True)
    notes = (notes or "").strip() or None

    def _op():
        item = _get_item(item_id, lock=True)

        merged = {field: getattr(item, field) for field in STOCK_ITEM_FIELDS}
        merged.update(patch)
        if not merged.get("currency"):
            merged["currency"] = current_app.config["BASE_CURRENCY"].upper()
        enforce_rules_stock_item(merged)

        previous = Decimal(item.quantity)
        new = Decimal(merged["quantity"])

        for field, value in merged.items():
            setattr(item, field, value)

        if previous != new:
            delta = new - previous
            sign = "+" if delta > 0 else ""
            details = f"Stock changed {_fmt(previous)} -> {_fmt(new)} ({sign}{_fmt(delta)})"
            if notes:
                details += f". Notes: {notes}"
            _append_audit(
                item,
                action=ACTION_UPDATE,
                user=user,
                details=details,
                previous_quantity=previous,
                new_quantity=new,
            )
        elif notes:
            _append_audit(item, action=ACTION_UPDATE, user=user, details=f"Update: {notes}")

        db.session.flush()
        return item

    return run_atomic(_op, action="stock item")


def _adjust_quantity_inner(
    *,
    item_id: str,
    delta: Decimal,
    user: str,
    reason: str,
    note: str | None = None,
) -> StockItem:
    """Core adjustment without commit. Called by checkout and returns inside their own unit."""
    if reason not in ADJUST_REASONS:
        raise ValidationError(
            f"reason must be one of {', '.join(sorted(ADJUST_REASONS))}",
            details={"reason": reason},
        )

    item = _get_item(item_id, lock=True)

    if item.unit == UNIT_ITEM and delta != delta.to_integral_value():
        raise ValidationError(
            f"{item.name} is sold by the item; quantity must be a whole number",
            details={"item_id": item.id, "name": item.name, "delta": str(delta)},
        )

    previous = Decimal(item.quantity)
    target = previous + delta
    new = target if target > 0 else Decimal("0")

    verb = "Sold" if reason == "sale" else "Returned"
    details = f"{verb} {_fmt(abs(delta))}"
    if note:
        details += f" ({note})"
    if target < 0:
        details += f"; stock clamped at 0 (short by {_fmt(-target)})"
        current_app.logger.warning(
            "Oversold %s: on hand %s, requested %s; stock clamped at 0",
            item.id, _fmt(previous), _fmt(abs(delta)),
        )

    item.quantity = new
    _append_audit(
        item,
        action=ADJUST_REASONS[reason],
        user=user,
        details=details,
        previous_quantity=previous,
        new_quantity=new,
    )
    return item


def adjust_quantity(
    item_id: str,
    delta,
    user: str,
    reason: str,
    *,
    note: str | None = None,
    commit: bool = True,
) -> StockItem:
    """
    Move stock by delta for a sale (negative) or return (positive).

    Never lets quantity go below zero: an oversell floors at 0 and the audit
    record says so. commit=False leaves the work in the caller's transaction.
    """
    user = _require_user(user)
    try:
        delta = to_decimal(delta, field="delta")
    except ValueError as e:
        raise ValidationError(str(e), details={"field": "delta"})

    def _op():
        return _adjust_quantity_inner(item_id=item_id, delta=delta, user=user, reason=reason, note=note)

    if not commit:
        return _op()
    return run_atomic(_op, action="stock adjustment")


def delete_item(item_id: str, user: str) -> bool:
    """
    Hard-delete an item together with its audit history.

    Idempotent: unknown ids are a no-op. Returns True when something was
    deleted.
    """
    user = _require_user(user)

    def _op():
        item = db.session.get(StockItem, item_id)
        if item is None:
            return False
        db.session.delete(item)
        return True

    deleted = run_atomic(_op, action="stock item deletion")
    if deleted:
        current_app.logger.info("Stock item %s deleted by %s (history removed)", item_id, user)
    return deleted


def get_inventory_summary() -> dict:
    """Dashboard figures: counts, units, valuation at cost and retail, low stock."""
    threshold = Decimal(current_app.config["LOW_STOCK_THRESHOLD"])
    items = list_items()

    units = sum((Decimal(i.quantity) for i in items), Decimal("0"))
    cost_cents = sum((Decimal(i.quantity) * i.buying_price_cents for i in items), Decimal("0"))
    retail_cents = sum((Decimal(i.quantity) * i.selling_price_cents for i in items), Decimal("0"))
    low_stock = [i for i in items if Decimal(i.quantity) <= threshold]

    return {
        "item_count": len(items),
        "units_on_hand": decimal_str(units),
        "inventory_value_cost_cents": to_cents(cost_cents),
        "inventory_value_retail_cents": to_cents(retail_cents),
        "low_stock_threshold": decimal_str(threshold),
        "low_stock": [
            {"id": i.id, "name": i.name, "quantity": decimal_str(i.quantity), "unit": i.unit}
            for i in low_stock
        ],
        "out_of_stock_count": sum(1 for i in items if Decimal(i.quantity) == 0),
    }


DEFAULT_ITEMS = [
    {
        "name": "Harina P.A.N.",
        "barcode": "7590001001001",
        "buying_price_cents": 90,
        "selling_price_cents": 110,
        "quantity": 50,
        "unit": UNIT_ITEM,
        "includes_tax": True,
        "discount_percent": 0,
    },
    {
        "name": "Arroz Primor",
        "barcode": "7590001001002",
        "buying_price_cents": 85,
        "selling_price_cents": 120,
        "quantity": 30,
        "unit": UNIT_WEIGHT,
        "includes_tax": False,
        "discount_percent": 5,
    },
    {
        "name": "Aceite Mazeite",
        "barcode": "7590001001003",
        "buying_price_cents": 250,
        "selling_price_cents": 350,
        "quantity": 15,
        "unit": UNIT_VOLUME,
        "includes_tax": True,
        "discount_percent": 0,
    },
]


def seed_default_items(user: str) -> list[StockItem]:
    """Create the starter catalogue when the store is empty. Idempotent."""
    if db.session.query(StockItem).count() > 0:
        return []
    return [create_item(dict(data), user) for data in DEFAULT_ITEMS]
