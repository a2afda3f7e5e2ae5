# Overview: Service-layer operations for reporting; sales figures per item and per operator.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ..extensions import db
from ..models import Transaction
from ..decimal_utils import decimal_str
from ..errors import ValidationError
from posledger.time_utils import parse_iso_datetime, to_utc_z
from .pricing import apply_line_adjustments, to_cents


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    start_dt = parse_iso_datetime(start, field="start")
    end_dt = parse_iso_datetime(end, field="end")
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start must not be after end", details={"start": start, "end": end})
    return start_dt, end_dt


def sales_report(*, start: str | None = None, end: str | None = None) -> dict:
    """
    Sales figures over committed transactions.

    Items: net quantity (sold minus returned) and revenue at the line's
    effective unit price, ranked by net quantity. Operators: frozen
    transaction totals and transaction count, ranked by revenue.
    """
    start_dt, end_dt = _parse_range(start, end)

    query = db.session.query(Transaction)
    if start_dt:
        query = query.filter(Transaction.occurred_at >= start_dt)
    if end_dt:
        query = query.filter(Transaction.occurred_at <= end_dt)
    transactions = query.order_by(Transaction.occurred_at.asc()).all()

    items: dict[str, dict] = {}
    users: dict[str, dict] = {}

    for txn in transactions:
        user = users.setdefault(txn.user_id, {"user_id": txn.user_id, "revenue_cents": 0, "transaction_count": 0})
        user["revenue_cents"] += txn.total_cents
        user["transaction_count"] += 1

        for line in txn.lines:
            net_qty = Decimal(line.quantity) - Decimal(line.quantity_returned)
            price = apply_line_adjustments(line.unit_price_cents, line.discount_percent, line.discount_applied)
            entry = items.setdefault(
                line.item_id,
                {"item_id": line.item_id, "name": line.name, "quantity": Decimal("0"), "revenue": Decimal("0")},
            )
            entry["quantity"] += net_qty
            entry["revenue"] += price * net_qty

    item_rows = sorted(items.values(), key=lambda r: (-r["quantity"], r["name"]))
    item_rows = [
        {
            "item_id": r["item_id"],
            "name": r["name"],
            "quantity": decimal_str(r["quantity"]),
            "revenue_cents": to_cents(r["revenue"]),
        }
        for r in item_rows
    ]
    user_rows = sorted(users.values(), key=lambda r: (-r["revenue_cents"], r["user_id"]))

    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "transaction_count": len(transactions),
        "revenue_cents": sum(t.total_cents for t in transactions),
        "items": item_rows,
        "most_sold_item": item_rows[0] if item_rows else None,
        "least_sold_item": item_rows[-1] if item_rows else None,
        "users": user_rows,
        "best_seller": user_rows[0] if user_rows else None,
        "worst_seller": user_rows[-1] if user_rows else None,
    }
