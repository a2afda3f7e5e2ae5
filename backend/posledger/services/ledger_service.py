# Overview: Service-layer operations for the transaction ledger; committed sales, returns and receipt images.

"""
Transaction Ledger Service

WHY: A committed sale is the record of truth for what left the shop and for
how much. Totals are frozen at commit and never recomputed.

POST-COMMIT AMENDMENTS (the only two):
- TransactionLine.quantity_returned, raised by return_item()
- Transaction.images, appended by attach_image()

Returns are a reconciling quantity, not a refund: the frozen totals stay as
they were so the original sale stays auditable.
"""

from __future__ import annotations

import base64
import binascii
from decimal import Decimal

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Transaction, TransactionLine, StockItem
from ..decimal_utils import decimal_str, to_decimal
from ..errors import NotFound, PayloadTooLarge, ValidationError
from posledger.time_utils import utcnow
from .concurrency import lock_for_update, run_atomic
from .inventory_service import _adjust_quantity_inner, _require_user


def record_transaction(
    *,
    user_id: str,
    lines: list[dict],
    subtotal_cents: int,
    tax_cents: int,
    total_cents: int,
    payments: list[dict],
    amount_paid_cents: int,
    change_due_cents: int = 0,
    notes: str = "",
    commit: bool = True,
) -> Transaction:
    """
    Append a Transaction with its lines.

    Each line dict carries item_id, name, unit_price_cents, quantity,
    discount_applied, discount_percent and includes_tax. quantity_returned
    always starts at 0. commit=False leaves the work in the caller's unit.
    """
    if not lines:
        raise ValidationError("A transaction needs at least one line")

    def _op():
        txn = Transaction(
            occurred_at=utcnow(),
            user_id=user_id,
            subtotal_cents=subtotal_cents,
            tax_cents=tax_cents,
            total_cents=total_cents,
            payments=list(payments),
            amount_paid_cents=amount_paid_cents,
            change_due_cents=change_due_cents,
            notes=notes or "",
            images=[],
        )
        db.session.add(txn)
        for line in lines:
            txn.lines.append(
                TransactionLine(
                    item_id=line["item_id"],
                    name=line["name"],
                    unit_price_cents=line["unit_price_cents"],
                    quantity=Decimal(line["quantity"]),
                    quantity_returned=Decimal("0"),
                    discount_applied=bool(line.get("discount_applied", False)),
                    discount_percent=Decimal(line.get("discount_percent") or 0),
                    includes_tax=bool(line.get("includes_tax", False)),
                )
            )
        db.session.flush()
        return txn

    if not commit:
        return _op()
    return run_atomic(_op, action="transaction")


def get_transaction(transaction_id: str) -> Transaction:
    txn = db.session.get(Transaction, transaction_id)
    if txn is None:
        raise NotFound(
            f"Transaction {transaction_id} not found",
            details={"transaction_id": transaction_id},
        )
    return txn


def list_transactions(user_id: str | None = None, search: str | None = None) -> list[Transaction]:
    """
    All transactions, newest first.

    user_id narrows to one operator. search is a case-insensitive substring
    matched against the transaction id or any line's item name.
    """
    query = db.session.query(Transaction)
    if user_id:
        query = query.filter(Transaction.user_id == user_id)
    needle = (search or "").strip().lower()
    if needle:
        pattern = f"%{needle}%"
        query = query.filter(
            or_(
                func.lower(Transaction.id).like(pattern),
                Transaction.lines.any(func.lower(TransactionLine.name).like(pattern)),
            )
        )
    return query.order_by(Transaction.occurred_at.desc(), Transaction.id.desc()).all()


def return_item(transaction_id: str, line_id: int, quantity, user: str) -> TransactionLine:
    """
    Take back part of a sold line.

    Requires 0 < quantity <= quantity - quantity_returned. Raises the line's
    quantity_returned and puts the goods back in stock in the same database
    transaction. When the stock item was deleted after the sale the return
    is still recorded on the line; only the stock adjustment is skipped.

    Raises:
        ValidationError: quantity out of bounds, or no acting user
        NotFound: unknown transaction or line
    """
    user = _require_user(user)
    try:
        qty = to_decimal(quantity, field="quantity")
    except ValueError as e:
        raise ValidationError(str(e), details={"field": "quantity"})

    def _op():
        txn = get_transaction(transaction_id)
        line = lock_for_update(
            db.session.query(TransactionLine).filter_by(id=line_id, transaction_id=txn.id)
        ).first()
        if line is None:
            raise NotFound(
                f"Line {line_id} not found on transaction {transaction_id}",
                details={"transaction_id": transaction_id, "line_id": line_id},
            )

        returnable = Decimal(line.returnable_quantity)
        if qty <= 0 or qty > returnable:
            raise ValidationError(
                f"Cannot return {decimal_str(qty)} of {line.name}: "
                f"{decimal_str(returnable)} left to return",
                details={
                    "line_id": line.id,
                    "name": line.name,
                    "requested": decimal_str(qty),
                    "returnable": decimal_str(returnable),
                },
            )

        line.quantity_returned = Decimal(line.quantity_returned) + qty

        if db.session.get(StockItem, line.item_id) is None:
            current_app.logger.warning(
                "Return on transaction %s line %s: stock item %s no longer exists; stock not adjusted",
                txn.id, line.id, line.item_id,
            )
        else:
            _adjust_quantity_inner(
                item_id=line.item_id,
                delta=qty,
                user=user,
                reason="return",
                note=f"transaction {txn.id}",
            )

        db.session.flush()
        return line

    line = run_atomic(_op, action="return")
    current_app.logger.info(
        "Returned %s of line %s on transaction %s (by %s)",
        decimal_str(qty), line_id, transaction_id, user,
    )
    return line


def image_size_bytes(image: str) -> int:
    """
    Stored size of an image reference.

    Base64 data URIs are measured decoded; anything else (an external URI)
    by its encoded length.
    """
    if image.startswith("data:"):
        header, sep, payload = image.partition(",")
        if not sep:
            raise ValidationError("Malformed data URI", details={"field": "image"})
        if header.endswith(";base64"):
            try:
                return len(base64.b64decode(payload, validate=True))
            except (binascii.Error, ValueError):
                raise ValidationError("Image data is not valid base64", details={"field": "image"})
        return len(payload.encode("utf-8"))
    return len(image.encode("utf-8"))


def attach_image(transaction_id: str, image: str) -> Transaction:
    """
    Append a receipt image to a committed transaction.

    Raises:
        PayloadTooLarge: image above MAX_RECEIPT_IMAGE_BYTES
        ValidationError: blank or malformed image
        NotFound: unknown transaction
    """
    if not isinstance(image, str) or not image.strip():
        raise ValidationError("image is required", details={"field": "image"})
    image = image.strip()

    limit = int(current_app.config["MAX_RECEIPT_IMAGE_BYTES"])
    size = image_size_bytes(image)
    if size > limit:
        raise PayloadTooLarge(
            f"Image is {size} bytes; the limit is {limit} bytes",
            details={"size": size, "limit": limit},
        )

    def _op():
        txn = get_transaction(transaction_id)
        # Reassign so the JSON column is flagged dirty
        txn.images = list(txn.images or []) + [image]
        db.session.flush()
        return txn

    return run_atomic(_op, action="receipt image")
