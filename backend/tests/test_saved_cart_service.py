from datetime import datetime
from decimal import Decimal

import pytest

from posledger.extensions import db
from posledger.errors import NotFound, ValidationError
from posledger.services import cart_service, checkout_service, inventory_service, saved_cart_service


@pytest.fixture
def cart(db_session, item_a, item_b):
    cart = cart_service.create_cart("cashier")
    cart_service.add_line(cart.id, item_b.id, 1)
    cart_service.add_line(cart.id, item_a.id, 2)
    cart_service.toggle_line_discount(cart.id, item_b.id, True)
    cart_service.set_notes(cart.id, "pick up at 5")
    checkout_service.add_payment(cart.id, "cash", 1000, "cashier")
    return cart


def _snapshot(cart_id):
    cart = cart_service.get_cart(cart_id)
    return (
        [line.to_dict() for line in cart.lines],
        [(p.method, p.amount_cents, p.created_at) for p in cart.payments],
        cart.notes,
    )


def test_save_then_load_round_trip(cart):
    cart.payments[0].created_at = datetime(2026, 10, 19, 13, 23, 18, 352628)
    db.session.commit()
    before = _snapshot(cart.id)

    saved = saved_cart_service.save_cart(cart.id, "Mrs. Lopez")
    assert saved.name == "Mrs. Lopez"
    assert _snapshot(cart.id) == ([], [], "")

    saved_cart_service.load_cart(saved.id, cart.id)
    assert _snapshot(cart.id) == before
    assert [line.item_id for line in cart_service.get_cart(cart.id).lines] == [
        line["item_id"] for line in before[0]
    ]


def test_default_name(cart, item_a):
    first = saved_cart_service.save_cart(cart.id)
    assert first.name == "Cart - 1"

    cart_service.add_line(cart.id, item_a.id, 1)
    second = saved_cart_service.save_cart(cart.id, "  ")
    assert second.name == "Cart - 2"


def test_empty_cart_cannot_be_saved(db_session):
    cart = cart_service.create_cart("cashier")
    with pytest.raises(ValidationError):
        saved_cart_service.save_cart(cart.id)


def test_load_does_not_recheck_stock(cart, item_a):
    saved = saved_cart_service.save_cart(cart.id)
    inventory_service.update_item(item_a.id, {"quantity": 0}, "admin")

    loaded = saved_cart_service.load_cart(saved.id, cart.id)
    assert any(line.item_id == item_a.id and line.requested_quantity == Decimal("2") for line in loaded.lines)


def test_load_keeps_saved_entry(cart):
    saved = saved_cart_service.save_cart(cart.id)
    saved_cart_service.load_cart(saved.id, cart.id)
    assert [s.id for s in saved_cart_service.list_saved_carts()] == [saved.id]


def test_delete_is_idempotent(cart):
    saved = saved_cart_service.save_cart(cart.id)
    assert saved_cart_service.delete_saved_cart(saved.id) is True
    assert saved_cart_service.delete_saved_cart(saved.id) is False
    with pytest.raises(NotFound):
        saved_cart_service.load_cart(saved.id, cart.id)
