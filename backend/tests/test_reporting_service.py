from posledger.services import cart_service, checkout_service, ledger_service
from posledger.services.reporting_service import sales_report


def _sell(operator, *lines, pay):
    cart = cart_service.create_cart(operator)
    for item_id, qty in lines:
        cart_service.add_line(cart.id, item_id, qty)
    return checkout_service.add_payment(cart.id, "cash", pay, operator).transaction


def test_empty_report(db_session):
    report = sales_report()
    assert report["transaction_count"] == 0
    assert report["most_sold_item"] is None
    assert report["best_seller"] is None


def test_item_and_operator_rankings(item_a, item_b):
    _sell("ana", (item_a.id, 3), pay=3000)
    _sell("luis", (item_a.id, 1), (item_b.id, 1), pay=5000)

    report = sales_report()
    assert report["transaction_count"] == 2
    assert report["revenue_cents"] == 3000 + 1000 + 2200

    assert report["most_sold_item"]["name"] == "Item A"
    assert report["most_sold_item"]["quantity"] == "4"
    assert report["most_sold_item"]["revenue_cents"] == 4000
    assert report["least_sold_item"]["name"] == "Item B"

    assert report["best_seller"]["user_id"] == "luis"
    assert report["worst_seller"]["user_id"] == "ana"
    assert report["worst_seller"]["revenue_cents"] == 3000


def test_returns_reduce_item_quantity(item_a):
    txn = _sell("ana", (item_a.id, 3), pay=3000)
    ledger_service.return_item(txn.id, txn.lines[0].id, 2, "ana")

    row = sales_report()["items"][0]
    assert row["quantity"] == "1"
    assert row["revenue_cents"] == 1000
