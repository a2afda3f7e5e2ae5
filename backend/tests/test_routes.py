"""
HTTP-level tests: operator headers, JSON shapes and error status codes.
"""

import pytest


class TestOperatorHeaders:
    @pytest.mark.parametrize("method,path", [
        ("get", "/api/items"),
        ("post", "/api/carts"),
        ("get", "/api/transactions"),
        ("get", "/api/reports/sales"),
    ])
    def test_requires_operator(self, client, db_session, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401

    def test_cashier_cannot_create_items(self, client, db_session, cashier_headers):
        response = client.post("/api/items", json={"name": "X"}, headers=cashier_headers)
        assert response.status_code == 403

    def test_cashier_cannot_change_rates(self, client, rates, cashier_headers):
        response = client.put("/api/rates", json={"currency": "USD", "rate": "40"}, headers=cashier_headers)
        assert response.status_code == 403


def test_health(client, rates):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"


def test_health_degraded_without_rates(client, db_session):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "degraded"


class TestRates:
    def test_list_and_update(self, client, rates, admin_headers):
        assert client.get("/api/rates").get_json()["rates"] == {"EUR": "39.2", "USD": "36.5"}

        response = client.put("/api/rates", json={"currency": "usd", "rate": "40"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()["rates"]["USD"] == "40"

    def test_invalid_rate(self, client, rates, admin_headers):
        response = client.put("/api/rates", json={"currency": "USD", "rate": 0}, headers=admin_headers)
        assert response.status_code == 400
        assert response.get_json()["details"]["currency"] == "USD"

    def test_convert(self, client, rates):
        response = client.get("/api/rates/convert?amount_cents=7300&currency=USD")
        assert response.status_code == 200
        body = response.get_json()
        assert body["converted"] == "2.00"
        assert body["display"] == "$ 2.00"

    def test_convert_unknown_currency(self, client, rates):
        response = client.get("/api/rates/convert?amount_cents=100&currency=GBP")
        assert response.status_code == 400


class TestItems:
    def test_create_update_history(self, client, db_session, admin_headers):
        response = client.post("/api/items", json={
            "name": "Harina",
            "barcode": "759",
            "buying_price_cents": 90,
            "selling_price_cents": 110,
            "quantity": 50,
        }, headers=admin_headers)
        assert response.status_code == 201
        item_id = response.get_json()["item"]["id"]

        response = client.put(f"/api/items/{item_id}", json={"quantity": 45, "notes": "damaged"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()["item"]["quantity"] == "45"

        history = client.get(f"/api/items/{item_id}/history", headers=admin_headers).get_json()["history"]
        assert [h["action"] for h in history] == ["create", "update"]
        assert history[1]["previous_quantity"] == "50"
        assert history[1]["new_quantity"] == "45"

    def test_validation_error(self, client, db_session, admin_headers):
        response = client.post("/api/items", json={"name": "X"}, headers=admin_headers)
        assert response.status_code == 400
        assert "missing" in response.get_json()["details"]

    def test_unknown_item(self, client, db_session, cashier_headers):
        assert client.get("/api/items/nope", headers=cashier_headers).status_code == 404

    def test_delete_twice(self, client, item_a, admin_headers):
        first = client.delete(f"/api/items/{item_a.id}", headers=admin_headers)
        second = client.delete(f"/api/items/{item_a.id}", headers=admin_headers)
        assert first.get_json()["deleted"] is True
        assert second.status_code == 200
        assert second.get_json()["deleted"] is False

    def test_search(self, client, item_a, item_b, cashier_headers):
        response = client.get("/api/items?q=b-001&field=barcode", headers=cashier_headers)
        assert [i["name"] for i in response.get_json()["items"]] == ["Item B"]

    def test_summary(self, client, item_a, cashier_headers):
        body = client.get("/api/items/summary", headers=cashier_headers).get_json()
        assert body["item_count"] == 1


class TestCheckoutFlow:
    def test_sale_end_to_end(self, client, item_a, item_b, cashier_headers):
        cart_id = client.post("/api/carts", headers=cashier_headers).get_json()["cart"]["id"]

        client.post(f"/api/carts/{cart_id}/lines", json={"item_id": item_a.id, "quantity": 2}, headers=cashier_headers)
        client.post(f"/api/carts/{cart_id}/lines", json={"item_id": item_b.id, "quantity": 1}, headers=cashier_headers)
        response = client.post(
            f"/api/carts/{cart_id}/lines/{item_b.id}/discount", json={"apply": True}, headers=cashier_headers
        )
        totals = response.get_json()["cart"]["totals"]
        assert (totals["subtotal_cents"], totals["tax_cents"], totals["total_cents"]) == (3800, 180, 3980)

        response = client.post(
            f"/api/carts/{cart_id}/payments", json={"method": "cash", "amount_cents": 2500}, headers=cashier_headers
        )
        assert response.status_code == 200
        assert response.get_json()["checkout"]["state"] == "COLLECTING_PAYMENT"
        assert response.get_json()["checkout"]["remaining_due_cents"] == 1480

        response = client.post(
            f"/api/carts/{cart_id}/payments", json={"method": "card", "amount_cents": 1480}, headers=cashier_headers
        )
        assert response.status_code == 201
        checkout = response.get_json()["checkout"]
        assert checkout["state"] == "SETTLED"
        txn_id = checkout["transaction"]["id"]

        txn = client.get(f"/api/transactions/{txn_id}", headers=cashier_headers).get_json()["transaction"]
        assert txn["user_id"] == "cashier"
        assert txn["total_cents"] == 3980

        found = client.get("/api/transactions?q=item+b", headers=cashier_headers).get_json()["transactions"]
        assert [t["id"] for t in found] == [txn_id]
        assert client.get("/api/transactions?q=zzz", headers=cashier_headers).get_json()["transactions"] == []

        line_id = next(l["id"] for l in txn["lines"] if l["item_id"] == item_a.id)
        response = client.post(
            f"/api/transactions/{txn_id}/returns", json={"line_id": line_id, "quantity": 3}, headers=cashier_headers
        )
        assert response.status_code == 400
        response = client.post(
            f"/api/transactions/{txn_id}/returns", json={"line_id": line_id, "quantity": 1}, headers=cashier_headers
        )
        assert response.status_code == 200
        assert response.get_json()["line"]["quantity_returned"] == "1"

    def test_insufficient_stock(self, client, item_b, cashier_headers):
        cart_id = client.post("/api/carts", headers=cashier_headers).get_json()["cart"]["id"]
        response = client.post(
            f"/api/carts/{cart_id}/lines", json={"item_id": item_b.id, "quantity": 6}, headers=cashier_headers
        )
        assert response.status_code == 409
        details = response.get_json()["details"]
        assert details["name"] == "Item B"
        assert details["requested"] == "6"
        assert details["available"] == "5"

    def test_cancel_and_save(self, client, item_a, cashier_headers):
        cart_id = client.post("/api/carts", headers=cashier_headers).get_json()["cart"]["id"]
        client.post(f"/api/carts/{cart_id}/lines", json={"item_id": item_a.id}, headers=cashier_headers)
        client.post(f"/api/carts/{cart_id}/payments", json={"method": "cash", "amount_cents": 100}, headers=cashier_headers)

        cart = client.post(f"/api/carts/{cart_id}/cancel", headers=cashier_headers).get_json()["cart"]
        assert cart["payments"] == []
        assert len(cart["lines"]) == 1
        assert cart["state"] == "OPEN"

        response = client.post(f"/api/carts/{cart_id}/save", json={"name": "later"}, headers=cashier_headers)
        assert response.status_code == 201
        saved_id = response.get_json()["saved_cart"]["id"]

        listed = client.get("/api/saved-carts", headers=cashier_headers).get_json()["saved_carts"]
        assert [s["name"] for s in listed] == ["later"]

        response = client.post(f"/api/saved-carts/{saved_id}/load", json={"cart_id": cart_id}, headers=cashier_headers)
        assert response.status_code == 200
        assert len(response.get_json()["cart"]["lines"]) == 1

        assert client.delete(f"/api/saved-carts/{saved_id}", headers=cashier_headers).status_code == 200

    def test_oversized_image(self, client, item_a, cashier_headers):
        cart_id = client.post("/api/carts", headers=cashier_headers).get_json()["cart"]["id"]
        client.post(f"/api/carts/{cart_id}/lines", json={"item_id": item_a.id}, headers=cashier_headers)
        checkout = client.post(
            f"/api/carts/{cart_id}/payments", json={"method": "cash", "amount_cents": 1000}, headers=cashier_headers
        ).get_json()["checkout"]

        response = client.post(
            f"/api/transactions/{checkout['transaction']['id']}/images",
            json={"image": "https://example.com/" + "x" * 2000},
            headers=cashier_headers,
        )
        assert response.status_code == 413
        assert response.get_json()["details"]["limit"] == 1024

    def test_unknown_cart(self, client, db_session, cashier_headers):
        assert client.get("/api/carts/missing", headers=cashier_headers).status_code == 404

    def test_sales_report(self, client, item_a, cashier_headers):
        response = client.get("/api/reports/sales", headers=cashier_headers)
        assert response.status_code == 200
        assert response.get_json()["transaction_count"] == 0

        response = client.get("/api/reports/sales?start=not-a-date", headers=cashier_headers)
        assert response.status_code == 400
