# Overview: Pytest coverage for the shift and order JSON endpoints.

from cashdesk.models import Order

from conftest import cashier_headers


class TestShiftRoutes:
    def test_requires_cashier_header(self, client, db_session):
        response = client.post("/api/shifts", json={"opening_balance": "10.00"})
        assert response.status_code == 401

    def test_shift_round_trip(self, client, db_session):
        headers = cashier_headers(7)

        response = client.post("/api/shifts", json={"opening_balance": "1000.00"}, headers=headers)
        assert response.status_code == 201
        shift_id = response.get_json()["shift"]["id"]

        response = client.post(
            f"/api/shifts/{shift_id}/transactions",
            json={"type": "add", "amount": "200.00"},
            headers=headers,
        )
        assert response.status_code == 201

        response = client.post(
            f"/api/shifts/{shift_id}/transactions",
            json={"type": "withdraw", "amount": 50},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.get_json()["current_balance_cents"] == 115000

        response = client.get("/api/shifts/current", headers=headers)
        assert response.status_code == 200
        assert response.get_json()["current_balance_cents"] == 115000

        response = client.post(f"/api/shifts/{shift_id}/close", json={"counted_balance": "1140.00"}, headers=headers)
        assert response.status_code == 200
        shift = response.get_json()["shift"]
        assert shift["expected_balance_cents"] == 115000
        assert shift["difference_cents"] == -1000

        response = client.get("/api/shifts/current", headers=headers)
        assert response.status_code == 404

    def test_non_ascii_digit_header_is_unauthorized(self, client, db_session):
        response = client.get("/api/shifts/current", headers={"X-Cashier-Id": "²"})
        assert response.status_code == 401
        assert response.get_json()["code"] == "cashier_required"

    def test_other_cashier_cannot_touch_drawer(self, client, db_session):
        owner, intruder = cashier_headers(7), cashier_headers(8)
        shift_id = client.post("/api/shifts", json={"opening_balance": 500}, headers=owner).get_json()["shift"]["id"]

        response = client.post(
            f"/api/shifts/{shift_id}/transactions",
            json={"type": "withdraw", "amount": 500},
            headers=intruder,
        )
        assert response.status_code == 409
        assert response.get_json()["code"] == "shift_not_open"

        response = client.post(f"/api/shifts/{shift_id}/close", json={"counted_balance": 0}, headers=intruder)
        assert response.status_code == 409

        summary = client.get(f"/api/shifts/{shift_id}", headers=owner).get_json()
        assert summary["current_balance_cents"] == 50000
        assert summary["is_closed"] is False

    def test_duplicate_open_is_conflict(self, client, db_session):
        headers = cashier_headers(7)
        client.post("/api/shifts", json={"opening_balance": 0}, headers=headers)

        response = client.post("/api/shifts", json={"opening_balance": 0}, headers=headers)
        assert response.status_code == 409
        assert response.get_json()["code"] == "duplicate_open_shift"

    def test_manual_sale_rejected(self, client, db_session):
        headers = cashier_headers(7)
        shift_id = client.post("/api/shifts", json={"opening_balance": 0}, headers=headers).get_json()["shift"]["id"]

        response = client.post(
            f"/api/shifts/{shift_id}/transactions",
            json={"type": "sale", "amount": "10.00"},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_transaction_type"

    def test_bad_amount(self, client, db_session):
        headers = cashier_headers(7)
        response = client.post("/api/shifts", json={"opening_balance": "ten"}, headers=headers)
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_amount"

    def test_close_requires_counted_balance(self, client, db_session):
        headers = cashier_headers(7)
        shift_id = client.post("/api/shifts", json={"opening_balance": 0}, headers=headers).get_json()["shift"]["id"]

        response = client.post(f"/api/shifts/{shift_id}/close", json={}, headers=headers)
        assert response.status_code == 400

    def test_summary_and_transactions(self, client, db_session):
        headers = cashier_headers(7)
        shift_id = client.post("/api/shifts", json={"opening_balance": 5}, headers=headers).get_json()["shift"]["id"]
        client.post(f"/api/shifts/{shift_id}/transactions", json={"type": "add", "amount": 1}, headers=headers)
        client.post(f"/api/shifts/{shift_id}/transactions", json={"type": "add", "amount": 2}, headers=headers)

        summary = client.get(f"/api/shifts/{shift_id}", headers=headers).get_json()
        assert summary["totals_cents"]["add"] == 300
        assert summary["current_balance_cents"] == 800

        listing = client.get(f"/api/shifts/{shift_id}/transactions?order=asc", headers=headers).get_json()
        assert [t["amount_cents"] for t in listing["transactions"]] == [100, 200]

        assert client.get("/api/shifts/999999", headers=headers).status_code == 404


class TestOrderRoutes:
    def test_quote(self, client, db_session, entree, side):
        response = client.post(
            "/api/orders/quote",
            json={
                "items": [{"product_id": entree.id, "quantity": 2}, {"product_id": side.id}],
                "discount": "10.00",
            },
            headers=cashier_headers(7),
        )
        assert response.status_code == 200
        pricing = response.get_json()["pricing"]
        assert pricing == {"subtotal_cents": 25000, "tax_cents": 1750, "discount_cents": 1000, "total_cents": 25750}

    def test_checkout_with_shift(self, client, db_session, entree, side):
        headers = cashier_headers(7)
        shift_id = client.post("/api/shifts", json={"opening_balance": 0}, headers=headers).get_json()["shift"]["id"]
        entree_id, side_id = entree.id, side.id

        response = client.post(
            "/api/orders/checkout",
            json={
                "items": [
                    {"product_id": entree_id, "quantity": 1},
                    {"product_id": entree_id, "quantity": 1},
                    {"product_id": side_id, "quantity": 1},
                ],
                "payment_method": "cash",
                "discount": 10,
                "shift_id": shift_id,
                "table_number": "5",
            },
            headers=headers,
        )
        assert response.status_code == 201
        data = response.get_json()
        assert data["order"]["status"] == "completed"
        assert data["order"]["total_amount_cents"] == 25750
        assert len(data["order"]["items"]) == 2
        assert data["drawer_transaction"]["amount_cents"] == 25750
        assert data["warnings"] == []

        order_id = data["order"]["id"]
        response = client.get(f"/api/orders/{order_id}", headers=headers)
        assert response.status_code == 200

        response = client.post(f"/api/orders/{order_id}/cancel", json={"reason": "Void", "shift_id": shift_id}, headers=headers)
        assert response.status_code == 200
        assert response.get_json()["order"]["status"] == "cancelled"

        summary = client.get(f"/api/shifts/{shift_id}", headers=headers).get_json()
        assert summary["current_balance_cents"] == 0

    def test_checkout_empty_cart(self, client, db_session):
        response = client.post("/api/orders/checkout", json={"items": []}, headers=cashier_headers(7))
        assert response.status_code == 400
        assert response.get_json()["code"] == "empty_cart"

    def test_checkout_unavailable_product(self, client, db_session, unavailable_product):
        response = client.post(
            "/api/orders/checkout",
            json={"items": [{"product_id": unavailable_product.id}], "payment_method": "cash"},
            headers=cashier_headers(7),
        )
        assert response.status_code == 400
        assert response.get_json()["code"] == "product_unavailable"
        assert db_session.query(Order).count() == 0

    def test_checkout_excess_discount(self, client, db_session, side):
        response = client.post(
            "/api/orders/checkout",
            json={"items": [{"product_id": side.id}], "payment_method": "cash", "discount": "100.00"},
            headers=cashier_headers(7),
        )
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_discount"

    def test_quote_huge_discount(self, client, db_session, side):
        response = client.post(
            "/api/orders/quote",
            json={"items": [{"product_id": side.id}], "discount": "1e999999999"},
            headers=cashier_headers(7),
        )
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_amount"

    def test_checkout_rejects_boolean_shift_id(self, client, db_session, side):
        headers = cashier_headers(7)
        client.post("/api/shifts", json={"opening_balance": 0}, headers=headers)

        response = client.post(
            "/api/orders/checkout",
            json={"items": [{"product_id": side.id}], "payment_method": "cash", "shift_id": True},
            headers=headers,
        )
        assert response.status_code == 400
        assert db_session.query(Order).count() == 0

    def test_checkout_rejects_boolean_product_id(self, client, db_session, side):
        response = client.post(
            "/api/orders/checkout",
            json={"items": [{"product_id": True}], "payment_method": "cash"},
            headers=cashier_headers(7),
        )
        assert response.status_code == 400
        assert response.get_json()["code"] == "product_unavailable"

    def test_cancel_rejects_string_shift_id(self, client, db_session, side):
        headers = cashier_headers(7)
        order_id = client.post(
            "/api/orders/checkout",
            json={"items": [{"product_id": side.id}], "payment_method": "cash"},
            headers=headers,
        ).get_json()["order"]["id"]

        response = client.post(f"/api/orders/{order_id}/cancel", json={"reason": "x", "shift_id": "1"}, headers=headers)
        assert response.status_code == 400
        assert db_session.get(Order, order_id).status == "completed"

    def test_cancel_requires_reason(self, client, db_session):
        response = client.post("/api/orders/1/cancel", json={}, headers=cashier_headers(7))
        assert response.status_code == 400

    def test_unknown_order(self, client, db_session):
        response = client.get("/api/orders/424242", headers=cashier_headers(7))
        assert response.status_code == 404


def test_health(client, db_session):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["database"]["status"] == "healthy"
