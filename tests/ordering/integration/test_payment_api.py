"""Integration tests for payment endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.errors import register_error_handlers
from ordering.api.routes import order_router, payment_router

BUYER = {"X-User-Id": "buyer-001"}
ADMIN = {"X-User-Id": "admin-001", "X-User-Role": "ADMIN"}

CARD = {
    "method_type": "CREDIT_CARD",
    "payment_token": "tok_visa_4242",
    "last_four": "4242",
    "card_brand": "VISA",
    "expiry_month": 12,
    "expiry_year": 2099,
}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(payment_router)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def order_id(place_order):
    return place_order(products=("prod-textbook", "prod-lamp", "prod-lamp"), delivery_method="SHIPPING")


def _add_method(client, headers=BUYER, **overrides):
    response = client.post("/payments/methods", json={**CARD, **overrides}, headers=headers)
    assert response.status_code == 201
    return response.json()


def _pay(client, order_id, method_id, **extra):
    return client.post(
        "/payments/process",
        json={"order_id": order_id, "payment_method_id": method_id, **extra},
        headers=BUYER,
    )


class TestPaymentMethods:
    def test_add_first_method(self, client):
        data = _add_method(client)
        assert data["is_default"] is True
        assert data["last_four"] == "4242"
        assert data["is_expired"] is False
        assert "payment_token" not in data

    def test_list_default_first(self, client):
        first = _add_method(client)
        second = _add_method(client, last_four="1111", make_default=True)

        response = client.get("/payments/methods", headers=BUYER)

        ids = [m["payment_method_id"] for m in response.json()]
        assert ids == [second["payment_method_id"], first["payment_method_id"]]

    def test_list_without_vault(self, client):
        assert client.get("/payments/methods", headers=BUYER).json() == []

    def test_set_default(self, client):
        _add_method(client)
        second = _add_method(client, last_four="1111")

        response = client.put(f"/payments/methods/{second['payment_method_id']}/default", headers=BUYER)

        assert response.status_code == 200
        assert response.json()["is_default"] is True

    def test_remove(self, client):
        method = _add_method(client)

        response = client.delete(f"/payments/methods/{method['payment_method_id']}", headers=BUYER)

        assert response.status_code == 200
        assert client.get("/payments/methods", headers=BUYER).json() == []

    def test_get_one_method(self, client):
        method = _add_method(client)

        response = client.get(f"/payments/methods/{method['payment_method_id']}", headers=BUYER)

        assert response.status_code == 200
        assert response.json() == method

    def test_get_method_of_another_user(self, client):
        method = _add_method(client)
        _add_method(client, headers={"X-User-Id": "student-999"})

        response = client.get(
            f"/payments/methods/{method['payment_method_id']}",
            headers={"X-User-Id": "student-999"},
        )
        assert response.status_code == 404

    def test_get_removed_method(self, client):
        method = _add_method(client)
        client.delete(f"/payments/methods/{method['payment_method_id']}", headers=BUYER)

        response = client.get(f"/payments/methods/{method['payment_method_id']}", headers=BUYER)
        assert response.status_code == 404

    def test_get_method_without_vault(self, client):
        response = client.get("/payments/methods/pm-unknown", headers=BUYER)
        assert response.status_code == 404

    def test_invalid_last_four(self, client):
        response = client.post("/payments/methods", json={**CARD, "last_four": "42"}, headers=BUYER)
        assert response.status_code == 422


class TestProcessPayment:
    def test_successful_payment(self, client, order_id):
        method = _add_method(client)

        response = _pay(client, order_id, method["payment_method_id"])

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "COMPLETED"
        assert data["amount"] == 98.19
        assert data["gateway_transaction_id"].startswith("TXN-")

        order = client.get(f"/api/orders/{order_id}", headers=BUYER).json()
        assert order["status"] == "PAID"
        assert order["order_number"].startswith("ORD-")

    def test_declined_payment_is_402(self, client, order_id):
        method = _add_method(client)
        client.post("/payments/gateway/configure", json={"should_succeed": False, "failure_reason": "Do not honor"})

        response = _pay(client, order_id, method["payment_method_id"])

        assert response.status_code == 402
        body = response.json()
        assert body["code"] == "GatewayFailure"
        assert body["details"]["reason"] == "Do not honor"
        assert body["details"]["transaction_id"] is not None

        order = client.get(f"/api/orders/{order_id}", headers=BUYER).json()
        assert order["status"] == "PENDING_PAYMENT"

    def test_paying_twice_is_409(self, client, order_id):
        method = _add_method(client)
        _pay(client, order_id, method["payment_method_id"])

        response = _pay(client, order_id, method["payment_method_id"])

        assert response.status_code == 409
        assert response.json()["code"] == "InvalidTransition"

    def test_idempotent_retry(self, client, order_id):
        method = _add_method(client)

        first = _pay(client, order_id, method["payment_method_id"], idempotency_key="abc-123")
        second = _pay(client, order_id, method["payment_method_id"], idempotency_key="abc-123")

        assert second.status_code == 200
        assert first.json()["transaction_id"] == second.json()["transaction_id"]

    def test_expired_method(self, client, order_id):
        method = _add_method(client, expiry_month=1, expiry_year=2020)
        assert method["is_expired"] is True

        response = _pay(client, order_id, method["payment_method_id"])

        assert response.status_code == 400
        assert "payment_method_id" in response.json()["details"]


class TestRefunds:
    def test_admin_refund(self, client, order_id):
        method = _add_method(client)
        _pay(client, order_id, method["payment_method_id"])

        response = client.post(
            "/payments/refund",
            json={"order_id": order_id, "refund_amount": 40.19, "reason": "Damaged"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["amount"] == -40.19

        ledger = client.get(f"/payments/orders/{order_id}/transactions", headers=BUYER).json()
        assert [t["status"] for t in ledger] == ["REFUNDED", "COMPLETED"]
        assert ledger[0]["refund_amount"] == 40.19

        order = client.get(f"/api/orders/{order_id}", headers=BUYER).json()
        assert order["status"] == "REFUNDED"

    def test_refused_refund_is_402_and_recorded(self, client, order_id):
        method = _add_method(client)
        _pay(client, order_id, method["payment_method_id"])
        client.post(
            "/payments/gateway/configure",
            json={"should_succeed": False, "failure_reason": "Refund window closed"},
        )

        response = client.post(
            "/payments/refund",
            json={"order_id": order_id, "refund_amount": 40.19},
            headers=ADMIN,
        )

        assert response.status_code == 402
        body = response.json()
        assert body["details"]["reason"] == "Refund window closed"
        failed_id = body["details"]["transaction_id"]

        ledger = client.get(f"/payments/orders/{order_id}/transactions", headers=BUYER).json()
        assert [(t["transaction_id"], t["status"]) for t in ledger][-1] == (failed_id, "FAILED")
        assert ledger[0]["status"] == "COMPLETED"

        order = client.get(f"/api/orders/{order_id}", headers=BUYER).json()
        assert order["status"] == "PAID"

    def test_refund_exceeding_original(self, client, order_id):
        method = _add_method(client)
        _pay(client, order_id, method["payment_method_id"])

        response = client.post(
            "/payments/refund",
            json={"order_id": order_id, "refund_amount": 500.00},
            headers=ADMIN,
        )

        assert response.status_code == 400
        assert "refund_amount" in response.json()["details"]

    def test_student_cannot_refund(self, client, order_id):
        response = client.post(
            "/payments/refund",
            json={"order_id": order_id, "refund_amount": 10.00},
            headers=BUYER,
        )
        assert response.status_code == 403

    def test_refund_without_settlement(self, client, order_id):
        response = client.post(
            "/payments/refund",
            json={"order_id": order_id, "refund_amount": 10.00},
            headers=ADMIN,
        )
        assert response.status_code == 404


class TestTransactionHistory:
    def test_caller_history(self, client, order_id):
        method = _add_method(client)
        _pay(client, order_id, method["payment_method_id"])

        response = client.get("/payments/transactions", headers=BUYER)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["order_id"] == order_id

    def test_history_is_paged_newest_first(self, client, place_order):
        method = _add_method(client)
        paid = []
        for _ in range(3):
            order_id = place_order()
            paid.append(_pay(client, order_id, method["payment_method_id"]).json()["transaction_id"])

        first_page = client.get("/payments/transactions", params={"size": 2}, headers=BUYER).json()
        last_page = client.get("/payments/transactions", params={"page": 1, "size": 2}, headers=BUYER).json()

        assert first_page["total_pages"] == 2
        assert [t["transaction_id"] for t in first_page["items"] + last_page["items"]] == paid[::-1]

    def test_owner_reads_one_transaction(self, client, order_id):
        method = _add_method(client)
        transaction_id = _pay(client, order_id, method["payment_method_id"]).json()["transaction_id"]

        response = client.get(f"/payments/transactions/{transaction_id}", headers=BUYER)

        assert response.status_code == 200
        assert response.json()["transaction_id"] == transaction_id
        assert response.json()["status"] == "COMPLETED"

    def test_only_the_owner_reads_a_transaction(self, client, order_id):
        method = _add_method(client)
        transaction_id = _pay(client, order_id, method["payment_method_id"]).json()["transaction_id"]

        for headers in ({"X-User-Id": "student-999"}, ADMIN):
            response = client.get(f"/payments/transactions/{transaction_id}", headers=headers)
            assert response.status_code == 403
            assert response.json()["code"] == "Unauthorized"

    def test_unknown_transaction(self, client):
        response = client.get("/payments/transactions/does-not-exist", headers=BUYER)
        assert response.status_code == 404

    def test_other_students_cannot_read_order_ledger(self, client, order_id):
        response = client.get(
            f"/payments/orders/{order_id}/transactions",
            headers={"X-User-Id": "student-999"},
        )
        assert response.status_code == 403


class TestGatewayConfiguration:
    def test_configure(self, client, gateway):
        response = client.post("/payments/gateway/configure", json={"should_succeed": False})

        assert response.status_code == 200
        assert response.json()["gateway"] == "MOCK"
        assert gateway.should_succeed is False

    def test_disabled_in_production(self, client, monkeypatch):
        monkeypatch.setenv("PROTEAN_ENV", "production")
        response = client.post("/payments/gateway/configure", json={"should_succeed": False})
        assert response.status_code == 403
