"""Integration tests for the storefront API via TestClient."""

import pytest
from factories import make_coupon, make_product, shipping_address, stock_of
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain
from protean.exceptions import ExpectedVersionError
from storefront.api import register_storefront_exception_handlers, routers
from storefront.domain import storefront
from storefront.order.order import Order
from storefront.payment.gateway import get_gateway

SHOPPER = {"X-User-Id": "api-user-1"}
GUEST = {"X-Session-Id": "api-session-1"}
ADMIN = {"X-User-Id": "api-admin", "X-User-Role": "admin"}


@pytest.fixture()
def client():
    app = FastAPI()
    for router in routers:
        app.include_router(router)
    register_storefront_exception_handlers(app)
    return TestClient(app)


@pytest.fixture()
def product():
    return make_product(name="Welding Mask", price=2500.0, stock=6)


def _place_order(client, product, quantity=2, headers=SHOPPER, **body):
    response = client.post("/cart/items", json={"product_id": str(product.id), "quantity": quantity}, headers=headers)
    assert response.status_code == 200
    response = client.post(
        "/orders",
        json={"shipping_address": shipping_address(), "payment_method": "stripe", **body},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["order_id"]


class TestCartEndpoints:
    def test_add_and_read_the_cart(self, client, product):
        client.post("/cart/items", json={"product_id": str(product.id), "quantity": 2}, headers=GUEST)

        body = client.get("/cart", headers=GUEST).json()

        assert body["total_items"] == 2
        assert body["subtotal"] == 5000.0
        assert body["items"][0]["name"] == "Welding Mask"

    def test_caller_identity_is_required(self, client):
        assert client.get("/cart").status_code == 400

    def test_out_of_range_quantity_is_a_bad_request(self, client, product):
        response = client.post("/cart/items", json={"product_id": str(product.id), "quantity": 11}, headers=GUEST)

        assert response.status_code == 400

    def test_unknown_product_is_not_found(self, client):
        response = client.post("/cart/items", json={"product_id": "ghost", "quantity": 1}, headers=GUEST)

        assert response.status_code == 404

    def test_insufficient_stock_is_a_conflict(self, client, product):
        response = client.post("/cart/items", json={"product_id": str(product.id), "quantity": 7}, headers=GUEST)

        assert response.status_code == 409
        assert "quantity" in response.json()["error"]

    def test_update_remove_and_clear(self, client, product):
        client.post("/cart/items", json={"product_id": str(product.id), "quantity": 1}, headers=SHOPPER)

        assert client.put(f"/cart/items/{product.id}", json={"quantity": 3}, headers=SHOPPER).json()["total_items"] == 3
        assert client.delete(f"/cart/items/{product.id}", headers=SHOPPER).json()["items"] == []
        assert client.delete("/cart", headers=SHOPPER).status_code == 200

    def test_coupon_on_the_cart(self, client, product):
        make_coupon(code="MASK10", value=10.0)
        client.post("/cart/items", json={"product_id": str(product.id), "quantity": 2}, headers=SHOPPER)

        body = client.post("/cart/coupon", json={"code": "mask10"}, headers=SHOPPER).json()
        assert body["discount_amount"] == 500.0
        assert body["total"] == 4500.0

        body = client.delete("/cart/coupon", headers=SHOPPER).json()
        assert body["coupon_code"] is None

    def test_merge_on_login(self, client, product):
        client.post("/cart/items", json={"product_id": str(product.id), "quantity": 2}, headers=GUEST)

        response = client.post("/cart/merge", headers={**GUEST, **SHOPPER})

        assert response.status_code == 200
        assert client.get("/cart", headers=SHOPPER).json()["total_items"] == 2


class TestOrderEndpoints:
    def test_checkout_creates_an_order(self, client, product):
        order_id = _place_order(client, product)

        body = client.get(f"/orders/{order_id}", headers=SHOPPER).json()
        assert body["status"] == "pending"
        assert body["items_price"] == 5000.0
        assert body["status_history"][0]["note"] == "Order created"
        assert stock_of(product.id) == 4
        assert client.get("/cart", headers=SHOPPER).json()["items"] == []

    def test_checkout_of_an_empty_cart_is_a_bad_request(self, client):
        response = client.post(
            "/orders",
            json={"shipping_address": shipping_address(), "payment_method": "mpesa"},
            headers=SHOPPER,
        )

        assert response.status_code == 400

    def test_checkout_that_keeps_losing_version_races_is_a_conflict(self, client, product, monkeypatch):
        client.post("/cart/items", json={"product_id": str(product.id), "quantity": 1}, headers=SHOPPER)

        def always_stale(command, asynchronous=None, **kwargs):
            raise ExpectedVersionError("Wrong expected version: 0 (Stream: product, Stream Version: 1)")

        monkeypatch.setattr(storefront, "process", always_stale)

        response = client.post(
            "/orders",
            json={"shipping_address": shipping_address(), "payment_method": "mpesa"},
            headers=SHOPPER,
        )

        assert response.status_code == 409
        assert "_concurrency" in response.json()["error"]

    def test_version_clash_outside_a_command_is_a_conflict(self):
        app = FastAPI()
        register_storefront_exception_handlers(app)

        @app.get("/stale")
        async def stale():
            raise ExpectedVersionError("Wrong expected version")

        response = TestClient(app).get("/stale")

        assert response.status_code == 409
        assert "_concurrency" in response.json()["error"]

    def test_other_shoppers_cannot_read_an_order(self, client, product):
        order_id = _place_order(client, product)

        assert client.get(f"/orders/{order_id}", headers={"X-User-Id": "nosy"}).status_code == 403
        assert client.get(f"/orders/{order_id}", headers=ADMIN).status_code == 200

    def test_list_own_orders(self, client, product):
        order_id = _place_order(client, product, quantity=1)

        body = client.get("/orders", headers=SHOPPER).json()
        assert [o["order_id"] for o in body] == [order_id]

    def test_cancel_releases_stock(self, client, product):
        order_id = _place_order(client, product)

        response = client.post(f"/orders/{order_id}/cancel", json={"reason": "Wrong size"}, headers=SHOPPER)

        assert response.json()["status"] == "cancelled"
        assert stock_of(product.id) == 6

    def test_admin_status_update(self, client, product):
        order_id = _place_order(client, product)

        forbidden = client.put(f"/orders/{order_id}/status", json={"status": "shipped"}, headers=SHOPPER)
        allowed = client.put(
            f"/orders/{order_id}/status", json={"status": "shipped", "tracking_number": "TRK-7"}, headers=ADMIN
        )
        backwards = client.put(f"/orders/{order_id}/status", json={"status": "confirmed"}, headers=ADMIN)

        assert forbidden.status_code == 403
        assert allowed.json()["status"] == "shipped"
        assert backwards.status_code == 409


class TestPaymentEndpoints:
    def test_intent_then_confirm(self, client, product):
        order_id = _place_order(client, product)

        intent = client.post("/payments/intents", json={"order_id": order_id}, headers=SHOPPER)
        assert intent.status_code == 201
        intent_id = intent.json()["payment_intent_id"]
        get_gateway().settle(intent_id)

        body = client.post(
            "/payments/confirm", json={"order_id": order_id, "payment_intent_id": intent_id}, headers=SHOPPER
        ).json()
        assert body["is_paid"] is True
        assert body["status"] == "confirmed"

    def test_webhook_marks_the_order_paid(self, client, product):
        order_id = _place_order(client, product)
        intent_id = client.post("/payments/intents", json={"order_id": order_id}, headers=SHOPPER).json()[
            "payment_intent_id"
        ]
        gateway = get_gateway()
        gateway.settle(intent_id)

        response = client.post(
            "/payments/webhook",
            content=gateway.event_for(intent_id),
            headers={"Stripe-Signature": gateway.SIGNATURE},
        )

        assert response.status_code == 200
        assert current_domain.repository_for(Order).get(order_id).is_paid is True

    def test_forged_webhook_is_rejected(self, client, product):
        order_id = _place_order(client, product)
        intent_id = client.post("/payments/intents", json={"order_id": order_id}, headers=SHOPPER).json()[
            "payment_intent_id"
        ]
        gateway = get_gateway()
        gateway.settle(intent_id)

        response = client.post(
            "/payments/webhook", content=gateway.event_for(intent_id), headers={"Stripe-Signature": "forged"}
        )

        assert response.status_code == 401
        assert current_domain.repository_for(Order).get(order_id).is_paid is False

    def test_gateway_outage_is_a_bad_gateway(self, client, product):
        order_id = _place_order(client, product)
        get_gateway().configure(unavailable=True)

        response = client.post("/payments/intents", json={"order_id": order_id}, headers=SHOPPER)

        assert response.status_code == 502

    def test_payment_methods(self, client, monkeypatch):
        monkeypatch.setenv("MPESA_ENABLED", "true")

        body = client.get("/payments/methods").json()

        assert [m["id"] for m in body] == ["stripe", "mpesa", "bank_transfer", "cash_on_delivery"]
        assert body[2]["processing_time"] == "1-3 business days"

    def test_shipping_quote(self, client):
        response = client.post(
            "/payments/shipping-quote",
            json={"county": "Mombasa", "items": [{"price": 1500.0, "quantity": 2}]},
        )

        body = response.json()
        assert body["items_price"] == 3000.0
        assert body["free_shipping"] is False
        assert body["free_shipping_threshold"] == 10000.0
        assert {o["method"]: o["cost"] for o in body["options"]} == {"standard": 600.0, "express": 1200.0}

    def test_payment_history_lists_paid_orders(self, client, product):
        order_id = _place_order(client, product)
        _place_order(client, product, quantity=1)
        intent_id = client.post("/payments/intents", json={"order_id": order_id}, headers=SHOPPER).json()[
            "payment_intent_id"
        ]
        get_gateway().settle(intent_id)
        client.post("/payments/confirm", json={"order_id": order_id, "payment_intent_id": intent_id}, headers=SHOPPER)

        body = client.get("/payments/history", headers=SHOPPER).json()

        assert body["total"] == 1
        assert body["payments"][0]["order_id"] == order_id
        assert body["payments"][0]["payment_intent_id"] == intent_id
        assert client.get("/payments/history", headers={"X-User-Id": "nosy"}).json()["payments"] == []

    def test_payment_history_rejects_a_zero_page(self, client):
        assert client.get("/payments/history?page=0", headers=SHOPPER).status_code == 400


class TestAdminEndpoints:
    def test_products_and_coupons_need_an_admin(self, client):
        product = {"name": "Safety Harness", "sku": "HRN-9", "price": 5200.0, "stock": 3}

        assert client.post("/products", json=product, headers=SHOPPER).status_code == 403
        created = client.post("/products", json=product, headers=ADMIN)
        assert created.status_code == 201

        product_id = created.json()["product_id"]
        assert client.post(f"/products/{product_id}/restock", json={"quantity": 2}, headers=ADMIN).status_code == 200
        assert client.get(f"/products/{product_id}").json()["stock"] == 5

    def test_coupon_validation(self, client):
        make_coupon(code="QUOTE", discount_type="fixed", value=300.0, minimum_order_amount=1000.0)

        body = client.post("/coupons/validate", json={"code": "quote", "subtotal": 1500.0}).json()

        assert body["discount_amount"] == 300.0
        assert client.post("/coupons/validate", json={"code": "nope", "subtotal": 10.0}).status_code == 404

    def test_reports(self, client, product):
        order_id = _place_order(client, product)

        summaries = client.get("/reports/orders", headers=ADMIN).json()
        assert [s["order_id"] for s in summaries] == [order_id]
        assert client.get("/reports/orders", headers=SHOPPER).status_code == 403

    def test_low_stock_report(self, client):
        make_product(name="Ear Plugs", stock=50, low_stock_threshold=10)
        make_product(name="Reflective Vest", stock=4, low_stock_threshold=5)
        make_product(name="Dust Mask", stock=2, low_stock_threshold=10)

        body = client.get("/reports/low-stock", headers=ADMIN).json()

        assert [p["name"] for p in body] == ["Dust Mask", "Reflective Vest"]
        assert all(p["is_low_stock"] for p in body)
        assert client.get("/reports/low-stock", headers=SHOPPER).status_code == 403
