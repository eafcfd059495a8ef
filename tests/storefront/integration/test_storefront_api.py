"""Integration tests for the Storefront API via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.integrations.fastapi import register_exception_handlers
from protean.utils.globals import current_domain
from storefront.api import admin_router, cart_router, order_router
from storefront.api.errors import register_error_handlers
from storefront.catalogue.product import Product
from storefront.coupon.coupon import Coupon

USER = {"X-User-Id": "user-api-1"}
OTHER_USER = {"X-User-Id": "user-api-2"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}

ADDRESS = {
    "full_name": "Asha Rao",
    "phone": "9876543210",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "zip_code": "560001",
}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(admin_router)
    register_exception_handlers(app)
    register_error_handlers(app)
    return TestClient(app)


def _add_product(client, **overrides):
    payload = {"name": "Kettle", "price": 100.0, "stock": 10}
    payload.update(overrides)
    response = client.post("/admin/products", json=payload, headers=ADMIN)
    assert response.status_code == 201
    return response.json()["product_id"]


def _place_order(client, product_id, quantity=1, headers=USER, **extra):
    client.post("/cart/add", json={"product_id": product_id, "quantity": quantity}, headers=headers)
    response = client.post("/orders", json={"shipping_address": ADDRESS, **extra}, headers=headers)
    assert response.status_code == 201
    return response.json()


class TestIdentity:
    def test_missing_user_header(self, client):
        assert client.get("/cart").status_code == 401

    def test_admin_routes_require_admin_role(self, client):
        response = client.get("/admin/orders", headers=USER)
        assert response.status_code == 403


class TestCartEndpoints:
    def test_get_empty_cart(self, client):
        response = client.get("/cart", headers=USER)
        assert response.status_code == 200
        data = response.json()
        assert data["items"] == []
        assert data["delivery_charge"] == 40
        assert data["total"] == 40

    def test_add_returns_updated_cart_with_product_summary(self, client):
        product_id = _add_product(client, price=200.0, discount=10.0)
        response = client.post("/cart/add", json={"product_id": product_id, "quantity": 2}, headers=USER)

        assert response.status_code == 200
        data = response.json()
        assert data["total_items"] == 2
        assert data["subtotal"] == 360.0
        assert data["items"][0]["price"] == 180.0
        assert data["items"][0]["product"]["name"] == "Kettle"
        assert data["items"][0]["product"]["final_price"] == 180.0

    def test_update_and_remove(self, client):
        product_id = _add_product(client)
        client.post("/cart/add", json={"product_id": product_id}, headers=USER)

        response = client.put("/cart/update", json={"product_id": product_id, "quantity": 5}, headers=USER)
        assert response.json()["items"][0]["quantity"] == 5
        assert response.json()["delivery_charge"] == 0

        response = client.delete(f"/cart/remove/{product_id}", headers=USER)
        assert response.json()["items"] == []

    def test_clear(self, client):
        product_id = _add_product(client)
        client.post("/cart/add", json={"product_id": product_id, "quantity": 3}, headers=USER)

        response = client.delete("/cart/clear", headers=USER)
        assert response.status_code == 200
        assert response.json()["total_items"] == 0

    def test_insufficient_stock_error_shape(self, client):
        product_id = _add_product(client, stock=1)
        response = client.post("/cart/add", json={"product_id": product_id, "quantity": 2}, headers=USER)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "InsufficientStock"
        assert error["details"]["available"] == 1
        assert error["details"]["requested"] == 2

    def test_apply_and_remove_coupon(self, client):
        product_id = _add_product(client, price=1000.0)
        client.post(
            "/admin/coupons",
            json={
                "code": "WELCOME10",
                "discount_type": "percentage",
                "discount_value": 10,
                "max_discount": 200,
                "min_order_amount": 500,
                "valid_until": "2099-12-31T23:59:59Z",
            },
            headers=ADMIN,
        )
        client.post("/cart/add", json={"product_id": product_id}, headers=USER)

        response = client.post("/cart/apply-coupon", json={"code": "welcome10"}, headers=USER)
        assert response.status_code == 200
        assert response.json()["coupon_discount"] == 100
        assert response.json()["total"] == 900.0

        response = client.delete("/cart/remove-coupon", headers=USER)
        assert response.json()["coupon_code"] is None

    def test_unknown_coupon_is_404(self, client):
        product_id = _add_product(client)
        client.post("/cart/add", json={"product_id": product_id}, headers=USER)

        response = client.post("/cart/apply-coupon", json={"code": "NOPE"}, headers=USER)
        assert response.status_code == 404
        assert response.json()["error"] == {
            "code": "CouponNotFound",
            "message": "Invalid coupon code",
            "details": {"code": "NOPE"},
        }


class TestOrderEndpoints:
    def test_place_order(self, client):
        product_id = _add_product(client, price=100.0)
        order = _place_order(client, product_id, quantity=2, payment_method="upi")

        assert order["order_status"] == "pending"
        assert order["payment_method"] == "upi"
        assert order["pricing"]["total"] == 240.0
        assert order["status_history"][0]["status"] == "pending"
        assert client.get("/cart", headers=USER).json()["items"] == []

    def test_empty_cart_rejected(self, client):
        response = client.post("/orders", json={"shipping_address": ADDRESS}, headers=USER)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "EmptyCart"

    def test_incomplete_address_lists_missing_fields(self, client):
        product_id = _add_product(client)
        client.post("/cart/add", json={"product_id": product_id}, headers=USER)

        response = client.post("/orders", json={"shipping_address": {"full_name": "Asha"}}, headers=USER)
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "IncompleteAddress"
        assert error["details"]["missing"] == ["phone", "address_line1", "city", "state", "zip_code"]

    def test_list_and_get_own_orders(self, client):
        product_id = _add_product(client)
        placed = _place_order(client, product_id)

        listing = client.get("/orders", headers=USER).json()
        assert listing["total"] == 1
        assert listing["orders"][0]["id"] == placed["id"]

        assert client.get(f"/orders/{placed['id']}", headers=USER).status_code == 200
        assert client.get(f"/orders/{placed['id']}", headers=OTHER_USER).status_code == 404

    def test_track_order(self, client):
        product_id = _add_product(client)
        placed = _place_order(client, product_id)

        response = client.get(f"/orders/track/{placed['order_number']}", headers=USER)
        assert response.status_code == 200
        assert response.json()["order_status"] == "pending"
        assert response.json()["expected_delivery"] is not None

    def test_validate_coupon(self, client):
        client.post(
            "/admin/coupons",
            json={
                "code": "FLAT500",
                "discount_type": "fixed",
                "discount_value": 500,
                "min_order_amount": 2000,
                "valid_until": "2099-12-31T23:59:59Z",
            },
            headers=ADMIN,
        )

        response = client.post("/orders/validate-coupon", json={"code": "FLAT500", "total": 200}, headers=USER)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MinimumOrderNotMet"

        response = client.post("/orders/validate-coupon", json={"code": "FLAT500", "total": 2500}, headers=USER)
        assert response.status_code == 200
        assert response.json()["discount"] == 500

    def test_cancel_order(self, client):
        product_id = _add_product(client, stock=5)
        placed = _place_order(client, product_id, quantity=2)

        response = client.put(f"/orders/{placed['id']}/cancel", json={"reason": "Too slow"}, headers=USER)
        assert response.status_code == 200
        assert response.json()["order_status"] == "cancelled"
        assert current_domain.repository_for(Product).get(product_id).stock == 5

    def test_cancel_shipped_order(self, client):
        product_id = _add_product(client)
        placed = _place_order(client, product_id)
        for status in ("confirmed", "processing", "shipped"):
            client.put(f"/admin/orders/{placed['id']}/status", json={"status": status}, headers=ADMIN)

        response = client.put(f"/orders/{placed['id']}/cancel", headers=USER)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "OrderNotCancellable"


class TestAdminEndpoints:
    def test_search_orders_by_status(self, client):
        product_id = _add_product(client)
        first = _place_order(client, product_id)
        _place_order(client, product_id, headers=OTHER_USER)
        client.put(f"/admin/orders/{first['id']}/status", json={"status": "confirmed"}, headers=ADMIN)

        response = client.get("/admin/orders", params={"status": "confirmed"}, headers=ADMIN)
        assert response.status_code == 200
        assert [order["id"] for order in response.json()["orders"]] == [first["id"]]

    def test_invalid_status_transition(self, client):
        product_id = _add_product(client)
        placed = _place_order(client, product_id)

        response = client.put(f"/admin/orders/{placed['id']}/status", json={"status": "delivered"}, headers=ADMIN)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "InvalidStatusTransition"

    def test_record_payment(self, client):
        product_id = _add_product(client)
        placed = _place_order(client, product_id)

        response = client.put(
            f"/admin/orders/{placed['id']}/payment",
            json={"status": "paid", "transaction_id": "txn-1", "gateway_response": {"ok": True}},
            headers=ADMIN,
        )
        assert response.status_code == 200
        assert response.json()["payment_status"] == "paid"
        assert response.json()["payment_details"]["transaction_id"] == "txn-1"

    def test_coupon_admin(self, client):
        response = client.post(
            "/admin/coupons",
            json={
                "code": "LAUNCH",
                "discount_type": "percentage",
                "discount_value": 15,
                "valid_until": "2099-12-31T23:59:59Z",
            },
            headers=ADMIN,
        )
        assert response.status_code == 201
        coupon_id = response.json()["coupon_id"]

        response = client.put(f"/admin/coupons/{coupon_id}", json={"discount_value": 20}, headers=ADMIN)
        assert response.json()["discount_value"] == 20

        assert [c["code"] for c in client.get("/admin/coupons", headers=ADMIN).json()] == ["LAUNCH"]

        assert client.delete(f"/admin/coupons/{coupon_id}", headers=ADMIN).status_code == 200
        assert current_domain.repository_for(Coupon).get(coupon_id).is_active is False

    def test_product_admin(self, client):
        product_id = _add_product(client, stock=0)

        response = client.put(f"/admin/products/{product_id}/restock", json={"quantity": 12}, headers=ADMIN)
        assert response.json()["stock"] == 12

        client.put(f"/admin/products/{product_id}/pricing", json={"price": 80, "discount": 25}, headers=ADMIN)
        client.put(f"/admin/products/{product_id}/deactivate", headers=ADMIN)

        product = current_domain.repository_for(Product).get(product_id)
        assert product.final_price == 60
        assert product.is_active is False
