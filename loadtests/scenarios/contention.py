"""Contention scenarios for the stock and coupon counters.

Many shoppers chase the same scarce product or the same limited coupon.
Losing the race is expected: the test fails only on responses other
than the documented domain errors, so the run measures how the atomic
counters behave when retries run out.
"""

from locust import HttpUser, between, task

from loadtests.data_generators import (
    admin_headers,
    checkout_data,
    coupon_data,
    product_data,
    shopper_headers,
    shopper_id,
)
from loadtests.helpers.response import error_code, extract_error_detail

EXPECTED_STOCK_ERRORS = {"InsufficientStock", "StockConflict"}

_hot = {"product_id": None, "coupon_code": None}


class FlashSaleUser(HttpUser):
    """Everyone buys the same product with the same limited coupon.

    The first user seeds one product with little stock and one coupon
    limited to a handful of uses. Orders placed after the coupon runs
    out still succeed, just without the discount.
    """

    wait_time = between(0.1, 0.5)

    def on_start(self):
        if _hot["product_id"] is None:
            payload = {**product_data(), "stock": 200}
            resp = self.client.post("/admin/products", json=payload, headers=admin_headers(), name="POST /admin/products")
            if resp.status_code == 201:
                _hot["product_id"] = resp.json()["product_id"]
        if _hot["coupon_code"] is None:
            payload = {**coupon_data(usage_limit=25), "min_order_amount": 0.0}
            resp = self.client.post("/admin/coupons", json=payload, headers=admin_headers(), name="POST /admin/coupons")
            if resp.status_code == 201:
                _hot["coupon_code"] = payload["code"]

    @task
    def grab(self):
        if _hot["product_id"] is None:
            return

        headers = shopper_headers(shopper_id())
        self.client.post(
            "/cart/add",
            json={"product_id": _hot["product_id"], "quantity": 1},
            headers=headers,
            name="POST /cart/add [flash]",
        )
        with self.client.post(
            "/orders",
            json=checkout_data(_hot["coupon_code"]),
            headers=headers,
            catch_response=True,
            name="POST /orders [flash]",
        ) as resp:
            if resp.status_code == 201 or error_code(resp) in EXPECTED_STOCK_ERRORS:
                resp.success()
            else:
                resp.failure(f"Flash checkout failed: {resp.status_code} — {extract_error_detail(resp)}")
