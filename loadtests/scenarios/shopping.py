"""Storefront shopper load test scenarios.

Stateful SequentialTaskSet journeys covering cart browsing and
abandonment, checkout with and without coupons, customer cancellation,
and admin-driven fulfilment of freshly placed orders.

Products are created once per Locust process through the admin API and
shared by every simulated shopper.
"""

from locust import SequentialTaskSet, task

from loadtests.data_generators import (
    admin_headers,
    cart_item_data,
    checkout_data,
    coupon_data,
    product_data,
    shopper_headers,
    shopper_id,
    status_update_data,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import FulfilmentState, ShopperState

CATALOGUE_SIZE = 20
CATALOGUE: list[str] = []


def ensure_catalogue(client) -> list[str]:
    """Seed the shared product list on first use."""
    while len(CATALOGUE) < CATALOGUE_SIZE:
        with client.post(
            "/admin/products",
            json=product_data(),
            headers=admin_headers(),
            catch_response=True,
            name="POST /admin/products",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Create product failed: {resp.status_code} — {extract_error_detail(resp)}")
                break
            CATALOGUE.append(resp.json()["product_id"])
    return CATALOGUE


class _ShopperJourney(SequentialTaskSet):
    def on_start(self):
        self.state = ShopperState(user_id=shopper_id())
        self.state.product_ids = ensure_catalogue(self.client)
        self.headers = shopper_headers(self.state.user_id)
        if not self.state.product_ids:
            self.interrupt()

    def add_item(self, label="Add to cart"):
        with self.client.post(
            "/cart/add",
            json=cart_item_data(self.state.product_ids),
            headers=self.headers,
            catch_response=True,
            name="POST /cart/add",
        ) as resp:
            if resp.status_code == 200:
                self.state.cart_items = len(resp.json()["items"])
            else:
                resp.failure(f"{label} failed: {resp.status_code} — {extract_error_detail(resp)}")

    def checkout(self, coupon_code=None):
        with self.client.post(
            "/orders",
            json=checkout_data(coupon_code),
            headers=self.headers,
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                body = resp.json()
                self.state.order_id = body["id"]
                self.state.order_number = body["order_number"]
            else:
                resp.failure(f"Checkout failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()


class BrowseAndAbandonJourney(_ShopperJourney):
    """Add items -> Change quantity -> Remove one -> Clear the cart.

    Models a browsing shopper who never checks out.
    """

    @task
    def view_cart(self):
        with self.client.get("/cart", headers=self.headers, catch_response=True, name="GET /cart") as resp:
            if resp.status_code != 200:
                resp.failure(f"View cart failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def add_items(self):
        for _ in range(3):
            self.add_item()

    @task
    def change_quantity(self):
        product_id = self.state.product_ids[0]
        self.client.post(
            "/cart/add",
            json={"product_id": product_id, "quantity": 1},
            headers=self.headers,
            name="POST /cart/add",
        )
        with self.client.put(
            "/cart/update",
            json={"product_id": product_id, "quantity": 2},
            headers=self.headers,
            catch_response=True,
            name="PUT /cart/update",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Update cart failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def remove_item(self):
        with self.client.delete(
            f"/cart/remove/{self.state.product_ids[0]}",
            headers=self.headers,
            catch_response=True,
            name="DELETE /cart/remove/{product_id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Remove item failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def abandon(self):
        with self.client.delete("/cart/clear", headers=self.headers, catch_response=True, name="DELETE /cart/clear") as resp:
            if resp.status_code != 200:
                resp.failure(f"Clear cart failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CheckoutJourney(_ShopperJourney):
    """Add items -> Place order -> View order -> Track it -> List orders.

    The happy path from cart to a pending order.
    """

    @task
    def fill_cart(self):
        for _ in range(2):
            self.add_item()

    @task
    def place_order(self):
        self.checkout()

    @task
    def view_order(self):
        with self.client.get(
            f"/orders/{self.state.order_id}",
            headers=self.headers,
            catch_response=True,
            name="GET /orders/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"View order failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def track_order(self):
        with self.client.get(
            f"/orders/track/{self.state.order_number}",
            headers=self.headers,
            catch_response=True,
            name="GET /orders/track/{order_number}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Track order failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def list_orders(self):
        self.client.get("/orders", headers=self.headers, name="GET /orders")

    @task
    def done(self):
        self.interrupt()


class CancellationJourney(_ShopperJourney):
    """Add an item -> Place order -> Cancel it.

    Exercises the stock release path under load.
    """

    @task
    def fill_cart(self):
        self.add_item()

    @task
    def place_order(self):
        self.checkout()

    @task
    def cancel(self):
        with self.client.put(
            f"/orders/{self.state.order_id}/cancel",
            json={"reason": "Changed my mind"},
            headers=self.headers,
            catch_response=True,
            name="PUT /orders/{id}/cancel",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Cancel failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CouponCheckoutJourney(_ShopperJourney):
    """Admin creates a coupon -> Shopper fills cart -> Quotes it -> Applies it -> Checks out."""

    @task
    def create_coupon(self):
        payload = coupon_data()
        with self.client.post(
            "/admin/coupons",
            json=payload,
            headers=admin_headers(),
            catch_response=True,
            name="POST /admin/coupons",
        ) as resp:
            if resp.status_code == 201:
                self.state.coupon_code = payload["code"]
            else:
                resp.failure(f"Create coupon failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def fill_cart(self):
        for _ in range(3):
            self.add_item()

    @task
    def quote_coupon(self):
        # Not meeting the minimum order is an expected outcome
        with self.client.post(
            "/orders/validate-coupon",
            json={"code": self.state.coupon_code, "total": 1000.0},
            headers=self.headers,
            catch_response=True,
            name="POST /orders/validate-coupon",
        ) as resp:
            if resp.status_code not in (200, 400):
                resp.failure(f"Quote coupon failed: {resp.status_code} — {extract_error_detail(resp)}")
            else:
                resp.success()

    @task
    def apply_coupon(self):
        with self.client.post(
            "/cart/apply-coupon",
            json={"code": self.state.coupon_code},
            headers=self.headers,
            catch_response=True,
            name="POST /cart/apply-coupon",
        ) as resp:
            if resp.status_code not in (200, 400):
                resp.failure(f"Apply coupon failed: {resp.status_code} — {extract_error_detail(resp)}")
            else:
                resp.success()

    @task
    def place_order(self):
        self.checkout(self.state.coupon_code)

    @task
    def done(self):
        self.interrupt()


class FulfilmentJourney(_ShopperJourney):
    """Shopper checks out -> Admin records payment -> Admin walks the order to delivered."""

    def on_start(self):
        super().on_start()
        self.fulfilment = FulfilmentState()

    @task
    def fill_cart(self):
        self.add_item()

    @task
    def place_order(self):
        self.checkout()
        self.fulfilment.order_id = self.state.order_id

    @task
    def record_payment(self):
        with self.client.put(
            f"/admin/orders/{self.fulfilment.order_id}/payment",
            json={"status": "paid", "transaction_id": f"txn-{self.state.order_number}"},
            headers=admin_headers(),
            catch_response=True,
            name="PUT /admin/orders/{id}/payment",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Record payment failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def advance_to_delivered(self):
        for status in self.fulfilment.statuses:
            with self.client.put(
                f"/admin/orders/{self.fulfilment.order_id}/status",
                json=status_update_data(status),
                headers=admin_headers(),
                catch_response=True,
                name="PUT /admin/orders/{id}/status",
            ) as resp:
                if resp.status_code == 200:
                    self.fulfilment.current_status = status
                else:
                    resp.failure(f"Move to {status} failed: {resp.status_code} — {extract_error_detail(resp)}")
                    self.interrupt()

    @task
    def done(self):
        self.interrupt()
