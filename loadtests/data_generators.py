"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the API's Pydantic request
schemas and the domain's own rules (coupon codes are upper-cased, prices
are non-negative, addresses carry every field checkout requires).
"""

import random
import uuid
from datetime import UTC, datetime, timedelta

from faker import Faker

fake = Faker("en_IN")


def shopper_id() -> str:
    """Generate an opaque user id for the X-User-Id header."""
    return f"lt-user-{uuid.uuid4().hex[:12]}"


def shopper_headers(user_id: str) -> dict:
    return {"X-User-Id": user_id}


def admin_headers() -> dict:
    return {"X-User-Id": "lt-admin", "X-User-Role": "admin"}


# ---------- Catalogue ----------


def product_data() -> dict:
    """Generate CreateProductRequest payload."""
    word = fake.word().capitalize()
    return {
        "name": f"{word} {fake.color_name()} {uuid.uuid4().hex[:4]}"[:200],
        "price": round(random.uniform(49.0, 2499.0), 2),
        "discount": random.choice([0.0, 0.0, 5.0, 10.0, 25.0]),
        "stock": random.randint(500, 5000),
        "image": fake.image_url(),
    }


# ---------- Coupons ----------


def coupon_code(prefix: str = "LT") -> str:
    return f"{prefix}{uuid.uuid4().hex[:8].upper()}"


def coupon_data(usage_limit: int | None = None) -> dict:
    """Generate CreateCouponRequest payload valid for the next week."""
    now = datetime.now(UTC)
    if random.random() < 0.5:
        terms = {"discount_type": "percentage", "discount_value": random.choice([5.0, 10.0, 15.0]), "max_discount": 300.0}
    else:
        terms = {"discount_type": "fixed", "discount_value": random.choice([50.0, 100.0, 200.0])}
    return {
        "code": coupon_code(),
        "description": fake.sentence(nb_words=6),
        "min_order_amount": random.choice([0.0, 299.0, 499.0]),
        "usage_limit": usage_limit,
        "user_usage_limit": 1,
        "valid_from": (now - timedelta(minutes=5)).isoformat(),
        "valid_until": (now + timedelta(days=7)).isoformat(),
        **terms,
    }


# ---------- Cart and checkout ----------


def cart_item_data(product_ids: list[str]) -> dict:
    """Generate AddToCartRequest payload for one of the seeded products."""
    return {"product_id": random.choice(product_ids), "quantity": random.randint(1, 3)}


def shipping_address() -> dict:
    return {
        "full_name": fake.name()[:100],
        "phone": f"9{random.randint(100000000, 999999999)}",
        "address_line1": fake.street_address()[:200],
        "city": fake.city()[:100],
        "state": fake.state()[:100],
        "zip_code": fake.postcode()[:20],
        "country": "India",
    }


def checkout_data(coupon_code: str | None = None) -> dict:
    """Generate PlaceOrderRequest payload."""
    return {
        "shipping_address": shipping_address(),
        "payment_method": random.choice(["cod", "card", "upi", "netbanking"]),
        "coupon_code": coupon_code,
        "notes": fake.sentence(nb_words=8) if random.random() < 0.2 else None,
    }


def status_update_data(status: str) -> dict:
    """Generate UpdateOrderStatusRequest payload; shipments carry tracking details."""
    payload = {"status": status, "comment": f"Moved to {status} by load test"}
    if status == "shipped":
        payload["tracking_number"] = f"TRK{uuid.uuid4().hex[:10].upper()}"
        payload["tracking_url"] = f"https://track.example.com/{payload['tracking_number']}"
    return payload
