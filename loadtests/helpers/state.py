"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; nothing is shared
between simulated shoppers except the seeded catalogue.
"""

from dataclasses import dataclass, field


@dataclass
class ShopperState:
    """Tracks state for a single simulated shopper."""

    user_id: str | None = None
    product_ids: list[str] = field(default_factory=list)
    cart_items: int = 0
    coupon_code: str | None = None
    order_id: str | None = None
    order_number: str | None = None


@dataclass
class FulfilmentState:
    """Tracks an order as an admin walks it through fulfilment."""

    order_id: str | None = None
    current_status: str = "pending"
    statuses: list[str] = field(
        default_factory=lambda: ["confirmed", "processing", "shipped", "out_for_delivery", "delivered"]
    )
