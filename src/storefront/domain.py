"""Storefront bounded context — carts, coupons, inventory, checkout and orders.

A single domain so that placing an order (stock reservation, coupon
redemption, order creation and cart clearing) runs inside one unit of work.
"""

from protean.domain import Domain

storefront = Domain(name="storefront")
