"""Pricing calculator — subtotal, delivery charge and total for a set of lines.

Pure functions shared by the cart (display totals) and checkout (settlement
totals). All discount amounts are rounded half-up to whole currency units.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass

FREE_DELIVERY_THRESHOLD = 499
DELIVERY_CHARGE = 40


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: float
    discount: float
    coupon_discount: float
    delivery_charge: float
    total: float


def round_currency(amount) -> int:
    """Round half-up to a whole currency unit (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(amount + 0.5))


def final_unit_price(price, discount_percent=0):
    """Price after the product's own percentage discount."""
    if not discount_percent or discount_percent <= 0:
        return price
    return price - round_currency(price * discount_percent / 100)


def delivery_charge_for(subtotal):
    return 0 if subtotal >= FREE_DELIVERY_THRESHOLD else DELIVERY_CHARGE


def calculate(lines: Iterable[tuple[float, int]], discount=0, coupon_discount=0) -> PriceBreakdown:
    """Price a collection of ``(unit_price, quantity)`` lines.

    The coupon discount is clamped to whatever remains of the subtotal after
    the regular discount, so the total never drops below the delivery charge.
    The clamped value is the one reported back.
    """
    subtotal = sum(price * quantity for price, quantity in lines)
    discount = discount or 0
    applied_coupon = min(coupon_discount or 0, max(subtotal - discount, 0))
    delivery_charge = delivery_charge_for(subtotal)
    total = subtotal - discount - applied_coupon + delivery_charge
    return PriceBreakdown(
        subtotal=subtotal,
        discount=discount,
        coupon_discount=applied_coupon,
        delivery_charge=delivery_charge,
        total=total,
    )
