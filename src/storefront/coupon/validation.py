"""Coupon validator — checks a code against a cart subtotal without side effects."""

from dataclasses import dataclass

from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon, CouponRedemption, normalize_code
from storefront.errors import CouponNotFound


@dataclass(frozen=True)
class CouponQuote:
    coupon: Coupon
    discount: float


def validate_coupon(code, subtotal, user_id, now=None) -> CouponQuote:
    """Return the discount ``code`` grants on ``subtotal`` for ``user_id``.

    Raises, in order of precedence: CouponNotFound, CouponNotYetActive,
    CouponExpired, UsageLimitReached, UserUsageLimitReached,
    MinimumOrderNotMet. Nothing is committed; see ``CouponRepository.redeem``.
    """
    coupon = current_domain.repository_for(Coupon).find_active_by_code(code)
    if coupon is None:
        raise CouponNotFound("Invalid coupon code", code=normalize_code(code))

    prior_uses = current_domain.repository_for(CouponRedemption).count_for(coupon.id, user_id)
    coupon.check_redeemable(subtotal, prior_uses, now)

    return CouponQuote(coupon=coupon, discount=coupon.discount_for(subtotal))
