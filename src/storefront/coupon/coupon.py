"""Coupon aggregate (CQRS) and its redemption ledger.

A coupon is looked up by code (stored upper-case, matched
case-insensitively) and discounts a cart subtotal by a percentage (capped
by ``max_discount``) or by a fixed amount.

Validating a coupon has no side effects. A redemption is committed only
when an order is placed: ``CouponRepository.redeem`` bumps ``used_count``
with a conditional update bounded by ``usage_limit`` and records a
``CouponRedemption`` for the user.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain
from protean.utils.query import Q

from storefront.domain import storefront
from storefront.errors import (
    CouponConflict,
    CouponExpired,
    CouponNotFound,
    CouponNotYetActive,
    MinimumOrderNotMet,
    UsageLimitReached,
    UserUsageLimitReached,
)
from storefront.shared.pricing import round_currency

logger = structlog.get_logger(__name__)

MAX_REDEMPTION_ATTEMPTS = 5

# Fields an administrator may change after creation. Counters are excluded.
EDITABLE_TERMS = (
    "description",
    "discount_type",
    "discount_value",
    "max_discount",
    "min_order_amount",
    "usage_limit",
    "user_usage_limit",
    "valid_from",
    "valid_until",
    "is_active",
)


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def normalize_code(code):
    return (code or "").strip().upper()


def _as_utc(moment):
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


@storefront.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    description = String(max_length=500)
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Float(required=True, min_value=0.0)
    max_discount = Float(min_value=0.0)  # Percentage coupons only
    min_order_amount = Float(default=0.0, min_value=0.0)
    usage_limit = Integer(min_value=0)  # None means unlimited
    used_count = Integer(default=0, min_value=0)
    user_usage_limit = Integer(default=1, min_value=1)
    valid_from = DateTime(required=True)
    valid_until = DateTime(required=True)
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def validity_window_must_be_ordered(self):
        if self.valid_from and self.valid_until and _as_utc(self.valid_until) <= _as_utc(self.valid_from):
            raise ValidationError({"valid_until": ["Coupon must expire after it becomes valid"]})

    @invariant.post
    def percentage_cannot_exceed_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and (self.discount_value or 0) > 100:
            raise ValidationError({"discount_value": ["Percentage discount cannot exceed 100"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        discount_type,
        discount_value,
        valid_until,
        valid_from=None,
        description=None,
        max_discount=None,
        min_order_amount=0.0,
        usage_limit=None,
        user_usage_limit=1,
    ):
        now = datetime.now(UTC)
        return cls(
            code=normalize_code(code),
            description=description,
            discount_type=discount_type,
            discount_value=discount_value,
            max_discount=max_discount,
            min_order_amount=min_order_amount or 0.0,
            usage_limit=usage_limit,
            used_count=0,
            user_usage_limit=user_usage_limit or 1,
            valid_from=_as_utc(valid_from) or now,
            valid_until=_as_utc(valid_until),
            is_active=True,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------
    def discount_for(self, subtotal):
        """Discount this coupon grants on ``subtotal``, in whole currency units for percentages."""
        if self.discount_type == DiscountType.PERCENTAGE.value:
            discount = round_currency(subtotal * self.discount_value / 100)
            if self.max_discount and discount > self.max_discount:
                discount = self.max_discount
            return discount
        return self.discount_value

    def check_redeemable(self, subtotal, user_redemptions, now=None):
        """Raise the first rule broken by a user with ``user_redemptions`` prior uses ordering ``subtotal``."""
        now = _as_utc(now) or datetime.now(UTC)

        if now < _as_utc(self.valid_from):
            raise CouponNotYetActive("Coupon is not active yet", code=self.code)
        if now > _as_utc(self.valid_until):
            raise CouponExpired("Coupon has expired", code=self.code)
        if self.usage_limit is not None and self.used_count >= self.usage_limit:
            raise UsageLimitReached("Coupon usage limit reached", code=self.code)
        if user_redemptions >= self.user_usage_limit:
            raise UserUsageLimitReached("You have already used this coupon", code=self.code)
        if subtotal < (self.min_order_amount or 0):
            raise MinimumOrderNotMet(
                f"Minimum order amount of {self.min_order_amount:g} required",
                code=self.code,
                min_order_amount=self.min_order_amount,
            )

    def revise(self, **terms):
        """Change administrative terms; counters are not editable."""
        for name in terms:
            if name not in EDITABLE_TERMS:
                raise ValidationError({name: ["Field cannot be changed"]})

        with atomic_change(self):
            for name, value in terms.items():
                if name in ("valid_from", "valid_until"):
                    value = _as_utc(value)
                setattr(self, name, value)
            self.updated_at = datetime.now(UTC)

    def deactivate(self):
        self.is_active = False
        self.updated_at = datetime.now(UTC)

    def summary(self):
        return {
            "id": str(self.id),
            "code": self.code,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "max_discount": self.max_discount,
            "min_order_amount": self.min_order_amount,
            "usage_limit": self.usage_limit,
            "used_count": self.used_count,
            "user_usage_limit": self.user_usage_limit,
            "valid_from": self.valid_from,
            "valid_until": self.valid_until,
            "is_active": self.is_active,
        }


@storefront.aggregate
class CouponRedemption:
    """One use of a coupon by a user, recorded when the order is placed."""

    coupon_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    user_id = Identifier(required=True)
    order_id = Identifier()
    redeemed_at = DateTime(required=True)


@storefront.repository(part_of=CouponRedemption)
class CouponRedemptionRepository:
    def count_for(self, coupon_id, user_id) -> int:
        results = self._dao.query.filter(coupon_id=str(coupon_id), user_id=str(user_id)).all()
        return results.total if results else 0

    def discard(self, redemption):
        self._dao.delete(redemption)


@storefront.repository(part_of=Coupon)
class CouponRepository:
    """Coupon persistence, lookup by code and the atomic redemption counter."""

    def find_by_code(self, code) -> Coupon | None:
        results = self._dao.query.filter(code=normalize_code(code)).all()
        return results.first if results and results.items else None

    def find_active_by_code(self, code) -> Coupon | None:
        results = self._dao.query.filter(code=normalize_code(code), is_active=True).all()
        return results.first if results and results.items else None

    def list_all(self, offset=0, limit=50):
        return self._dao.query.order_by("-created_at").offset(offset).limit(limit).all()

    def save_terms(self, coupon):
        """Persist edited terms without overwriting ``used_count``."""
        self._dao._update_all(
            Q(id=str(coupon.id)),
            {"updated_at": coupon.updated_at, **{name: getattr(coupon, name) for name in EDITABLE_TERMS}},
        )

    def redeem(self, code, user_id, subtotal, order_id=None, now=None) -> CouponRedemption:
        """Commit one redemption of ``code`` by ``user_id``.

        Every attempt re-reads the coupon and re-checks all limits, then bumps
        ``used_count`` only if nobody else did in between.
        """
        redemptions = current_domain.repository_for(CouponRedemption)

        for attempt in range(1, MAX_REDEMPTION_ATTEMPTS + 1):
            coupon = self.find_active_by_code(code)
            if coupon is None:
                raise CouponNotFound("Invalid coupon code", code=normalize_code(code))

            coupon.check_redeemable(subtotal, redemptions.count_for(coupon.id, user_id), now)

            if self._compare_and_swap(coupon, used_count=coupon.used_count + 1):
                redemption = CouponRedemption(
                    coupon_id=str(coupon.id),
                    code=coupon.code,
                    user_id=str(user_id),
                    order_id=str(order_id) if order_id else None,
                    redeemed_at=_as_utc(now) or datetime.now(UTC),
                )
                redemptions.add(redemption)
                return redemption

            logger.debug("Coupon redeemed concurrently, retrying", coupon_code=coupon.code, attempt=attempt)

        raise CouponConflict("Coupon is being redeemed by others, please retry", code=normalize_code(code))

    def revoke(self, redemption):
        """Undo a redemption: give the use back and drop the record."""
        for _ in range(MAX_REDEMPTION_ATTEMPTS):
            coupon = self._dao.get(str(redemption.coupon_id))
            if self._compare_and_swap(coupon, used_count=max(coupon.used_count - 1, 0)):
                current_domain.repository_for(CouponRedemption).discard(redemption)
                return

        raise CouponConflict("Coupon is being redeemed by others, please retry", code=redemption.code)

    def _compare_and_swap(self, coupon, **changes) -> bool:
        claimed = self._dao._claim(
            Q(id=str(coupon.id), used_count=coupon.used_count),
            {"updated_at": datetime.now(UTC), **changes},
            limit=1,
        )
        return bool(claimed)
