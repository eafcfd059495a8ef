"""Application tests for coupon administration commands."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from storefront.coupon.coupon import Coupon
from storefront.coupon.management import CreateCoupon, DeactivateCoupon, UpdateCoupon
from storefront.coupon.validation import validate_coupon
from storefront.errors import CouponNotFound


def _create(**overrides):
    terms = {
        "code": "launch20",
        "description": "Launch offer",
        "discount_type": "percentage",
        "discount_value": 20.0,
        "max_discount": 300.0,
        "usage_limit": 100,
        "valid_until": datetime.now(UTC) + timedelta(days=7),
    }
    terms.update(overrides)
    return current_domain.process(CreateCoupon(**terms), asynchronous=False)


class TestCreateCoupon:
    def test_creates_coupon(self):
        coupon_id = _create()
        coupon = current_domain.repository_for(Coupon).get(coupon_id)

        assert coupon.code == "LAUNCH20"
        assert coupon.discount_value == 20.0
        assert coupon.used_count == 0
        assert coupon.user_usage_limit == 1
        assert coupon.valid_from <= datetime.now(UTC)

    def test_duplicate_code_rejected(self):
        _create()
        with pytest.raises(ValidationError) as exc:
            _create(code="Launch20")
        assert "code" in exc.value.messages

    def test_invalid_discount_type(self):
        with pytest.raises(ValidationError):
            _create(discount_type="bogus")


class TestUpdateCoupon:
    def test_updates_terms(self):
        coupon_id = _create()
        current_domain.process(
            UpdateCoupon(coupon_id=coupon_id, discount_value=25.0, min_order_amount=999.0),
            asynchronous=False,
        )
        coupon = current_domain.repository_for(Coupon).get(coupon_id)
        assert coupon.discount_value == 25.0
        assert coupon.min_order_amount == 999.0
        assert coupon.description == "Launch offer"

    def test_update_preserves_redemption_count(self):
        coupon_id = _create()
        repo = current_domain.repository_for(Coupon)
        repo.redeem("LAUNCH20", "user-1", 1000.0)

        current_domain.process(UpdateCoupon(coupon_id=coupon_id, description="Extended"), asynchronous=False)

        coupon = repo.get(coupon_id)
        assert coupon.description == "Extended"
        assert coupon.used_count == 1

    def test_window_must_stay_ordered(self):
        coupon_id = _create()
        with pytest.raises(ValidationError):
            current_domain.process(
                UpdateCoupon(coupon_id=coupon_id, valid_until=datetime.now(UTC) - timedelta(days=30)),
                asynchronous=False,
            )


class TestDeactivateCoupon:
    def test_deactivated_coupon_cannot_be_validated(self):
        coupon_id = _create()
        current_domain.process(DeactivateCoupon(coupon_id=coupon_id), asynchronous=False)

        assert current_domain.repository_for(Coupon).get(coupon_id).is_active is False
        with pytest.raises(CouponNotFound):
            validate_coupon("LAUNCH20", 1000.0, "user-1")
