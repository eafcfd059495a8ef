"""Coupon administration — commands and handler."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.coupon.coupon import EDITABLE_TERMS, Coupon, DiscountType
from storefront.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=50)
    description = String(max_length=500)
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Float(required=True, min_value=0.0)
    max_discount = Float(min_value=0.0)
    min_order_amount = Float(default=0.0, min_value=0.0)
    usage_limit = Integer(min_value=0)
    user_usage_limit = Integer(default=1, min_value=1)
    valid_from = DateTime()
    valid_until = DateTime(required=True)


@storefront.command(part_of="Coupon")
class UpdateCoupon:
    coupon_id = Identifier(required=True)
    description = String(max_length=500)
    discount_type = String(choices=DiscountType)
    discount_value = Float(min_value=0.0)
    max_discount = Float(min_value=0.0)
    min_order_amount = Float(min_value=0.0)
    usage_limit = Integer(min_value=0)
    user_usage_limit = Integer(min_value=1)
    valid_from = DateTime()
    valid_until = DateTime()


@storefront.command(part_of="Coupon")
class DeactivateCoupon:
    coupon_id = Identifier(required=True)


@storefront.command_handler(part_of=Coupon)
class ManageCouponHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        if repo.find_by_code(command.code) is not None:
            raise ValidationError({"code": ["Coupon code already exists"]})

        coupon = Coupon.create(
            code=command.code,
            description=command.description,
            discount_type=command.discount_type,
            discount_value=command.discount_value,
            max_discount=command.max_discount,
            min_order_amount=command.min_order_amount,
            usage_limit=command.usage_limit,
            user_usage_limit=command.user_usage_limit,
            valid_from=command.valid_from,
            valid_until=command.valid_until,
        )
        repo.add(coupon)
        logger.info("Coupon created", coupon_code=coupon.code, coupon_id=str(coupon.id))
        return str(coupon.id)

    @handle(UpdateCoupon)
    def update_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)

        terms = {
            name: getattr(command, name)
            for name in EDITABLE_TERMS
            if name != "is_active" and getattr(command, name, None) is not None
        }
        coupon.revise(**terms)
        repo.save_terms(coupon)

    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        coupon.deactivate()
        repo.save_terms(coupon)
        logger.info("Coupon deactivated", coupon_code=coupon.code)

