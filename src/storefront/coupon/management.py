"""Coupon administration: create and deactivate discount codes."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon, DiscountType, normalize_code
from storefront.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.command(part_of=Coupon)
class CreateCoupon:
    code = String(required=True, max_length=50)
    discount_type = String(required=True, choices=DiscountType)
    value = Float(required=True, min_value=0.0)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    minimum_order_amount = Float(default=0.0, min_value=0.0)
    maximum_discount_amount = Float(min_value=0.0)
    usage_limit = Integer(min_value=1)
    description = Text()


@storefront.command(part_of=Coupon)
class DeactivateCoupon:
    code = String(required=True, max_length=50)


@storefront.command_handler(part_of=Coupon)
class CouponManagementHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        try:
            repo.find_by_code(command.code)
        except ObjectNotFoundError:
            pass
        else:
            raise ValidationError({"code": [f"Coupon {normalize_code(command.code)} already exists"]})

        coupon = Coupon.create(
            code=command.code,
            discount_type=command.discount_type,
            value=command.value,
            start_date=command.start_date,
            end_date=command.end_date,
            minimum_order_amount=command.minimum_order_amount,
            maximum_discount_amount=command.maximum_discount_amount,
            usage_limit=command.usage_limit,
            description=command.description,
        )
        repo.add(coupon)
        logger.info("coupon_created", code=coupon.code, discount_type=coupon.discount_type, value=coupon.value)
        return str(coupon.id)

    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.find_by_code(command.code)
        coupon.deactivate()
        repo.add(coupon)
        logger.info("coupon_deactivated", code=coupon.code)
