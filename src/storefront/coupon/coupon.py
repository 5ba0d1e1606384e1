"""Coupon aggregate: a discount code with a validity window and usage limit."""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text

from storefront.coupon.events import CouponCreated, CouponDeactivated, CouponRedeemed
from storefront.domain import storefront
from storefront.errors import ConflictError
from storefront.shared.clock import as_utc


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


@storefront.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    description = Text()
    discount_type = String(required=True, choices=DiscountType)
    value = Float(required=True, min_value=0.0)
    minimum_order_amount = Float(default=0.0, min_value=0.0)
    maximum_discount_amount = Float(min_value=0.0)  # Caps percentage discounts
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    usage_limit = Integer(min_value=1)  # None means unlimited
    usage_count = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    created_at = DateTime()

    @invariant.post
    def percentage_cannot_exceed_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and self.value > 100:
            raise ValidationError({"value": ["Percentage discount cannot exceed 100"]})

    @invariant.post
    def window_must_be_ordered(self):
        if self.start_date and self.end_date and as_utc(self.end_date) <= as_utc(self.start_date):
            raise ValidationError({"end_date": ["End date must be after start date"]})

    @invariant.post
    def usage_cannot_exceed_limit(self):
        if self.usage_limit is not None and self.usage_count > self.usage_limit:
            raise ValidationError({"usage_count": ["Usage count cannot exceed the usage limit"]})

    @classmethod
    def create(
        cls,
        code,
        discount_type,
        value,
        start_date,
        end_date,
        minimum_order_amount=0.0,
        maximum_discount_amount=None,
        usage_limit=None,
        description=None,
    ):
        now = datetime.now(UTC)
        coupon = cls(
            code=normalize_code(code),
            description=description,
            discount_type=DiscountType(discount_type).value,
            value=value,
            minimum_order_amount=minimum_order_amount or 0.0,
            maximum_discount_amount=maximum_discount_amount,
            start_date=as_utc(start_date),
            end_date=as_utc(end_date),
            usage_limit=usage_limit,
            usage_count=0,
            is_active=True,
            created_at=now,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                discount_type=coupon.discount_type,
                value=coupon.value,
                created_at=now,
            )
        )
        return coupon

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    def assert_redeemable(self, at: datetime | None = None) -> None:
        """Raise ``ConflictError`` unless the coupon can be used right now."""
        at = as_utc(at) or datetime.now(UTC)

        if not self.is_active:
            raise ConflictError({"coupon_code": [f"Coupon {self.code} is no longer active"]})
        if at < as_utc(self.start_date):
            raise ConflictError({"coupon_code": [f"Coupon {self.code} is not valid yet"]})
        if at > as_utc(self.end_date):
            raise ConflictError({"coupon_code": [f"Coupon {self.code} has expired"]})
        if self.is_exhausted:
            raise ConflictError({"coupon_code": [f"Coupon {self.code} has reached its usage limit"]})

    def calculate_discount(self, subtotal: float) -> float:
        """Discount for ``subtotal``: zero below the minimum, never more than the subtotal."""
        if subtotal < (self.minimum_order_amount or 0.0):
            return 0.0

        if self.discount_type == DiscountType.PERCENTAGE.value:
            discount = subtotal * self.value / 100
            if self.maximum_discount_amount is not None:
                discount = min(discount, self.maximum_discount_amount)
        else:
            discount = self.value

        return round(min(discount, subtotal), 2)

    def record_usage(self) -> None:
        if not self.is_active:
            raise ConflictError({"coupon_code": [f"Coupon {self.code} is no longer active"]})
        if self.is_exhausted:
            raise ConflictError({"coupon_code": [f"Coupon {self.code} has reached its usage limit"]})

        self.usage_count += 1
        self.raise_(
            CouponRedeemed(
                coupon_id=str(self.id),
                code=self.code,
                usage_count=self.usage_count,
                usage_limit=self.usage_limit,
                redeemed_at=datetime.now(UTC),
            )
        )

    def deactivate(self) -> None:
        if not self.is_active:
            return

        self.is_active = False
        self.raise_(
            CouponDeactivated(
                coupon_id=str(self.id),
                code=self.code,
                deactivated_at=datetime.now(UTC),
            )
        )
