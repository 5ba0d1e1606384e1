"""Coupon Engine: prices a discount code against a subtotal and counts its uses."""

from dataclasses import dataclass
from datetime import datetime

import structlog
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon, normalize_code
from storefront.shared.concurrency import with_version_retry

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CouponQuote:
    code: str
    subtotal: float
    discount_amount: float
    minimum_order_amount: float

    @property
    def applies(self) -> bool:
        return self.discount_amount > 0


class CouponEngine:
    def __init__(self, coupons=None):
        self.coupons = coupons or current_domain.repository_for(Coupon)

    def validate(self, code: str, subtotal: float, at: datetime | None = None) -> CouponQuote:
        """Price ``code`` against ``subtotal``.

        Unknown codes raise ``ObjectNotFoundError``; inactive, out-of-window
        or exhausted coupons raise ``ConflictError``. A subtotal below the
        coupon's minimum yields a zero discount rather than an error.
        """
        coupon = self.coupons.find_by_code(code)
        coupon.assert_redeemable(at)

        return CouponQuote(
            code=coupon.code,
            subtotal=subtotal,
            discount_amount=coupon.calculate_discount(subtotal),
            minimum_order_amount=coupon.minimum_order_amount or 0.0,
        )

    def increment_usage(self, code: str) -> int:
        """Consume one use. The write only lands while ``usage_count < usage_limit``."""

        def attempt():
            coupon = self.coupons.find_by_code(code)
            coupon.record_usage()
            self.coupons.add(coupon)
            return coupon.usage_count

        usage_count = with_version_retry(attempt, label="coupon redemption")
        logger.info("coupon_redeemed", code=normalize_code(code), usage_count=usage_count)
        return usage_count

    def release_usage(self, code: str) -> int:
        """Give back one use consumed by an order whose creation was rolled back."""

        def attempt():
            coupon = self.coupons.find_by_code(code)
            coupon.usage_count = max((coupon.usage_count or 0) - 1, 0)
            self.coupons.add(coupon)
            return coupon.usage_count

        return with_version_retry(attempt, label="coupon release")
