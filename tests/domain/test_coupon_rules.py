"""Coupon validity and discount arithmetic."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError
from storefront.coupon.coupon import Coupon
from storefront.errors import ConflictError

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _coupon(**kwargs):
    defaults = dict(
        code=" save10 ",
        discount_type="percentage",
        value=10.0,
        start_date=NOW - timedelta(days=1),
        end_date=NOW + timedelta(days=1),
    )
    defaults.update(kwargs)
    return Coupon.create(**defaults)


class TestCreation:
    def test_code_is_normalized(self):
        assert _coupon().code == "SAVE10"

    def test_percentage_above_hundred_is_rejected(self):
        with pytest.raises(ValidationError):
            _coupon(value=120.0)

    def test_window_must_end_after_it_starts(self):
        with pytest.raises(ValidationError):
            _coupon(start_date=NOW, end_date=NOW - timedelta(hours=1))


class TestRedeemable:
    def test_active_coupon_in_window_is_redeemable(self):
        _coupon().assert_redeemable(NOW)

    @pytest.mark.parametrize("at", [NOW - timedelta(days=2), NOW + timedelta(days=2)])
    def test_outside_the_window_is_rejected(self, at):
        with pytest.raises(ConflictError):
            _coupon().assert_redeemable(at)

    def test_deactivated_coupon_is_rejected(self):
        coupon = _coupon()
        coupon.deactivate()

        with pytest.raises(ConflictError):
            coupon.assert_redeemable(NOW)

    def test_exhausted_coupon_is_rejected(self):
        coupon = _coupon(usage_limit=1)
        coupon.record_usage()

        assert coupon.is_exhausted
        with pytest.raises(ConflictError):
            coupon.assert_redeemable(NOW)
        with pytest.raises(ConflictError):
            coupon.record_usage()
        assert coupon.usage_count == 1


class TestDiscount:
    def test_percentage_discount(self):
        assert _coupon().calculate_discount(2500.0) == 250.0

    def test_percentage_discount_is_capped(self):
        assert _coupon(maximum_discount_amount=100.0).calculate_discount(2500.0) == 100.0

    def test_fixed_discount_never_exceeds_the_subtotal(self):
        assert _coupon(discount_type="fixed", value=500.0).calculate_discount(300.0) == 300.0

    def test_below_the_minimum_the_discount_is_zero(self):
        coupon = _coupon(minimum_order_amount=1000.0)

        assert coupon.calculate_discount(999.99) == 0.0
        assert coupon.calculate_discount(1000.0) == 100.0
