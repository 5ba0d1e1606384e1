from protean.exceptions import ObjectNotFoundError

from storefront.coupon.coupon import Coupon, normalize_code
from storefront.domain import storefront


@storefront.repository(part_of=Coupon)
class CouponRepository:
    def find_by_code(self, code: str) -> Coupon:
        """Case-insensitive lookup; raises ``ObjectNotFoundError`` for unknown codes."""
        normalized = normalize_code(code)
        results = self._dao.query.filter(code=normalized).all().items
        if not results:
            raise ObjectNotFoundError({"coupon_code": [f"Coupon {normalized} does not exist"]})
        return results[0]
