from datetime import UTC, datetime

from storefront.cart.cart import Cart, CartOwner, OwnerKind
from storefront.domain import storefront
from storefront.shared.clock import as_utc


@storefront.repository(part_of=Cart)
class CartRepository:
    def for_owner(self, owner: CartOwner) -> Cart | None:
        results = self._dao.query.filter(owner_kind=owner.kind, owner_key=owner.key).all().items
        return results[0] if results else None

    def expired_anonymous(self, at: datetime | None = None) -> list[Cart]:
        at = as_utc(at) or datetime.now(UTC)
        carts = self._dao.query.filter(owner_kind=OwnerKind.SESSION.value).all().items
        return [cart for cart in carts if cart.is_expired(at)]

    def remove(self, cart: Cart) -> None:
        self._dao.delete(cart)
