from protean.exceptions import ObjectNotFoundError

from storefront.domain import storefront
from storefront.order.order import Order


@storefront.repository(part_of=Order)
class OrderRepository:
    def find(self, order_id) -> Order:
        try:
            return self.get(str(order_id))
        except ObjectNotFoundError:
            raise ObjectNotFoundError({"order_id": [f"Order {order_id} does not exist"]}) from None

    def find_by_number(self, order_number: str) -> Order | None:
        results = self._dao.query.filter(order_number=order_number).all().items
        return results[0] if results else None

    def for_owner(self, owner_key: str) -> list[Order]:
        orders = self._dao.query.filter(owner_key=str(owner_key)).all().items
        return sorted(orders, key=lambda order: order.created_at, reverse=True)

    def paid_for(self, owner_key: str) -> list[Order]:
        orders = self._dao.query.filter(owner_key=str(owner_key), is_paid=True).all().items
        return sorted(orders, key=lambda order: order.paid_at, reverse=True)
