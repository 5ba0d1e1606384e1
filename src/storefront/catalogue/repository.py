from protean.exceptions import ObjectNotFoundError

from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.repository(part_of=Product)
class ProductRepository:
    def find(self, product_id) -> Product:
        """Load a product or raise ``ObjectNotFoundError`` naming the product."""
        try:
            return self.get(str(product_id))
        except ObjectNotFoundError:
            raise ObjectNotFoundError({"product_id": [f"Product {product_id} does not exist"]}) from None

    def find_by_sku(self, sku: str) -> Product | None:
        results = self._dao.query.filter(sku=sku.strip().upper()).all().items
        return results[0] if results else None

    def low_stock(self) -> list[Product]:
        """Products at or below their low-stock threshold, scarcest first."""
        return sorted((p for p in self._dao.query.all().items if p.is_low_stock), key=lambda p: p.stock)
