"""Product administration: register, restock and change availability."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product, ProductStatus
from storefront.domain import storefront
from storefront.inventory.ledger import InventoryLedger

logger = structlog.get_logger(__name__)


@storefront.command(part_of=Product)
class RegisterProduct:
    name = String(required=True, max_length=200)
    sku = String(required=True, max_length=50)
    price = Float(required=True, min_value=0.0)
    stock = Integer(default=0, min_value=0)
    low_stock_threshold = Integer(default=10, min_value=0)
    weight = Float(default=0.0, min_value=0.0)
    description = Text()
    sale_price = Float(min_value=0.0)
    sale_start_date = DateTime()
    sale_end_date = DateTime()


@storefront.command(part_of=Product)
class RestockProduct:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of=Product)
class ChangeProductStatus:
    product_id = Identifier(required=True)
    status = String(required=True, choices=ProductStatus)


@storefront.command_handler(part_of=Product)
class ProductManagementHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        repo = current_domain.repository_for(Product)
        if repo.find_by_sku(command.sku) is not None:
            raise ValidationError({"sku": [f"A product with SKU {command.sku.upper()} already exists"]})

        product = Product.register(
            name=command.name,
            sku=command.sku,
            price=command.price,
            stock=command.stock,
            low_stock_threshold=command.low_stock_threshold,
            weight=command.weight,
            description=command.description,
            sale_price=command.sale_price,
            sale_start_date=command.sale_start_date,
            sale_end_date=command.sale_end_date,
        )
        repo.add(product)
        logger.info("product_registered", product_id=str(product.id), sku=product.sku, stock=product.stock)
        return str(product.id)

    @handle(RestockProduct)
    def restock_product(self, command):
        return InventoryLedger().restock(command.product_id, command.quantity)

    @handle(ChangeProductStatus)
    def change_product_status(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.find(command.product_id)
        product.change_status(ProductStatus(command.status))
        repo.add(product)
        logger.info("product_status_changed", product_id=str(product.id), status=product.status)
        return product.status
