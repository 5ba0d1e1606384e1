"""Inventory Ledger: conditional stock reservation against the Product aggregate.

Every movement is a read, check and versioned write. A concurrent writer bumps
the product's version, so the stale write fails and the ledger re-reads and
checks again; stock can therefore never be taken below zero, no matter how
reservations interleave.
"""

import structlog
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.shared.concurrency import with_version_retry

logger = structlog.get_logger(__name__)


class InventoryLedger:
    def __init__(self, products=None, max_attempts: int | None = None):
        self.products = products or current_domain.repository_for(Product)
        self.max_attempts = max_attempts

    def reserve(self, product_id, quantity: int) -> int:
        """Take ``quantity`` units. Returns remaining stock; raises ``InsufficientStock``."""

        def attempt():
            product = self.products.find(product_id)
            product.reserve(quantity)
            self.products.add(product)
            return product.stock

        remaining = with_version_retry(attempt, label="stock reservation", max_attempts=self.max_attempts)
        logger.info("stock_reserved", product_id=str(product_id), quantity=quantity, remaining=remaining)
        return remaining

    def release(self, product_id, quantity: int) -> int:
        """Give back ``quantity`` previously reserved units. Returns the new stock level."""

        def attempt():
            product = self.products.find(product_id)
            product.release(quantity)
            self.products.add(product)
            return product.stock

        remaining = with_version_retry(attempt, label="stock release", max_attempts=self.max_attempts)
        logger.info("stock_released", product_id=str(product_id), quantity=quantity, remaining=remaining)
        return remaining

    def restock(self, product_id, quantity: int) -> int:
        def attempt():
            product = self.products.find(product_id)
            product.restock(quantity)
            self.products.add(product)
            return product.stock

        remaining = with_version_retry(attempt, label="restock", max_attempts=self.max_attempts)
        logger.info("stock_received", product_id=str(product_id), quantity=quantity, stock=remaining)
        return remaining

    def available(self, product_id) -> int:
        return self.products.find(product_id).stock
