"""Product aggregate: the authoritative source of price and stock.

Stock moves only through ``reserve``, ``release`` and ``restock``. Status
follows stock automatically (``active`` <-> ``out_of_stock``) unless an
administrator has taken the product off sale (``inactive`` or
``discontinued``), which stock changes never override.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text

from storefront.catalogue.events import (
    LowStockDetected,
    ProductRegistered,
    ProductStatusChanged,
    StockReceived,
    StockReleased,
    StockReserved,
)
from storefront.domain import storefront
from storefront.errors import InsufficientStock
from storefront.shared.clock import as_utc


class ProductStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"
    OUT_OF_STOCK = "out_of_stock"


@storefront.aggregate
class Product:
    name = String(required=True, max_length=200)
    sku = String(required=True, max_length=50, unique=True)
    description = Text()
    price = Float(required=True, min_value=0.0)
    sale_price = Float(min_value=0.0)
    on_sale = Boolean(default=False)
    sale_start_date = DateTime()
    sale_end_date = DateTime()
    stock = Integer(required=True, min_value=0, default=0)
    low_stock_threshold = Integer(default=10, min_value=0)
    weight = Float(default=0.0, min_value=0.0)  # kilograms
    status = String(choices=ProductStatus, default=ProductStatus.ACTIVE.value)
    total_sold = Integer(default=0, min_value=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def status_must_follow_stock(self):
        status = ProductStatus(self.status)
        if status == ProductStatus.ACTIVE and self.stock == 0:
            raise ValidationError({"status": ["A product without stock cannot be active"]})
        if status == ProductStatus.OUT_OF_STOCK and self.stock > 0:
            raise ValidationError({"status": ["A product with stock cannot be out of stock"]})

    @invariant.post
    def sale_price_must_be_below_price(self):
        if self.on_sale and self.sale_price is not None and self.sale_price >= self.price:
            raise ValidationError({"sale_price": ["Sale price must be lower than the regular price"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(
        cls,
        name,
        sku,
        price,
        stock=0,
        low_stock_threshold=10,
        weight=0.0,
        description=None,
        sale_price=None,
        sale_start_date=None,
        sale_end_date=None,
    ):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            sku=sku.strip().upper(),
            description=description,
            price=price,
            sale_price=sale_price,
            on_sale=sale_price is not None,
            sale_start_date=sale_start_date,
            sale_end_date=sale_end_date,
            stock=stock,
            low_stock_threshold=low_stock_threshold,
            weight=weight,
            status=(ProductStatus.ACTIVE if stock > 0 else ProductStatus.OUT_OF_STOCK).value,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=product.name,
                sku=product.sku,
                price=product.price,
                stock=product.stock,
                registered_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def current_price(self, at: datetime | None = None) -> float:
        """Sale price while the sale window is open, the regular price otherwise."""
        if not self.on_sale or self.sale_price is None:
            return self.price

        at = as_utc(at) or datetime.now(UTC)
        if self.sale_start_date and at < as_utc(self.sale_start_date):
            return self.price
        if self.sale_end_date and at > as_utc(self.sale_end_date):
            return self.price
        return self.sale_price

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.low_stock_threshold

    @property
    def is_purchasable(self) -> bool:
        return ProductStatus(self.status) == ProductStatus.ACTIVE and self.stock > 0

    # -------------------------------------------------------------------
    # Stock movements
    # -------------------------------------------------------------------
    def reserve(self, quantity: int) -> None:
        """Take ``quantity`` units out of stock, or raise ``InsufficientStock``."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        if self.stock < quantity:
            raise InsufficientStock(str(self.id), quantity, self.stock)

        previous = self.stock
        now = datetime.now(UTC)
        with atomic_change(self):
            self.stock = previous - quantity
            self.total_sold = (self.total_sold or 0) + quantity
            if self.stock == 0 and ProductStatus(self.status) == ProductStatus.ACTIVE:
                self.status = ProductStatus.OUT_OF_STOCK.value
            self.updated_at = now

        self.raise_(
            StockReserved(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                reserved_at=now,
            )
        )
        self._check_low_stock(previous)

    def release(self, quantity: int) -> None:
        """Return ``quantity`` reserved units; ``total_sold`` is rolled back, floored at 0."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        previous = self.stock
        now = datetime.now(UTC)
        with atomic_change(self):
            self.stock = previous + quantity
            self.total_sold = max((self.total_sold or 0) - quantity, 0)
            self._reactivate_if_restocked()
            self.updated_at = now

        self.raise_(
            StockReleased(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                released_at=now,
            )
        )

    def restock(self, quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        previous = self.stock
        now = datetime.now(UTC)
        with atomic_change(self):
            self.stock = previous + quantity
            self._reactivate_if_restocked()
            self.updated_at = now

        self.raise_(
            StockReceived(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                received_at=now,
            )
        )

    def _reactivate_if_restocked(self):
        if self.stock > 0 and ProductStatus(self.status) == ProductStatus.OUT_OF_STOCK:
            self.status = ProductStatus.ACTIVE.value

    def _check_low_stock(self, previous_stock):
        """Raise LowStockDetected when stock crosses the threshold."""
        if self.stock <= self.low_stock_threshold < previous_stock:
            self.raise_(
                LowStockDetected(
                    product_id=str(self.id),
                    sku=self.sku,
                    current_stock=self.stock,
                    threshold=self.low_stock_threshold,
                    detected_at=datetime.now(UTC),
                )
            )

    # -------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------
    def change_status(self, new_status: ProductStatus) -> None:
        """Set availability by hand. Activating a product without stock parks it as out of stock."""
        if new_status == ProductStatus.OUT_OF_STOCK:
            raise ValidationError({"status": ["Out of stock is derived from stock and cannot be set directly"]})

        if new_status == ProductStatus.ACTIVE and self.stock == 0:
            new_status = ProductStatus.OUT_OF_STOCK

        previous = self.status
        if previous == new_status.value:
            return

        now = datetime.now(UTC)
        self.status = new_status.value
        self.updated_at = now

        self.raise_(
            ProductStatusChanged(
                product_id=str(self.id),
                previous_status=previous,
                new_status=self.status,
                changed_at=now,
            )
        )
