"""Order Orchestrator: turns a cart into an order and drives the order's lifecycle.

Checkout is a compensating saga inside one request. Stock is reserved line by
line; if any step fails, every reservation granted so far (and a consumed
coupon use) is given back before the error propagates, so a failed checkout
leaves stock, coupons and the cart exactly as they were.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront import settings
from storefront.cart.cart import Cart, CartOwner
from storefront.cart.store import CartStore
from storefront.catalogue.product import Product, ProductStatus
from storefront.coupon.coupon import Coupon
from storefront.coupon.engine import CouponEngine
from storefront.errors import ConflictError, UnauthorizedError
from storefront.inventory.ledger import InventoryLedger
from storefront.order.order import Order, OrderItem, OrderStatus, PaymentMethod, ShippingAddress
from storefront.order.pricing import ShippingMethod, compute_totals, generate_order_number, shipping_cost
from storefront.shared.actor import Actor
from storefront.shared.concurrency import with_version_retry

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class _PricedLine:
    product_id: str
    name: str
    sku: str
    price: float
    quantity: int
    weight: float

    @property
    def subtotal(self) -> float:
        return round(self.price * self.quantity, 2)


class OrderOrchestrator:
    def __init__(self, carts=None, orders=None, products=None, coupons=None, ledger=None):
        self.carts = carts or current_domain.repository_for(Cart)
        self.orders = orders or current_domain.repository_for(Order)
        self.products = products or current_domain.repository_for(Product)
        self.coupons = coupons or current_domain.repository_for(Coupon)
        self.ledger = ledger or InventoryLedger(self.products)
        self.cart_store = CartStore(self.carts, self.products, self.coupons)
        self.coupon_engine = CouponEngine(self.coupons)

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def create_order(
        self,
        owner: CartOwner,
        shipping_address: dict,
        payment_method: str,
        shipping_method: str = ShippingMethod.STANDARD.value,
        coupon_code: str | None = None,
        notes: str | None = None,
    ) -> Order:
        """Materialize the owner's cart as a pending order.

        All or nothing: on any failure no stock stays reserved, no coupon use
        is consumed, no order exists and the cart is untouched.
        """
        address = self._validate_input(shipping_address, payment_method, shipping_method)

        cart = self.cart_store.load(owner)
        if cart is None or not cart.items:
            raise ValidationError({"cart": ["Your cart is empty"]})

        lines = self._price_lines(cart)
        items_price = round(sum(line.subtotal for line in lines), 2)

        code = coupon_code or cart.coupon_code
        discount_amount = 0.0
        if code:
            quote = self.coupon_engine.validate(code, items_price)
            if not quote.applies:
                raise ConflictError(
                    {"coupon_code": [f"Minimum order amount of {quote.minimum_order_amount:.2f} not met for {quote.code}"]}
                )
            code, discount_amount = quote.code, quote.discount_amount

        reserved = self._reserve_all(lines)

        coupon_consumed = False
        try:
            if code:
                self.coupon_engine.increment_usage(code)
                coupon_consumed = True

            weight = sum(line.weight * line.quantity for line in lines)
            totals = compute_totals(
                items_price,
                shipping_cost(address.county, shipping_method, items_price, weight),
                discount_amount,
            )
            order = Order.place(
                order_number=self._unique_order_number(),
                owner_kind=owner.kind,
                owner_key=owner.key,
                items=[
                    OrderItem(
                        product_id=line.product_id,
                        name=line.name,
                        sku=line.sku,
                        price=line.price,
                        quantity=line.quantity,
                        subtotal=line.subtotal,
                    )
                    for line in lines
                ],
                shipping_address=address,
                payment_method=payment_method,
                shipping_method=shipping_method,
                totals=totals,
                currency=settings.store_currency(),
                coupon_code=code,
                notes=notes,
                actor=Actor.customer(owner.key),
            )
            self.orders.add(order)
        except Exception:
            logger.warning("checkout_compensating", owner_kind=owner.kind, reserved_lines=len(reserved))
            self._release_all(reserved)
            if coupon_consumed:
                self.coupon_engine.release_usage(code)
            raise

        self.cart_store.discard(cart)

        logger.info(
            "order_created",
            order_id=str(order.id),
            order_number=order.order_number,
            total_price=order.total_price,
            item_count=len(lines),
            coupon_code=code,
        )
        return order

    def _validate_input(self, shipping_address: dict, payment_method: str, shipping_method: str) -> ShippingAddress:
        errors = {}
        if payment_method not in {m.value for m in PaymentMethod}:
            errors["payment_method"] = [f"Unsupported payment method {payment_method!r}"]
        if shipping_method not in {m.value for m in ShippingMethod}:
            errors["shipping_method"] = [f"Unsupported shipping method {shipping_method!r}"]
        if not shipping_address:
            errors["shipping_address"] = ["Shipping address is required"]
        if errors:
            raise ValidationError(errors)

        return ShippingAddress(**shipping_address)

    def _price_lines(self, cart: Cart) -> list[_PricedLine]:
        """Re-read every product; prices come from the catalogue, not the cart snapshot."""
        lines = []
        for item in cart.lines:
            product = self.products.find(item.product_id)
            if ProductStatus(product.status) != ProductStatus.ACTIVE:
                raise ConflictError({"product_id": [f"{product.name} is no longer available"]})

            lines.append(
                _PricedLine(
                    product_id=str(product.id),
                    name=product.name,
                    sku=product.sku,
                    price=product.current_price(),
                    quantity=item.quantity,
                    weight=product.weight or 0.0,
                )
            )
        return lines

    def _reserve_all(self, lines: list[_PricedLine]) -> list[_PricedLine]:
        reserved = []
        try:
            for line in lines:
                self.ledger.reserve(line.product_id, line.quantity)
                reserved.append(line)
        except Exception:
            logger.warning("reservation_failed", reserved_lines=len(reserved), total_lines=len(lines))
            self._release_all(reserved)
            raise
        return reserved

    def _release_all(self, lines) -> None:
        for line in lines:
            self.ledger.release(line.product_id, line.quantity)

    def _unique_order_number(self) -> str:
        number = generate_order_number()
        while self.orders.find_by_number(number) is not None:
            number = generate_order_number()
        return number

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def update_status(
        self,
        order_id,
        new_status: str,
        actor: Actor,
        note: str | None = None,
        tracking_number: str | None = None,
    ) -> Order:
        """Administrative status change: forward moves, cancellation or refund."""
        target = OrderStatus(new_status)
        if target == OrderStatus.CANCELLED:
            return self.cancel(order_id, actor, note)
        if target == OrderStatus.REFUNDED:
            return self.refund(order_id, actor, note)

        if not actor.is_admin:
            raise UnauthorizedError({"actor": ["Only administrators can change an order's status"]})

        def attempt():
            order = self.orders.find(order_id)
            order.advance_to(target, note=note, actor=actor, tracking_number=tracking_number)
            self.orders.add(order)
            return order

        order = with_version_retry(attempt, label="order status update")
        logger.info("order_status_updated", order_id=str(order.id), status=order.status, actor=str(actor))
        return order

    def cancel(self, order_id, actor: Actor, reason: str | None = None) -> Order:
        """Cancel a pending or confirmed order and return its stock.

        The status change is written first under the order's version, so two
        racing cancellations cannot both release the same stock. Cancelling
        an already-cancelled order changes nothing.
        """
        order = self.orders.find(order_id)
        self._authorize(order, actor)

        def attempt():
            current = self.orders.find(order_id)
            changed = current.cancel(reason=reason, actor=actor)
            if changed:
                self.orders.add(current)
            return current, changed

        order, changed = with_version_retry(attempt, label="order cancellation")
        if not changed:
            logger.info("order_already_cancelled", order_id=str(order.id))
            return order

        for item in order.items:
            self.ledger.release(item.product_id, item.quantity)

        logger.info("order_cancelled", order_id=str(order.id), actor=str(actor), released_lines=len(order.items))
        return order

    def refund(self, order_id, actor: Actor, reason: str | None = None) -> Order:
        if not actor.is_admin:
            raise UnauthorizedError({"actor": ["Only administrators can refund an order"]})

        def attempt():
            order = self.orders.find(order_id)
            order.refund(reason=reason, actor=actor)
            self.orders.add(order)
            return order

        order = with_version_retry(attempt, label="order refund")
        logger.info("order_refunded", order_id=str(order.id), amount=order.total_price)
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_order(self, order_id, actor: Actor) -> Order:
        order = self.orders.find(order_id)
        self._authorize(order, actor)
        return order

    def orders_for(self, actor: Actor) -> list[Order]:
        return self.orders.for_owner(actor.id)

    @staticmethod
    def _authorize(order: Order, actor: Actor) -> None:
        if actor.is_admin or order.is_owned_by(actor.id):
            return
        raise UnauthorizedError({"actor": ["You are not allowed to access this order"]})
