"""Cart Store: owner-scoped cart operations and the shopper-facing cart view.

The stored cart keeps every line the shopper added. The view returned by
``get`` hides lines whose product is no longer purchasable, and its totals
cover only the visible lines.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront import settings
from storefront.cart.cart import Cart, CartOwner
from storefront.catalogue.product import Product, ProductStatus
from storefront.coupon.engine import CouponEngine
from storefront.errors import ConflictError, StorefrontError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartLine:
    product_id: str
    name: str
    sku: str
    quantity: int
    unit_price: float
    current_price: float
    line_total: float
    in_stock: int


@dataclass(frozen=True)
class CartSnapshot:
    owner_kind: str
    owner_key: str
    cart_id: str | None = None
    lines: list[CartLine] = field(default_factory=list)
    coupon_code: str | None = None
    discount_amount: float = 0.0
    expires_at: datetime | None = None

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def subtotal(self) -> float:
        return round(sum(line.line_total for line in self.lines), 2)

    @property
    def total(self) -> float:
        return round(max(self.subtotal - self.discount_amount, 0.0), 2)

    @property
    def is_empty(self) -> bool:
        return not self.lines


class CartStore:
    def __init__(self, carts=None, products=None, coupons=None):
        self.carts = carts or current_domain.repository_for(Cart)
        self.products = products or current_domain.repository_for(Product)
        self.coupon_engine = CouponEngine(coupons)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get(self, owner: CartOwner) -> CartSnapshot:
        return self.snapshot(owner, self.load(owner))

    def load(self, owner: CartOwner) -> Cart | None:
        """The owner's stored cart; an expired anonymous cart is purged and treated as absent."""
        cart = self.carts.for_owner(owner)
        if cart is not None and cart.is_expired():
            self.carts.remove(cart)
            logger.info("cart_expired", cart_id=str(cart.id), owner_kind=owner.kind)
            return None
        return cart

    def snapshot(self, owner: CartOwner, cart: Cart | None) -> CartSnapshot:
        if cart is None:
            return CartSnapshot(owner_kind=owner.kind, owner_key=owner.key)

        lines = []
        for item in cart.lines:
            try:
                product = self.products.find(item.product_id)
            except ObjectNotFoundError:
                continue
            if not product.is_purchasable:
                continue

            lines.append(
                CartLine(
                    product_id=str(item.product_id),
                    name=product.name,
                    sku=product.sku,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    current_price=product.current_price(),
                    line_total=round(item.unit_price * item.quantity, 2),
                    in_stock=product.stock,
                )
            )

        return CartSnapshot(
            owner_kind=cart.owner_kind,
            owner_key=cart.owner_key,
            cart_id=str(cart.id),
            lines=lines,
            coupon_code=cart.coupon_code,
            discount_amount=self._visible_discount(cart, lines),
            expires_at=cart.expires_at,
        )

    def _visible_discount(self, cart: Cart, lines: list[CartLine]) -> float:
        """The coupon discount priced against the lines the shopper can see."""
        if not cart.coupon_code:
            return 0.0
        if len(lines) == len(cart.lines):
            return cart.discount_amount or 0.0

        visible_subtotal = round(sum(line.line_total for line in lines), 2)
        try:
            quote = self.coupon_engine.validate(cart.coupon_code, visible_subtotal)
        except (ObjectNotFoundError, StorefrontError):
            return 0.0
        return quote.discount_amount

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, owner: CartOwner, product_id, quantity: int) -> CartSnapshot:
        self._check_quantity(quantity, minimum=1)

        product = self.products.find(product_id)
        if ProductStatus(product.status) != ProductStatus.ACTIVE:
            raise ConflictError({"product_id": [f"{product.name} is not available for purchase"]})
        if product.stock < quantity:
            raise ConflictError({"quantity": [f"Only {product.stock} unit(s) of {product.name} in stock"]})

        cart = self.load(owner) or Cart.create(owner)
        cart.add_item(product.id, quantity, product.current_price())
        self._reprice_coupon(cart)
        self.carts.add(cart)

        logger.info("cart_item_added", cart_id=str(cart.id), product_id=str(product.id), quantity=quantity)
        return self.snapshot(owner, cart)

    def update_quantity(self, owner: CartOwner, product_id, quantity: int) -> CartSnapshot:
        self._check_quantity(quantity, minimum=0)

        cart = self._require_cart(owner)
        if quantity > 0:
            cart.require_line(product_id)
            product = self.products.find(product_id)
            if quantity > product.stock:
                raise ConflictError({"quantity": [f"Only {product.stock} unit(s) of {product.name} in stock"]})

        cart.set_quantity(product_id, quantity)
        self._reprice_coupon(cart)
        self.carts.add(cart)

        logger.info("cart_quantity_updated", cart_id=str(cart.id), product_id=str(product_id), quantity=quantity)
        return self.snapshot(owner, cart)

    def remove_item(self, owner: CartOwner, product_id) -> CartSnapshot:
        cart = self._require_cart(owner)
        cart.remove_item(product_id)
        self._reprice_coupon(cart)
        self.carts.add(cart)

        logger.info("cart_item_removed", cart_id=str(cart.id), product_id=str(product_id))
        return self.snapshot(owner, cart)

    def clear(self, owner: CartOwner) -> CartSnapshot:
        cart = self.load(owner)
        if cart is None:
            return self.snapshot(owner, None)

        cart.clear()
        self.carts.add(cart)
        logger.info("cart_cleared", cart_id=str(cart.id))
        return self.snapshot(owner, cart)

    # -------------------------------------------------------------------
    # Coupons
    # -------------------------------------------------------------------
    def apply_coupon(self, owner: CartOwner, code: str) -> CartSnapshot:
        cart = self.load(owner)
        if cart is None or not cart.items:
            raise ValidationError({"cart": ["Add items to the cart before applying a coupon"]})

        quote = self.coupon_engine.validate(code, cart.subtotal())
        if not quote.applies:
            raise ConflictError(
                {"coupon_code": [f"Minimum order amount of {quote.minimum_order_amount:.2f} not met for {quote.code}"]}
            )

        cart.apply_coupon(quote.code, quote.discount_amount)
        self.carts.add(cart)
        logger.info("cart_coupon_applied", cart_id=str(cart.id), code=quote.code, discount=quote.discount_amount)
        return self.snapshot(owner, cart)

    def remove_coupon(self, owner: CartOwner) -> CartSnapshot:
        cart = self._require_cart(owner)
        cart.remove_coupon()
        self.carts.add(cart)
        return self.snapshot(owner, cart)

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def merge_on_login(self, session_token: str, user_id: str) -> CartSnapshot:
        """Move an anonymous cart to the user who just logged in.

        Without a user cart the session cart simply changes owner. Otherwise
        its lines are folded into the user cart (sum and clamp) and the
        session cart is deleted. Running it again is a no-op.
        """
        user_owner = CartOwner.user(user_id)
        session_cart = self.load(CartOwner.session(session_token))
        user_cart = self.load(user_owner)

        if session_cart is None or not session_cart.items:
            return self.snapshot(user_owner, user_cart)

        if user_cart is None:
            session_cart.reassign_to(user_owner)
            self.carts.add(session_cart)
            logger.info("cart_reassigned", cart_id=str(session_cart.id), user_id=str(user_id))
            return self.snapshot(user_owner, session_cart)

        user_cart.absorb(session_cart)
        self._reprice_coupon(user_cart)
        self.carts.add(user_cart)
        self.carts.remove(session_cart)

        logger.info(
            "carts_merged",
            cart_id=str(user_cart.id),
            source_cart_id=str(session_cart.id),
            user_id=str(user_id),
        )
        return self.snapshot(user_owner, user_cart)

    def discard(self, cart: Cart) -> None:
        self.carts.remove(cart)

    def expire_carts(self, at: datetime | None = None) -> int:
        """Delete anonymous carts idle past their expiry. Returns how many were removed."""
        expired = self.carts.expired_anonymous(at or datetime.now(UTC))
        for cart in expired:
            self.carts.remove(cart)

        if expired:
            logger.info("carts_expired", count=len(expired))
        return len(expired)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _require_cart(self, owner: CartOwner) -> Cart:
        cart = self.load(owner)
        if cart is None:
            raise ObjectNotFoundError({"cart": ["No cart found for this shopper"]})
        return cart

    def _reprice_coupon(self, cart: Cart) -> None:
        """Recompute an applied coupon against the new subtotal, dropping it when it no longer applies."""
        if not cart.coupon_code:
            return

        try:
            quote = self.coupon_engine.validate(cart.coupon_code, cart.subtotal())
        except (ObjectNotFoundError, StorefrontError):
            quote = None

        if quote is None or not quote.applies:
            logger.info("cart_coupon_dropped", cart_id=str(cart.id), code=cart.coupon_code)
            cart.remove_coupon()
        else:
            cart.discount_amount = quote.discount_amount

    @staticmethod
    def _check_quantity(quantity: int, minimum: int) -> None:
        limit = settings.max_item_quantity()
        if quantity is None or not minimum <= quantity <= limit:
            raise ValidationError({"quantity": [f"Quantity must be between {minimum} and {limit}"]})
