"""Cart aggregate: the mutable line items a shopper collects before checkout.

A cart belongs to exactly one owner: an authenticated user or an anonymous
browser session. Lines are keyed by product and carry the price seen when the
product was added; the price is re-read from the catalogue at checkout.
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from storefront import settings
from storefront.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemQuantityChanged,
    CartItemRemoved,
    CartReassigned,
    CartsMerged,
)
from storefront.domain import storefront
from storefront.shared.clock import as_utc


class OwnerKind(Enum):
    USER = "user"
    SESSION = "session"


@storefront.value_object
class CartOwner:
    """Tagged owner: ``user`` carries a user id, ``session`` an anonymous session token."""

    kind = String(required=True, choices=OwnerKind)
    key = String(required=True, max_length=255)

    @classmethod
    def user(cls, user_id) -> "CartOwner":
        return cls(kind=OwnerKind.USER.value, key=str(user_id))

    @classmethod
    def session(cls, token) -> "CartOwner":
        return cls(kind=OwnerKind.SESSION.value, key=str(token))

    @property
    def is_anonymous(self) -> bool:
        return self.kind == OwnerKind.SESSION.value


@storefront.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    position = Integer(default=0)
    added_at = DateTime()


@storefront.aggregate
class Cart:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_key = String(required=True, max_length=255)
    items = HasMany(CartItem)
    coupon_code = String(max_length=50)
    discount_amount = Float(default=0.0, min_value=0.0)
    expires_at = DateTime()  # Anonymous carts only
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def quantities_must_respect_the_line_limit(self):
        limit = settings.max_item_quantity()
        for item in self.items or []:
            if item.quantity > limit:
                raise ValidationError({"quantity": [f"At most {limit} units per product"]})

    @invariant.post
    def discount_requires_a_coupon(self):
        if self.discount_amount and not self.coupon_code:
            raise ValidationError({"discount_amount": ["A discount needs a coupon code"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner: CartOwner):
        now = datetime.now(UTC)
        cart = cls(
            owner_kind=owner.kind,
            owner_key=owner.key,
            discount_amount=0.0,
            created_at=now,
            updated_at=now,
        )
        cart.touch(now)
        return cart

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def owner(self) -> CartOwner:
        return CartOwner(kind=self.owner_kind, key=self.owner_key)

    @property
    def lines(self) -> list[CartItem]:
        return sorted(self.items or [], key=lambda item: item.position or 0)

    def line_for(self, product_id) -> CartItem | None:
        return next((i for i in self.items or [] if str(i.product_id) == str(product_id)), None)

    def subtotal(self) -> float:
        return round(sum(i.unit_price * i.quantity for i in self.items or []), 2)

    def is_expired(self, at: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) <= (as_utc(at) or datetime.now(UTC))

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity: int, unit_price: float) -> CartItem:
        """Add ``quantity`` of a product; an existing line is summed and clamped to the limit."""
        limit = settings.max_item_quantity()
        now = datetime.now(UTC)

        line = self.line_for(product_id)
        if line:
            line.quantity = min(line.quantity + quantity, limit)
            line.unit_price = unit_price
        else:
            line = CartItem(
                product_id=str(product_id),
                quantity=min(quantity, limit),
                unit_price=unit_price,
                position=self._next_position(),
                added_at=now,
            )
            self.add_items(line)

        self.touch(now)
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                owner_kind=self.owner_kind,
                owner_key=self.owner_key,
                product_id=str(product_id),
                quantity=quantity,
                line_quantity=line.quantity,
                unit_price=unit_price,
            )
        )
        return line

    def set_quantity(self, product_id, quantity: int) -> None:
        """Set a line's quantity; zero removes the line."""
        line = self.require_line(product_id)
        if quantity == 0:
            self.remove_item(product_id)
            return

        previous = line.quantity
        line.quantity = quantity
        self.touch()
        self.raise_(
            CartItemQuantityChanged(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id) -> None:
        line = self.require_line(product_id)
        self.remove_items(line)
        self.touch()
        self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id)))

    def clear(self) -> None:
        for line in list(self.items or []):
            self.remove_items(line)
        self.discount_amount = 0.0
        self.coupon_code = None
        self.touch()
        self.raise_(CartCleared(cart_id=str(self.id)))

    # -------------------------------------------------------------------
    # Coupons
    # -------------------------------------------------------------------
    def apply_coupon(self, code: str, discount_amount: float) -> None:
        self.coupon_code = code
        self.discount_amount = discount_amount
        self.touch()
        self.raise_(CartCouponApplied(cart_id=str(self.id), coupon_code=code, discount_amount=discount_amount))

    def remove_coupon(self) -> None:
        if not self.coupon_code:
            return

        code = self.coupon_code
        self.discount_amount = 0.0
        self.coupon_code = None
        self.touch()
        self.raise_(CartCouponRemoved(cart_id=str(self.id), coupon_code=code))

    # -------------------------------------------------------------------
    # Ownership
    # -------------------------------------------------------------------
    def reassign_to(self, owner: CartOwner) -> None:
        """Hand the whole cart to a new owner without touching its lines."""
        previous_key = self.owner_key
        self.owner_kind = owner.kind
        self.owner_key = owner.key
        self.touch()
        self.raise_(
            CartReassigned(
                cart_id=str(self.id),
                previous_owner_key=previous_key,
                owner_kind=owner.kind,
                owner_key=owner.key,
            )
        )

    def absorb(self, other: "Cart") -> None:
        """Fold every line of ``other`` into this cart with sum-and-clamp."""
        limit = settings.max_item_quantity()
        for incoming in other.lines:
            line = self.line_for(incoming.product_id)
            if line:
                line.quantity = min(line.quantity + incoming.quantity, limit)
            else:
                self.add_items(
                    CartItem(
                        product_id=str(incoming.product_id),
                        quantity=min(incoming.quantity, limit),
                        unit_price=incoming.unit_price,
                        position=self._next_position(),
                        added_at=incoming.added_at,
                    )
                )

        self.touch()
        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                source_cart_id=str(other.id),
                merged_item_count=len(other.items or []),
            )
        )

    def touch(self, now: datetime | None = None) -> None:
        """Record activity; anonymous carts slide their expiry forward."""
        now = now or datetime.now(UTC)
        self.updated_at = now
        if self.owner_kind == OwnerKind.SESSION.value:
            self.expires_at = now + timedelta(days=settings.anonymous_cart_ttl_days())
        else:
            self.expires_at = None

    def require_line(self, product_id) -> CartItem:
        line = self.line_for(product_id)
        if line is None:
            raise ObjectNotFoundError({"product_id": [f"Product {product_id} is not in the cart"]})
        return line

    def _next_position(self) -> int:
        return max((i.position or 0 for i in self.items or []), default=0) + 1
