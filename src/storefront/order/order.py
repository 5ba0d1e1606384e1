"""Order aggregate: the immutable record of what was bought, and its lifecycle.

State machine:
    pending -> confirmed -> processing -> shipped -> delivered
    pending | confirmed -> cancelled -> refunded (paid orders only)

Forward moves may skip intermediate states but never go back. Every change
of status goes through ``_transition_to``, which appends to the status
history; history entries are never edited or removed.
"""

import re
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from storefront.domain import storefront
from storefront.errors import ConflictError
from storefront.order.events import (
    OrderCancelled,
    OrderPaid,
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
)
from storefront.order.pricing import ShippingMethod


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    STRIPE = "stripe"
    MPESA = "mpesa"
    CASH_ON_DELIVERY = "cash_on_delivery"
    BANK_TRANSFER = "bank_transfer"


_FORWARD_PATH = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]

_CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

_KENYAN_PHONE = re.compile(r"^(\+254|0)[1-9]\d{8}$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class ShippingAddress:
    """Where and to whom the order is delivered, captured at checkout."""

    full_name = String(required=True, max_length=100)
    phone = String(required=True, max_length=20)
    email = String(required=True, max_length=254)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    county = String(required=True, max_length=100)
    postal_code = String(max_length=20)
    country = String(default="Kenya", max_length=100)
    landmark = String(max_length=255)

    @invariant.post
    def phone_must_be_kenyan(self):
        if self.phone and not _KENYAN_PHONE.match(self.phone):
            raise ValidationError({"phone": ["Enter a valid Kenyan phone number (+2547XXXXXXXX or 07XXXXXXXX)"]})

    @invariant.post
    def email_must_look_valid(self):
        if self.email and not _EMAIL.match(self.email):
            raise ValidationError({"email": ["Enter a valid email address"]})


@storefront.value_object(part_of="Order")
class PaymentResult:
    """What the payment gateway reported when the payment succeeded."""

    gateway_id = String(max_length=255)
    status = String(max_length=50)
    update_time = DateTime()
    email_address = String(max_length=254)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    sku = String(required=True, max_length=50)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    subtotal = Float(required=True, min_value=0.0)


@storefront.entity(part_of="Order")
class StatusChange:
    sequence = Integer(required=True, min_value=1)
    status = String(required=True, choices=OrderStatus)
    changed_at = DateTime(required=True)
    note = Text()
    actor = String(max_length=255)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    owner_kind = String(required=True, max_length=20)
    owner_key = String(required=True, max_length=255)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(ShippingAddress)
    payment_method = String(required=True, choices=PaymentMethod)
    shipping_method = String(choices=ShippingMethod, default=ShippingMethod.STANDARD.value)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items_price = Float(required=True, min_value=0.0)
    tax_price = Float(default=0.0, min_value=0.0)
    shipping_price = Float(default=0.0, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    total_price = Float(required=True, min_value=0.0)
    currency = String(default="KES", max_length=3)
    coupon_code = String(max_length=50)
    is_paid = Boolean(default=False)
    paid_at = DateTime()
    payment_intent_id = String(max_length=255)
    payment_result = ValueObject(PaymentResult)
    is_delivered = Boolean(default=False)
    delivered_at = DateTime()
    tracking_number = String(max_length=100)
    notes = Text()
    status_history = HasMany(StatusChange)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def items_price_must_match_items(self):
        if self.items and abs(sum(i.subtotal for i in self.items) - self.items_price) > 0.01:
            raise ValidationError({"items_price": ["Items price must equal the sum of item subtotals"]})

    @invariant.post
    def total_must_add_up(self):
        expected = self.items_price + self.shipping_price + self.tax_price - self.discount_amount
        if abs(expected - self.total_price) > 0.01:
            raise ValidationError({"total_price": ["Total must equal items + shipping + tax - discount"]})

    @invariant.post
    def delivered_orders_must_be_flagged(self):
        if self.status == OrderStatus.DELIVERED.value and not self.is_delivered:
            raise ValidationError({"is_delivered": ["A delivered order must be flagged as delivered"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        owner_kind,
        owner_key,
        items,
        shipping_address,
        payment_method,
        shipping_method,
        totals,
        currency,
        coupon_code=None,
        notes=None,
        actor=None,
    ):
        """Create a pending order from priced item snapshots.

        ``items`` are ``OrderItem`` instances; ``totals`` is an ``OrderTotals``.
        """
        if not items:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            order_number=order_number,
            owner_kind=owner_kind,
            owner_key=str(owner_key),
            items=items,
            shipping_address=shipping_address,
            payment_method=PaymentMethod(payment_method).value,
            shipping_method=ShippingMethod(shipping_method).value,
            status=OrderStatus.PENDING.value,
            items_price=totals.items_price,
            tax_price=totals.tax_price,
            shipping_price=totals.shipping_price,
            discount_amount=totals.discount_amount,
            total_price=totals.total_price,
            currency=currency,
            coupon_code=coupon_code,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        order._append_history(OrderStatus.PENDING, now, "Order created", actor)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                owner_kind=order.owner_kind,
                owner_key=order.owner_key,
                customer_email=shipping_address.email,
                customer_name=shipping_address.full_name,
                item_count=sum(i.quantity for i in items),
                items_price=order.items_price,
                discount_amount=order.discount_amount,
                total_price=order.total_price,
                currency=order.currency,
                coupon_code=order.coupon_code,
                payment_method=order.payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def history(self) -> list[StatusChange]:
        return sorted(self.status_history or [], key=lambda entry: entry.sequence)

    @property
    def customer_email(self) -> str | None:
        return self.shipping_address.email if self.shipping_address else None

    def is_owned_by(self, owner_key) -> bool:
        return self.owner_key == str(owner_key)

    def can_cancel(self) -> bool:
        return OrderStatus(self.status) in _CANCELLABLE_STATES

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def advance_to(self, new_status: OrderStatus, note=None, actor=None, tracking_number=None) -> None:
        """Move forward along the fulfilment path (skipping ahead is allowed)."""
        current = OrderStatus(self.status)
        if new_status not in _FORWARD_PATH or current not in _FORWARD_PATH:
            raise ConflictError({"status": [f"Cannot move order from {current.value} to {new_status.value}"]})
        if _FORWARD_PATH.index(new_status) <= _FORWARD_PATH.index(current):
            raise ConflictError(
                {"status": [f"Order is already {current.value}; status can only move forward to a later state"]}
            )

        if tracking_number:
            self.tracking_number = tracking_number
        self._transition_to(new_status, note, actor)

    def cancel(self, reason=None, actor=None) -> bool:
        """Cancel a pending or confirmed order. Returns False if it was already cancelled."""
        current = OrderStatus(self.status)
        if current == OrderStatus.CANCELLED:
            return False
        if not self.can_cancel():
            raise ConflictError({"status": [f"Cannot cancel an order that is {current.value}"]})

        now = self._transition_to(OrderStatus.CANCELLED, reason or "Order cancelled", actor)
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=current.value,
                reason=reason,
                actor=str(actor) if actor else None,
                was_paid=bool(self.is_paid),
                total_price=self.total_price,
                customer_email=self.customer_email,
                cancelled_at=now,
            )
        )
        return True

    def refund(self, reason=None, actor=None) -> None:
        if OrderStatus(self.status) != OrderStatus.CANCELLED:
            raise ConflictError({"status": ["Only cancelled orders can be refunded"]})
        if not self.is_paid:
            raise ConflictError({"is_paid": ["Order was never paid, nothing to refund"]})

        now = self._transition_to(OrderStatus.REFUNDED, reason or "Payment refunded", actor)
        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                order_number=self.order_number,
                amount=self.total_price,
                currency=self.currency,
                reason=reason,
                customer_email=self.customer_email,
                refunded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def attach_payment_intent(self, payment_intent_id: str) -> None:
        self.payment_intent_id = payment_intent_id
        self.updated_at = datetime.now(UTC)

    def record_payment(self, result: PaymentResult, payment_intent_id=None, actor=None) -> bool:
        """Mark the order paid. Returns False, changing nothing, if it already was.

        A pending order moves to confirmed. Payment arriving for an order in
        any other state is recorded without a status change.
        """
        if self.is_paid:
            return False

        now = datetime.now(UTC)
        self.is_paid = True
        self.paid_at = now
        self.payment_result = result
        if payment_intent_id:
            self.payment_intent_id = payment_intent_id
        self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                order_number=self.order_number,
                amount=self.total_price,
                currency=self.currency,
                payment_intent_id=self.payment_intent_id,
                gateway_status=result.status if result else None,
                customer_email=self.customer_email,
                paid_at=now,
            )
        )

        if OrderStatus(self.status) == OrderStatus.PENDING:
            self._transition_to(OrderStatus.CONFIRMED, "Payment received", actor)
        return True

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _transition_to(self, new_status: OrderStatus, note, actor) -> datetime:
        """The only place status, history and delivery flags change."""
        previous = self.status
        now = datetime.now(UTC)

        with atomic_change(self):
            self.status = new_status.value
            if new_status == OrderStatus.DELIVERED:
                self.is_delivered = True
                self.delivered_at = now
            self.updated_at = now
        self._append_history(new_status, now, note, actor)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=previous,
                new_status=new_status.value,
                note=note,
                actor=str(actor) if actor else None,
                tracking_number=self.tracking_number,
                customer_email=self.customer_email,
                changed_at=now,
            )
        )
        return now

    def _append_history(self, status: OrderStatus, at: datetime, note, actor) -> None:
        self.add_status_history(
            StatusChange(
                sequence=len(self.status_history or []) + 1,
                status=status.value,
                changed_at=at,
                note=note,
                actor=str(actor) if actor else None,
            )
        )
