"""Domain events for the Order aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A cart was turned into a pending order with stock reserved for it."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    owner_kind = String(required=True)
    owner_key = String(required=True)
    customer_email = String()
    customer_name = String()
    item_count = Integer(required=True)
    items_price = Float(required=True)
    discount_amount = Float(default=0.0)
    total_price = Float(required=True)
    currency = String(required=True)
    coupon_code = String()
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    note = Text()
    actor = String()
    tracking_number = String()
    customer_email = String()
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled; its reserved stock has been returned."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    reason = Text()
    actor = String()
    was_paid = Boolean(default=False)
    total_price = Float(required=True)
    customer_email = String()
    cancelled_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderPaid:
    """Payment was confirmed for the order (recorded exactly once)."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    payment_intent_id = String()
    gateway_status = String()
    customer_email = String()
    paid_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    reason = Text()
    customer_email = String()
    refunded_at = DateTime(required=True)
