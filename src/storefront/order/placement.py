"""Checkout: the command that turns a cart into an order."""

from protean import handle
from protean.fields import Dict, String, Text

from storefront.cart.cart import CartOwner, OwnerKind
from storefront.domain import storefront
from storefront.order.orchestrator import OrderOrchestrator
from storefront.order.order import Order, PaymentMethod
from storefront.order.pricing import ShippingMethod


@storefront.command(part_of=Order)
class PlaceOrder:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_key = String(required=True, max_length=255)
    shipping_address = Dict(required=True)
    payment_method = String(required=True, choices=PaymentMethod)
    shipping_method = String(choices=ShippingMethod, default=ShippingMethod.STANDARD.value)
    coupon_code = String(max_length=50)
    notes = Text()


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        order = OrderOrchestrator().create_order(
            owner=CartOwner(kind=command.owner_kind, key=command.owner_key),
            shipping_address=command.shipping_address,
            payment_method=command.payment_method,
            shipping_method=command.shipping_method,
            coupon_code=command.coupon_code,
            notes=command.notes,
        )
        return str(order.id)
