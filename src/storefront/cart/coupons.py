"""Applying and removing a discount code on a cart."""

from protean import handle
from protean.fields import String

from storefront.cart.cart import Cart, OwnerKind
from storefront.cart.items import owner_of
from storefront.cart.store import CartStore
from storefront.domain import storefront


@storefront.command(part_of=Cart)
class ApplyCartCoupon:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_key = String(required=True, max_length=255)
    coupon_code = String(required=True, max_length=50)


@storefront.command(part_of=Cart)
class RemoveCartCoupon:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_key = String(required=True, max_length=255)


@storefront.command_handler(part_of=Cart)
class CartCouponHandler:
    @handle(ApplyCartCoupon)
    def apply_cart_coupon(self, command):
        return CartStore().apply_coupon(owner_of(command), command.coupon_code)

    @handle(RemoveCartCoupon)
    def remove_cart_coupon(self, command):
        return CartStore().remove_coupon(owner_of(command))
