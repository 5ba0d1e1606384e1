"""Cart lifecycle: merging an anonymous cart on login and purging idle ones."""

from protean import handle
from protean.fields import DateTime, String

from storefront.cart.cart import Cart
from storefront.cart.store import CartStore
from storefront.domain import storefront


@storefront.command(part_of=Cart)
class MergeCartOnLogin:
    session_token = String(required=True, max_length=255)
    user_id = String(required=True, max_length=255)


@storefront.command(part_of=Cart)
class ExpireCarts:
    as_of = DateTime()


@storefront.command_handler(part_of=Cart)
class CartLifecycleHandler:
    @handle(MergeCartOnLogin)
    def merge_cart_on_login(self, command):
        return CartStore().merge_on_login(command.session_token, command.user_id)

    @handle(ExpireCarts)
    def expire_carts(self, command):
        return CartStore().expire_carts(command.as_of)
