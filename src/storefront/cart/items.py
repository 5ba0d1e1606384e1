"""Cart item management: commands and handler."""

from protean import handle
from protean.fields import Identifier, Integer, String

from storefront.cart.cart import Cart, CartOwner, OwnerKind
from storefront.cart.store import CartStore
from storefront.domain import storefront


@storefront.command(part_of=Cart)
class AddCartItem:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_key = String(required=True, max_length=255)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@storefront.command(part_of=Cart)
class UpdateCartItemQuantity:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_key = String(required=True, max_length=255)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@storefront.command(part_of=Cart)
class RemoveCartItem:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_key = String(required=True, max_length=255)
    product_id = Identifier(required=True)


@storefront.command(part_of=Cart)
class ClearCart:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_key = String(required=True, max_length=255)


def owner_of(command) -> CartOwner:
    return CartOwner(kind=command.owner_kind, key=command.owner_key)


@storefront.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddCartItem)
    def add_cart_item(self, command):
        return CartStore().add_item(owner_of(command), command.product_id, command.quantity)

    @handle(UpdateCartItemQuantity)
    def update_cart_item_quantity(self, command):
        return CartStore().update_quantity(owner_of(command), command.product_id, command.quantity)

    @handle(RemoveCartItem)
    def remove_cart_item(self, command):
        return CartStore().remove_item(owner_of(command), command.product_id)

    @handle(ClearCart)
    def clear_cart(self, command):
        return CartStore().clear(owner_of(command))
