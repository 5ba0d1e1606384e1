"""Caller identity taken from trusted headers set by the identity provider."""

from fastapi import Header
from protean.exceptions import ValidationError

from storefront.cart.cart import CartOwner
from storefront.errors import UnauthorizedError
from storefront.shared.actor import Actor, Role


def cart_owner(
    x_user_id: str | None = Header(default=None),
    x_session_id: str | None = Header(default=None),
) -> CartOwner:
    """Logged-in shoppers own carts by user id, anonymous ones by session token."""
    if x_user_id:
        return CartOwner.user(x_user_id)
    if x_session_id:
        return CartOwner.session(x_session_id)
    raise ValidationError({"caller": ["X-User-Id or X-Session-Id header is required"]})


def caller(
    x_user_id: str | None = Header(default=None),
    x_session_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    if x_user_id:
        role = Role.ADMIN if x_user_role == Role.ADMIN.value else Role.CUSTOMER
        return Actor(id=x_user_id, role=role)
    if x_session_id:
        return Actor.customer(x_session_id)
    raise ValidationError({"caller": ["X-User-Id or X-Session-Id header is required"]})


def admin(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    if not x_user_id or x_user_role != Role.ADMIN.value:
        raise UnauthorizedError({"caller": ["Administrator access required"]})
    return Actor.admin(x_user_id)
