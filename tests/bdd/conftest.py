"""Shared BDD fixtures and step definitions for the storefront."""

import pytest
from factories import make_product, shipping_address, stock_of
from protean import current_domain
from pytest_bdd import given, parsers, then
from storefront.cart.cart import Cart, CartOwner
from storefront.cart.store import CartStore
from storefront.order.orchestrator import OrderOrchestrator
from storefront.order.order import Order
from storefront.shared.actor import Actor

SHOPPER = CartOwner.user("bdd-shopper")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


@pytest.fixture()
def products():
    """Products registered by the scenario, by name."""
    return {}


@pytest.fixture()
def shopper():
    return Actor.customer(SHOPPER.key)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price:g} with {stock:d} in stock'))
def _(products, name, price, stock):
    products[name] = make_product(name=name, price=float(price), stock=stock)


@given(parsers.cfparse('the shopper has {quantity:d} of "{name}" in their cart'))
def _(products, name, quantity):
    CartStore().add_item(SHOPPER, products[name].id, quantity)


@given("the shopper has checked out", target_fixture="order_id")
def _():
    order = OrderOrchestrator().create_order(SHOPPER, shipping_address(), "stripe")
    return str(order.id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def _(products, name, stock):
    assert stock_of(products[name].id) == stock


@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status


@then("the shopper's cart is empty")
def _():
    assert current_domain.repository_for(Cart).for_owner(SHOPPER) is None
