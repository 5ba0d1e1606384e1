"""BDD tests for payment reconciliation."""

from protean import current_domain
from pytest_bdd import given, scenarios, then, when
from storefront.order.order import Order
from storefront.payment.gateway import get_gateway
from storefront.payment.reconciler import PaymentReconciler

scenarios("features/payment.feature")


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


@given("the shopper has started a payment", target_fixture="intent_id")
def _(order_id, shopper):
    return PaymentReconciler().create_intent(order_id, shopper).id


@given("the gateway settles the payment")
def _(intent_id):
    get_gateway().settle(intent_id)


@given("the gateway declines the payment")
def _(intent_id):
    get_gateway().settle(intent_id, status="requires_payment_method")


@when("the shopper confirms the payment")
def _(order_id, intent_id):
    PaymentReconciler().confirm_synchronously(order_id, intent_id)


@when("the gateway webhook arrives")
def _(intent_id):
    gateway = get_gateway()
    event = gateway.verify_webhook_signature(gateway.event_for(intent_id), gateway.SIGNATURE)
    PaymentReconciler().apply_webhook_event(event)


@when("the gateway failure webhook arrives")
def _(intent_id):
    gateway = get_gateway()
    payload = gateway.event_for(intent_id, "payment_intent.payment_failed")
    PaymentReconciler().apply_webhook_event(gateway.verify_webhook_signature(payload, gateway.SIGNATURE))


@then("the order is paid")
def _(order_id):
    assert _order(order_id).is_paid is True


@then("the order is not paid")
def _(order_id):
    assert _order(order_id).is_paid is False


@then("the payment was recorded once")
def _(order_id):
    notes = [entry.note for entry in _order(order_id).history]
    assert notes.count("Payment received") == 1
