"""Payment commands: open an intent, confirm it, and apply gateway webhooks."""

from protean import handle
from protean.fields import Dict, Identifier, String

from storefront.domain import storefront
from storefront.order.order import Order
from storefront.payment.gateway.port import GatewayEvent
from storefront.payment.reconciler import PaymentReconciler
from storefront.shared.actor import Actor, Role


@storefront.command(part_of=Order)
class CreatePaymentIntent:
    order_id = Identifier(required=True)
    actor_id = String(required=True, max_length=255)
    actor_role = String(required=True, choices=Role)


@storefront.command(part_of=Order)
class ConfirmPayment:
    order_id = Identifier(required=True)
    payment_intent_id = String(required=True, max_length=255)


@storefront.command(part_of=Order)
class ApplyPaymentWebhook:
    event_id = String(max_length=255)
    event_type = String(required=True, max_length=100)
    data = Dict()


@storefront.command_handler(part_of=Order)
class PaymentHandler:
    @handle(CreatePaymentIntent)
    def create_payment_intent(self, command):
        actor = Actor(id=command.actor_id, role=Role(command.actor_role))
        return PaymentReconciler().create_intent(command.order_id, actor)

    @handle(ConfirmPayment)
    def confirm_payment(self, command):
        return PaymentReconciler().confirm_synchronously(command.order_id, command.payment_intent_id)

    @handle(ApplyPaymentWebhook)
    def apply_payment_webhook(self, command):
        event = GatewayEvent(id=command.event_id or "", type=command.event_type, data=command.data or {})
        return PaymentReconciler().apply_webhook_event(event)
