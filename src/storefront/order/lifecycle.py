"""Status changes after checkout: fulfilment progress, cancellation and refund."""

from protean import handle
from protean.fields import Identifier, String, Text

from storefront.domain import storefront
from storefront.order.orchestrator import OrderOrchestrator
from storefront.order.order import Order, OrderStatus
from storefront.shared.actor import Actor, Role


@storefront.command(part_of=Order)
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    note = Text()
    tracking_number = String(max_length=100)
    actor_id = String(required=True, max_length=255)
    actor_role = String(required=True, choices=Role)


@storefront.command(part_of=Order)
class CancelOrder:
    order_id = Identifier(required=True)
    reason = Text()
    actor_id = String(required=True, max_length=255)
    actor_role = String(required=True, choices=Role)


@storefront.command(part_of=Order)
class RefundOrder:
    order_id = Identifier(required=True)
    reason = Text()
    actor_id = String(required=True, max_length=255)
    actor_role = String(required=True, choices=Role)


def actor_of(command) -> Actor:
    return Actor(id=command.actor_id, role=Role(command.actor_role))


@storefront.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        order = OrderOrchestrator().update_status(
            command.order_id,
            command.status,
            actor_of(command),
            note=command.note,
            tracking_number=command.tracking_number,
        )
        return order.status

    @handle(CancelOrder)
    def cancel_order(self, command):
        order = OrderOrchestrator().cancel(command.order_id, actor_of(command), command.reason)
        return order.status

    @handle(RefundOrder)
    def refund_order(self, command):
        order = OrderOrchestrator().refund(command.order_id, actor_of(command), command.reason)
        return order.status
