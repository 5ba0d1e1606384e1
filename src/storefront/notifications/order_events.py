"""Customer notifications driven by Order events."""

from protean.utils.mixins import handle

from storefront.domain import storefront
from storefront.notifications.dispatch import send
from storefront.notifications.port import NotificationKind
from storefront.order.events import OrderCancelled, OrderPaid, OrderPlaced, OrderRefunded, OrderStatusChanged
from storefront.order.order import Order, OrderStatus

_STATUS_NOTIFICATIONS = {
    OrderStatus.SHIPPED.value: NotificationKind.ORDER_SHIPPED,
    OrderStatus.DELIVERED.value: NotificationKind.ORDER_DELIVERED,
}


@storefront.event_handler(part_of=Order)
class OrderNotificationsHandler:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        send(
            NotificationKind.ORDER_CONFIRMATION,
            event.customer_email,
            {
                "order_number": event.order_number,
                "customer_name": event.customer_name,
                "total_price": event.total_price,
                "currency": event.currency,
                "payment_method": event.payment_method,
            },
        )

    @handle(OrderPaid)
    def on_order_paid(self, event: OrderPaid) -> None:
        send(
            NotificationKind.PAYMENT_RECEIVED,
            event.customer_email,
            {"order_number": event.order_number, "amount": event.amount, "currency": event.currency},
        )

    @handle(OrderStatusChanged)
    def on_status_changed(self, event: OrderStatusChanged) -> None:
        kind = _STATUS_NOTIFICATIONS.get(event.new_status)
        if kind is None:
            return

        send(
            kind,
            event.customer_email,
            {"order_number": event.order_number, "tracking_number": event.tracking_number, "note": event.note},
        )

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        send(
            NotificationKind.ORDER_CANCELLED,
            event.customer_email,
            {"order_number": event.order_number, "reason": event.reason, "was_paid": event.was_paid},
        )

    @handle(OrderRefunded)
    def on_order_refunded(self, event: OrderRefunded) -> None:
        send(
            NotificationKind.ORDER_REFUNDED,
            event.customer_email,
            {"order_number": event.order_number, "amount": event.amount, "currency": event.currency},
        )
