"""Payment Reconciler: applies payment confirmations to orders exactly once.

Confirmation can arrive twice, through the shopper's browser (synchronous
confirm) and through the gateway webhook, in either order and possibly at
the same time. Both paths converge on ``Order.record_payment``, which is a
no-op for an order that is already paid; a version conflict between the two
writers makes the loser re-read, see ``is_paid`` and stop.
"""

import math
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.errors import ConflictError, UnauthorizedError
from storefront.order.order import Order, OrderStatus, PaymentResult
from storefront.payment.gateway import get_gateway
from storefront.payment.gateway.port import GatewayEvent, PaymentIntent
from storefront.shared.actor import Actor
from storefront.shared.concurrency import with_version_retry

logger = structlog.get_logger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


@dataclass(frozen=True)
class PaymentOutcome:
    order: Order
    newly_paid: bool


@dataclass(frozen=True)
class PaymentHistoryPage:
    orders: list[Order]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


class PaymentReconciler:
    def __init__(self, orders=None, gateway=None):
        self.orders = orders or current_domain.repository_for(Order)
        self.gateway = gateway or get_gateway()

    def create_intent(self, order_id, actor: Actor) -> PaymentIntent:
        """Open a gateway intent for the order's total. Touches no inventory."""
        order = self.orders.find(order_id)
        if not (actor.is_admin or order.is_owned_by(actor.id)):
            raise UnauthorizedError({"actor": ["You are not allowed to pay for this order"]})
        if order.is_paid:
            raise ConflictError({"order_id": [f"Order {order.order_number} is already paid"]})
        if OrderStatus(order.status) in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise ConflictError({"order_id": [f"Order {order.order_number} is {order.status}"]})

        intent = self.gateway.create_intent(
            to_minor_units(order.total_price),
            order.currency.lower(),
            {"order_id": str(order.id), "order_number": order.order_number},
        )

        def attempt():
            current = self.orders.find(order_id)
            current.attach_payment_intent(intent.id)
            self.orders.add(current)

        with_version_retry(attempt, label="payment intent attachment")
        logger.info("payment_intent_created", order_id=str(order.id), intent_id=intent.id, amount=intent.amount)
        return intent

    def confirm_synchronously(self, order_id, payment_intent_id: str) -> PaymentOutcome:
        """Confirm after the shopper returns from the payment page."""
        intent = self.gateway.retrieve_intent(payment_intent_id)
        if not intent.succeeded:
            raise ConflictError({"payment_intent_id": [f"Payment has not succeeded (status: {intent.status})"]})

        intent_order = intent.metadata.get("order_id")
        if intent_order and intent_order != str(order_id):
            raise ConflictError({"payment_intent_id": ["Payment intent belongs to a different order"]})

        return self._mark_paid(order_id, intent.id, intent.status, intent.receipt_email, source="confirm")

    def apply_webhook_event(self, event: GatewayEvent) -> PaymentOutcome | None:
        """Apply an authenticated gateway event; unknown or failed payments only get logged."""
        if event.type == PAYMENT_FAILED:
            logger.warning(
                "payment_failed",
                intent_id=event.data.get("id"),
                order_id=event.order_id,
                reason=(event.data.get("last_payment_error") or {}).get("message"),
            )
            return None

        if event.type != PAYMENT_SUCCEEDED:
            logger.info("webhook_event_ignored", event_type=event.type, event_id=event.id)
            return None

        if not event.order_id:
            logger.warning("webhook_without_order", event_id=event.id, intent_id=event.data.get("id"))
            return None

        try:
            return self._mark_paid(
                event.order_id,
                event.data.get("id"),
                event.data.get("status", "succeeded"),
                event.data.get("receipt_email"),
                source="webhook",
            )
        except ObjectNotFoundError:
            logger.warning("webhook_for_unknown_order", order_id=event.order_id, event_id=event.id)
            return None

    def payment_history(self, actor: Actor, page: int = 1, limit: int = 10) -> PaymentHistoryPage:
        """The caller's paid orders, most recently paid first."""
        if page < 1 or limit < 1:
            raise ValidationError({"page": ["Page and limit must be positive"]})

        paid = self.orders.paid_for(actor.id)
        start = (page - 1) * limit
        return PaymentHistoryPage(orders=paid[start : start + limit], total=len(paid), page=page, limit=limit)

    def _mark_paid(self, order_id, intent_id, gateway_status, email, source) -> PaymentOutcome:
        def attempt():
            order = self.orders.find(order_id)
            result = PaymentResult(
                gateway_id=intent_id,
                status=gateway_status,
                update_time=datetime.now(UTC),
                email_address=email or order.customer_email,
            )
            newly_paid = order.record_payment(result, intent_id, actor=Actor.system(f"payment-{source}"))
            if newly_paid:
                self.orders.add(order)
            return PaymentOutcome(order=order, newly_paid=newly_paid)

        outcome = with_version_retry(attempt, label="payment confirmation")
        if outcome.newly_paid:
            logger.info("payment_confirmed", order_id=str(order_id), intent_id=intent_id, source=source)
        else:
            logger.info("payment_already_recorded", order_id=str(order_id), intent_id=intent_id, source=source)
        return outcome
