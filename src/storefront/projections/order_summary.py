"""Order summary: one row per order for admin listings."""

from protean.core.projector import on
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.events import OrderPaid, OrderPlaced, OrderStatusChanged
from storefront.order.order import Order


@storefront.projection
class OrderSummary:
    order_id = Identifier(identifier=True, required=True)
    order_number = String(required=True)
    owner_key = String(required=True)
    customer_email = String()
    status = String(required=True)
    is_paid = Boolean(default=False)
    item_count = Integer(default=0)
    total_price = Float()
    currency = String(default="KES")
    coupon_code = String()
    placed_at = DateTime()
    updated_at = DateTime()


@storefront.projector(projector_for=OrderSummary, aggregates=[Order])
class OrderSummaryProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        current_domain.repository_for(OrderSummary).add(
            OrderSummary(
                order_id=event.order_id,
                order_number=event.order_number,
                owner_key=event.owner_key,
                customer_email=event.customer_email,
                status="pending",
                item_count=event.item_count,
                total_price=event.total_price,
                currency=event.currency,
                coupon_code=event.coupon_code,
                placed_at=event.placed_at,
                updated_at=event.placed_at,
            )
        )

    @on(OrderStatusChanged)
    def on_status_changed(self, event):
        repo = current_domain.repository_for(OrderSummary)
        summary = repo.get(event.order_id)
        summary.status = event.new_status
        summary.updated_at = event.changed_at
        repo.add(summary)

    @on(OrderPaid)
    def on_order_paid(self, event):
        repo = current_domain.repository_for(OrderSummary)
        summary = repo.get(event.order_id)
        summary.is_paid = True
        summary.updated_at = event.paid_at
        repo.add(summary)
