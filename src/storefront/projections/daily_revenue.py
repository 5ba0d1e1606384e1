"""Daily revenue: paid and refunded totals per calendar day."""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.events import OrderPaid, OrderRefunded
from storefront.order.order import Order


@storefront.projection
class DailyRevenue:
    date = String(identifier=True, max_length=10, required=True)  # "YYYY-MM-DD"
    currency = String(default="KES")
    gross_revenue = Float(default=0.0)
    total_refunded = Float(default=0.0)
    net_revenue = Float(default=0.0)
    paid_order_count = Integer(default=0)
    refund_count = Integer(default=0)


def _record_for(date_key: str, currency: str) -> DailyRevenue:
    try:
        return current_domain.repository_for(DailyRevenue).get(date_key)
    except ObjectNotFoundError:
        return DailyRevenue(date=date_key, currency=currency)


@storefront.projector(projector_for=DailyRevenue, aggregates=[Order])
class DailyRevenueProjector:
    @on(OrderPaid)
    def on_order_paid(self, event):
        record = _record_for(event.paid_at.date().isoformat(), event.currency)
        record.gross_revenue = round((record.gross_revenue or 0.0) + event.amount, 2)
        record.net_revenue = round(record.gross_revenue - (record.total_refunded or 0.0), 2)
        record.paid_order_count = (record.paid_order_count or 0) + 1
        current_domain.repository_for(DailyRevenue).add(record)

    @on(OrderRefunded)
    def on_order_refunded(self, event):
        record = _record_for(event.refunded_at.date().isoformat(), event.currency)
        record.total_refunded = round((record.total_refunded or 0.0) + event.amount, 2)
        record.net_revenue = round((record.gross_revenue or 0.0) - record.total_refunded, 2)
        record.refund_count = (record.refund_count or 0) + 1
        current_domain.repository_for(DailyRevenue).add(record)
