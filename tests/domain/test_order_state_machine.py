"""Order lifecycle: forward-only moves, cancellation, refund and payment."""

import pytest
from protean.exceptions import ValidationError
from storefront.errors import ConflictError
from storefront.order.events import OrderCancelled, OrderPaid, OrderPlaced, OrderStatusChanged
from storefront.order.order import Order, OrderItem, OrderStatus, PaymentResult, ShippingAddress
from storefront.order.pricing import compute_totals


def _order():
    items = [
        OrderItem(product_id="p-1", name="Helmet", sku="HLM-1", price=1500.0, quantity=2, subtotal=3000.0),
        OrderItem(product_id="p-2", name="Gloves", sku="GLV-1", price=250.0, quantity=4, subtotal=1000.0),
    ]
    return Order.place(
        order_number="ORD-12345678-001",
        owner_kind="user",
        owner_key="user-1",
        items=items,
        shipping_address=ShippingAddress(
            full_name="Otieno Ouma",
            phone="+254712345678",
            email="otieno@example.com",
            street="Oginga Odinga St",
            city="Kisumu",
            county="Kisumu",
        ),
        payment_method="mpesa",
        shipping_method="standard",
        totals=compute_totals(4000.0, 500.0, 0.0),
        currency="KES",
    )


def _paid_result():
    return PaymentResult(gateway_id="pi_1", status="succeeded", email_address="otieno@example.com")


class TestPlacement:
    def test_new_order_is_pending_with_one_history_entry(self):
        order = _order()

        assert order.status == OrderStatus.PENDING.value
        assert [(e.sequence, e.status, e.note) for e in order.history] == [(1, "pending", "Order created")]
        assert isinstance(order._events[0], OrderPlaced)

    def test_totals_add_up(self):
        order = _order()

        assert order.items_price == 4000.0
        assert order.tax_price == 640.0
        assert order.total_price == 5140.0

    def test_ownership_is_by_owner_key(self):
        order = _order()

        assert order.is_owned_by("user-1") is True
        assert order.is_owned_by("user-2") is False

    def test_order_needs_items(self):
        with pytest.raises(ValidationError):
            Order.place(
                order_number="ORD-1",
                owner_kind="user",
                owner_key="u",
                items=[],
                shipping_address=None,
                payment_method="mpesa",
                shipping_method="standard",
                totals=compute_totals(0.0, 0.0, 0.0),
                currency="KES",
            )


class TestForwardMoves:
    def test_each_move_appends_history(self):
        order = _order()
        order.advance_to(OrderStatus.CONFIRMED)
        order.advance_to(OrderStatus.SHIPPED, tracking_number="TRK-9")

        assert [e.status for e in order.history] == ["pending", "confirmed", "shipped"]
        assert order.tracking_number == "TRK-9"
        assert all(isinstance(e, OrderStatusChanged) for e in order._events[1:])

    def test_delivery_sets_the_flag(self):
        order = _order()
        order.advance_to(OrderStatus.DELIVERED)

        assert order.is_delivered is True
        assert order.delivered_at is not None

    @pytest.mark.parametrize("target", [OrderStatus.PENDING, OrderStatus.CONFIRMED])
    def test_moving_backwards_is_rejected(self, target):
        order = _order()
        order.advance_to(OrderStatus.PROCESSING)

        with pytest.raises(ConflictError):
            order.advance_to(target)
        assert len(order.history) == 2

    def test_cancelled_order_cannot_move_forward(self):
        order = _order()
        order.cancel()

        with pytest.raises(ConflictError):
            order.advance_to(OrderStatus.SHIPPED)


class TestCancellation:
    def test_pending_order_can_be_cancelled(self):
        order = _order()

        assert order.cancel(reason="Changed my mind") is True
        assert order.status == OrderStatus.CANCELLED.value
        assert order.history[-1].note == "Changed my mind"
        cancelled = [e for e in order._events if isinstance(e, OrderCancelled)]
        assert cancelled[0].was_paid is False

    def test_second_cancel_changes_nothing(self):
        order = _order()
        order.cancel()

        assert order.cancel() is False
        assert len(order.history) == 2

    def test_shipped_order_cannot_be_cancelled(self):
        order = _order()
        order.advance_to(OrderStatus.SHIPPED)

        with pytest.raises(ConflictError):
            order.cancel()

    def test_can_cancel_follows_the_status(self):
        order = _order()
        assert order.can_cancel() is True

        order.advance_to(OrderStatus.PROCESSING)
        assert order.can_cancel() is False

    def test_refund_needs_a_paid_cancelled_order(self):
        order = _order()
        order.cancel()
        with pytest.raises(ConflictError):
            order.refund()

        paid = _order()
        paid.record_payment(_paid_result(), "pi_1")
        paid.cancel()
        paid.refund()
        assert paid.status == OrderStatus.REFUNDED.value


class TestPayment:
    def test_payment_confirms_a_pending_order(self):
        order = _order()

        assert order.record_payment(_paid_result(), "pi_1") is True
        assert order.is_paid is True
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.history[-1].note == "Payment received"
        assert any(isinstance(e, OrderPaid) for e in order._events)

    def test_second_payment_is_ignored(self):
        order = _order()
        order.record_payment(_paid_result(), "pi_1")
        paid_at = order.paid_at

        assert order.record_payment(_paid_result(), "pi_1") is False
        assert order.paid_at == paid_at
        assert len(order.history) == 2

    def test_payment_for_a_processing_order_keeps_its_status(self):
        order = _order()
        order.advance_to(OrderStatus.PROCESSING)
        order.record_payment(_paid_result(), "pi_1")

        assert order.status == OrderStatus.PROCESSING.value
        assert order.is_paid is True
