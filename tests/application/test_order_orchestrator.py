"""Order Orchestrator: checkout saga, cancellation and status administration."""

import pytest
from factories import make_coupon, make_product, shipping_address, stock_of
from protean import current_domain
from protean.exceptions import ValidationError
from storefront.cart.cart import Cart, CartOwner
from storefront.cart.store import CartStore
from storefront.coupon.coupon import Coupon
from storefront.errors import ConflictError, InsufficientStock, UnauthorizedError
from storefront.inventory.ledger import InventoryLedger
from storefront.order.orchestrator import OrderOrchestrator
from storefront.order.order import Order, OrderStatus
from storefront.shared.actor import Actor

OWNER = CartOwner.user("buyer-1")
BUYER = Actor.customer("buyer-1")
ADMIN = Actor.admin("admin-1")


@pytest.fixture
def goggles():
    return make_product(name="Safety Goggles", price=600.0, stock=10)


@pytest.fixture
def harness():
    return make_product(name="Fall Harness", price=3500.0, stock=5, weight=2.0)


def _fill_cart(*lines):
    store = CartStore()
    for product, quantity in lines:
        store.add_item(OWNER, product.id, quantity)


def _checkout(**kwargs):
    return OrderOrchestrator().create_order(
        OWNER,
        shipping_address=shipping_address(),
        payment_method=kwargs.pop("payment_method", "mpesa"),
        **kwargs,
    )


class _FailingLedger(InventoryLedger):
    """Grants reservations until it reaches ``fail_on``, then reports no stock."""

    def __init__(self, fail_on):
        super().__init__()
        self.fail_on = str(fail_on)

    def reserve(self, product_id, quantity):
        if str(product_id) == self.fail_on:
            raise InsufficientStock(str(product_id), quantity, 0)
        return super().reserve(product_id, quantity)


class TestCreateOrder:
    def test_checkout_reserves_stock_and_clears_the_cart(self, goggles, harness):
        _fill_cart((goggles, 2), (harness, 1))

        order = _checkout()

        assert order.status == OrderStatus.PENDING.value
        assert order.items_price == 4700.0
        assert order.shipping_price == 200.0
        assert order.tax_price == 752.0
        assert order.total_price == 5652.0
        assert stock_of(goggles.id) == 8
        assert stock_of(harness.id) == 4
        assert current_domain.repository_for(Cart).for_owner(OWNER) is None
        assert current_domain.repository_for(Order).get(order.id).order_number.startswith("ORD-")

    def test_history_names_the_shopper_as_a_customer(self, goggles):
        _fill_cart((goggles, 1))

        order = _checkout()

        stored = current_domain.repository_for(Order).get(order.id)
        assert stored.history[0].actor == "customer:buyer-1"

    def test_prices_come_from_the_catalogue(self, goggles):
        _fill_cart((goggles, 1))
        repo = current_domain.repository_for(type(goggles))
        product = repo.get(goggles.id)
        product.price = 650.0
        repo.add(product)

        assert _checkout().items[0].price == 650.0

    def test_empty_cart_is_rejected(self):
        with pytest.raises(ValidationError):
            _checkout()

    def test_unknown_payment_method_is_rejected(self, goggles):
        _fill_cart((goggles, 1))

        with pytest.raises(ValidationError) as exc:
            _checkout(payment_method="cheque")
        assert "payment_method" in exc.value.messages

    def test_invalid_address_is_rejected_before_reserving(self, goggles):
        _fill_cart((goggles, 1))

        with pytest.raises(ValidationError):
            OrderOrchestrator().create_order(OWNER, shipping_address(phone="123"), "mpesa")
        assert stock_of(goggles.id) == 10

    def test_failed_reservation_releases_earlier_lines(self, goggles, harness):
        _fill_cart((goggles, 2), (harness, 1))
        orchestrator = OrderOrchestrator(ledger=_FailingLedger(harness.id))

        with pytest.raises(InsufficientStock):
            orchestrator.create_order(OWNER, shipping_address(), "mpesa")

        assert stock_of(goggles.id) == 10
        assert stock_of(harness.id) == 5
        assert current_domain.repository_for(Order)._dao.query.all().items == []
        assert len(current_domain.repository_for(Cart).for_owner(OWNER).items) == 2

    def test_coupon_is_applied_and_counted(self, harness):
        make_coupon(code="SAFE15", value=15.0, usage_limit=5)
        _fill_cart((harness, 2))

        order = _checkout(coupon_code="safe15")

        assert order.coupon_code == "SAFE15"
        assert order.discount_amount == 1050.0
        assert order.total_price == round(7000.0 + 200.0 + 1120.0 - 1050.0, 2)
        assert current_domain.repository_for(Coupon).find_by_code("SAFE15").usage_count == 1

    def test_coupon_applied_to_the_cart_is_used(self, goggles):
        make_coupon(code="CART50", discount_type="fixed", value=50.0)
        _fill_cart((goggles, 1))
        CartStore().apply_coupon(OWNER, "CART50")

        assert _checkout().discount_amount == 50.0

    def test_coupon_below_the_minimum_is_a_conflict(self, goggles):
        make_coupon(code="BIGSPEND", minimum_order_amount=50000.0)
        _fill_cart((goggles, 1))

        with pytest.raises(ConflictError):
            _checkout(coupon_code="BIGSPEND")
        assert stock_of(goggles.id) == 10

    def test_failure_after_coupon_use_gives_the_use_back(self, goggles, monkeypatch):
        make_coupon(code="ROLLBACK", usage_limit=3)
        _fill_cart((goggles, 1))

        def broken_place(*args, **kwargs):
            raise RuntimeError("order store unavailable")

        monkeypatch.setattr(Order, "place", broken_place)

        with pytest.raises(RuntimeError):
            _checkout(coupon_code="ROLLBACK")

        assert stock_of(goggles.id) == 10
        assert current_domain.repository_for(Coupon).find_by_code("ROLLBACK").usage_count == 0

    def test_inactive_product_blocks_checkout(self, goggles):
        _fill_cart((goggles, 1))
        repo = current_domain.repository_for(type(goggles))
        product = repo.get(goggles.id)
        product.status = "discontinued"
        repo.add(product)

        with pytest.raises(ConflictError):
            _checkout()


class TestCancel:
    def test_cancel_restores_every_line_once(self, goggles, harness):
        _fill_cart((goggles, 2), (harness, 1))
        order = _checkout()
        orchestrator = OrderOrchestrator()

        cancelled = orchestrator.cancel(order.id, BUYER, "Ordered by mistake")

        assert cancelled.status == OrderStatus.CANCELLED.value
        assert stock_of(goggles.id) == 10
        assert stock_of(harness.id) == 5
        assert len(cancelled.history) == 2

    def test_second_cancel_does_not_release_again(self, goggles):
        _fill_cart((goggles, 3))
        order = _checkout()
        orchestrator = OrderOrchestrator()
        orchestrator.cancel(order.id, BUYER)

        again = orchestrator.cancel(order.id, BUYER)

        assert stock_of(goggles.id) == 10
        assert len(again.history) == 2

    def test_shipped_order_cannot_be_cancelled(self, goggles):
        _fill_cart((goggles, 1))
        order = _checkout()
        orchestrator = OrderOrchestrator()
        orchestrator.update_status(order.id, "shipped", ADMIN)

        with pytest.raises(ConflictError):
            orchestrator.cancel(order.id, BUYER)
        assert stock_of(goggles.id) == 9

    def test_strangers_cannot_cancel(self, goggles):
        _fill_cart((goggles, 1))
        order = _checkout()

        with pytest.raises(UnauthorizedError):
            OrderOrchestrator().cancel(order.id, Actor.customer("someone-else"))


class TestUpdateStatus:
    def test_admin_moves_the_order_forward(self, goggles):
        _fill_cart((goggles, 1))
        order = _checkout()

        updated = OrderOrchestrator().update_status(order.id, "shipped", ADMIN, tracking_number="TRK-1")

        assert updated.status == OrderStatus.SHIPPED.value
        assert updated.tracking_number == "TRK-1"

    def test_customers_cannot_change_status(self, goggles):
        _fill_cart((goggles, 1))
        order = _checkout()

        with pytest.raises(UnauthorizedError):
            OrderOrchestrator().update_status(order.id, "shipped", BUYER)

    def test_status_cancelled_goes_through_cancellation(self, goggles):
        _fill_cart((goggles, 4))
        order = _checkout()

        OrderOrchestrator().update_status(order.id, "cancelled", ADMIN, note="Fraud check")

        assert stock_of(goggles.id) == 10

    def test_refund_of_an_unpaid_order_is_a_conflict(self, goggles):
        _fill_cart((goggles, 1))
        order = _checkout()
        orchestrator = OrderOrchestrator()
        orchestrator.cancel(order.id, ADMIN)

        with pytest.raises(ConflictError):
            orchestrator.refund(order.id, ADMIN)


class TestQueries:
    def test_owner_and_admin_can_read(self, goggles):
        _fill_cart((goggles, 1))
        order = _checkout()
        orchestrator = OrderOrchestrator()

        assert orchestrator.get_order(order.id, BUYER).id == order.id
        assert orchestrator.get_order(order.id, ADMIN).id == order.id
        with pytest.raises(UnauthorizedError):
            orchestrator.get_order(order.id, Actor.customer("other"))

    def test_orders_for_lists_the_callers_orders(self, goggles):
        _fill_cart((goggles, 1))
        first = _checkout()
        _fill_cart((goggles, 1))
        second = _checkout()

        ids = [o.id for o in OrderOrchestrator().orders_for(BUYER)]
        assert set(ids) == {first.id, second.id}
