"""FastAPI routes for the storefront: carts, checkout, orders, payments, coupons, products."""

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from protean.utils.globals import current_domain

from storefront.api.identity import admin, caller, cart_owner
from storefront.api.schemas import (
    AddCartItemRequest,
    ApplyCouponRequest,
    CancelOrderRequest,
    CartResponse,
    ChangeProductStatusRequest,
    ConfirmPaymentRequest,
    CouponIdResponse,
    CouponQuoteResponse,
    CreateCouponRequest,
    CreatePaymentIntentRequest,
    DailyRevenueResponse,
    OrderIdResponse,
    OrderResponse,
    OrderSummaryResponse,
    PaidOrderSchema,
    PaymentConfirmationResponse,
    PaymentHistoryResponse,
    PaymentIntentResponse,
    PaymentMethodResponse,
    PlaceOrderRequest,
    ProductIdResponse,
    ProductStockResponse,
    RegisterProductRequest,
    RestockRequest,
    ShippingOptionSchema,
    ShippingQuoteRequest,
    ShippingQuoteResponse,
    StatusResponse,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
    ValidateCouponRequest,
)
from storefront.cart.cart import CartOwner
from storefront.cart.coupons import ApplyCartCoupon, RemoveCartCoupon
from storefront.cart.items import AddCartItem, ClearCart, RemoveCartItem, UpdateCartItemQuantity
from storefront.cart.management import MergeCartOnLogin
from storefront.cart.store import CartStore
from storefront.catalogue.management import ChangeProductStatus, RegisterProduct, RestockProduct
from storefront.catalogue.product import Product
from storefront.coupon.engine import CouponEngine
from storefront.coupon.management import CreateCoupon, DeactivateCoupon
from storefront.errors import UnauthorizedError
from storefront.order.lifecycle import CancelOrder, RefundOrder, UpdateOrderStatus
from storefront.order.orchestrator import OrderOrchestrator
from storefront.order.placement import PlaceOrder
from storefront.order.pricing import shipping_quote
from storefront.payment.gateway import get_gateway
from storefront.payment.handling import ApplyPaymentWebhook, ConfirmPayment, CreatePaymentIntent
from storefront.payment.methods import available_payment_methods
from storefront.payment.reconciler import PaymentReconciler
from storefront.projections.daily_revenue import DailyRevenue
from storefront.projections.order_summary import OrderSummary
from storefront.shared.actor import Actor
from storefront.shared.concurrency import process_command

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(owner: CartOwner = Depends(cart_owner)) -> CartResponse:
    return CartResponse.from_snapshot(CartStore().get(owner))


@cart_router.post("/items", response_model=CartResponse)
async def add_cart_item(body: AddCartItemRequest, owner: CartOwner = Depends(cart_owner)) -> CartResponse:
    command = AddCartItem(
        owner_kind=owner.kind,
        owner_key=owner.key,
        product_id=body.product_id,
        quantity=body.quantity,
    )
    snapshot = process_command(command)
    return CartResponse.from_snapshot(snapshot)


@cart_router.put("/items/{product_id}", response_model=CartResponse)
async def update_cart_item(
    product_id: str, body: UpdateCartItemRequest, owner: CartOwner = Depends(cart_owner)
) -> CartResponse:
    command = UpdateCartItemQuantity(
        owner_kind=owner.kind,
        owner_key=owner.key,
        product_id=product_id,
        quantity=body.quantity,
    )
    snapshot = process_command(command)
    return CartResponse.from_snapshot(snapshot)


@cart_router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(product_id: str, owner: CartOwner = Depends(cart_owner)) -> CartResponse:
    command = RemoveCartItem(owner_kind=owner.kind, owner_key=owner.key, product_id=product_id)
    snapshot = process_command(command)
    return CartResponse.from_snapshot(snapshot)


@cart_router.delete("", response_model=CartResponse)
async def clear_cart(owner: CartOwner = Depends(cart_owner)) -> CartResponse:
    command = ClearCart(owner_kind=owner.kind, owner_key=owner.key)
    snapshot = process_command(command)
    return CartResponse.from_snapshot(snapshot)


@cart_router.post("/coupon", response_model=CartResponse)
async def apply_cart_coupon(body: ApplyCouponRequest, owner: CartOwner = Depends(cart_owner)) -> CartResponse:
    command = ApplyCartCoupon(owner_kind=owner.kind, owner_key=owner.key, coupon_code=body.code)
    snapshot = process_command(command)
    return CartResponse.from_snapshot(snapshot)


@cart_router.delete("/coupon", response_model=CartResponse)
async def remove_cart_coupon(owner: CartOwner = Depends(cart_owner)) -> CartResponse:
    command = RemoveCartCoupon(owner_kind=owner.kind, owner_key=owner.key)
    snapshot = process_command(command)
    return CartResponse.from_snapshot(snapshot)


@cart_router.post("/merge", response_model=CartResponse)
async def merge_cart(
    x_user_id: str = Header(),
    x_session_id: str = Header(),
) -> CartResponse:
    """Fold the anonymous session cart into the cart of the user who just logged in."""
    command = MergeCartOnLogin(session_token=x_session_id, user_id=x_user_id)
    snapshot = process_command(command)
    return CartResponse.from_snapshot(snapshot)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest, owner: CartOwner = Depends(cart_owner)) -> OrderIdResponse:
    """Checkout: reserve stock, apply the coupon, create the order and clear the cart."""
    command = PlaceOrder(
        owner_kind=owner.kind,
        owner_key=owner.key,
        shipping_address=body.shipping_address.model_dump(),
        payment_method=body.payment_method,
        shipping_method=body.shipping_method,
        coupon_code=body.coupon_code,
        notes=body.notes,
    )
    order_id = process_command(command)
    return OrderIdResponse(order_id=order_id)


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(actor: Actor = Depends(caller)) -> list[OrderResponse]:
    return [OrderResponse.from_order(order) for order in OrderOrchestrator().orders_for(actor)]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, actor: Actor = Depends(caller)) -> OrderResponse:
    return OrderResponse.from_order(OrderOrchestrator().get_order(order_id, actor))


@order_router.put("/{order_id}/status", response_model=StatusResponse)
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, actor: Actor = Depends(caller)
) -> StatusResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        note=body.note,
        tracking_number=body.tracking_number,
        actor_id=actor.id,
        actor_role=actor.role.value,
    )
    status = process_command(command)
    return StatusResponse(status=status)


@order_router.post("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest, actor: Actor = Depends(caller)) -> StatusResponse:
    command = CancelOrder(order_id=order_id, reason=body.reason, actor_id=actor.id, actor_role=actor.role.value)
    status = process_command(command)
    return StatusResponse(status=status)


@order_router.post("/{order_id}/refund", response_model=StatusResponse)
async def refund_order(order_id: str, body: CancelOrderRequest, actor: Actor = Depends(admin)) -> StatusResponse:
    command = RefundOrder(order_id=order_id, reason=body.reason, actor_id=actor.id, actor_role=actor.role.value)
    status = process_command(command)
    return StatusResponse(status=status)


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/intents", status_code=201, response_model=PaymentIntentResponse)
async def create_payment_intent(
    body: CreatePaymentIntentRequest, actor: Actor = Depends(caller)
) -> PaymentIntentResponse:
    command = CreatePaymentIntent(order_id=body.order_id, actor_id=actor.id, actor_role=actor.role.value)
    intent = process_command(command)
    return PaymentIntentResponse(
        payment_intent_id=intent.id,
        client_secret=intent.client_secret,
        amount=intent.amount,
        currency=intent.currency,
    )


@payment_router.post("/confirm", response_model=PaymentConfirmationResponse)
async def confirm_payment(body: ConfirmPaymentRequest, actor: Actor = Depends(caller)) -> PaymentConfirmationResponse:
    OrderOrchestrator().get_order(body.order_id, actor)

    command = ConfirmPayment(order_id=body.order_id, payment_intent_id=body.payment_intent_id)
    outcome = process_command(command)
    return PaymentConfirmationResponse(
        order_id=str(outcome.order.id),
        status=outcome.order.status,
        is_paid=bool(outcome.order.is_paid),
        newly_paid=outcome.newly_paid,
    )


@payment_router.post("/webhook", response_model=StatusResponse)
async def payment_webhook(request: Request, stripe_signature: str = Header(default="")) -> StatusResponse:
    """Gateway callback. Only authenticated events reach the reconciler."""
    payload = (await request.body()).decode()
    try:
        event = get_gateway().verify_webhook_signature(payload, stripe_signature)
    except (UnauthorizedError, ValueError, KeyError) as exc:
        raise HTTPException(status_code=401, detail="Invalid webhook signature") from exc

    command = ApplyPaymentWebhook(event_id=event.id, event_type=event.type, data=event.data)
    process_command(command)
    return StatusResponse(status="received")


@payment_router.get("/methods", response_model=list[PaymentMethodResponse])
async def payment_methods() -> list[PaymentMethodResponse]:
    return [PaymentMethodResponse(**vars(method)) for method in available_payment_methods()]


@payment_router.post("/shipping-quote", response_model=ShippingQuoteResponse)
async def quote_shipping(body: ShippingQuoteRequest) -> ShippingQuoteResponse:
    items_price = sum(line.price * line.quantity for line in body.items)
    quote = shipping_quote(body.county, items_price, body.total_weight)
    return ShippingQuoteResponse(
        county=quote.county,
        items_price=quote.items_price,
        free_shipping_threshold=quote.free_shipping_threshold,
        free_shipping=quote.free_shipping,
        options=[ShippingOptionSchema(**vars(option)) for option in quote.options],
    )


@payment_router.get("/history", response_model=PaymentHistoryResponse)
async def payment_history(page: int = 1, limit: int = 10, actor: Actor = Depends(caller)) -> PaymentHistoryResponse:
    history = PaymentReconciler().payment_history(actor, page=page, limit=limit)
    return PaymentHistoryResponse(
        payments=[
            PaidOrderSchema(
                order_id=str(order.id),
                order_number=order.order_number,
                status=order.status,
                total_price=order.total_price,
                currency=order.currency,
                payment_method=order.payment_method,
                payment_intent_id=order.payment_intent_id,
                paid_at=order.paid_at,
            )
            for order in history.orders
        ],
        total=history.total,
        page=history.page,
        total_pages=history.total_pages,
    )


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("", status_code=201, response_model=CouponIdResponse)
async def create_coupon(body: CreateCouponRequest, _: Actor = Depends(admin)) -> CouponIdResponse:
    command = CreateCoupon(**body.model_dump())
    coupon_id = process_command(command)
    return CouponIdResponse(coupon_id=coupon_id)


@coupon_router.post("/validate", response_model=CouponQuoteResponse)
async def validate_coupon(body: ValidateCouponRequest) -> CouponQuoteResponse:
    quote = CouponEngine().validate(body.code, body.subtotal)
    return CouponQuoteResponse(
        code=quote.code,
        subtotal=quote.subtotal,
        discount_amount=quote.discount_amount,
        minimum_order_amount=quote.minimum_order_amount,
    )


@coupon_router.delete("/{code}", response_model=StatusResponse)
async def deactivate_coupon(code: str, _: Actor = Depends(admin)) -> StatusResponse:
    process_command(DeactivateCoupon(code=code))
    return StatusResponse(status="deactivated")


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def register_product(body: RegisterProductRequest, _: Actor = Depends(admin)) -> ProductIdResponse:
    command = RegisterProduct(**body.model_dump())
    product_id = process_command(command)
    return ProductIdResponse(product_id=product_id)


@product_router.get("/{product_id}", response_model=ProductStockResponse)
async def get_product(product_id: str) -> ProductStockResponse:
    return _stock_view(current_domain.repository_for(Product).find(product_id))


def _stock_view(product: Product) -> ProductStockResponse:
    return ProductStockResponse(
        product_id=str(product.id),
        sku=product.sku,
        name=product.name,
        price=product.price,
        current_price=product.current_price(),
        stock=product.stock,
        status=product.status,
        total_sold=product.total_sold or 0,
        is_low_stock=product.is_low_stock,
    )


@product_router.post("/{product_id}/restock", response_model=StatusResponse)
async def restock_product(product_id: str, body: RestockRequest, _: Actor = Depends(admin)) -> StatusResponse:
    process_command(RestockProduct(product_id=product_id, quantity=body.quantity))
    return StatusResponse(status="restocked")


@product_router.put("/{product_id}/status", response_model=StatusResponse)
async def change_product_status(
    product_id: str, body: ChangeProductStatusRequest, _: Actor = Depends(admin)
) -> StatusResponse:
    status = process_command(ChangeProductStatus(product_id=product_id, status=body.status))
    return StatusResponse(status=status)


# ---------------------------------------------------------------------------
# Report Router
# ---------------------------------------------------------------------------
report_router = APIRouter(prefix="/reports", tags=["reports"])


@report_router.get("/orders", response_model=list[OrderSummaryResponse])
async def order_summaries(status: str | None = None, _: Actor = Depends(admin)) -> list[OrderSummaryResponse]:
    query = current_domain.repository_for(OrderSummary)._dao.query
    if status:
        query = query.filter(status=status)
    return [
        OrderSummaryResponse(
            order_id=str(s.order_id),
            order_number=s.order_number,
            status=s.status,
            is_paid=bool(s.is_paid),
            item_count=s.item_count or 0,
            total_price=s.total_price or 0.0,
            currency=s.currency,
            placed_at=s.placed_at,
        )
        for s in query.all().items
    ]


@report_router.get("/low-stock", response_model=list[ProductStockResponse])
async def low_stock(_: Actor = Depends(admin)) -> list[ProductStockResponse]:
    return [_stock_view(product) for product in current_domain.repository_for(Product).low_stock()]


@report_router.get("/revenue/{date}", response_model=DailyRevenueResponse)
async def daily_revenue(date: str, _: Actor = Depends(admin)) -> DailyRevenueResponse:
    record = current_domain.repository_for(DailyRevenue).get(date)
    return DailyRevenueResponse(
        date=record.date,
        currency=record.currency,
        gross_revenue=record.gross_revenue or 0.0,
        total_refunded=record.total_refunded or 0.0,
        net_revenue=record.net_revenue or 0.0,
        paid_order_count=record.paid_order_count or 0,
        refund_count=record.refund_count or 0,
    )
