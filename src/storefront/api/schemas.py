"""Pydantic request/response schemas for the storefront API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands. Business-rule validation (quantity ranges, phone
format) is left to the domain so it surfaces as a 400 with field messages.
"""

from datetime import datetime

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingAddressSchema(BaseModel):
    full_name: str
    phone: str
    email: str
    street: str
    city: str
    county: str
    postal_code: str | None = None
    country: str = "Kenya"
    landmark: str | None = None


class CartLineSchema(BaseModel):
    product_id: str
    name: str
    sku: str
    quantity: int
    unit_price: float
    line_total: float


class OrderItemSchema(BaseModel):
    product_id: str
    name: str
    sku: str
    price: float
    quantity: int
    subtotal: float


class StatusChangeSchema(BaseModel):
    status: str
    changed_at: datetime
    note: str | None = None
    actor: str | None = None


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddCartItemRequest(BaseModel):
    product_id: str
    quantity: int = 1


class UpdateCartItemRequest(BaseModel):
    quantity: int


class ApplyCouponRequest(BaseModel):
    code: str


class CartResponse(BaseModel):
    cart_id: str | None = None
    items: list[CartLineSchema] = []
    total_items: int = 0
    subtotal: float = 0.0
    coupon_code: str | None = None
    discount_amount: float = 0.0
    total: float = 0.0

    @classmethod
    def from_snapshot(cls, snapshot) -> "CartResponse":
        return cls(
            cart_id=snapshot.cart_id,
            items=[
                CartLineSchema(
                    product_id=line.product_id,
                    name=line.name,
                    sku=line.sku,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    line_total=line.line_total,
                )
                for line in snapshot.lines
            ],
            total_items=snapshot.total_items,
            subtotal=snapshot.subtotal,
            coupon_code=snapshot.coupon_code,
            discount_amount=snapshot.discount_amount,
            total=snapshot.total,
        )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    shipping_address: ShippingAddressSchema
    payment_method: str
    shipping_method: str = "standard"
    coupon_code: str | None = None
    notes: str | None = None


class UpdateOrderStatusRequest(BaseModel):
    status: str
    note: str | None = None
    tracking_number: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class OrderIdResponse(BaseModel):
    order_id: str


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    status: str
    items: list[OrderItemSchema]
    shipping_address: ShippingAddressSchema
    payment_method: str
    shipping_method: str
    items_price: float
    tax_price: float
    shipping_price: float
    discount_amount: float
    total_price: float
    currency: str
    coupon_code: str | None = None
    is_paid: bool
    paid_at: datetime | None = None
    is_delivered: bool
    delivered_at: datetime | None = None
    tracking_number: str | None = None
    status_history: list[StatusChangeSchema]

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        address = order.shipping_address
        return cls(
            order_id=str(order.id),
            order_number=order.order_number,
            status=order.status,
            items=[
                OrderItemSchema(
                    product_id=str(item.product_id),
                    name=item.name,
                    sku=item.sku,
                    price=item.price,
                    quantity=item.quantity,
                    subtotal=item.subtotal,
                )
                for item in order.items
            ],
            shipping_address=ShippingAddressSchema(
                full_name=address.full_name,
                phone=address.phone,
                email=address.email,
                street=address.street,
                city=address.city,
                county=address.county,
                postal_code=address.postal_code,
                country=address.country,
                landmark=address.landmark,
            ),
            payment_method=order.payment_method,
            shipping_method=order.shipping_method,
            items_price=order.items_price,
            tax_price=order.tax_price,
            shipping_price=order.shipping_price,
            discount_amount=order.discount_amount,
            total_price=order.total_price,
            currency=order.currency,
            coupon_code=order.coupon_code,
            is_paid=bool(order.is_paid),
            paid_at=order.paid_at,
            is_delivered=bool(order.is_delivered),
            delivered_at=order.delivered_at,
            tracking_number=order.tracking_number,
            status_history=[
                StatusChangeSchema(status=e.status, changed_at=e.changed_at, note=e.note, actor=e.actor)
                for e in order.history
            ],
        )


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class CreatePaymentIntentRequest(BaseModel):
    order_id: str


class PaymentIntentResponse(BaseModel):
    payment_intent_id: str
    client_secret: str | None = None
    amount: int
    currency: str


class ConfirmPaymentRequest(BaseModel):
    order_id: str
    payment_intent_id: str


class PaymentConfirmationResponse(BaseModel):
    order_id: str
    status: str
    is_paid: bool
    newly_paid: bool


class PaymentMethodResponse(BaseModel):
    id: str
    name: str
    description: str
    processing_time: str
    note: str | None = None


class QuoteLineSchema(BaseModel):
    price: float
    quantity: int = 1


class ShippingQuoteRequest(BaseModel):
    county: str
    items: list[QuoteLineSchema]
    total_weight: float = 0.0


class ShippingOptionSchema(BaseModel):
    method: str
    cost: float
    estimated_days: str


class ShippingQuoteResponse(BaseModel):
    county: str
    items_price: float
    free_shipping_threshold: float
    free_shipping: bool
    options: list[ShippingOptionSchema]


class PaidOrderSchema(BaseModel):
    order_id: str
    order_number: str
    status: str
    total_price: float
    currency: str
    payment_method: str
    payment_intent_id: str | None = None
    paid_at: datetime | None = None


class PaymentHistoryResponse(BaseModel):
    payments: list[PaidOrderSchema]
    total: int
    page: int
    total_pages: int


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------
class CreateCouponRequest(BaseModel):
    code: str
    discount_type: str
    value: float
    start_date: datetime
    end_date: datetime
    minimum_order_amount: float = 0.0
    maximum_discount_amount: float | None = None
    usage_limit: int | None = None
    description: str | None = None


class ValidateCouponRequest(BaseModel):
    code: str
    subtotal: float


class CouponQuoteResponse(BaseModel):
    code: str
    subtotal: float
    discount_amount: float
    minimum_order_amount: float


class CouponIdResponse(BaseModel):
    coupon_id: str


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    name: str
    sku: str
    price: float
    stock: int = 0
    low_stock_threshold: int = 10
    weight: float = 0.0
    description: str | None = None
    sale_price: float | None = None
    sale_start_date: datetime | None = None
    sale_end_date: datetime | None = None


class RestockRequest(BaseModel):
    quantity: int


class ChangeProductStatusRequest(BaseModel):
    status: str


class ProductIdResponse(BaseModel):
    product_id: str


class ProductStockResponse(BaseModel):
    product_id: str
    sku: str
    name: str
    price: float
    current_price: float
    stock: int
    status: str
    total_sold: int
    is_low_stock: bool


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------
class OrderSummaryResponse(BaseModel):
    order_id: str
    order_number: str
    status: str
    is_paid: bool
    item_count: int
    total_price: float
    currency: str
    placed_at: datetime | None = None


class DailyRevenueResponse(BaseModel):
    date: str
    currency: str
    gross_revenue: float
    total_refunded: float
    net_revenue: float
    paid_order_count: int
    refund_count: int
