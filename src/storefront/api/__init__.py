"""Storefront API package."""

from storefront.api.errors import register_storefront_exception_handlers
from storefront.api.routes import (
    cart_router,
    coupon_router,
    order_router,
    payment_router,
    product_router,
    report_router,
)

routers = [cart_router, order_router, payment_router, coupon_router, product_router, report_router]

__all__ = [
    "routers",
    "register_storefront_exception_handlers",
    "cart_router",
    "order_router",
    "payment_router",
    "coupon_router",
    "product_router",
    "report_router",
]
