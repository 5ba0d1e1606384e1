"""Pure pricing and numbering functions used when an order is placed."""

import random
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from storefront import settings


class ShippingMethod(Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    PICKUP = "pickup"


# County -> (standard, express) delivery rate in KES
SHIPPING_RATES = {
    "nairobi": (200.0, 500.0),
    "kiambu": (300.0, 600.0),
    "machakos": (350.0, 700.0),
    "kajiado": (400.0, 800.0),
    "murang'a": (400.0, 800.0),
    "nyeri": (450.0, 900.0),
    "kirinyaga": (450.0, 900.0),
    "nyandarua": (500.0, 1000.0),
    "mombasa": (600.0, 1200.0),
    "kilifi": (700.0, 1400.0),
    "kwale": (750.0, 1500.0),
    "kisumu": (500.0, 1000.0),
    "kakamega": (550.0, 1100.0),
    "bungoma": (600.0, 1200.0),
}
DEFAULT_SHIPPING_RATE = (600.0, 1200.0)

FREE_WEIGHT_KG = 5.0
SURCHARGE_PER_KG = 50.0


@dataclass(frozen=True)
class OrderTotals:
    items_price: float
    shipping_price: float
    tax_price: float
    discount_amount: float
    total_price: float


def generate_order_number(now: datetime | None = None, rng: random.Random | None = None) -> str:
    """``ORD-<last 8 digits of the epoch millis>-<3 random digits>``."""
    now = now or datetime.now(UTC)
    rng = rng or random
    millis = str(int(now.timestamp() * 1000))
    return f"ORD-{millis[-8:]}-{rng.randint(0, 999):03d}"


def shipping_cost(county: str, method: str, items_price: float, weight_kg: float = 0.0) -> float:
    """Delivery charge by county and method, free above the threshold or for pickup."""
    method = ShippingMethod(method)
    if method == ShippingMethod.PICKUP:
        return 0.0
    if items_price >= settings.free_shipping_threshold():
        return 0.0

    standard, express = SHIPPING_RATES.get((county or "").strip().lower(), DEFAULT_SHIPPING_RATE)
    cost = express if method == ShippingMethod.EXPRESS else standard

    if weight_kg > FREE_WEIGHT_KG:
        cost += (weight_kg - FREE_WEIGHT_KG) * SURCHARGE_PER_KG

    return round(cost, 2)


def tax_on(items_price: float) -> float:
    return round(items_price * settings.tax_rate(), 2)


def compute_totals(items_price: float, shipping_price: float, discount_amount: float) -> OrderTotals:
    """``total = items + shipping + tax - discount``; tax is levied on the undiscounted items price."""
    items_price = round(items_price, 2)
    discount_amount = round(min(discount_amount, items_price), 2)
    tax_price = tax_on(items_price)
    total_price = round(items_price + shipping_price + tax_price - discount_amount, 2)
    return OrderTotals(
        items_price=items_price,
        shipping_price=shipping_price,
        tax_price=tax_price,
        discount_amount=discount_amount,
        total_price=total_price,
    )


@dataclass(frozen=True)
class ShippingOption:
    method: str
    cost: float
    estimated_days: str


@dataclass(frozen=True)
class ShippingQuote:
    county: str
    items_price: float
    free_shipping_threshold: float
    options: list[ShippingOption]

    @property
    def free_shipping(self) -> bool:
        return self.items_price >= self.free_shipping_threshold


_ESTIMATED_DAYS = {ShippingMethod.STANDARD: "3-5", ShippingMethod.EXPRESS: "1-2"}


def shipping_quote(county: str, items_price: float, weight_kg: float = 0.0) -> ShippingQuote:
    """Standard and express delivery costs for a basket, before checkout."""
    return ShippingQuote(
        county=county,
        items_price=round(items_price, 2),
        free_shipping_threshold=settings.free_shipping_threshold(),
        options=[
            ShippingOption(
                method=method.value,
                cost=shipping_cost(county, method.value, items_price, weight_kg),
                estimated_days=days,
            )
            for method, days in _ESTIMATED_DAYS.items()
        ],
    )
