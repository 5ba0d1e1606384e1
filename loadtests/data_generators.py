"""Faker-based data generators for Locust load test scenarios.

Payloads pass the storefront's validation rules (Kenyan phone numbers,
known counties) and match the field names of the API request schemas.
"""

import random
import uuid

from faker import Faker

fake = Faker()

COUNTIES = ["Nairobi", "Kiambu", "Machakos", "Mombasa", "Kisumu", "Nakuru"]


def admin_headers() -> dict:
    return {"X-User-Id": "loadtest-admin", "X-User-Role": "admin"}


def shopper_headers() -> dict:
    return {"X-User-Id": f"LT-{uuid.uuid4().hex[:10]}"}


def valid_sku(prefix: str = "LT") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def kenyan_phone() -> str:
    """Matches ^(\\+254|0)[1-9]\\d{8}$."""
    return f"+2547{random.randint(0, 99999999):08d}"


def product_data(stock: int | None = None) -> dict:
    word = fake.word().capitalize()
    return {
        "name": f"{word} Safety Helmet",
        "sku": valid_sku("PPE"),
        "price": round(random.uniform(500, 5000), 2),
        "stock": stock if stock is not None else random.randint(50, 500),
        "weight": round(random.uniform(0.2, 8.0), 1),
    }


def shipping_address() -> dict:
    return {
        "full_name": fake.name()[:100],
        "phone": kenyan_phone(),
        "email": f"{fake.user_name()[:20]}.{uuid.uuid4().hex[:4]}@example.com",
        "street": fake.street_address()[:255],
        "city": fake.city()[:100],
        "county": random.choice(COUNTIES),
        "postal_code": f"{random.randint(100, 99999):05d}",
    }


def checkout_data(payment_method: str = "stripe") -> dict:
    return {
        "shipping_address": shipping_address(),
        "payment_method": payment_method,
        "shipping_method": random.choice(["standard", "express", "pickup"]),
    }
