"""Business settings read from the environment.

Values are read on every access so tests and deployments can override them
through environment variables without re-importing modules.
"""

import os


def _float(name: str, default: float) -> float:
    return float(os.getenv(name, default))


def _int(name: str, default: int) -> int:
    return int(os.getenv(name, default))


def store_currency() -> str:
    return os.getenv("STORE_CURRENCY", "KES")


def tax_rate() -> float:
    return _float("TAX_RATE", 0.16)


def free_shipping_threshold() -> float:
    return _float("FREE_SHIPPING_THRESHOLD", 10000)


def anonymous_cart_ttl_days() -> int:
    return _int("ANONYMOUS_CART_TTL_DAYS", 7)


def max_item_quantity() -> int:
    return _int("MAX_ITEM_QUANTITY", 10)


def payment_gateway() -> str:
    return os.getenv("PAYMENT_GATEWAY", "fake")


def mpesa_enabled() -> bool:
    return os.getenv("MPESA_ENABLED", "false").lower() == "true"


def stripe_secret_key() -> str:
    return os.getenv("STRIPE_SECRET_KEY", "")


def stripe_webhook_secret() -> str:
    return os.getenv("STRIPE_WEBHOOK_SECRET", "")


def payment_gateway_timeout() -> float:
    return _float("PAYMENT_GATEWAY_TIMEOUT", 10)


def reservation_max_attempts() -> int:
    return _int("RESERVATION_MAX_ATTEMPTS", 5)


def staff_alert_email() -> str:
    return os.getenv("STAFF_ALERT_EMAIL", "inventory@safestore.co.ke")
