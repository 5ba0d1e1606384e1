"""Payment methods offered at checkout."""

from dataclasses import dataclass

from storefront import settings
from storefront.order.order import PaymentMethod


@dataclass(frozen=True)
class PaymentMethodInfo:
    id: str
    name: str
    description: str
    processing_time: str
    note: str | None = None


_CATALOGUE = [
    PaymentMethodInfo(
        id=PaymentMethod.STRIPE.value,
        name="Credit/Debit Card",
        description="Pay securely with your credit or debit card",
        processing_time="Instant",
    ),
    PaymentMethodInfo(
        id=PaymentMethod.MPESA.value,
        name="M-Pesa",
        description="Pay with M-Pesa mobile money",
        processing_time="Instant",
        note="Available for Kenyan phone numbers only",
    ),
    PaymentMethodInfo(
        id=PaymentMethod.BANK_TRANSFER.value,
        name="Bank Transfer",
        description="Direct bank transfer",
        processing_time="1-3 business days",
        note="Orders processed after payment verification",
    ),
    PaymentMethodInfo(
        id=PaymentMethod.CASH_ON_DELIVERY.value,
        name="Cash on Delivery",
        description="Pay when you receive your order",
        processing_time="Upon delivery",
        note="Available within Nairobi and selected counties",
    ),
]


def available_payment_methods() -> list[PaymentMethodInfo]:
    """M-Pesa is listed only when ``MPESA_ENABLED`` is set."""
    return [
        method
        for method in _CATALOGUE
        if method.id != PaymentMethod.MPESA.value or settings.mpesa_enabled()
    ]
