"""Payment gateway port (abstract interface).

The reconciler talks to the gateway only through this contract, so the fake
adapter (dev/test) and the Stripe adapter (production) are interchangeable.
Amounts are in the smallest currency unit (cents for KES).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PaymentIntent:
    """A gateway-side intent to collect a payment."""

    id: str
    amount: int
    currency: str
    status: str
    client_secret: str | None = None
    metadata: dict = field(default_factory=dict)
    receipt_email: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


@dataclass(frozen=True)
class GatewayEvent:
    """An authenticated webhook notification."""

    id: str
    type: str
    data: dict = field(default_factory=dict)

    @property
    def order_id(self) -> str | None:
        return (self.data.get("metadata") or {}).get("order_id")


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_intent(self, amount: int, currency: str, metadata: dict) -> PaymentIntent:
        """Create a payment intent for ``amount`` minor units."""
        ...

    @abstractmethod
    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        """Fetch the current state of an intent."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: str, signature: str) -> GatewayEvent:
        """Authenticate a webhook body and parse it; raise ``UnauthorizedError`` if forged."""
        ...
