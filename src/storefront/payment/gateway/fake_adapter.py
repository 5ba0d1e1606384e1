"""Configurable fake payment gateway for development and testing.

No network calls are made. Intents live in memory; tests can mark them as
succeeded or failed, make the gateway time out, and inspect ``calls``.
Webhooks are accepted when signed with ``FakeGateway.SIGNATURE``.
"""

import json
from dataclasses import replace
from uuid import uuid4

from storefront.errors import ExternalServiceError, UnauthorizedError
from storefront.payment.gateway.port import GatewayEvent, PaymentGateway, PaymentIntent


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    SIGNATURE = "test-signature"

    def __init__(self) -> None:
        self.intents: dict[str, PaymentIntent] = {}
        self.settle_immediately: bool = False
        self.unavailable: bool = False
        self.calls: list[dict] = []

    def configure(self, settle_immediately: bool = False, unavailable: bool = False) -> None:
        """``settle_immediately`` makes new intents succeed at once; ``unavailable`` simulates a timeout."""
        self.settle_immediately = settle_immediately
        self.unavailable = unavailable

    def create_intent(self, amount: int, currency: str, metadata: dict) -> PaymentIntent:
        self.calls.append({"method": "create_intent", "amount": amount, "currency": currency, "metadata": metadata})
        self._check_available()

        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        intent = PaymentIntent(
            id=intent_id,
            amount=amount,
            currency=currency,
            status="succeeded" if self.settle_immediately else "requires_payment_method",
            client_secret=f"{intent_id}_secret_{uuid4().hex[:8]}",
            metadata=dict(metadata),
        )
        self.intents[intent_id] = intent
        return intent

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        self.calls.append({"method": "retrieve_intent", "intent_id": intent_id})
        self._check_available()

        intent = self.intents.get(intent_id)
        if intent is None:
            raise ExternalServiceError({"payment_intent_id": [f"No such payment intent: {intent_id}"]})
        return intent

    def verify_webhook_signature(self, payload: str, signature: str) -> GatewayEvent:
        if signature != self.SIGNATURE:
            raise UnauthorizedError({"signature": ["Invalid webhook signature"]})

        body = json.loads(payload)
        return GatewayEvent(id=body.get("id", ""), type=body["type"], data=body.get("data", {}).get("object", {}))

    # -------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------
    def settle(self, intent_id: str, status: str = "succeeded") -> PaymentIntent:
        """Move an intent to ``status`` as if the shopper completed (or failed) payment."""
        intent = replace(self.intents[intent_id], status=status)
        self.intents[intent_id] = intent
        return intent

    def event_for(self, intent_id: str, event_type: str = "payment_intent.succeeded") -> str:
        """A webhook body for the intent, in the gateway's wire format."""
        intent = self.intents[intent_id]
        return json.dumps(
            {
                "id": f"evt_fake_{uuid4().hex[:12]}",
                "type": event_type,
                "data": {
                    "object": {
                        "id": intent.id,
                        "amount": intent.amount,
                        "currency": intent.currency,
                        "status": intent.status,
                        "metadata": intent.metadata,
                    }
                },
            }
        )

    def _check_available(self) -> None:
        if self.unavailable:
            raise ExternalServiceError({"payment_gateway": ["Payment gateway timed out"]})
