"""Stripe payment gateway adapter.

Uses the stripe-python SDK: PaymentIntents are created and retrieved through
``stripe.PaymentIntent`` with a bounded HTTP timeout, and webhook bodies are
authenticated with ``stripe.Webhook.construct_event`` against the endpoint's
signing secret.
"""

import json
from contextlib import contextmanager

import stripe
import structlog

from storefront import settings
from storefront.errors import ExternalServiceError, UnauthorizedError
from storefront.payment.gateway.port import GatewayEvent, PaymentGateway, PaymentIntent

logger = structlog.get_logger(__name__)

SIGNATURE_TOLERANCE_SECONDS = 300


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(self, api_key: str, webhook_secret: str, timeout: float | None = None) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.timeout = timeout or settings.payment_gateway_timeout()
        stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout)

    def create_intent(self, amount: int, currency: str, metadata: dict) -> PaymentIntent:
        with _stripe_errors("create_intent", self.timeout):
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=amount,
                currency=currency.lower(),
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
            )
        return self._to_intent(intent)

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        with _stripe_errors("retrieve_intent", self.timeout):
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.api_key)
        return self._to_intent(intent)

    def verify_webhook_signature(self, payload: str, signature: str) -> GatewayEvent:
        if not signature or not self.webhook_secret:
            raise UnauthorizedError({"signature": ["Invalid webhook signature"]})

        try:
            event = stripe.Webhook.construct_event(
                payload, signature, self.webhook_secret, tolerance=SIGNATURE_TOLERANCE_SECONDS
            )
        except stripe.SignatureVerificationError as exc:
            logger.warning("stripe_webhook_rejected", reason=str(exc))
            raise UnauthorizedError({"signature": ["Invalid webhook signature"]}) from exc
        except ValueError as exc:
            raise UnauthorizedError({"signature": ["Webhook body is not valid JSON"]}) from exc

        body = json.loads(payload)
        return GatewayEvent(id=event.id, type=event.type, data=body.get("data", {}).get("object", {}))

    @staticmethod
    def _to_intent(intent) -> PaymentIntent:
        metadata = intent.metadata.to_dict() if intent.metadata else {}
        return PaymentIntent(
            id=intent.id,
            amount=intent.amount,
            currency=intent.currency,
            status=intent.status,
            client_secret=getattr(intent, "client_secret", None),
            metadata=metadata,
            receipt_email=getattr(intent, "receipt_email", None),
        )


@contextmanager
def _stripe_errors(operation: str, timeout: float):
    """Surface SDK failures as ``ExternalServiceError``."""
    try:
        yield
    except stripe.APIConnectionError as exc:
        logger.warning("stripe_unreachable", operation=operation, timeout=timeout, error=str(exc))
        raise ExternalServiceError({"payment_gateway": ["Payment gateway is unreachable"]}) from exc
    except stripe.StripeError as exc:
        message = exc.user_message or "Payment gateway rejected the request"
        logger.warning("stripe_error", operation=operation, http_status=exc.http_status, message=message)
        raise ExternalServiceError({"payment_gateway": [message]}) from exc
