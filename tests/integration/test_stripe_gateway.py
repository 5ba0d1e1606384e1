"""Stripe adapter: SDK calls, error mapping and webhook signatures."""

import json
import time

import pytest
import stripe
from storefront.errors import ExternalServiceError, UnauthorizedError
from storefront.payment.gateway.stripe_adapter import StripeGateway

SECRET = "whsec_test"


def _intent(**overrides):
    body = {
        "id": "pi_123",
        "object": "payment_intent",
        "amount": 250000,
        "currency": "kes",
        "status": "requires_payment_method",
        "client_secret": "pi_123_secret",
        "metadata": {"order_id": "order-1"},
    }
    body.update(overrides)
    return stripe.PaymentIntent.construct_from(body, "sk_test")


def _sign(payload, timestamp, secret=SECRET):
    signature = stripe.WebhookSignature._compute_signature(f"{timestamp}.{payload}", secret)
    return f"t={timestamp},v1={signature}"


@pytest.fixture
def gateway():
    return StripeGateway("sk_test", SECRET, timeout=3)


class TestPaymentIntents:
    def test_create_intent_passes_amount_currency_and_metadata(self, gateway, monkeypatch):
        sent = {}

        def create(**params):
            sent.update(params)
            return _intent()

        monkeypatch.setattr(stripe.PaymentIntent, "create", create)

        intent = gateway.create_intent(250000, "KES", {"order_id": "order-1"})

        assert sent["api_key"] == "sk_test"
        assert sent["currency"] == "kes"
        assert sent["metadata"] == {"order_id": "order-1"}
        assert intent.id == "pi_123"
        assert intent.client_secret == "pi_123_secret"
        assert intent.metadata == {"order_id": "order-1"}

    def test_timeout_is_set_on_the_sdk_http_client(self, gateway):
        assert stripe.default_http_client._timeout == 3

    def test_connection_failure_is_an_external_error(self, gateway, monkeypatch):
        def retrieve(intent_id, **params):
            raise stripe.APIConnectionError("Request timed out")

        monkeypatch.setattr(stripe.PaymentIntent, "retrieve", retrieve)

        with pytest.raises(ExternalServiceError) as exc:
            gateway.retrieve_intent("pi_123")
        assert exc.value.messages["payment_gateway"] == ["Payment gateway is unreachable"]

    def test_rejected_request_carries_the_gateway_message(self, gateway, monkeypatch):
        def retrieve(intent_id, **params):
            raise stripe.CardError("Your card was declined.", None, "card_declined", http_status=402)

        monkeypatch.setattr(stripe.PaymentIntent, "retrieve", retrieve)

        with pytest.raises(ExternalServiceError) as exc:
            gateway.retrieve_intent("pi_123")
        assert exc.value.messages["payment_gateway"] == ["Your card was declined."]


class TestWebhookSignature:
    payload = json.dumps(
        {
            "id": "evt_1",
            "object": "event",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_123", "status": "succeeded", "metadata": {"order_id": "order-1"}}},
        }
    )

    def test_valid_signature_yields_the_event(self, gateway):
        event = gateway.verify_webhook_signature(self.payload, _sign(self.payload, int(time.time())))

        assert event.id == "evt_1"
        assert event.type == "payment_intent.succeeded"
        assert event.order_id == "order-1"

    def test_wrong_secret_is_rejected(self, gateway):
        with pytest.raises(UnauthorizedError):
            gateway.verify_webhook_signature(self.payload, _sign(self.payload, int(time.time()), "whsec_other"))

    def test_stale_timestamp_is_rejected(self, gateway):
        with pytest.raises(UnauthorizedError):
            gateway.verify_webhook_signature(self.payload, _sign(self.payload, int(time.time()) - 301))

    def test_missing_header_is_rejected(self, gateway):
        with pytest.raises(UnauthorizedError):
            gateway.verify_webhook_signature(self.payload, "")
