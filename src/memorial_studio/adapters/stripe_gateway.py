"""Stripe Checkout gateway."""

import json
import logging
from dataclasses import dataclass

import stripe

from memorial_studio.domain.errors import InvalidSignatureError, PaymentProviderError
from memorial_studio.domain.payments import (
    CheckoutSession,
    checkout_session_from_payload,
)
from memorial_studio.services.payments import CheckoutGateway

_logger = logging.getLogger(__name__)


@dataclass
class StripeCheckoutGateway(CheckoutGateway):
    """Checkout gateway backed by the Stripe API."""

    client: stripe.StripeClient
    webhook_secret: str | None
    http_client: stripe.HTTPXClient | None = None

    @classmethod
    def create(
        cls, secret_key: str, webhook_secret: str | None
    ) -> "StripeCheckoutGateway":
        """Create a gateway with an async-capable Stripe client."""
        http_client = stripe.HTTPXClient()
        return cls(
            client=stripe.StripeClient(secret_key, http_client=http_client),
            webhook_secret=webhook_secret,
            http_client=http_client,
        )

    async def close(self) -> None:
        if self.http_client is not None:
            await self.http_client.close_async()

    async def create_checkout_session(
        self,
        *,
        price_id: str,
        success_url: str,
        cancel_url: str,
        customer_email: str | None,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        """Create a one-time payment checkout session."""
        params: dict[str, object] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "payment_intent_data": {"metadata": metadata},
        }
        if customer_email:
            params["customer_email"] = customer_email
        try:
            session = await self.client.checkout.sessions.create_async(params=params)
        except stripe.StripeError as exc:
            _logger.exception(
                "Stripe checkout session creation failed",
                extra={"memorial_id": metadata.get("memorial_id")},
            )
            raise PaymentProviderError("Failed to create checkout session") from exc
        return checkout_session_from_payload(session.to_dict())

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        """Fetch the current state of a checkout session."""
        try:
            session = await self.client.checkout.sessions.retrieve_async(session_id)
        except stripe.StripeError as exc:
            _logger.exception(
                "Stripe checkout session lookup failed",
                extra={"session_id": session_id},
            )
            raise PaymentProviderError("Failed to retrieve checkout session") from exc
        return checkout_session_from_payload(session.to_dict())

    def construct_event(self, payload: bytes, signature: str | None) -> dict:
        """Verify the Stripe-Signature header and return the event body."""
        if not self.webhook_secret or not signature:
            raise InvalidSignatureError("Missing webhook signature")
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"), signature, self.webhook_secret
            )
        except (ValueError, stripe.SignatureVerificationError) as exc:
            _logger.warning("Webhook signature verification failed: %s", exc)
            raise InvalidSignatureError from exc
        return json.loads(payload)
