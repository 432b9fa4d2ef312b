"""
Stripe implementation of the payment gateway contract.
Handles checkout sessions, refunds, and webhook verification.
"""
import json
from typing import Any, Optional

import stripe

from storefront.core.config import Settings
from storefront.core.logging import get_logger
from storefront.services.payment_gateway import (
    CheckoutLineItem,
    CheckoutSession,
    GatewayEvent,
    GatewayNotConfiguredError,
    PaymentGatewayError,
    Refund,
    WebhookSignatureError,
    event_from_payload,
    session_from_payload,
)

logger = get_logger(__name__)


def _to_plain_dict(obj: Any) -> dict[str, Any]:
    """Convert a Stripe object into a plain dict."""
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)


class StripeGateway:
    """
    Async Stripe client wrapper.

    Features:
    - Explicit construction from settings (no module-level api key)
    - Bounded HTTP timeout and network retries
    - Stripe errors mapped onto the gateway error taxonomy
    """

    def __init__(
        self,
        secret_key: Optional[str],
        webhook_secret: Optional[str],
        *,
        currency: str = "usd",
        timeout: float = 10.0,
        max_retries: int = 2,
    ) -> None:
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.currency = currency
        self.timeout = timeout
        self.max_retries = max_retries
        self._client: Optional[stripe.StripeClient] = None
        self._http_client: Optional[stripe.HTTPXClient] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripeGateway":
        return cls(
            settings.stripe_secret_key,
            settings.stripe_webhook_secret,
            currency=settings.currency,
            timeout=settings.gateway_timeout_seconds,
            max_retries=settings.gateway_max_retries,
        )

    @property
    def client(self) -> stripe.StripeClient:
        if not self.secret_key:
            raise GatewayNotConfiguredError("Missing STRIPE_SECRET_KEY")
        if self._client is None:
            self._http_client = stripe.HTTPXClient(timeout=self.timeout)
            self._client = stripe.StripeClient(
                self.secret_key,
                http_client=self._http_client,
                max_network_retries=self.max_retries,
            )
        return self._client

    async def aclose(self) -> None:
        """Release the pooled HTTP connections, if a client was ever built."""
        if self._http_client is not None:
            await self._http_client.close_async()
            self._http_client = None
            self._client = None

    async def create_checkout_session(
        self,
        *,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        customer_email: Optional[str] = None,
    ) -> CheckoutSession:
        """
        Create a hosted checkout session.

        Metadata is copied onto the payment intent as well so that either
        object can be correlated back to the local order.
        """
        params: dict[str, Any] = {
            "mode": "payment",
            "line_items": [self._line_item_params(item) for item in line_items],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "payment_intent_data": {"metadata": metadata},
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = await self.client.checkout.sessions.create_async(params=params)
        except stripe.StripeError as e:
            logger.error("Stripe checkout session creation failed", error=str(e))
            raise PaymentGatewayError("Unable to create checkout session") from e

        return session_from_payload(_to_plain_dict(session))

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        """Fetch the live state of a checkout session."""
        try:
            session = await self.client.checkout.sessions.retrieve_async(
                session_id,
                params={"expand": ["payment_intent"]},
            )
        except stripe.StripeError as e:
            logger.warning(
                "Stripe checkout session lookup failed",
                session_id=session_id,
                error=str(e),
            )
            raise PaymentGatewayError("Unable to retrieve checkout session") from e

        return session_from_payload(_to_plain_dict(session))

    async def create_refund(
        self,
        payment_intent_id: str,
        amount_cents: Optional[int] = None,
    ) -> Refund:
        """Refund a payment intent. Omitting the amount refunds in full."""
        params: dict[str, Any] = {"payment_intent": payment_intent_id}
        if amount_cents is not None:
            params["amount"] = amount_cents

        try:
            refund = await self.client.refunds.create_async(params=params)
        except stripe.StripeError as e:
            logger.error(
                "Stripe refund failed",
                payment_intent=payment_intent_id,
                amount_cents=amount_cents,
                error=str(e),
            )
            raise PaymentGatewayError("Unable to issue refund") from e

        return Refund(id=refund.id, amount_cents=refund.amount)

    def verify_and_parse_webhook(self, payload: bytes, signature_header: str) -> GatewayEvent:
        """Authenticate a webhook delivery and map it onto a GatewayEvent."""
        if not self.webhook_secret:
            raise GatewayNotConfiguredError("Missing STRIPE_WEBHOOK_SECRET")

        try:
            stripe.Webhook.construct_event(payload, signature_header, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("Rejected Stripe webhook", error=str(e))
            raise WebhookSignatureError("Invalid webhook signature") from e

        return event_from_payload(json.loads(payload))

    def _line_item_params(self, item: CheckoutLineItem) -> dict[str, Any]:
        product_data: dict[str, Any] = {"name": item.name}
        if item.description:
            product_data["description"] = item.description
        return {
            "price_data": {
                "currency": self.currency,
                "unit_amount": item.unit_amount_cents,
                "product_data": product_data,
            },
            "quantity": item.quantity,
        }
