"""
Test helpers: a scripted payment gateway, Stripe webhook signing, and
fresh-session readers for asserting on persisted state.
"""
import hashlib
import hmac
import json
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import select, update

from storefront.models import Order, Payment
from storefront.repositories.order import OrderRepository
from storefront.services.payment_gateway import (
    CheckoutLineItem,
    CheckoutSession,
    GatewayEvent,
    PaymentGatewayError,
    Refund,
)
from storefront.services.stripe_client import StripeGateway

WEBHOOK_SECRET = "whsec_test_secret"
ADMIN_TOKEN = "test-admin-token"


class FakeGateway:
    """
    In-memory stand-in for the Stripe adapter.

    Sessions are created "open"; tests move them along with `complete_session`
    or `expire_session`. Webhook verification is the real Stripe signature
    check against WEBHOOK_SECRET.
    """

    def __init__(self) -> None:
        self.secret_key = "sk_test_fake"
        self.sessions: dict[str, CheckoutSession] = {}
        self.created: list[dict[str, Any]] = []
        self.refunds: list[dict[str, Any]] = []
        self.charged: dict[str, int] = {}
        self.fail_retrieve = False
        self.fail_refund = False
        self.omit_url = False
        self._verifier = StripeGateway(None, WEBHOOK_SECRET)

    async def create_checkout_session(
        self,
        *,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        customer_email: Optional[str] = None,
    ) -> CheckoutSession:
        session_id = f"cs_test_{len(self.sessions) + 1}"
        session = CheckoutSession(
            id=session_id,
            url=None if self.omit_url else f"https://checkout.stripe.test/{session_id}",
            status="open",
            payment_status="unpaid",
            metadata=dict(metadata),
        )
        self.sessions[session_id] = session
        self.created.append(
            {
                "line_items": line_items,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": metadata,
                "customer_email": customer_email,
            }
        )
        return session

    def complete_session(self, session_id: str, amount_cents: int) -> CheckoutSession:
        intent = f"pi_{session_id}"
        session = CheckoutSession(
            id=session_id,
            url=self.sessions[session_id].url,
            status="complete",
            payment_status="paid",
            payment_intent=intent,
            metadata=self.sessions[session_id].metadata,
        )
        self.sessions[session_id] = session
        self.charged[intent] = amount_cents
        return session

    def expire_session(self, session_id: str) -> CheckoutSession:
        session = CheckoutSession(
            id=session_id,
            status="expired",
            payment_status="unpaid",
            metadata=self.sessions[session_id].metadata,
        )
        self.sessions[session_id] = session
        return session

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        if self.fail_retrieve:
            raise PaymentGatewayError("Unable to retrieve checkout session")
        return self.sessions[session_id]

    async def create_refund(
        self,
        payment_intent_id: str,
        amount_cents: Optional[int] = None,
    ) -> Refund:
        if self.fail_refund:
            raise PaymentGatewayError("Unable to issue refund")
        amount = amount_cents if amount_cents is not None else self.charged.get(payment_intent_id, 0)
        refund = Refund(id=f"re_{len(self.refunds) + 1}", amount_cents=amount)
        self.refunds.append({"payment_intent": payment_intent_id, "amount_cents": amount_cents})
        return refund

    def verify_and_parse_webhook(self, payload: bytes, signature_header: str) -> GatewayEvent:
        return self._verifier.verify_and_parse_webhook(payload, signature_header)


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header for `payload`."""
    timestamp = timestamp or int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def session_event(event_type: str, session: dict[str, Any], event_id: str = "evt_test_1") -> str:
    """Serialize a checkout-session webhook event body."""
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "data": {"object": {"object": "checkout.session", **session}},
        }
    )


async def load_order(session_factory, order_number: str) -> Optional[Order]:
    """Read an order with items and payments in a fresh session."""
    async with session_factory() as session:
        order = await OrderRepository(session).get_by_order_number(order_number)
        if order is None:
            return None
        return await OrderRepository(session).get_with_relations(order.id)


async def load_payments(session_factory, order_id) -> list[Payment]:
    async with session_factory() as session:
        result = await session.execute(
            select(Payment).where(Payment.order_id == order_id).order_by(Payment.created_at)
        )
        return list(result.scalars().all())


async def age_order(session_factory, order_number: str, minutes: int) -> None:
    """Move an order's creation time `minutes` into the past."""
    async with session_factory() as session:
        await session.execute(
            update(Order)
            .where(Order.order_number == order_number)
            .values(created_at=datetime.now(timezone.utc) - timedelta(minutes=minutes))
        )
        await session.commit()


def session_object(session: CheckoutSession) -> dict[str, Any]:
    return {
        "id": session.id,
        "status": session.status,
        "payment_status": session.payment_status,
        "payment_intent": session.payment_intent,
        "metadata": session.metadata,
    }


async def deliver_event(
    async_client,
    event_type: str,
    session: CheckoutSession,
    event_id: str = "evt_test_1",
):
    """POST a correctly signed webhook for `session` to the Stripe endpoint."""
    body = session_event(event_type, session_object(session), event_id=event_id)
    return await async_client.post(
        "/api/webhooks/stripe",
        content=body,
        headers={"stripe-signature": sign_payload(body)},
    )
