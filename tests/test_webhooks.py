"""
Tests for the Stripe webhook endpoint.
"""
import json

from helpers import deliver_event, load_order, load_payments, session_event, sign_payload
from storefront.services.payment_gateway import CheckoutSession


class TestStripeWebhook:
    """Tests for POST /api/webhooks/stripe."""

    async def test_completed_session_marks_order_paid(
        self, async_client, gateway, session_factory, pending_order
    ):
        """Test that a paid checkout.session.completed moves the order to PAID."""
        session = gateway.complete_session(pending_order["sessionId"], 1400)

        response = await deliver_event(async_client, "checkout.session.completed", session)

        assert response.status_code == 200
        assert response.json() == {"received": True}

        order = await load_order(session_factory, pending_order["orderNumber"])
        assert order.status == "paid"
        payments = await load_payments(session_factory, order.id)
        assert [(p.status, p.external_id, p.amount_cents) for p in payments] == [
            ("succeeded", session.payment_intent, 1400),
        ]

    async def test_duplicate_delivery_is_idempotent(
        self, async_client, gateway, session_factory, pending_order
    ):
        """Test that redelivering the same event keeps a single payment record."""
        session = gateway.complete_session(pending_order["sessionId"], 1400)

        for _ in range(3):
            response = await deliver_event(async_client, "checkout.session.completed", session)
            assert response.status_code == 200

        order = await load_order(session_factory, pending_order["orderNumber"])
        assert order.status == "paid"
        payments = await load_payments(session_factory, order.id)
        assert len(payments) == 1

    async def test_async_payment_succeeded_marks_order_paid(
        self, async_client, gateway, session_factory, pending_order
    ):
        session = gateway.complete_session(pending_order["sessionId"], 1400)

        response = await deliver_event(
            async_client, "checkout.session.async_payment_succeeded", session
        )

        assert response.status_code == 200
        order = await load_order(session_factory, pending_order["orderNumber"])
        assert order.status == "paid"

    async def test_unpaid_completion_is_ignored(
        self, async_client, gateway, session_factory, pending_order
    ):
        """Test that a completed session still awaiting an async payment changes nothing."""
        session = gateway.sessions[pending_order["sessionId"]]

        response = await deliver_event(async_client, "checkout.session.completed", session)

        assert response.status_code == 200
        order = await load_order(session_factory, pending_order["orderNumber"])
        assert order.status == "pending"
        assert await load_payments(session_factory, order.id) == []

    async def test_expired_session_marks_order_failed(
        self, async_client, gateway, session_factory, pending_order
    ):
        session = gateway.expire_session(pending_order["sessionId"])

        response = await deliver_event(async_client, "checkout.session.expired", session)

        assert response.status_code == 200
        order = await load_order(session_factory, pending_order["orderNumber"])
        assert order.status == "failed"
        payments = await load_payments(session_factory, order.id)
        assert [(p.status, p.external_id) for p in payments] == [("failed", session.id)]

    async def test_async_payment_failed_marks_order_failed(
        self, async_client, gateway, session_factory, pending_order
    ):
        session = gateway.sessions[pending_order["sessionId"]]

        response = await deliver_event(async_client, "checkout.session.async_payment_failed", session)

        assert response.status_code == 200
        order = await load_order(session_factory, pending_order["orderNumber"])
        assert order.status == "failed"

    async def test_failure_after_payment_does_not_regress(
        self, async_client, gateway, session_factory, paid_order
    ):
        """Test that a late expiry event cannot move a PAID order backwards."""
        session = gateway.expire_session(paid_order.stripe_session_id)

        response = await deliver_event(async_client, "checkout.session.expired", session)

        assert response.status_code == 200
        order = await load_order(session_factory, paid_order.order_number)
        assert order.status == "paid"

    async def test_unknown_order_is_acknowledged(self, async_client, session_factory):
        """Test that events for orders this service never created are accepted."""
        session = CheckoutSession(
            id="cs_foreign",
            status="complete",
            payment_status="paid",
            payment_intent="pi_foreign",
            metadata={"orderNumber": "MB-UNKNOWN-0000"},
        )

        response = await deliver_event(async_client, "checkout.session.completed", session)

        assert response.status_code == 200
        assert await load_order(session_factory, "MB-UNKNOWN-0000") is None

    async def test_unrecognized_event_type_is_acknowledged(self, async_client):
        body = json.dumps({"id": "evt_other", "object": "event", "type": "invoice.paid", "data": {"object": {}}})

        response = await async_client.post(
            "/api/webhooks/stripe",
            content=body,
            headers={"stripe-signature": sign_payload(body)},
        )

        assert response.status_code == 200
        assert response.json() == {"received": True}

    async def test_missing_signature_rejected(self, async_client, session_factory, pending_order):
        body = session_event(
            "checkout.session.completed",
            {"id": pending_order["sessionId"], "payment_status": "paid"},
        )

        response = await async_client.post("/api/webhooks/stripe", content=body)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "missing_webhook_signature"

    async def test_bad_signature_rejected(self, async_client, gateway, session_factory, pending_order):
        """Test that a forged event never reaches the lifecycle engine."""
        session = gateway.complete_session(pending_order["sessionId"], 1400)
        body = session_event(
            "checkout.session.completed",
            {
                "id": session.id,
                "payment_status": "paid",
                "payment_intent": session.payment_intent,
                "metadata": session.metadata,
            },
        )

        response = await async_client.post(
            "/api/webhooks/stripe",
            content=body,
            headers={"stripe-signature": sign_payload(body, secret="whsec_wrong")},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_webhook_signature"
        order = await load_order(session_factory, pending_order["orderNumber"])
        assert order.status == "pending"
