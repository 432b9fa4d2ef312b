"""
Payment gateway contract consumed by the order core.

Gateway-neutral value types, the closed set of webhook event kinds the core
understands, and the errors an adapter may raise.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol

from storefront.core.errors import NotConfiguredError, SignatureInvalidError, UpstreamUnavailableError

PAID_PAYMENT_STATUS = "paid"
EXPIRED_SESSION_STATUS = "expired"


class PaymentGatewayError(UpstreamUnavailableError):
    """A gateway call failed or timed out."""

    default_code = "gateway_error"


class GatewayNotConfiguredError(NotConfiguredError):
    """Gateway credentials are missing from the environment."""

    default_code = "gateway_not_configured"


class WebhookSignatureError(SignatureInvalidError):
    """Webhook payload could not be authenticated."""


@dataclass(frozen=True)
class CheckoutLineItem:
    name: str
    unit_amount_cents: int
    quantity: int
    description: Optional[str] = None


@dataclass(frozen=True)
class CheckoutSession:
    """Snapshot of a gateway checkout session."""

    id: str
    url: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    payment_intent: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def order_number(self) -> Optional[str]:
        return self.metadata.get("orderNumber") or None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAID_PAYMENT_STATUS

    @property
    def is_expired(self) -> bool:
        return self.status == EXPIRED_SESSION_STATUS

    @property
    def payment_reference(self) -> str:
        """External id used for payment records: the payment intent when present."""
        return self.payment_intent or self.id


@dataclass(frozen=True)
class Refund:
    id: str
    amount_cents: int


class GatewayEventKind(str, Enum):
    """Webhook event kinds the order core reacts to."""

    SESSION_COMPLETED = "checkout.session.completed"
    ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
    ASYNC_PAYMENT_FAILED = "checkout.session.async_payment_failed"
    SESSION_EXPIRED = "checkout.session.expired"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def from_type(cls, event_type: str) -> "GatewayEventKind":
        try:
            kind = cls(event_type)
        except ValueError:
            return cls.UNRECOGNIZED
        return kind


@dataclass(frozen=True)
class GatewayEvent:
    """
    Verified webhook event.

    `session` is set for every recognized kind and None for UNRECOGNIZED.
    """

    id: str
    type: str
    kind: GatewayEventKind
    session: Optional[CheckoutSession] = None


class PaymentGateway(Protocol):
    """Adapter contract for the external payment processor."""

    async def create_checkout_session(
        self,
        *,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        customer_email: Optional[str] = None,
    ) -> CheckoutSession: ...

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession: ...

    async def create_refund(
        self,
        payment_intent_id: str,
        amount_cents: Optional[int] = None,
    ) -> Refund: ...

    def verify_and_parse_webhook(self, payload: bytes, signature_header: str) -> GatewayEvent: ...


def session_from_payload(data: dict[str, Any]) -> CheckoutSession:
    """Build a CheckoutSession from a gateway checkout-session object."""
    payment_intent = data.get("payment_intent")
    if isinstance(payment_intent, dict):
        payment_intent = payment_intent.get("id")

    metadata = data.get("metadata") or {}
    return CheckoutSession(
        id=str(data.get("id") or ""),
        url=data.get("url"),
        status=data.get("status"),
        payment_status=data.get("payment_status"),
        payment_intent=str(payment_intent) if payment_intent else None,
        metadata={str(k): str(v) for k, v in dict(metadata).items()},
    )


def event_from_payload(data: dict[str, Any]) -> GatewayEvent:
    """Map a decoded webhook event body onto the closed event variant."""
    event_type = str(data.get("type") or "")
    kind = GatewayEventKind.from_type(event_type)

    session = None
    if kind is not GatewayEventKind.UNRECOGNIZED:
        obj = (data.get("data") or {}).get("object") or {}
        session = session_from_payload(obj)

    return GatewayEvent(
        id=str(data.get("id") or ""),
        type=event_type,
        kind=kind,
        session=session,
    )
