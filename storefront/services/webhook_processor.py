"""
Webhook event processor.

Deliveries are at-least-once, so every handler must be idempotent. That is
guaranteed by the engine's conditional transitions and the payment upsert,
not by remembering event ids.
"""
from collections.abc import Awaitable, Callable
from typing import Optional

from storefront.core.logging import get_logger
from storefront.models.order import Order
from storefront.services.order_lifecycle import OrderLifecycleEngine
from storefront.services.payment_gateway import CheckoutSession, GatewayEvent, GatewayEventKind

logger = get_logger(__name__)

SessionHandler = Callable[[CheckoutSession], Awaitable[Optional[Order]]]


class WebhookEventProcessor:
    """Maps verified gateway events onto lifecycle transitions."""

    def __init__(self, engine: OrderLifecycleEngine) -> None:
        self.engine = engine
        self._handlers: dict[GatewayEventKind, SessionHandler] = {
            GatewayEventKind.SESSION_COMPLETED: engine.apply_paid,
            GatewayEventKind.ASYNC_PAYMENT_SUCCEEDED: engine.apply_paid,
            GatewayEventKind.ASYNC_PAYMENT_FAILED: engine.apply_failed,
            GatewayEventKind.SESSION_EXPIRED: engine.apply_failed,
        }

    async def process(self, event: GatewayEvent) -> Optional[Order]:
        handler = self._handlers.get(event.kind)
        if handler is None or event.session is None:
            logger.debug("Ignoring webhook event", event_id=event.id, event_type=event.type)
            return None

        logger.info(
            "Processing webhook event",
            event_id=event.id,
            event_type=event.type,
            session_id=event.session.id,
        )
        return await handler(event.session)
