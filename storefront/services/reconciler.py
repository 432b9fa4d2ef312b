"""
Pull reconciliation for public order status reads.

A customer landing on the order page may arrive before the gateway's webhook
does. Reading the status therefore asks the gateway directly for PENDING
orders, then falls back to the expiry window. Gateway trouble never surfaces
here: the order is returned as it was.
"""
from storefront.core.errors import NotFoundError, UpstreamUnavailableError
from storefront.core.logging import get_logger
from storefront.models.order import Order, OrderStatus
from storefront.services.order_lifecycle import OrderLifecycleEngine

logger = get_logger(__name__)


class OrderStatusReconciler:
    """Resolves the live status of an order on read."""

    def __init__(self, engine: OrderLifecycleEngine) -> None:
        self.engine = engine

    async def get_public_status(self, order_number: str) -> Order:
        order = await self.engine.orders.get_by_order_number(order_number)
        if order is None:
            raise NotFoundError("Order not found", code="order_not_found")

        if order.status != OrderStatus.PENDING:
            return order

        if order.stripe_session_id:
            order = await self._reconcile_with_gateway(order)

        if order.status == OrderStatus.PENDING:
            order = await self.engine.expire_if_stale(order)

        return order

    async def _reconcile_with_gateway(self, order: Order) -> Order:
        try:
            session = await self.engine.gateway.retrieve_checkout_session(order.stripe_session_id)
        except UpstreamUnavailableError as e:
            logger.warning(
                "Gateway unavailable during status reconciliation",
                order_number=order.order_number,
                error=e.message,
            )
            return order

        if session.is_paid:
            updated = await self.engine.apply_paid(session, order_number=order.order_number)
        elif session.is_expired:
            updated = await self.engine.apply_failed(session, order_number=order.order_number)
        else:
            return order

        return updated or order
