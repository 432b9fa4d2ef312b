"""
Order lifecycle engine.

Owns every order state transition:

    PENDING -> PAID | FAILED | CANCELLED
    PAID    -> REFUNDED | CANCELLED (after a full gateway refund)
    FAILED  -> CANCELLED

Triggers arrive from webhook deliveries, customer status polls, admin
actions and the expiry sweep. The engine never locks; it relies on the
repositories' conditional updates and treats a lost race as "someone else
already applied a transition".
"""
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import ConflictError, InvalidInputError, NotFoundError
from storefront.core.logging import get_logger
from storefront.models.order import Order, OrderStatus
from storefront.repositories.order import OrderRepository
from storefront.repositories.payment import PaymentRepository
from storefront.services.order_expiry import get_pending_order_expiry_cutoff
from storefront.services.payment_gateway import CheckoutSession, PaymentGateway, Refund

logger = get_logger(__name__)

CANCELLABLE_STATUSES = frozenset(
    {OrderStatus.PENDING, OrderStatus.PAID, OrderStatus.FAILED}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderLifecycleEngine:
    """Applies state transitions to orders and records their payments."""

    def __init__(
        self,
        session: AsyncSession,
        gateway: PaymentGateway,
        *,
        expiry_minutes: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.orders = OrderRepository(session)
        self.payments = PaymentRepository(session)
        self.gateway = gateway
        self.expiry_minutes = expiry_minutes
        self.clock = clock

    # ------------------------------------------------------------------
    # Gateway-driven transitions (webhook push and status pull)
    # ------------------------------------------------------------------

    async def apply_paid(
        self,
        session: CheckoutSession,
        *,
        order_number: Optional[str] = None,
    ) -> Optional[Order]:
        """
        PENDING -> PAID for a session the gateway reports as paid.

        Safe to repeat: an already-PAID order keeps exactly one SUCCEEDED
        payment per external id.
        """
        order_number = order_number or session.order_number
        if not order_number or not session.is_paid:
            logger.info(
                "Ignoring checkout session without paid correlation",
                session_id=session.id,
                payment_status=session.payment_status,
            )
            return None

        order, transitioned = await self.orders.mark_paid(order_number, session.id)
        if order is None:
            logger.warning("Payment reported for unknown order", order_number=order_number)
            return None

        if order.status != OrderStatus.PAID:
            logger.warning(
                "Payment reported for order that can no longer be paid",
                order_number=order_number,
                status=order.status,
                session_id=session.id,
            )
            return order

        await self.payments.upsert_succeeded(
            order.id,
            session.payment_reference,
            order.subtotal_cents,
        )
        if transitioned:
            logger.info("Order paid", order_number=order_number, session_id=session.id)
        return order

    async def apply_failed(
        self,
        session: CheckoutSession,
        *,
        order_number: Optional[str] = None,
    ) -> Optional[Order]:
        """PENDING -> FAILED for an expired session or failed async payment."""
        order_number = order_number or session.order_number
        if not order_number:
            logger.info("Ignoring checkout session without order number", session_id=session.id)
            return None

        order, transitioned = await self.orders.mark_failed(order_number)
        if order is None:
            logger.warning("Payment failure reported for unknown order", order_number=order_number)
            return None

        if order.status != OrderStatus.FAILED:
            logger.info(
                "Ignoring payment failure for order past pending",
                order_number=order_number,
                status=order.status,
            )
            return order

        await self.payments.upsert_failed(
            order.id,
            session.payment_reference,
            order.subtotal_cents,
        )
        if transitioned:
            logger.info("Order failed", order_number=order_number, session_id=session.id)
        return order

    # ------------------------------------------------------------------
    # Timeout transitions
    # ------------------------------------------------------------------

    def expiry_cutoff(self) -> datetime:
        return get_pending_order_expiry_cutoff(self.clock(), expiry_minutes=self.expiry_minutes)

    async def expire_if_stale(self, order: Order) -> Order:
        """PENDING -> FAILED when the order outlived the pending window."""
        if order.status != OrderStatus.PENDING:
            return order

        moved = await self.orders.expire_pending_if_older_than(order.order_number, self.expiry_cutoff())
        if not moved:
            return order

        logger.info("Pending order expired", order_number=order.order_number)
        return await self.orders.get_by_id(order.id) or order

    async def expire_stale_orders(self, *, limit: int = 500) -> list[str]:
        """Sweep variant of expire_if_stale. Returns expired order numbers."""
        expired = await self.orders.expire_all_pending_older_than(self.expiry_cutoff(), limit=limit)
        if expired:
            logger.info("Expired stale pending orders", count=len(expired))
        return expired

    # ------------------------------------------------------------------
    # Admin transitions
    # ------------------------------------------------------------------

    async def cancel_order(self, order_id: UUID) -> Order:
        """
        Cancel an order.

        A PAID order is fully refunded through the gateway first; local state
        only changes once the refund succeeded.
        """
        order = await self._get_order(order_id)
        current = OrderStatus(order.status)
        if current not in CANCELLABLE_STATUSES:
            raise ConflictError("Order is already in a terminal state", code="already_terminal")

        now = self.clock()
        refund: Optional[Refund] = None
        if current == OrderStatus.PAID:
            refund = await self._refund_via_gateway(order)

        updated = await self.orders.update_status(
            order.id,
            expected_status=current,
            status=OrderStatus.CANCELLED,
            cancelled_at=now,
            refund_amount_cents=refund.amount_cents if refund else None,
            refunded_at=now if refund else None,
        )
        if updated is None:
            self._report_lost_race(order, "cancel", refund)
            raise ConflictError("Order changed while it was being cancelled", code="concurrent_update")

        logger.info(
            "Order cancelled",
            order_number=order.order_number,
            previous_status=current.value,
            refunded=refund is not None,
        )
        return updated

    async def refund_order(self, order_id: UUID, amount_cents: Optional[int] = None) -> Order:
        """
        Refund a PAID order in full (no amount, or the whole subtotal) or in part.

        A full refund moves the order to REFUNDED; a partial refund leaves it
        PAID. The order's refund summary always reflects the latest refund.
        """
        order = await self._get_order(order_id)

        if amount_cents is not None:
            if isinstance(amount_cents, bool) or not 1 <= amount_cents <= order.subtotal_cents:
                raise InvalidInputError(
                    f"Refund amount must be between 1 and {order.subtotal_cents} cents",
                    code="invalid_amount",
                )

        if order.status != OrderStatus.PAID:
            code = "already_terminal" if order.is_terminal else "invalid_status"
            raise ConflictError("Only paid orders can be refunded", code=code)

        refund = await self._refund_via_gateway(order, amount_cents)
        is_full_refund = amount_cents is None or amount_cents == order.subtotal_cents
        now = self.clock()

        updated = await self.orders.update_status(
            order.id,
            expected_status=OrderStatus.PAID,
            status=OrderStatus.REFUNDED if is_full_refund else OrderStatus.PAID,
            refund_amount_cents=refund.amount_cents,
            refunded_at=now,
        )
        if updated is None:
            self._report_lost_race(order, "refund", refund)
            raise ConflictError("Order changed while it was being refunded", code="concurrent_update")

        logger.info(
            "Order refunded",
            order_number=order.order_number,
            amount_cents=refund.amount_cents,
            full=is_full_refund,
        )
        return updated

    async def _get_order(self, order_id: UUID) -> Order:
        order = await self.orders.get_with_relations(order_id)
        if order is None:
            raise NotFoundError("Order not found", code="order_not_found")
        return order

    async def _refund_via_gateway(self, order: Order, amount_cents: Optional[int] = None) -> Refund:
        payment = await self.payments.find_succeeded_by_order_id(order.id)
        if payment is None:
            raise InvalidInputError("No succeeded payment found for this order", code="no_payment")

        refund = await self.gateway.create_refund(payment.external_id, amount_cents)
        await self.payments.create_refunded(order.id, refund.id, refund.amount_cents)
        return refund

    def _report_lost_race(self, order: Order, action: str, refund: Optional[Refund]) -> None:
        # Money may already have moved; the gateway is the source of truth.
        logger.error(
            "Order transition lost to a concurrent writer",
            order_number=order.order_number,
            action=action,
            refund_id=refund.id if refund else None,
            refund_amount_cents=refund.amount_cents if refund else None,
        )
