"""
Order repository for data access operations.

Every lifecycle write is a conditional UPDATE guarded by the expected current
status. The affected row count tells the caller whether it won the race, so
concurrent writers (webhook delivery, customer status polls, admin actions,
the expiry sweep) never need application-level locks. Any storage backend
substituted here must keep that compare-and-swap property.
"""
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import selectinload

from storefront.models.order import Order, OrderItem, OrderStatus
from storefront.repositories.base import BaseRepository


class OrderRepository(BaseRepository[Order]):
    """Repository for Order model operations."""

    model = Order

    async def create_pending_order(
        self,
        *,
        order_number: str,
        subtotal_cents: int,
        items: list[dict[str, Any]],
        customer_email: Optional[str] = None,
        customer_phone: Optional[str] = None,
    ) -> Order:
        """Persist a new PENDING order with its line item snapshots."""
        order = Order(
            order_number=order_number,
            status=OrderStatus.PENDING.value,
            subtotal_cents=subtotal_cents,
            customer_email=customer_email,
            customer_phone=customer_phone,
            items=[
                OrderItem(position=position, **item)
                for position, item in enumerate(items)
            ],
        )
        self.session.add(order)
        await self.session.flush()
        return order

    async def get_by_order_number(self, order_number: str) -> Optional[Order]:
        """Fetch the current row for an order number, bypassing stale identity-map state."""
        stmt = (
            select(Order)
            .where(Order.order_number == order_number)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_with_relations(self, order_id: UUID) -> Optional[Order]:
        """Fetch an order with items and payments eagerly loaded."""
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.items), selectinload(Order.payments))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_orders(
        self,
        *,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Order], int]:
        """
        List orders newest first, optionally filtered by status.
        Returns (orders, total_count) tuple.
        """
        base_query = select(Order)
        if status:
            base_query = base_query.where(Order.status == status.value)

        count_stmt = select(func.count()).select_from(base_query.subquery())
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar() or 0

        stmt = (
            base_query
            .options(selectinload(Order.items), selectinload(Order.payments))
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def attach_session_id(self, order_number: str, session_id: str) -> None:
        """Record the gateway checkout session created for an order."""
        await self._conditional_update(
            Order.order_number == order_number,
            values={"stripe_session_id": session_id},
        )

    async def mark_paid(
        self,
        order_number: str,
        session_id: str,
    ) -> tuple[Optional[Order], bool]:
        """
        Transition PENDING -> PAID.

        Returns (order, transitioned). An order that is already PAID comes
        back with transitioned=False; a missing order comes back as None.
        """
        transitioned = await self._conditional_update(
            Order.order_number == order_number,
            Order.status == OrderStatus.PENDING.value,
            values={
                "status": OrderStatus.PAID.value,
                "stripe_session_id": session_id,
            },
        )
        return await self.get_by_order_number(order_number), transitioned

    async def mark_failed(self, order_number: str) -> tuple[Optional[Order], bool]:
        """Transition PENDING -> FAILED. Same return contract as mark_paid."""
        transitioned = await self._conditional_update(
            Order.order_number == order_number,
            Order.status == OrderStatus.PENDING.value,
            values={"status": OrderStatus.FAILED.value},
        )
        return await self.get_by_order_number(order_number), transitioned

    async def expire_pending_if_older_than(
        self,
        order_number: str,
        cutoff: datetime,
    ) -> bool:
        """Fail a PENDING order created before the cutoff. Returns whether it moved."""
        return await self._conditional_update(
            Order.order_number == order_number,
            Order.status == OrderStatus.PENDING.value,
            Order.created_at < cutoff,
            values={"status": OrderStatus.FAILED.value},
        )

    async def expire_all_pending_older_than(
        self,
        cutoff: datetime,
        *,
        limit: int = 500,
    ) -> list[str]:
        """Fail up to `limit` stale PENDING orders. Returns the order numbers that moved."""
        candidates_stmt = (
            select(Order.id, Order.order_number)
            .where(
                Order.status == OrderStatus.PENDING.value,
                Order.created_at < cutoff,
            )
            .order_by(Order.created_at)
            .limit(limit)
        )
        candidates = (await self.session.execute(candidates_stmt)).all()

        expired = []
        for order_id, order_number in candidates:
            moved = await self._conditional_update(
                Order.id == order_id,
                Order.status == OrderStatus.PENDING.value,
                values={"status": OrderStatus.FAILED.value},
            )
            if moved:
                expired.append(order_number)
        return expired

    async def update_status(
        self,
        order_id: UUID,
        *,
        expected_status: OrderStatus,
        status: OrderStatus,
        refund_amount_cents: Optional[int] = None,
        refunded_at: Optional[datetime] = None,
        cancelled_at: Optional[datetime] = None,
    ) -> Optional[Order]:
        """
        Apply an admin transition if the order is still in `expected_status`.

        Returns the refreshed order, or None if another writer moved it first.
        """
        values: dict[str, Any] = {"status": status.value}
        if refund_amount_cents is not None:
            values["refund_amount_cents"] = refund_amount_cents
        if refunded_at is not None:
            values["refunded_at"] = refunded_at
        if cancelled_at is not None:
            values["cancelled_at"] = cancelled_at

        moved = await self._conditional_update(
            Order.id == order_id,
            Order.status == expected_status.value,
            values=values,
        )
        if not moved:
            return None
        return await self.get_with_relations(order_id)

    async def _conditional_update(self, *criteria: Any, values: dict[str, Any]) -> bool:
        stmt = (
            update(Order)
            .where(*criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
