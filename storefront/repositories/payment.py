"""
Payment repository for data access operations.
"""
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from storefront.models.order import utcnow
from storefront.models.payment import STRIPE_PROVIDER, Payment, PaymentStatus
from storefront.repositories.base import BaseRepository

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class PaymentRepository(BaseRepository[Payment]):
    """Repository for Payment model operations."""

    model = Payment

    async def upsert_succeeded(
        self,
        order_id: UUID,
        external_id: str,
        amount_cents: int,
    ) -> Payment:
        """Record a successful charge; duplicate deliveries update in place."""
        return await self._upsert(order_id, external_id, amount_cents, PaymentStatus.SUCCEEDED)

    async def upsert_failed(
        self,
        order_id: UUID,
        external_id: str,
        amount_cents: int,
    ) -> Payment:
        """Record a failed or expired payment attempt."""
        return await self._upsert(order_id, external_id, amount_cents, PaymentStatus.FAILED)

    async def create_refunded(
        self,
        order_id: UUID,
        external_id: str,
        amount_cents: int,
    ) -> Payment:
        """Append a refund record. Each gateway refund carries its own id."""
        payment = Payment(
            order_id=order_id,
            provider=STRIPE_PROVIDER,
            external_id=external_id,
            status=PaymentStatus.REFUNDED.value,
            amount_cents=amount_cents,
        )
        self.session.add(payment)
        await self.session.flush()
        return payment

    async def find_succeeded_by_order_id(self, order_id: UUID) -> Optional[Payment]:
        """Get the earliest successful charge for an order."""
        stmt = (
            select(Payment)
            .where(
                Payment.order_id == order_id,
                Payment.status == PaymentStatus.SUCCEEDED.value,
            )
            .order_by(Payment.created_at)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _upsert(
        self,
        order_id: UUID,
        external_id: str,
        amount_cents: int,
        status: PaymentStatus,
    ) -> Payment:
        dialect = self.session.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Payment upsert is not supported on {dialect}")

        stmt = (
            insert(Payment)
            .values(
                id=uuid4(),
                order_id=order_id,
                provider=STRIPE_PROVIDER,
                external_id=external_id,
                status=status.value,
                amount_cents=amount_cents,
                created_at=utcnow(),
            )
            .on_conflict_do_update(
                index_elements=[Payment.provider, Payment.external_id],
                set_={"status": status.value, "amount_cents": amount_cents},
            )
        )
        await self.session.execute(stmt)

        lookup = (
            select(Payment)
            .where(
                Payment.provider == STRIPE_PROVIDER,
                Payment.external_id == external_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(lookup)
        return result.scalar_one()
