"""
Admin order management routes.
"""
import math
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.database import get_db_session
from storefront.core.errors import NotFoundError
from storefront.core.logging import get_logger
from storefront.core.security import require_admin
from storefront.models.order import OrderStatus
from storefront.repositories.order import OrderRepository
from storefront.routers.dependencies import EngineDep
from storefront.schemas.order import (
    AdminOrderResponse,
    ExpirySweepResponse,
    PaginatedOrdersResponse,
    RefundRequest,
)

logger = get_logger(__name__)

router = APIRouter(
    prefix="/admin/orders",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


async def get_order_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> OrderRepository:
    """Dependency to get order repository."""
    return OrderRepository(session)


def parse_status_filter(value: Optional[str]) -> Optional[OrderStatus]:
    """Unknown status values are ignored rather than rejected."""
    if not value:
        return None
    try:
        return OrderStatus(value.strip().lower())
    except ValueError:
        return None


@router.get("", response_model=PaginatedOrdersResponse)
async def list_orders(
    repo: Annotated[OrderRepository, Depends(get_order_repository)],
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize", description="Items per page"),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
) -> PaginatedOrdersResponse:
    """Get paginated orders, newest first."""
    orders, total = await repo.list_orders(
        status=parse_status_filter(status_filter),
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return PaginatedOrdersResponse(
        items=[AdminOrderResponse.model_validate(order) for order in orders],
        page=page,
        page_size=page_size,
        total=total,
        total_pages=max(1, math.ceil(total / page_size)),
    )


@router.post("/expire-stale", response_model=ExpirySweepResponse)
async def expire_stale_orders(engine: EngineDep) -> ExpirySweepResponse:
    """Run the pending-order expiry sweep on demand."""
    expired = await engine.expire_stale_orders(limit=settings.expiry_sweep_batch_size)
    return ExpirySweepResponse(expired=len(expired), order_numbers=expired)


@router.get("/{order_id}", response_model=AdminOrderResponse)
async def get_order(
    order_id: UUID,
    repo: Annotated[OrderRepository, Depends(get_order_repository)],
) -> AdminOrderResponse:
    """Get order detail with items and payments."""
    order = await repo.get_with_relations(order_id)
    if order is None:
        raise NotFoundError("Order not found", code="order_not_found")
    return AdminOrderResponse.model_validate(order)


@router.post("/{order_id}/cancel", response_model=AdminOrderResponse)
async def cancel_order(order_id: UUID, engine: EngineDep) -> AdminOrderResponse:
    """
    Cancel an order.

    Paid orders are refunded in full through the gateway before cancelling.
    """
    order = await engine.cancel_order(order_id)
    return AdminOrderResponse.model_validate(order)


@router.post("/{order_id}/refund", response_model=AdminOrderResponse)
async def refund_order(
    order_id: UUID,
    engine: EngineDep,
    payload: Optional[RefundRequest] = None,
) -> AdminOrderResponse:
    """Refund a paid order, fully or by `amountCents`."""
    amount_cents = payload.amount_cents if payload else None
    order = await engine.refund_order(order_id, amount_cents)
    return AdminOrderResponse.model_validate(order)
