"""
Public order status routes.
"""
from fastapi import APIRouter

from storefront.routers.dependencies import EngineDep
from storefront.schemas.order import PublicOrderResponse
from storefront.services.reconciler import OrderStatusReconciler

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/{order_number}", response_model=PublicOrderResponse)
async def get_order_status(
    order_number: str,
    engine: EngineDep,
) -> PublicOrderResponse:
    """
    Get the public status of an order.

    PENDING orders are reconciled against the gateway before answering.
    """
    order = await OrderStatusReconciler(engine).get_public_status(order_number)
    return PublicOrderResponse.model_validate(order)
