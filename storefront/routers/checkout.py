"""
Checkout API routes.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.database import get_db_session
from storefront.routers.dependencies import GatewayDep
from storefront.schemas.checkout import CheckoutSessionCreate, CheckoutSessionResponse
from storefront.services.checkout import CartLine, CheckoutService

router = APIRouter(prefix="/checkout", tags=["checkout"])


def resolve_origin(request: Request) -> str:
    """Storefront origin used for redirect URLs.

    A caller's Origin header is trusted only when it is one of the configured
    CORS origins; anything else redirects to the public base URL.
    """
    origin = (request.headers.get("origin") or "").rstrip("/")
    allowed = {allowed_origin.rstrip("/") for allowed_origin in settings.allowed_origins}
    if origin and origin in allowed:
        return origin
    return settings.public_base_url.rstrip("/")


@router.post("/sessions", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    payload: CheckoutSessionCreate,
    request: Request,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    gateway: GatewayDep,
) -> CheckoutSessionResponse:
    """
    Create a PENDING order and a hosted checkout session for it.

    Returns the URL the customer should be redirected to.
    """
    service = CheckoutService(session, gateway)
    result = await service.create_checkout_session(
        items=[CartLine(product_id=item.product_id, quantity=item.quantity) for item in payload.items],
        origin=resolve_origin(request),
        customer_email=payload.customer_email,
        customer_phone=payload.customer_phone,
    )
    return CheckoutSessionResponse.model_validate(result)
