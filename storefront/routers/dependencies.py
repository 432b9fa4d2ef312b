"""
Shared router dependencies.
"""
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.database import get_db_session
from storefront.services.order_lifecycle import OrderLifecycleEngine
from storefront.services.payment_gateway import PaymentGateway


def get_payment_gateway(request: Request) -> PaymentGateway:
    """Gateway adapter built once by the application factory."""
    return request.app.state.payment_gateway


async def get_lifecycle_engine(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
) -> OrderLifecycleEngine:
    """Dependency to get an engine bound to the request's session."""
    return OrderLifecycleEngine(session, gateway)


GatewayDep = Annotated[PaymentGateway, Depends(get_payment_gateway)]
EngineDep = Annotated[OrderLifecycleEngine, Depends(get_lifecycle_engine)]
