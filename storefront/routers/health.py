"""
Health check endpoints for load balancers and orchestrators.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.database import get_db_session
from storefront.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def root() -> dict:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@router.get("/health")
async def health_check() -> dict:
    """Process is up; dependencies are not checked."""
    return {
        "status": "healthy",
        "timestamp": _now(),
        "version": settings.app_version,
    }


@router.get("/health/ready")
async def readiness_check(
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    """
    Readiness probe.

    Only the database decides readiness. Gateway and admin configuration are
    reported so a missing secret is visible without failing the probe:
    checkout and admin routes answer 503 on their own in that case.
    """
    try:
        await session.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        logger.warning("Readiness database check failed", error_type=type(e).__name__)
        await session.rollback()
        db_status = "unavailable"

    gateway = request.app.state.payment_gateway
    checks = {
        "database": db_status,
        "payment_gateway": "configured" if getattr(gateway, "secret_key", None) else "not_configured",
        "admin_api": "configured" if settings.admin_api_token else "not_configured",
    }

    is_ready = db_status == "connected"
    if not is_ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if is_ready else "not_ready",
        "checks": checks,
        "timestamp": _now(),
    }


@router.get("/health/live")
async def liveness_check() -> dict:
    return {
        "status": "alive",
        "timestamp": _now(),
    }
