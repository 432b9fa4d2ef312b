"""
Admin authentication: opaque shared-secret check.
"""
import secrets
from typing import Optional

from fastapi import Request

from storefront.core.config import settings
from storefront.core.errors import NotConfiguredError, UnauthorizedError
from storefront.core.logging import get_logger

logger = get_logger(__name__)


def extract_admin_token(request: Request) -> Optional[str]:
    """Read the admin token from ``X-Admin-Token`` or a bearer Authorization header."""
    token = request.headers.get("x-admin-token")
    if token:
        return token

    authorization = request.headers.get("authorization")
    if not authorization:
        return None

    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def verify_admin_token(token: Optional[str], configured: Optional[str]) -> bool:
    """Constant-time comparison against the configured admin token."""
    if not token or not configured:
        return False
    return secrets.compare_digest(token.encode(), configured.encode())


async def require_admin(request: Request) -> None:
    """FastAPI dependency guarding admin routes."""
    configured = settings.admin_api_token
    if not configured:
        raise NotConfiguredError("Admin API is not configured", code="admin_not_configured")

    if not verify_admin_token(extract_admin_token(request), configured):
        logger.warning("Rejected admin request", path=request.url.path)
        raise UnauthorizedError("Unauthorized")
