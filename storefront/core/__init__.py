"""
Core package containing configuration, database, security, errors, and logging.
"""
from storefront.core.config import settings
from storefront.core.database import Base, get_db_session
from storefront.core.errors import (
    AppError,
    ConflictError,
    InvalidInputError,
    NotConfiguredError,
    NotFoundError,
    SignatureInvalidError,
    UnauthorizedError,
    UpstreamUnavailableError,
)
from storefront.core.logging import configure_logging, get_logger
from storefront.core.security import require_admin, verify_admin_token

__all__ = [
    "settings",
    "Base",
    "get_db_session",
    "configure_logging",
    "get_logger",
    "AppError",
    "NotFoundError",
    "InvalidInputError",
    "UnauthorizedError",
    "ConflictError",
    "UpstreamUnavailableError",
    "NotConfiguredError",
    "SignatureInvalidError",
    "require_admin",
    "verify_admin_token",
]
