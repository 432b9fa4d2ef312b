"""
ARQ Job Queue Service - periodic maintenance for pending orders.

Provides:
- Expiry sweep: fails PENDING orders that outlived the pending window

The sweep uses the same conditional transition as the per-order check on
status reads, so both may run at once without double-transitioning.
"""
from typing import Any

from arq import cron
from arq.connections import RedisSettings

from storefront.core.config import settings
from storefront.core.database import get_db_context
from storefront.core.logging import configure_logging, get_logger
from storefront.services.order_lifecycle import OrderLifecycleEngine
from storefront.services.stripe_client import StripeGateway

logger = get_logger(__name__)


def get_redis_settings() -> RedisSettings:
    """Get Redis connection settings from config."""
    redis_url = str(settings.redis_url) if settings.redis_url else "redis://localhost:6379"
    return RedisSettings.from_dsn(redis_url)


# ============================================
# JOB FUNCTIONS
# ============================================

async def expire_pending_orders_job(ctx: dict) -> dict[str, Any]:
    """Fail every PENDING order older than the configured expiry window."""
    async with get_db_context() as session:
        engine = OrderLifecycleEngine(session, ctx["gateway"])
        expired = await engine.expire_stale_orders(limit=settings.expiry_sweep_batch_size)

    logger.info("Expiry sweep finished", expired=len(expired))
    return {"expired": len(expired), "order_numbers": expired}


async def startup(ctx: dict) -> None:
    configure_logging()
    ctx["gateway"] = StripeGateway.from_settings(settings)


async def shutdown(ctx: dict) -> None:
    gateway = ctx.pop("gateway", None)
    if gateway is not None:
        await gateway.aclose()


# ============================================
# WORKER SETTINGS
# ============================================

class WorkerSettings:
    """ARQ worker configuration."""

    functions = [expire_pending_orders_job]

    # Expiry sweep every 15 minutes
    cron_jobs = [
        cron(expire_pending_orders_job, minute={0, 15, 30, 45}, run_at_startup=True),
    ]

    on_startup = startup
    on_shutdown = shutdown
    redis_settings = get_redis_settings()

    # Worker settings
    max_jobs = 10
    job_timeout = 300
    keep_result = 3600  # 1 hour
