"""
Storefront Orders API - application entry point.

Checkout, order status, admin order management and payment webhooks for a
small online storefront.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import storefront.models  # noqa: F401  (register tables on Base.metadata)
from storefront.core.config import settings
from storefront.core.database import close_db, init_db
from storefront.core.logging import configure_logging, get_logger
from storefront.middleware import (
    ErrorHandlerMiddleware,
    RequestIdMiddleware,
    register_exception_handlers,
)
from storefront.routers import (
    admin_orders_router,
    checkout_router,
    health_router,
    orders_router,
    webhooks_router,
)
from storefront.services.payment_gateway import PaymentGateway
from storefront.services.stripe_client import StripeGateway

API_PREFIX = "/api"

configure_logging()
logger = get_logger(__name__)


def init_sentry() -> None:
    if not settings.sentry_dsn:
        return

    import sentry_sdk

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=settings.app_version,
        traces_sample_rate=0.1,
        send_default_pii=False,
    )
    logger.info("Sentry initialized")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(
        "Starting application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    await init_db()
    init_sentry()

    yield

    logger.info("Shutting down application")
    close_gateway = getattr(app.state.payment_gateway, "aclose", None)
    if close_gateway is not None:
        await close_gateway()
    await close_db()


def create_app(payment_gateway: Optional[PaymentGateway] = None) -> FastAPI:
    """
    Application factory.

    The payment gateway is built once from settings unless one is supplied,
    and reaches route handlers through `get_payment_gateway`.
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Order lifecycle and payment reconciliation API",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.state.payment_gateway = payment_gateway or StripeGateway.from_settings(settings)

    # Last added = outermost
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "X-Admin-Token",
            "X-Request-ID",
        ],
        expose_headers=["X-Request-ID"],
    )

    register_exception_handlers(app)

    app.include_router(health_router)
    for router in (checkout_router, orders_router, admin_orders_router, webhooks_router):
        app.include_router(router, prefix=API_PREFIX)

    logger.info(
        "Application created",
        routes=len(app.routes),
        cors_origins=len(settings.allowed_origins),
        gateway=type(app.state.payment_gateway).__name__,
    )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
