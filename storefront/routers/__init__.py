"""
API routers package.
"""
from storefront.routers.admin_orders import router as admin_orders_router
from storefront.routers.checkout import router as checkout_router
from storefront.routers.health import router as health_router
from storefront.routers.orders import router as orders_router
from storefront.routers.webhooks import router as webhooks_router

__all__ = [
    "health_router",
    "checkout_router",
    "orders_router",
    "admin_orders_router",
    "webhooks_router",
]
