"""
SQLAlchemy models package.
All models are imported here for easy access and Alembic discovery.
"""
from storefront.models.order import TERMINAL_STATUSES, Order, OrderItem, OrderStatus
from storefront.models.payment import STRIPE_PROVIDER, Payment, PaymentStatus
from storefront.models.product import Product

__all__ = [
    "Order",
    "OrderItem",
    "OrderStatus",
    "TERMINAL_STATUSES",
    "Payment",
    "PaymentStatus",
    "STRIPE_PROVIDER",
    "Product",
]
