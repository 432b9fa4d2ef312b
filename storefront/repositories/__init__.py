"""
Repository package for data access layer.
"""
from storefront.repositories.base import BaseRepository
from storefront.repositories.order import OrderRepository
from storefront.repositories.payment import PaymentRepository
from storefront.repositories.product import ProductRepository

__all__ = [
    "BaseRepository",
    "OrderRepository",
    "PaymentRepository",
    "ProductRepository",
]
