"""
Services package for business logic layer.
"""
from storefront.services.checkout import CartLine, CheckoutResult, CheckoutService
from storefront.services.order_lifecycle import OrderLifecycleEngine
from storefront.services.payment_gateway import (
    CheckoutSession,
    GatewayEvent,
    GatewayEventKind,
    PaymentGateway,
    PaymentGatewayError,
    Refund,
)
from storefront.services.reconciler import OrderStatusReconciler
from storefront.services.stripe_client import StripeGateway
from storefront.services.webhook_processor import WebhookEventProcessor

__all__ = [
    "CartLine",
    "CheckoutResult",
    "CheckoutService",
    "CheckoutSession",
    "GatewayEvent",
    "GatewayEventKind",
    "OrderLifecycleEngine",
    "OrderStatusReconciler",
    "PaymentGateway",
    "PaymentGatewayError",
    "Refund",
    "StripeGateway",
    "WebhookEventProcessor",
]
