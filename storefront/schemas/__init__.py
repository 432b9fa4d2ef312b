"""
Pydantic schemas package.
"""
from storefront.schemas.checkout import (
    CartItemRequest,
    CheckoutSessionCreate,
    CheckoutSessionResponse,
)
from storefront.schemas.order import (
    AdminOrderResponse,
    ExpirySweepResponse,
    OrderItemResponse,
    PaginatedOrdersResponse,
    PaymentResponse,
    PublicOrderResponse,
    RefundRequest,
)

__all__ = [
    # Checkout
    "CartItemRequest",
    "CheckoutSessionCreate",
    "CheckoutSessionResponse",
    # Orders
    "PublicOrderResponse",
    "OrderItemResponse",
    "PaymentResponse",
    "AdminOrderResponse",
    "PaginatedOrdersResponse",
    "RefundRequest",
    "ExpirySweepResponse",
]
