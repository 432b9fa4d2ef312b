"""
Order Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PublicOrderResponse(BaseModel):
    """Customer-facing order status."""

    order_number: str = Field(alias="orderNumber")
    status: str
    subtotal_cents: int = Field(alias="subtotalCents")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class OrderItemResponse(BaseModel):
    product_id: str = Field(alias="productId")
    product_name: str = Field(alias="productName")
    quantity: int
    unit_price_cents: int = Field(alias="unitPriceCents")

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class PaymentResponse(BaseModel):
    id: UUID
    provider: str
    external_id: str = Field(alias="externalId")
    status: str
    amount_cents: int = Field(alias="amountCents")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class AdminOrderResponse(BaseModel):
    """Full order detail for the admin console."""

    id: UUID
    order_number: str = Field(alias="orderNumber")
    status: str
    subtotal_cents: int = Field(alias="subtotalCents")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    customer_phone: Optional[str] = Field(None, alias="customerPhone")
    items: list[OrderItemResponse]
    payments: list[PaymentResponse]
    refund_amount_cents: Optional[int] = Field(None, alias="refundAmountCents")
    refunded_at: Optional[datetime] = Field(None, alias="refundedAt")
    cancelled_at: Optional[datetime] = Field(None, alias="cancelledAt")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class PaginatedOrdersResponse(BaseModel):
    items: list[AdminOrderResponse]
    page: int
    page_size: int = Field(alias="pageSize")
    total: int
    total_pages: int = Field(alias="totalPages")

    model_config = ConfigDict(populate_by_name=True)


class RefundRequest(BaseModel):
    """Omit amountCents for a full refund."""

    amount_cents: Optional[int] = Field(None, alias="amountCents")

    model_config = ConfigDict(populate_by_name=True)


class ExpirySweepResponse(BaseModel):
    expired: int
    order_numbers: list[str] = Field(alias="orderNumbers")

    model_config = ConfigDict(populate_by_name=True)
