"""
Checkout Pydantic schemas for request/response validation.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CartItemRequest(BaseModel):
    """One cart line as sent by the storefront."""

    product_id: str = Field(..., min_length=1, max_length=64, alias="productId")
    quantity: int

    model_config = ConfigDict(populate_by_name=True)


class CheckoutSessionCreate(BaseModel):
    """Schema for starting a checkout."""

    items: list[CartItemRequest]
    customer_email: Optional[str] = Field(
        None,
        max_length=255,
        pattern=EMAIL_PATTERN,
        alias="customerEmail",
    )
    customer_phone: Optional[str] = Field(None, max_length=50, alias="customerPhone")

    model_config = ConfigDict(populate_by_name=True)


class CheckoutSessionResponse(BaseModel):
    """Where to send the customer next."""

    checkout_url: str = Field(alias="checkoutUrl")
    session_id: str = Field(alias="sessionId")
    order_number: str = Field(alias="orderNumber")

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )
