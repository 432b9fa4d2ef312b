"""
Checkout session creation - the entry point that creates PENDING orders.
"""
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import Settings, settings as default_settings
from storefront.core.errors import InvalidInputError, UpstreamUnavailableError
from storefront.core.logging import get_logger
from storefront.repositories.order import OrderRepository
from storefront.repositories.product import ProductRepository
from storefront.services.order_numbers import generate_order_number
from storefront.services.payment_gateway import CheckoutLineItem, PaymentGateway

logger = get_logger(__name__)


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class CheckoutResult:
    checkout_url: str
    session_id: str
    order_number: str


def is_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def fill_order_number_template(template: str, order_number: str) -> str:
    return template.replace("{ORDER_NUMBER}", order_number).replace("{orderNumber}", order_number)


def resolve_success_url(order_number: str, origin: str, template: Optional[str]) -> str:
    fallback = f"{origin}/order/{order_number}"
    if not template:
        return fallback
    resolved = fill_order_number_template(template, order_number)
    return resolved if is_http_url(resolved) else fallback


def resolve_cancel_url(origin: str, configured: Optional[str]) -> str:
    if configured and is_http_url(configured):
        return configured
    return origin


class CheckoutService:
    """Validates a cart, snapshots prices, and opens a gateway checkout session."""

    def __init__(
        self,
        session: AsyncSession,
        gateway: PaymentGateway,
        *,
        settings: Settings = default_settings,
    ) -> None:
        self.session = session
        self.orders = OrderRepository(session)
        self.products = ProductRepository(session)
        self.gateway = gateway
        self.settings = settings

    async def create_checkout_session(
        self,
        *,
        items: list[CartLine],
        origin: str,
        customer_email: Optional[str] = None,
        customer_phone: Optional[str] = None,
    ) -> CheckoutResult:
        """
        Create a PENDING order and a gateway checkout session for it.

        Cart problems are rejected before anything is written. Once the order
        exists it is committed, so a gateway failure leaves a PENDING order
        behind that the expiry window will eventually close.
        """
        if not items:
            raise InvalidInputError("Cart is empty", code="empty_cart")
        for item in items:
            if isinstance(item.quantity, bool) or not isinstance(item.quantity, int) or item.quantity < 1:
                raise InvalidInputError("Invalid quantity", code="invalid_quantity")

        customer_phone = (customer_phone or "").strip() or None
        if self.settings.require_customer_phone and not customer_phone:
            raise InvalidInputError("Customer phone is required", code="customer_phone_required")

        unique_ids = list(dict.fromkeys(item.product_id for item in items))
        products = await self.products.find_available_by_ids(unique_ids)
        if len(products) != len(unique_ids):
            raise InvalidInputError("One or more products are unavailable", code="invalid_cart_items")

        product_by_id = {product.id: product for product in products}
        snapshots = [
            {
                "product_id": item.product_id,
                "product_name": product_by_id[item.product_id].name,
                "quantity": item.quantity,
                "unit_price_cents": product_by_id[item.product_id].price_cents,
            }
            for item in items
        ]
        subtotal_cents = sum(line["unit_price_cents"] * line["quantity"] for line in snapshots)

        order_number = generate_order_number(self.settings.order_number_prefix)
        await self.orders.create_pending_order(
            order_number=order_number,
            subtotal_cents=subtotal_cents,
            items=snapshots,
            customer_email=customer_email,
            customer_phone=customer_phone,
        )
        await self.session.commit()
        logger.info(
            "Pending order created",
            order_number=order_number,
            subtotal_cents=subtotal_cents,
            lines=len(snapshots),
            customer_email=customer_email,
        )

        checkout = await self.gateway.create_checkout_session(
            line_items=[
                CheckoutLineItem(
                    name=product_by_id[item.product_id].name,
                    description=product_by_id[item.product_id].description,
                    unit_amount_cents=product_by_id[item.product_id].price_cents,
                    quantity=item.quantity,
                )
                for item in items
            ],
            customer_email=customer_email,
            success_url=resolve_success_url(
                order_number, origin, self.settings.stripe_success_url_template
            ),
            cancel_url=resolve_cancel_url(origin, self.settings.stripe_cancel_url),
            metadata={"orderNumber": order_number},
        )

        await self.orders.attach_session_id(order_number, checkout.id)
        await self.session.commit()

        if not checkout.url:
            logger.error("Gateway returned no checkout URL", order_number=order_number, session_id=checkout.id)
            raise UpstreamUnavailableError("Unable to create checkout URL", code="checkout_creation_failed")

        return CheckoutResult(
            checkout_url=checkout.url,
            session_id=checkout.id,
            order_number=order_number,
        )
