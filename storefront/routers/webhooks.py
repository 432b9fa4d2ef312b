"""
Payment gateway webhook routes.
"""
from typing import Optional

from fastapi import APIRouter, Header, Request

from storefront.core.errors import SignatureInvalidError
from storefront.routers.dependencies import EngineDep, GatewayDep
from storefront.services.webhook_processor import WebhookEventProcessor

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    gateway: GatewayDep,
    engine: EngineDep,
    stripe_signature: Optional[str] = Header(None),
) -> dict:
    """
    Receive a Stripe event.

    The raw body is needed for signature verification, so it is read
    directly rather than parsed into a schema.
    """
    if not stripe_signature:
        raise SignatureInvalidError("Missing Stripe signature", code="missing_webhook_signature")

    payload = await request.body()
    event = gateway.verify_and_parse_webhook(payload, stripe_signature)
    await WebhookEventProcessor(engine).process(event)

    return {"received": True}
