"""
Pending-order expiry window.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from storefront.core.config import settings


def get_pending_order_expiry_minutes() -> int:
    return settings.pending_order_expiry_minutes


def get_pending_order_expiry_cutoff(
    now: Optional[datetime] = None,
    *,
    expiry_minutes: Optional[int] = None,
) -> datetime:
    """Orders created before the returned instant are considered abandoned."""
    now = now or datetime.now(timezone.utc)
    minutes = expiry_minutes if expiry_minutes is not None else get_pending_order_expiry_minutes()
    return now - timedelta(minutes=minutes)
