"""
Human-facing order number generation.

Format: ``PREFIX-TIMESTAMP36-RANDOM4``, upper-case. Millisecond timestamp plus
four random base-36 characters makes collisions negligible, so no uniqueness
check is performed; swap this function out if that ever changes.
"""
import secrets
import string
import time
from typing import Optional

_BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_order_number(prefix: str = "MB", *, now_ms: Optional[int] = None) -> str:
    timestamp = to_base36(now_ms if now_ms is not None else time.time_ns() // 1_000_000)
    random_part = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(4))
    return f"{prefix.upper()}-{timestamp}-{random_part}"
