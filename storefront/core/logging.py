"""
Structured logging with structlog.

JSON lines in production, console rendering elsewhere. Customer contact
details and credentials are masked before any renderer sees them.
"""
import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from storefront.core.config import settings

REDACTED = "***"

# Event keys whose values never reach the log output in full
SENSITIVE_KEYS = frozenset(
    {
        "customer_email",
        "customer_phone",
        "admin_token",
        "authorization",
        "signature",
        "stripe_signature",
        "secret_key",
        "webhook_secret",
    }
)


def mask_value(value: Any) -> str:
    """Keep the first and last two characters of long values."""
    text = str(value)
    if len(text) <= 8:
        return REDACTED
    return f"{text[:2]}{REDACTED}{text[-2:]}"


def redact_sensitive_fields(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    for key in SENSITIVE_KEYS.intersection(event_dict):
        if event_dict[key] is not None:
            event_dict[key] = mask_value(event_dict[key])
    return event_dict


def configure_logging() -> None:
    """Configure structlog and the stdlib root logger from settings."""
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_sensitive_fields,
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: Processor
    if settings.environment == "production":
        renderer = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    # Third-party chatter only at WARNING and above
    for noisy in ("uvicorn.access", "httpx", "stripe"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
