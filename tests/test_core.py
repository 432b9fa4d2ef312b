"""
Tests for core helpers: security, logging redaction, database URLs.
"""
from unittest.mock import AsyncMock

import pytest

from storefront.core.database import normalize_database_url, redact_database_url
from storefront.core.errors import ConflictError, NotConfiguredError, UpstreamUnavailableError
from storefront.core.logging import REDACTED, mask_value, redact_sensitive_fields
from storefront.core.security import verify_admin_token
from storefront.services.stripe_client import StripeGateway


class TestAdminToken:
    def test_matching_token(self):
        assert verify_admin_token("secret-token", "secret-token")

    @pytest.mark.parametrize(
        "token, configured",
        [
            ("wrong", "secret-token"),
            (None, "secret-token"),
            ("", "secret-token"),
            ("secret-token", None),
        ],
    )
    def test_rejected_tokens(self, token, configured):
        assert not verify_admin_token(token, configured)


class TestLogRedaction:
    def test_sensitive_keys_are_masked(self):
        event = redact_sensitive_fields(
            None,
            "info",
            {
                "event": "Pending order created",
                "customer_email": "buyer@example.com",
                "customer_phone": "+1 555",
                "order_number": "MB-1",
            },
        )

        assert event["customer_email"] == f"bu{REDACTED}om"
        assert event["customer_phone"] == REDACTED
        assert event["order_number"] == "MB-1"

    def test_none_values_are_left_alone(self):
        event = redact_sensitive_fields(None, "info", {"event": "x", "customer_email": None})

        assert event["customer_email"] is None

    def test_mask_value_short(self):
        assert mask_value("abc") == REDACTED


class TestDatabaseUrls:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("postgres://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
            ("postgresql://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
            ("postgresql+asyncpg://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
            ("sqlite:///./dev.db", "sqlite+aiosqlite:///./dev.db"),
        ],
    )
    def test_normalize(self, url, expected):
        assert normalize_database_url(url) == expected

    def test_redact_password(self):
        assert redact_database_url("postgresql+asyncpg://user:hunter2@db:5432/app") == (
            "postgresql+asyncpg://user:***@db:5432/app"
        )


class TestErrorTaxonomy:
    def test_envelope(self):
        error = ConflictError("Order is already in a terminal state", code="already_terminal")

        assert error.status_code == 409
        assert error.to_dict() == {
            "error": {"code": "already_terminal", "message": "Order is already in a terminal state"}
        }

    def test_not_configured_is_upstream_unavailable(self):
        error = NotConfiguredError("Missing STRIPE_SECRET_KEY")

        assert isinstance(error, UpstreamUnavailableError)
        assert error.status_code == 503
        assert error.code == "not_configured"


async def test_gateway_aclose_releases_http_client():
    gateway = StripeGateway("sk_test_123", None)
    gateway.client
    http_client = gateway._http_client
    http_client.close_async = AsyncMock()

    await gateway.aclose()

    http_client.close_async.assert_awaited_once()
    assert gateway._client is None
