"""
Tests for order number generation and the pending-order expiry window.
"""
import re
from datetime import datetime, timedelta, timezone

import pytest

from storefront.core.config import DEFAULT_PENDING_ORDER_EXPIRY_MINUTES, Settings
from storefront.services.order_expiry import get_pending_order_expiry_cutoff
from storefront.services.order_numbers import generate_order_number, to_base36


class TestOrderNumbers:
    def test_format(self):
        number = generate_order_number("mb", now_ms=1_700_000_000_000)

        assert re.fullmatch(r"MB-[0-9A-Z]+-[0-9A-Z]{4}", number)
        assert number.split("-")[1] == to_base36(1_700_000_000_000)

    def test_to_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "Z"
        assert to_base36(36) == "10"

    def test_to_base36_rejects_negative(self):
        with pytest.raises(ValueError):
            to_base36(-1)

    def test_numbers_are_unique_in_a_burst(self):
        numbers = {generate_order_number(now_ms=1_700_000_000_000) for _ in range(200)}

        # 200 draws from 36**4 suffixes; a collision here means the suffix is not random
        assert len(numbers) >= 195


class TestExpiryWindow:
    def test_cutoff_subtracts_window(self):
        now = datetime(2026, 1, 2, 12, 0, tzinfo=timezone.utc)

        assert get_pending_order_expiry_cutoff(now, expiry_minutes=60) == now - timedelta(hours=1)

    def test_cutoff_uses_configured_default(self):
        now = datetime(2026, 1, 2, 12, 0, tzinfo=timezone.utc)

        assert get_pending_order_expiry_cutoff(now) == now - timedelta(minutes=1440)

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("90", 90),
            ("90.4", 90),
            ("0", DEFAULT_PENDING_ORDER_EXPIRY_MINUTES),
            ("-10", DEFAULT_PENDING_ORDER_EXPIRY_MINUTES),
            ("soon", DEFAULT_PENDING_ORDER_EXPIRY_MINUTES),
            ("inf", DEFAULT_PENDING_ORDER_EXPIRY_MINUTES),
        ],
    )
    def test_setting_falls_back_on_bad_values(self, monkeypatch, raw, expected):
        monkeypatch.setenv("PENDING_ORDER_EXPIRY_MINUTES", raw)

        assert Settings().pending_order_expiry_minutes == expected
