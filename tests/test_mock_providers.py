"""
Tests for Mock Providers

This module tests the mock price provider used in testing, so that
engine tests relying on it can trust its schedule lookups.
"""

import pytest
from decimal import Decimal
from datetime import date

from cryptoledger.domain.errors import NotFoundError
from tests.support.mock_providers import (
    MockPriceProvider,
    create_constant_price_provider,
    create_pair_price_provider,
)


# =============================================================================
# Constant Rate Tests
# =============================================================================

class TestConstantPriceProvider:
    """Tests for the constant rate provider."""

    def test_default_rate(self):
        provider = create_constant_price_provider()
        assert provider.find_price("2018-01-01", "ETH", "USD").rate == Decimal("100")

    def test_same_currency_is_one(self):
        provider = create_constant_price_provider(Decimal("7"))
        price = provider.find_price("2018-01-01", "USD", "USD")
        assert price.rate == Decimal("1")
        assert price.pair == "USD/USD"

    def test_non_positive_rate_raises(self):
        with pytest.raises(ValueError, match="must be positive"):
            MockPriceProvider(default_rate=Decimal("0"))

    def test_no_rate_raises_not_found(self):
        with pytest.raises(NotFoundError):
            MockPriceProvider().find_price("2018-01-01", "ETH", "USD")

    def test_calls_recorded(self):
        provider = create_constant_price_provider()
        provider.find_price("2018-01-01", "ETH", "USD")
        provider.find_price("2018-01-02", "BTC", "USD")
        assert [(base, quote) for _, base, quote in provider.calls] == [("ETH", "USD"), ("BTC", "USD")]
        assert provider.calls[1][0].day == 2


# =============================================================================
# Pair Schedule Tests
# =============================================================================

class TestPairPriceProvider:
    """Tests for date-based per-pair schedules."""

    @pytest.fixture
    def provider(self):
        return create_pair_price_provider({
            "ETH/USD": [
                (date(2018, 2, 1), Decimal("600")),
                (date(2018, 1, 1), Decimal("500")),
            ],
        })

    def test_schedule_lookup(self, provider):
        assert provider.find_price("2018-01-15", "ETH", "USD").rate == Decimal("500")
        assert provider.find_price("2018-02-01", "ETH", "USD").rate == Decimal("600")
        assert provider.find_price("2019-01-01", "ETH", "USD").rate == Decimal("600")

    def test_before_schedule_uses_first(self, provider):
        assert provider.find_price("2017-06-01", "ETH", "USD").rate == Decimal("500")

    def test_inverse_pair(self, provider):
        assert provider.find_price("2018-01-15", "USD", "ETH").rate == Decimal("1") / Decimal("500")

    def test_unscheduled_pair_uses_default(self):
        provider = create_pair_price_provider(
            {"ETH/USD": [(date(2018, 1, 1), Decimal("500"))]},
            default_rate=Decimal("2"),
        )
        assert provider.find_price("2018-01-15", "GIN", "BTC").rate == Decimal("2")

    def test_unscheduled_pair_without_default(self, provider):
        with pytest.raises(NotFoundError):
            provider.find_price("2018-01-15", "GIN", "BTC")

    def test_non_positive_schedule_rate_raises(self):
        with pytest.raises(ValueError, match="non-positive rate"):
            create_pair_price_provider({"ETH/USD": [(date(2018, 1, 1), Decimal("-1"))]})
