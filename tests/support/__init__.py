"""
Test Support Module

This module consolidates the test infrastructure:
- Mock price providers
"""

from tests.support.mock_providers import (
    MockPriceProvider,
    create_constant_price_provider,
    create_pair_price_provider,
)

__all__ = [
    "MockPriceProvider",
    "create_constant_price_provider",
    "create_pair_price_provider",
]
