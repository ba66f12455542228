# tests/support/mock_providers.py
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from cryptoledger.domain.errors import NotFoundError
from cryptoledger.domain.pair_price import PairPrice
from cryptoledger.utils.price_history import PriceProvider
from cryptoledger.utils.type_utils import parse_utc


class MockPriceProvider(PriceProvider):
    """
    A mock price provider with optional date-based per-pair schedules.

    Basic Usage (constant rate):
        provider = MockPriceProvider(default_rate=Decimal("400"))
        # Every base/quote pair at every instant has rate 400

    Per-pair schedules:
        pair_schedules = {
            "ETH/USD": [
                (date(2018, 1, 1), Decimal("500")),   # 1 ETH = 500 USD from Jan 1
                (date(2018, 2, 1), Decimal("600")),   # 1 ETH = 600 USD from Feb 1
            ],
        }
        provider = MockPriceProvider(pair_schedules=pair_schedules)

    For a given instant the provider returns the rate from the most recent
    schedule entry on or before that day; before all entries the first rate
    is used. A pair with no schedule and no default rate raises
    NotFoundError. base == quote is always 1.

    Every call is recorded in `calls` as (utc, base, quote).
    """

    def __init__(
        self,
        default_rate: Optional[Decimal] = None,
        pair_schedules: Optional[Dict[str, List[Tuple[date, Decimal]]]] = None,
    ):
        if default_rate is not None and default_rate <= 0:
            raise ValueError("The default rate must be positive.")
        self.default_rate = default_rate

        self._pair_schedules: Dict[str, List[Tuple[date, Decimal]]] = {}
        for pair, schedule in (pair_schedules or {}).items():
            sorted_schedule = sorted(schedule, key=lambda x: x[0])
            self._validate_schedule(sorted_schedule, pair)
            self._pair_schedules[pair] = sorted_schedule
        self.calls: List[Tuple[datetime, str, str]] = []

    def _validate_schedule(self, schedule: List[Tuple[date, Decimal]], name: str) -> None:
        """Validate a rate schedule for zero or negative rates."""
        for entry_date, rate in schedule:
            if rate <= 0:
                raise ValueError(
                    f"Rate schedule '{name}' contains non-positive rate for date {entry_date}."
                )

    def _get_rate_from_schedule(self, schedule: List[Tuple[date, Decimal]], target_date: date) -> Decimal:
        applicable_rate = schedule[0][1]
        for entry_date, rate in schedule:
            if entry_date <= target_date:
                applicable_rate = rate
            else:
                break
        return applicable_rate

    def find_price(self, utc: Any, base: str, quote: str,
                   trans_currencies: Optional[Sequence[str]] = None,
                   within: Optional[float] = None) -> PairPrice:
        at = parse_utc(utc)
        self.calls.append((at, base, quote))
        if base == quote:
            return PairPrice(utc=at, base=base, quote=quote, rate=Decimal(1))

        schedule = self._pair_schedules.get(f"{base}/{quote}")
        if schedule:
            rate = self._get_rate_from_schedule(schedule, at.date())
        else:
            inverse = self._pair_schedules.get(f"{quote}/{base}")
            if inverse:
                rate = Decimal(1) / self._get_rate_from_schedule(inverse, at.date())
            elif self.default_rate is not None:
                rate = self.default_rate
            else:
                raise NotFoundError(f"{base}/{quote}")
        return PairPrice(utc=at, base=base, quote=quote, rate=rate)


# =============================================================================
# Convenience Factory Functions
# =============================================================================

def create_constant_price_provider(rate: Decimal = Decimal("100")) -> MockPriceProvider:
    """Create a mock provider with a constant rate for all instants and pairs."""
    return MockPriceProvider(default_rate=rate)


def create_pair_price_provider(
    pair_schedules: Dict[str, List[Tuple[date, Decimal]]],
    default_rate: Optional[Decimal] = None,
) -> MockPriceProvider:
    """
    Create a mock provider with pair-specific rate schedules.

    Example:
        provider = create_pair_price_provider({
            "ETH/USD": [(date(2018, 1, 1), Decimal("400"))],
            "BTC/USD": [(date(2018, 1, 1), Decimal("7000"))],
        })
    """
    return MockPriceProvider(default_rate=default_rate, pair_schedules=pair_schedules)
