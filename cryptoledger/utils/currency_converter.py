# cryptoledger/utils/currency_converter.py
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from cryptoledger import config
from .price_history import PriceProvider

logger = logging.getLogger(__name__)


class FiatConverter:
    """
    Values quantities of any currency in one fiat currency, using a
    PriceProvider. Lookup failures propagate: a gains figure built on a
    missing price would be wrong, not approximate.
    """
    def __init__(self, rate_provider: PriceProvider, fiat: Optional[str] = None,
                 trans_currencies: Optional[Sequence[str]] = None, within: Optional[float] = None):
        self.rate_provider = rate_provider
        self.fiat = fiat or config.DEFAULT_FIAT_CURRENCY
        self.trans_currencies = trans_currencies
        self.within = within

    def get_rate(self, currency: str, utc: datetime) -> Decimal:
        """Fiat units per one unit of `currency` at `utc`."""
        if currency == self.fiat:
            return Decimal(1)
        price = self.rate_provider.find_price(utc, currency, self.fiat, self.trans_currencies, self.within)
        if price.derived:
            logger.debug(f"{currency}/{self.fiat} at {utc} derived via {[p.pair for p in price.translation_chain]}")
        return price.rate

    def convert_to_fiat(self, quantity: Decimal, currency: str, utc: datetime) -> Decimal:
        if quantity == Decimal(0):
            return Decimal(0)
        return quantity * self.get_rate(currency, utc)
