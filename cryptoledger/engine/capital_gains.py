# cryptoledger/engine/capital_gains.py
import logging
from typing import Any, Iterable, List, Optional, Sequence

from cryptoledger import config
from cryptoledger.domain.entry import Entry
from cryptoledger.domain.results import CapitalGainsReport
from cryptoledger.engine.lot import Lot
from cryptoledger.utils.price_history import PriceProvider

logger = logging.getLogger(__name__)


def make_capital_gains_entries(lots: Iterable[Lot], price_provider: PriceProvider,
                               account: Optional[str] = None, fiat: Optional[str] = None,
                               trans_currencies: Optional[Sequence[str]] = None,
                               within: Optional[float] = None) -> List[Entry]:
    """Realized gain entries for every credit application of every lot, in lot order."""
    entries: List[Entry] = []
    for lot in lots:
        entries.extend(lot.get_capital_gains(price_provider, account, fiat, trans_currencies, within))
    return entries


def make_unrealized_gains_entries(lots: Iterable[Lot], utc: Any, price_provider: PriceProvider,
                                  account: Optional[str] = None, fiat: Optional[str] = None,
                                  trans_currencies: Optional[Sequence[str]] = None,
                                  within: Optional[float] = None) -> List[Entry]:
    """One unrealized gain entry per lot still open."""
    return [lot.get_unrealized_gains(utc, price_provider, account, fiat, trans_currencies, within)
            for lot in lots if lot.is_open()]


def calculate_capital_gains(lots: Iterable[Lot], price_provider: PriceProvider,
                            fiat: Optional[str] = None,
                            trans_currencies: Optional[Sequence[str]] = None,
                            within: Optional[float] = None,
                            start_date: Any = None, end_date: Any = None) -> CapitalGainsReport:
    fiat = fiat or config.DEFAULT_FIAT_CURRENCY
    report = CapitalGainsReport(fiat=fiat)
    for lot in lots:
        for detail in lot.get_capital_gains_details(price_provider, fiat, trans_currencies, within,
                                                    start_date, end_date):
            report.add(detail)
    logger.info(f"Capital gains: {len(report.details)} realizations, profit {report.total_profit} {fiat}")
    return report
