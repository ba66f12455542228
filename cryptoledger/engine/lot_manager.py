# cryptoledger/engine/lot_manager.py
import logging
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional

from cryptoledger.domain.currency import Currency
from cryptoledger.domain.entry import Entry
from cryptoledger.domain.enums import EntryType
from cryptoledger.domain.errors import ExhaustedError
from cryptoledger.engine.lot import Lot
from cryptoledger.utils.sorting_utils import get_credit_application_sort_key, get_lot_sort_key
from cryptoledger.utils.type_utils import format_utc

logger = logging.getLogger(__name__)


class LotMatcher:
    """
    Builds lots from every lot-worthy debit in a set of accounts and applies
    disposing credits against them, oldest lot first (FIFO) or newest lot
    first (LIFO). Lots keep one ordering for both modes; only the search
    direction changes.
    """
    def __init__(self, currencies: Mapping[str, Currency], lifo: bool = False):
        self.currencies = currencies
        self.lifo = lifo

    def is_disposal(self, credit: Entry) -> bool:
        if credit.virtual or credit.type != EntryType.CREDIT:
            return False
        currency = self.currencies.get(credit.currency)
        if currency is None or currency.is_fiat():
            return False
        return credit.is_trade() or credit.is_fee

    def collect_lots(self, accounts: Iterable) -> List[Lot]:
        debits = [entry for account in accounts for entry in account.get_entries(EntryType.DEBIT)]
        lots = Lot.make_lots(self.currencies, debits)
        lots.sort(key=get_lot_sort_key)
        return lots

    def collect_credits(self, accounts: Iterable) -> List[Entry]:
        credits = [entry for account in accounts if not account.is_virtual()
                   for entry in account.get_entries(EntryType.CREDIT) if self.is_disposal(entry)]
        credits.sort(key=get_credit_application_sort_key)
        return credits

    def find_open_lot(self, lots: List[Lot], credit: Entry) -> Optional[Lot]:
        """First (FIFO) or last (LIFO) open lot of the credit's currency acquired no later than the credit."""
        utc = credit.get_utc()
        candidates = reversed(lots) if self.lifo else lots
        for lot in candidates:
            if lot.currency == credit.currency and lot.utc <= utc and lot.is_open():
                return lot
        return None

    def apply_credit(self, lots: List[Lot], credit: Entry) -> None:
        remaining = credit.get_lot_credit_remaining()
        while remaining > Decimal(0):
            lot = self.find_open_lot(lots, credit)
            if lot is None:
                logger.error(f"Lots exhausted: {remaining} {credit.currency} of credit {credit.id} on "
                             f"{format_utc(credit.get_utc())} (transaction {credit.transaction.id}) has no open lot")
                raise ExhaustedError(f"No open {credit.currency} lot for {remaining} {credit.currency}",
                                     detail={"credit": credit.id, "transaction": credit.transaction.id})
            remaining -= lot.add_credit(credit, remaining)

    def match(self, accounts: Iterable) -> List[Lot]:
        accounts = list(accounts)
        for account in accounts:
            for entry in account.get_entries():
                entry.lots.clear()
        lots = self.collect_lots(accounts)
        credits = self.collect_credits(accounts)
        logger.debug(f"Matching {len(credits)} credits against {len(lots)} lots ({'LIFO' if self.lifo else 'FIFO'})")
        for credit in credits:
            self.apply_credit(lots, credit)
        return lots
