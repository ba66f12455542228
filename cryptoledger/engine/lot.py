# cryptoledger/engine/lot.py
import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

from cryptoledger import config
from cryptoledger.domain.currency import Currency
from cryptoledger.domain.entry import Entry
from cryptoledger.domain.enums import EntryType
from cryptoledger.domain.results import CapitalGainDetail
from cryptoledger.domain.transaction import Transaction
from cryptoledger.utils.currency_converter import FiatConverter
from cryptoledger.utils.price_history import PriceProvider
from cryptoledger.utils.sorting_utils import get_lot_sort_key
from cryptoledger.utils.type_utils import format_quantity, format_utc, parse_utc

logger = logging.getLogger(__name__)


@dataclass
class LotDebit:
    entry: Entry
    applied: Decimal
    fees: List[Entry] = field(default_factory=list) # acquisition fees amortized into the cost basis


@dataclass
class LotCredit:
    entry: Entry
    applied: Decimal
    fees: List[Entry] = field(default_factory=list) # other fee credits of the disposing transaction


def _fee_credits(entry: Entry) -> List[Entry]:
    return [fee for fee in entry.transaction.get_fee_entries(EntryType.CREDIT) if fee is not entry]


def _price_each(entry: Entry, converter: FiatConverter) -> Decimal:
    """
    Fiat value of one unit of `entry`, taken from what its pair was worth.
    Without a cross-currency pair the market price is used.
    """
    utc = entry.get_utc()
    pair = entry.pair
    if pair is None or pair.currency == entry.currency:
        return converter.get_rate(entry.currency, utc)
    return (pair.quantity / entry.quantity) * converter.get_rate(pair.currency, utc)


def _in_window(utc: datetime, start_date: Any, end_date: Any) -> bool:
    day = utc.date()
    if start_date is not None and day < parse_utc(start_date).date():
        return False
    if end_date is not None and day > parse_utc(end_date).date():
        return False
    return True


class Lot:
    """
    A cost-basis bucket: one opening debit and the credits applied
    against it over time.
    """
    def __init__(self, debit: Entry):
        self.currency = debit.currency
        self.account = debit.get_account()
        self.utc = debit.get_utc()
        self.debits: List[LotDebit] = []
        self.credits: List[LotCredit] = []
        applied = debit.set_lot(self)
        fees = [fee for fee in _fee_credits(debit) if fee.currency != debit.currency]
        self.debits.append(LotDebit(entry=debit, applied=applied, fees=fees))

    @staticmethod
    def is_lot(currencies: Mapping[str, Currency], debit: Entry) -> bool:
        """
        A debit opens a lot when it is real, in a known non-fiat currency,
        and either part of a trade or received from an income account.
        """
        if debit.virtual or debit.type != EntryType.DEBIT:
            return False
        currency = currencies.get(debit.currency)
        if currency is None or currency.is_fiat():
            return False
        if debit.is_trade():
            return True
        pair = debit.pair
        return pair is not None and pair.get_account().split(":")[0] == config.INCOME_ACCOUNT_ROOT

    @staticmethod
    def make_lots(currencies: Mapping[str, Currency], debits: Sequence[Entry]) -> List["Lot"]:
        return [Lot(debit) for debit in debits if Lot.is_lot(currencies, debit)]

    def get_opening_debit(self) -> Entry:
        return self.debits[0].entry

    def get_total(self) -> Decimal:
        return sum((d.applied for d in self.debits), Decimal(0))

    def get_used(self) -> Decimal:
        return sum((c.applied for c in self.credits), Decimal(0))

    def get_remaining(self) -> Decimal:
        return self.get_total() - self.get_used()

    def is_open(self) -> bool:
        return self.get_remaining() > 0

    def add_credit(self, credit: Entry, max_quantity: Optional[Decimal] = None) -> Decimal:
        """Applies as much of `credit` as this lot can absorb. Returns the applied quantity."""
        applied = credit.set_lot(self, max_quantity)
        if applied > 0:
            self.credits.append(LotCredit(entry=credit, applied=applied, fees=_fee_credits(credit)))
            logger.debug(f"Lot {self.currency}@{format_utc(self.utc)}: applied {applied} from credit {credit.id}, remaining {self.get_remaining()}")
        return applied

    def get_purchase_price_each(self, price_history: PriceProvider, fiat: Optional[str] = None,
                                trans_currencies: Optional[Sequence[str]] = None,
                                within: Optional[float] = None) -> Decimal:
        converter = FiatConverter(price_history, fiat, trans_currencies, within)
        opening = self.debits[0]
        price_each = _price_each(opening.entry, converter)
        fees_value = sum((converter.convert_to_fiat(fee.quantity, fee.currency, self.utc) for fee in opening.fees),
                         Decimal(0))
        return price_each + fees_value / self.get_total()

    @staticmethod
    def get_sale_price_each(credit: Entry, price_history: PriceProvider, fiat: Optional[str] = None,
                            trans_currencies: Optional[Sequence[str]] = None,
                            within: Optional[float] = None) -> Decimal:
        return _price_each(credit, FiatConverter(price_history, fiat, trans_currencies, within))

    def get_capital_gains_details(self, price_history: PriceProvider, fiat: Optional[str] = None,
                                  trans_currencies: Optional[Sequence[str]] = None,
                                  within: Optional[float] = None,
                                  start_date: Any = None, end_date: Any = None) -> List[CapitalGainDetail]:
        """One record per credit application, optionally limited to sales within [start_date, end_date] by day."""
        fiat = fiat or config.DEFAULT_FIAT_CURRENCY
        applications = [app for app in self.credits if _in_window(app.entry.get_utc(), start_date, end_date)]
        if not applications:
            return []
        converter = FiatConverter(price_history, fiat, trans_currencies, within)
        purchase_each = self.get_purchase_price_each(price_history, fiat, trans_currencies, within)
        details = []
        for app in applications:
            credit = app.entry
            sale_each = _price_each(credit, converter)
            fees_value = sum((converter.convert_to_fiat(fee.quantity, fee.currency, credit.get_utc()) for fee in app.fees),
                             Decimal(0))
            cost = purchase_each * app.applied
            proceeds = sale_each * app.applied
            details.append(CapitalGainDetail(
                currency=self.currency,
                account=self.account,
                acquisition_utc=self.utc,
                realization_utc=credit.get_utc(),
                quantity=app.applied,
                purchase_price_each=purchase_each,
                sale_price_each=sale_each,
                total_cost=cost,
                total_proceeds=proceeds,
                profit=proceeds - cost,
                fiat=fiat,
                fees=fees_value * app.applied / credit.quantity,
                transaction_id=credit.transaction.id,
            ))
        return details

    def get_capital_gains(self, price_history: PriceProvider, account: Optional[str] = None,
                          fiat: Optional[str] = None, trans_currencies: Optional[Sequence[str]] = None,
                          within: Optional[float] = None) -> List[Entry]:
        """
        One virtual entry per credit application, in the disposing
        transaction. Gains are debits, losses are credits of the absolute
        amount, so signed_quantity carries the sign.
        """
        account = account or config.DEFAULT_CAPITAL_GAINS_ACCOUNT
        entries = []
        for detail, app in zip(self.get_capital_gains_details(price_history, fiat, trans_currencies, within),
                               self.credits):
            entries.append(_make_gain_entry(app.entry.transaction, detail.profit, detail.fiat, account,
                                            note=f"{self.currency} gain on {format_quantity(app.applied)}"))
        return entries

    def get_unrealized_gains(self, utc: Any, price_history: PriceProvider, account: Optional[str] = None,
                             fiat: Optional[str] = None, trans_currencies: Optional[Sequence[str]] = None,
                             within: Optional[float] = None) -> Entry:
        """Market value minus cost of the open remainder at `utc`, as a single virtual entry."""
        account = account or config.DEFAULT_UNREALIZED_GAINS_ACCOUNT
        fiat = fiat or config.DEFAULT_FIAT_CURRENCY
        at = parse_utc(utc)
        converter = FiatConverter(price_history, fiat, trans_currencies, within)
        market_each = converter.get_rate(self.currency, at)
        purchase_each = self.get_purchase_price_each(price_history, fiat, trans_currencies, within)
        profit = (market_each - purchase_each) * self.get_remaining()
        transaction = Transaction({
            "utc": at,
            "account": account,
            "note": f"Unrealized {self.currency} gains for lot acquired {format_utc(self.utc)}",
        })
        entry = _make_gain_entry(transaction, profit, fiat, account)
        entry.index = len(transaction.entries)
        transaction.entries.append(entry)
        return entry

    def sort_key(self):
        return get_lot_sort_key(self)

    def compare(self, other: "Lot") -> int:
        mine, theirs = self.sort_key(), other.sort_key()
        return (mine > theirs) - (mine < theirs)

    def to_object(self, shallow: bool = False) -> Dict[str, Any]:
        work = {
            "currency": self.currency,
            "account": self.account,
            "utc": format_utc(self.utc),
            "total": format_quantity(self.get_total()),
            "remaining": format_quantity(self.get_remaining()),
        }
        if not shallow:
            work["debits"] = [{"id": d.entry.id, "applied": format_quantity(d.applied)} for d in self.debits]
            work["credits"] = [{"id": c.entry.id, "applied": format_quantity(c.applied)} for c in self.credits]
        return work

    def __repr__(self) -> str:
        return f"Lot: {format_quantity(self.get_remaining())}/{format_quantity(self.get_total())} {self.currency} @ {format_utc(self.utc)}"


def _make_gain_entry(transaction: Transaction, profit: Decimal, fiat: str, account: str, note: str = "") -> Entry:
    return Entry(
        transaction,
        quantity=abs(profit),
        currency=fiat,
        account=account,
        entry_type=EntryType.DEBIT if profit >= 0 else EntryType.CREDIT,
        note=note,
        virtual=True,
    )
