# cryptoledger/journal.py
"""
The Journal ties one chart of accounts, one currency table, one ordered
transaction list and one price history together.

Construction runs the whole apply pipeline: every transaction is posted to
its accounts and the balancing entries are created, so a Journal is never
seen half-applied. Lots and gains are computed on demand.
"""
import logging
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

from cryptoledger import config
from cryptoledger.domain.accounts import Accounts
from cryptoledger.domain.account import Account
from cryptoledger.domain.currency import Currency, make_currencies
from cryptoledger.domain.entry import Entry
from cryptoledger.domain.errors import NotFoundError
from cryptoledger.domain.pair_price import PairPrice
from cryptoledger.domain.results import CapitalGainsReport
from cryptoledger.domain.transaction import Transaction
from cryptoledger.engine import capital_gains
from cryptoledger.engine.lot import Lot
from cryptoledger.parsers.raw_models import RawJournalRecord, validate_record
from cryptoledger.utils.model_utils import objects_to_dict, strip_falsy_except
from cryptoledger.utils.price_history import PriceHistory
from cryptoledger.utils.type_utils import format_day

logger = logging.getLogger(__name__)

EntryFilter = Optional[Callable[[Entry], bool]]


class Journal:
    def __init__(self, props: Optional[Dict[str, Any]] = None):
        record = validate_record(RawJournalRecord, props or {})
        self.id = record.id if record.id is not None else record.name
        self.name = record.name
        self.accounts = Accounts(record.accounts)
        self.currencies: Dict[str, Currency] = make_currencies(record.currencies)
        self.transactions: List[Transaction] = Transaction.make_transactions(record.transactions)
        self.pricehistory = PriceHistory(record.pricehistory)
        self.check_and_apply()
        logger.info(f"Journal {self.id or '<unnamed>'}: {len(self.accounts)} root accounts, "
                    f"{len(self.currencies)} currencies, {len(self.transactions)} transactions, "
                    f"{len(self.pricehistory.pairs)} price pairs")

    def check_and_apply(self) -> None:
        """Posts transactions and builds balancing entries once both accounts and transactions exist."""
        if not self.accounts.is_empty() and self.transactions:
            for transaction in self.transactions:
                transaction.apply_to_accounts(self.accounts)
            self.accounts.create_balancing_entries()

    def get_cleanliness(self) -> Dict[str, List[str]]:
        """Problems worth fixing, keyed by area. Areas without problems are omitted."""
        return strip_falsy_except({
            "accounts": self.get_cleanliness_of_accounts(),
            "currencies": self.get_cleanliness_of_currencies(),
            "transactions": self.get_cleanliness_of_transactions(),
            "parsing": self.get_cleanliness_of_parsing(),
        })

    def get_cleanliness_of_accounts(self) -> List[str]:
        used = set()
        for transaction in self.transactions:
            used |= transaction.get_accounts()
        return [f"{path} not defined in accounts list" for path in sorted(used) if not self.accounts.has(path)]

    def get_cleanliness_of_currencies(self) -> List[str]:
        used = set()
        for transaction in self.transactions:
            used |= transaction.get_currencies()
        missing = used - set(self.currencies)
        return [f"{currency} currency not defined in currencies list" for currency in sorted(missing)]

    def get_cleanliness_of_transactions(self) -> List[str]:
        return [f"Transaction {tx.id} on {format_day(tx.utc)} is not balanced."
                for tx in self.transactions if not tx.is_balanced()]

    def get_cleanliness_of_parsing(self) -> List[str]:
        return [f"Transaction {tx.id} on {format_day(tx.utc)}: {error}"
                for tx in self.transactions for error in tx.parse_errors]

    def find_price(self, utc: Any, base: str, quote: str,
                   trans_currencies: Optional[Sequence[str]] = None,
                   within: Optional[float] = None) -> PairPrice:
        """Nearest price, deriving through the journal's translation currencies when needed."""
        translations = trans_currencies if trans_currencies is not None else self.get_translation_currency_ids()
        return self.pricehistory.find_price(utc, base, quote, translations, within)

    def get_account(self, key: str) -> Account:
        return self.accounts.get(key)

    def get_balances_by_account(self, entry_filter: EntryFilter = None) -> Dict[str, Dict[str, Decimal]]:
        balances: Dict[str, Dict[str, Decimal]] = {}
        for root in self.accounts.accounts.values():
            balances.update(root.get_balances_by_account(entry_filter))
        return balances

    def get_balances_by_currency(self, entry_filter: EntryFilter = None,
                                 include_virtual: bool = False) -> Dict[str, Dict[str, Any]]:
        """Non-zero balances keyed by currency, with per-account subtotals."""
        balances: Dict[str, Dict[str, Any]] = {}
        for path, account_balances in self.get_balances_by_account(entry_filter).items():
            if not include_virtual and self.accounts.get_path(path).is_virtual():
                continue
            for currency, quantity in account_balances.items():
                if quantity == 0:
                    continue
                total = balances.setdefault(currency, {"quantity": Decimal(0), "accounts": {}})
                total["quantity"] += quantity
                total["accounts"][path] = quantity
        return balances

    def get_lots(self, force: bool = False, lifo: bool = False) -> List[Lot]:
        return self.accounts.get_lots(self.currencies, force, lifo)

    def get_lots_by_currency(self, force: bool = False, lifo: bool = False) -> Dict[str, List[Lot]]:
        lots: Dict[str, List[Lot]] = {}
        for lot in self.get_lots(force, lifo):
            lots.setdefault(lot.currency, []).append(lot)
        return lots

    def get_translation_currencies(self) -> List[Currency]:
        return [currency for currency in self.currencies.values() if currency.translation]

    def get_translation_currency_ids(self) -> List[str]:
        ids = [currency.id for currency in self.get_translation_currencies()]
        return ids or list(config.DEFAULT_TRANSLATION_CURRENCIES)

    def get_fiat_default(self) -> Currency:
        for currency in self.currencies.values():
            if currency.fiat_default:
                return currency
        if config.DEFAULT_FIAT_CURRENCY in self.currencies:
            return self.currencies[config.DEFAULT_FIAT_CURRENCY]
        raise NotFoundError("Journal has no default fiat currency")

    def _fiat_id(self, fiat: Optional[str]) -> str:
        return fiat or self.get_fiat_default().id

    def get_capital_gains(self, account: Optional[str] = None, fiat: Optional[str] = None,
                          force: bool = False, lifo: bool = False,
                          within: Optional[float] = None) -> List[Entry]:
        return capital_gains.make_capital_gains_entries(
            self.get_lots(force, lifo), self.pricehistory, account, self._fiat_id(fiat),
            self.get_translation_currency_ids(), within)

    def get_capital_gains_details(self, fiat: Optional[str] = None, force: bool = False, lifo: bool = False,
                                  within: Optional[float] = None,
                                  start_date: Any = None, end_date: Any = None) -> CapitalGainsReport:
        return capital_gains.calculate_capital_gains(
            self.get_lots(force, lifo), self.pricehistory, self._fiat_id(fiat),
            self.get_translation_currency_ids(), within, start_date, end_date)

    def get_unrealized_gains(self, utc: Any, account: Optional[str] = None, fiat: Optional[str] = None,
                             force: bool = False, lifo: bool = False,
                             within: Optional[float] = None) -> List[Entry]:
        return capital_gains.make_unrealized_gains_entries(
            self.get_lots(force, lifo), utc, self.pricehistory, account, self._fiat_id(fiat),
            self.get_translation_currency_ids(), within)

    def to_object(self) -> Dict[str, Any]:
        return strip_falsy_except({
            "id": self.id,
            "name": self.name,
            "accounts": self.accounts.to_object(),
            "currencies": objects_to_dict(self.currencies),
            "transactions": [tx.to_object() for tx in self.transactions],
            "pricehistory": self.pricehistory.to_object(),
        })
