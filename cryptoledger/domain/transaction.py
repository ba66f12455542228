# cryptoledger/domain/transaction.py
import logging
from typing import Any, Dict, List, Optional, Set, Union

from returns.pipeline import is_successful

from cryptoledger import config
from cryptoledger.domain.entry import Entry, make_entries
from cryptoledger.domain.enums import EntryType
from cryptoledger.domain.errors import InvalidAccountError, InvalidShortcutError, InvalidTermError, NotFoundError
from cryptoledger.parsers.raw_models import RawAccountSides, RawEntryRecord, RawTransactionRecord, validate_record
from cryptoledger.parsers.shortcut_parser import ParseError, ShortcutParser, default_parser, tokens_to_fields
from cryptoledger.utils.model_utils import strip_falsy_except
from cryptoledger.utils.sorting_utils import get_transaction_sort_key
from cryptoledger.utils.type_utils import calc_hash_id, format_day, format_quantity, format_utc, parse_utc

logger = logging.getLogger(__name__)


def _describe_fee(fee: Union[str, Dict[str, Any]]) -> Union[str, Dict[str, Any]]:
    if isinstance(fee, str):
        return fee
    record = validate_record(RawEntryRecord, fee)
    return strip_falsy_except({
        "quantity": format_quantity(record.quantity) if record.quantity is not None else None,
        "currency": record.currency,
        "account": record.account,
        "note": record.note,
    })


class Transaction:
    """
    One economic event. Entries are derived once, at construction, from the
    `entries`, `credits`, `debits`, `trades` and `fees` descriptors.
    """
    def __init__(self, props: Union[Dict[str, Any], RawTransactionRecord], parser: Optional[ShortcutParser] = None):
        record = validate_record(RawTransactionRecord, props)
        self.parser = parser or default_parser

        if record.utc is None or (isinstance(record.utc, str) and not record.utc.strip()):
            logger.error(f"Invalid Transaction, must have a 'utc', got: {props!r}")
            raise InvalidTermError("Invalid Transaction, must have a utc")
        self.utc = parse_utc(record.utc)

        if isinstance(record.account, str):
            self.account = {"credit": record.account, "debit": record.account}
        elif isinstance(record.account, RawAccountSides):
            self.account = {"credit": record.account.credit, "debit": record.account.debit}
        else:
            self.account = {"credit": "", "debit": ""}

        self.id = record.id
        self.status = record.status
        self.party = record.party
        self.address = record.address
        self.note = record.note
        self.tags = list(record.tags)
        self.details = dict(record.details)
        self.fees = list(record.fees)
        self.parse_errors: List[ParseError] = []

        self.entries: List[Entry] = make_entries(record.entries, self)
        for pair in self.make_balanced_pairs(record.credits, True):
            self.entries.extend(pair)
        for pair in self.make_balanced_pairs(record.debits, False):
            self.entries.extend(pair)
        self.entries.extend(self.make_trades(record.trades))
        self.entries.extend(self.make_fee_entries(self.fees))

        for ix, entry in enumerate(self.entries):
            entry.index = ix
        for entry in self.entries:
            if not entry.id:
                entry.id = calc_hash_id([format_utc(self.utc), entry.index, entry.to_object(shallow=True)])
        if not self.id:
            self.id = calc_hash_id(self.to_object())

    @staticmethod
    def make_transactions(raw: List[Dict[str, Any]]) -> List["Transaction"]:
        return [Transaction(tx) for tx in raw]

    def make_balanced_pair(self, shortcut: str, is_credit: bool) -> List[Entry]:
        """
        Builds a symmetric credit/debit pair from one shortcut. For a credit
        the shortcut's account goes on the debit side and the credit uses the
        transaction default; for a debit it is the other way round.
        Returns [credit, debit].
        """
        tokenized = self.parser.tokenize_shortcut(shortcut)
        if not is_successful(tokenized):
            raise InvalidShortcutError(f"Invalid shortcut: {shortcut}", detail=tokenized.failure())
        tokens = tokenized.unwrap().tokens
        account_shortcut = " ".join(tokens)
        no_account_shortcut = " ".join(tokens[:2])

        if is_credit:
            credit = Entry(self, shortcut=no_account_shortcut, entry_type=EntryType.CREDIT)
            debit = Entry(self, shortcut=account_shortcut, entry_type=EntryType.DEBIT)
            credit.set_pair(debit, False)
        else:
            credit = Entry(self, shortcut=account_shortcut, entry_type=EntryType.CREDIT)
            debit = Entry(self, shortcut=no_account_shortcut, entry_type=EntryType.DEBIT)
            debit.set_pair(credit, False)
        return [credit, debit]

    def make_balanced_pairs(self, raw_array: List[str], is_credit: bool) -> List[List[Entry]]:
        return [self.make_balanced_pair(shortcut, is_credit) for shortcut in raw_array]

    def make_trades(self, raw_trades: List[str]) -> List[Entry]:
        """
        Builds a debit/credit pair per trade shortcut. A trade that fails to
        parse is recorded in `parse_errors` and skipped; the rest still build.
        """
        entries: List[Entry] = []
        for raw in raw_trades:
            result = self.parser.parse_trade(raw)
            if not is_successful(result):
                error = result.failure()
                logger.warning(f"Transaction on {format_day(self.utc)}: skipping unparseable trade {raw!r}: {error}")
                self.parse_errors.append(error)
                continue
            trade = result.unwrap()
            debit_qty, debit_currency, debit_account = tokens_to_fields(trade.debit)
            credit_qty, credit_currency, credit_account = tokens_to_fields(trade.credit)
            debit = Entry(self, quantity=debit_qty, currency=debit_currency, account=debit_account,
                          entry_type=EntryType.DEBIT, note=trade.comment, is_trade=True)
            credit = Entry(self, quantity=credit_qty, currency=credit_currency, account=credit_account,
                           entry_type=EntryType.CREDIT, is_trade=True)
            if trade.connector == config.PER_UNIT_CONNECTOR:
                # the side written after "@" is a unit price
                if trade.reversed:
                    debit.multiply_by(credit)
                else:
                    credit.multiply_by(debit)
            debit.set_pair(credit, False)
            entries.append(debit)
            entries.append(credit)
        return entries

    def make_fee_entries(self, fees: List[Union[str, Dict[str, Any]]]) -> List[Entry]:
        """
        Each fee is a credit from the transaction's credit account paired
        with a debit to the fee account.
        """
        entries: List[Entry] = []
        for fee in fees:
            if isinstance(fee, str):
                result = self.parser.parse_entry(fee)
                if not is_successful(result):
                    raise InvalidShortcutError(f"Invalid fee shortcut: {fee}", detail=result.failure())
                quantity, currency, account = tokens_to_fields(result.unwrap().entry)
                note = result.unwrap().comment
            else:
                record = validate_record(RawEntryRecord, fee)
                quantity, currency, account, note = record.quantity, record.currency, record.account, record.note
            credit = Entry(self, quantity=quantity, currency=currency, entry_type=EntryType.CREDIT, is_fee=True)
            debit = Entry(self, quantity=quantity, currency=currency, account=account or config.DEFAULT_FEE_ACCOUNT,
                          entry_type=EntryType.DEBIT, note=note, is_fee=True)
            debit.set_pair(credit, False)
            entries.append(debit)
            entries.append(credit)
        return entries

    def apply_to_accounts(self, accounts) -> "Transaction":
        """
        Adds every entry to its account. Entries whose account cannot be
        resolved are logged and skipped.
        """
        for entry in self.entries:
            try:
                entry.apply_to_account(accounts)
            except (NotFoundError, InvalidAccountError) as e:
                logger.warning(f"Transaction {self.id} on {format_day(self.utc)}: cannot apply {entry!r}: {e}")
        return self

    def get_accounts(self) -> Set[str]:
        return {entry.get_account() for entry in self.entries if entry.get_account()}

    def get_credits(self) -> List[Entry]:
        return [entry for entry in self.entries if entry.type == EntryType.CREDIT]

    def get_debits(self) -> List[Entry]:
        return [entry for entry in self.entries if entry.type == EntryType.DEBIT]

    def get_fee_entries(self, entry_type: Optional[EntryType] = None) -> List[Entry]:
        return [entry for entry in self.entries
                if entry.is_fee and (entry_type is None or entry.type == entry_type)]

    def get_currencies(self) -> Set[str]:
        return {entry.currency for entry in self.entries}

    def is_balanced(self) -> bool:
        return all(entry.is_balanced() for entry in self.get_debits())

    def sort_key(self):
        return get_transaction_sort_key(self)

    def compare(self, other: "Transaction") -> int:
        mine, theirs = self.sort_key(), other.sort_key()
        return (mine > theirs) - (mine < theirs)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def to_object(self, by_day: bool = False, shallow: bool = False) -> Dict[str, Any]:
        """
        Plain projection. Field order is fixed: it is what the content hash
        is computed over.
        """
        return strip_falsy_except({
            "id": self.id,
            "note": self.note,
            "account": dict(self.account) if any(self.account.values()) else None,
            "status": self.status,
            "utc": format_day(self.utc) if by_day else format_utc(self.utc),
            "address": self.address,
            "party": self.party,
            "tags": self.tags,
            "entries": [entry.to_object(shallow) for entry in self.entries],
            "fees": [_describe_fee(fee) for fee in self.fees],
            "details": self.details,
        }, ["entries"])

    def __repr__(self) -> str:
        return f"Transaction: {self.account} {format_utc(self.utc)} [{len(self.entries)} entries]"
