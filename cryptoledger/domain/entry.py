# cryptoledger/domain/entry.py
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from returns.pipeline import is_successful

from cryptoledger.domain.enums import EntryType
from cryptoledger.domain.errors import InvalidAccountError, InvalidShortcutError, InvalidTermError
from cryptoledger.parsers.raw_models import RawEntryRecord, validate_record
from cryptoledger.parsers.shortcut_parser import default_parser, split_groups, tokens_to_fields
from cryptoledger.utils.model_utils import strip_falsy_except
from cryptoledger.utils.sorting_utils import get_account_entry_sort_key
from cryptoledger.utils.type_utils import (
    format_quantity, format_utc, is_negative_string, positive_string, safe_decimal,
)
from cryptoledger import config

if TYPE_CHECKING:
    from cryptoledger.domain.transaction import Transaction

logger = logging.getLogger(__name__)


@dataclass
class LotApplication:
    """How much of an entry a lot consumed. The entry does not own the lot."""
    lot: Any
    applied: Decimal


class Entry:
    """
    One side of a posting. Quantity is always stored non-negative; the
    side is carried by `type`.
    """
    def __init__(self,
                 transaction: "Transaction",
                 *,
                 shortcut: Optional[str] = None,
                 quantity: Any = None,
                 currency: str = "",
                 account: str = "",
                 entry_type: EntryType = EntryType.DEBIT,
                 note: str = "",
                 entry_id: Optional[str] = None,
                 virtual: bool = False,
                 balancing: Optional["Entry"] = None,
                 is_trade: bool = False,
                 is_fee: bool = False):
        if transaction is None:
            raise InvalidTermError("Invalid Entry, must have a parent transaction")
        if shortcut and (currency or quantity is not None):
            raise InvalidTermError(f"Invalid Entry, can't specify a shortcut and currency/quantity: {shortcut!r}")
        if not isinstance(entry_type, EntryType):
            raise InvalidTermError(f"Entry type must be an EntryType, got {type(entry_type)}")

        self.transaction = transaction
        self.id = entry_id
        self.index = 0 # position within the transaction, set by the transaction
        self.add_index = 0 # position within its account, set by the account
        self.type = entry_type
        self.currency = currency
        self.account = account
        self.note = note
        self.virtual = virtual
        self.balancing = balancing
        self.pair: Optional["Entry"] = None
        self.trade = is_trade
        self.is_fee = is_fee
        self.lots: List[LotApplication] = []
        self.shortcut = shortcut or ""
        self.quantity: Optional[Decimal] = safe_decimal(quantity, raise_error=True)

        if shortcut:
            self.apply_shortcut(shortcut)

        if self.quantity is None:
            raise InvalidTermError(f"Invalid Entry, no quantity: {self}")
        if not self.quantity.is_finite() or self.quantity < 0 or (self.quantity == 0 and not self.virtual):
            raise InvalidTermError(f"Invalid Entry, quantity must be positive, got {self.quantity}")
        if not self.currency:
            raise InvalidTermError("Invalid Entry, no currency")

    def apply_shortcut(self, shortcut: str):
        result = default_parser.parse_entry(shortcut)
        if not is_successful(result):
            error = result.failure()
            logger.error(f"Cannot build entry from shortcut {shortcut!r}: {error.message}")
            raise InvalidShortcutError(f"Invalid shortcut: {shortcut}", detail=error)
        parsed = result.unwrap()
        quantity, currency, account = tokens_to_fields(parsed.entry)
        self.quantity = safe_decimal(quantity, raise_error=True)
        self.currency = currency
        if account:
            self.account = account
        if parsed.comment and not self.note:
            self.note = parsed.comment

    def apply_to_account(self, accounts) -> None:
        accounts.get(self.get_account_path()).add_entry(self)

    def equals(self, other: Any) -> bool:
        return (
            isinstance(other, Entry)
            and self.quantity == other.quantity
            and self.currency == other.currency
            and self.type == other.type
        )

    def get_account(self) -> str:
        return self.account or self.transaction.account.get(self.type.value, "")

    def get_account_path(self) -> str:
        account = self.get_account()
        if not account:
            raise InvalidAccountError(f"Entry has no account and transaction {self.transaction.id} has no default {self.type.value} account")
        return account

    def in_account(self, path: str) -> bool:
        account = self.get_account()
        return account == path or account.startswith(f"{path}:")

    def get_utc(self) -> datetime:
        return self.transaction.utc

    @property
    def signed_quantity(self) -> Decimal:
        return self.quantity if self.type == EntryType.DEBIT else -self.quantity

    def get_lot_credit_remaining(self) -> Decimal:
        if self.type == EntryType.DEBIT:
            return Decimal(0)
        credited = sum((app.applied for app in self.lots if app.lot.currency == self.currency), Decimal(0))
        return self.quantity - credited

    def set_lot(self, lot: Any, max_quantity: Optional[Decimal] = None) -> Decimal:
        """
        Records that `lot` consumed part of this entry. Debits apply in full,
        credits apply the least of their remaining quantity, the lot's
        remaining quantity and max_quantity. Returns the applied amount.
        """
        applied = self.quantity
        if self.type == EntryType.CREDIT:
            candidates = [self.get_lot_credit_remaining(), lot.get_remaining()]
            if max_quantity is not None:
                candidates.append(max_quantity)
            applied = min(candidates)
        if applied > 0:
            self.lots.append(LotApplication(lot, applied))
        return applied

    def is_balanced(self) -> bool:
        return self.pair is not None and (
            self.pair.currency != self.currency
            or self.pair.get_account() != self.get_account()
        )

    def is_balancing_entry(self) -> bool:
        return self.balancing is not None and self.virtual

    def is_trade(self) -> bool:
        return self.trade or (self.pair is not None and self.pair.currency != self.currency)

    def make_balancing_clone(self, account: Any) -> "Entry":
        path = account if isinstance(account, str) else account.path
        self.balancing = Entry(
            self.transaction,
            quantity=self.quantity,
            currency=self.currency,
            account=path,
            entry_type=self.type.opposite(),
            balancing=self,
            virtual=True,
        )
        self.balancing.index = self.index
        return self.balancing

    def multiply_by(self, other: "Entry") -> "Entry":
        self.quantity = self.quantity * other.quantity
        return self

    def set_pair(self, partner: "Entry", per_unit_price: bool = False) -> None:
        self.pair = partner
        if per_unit_price:
            # price given per unit: the partner's total is price * this quantity
            partner.multiply_by(self)
        if partner.pair is not self:
            partner.set_pair(self, False)

    def sort_key(self):
        return get_account_entry_sort_key(self)

    def compare(self, other: "Entry") -> int:
        mine, theirs = self.sort_key(), other.sort_key()
        return (mine > theirs) - (mine < theirs)

    def to_object(self, shallow: bool = False) -> Dict[str, Any]:
        return strip_falsy_except({
            "id": self.id,
            "quantity": format_quantity(self.quantity),
            "currency": self.currency,
            "account": self.get_account(),
            "type": self.type.value,
            "pair": None if (self.pair is None or shallow) else self.pair.to_object(True),
            "balancing": None if (self.balancing is None or shallow) else self.balancing.to_object(True),
            "lots": None if shallow else [
                {"currency": app.lot.currency, "utc": format_utc(app.lot.utc), "applied": format_quantity(app.applied)}
                for app in self.lots
            ],
            "note": self.note,
            "virtual": self.virtual,
        })

    def __repr__(self) -> str:
        quantity = "?" if self.quantity is None else format_quantity(self.quantity)
        return f"Entry ({self.type.value}): {quantity} {self.currency} {self.account or '<default>'}"


def array_to_entries(raw_array: List[Union[str, Dict[str, Any]]], entry_type: EntryType,
                     transaction: "Transaction") -> List[Entry]:
    """Builds one entry per item, all of the same type. Items are shortcuts or entry descriptors."""
    entries = []
    for raw in raw_array:
        if isinstance(raw, str):
            entries.append(Entry(transaction, shortcut=raw, entry_type=entry_type))
        else:
            record = validate_record(RawEntryRecord, raw)
            entries.append(Entry(
                transaction,
                quantity=record.quantity,
                currency=record.currency,
                account=record.account,
                note=record.note,
                entry_type=entry_type,
            ))
    return entries


def object_to_entries(raw: Dict[str, Any], transaction: "Transaction") -> List[Entry]:
    """Builds entries from a descriptor with optional "debits" and "credits" lists."""
    unknown = set(raw) - {"debits", "credits"}
    if unknown:
        raise InvalidTermError(f"Invalid entry object keys: {sorted(unknown)}")
    entries = array_to_entries(raw.get("debits") or [], EntryType.DEBIT, transaction)
    entries.extend(array_to_entries(raw.get("credits") or [], EntryType.CREDIT, transaction))
    return entries


def shortcut_to_entries(raw_shortcut: str, transaction: "Transaction") -> List[Entry]:
    """
    Parses a shortcut into paired entries.

    - "[-]quantity currency [account]": a credit (from the account, if given)
      with a matching debit in the default debit account.
    - "= quantity currency [account]": a debit with a matching credit.
    - "debit (@|=) credit [...]": explicit pairs. A leading negative on the
      first side of a pair marks it as the credit.
    """
    tokenized = default_parser.tokenize_shortcut(raw_shortcut)
    if not is_successful(tokenized):
        raise InvalidShortcutError(f"Invalid shortcut: {raw_shortcut}", detail=tokenized.failure())
    tokenized = tokenized.unwrap()

    groups, connector = split_groups(tokenized.tokens)
    if not groups or len(groups[-1]) < 2:
        raise InvalidShortcutError(f"Invalid shortcut: {raw_shortcut}")

    if len(groups) == 1:
        # the written side already names its own leg, a leading minus only repeats that
        single = [positive_string(groups[0][0])] + groups[0][1:]
        if connector != config.TOTAL_CONNECTOR:
            # implicit debit without an account, so it lands in the default debit account
            groups = [single[:2], single]
            connector = config.TOTAL_CONNECTOR
        else:
            groups = [single, single[:2]]
    elif len(groups) % 2:
        raise InvalidShortcutError(f"Invalid shortcut, unpaired side: {raw_shortcut}")

    entries: List[Entry] = []
    per_unit = connector == config.PER_UNIT_CONNECTOR
    for ix in range(0, len(groups), 2):
        debit_ix, credit_ix = ix, ix + 1
        first_amount = groups[ix][0]
        negative_first = is_negative_string(first_amount)
        if negative_first:
            groups[ix] = [positive_string(first_amount)] + groups[ix][1:]
            debit_ix, credit_ix = credit_ix, debit_ix

        debit = Entry(transaction, shortcut=" ".join(groups[debit_ix]), entry_type=EntryType.DEBIT,
                      note=tokenized.comment)
        credit = Entry(transaction, shortcut=" ".join(groups[credit_ix]), entry_type=EntryType.CREDIT)

        if negative_first:
            credit.set_pair(debit, per_unit)
        else:
            debit.set_pair(credit, per_unit)
        entries.append(debit)
        entries.append(credit)
    return entries


def flexible_to_entries(raw: Union[str, Dict[str, Any]], transaction: "Transaction") -> List[Entry]:
    if isinstance(raw, str):
        return shortcut_to_entries(raw, transaction)
    if isinstance(raw, dict):
        return object_to_entries(raw, transaction)
    logger.error(f"Invalid entry descriptor: {raw!r}")
    raise InvalidTermError(f"Invalid Entry: cannot parse {raw!r}")


def make_entries(raw_entries: List[Union[str, Dict[str, Any]]], transaction: "Transaction") -> List[Entry]:
    entries: List[Entry] = []
    for raw in raw_entries:
        entries.extend(flexible_to_entries(raw, transaction))
    return entries
