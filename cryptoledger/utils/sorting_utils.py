# cryptoledger/utils/sorting_utils.py
from datetime import datetime
from typing import Any, Tuple

from cryptoledger.domain.enums import EntryType

# Within one account and instant, credits sort before debits.
_INTRA_ADD_SORT_ORDER = {
    EntryType.CREDIT: 0,
    EntryType.DEBIT: 1,
}


def get_account_entry_sort_key(entry: Any) -> Tuple[datetime, int, int]:
    """
    Sort key for entries inside one account: instant, then the order the
    entry was added to the account, then credit before debit.
    """
    return (entry.get_utc(), getattr(entry, "add_index", 0), _INTRA_ADD_SORT_ORDER[entry.type])


def get_credit_application_sort_key(entry: Any) -> Tuple[datetime, str, int]:
    """
    Deterministic total order for applying credits against lots:
    (utc, transaction id, entry index within its transaction).
    """
    return (entry.get_utc(), entry.transaction.id, entry.index)


def get_lot_sort_key(lot: Any) -> Tuple[datetime, str, str, int]:
    """
    Lot order shared by FIFO and LIFO matching; only the search direction
    differs. Ends with the opening debit's transaction id and index so equal
    (utc, currency) lots still sort reproducibly.
    """
    debit = lot.get_opening_debit()
    return (lot.utc, lot.currency, debit.transaction.id, debit.index)


def get_price_sort_key(price: Any) -> Tuple[datetime, str, str]:
    return (price.utc, price.quote, price.base)


def get_transaction_sort_key(transaction: Any) -> Tuple[datetime, str]:
    return (transaction.utc, transaction.id)
