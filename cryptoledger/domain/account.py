# cryptoledger/domain/account.py
import logging
from decimal import Decimal
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from cryptoledger.domain.entry import Entry
from cryptoledger.domain.enums import EntryType
from cryptoledger.domain.errors import InvalidTermError, NotFoundError
from cryptoledger.parsers.raw_models import RawAccountRecord, validate_record
from cryptoledger.utils.model_utils import objects_to_dict, strip_falsy_except
from cryptoledger.utils.sorting_utils import get_account_entry_sort_key

logger = logging.getLogger(__name__)

EntryFilter = Optional[Callable[[Entry], bool]]
Balances = Dict[str, Decimal]


def _add_balances(target: Balances, other: Balances) -> Balances:
    for currency, quantity in other.items():
        target[currency] = target.get(currency, Decimal(0)) + quantity
    return target


class Account:
    """
    A node in the chart of accounts. `path` is the full colon-joined path;
    children are owned by their parent and keyed by local name.
    """
    def __init__(self, props: Optional[Dict[str, Any]] = None, *, path: str = "", parent: Optional["Account"] = None):
        work = dict(props or {})
        if path:
            work["path"] = path
        if not work.get("path"):
            logger.error(f"Invalid Account, must have a path, got: {props!r}")
            raise InvalidTermError("Invalid Account, must have a path")
        record = validate_record(RawAccountRecord, work)

        self.parent = parent
        self.name = record.path
        self.path = f"{parent.path}:{record.path}" if parent is not None else record.path
        self.aliases: List[str] = list(record.aliases)
        if record.alias and record.alias not in self.aliases:
            self.aliases.insert(0, record.alias)
        self.balancing_account = record.balancing_account
        self.note = record.note
        self.tags = list(record.tags)
        self.portfolio = record.portfolio
        self.virtual = record.virtual
        self.details = dict(record.details)
        self.entries: List[Entry] = []
        self._entries_dirty = False
        self.children: Dict[str, Account] = self.make_child_accounts(record.children)

    @property
    def alias(self) -> str:
        return self.aliases[0] if self.aliases else ""

    def make_child_accounts(self, children: Union[Dict[str, Any], List[Dict[str, Any]], None]) -> Dict[str, "Account"]:
        if not children:
            return {}
        if isinstance(children, list):
            built = [Account(child, parent=self) for child in children]
            return {account.name: account for account in built}
        return {name: Account(child, path=name, parent=self) for name, child in children.items()}

    def iter_accounts(self) -> Iterator["Account"]:
        """This account, then every descendant depth first."""
        yield self
        for child in self.children.values():
            yield from child.iter_accounts()

    def add_entry(self, entry: Entry) -> None:
        entry.add_index = len(self.entries)
        self.entries.append(entry)
        self._entries_dirty = True

    def has_balancing_account(self) -> bool:
        return bool(self.get_balancing_account())

    def get_balancing_account(self) -> str:
        if self.balancing_account:
            return self.balancing_account
        if self.parent is not None:
            return self.parent.get_balancing_account()
        return ""

    def create_balancing_entries(self, balancing_account: Optional["Account"]) -> List[Entry]:
        """
        Adds a virtual opposite entry in `balancing_account` for every entry
        here that has no balancing clone yet and is unpaired or paired across
        currencies.
        """
        created: List[Entry] = []
        if balancing_account is None:
            return created
        for entry in list(self.get_entries()):
            if entry.balancing is None and (entry.pair is None or entry.currency != entry.pair.currency):
                clone = entry.make_balancing_clone(balancing_account)
                balancing_account.add_entry(clone)
                created.append(clone)
        if created:
            logger.debug(f"Account {self.path}: created {len(created)} balancing entries in {balancing_account.path}")
        return created

    def get_account(self, key: Union[str, List[str]]) -> "Account":
        """Child lookup by relative path."""
        parts = key.split(":") if isinstance(key, str) else list(key)
        child = self.children.get(parts[0])
        if child is None:
            raise NotFoundError(f"Account Not Found: {self.path}:{parts[0]}")
        if len(parts) > 1:
            return child.get_account(parts[1:])
        return child

    def get_entries(self, entry_type: Optional[EntryType] = None) -> List[Entry]:
        if self._entries_dirty:
            self.entries.sort(key=get_account_entry_sort_key)
            self._entries_dirty = False
        if entry_type is None:
            return self.entries
        return [entry for entry in self.entries if entry.type == entry_type]

    def get_balances(self, entry_filter: EntryFilter = None) -> Balances:
        balances: Balances = {}
        for entry in self.get_entries():
            if entry_filter is None or entry_filter(entry):
                balances[entry.currency] = balances.get(entry.currency, Decimal(0)) + entry.signed_quantity
        return balances

    def get_balances_by_account(self, entry_filter: EntryFilter = None) -> Dict[str, Balances]:
        return {account.path: account.get_balances(entry_filter) for account in self.iter_accounts()}

    def get_total_balances(self, entry_filter: EntryFilter = None) -> Balances:
        balances = self.get_balances(entry_filter)
        for child in self.children.values():
            _add_balances(balances, child.get_total_balances(entry_filter))
        return balances

    def in_path(self, path: str) -> bool:
        if self.path == path:
            return True
        if self.parent is not None:
            return self.parent.in_path(path)
        return False

    def is_virtual(self) -> bool:
        if self.virtual is None:
            return self.parent.is_virtual() if self.parent is not None else False
        return self.virtual

    def to_object(self) -> Dict[str, Any]:
        return strip_falsy_except({
            "path": self.path,
            "aliases": self.aliases,
            "balancing_account": self.balancing_account,
            "note": self.note,
            "tags": self.tags,
            "portfolio": self.portfolio,
            "children": objects_to_dict(self.children),
            "entries": [entry.to_object() for entry in self.entries],
            "virtual": self.virtual,
            "details": self.details,
        })

    def __repr__(self) -> str:
        return f"Account: {self.path}"
