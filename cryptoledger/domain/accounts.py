# cryptoledger/domain/accounts.py
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from cryptoledger.domain.account import Account
from cryptoledger.domain.currency import Currency
from cryptoledger.domain.errors import NotFoundError
from cryptoledger.engine.lot import Lot
from cryptoledger.engine.lot_manager import LotMatcher
from cryptoledger.utils.model_utils import objects_to_dict

logger = logging.getLogger(__name__)


class Accounts:
    """
    Registry of top-level account trees.

    `paths` and `aliases` are lookup caches built together by
    calculate_paths(). They are filled lazily on first lookup and are not
    invalidated automatically: call calculate_paths() after changing the
    tree. `lots` is the memoized result of get_lots().
    """
    def __init__(self, accounts: Optional[Dict[str, Any]] = None):
        self.accounts: Dict[str, Account] = {
            path: Account(props, path=path) for path, props in (accounts or {}).items()
        }
        self.paths: Dict[str, Account] = {}
        self.aliases: Dict[str, Account] = {}
        self.lots: List[Lot] = []
        self.lots_lifo: Optional[bool] = None

    def __len__(self) -> int:
        return len(self.accounts)

    def is_empty(self) -> bool:
        return not self.accounts

    def calculate_paths(self) -> None:
        paths: Dict[str, Account] = {}
        aliases: Dict[str, Account] = {}
        for root in self.accounts.values():
            for account in root.iter_accounts():
                paths[account.path] = account
                for alias in account.aliases:
                    aliases[alias] = account
        self.paths = paths
        self.aliases = aliases

    def as_list(self) -> List[Account]:
        if not self.paths:
            self.calculate_paths()
        return [self.paths[key] for key in sorted(self.paths)]

    def filter(self, account_filter: Optional[Callable[[Account], bool]] = None) -> List[Account]:
        accounts = self.as_list()
        if account_filter is None:
            return accounts
        return [account for account in accounts if account_filter(account)]

    def map(self, fn: Optional[Callable[[Account], Any]] = None) -> List[Any]:
        accounts = self.as_list()
        if fn is None:
            return accounts
        return [fn(account) for account in accounts]

    def get_alias(self, alias: str) -> Optional[Account]:
        if not self.paths:
            self.calculate_paths()
        return self.aliases.get(alias)

    def get_path(self, path: str) -> Optional[Account]:
        if not self.paths:
            self.calculate_paths()
        return self.paths.get(path)

    def get(self, key: Union[str, List[str]]) -> Account:
        """Alias first, then full path."""
        path = ":".join(key) if isinstance(key, list) else key
        account = self.get_alias(path)
        if account is None:
            account = self.get_path(path)
        if account is None:
            raise NotFoundError(f"Account not found: {path}")
        return account

    def has(self, key: Union[str, List[str]]) -> bool:
        try:
            self.get(key)
        except NotFoundError:
            return False
        return True

    def get_balancing(self) -> List[Account]:
        return self.filter(lambda account: account.has_balancing_account())

    def create_balancing_entries(self) -> None:
        if not self.paths:
            self.calculate_paths()
        for account in self.get_balancing():
            try:
                balancing_account = self.get(account.get_balancing_account())
            except NotFoundError as e:
                logger.error(f"{e}: balancing account for {account.path}. Accounts: {sorted(self.paths)}")
                raise
            account.create_balancing_entries(balancing_account)

    def get_lots(self, currencies: Mapping[str, Currency], force: bool = False, lifo: bool = False) -> List[Lot]:
        """
        Cost-basis lots for the whole ledger, memoized. Recomputed only when
        `force` is set or nothing is cached yet.
        """
        if force or not self.lots:
            self.lots = LotMatcher(currencies, lifo).match(self.as_list())
            self.lots_lifo = lifo
        elif self.lots_lifo != lifo:
            logger.warning(f"Returning cached {'LIFO' if self.lots_lifo else 'FIFO'} lots; pass force=True to rematch")
        return self.lots

    def to_object(self) -> Dict[str, Any]:
        return objects_to_dict(self.accounts)
