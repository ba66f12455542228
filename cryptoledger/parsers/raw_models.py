# cryptoledger/parsers/raw_models.py
"""
Pydantic models for the loader boundary.

The loader hands the core plain dicts (from YAML, CSV, ledger text). Each
model here describes the accepted shape of one kind of descriptor and
rejects unknown keys, so a misspelled field fails loudly at construction
instead of silently falling back to a default.
"""
from typing import Any, Dict, List, Optional, Type, TypeVar, Union
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cryptoledger.domain.errors import InvalidTermError
from cryptoledger.utils.type_utils import safe_decimal

RecordT = TypeVar("RecordT", bound=BaseModel)


class RawBaseRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, arbitrary_types_allowed=True)


class RawAccountSides(RawBaseRecord):
    credit: str = ""
    debit: str = ""


class RawEntryRecord(RawBaseRecord):
    quantity: Optional[Decimal] = None
    currency: str = ""
    account: str = ""
    note: str = ""

    @field_validator("quantity", mode="before")
    @classmethod
    def parse_quantity(cls, v: Any) -> Optional[Decimal]:
        return safe_decimal(v, raise_error=True)


class RawTransactionRecord(RawBaseRecord):
    id: str = ""
    utc: Any = None # str, date or datetime, parsed by the Transaction
    account: Union[str, RawAccountSides, None] = None
    status: str = ""
    party: str = ""
    address: str = ""
    note: str = ""
    tags: List[str] = Field(default_factory=list)
    entries: List[Union[str, Dict[str, Any]]] = Field(default_factory=list)
    debits: List[str] = Field(default_factory=list)
    credits: List[str] = Field(default_factory=list)
    trades: List[str] = Field(default_factory=list)
    fees: List[Union[str, Dict[str, Any]]] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("tags", "entries", "debits", "credits", "trades", "fees", mode="before")
    @classmethod
    def none_as_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("id", "status", "party", "address", "note", mode="before")
    @classmethod
    def scalar_as_string(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)


class RawCurrencyRecord(RawBaseRecord):
    id: str
    name: str = ""
    note: str = ""
    base: str = ""
    fiat_default: bool = Field(False, alias="fiatDefault")
    tags: List[str] = Field(default_factory=list)
    translation: bool = False


class RawAccountRecord(RawBaseRecord):
    path: str
    alias: str = ""
    aliases: List[str] = Field(default_factory=list)
    balancing_account: str = ""
    note: str = ""
    tags: List[str] = Field(default_factory=list)
    portfolio: str = ""
    virtual: Optional[bool] = None # None inherits from the parent
    details: Dict[str, Any] = Field(default_factory=dict)
    children: Union[Dict[str, Any], List[Dict[str, Any]], None] = None


class RawPairPriceRecord(RawBaseRecord):
    utc: Any
    base: str = ""
    quote: str = ""
    pair: str = ""
    rate: Decimal
    note: str = ""

    @field_validator("rate", mode="before")
    @classmethod
    def parse_rate(cls, v: Any) -> Optional[Decimal]:
        return safe_decimal(v, raise_error=True)


class RawJournalRecord(RawBaseRecord):
    id: Optional[str] = None
    name: Optional[str] = None
    accounts: Dict[str, Any] = Field(default_factory=dict)
    currencies: Dict[str, Any] = Field(default_factory=dict)
    transactions: List[Dict[str, Any]] = Field(default_factory=list)
    pricehistory: Union[List[Any], Dict[str, Any], None] = None

    @field_validator("accounts", "currencies", mode="before")
    @classmethod
    def none_as_empty_dict(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("transactions", mode="before")
    @classmethod
    def none_as_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v


def validate_record(model_cls: Type[RecordT], data: Any) -> RecordT:
    """Validates a raw descriptor, raising InvalidTermError with pydantic's error list on failure."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise InvalidTermError(f"Invalid {model_cls.__name__}: {data!r}", detail=e.errors()) from e
