# cryptoledger/domain/currency.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from cryptoledger import config
from cryptoledger.domain.errors import InvalidTermError
from cryptoledger.parsers.raw_models import RawCurrencyRecord, validate_record
from cryptoledger.utils.model_utils import strip_falsy_except


@dataclass
class Currency:
    id: str
    name: str = ""
    note: str = ""
    base: str = ""
    fiat_default: bool = False
    tags: List[str] = field(default_factory=list)
    translation: bool = False # usable as a hop when deriving prices

    def __post_init__(self):
        if not self.id:
            raise InvalidTermError("Currency requires a non-empty id.")
        if not self.name:
            self.name = self.id

    @classmethod
    def from_record(cls, raw: Optional[Dict[str, Any]], currency_id: str = "") -> "Currency":
        props = dict(raw or {})
        if currency_id:
            props["id"] = currency_id
        record = validate_record(RawCurrencyRecord, props)
        return cls(
            id=record.id,
            name=record.name,
            note=record.note,
            base=record.base,
            fiat_default=record.fiat_default,
            tags=list(record.tags),
            translation=record.translation,
        )

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def is_fiat(self) -> bool:
        return self.fiat_default or self.has_tag(config.FIAT_TAG)

    def to_object(self) -> Dict[str, Any]:
        return strip_falsy_except({
            "id": self.id,
            "name": self.name,
            "note": self.note,
            "base": self.base,
            "fiatDefault": self.fiat_default,
            "tags": self.tags,
            "translation": self.translation,
        })

    def __str__(self) -> str:
        return f"Currency: {self.id}"


def make_currencies(raw: Optional[Dict[str, Any]]) -> Dict[str, Currency]:
    """Builds the id -> Currency map from a loader description keyed by id."""
    return {currency_id: Currency.from_record(props, currency_id) for currency_id, props in (raw or {}).items()}
