# cryptoledger/domain/pair_price.py
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Tuple, Union

from cryptoledger.domain.errors import InvalidTermError
from cryptoledger.parsers.raw_models import RawPairPriceRecord, validate_record
from cryptoledger.utils.model_utils import split_and_trim, strip_falsy_except
from cryptoledger.utils.sorting_utils import get_price_sort_key
from cryptoledger.utils.type_utils import calc_hash_id, format_quantity, format_utc, parse_utc, safe_decimal


@dataclass
class PairPrice:
    """Rate of one base unit expressed in quote units at an instant."""
    utc: datetime
    base: str
    quote: str
    rate: Decimal
    note: str = ""
    pair: str = ""
    translation_chain: Tuple["PairPrice", ...] = field(default_factory=tuple)
    derived: bool = False

    def __post_init__(self):
        self.utc = parse_utc(self.utc)
        if self.utc is None:
            raise InvalidTermError("PairPrice requires a utc.")
        if not self.base or not self.quote:
            raise InvalidTermError(f"PairPrice requires base and quote, got '{self.base}/{self.quote}'.")
        self.rate = safe_decimal(self.rate, raise_error=True)
        if self.rate is None or not self.rate.is_finite() or self.rate <= Decimal(0):
            raise InvalidTermError(f"PairPrice rate must be a positive finite Decimal, got {self.rate}.")
        if not self.pair:
            self.pair = f"{self.base}/{self.quote}"

    @classmethod
    def from_shortcut(cls, shortcut: str) -> "PairPrice":
        """Parses "utc base/quote rate [#note]"."""
        parts = split_and_trim(shortcut)
        if len(parts) < 3:
            raise InvalidTermError(f"Invalid price history shortcut: {shortcut}")
        key_parts = parts[1].split("/")
        if len(key_parts) != 2 or not all(key_parts):
            raise InvalidTermError(f"Invalid price history pair: {parts[1]}")
        note = ""
        if len(parts) > 3 and parts[3].startswith("#"):
            note = " ".join(parts[3:])[1:]
        return cls(utc=parts[0], base=key_parts[0], quote=key_parts[1], rate=parts[2], note=note, pair=parts[1])

    @classmethod
    def from_object(cls, raw: Dict[str, Any]) -> "PairPrice":
        record = validate_record(RawPairPriceRecord, raw)
        base, quote = record.base, record.quote
        if record.pair and not (base and quote):
            base, _, quote = record.pair.partition("/")
        return cls(utc=record.utc, base=base, quote=quote, rate=record.rate, note=record.note)

    @classmethod
    def make(cls, raw: Union[str, Dict[str, Any], "PairPrice"]) -> "PairPrice":
        if isinstance(raw, PairPrice):
            return raw
        if isinstance(raw, str):
            return cls.from_shortcut(raw)
        return cls.from_object(raw)

    @staticmethod
    def sort(prices: List["PairPrice"]) -> List["PairPrice"]:
        prices.sort(key=get_price_sort_key)
        return prices

    @property
    def id(self) -> str:
        return calc_hash_id(f"{self.pair}@{format_utc(self.utc)}")

    def sort_key(self):
        return get_price_sort_key(self)

    def compare(self, other: "PairPrice") -> int:
        mine, theirs = self.sort_key(), other.sort_key()
        return (mine > theirs) - (mine < theirs)

    def invert(self) -> "PairPrice":
        return PairPrice(
            utc=self.utc,
            base=self.quote,
            quote=self.base,
            rate=Decimal(1) / self.rate,
            note=self.note,
            translation_chain=self.translation_chain,
            derived=self.derived,
        )

    def with_chain(self, chain: Iterable["PairPrice"]) -> "PairPrice":
        self.translation_chain = tuple(chain)
        self.derived = True
        return self

    def to_object(self) -> Dict[str, Any]:
        return strip_falsy_except({
            "pair": self.pair,
            "utc": format_utc(self.utc),
            "base": self.base,
            "quote": self.quote,
            "rate": format_quantity(self.rate),
            "note": self.note,
            "translationChain": [p.pair for p in self.translation_chain],
        })

    def __str__(self) -> str:
        return f"PairPrice: {format_utc(self.utc)} {self.pair} {self.rate}"
