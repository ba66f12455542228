# cryptoledger/domain/enums.py
from enum import Enum, auto

class EntryType(Enum):
    """Side of a posting. Values are the serialized names."""
    CREDIT = "credit"
    DEBIT = "debit"

    def opposite(self) -> "EntryType":
        return EntryType.DEBIT if self is EntryType.CREDIT else EntryType.CREDIT

class ErrorCode(Enum):
    EMPTY = auto()
    EXHAUSTED = auto()
    INVALID_ACCOUNT = auto()
    INVALID_SHORTCUT = auto()
    INVALID_TRADE = auto()
    INVALID_TERM = auto()
    NOT_FOUND = auto()
    OUT_OF_RANGE = auto()

    @property
    def label(self) -> str:
        return f"ERR_{self.name}"

class ParseErrorKind(Enum):
    """Kinds of failure the shortcut parser returns as values."""
    INVALID_SHORTCUT = auto()
    INVALID_TRADE = auto()
