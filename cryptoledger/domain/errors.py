# cryptoledger/domain/errors.py
from typing import Any

from .enums import ErrorCode


class LedgerError(Exception):
    """
    Base for every error raised by the ledger core.
    Carries an ErrorCode so callers can branch on the kind without
    depending on the concrete class, plus a free-form detail payload.
    """
    code: ErrorCode = ErrorCode.INVALID_TERM

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.code.label}: {self.message}"


class InvalidTermError(LedgerError, TypeError):
    code = ErrorCode.INVALID_TERM


class InvalidShortcutError(LedgerError, ValueError):
    code = ErrorCode.INVALID_SHORTCUT


class InvalidAccountError(LedgerError, ValueError):
    code = ErrorCode.INVALID_ACCOUNT


class NotFoundError(LedgerError, LookupError):
    code = ErrorCode.NOT_FOUND


class EmptyError(LedgerError, LookupError):
    code = ErrorCode.EMPTY


class OutOfRangeError(LedgerError, ValueError):
    code = ErrorCode.OUT_OF_RANGE


class ExhaustedError(LedgerError, RuntimeError):
    code = ErrorCode.EXHAUSTED
