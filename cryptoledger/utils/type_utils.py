# cryptoledger/utils/type_utils.py
import hashlib
import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from datetime import datetime, date, timezone

from dateutil import parser as dateutil_parser

from cryptoledger import config
from cryptoledger.domain.errors import InvalidTermError

NUMERIC_RE = re.compile(r"^-?[0-9.,]+$")


def safe_decimal(value: Any, default: Optional[Decimal] = None, raise_error: bool = False) -> Optional[Decimal]:
    """
    Safely converts a value to a Decimal.
    Handles None, empty strings, and strings with commas as thousands separators.
    If default is provided, returns default on conversion error.
    If raise_error is True, raises InvalidTermError instead of returning default.
    """
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        # bool is an int subclass; never a quantity
        if raise_error:
            raise InvalidTermError(f"Cannot convert boolean {value!r} to Decimal")
        return default
    if isinstance(value, (int, float)): # float goes through str() to keep the written digits
        return Decimal(str(value))

    s_value = str(value).strip().replace(",", "")
    if not s_value:
        return default

    try:
        return Decimal(s_value)
    except InvalidOperation as e:
        if raise_error:
            raise InvalidTermError(f"Cannot convert '{value}' to Decimal") from e
        return default


def looks_numeric(token: str) -> bool:
    return bool(NUMERIC_RE.match(token))


def is_negative_string(token: str) -> bool:
    quantity = safe_decimal(token)
    return quantity is not None and quantity < 0


def positive_string(token: str) -> str:
    return token[1:] if is_negative_string(token) else token


def ensure_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_utc(value: Any, default: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parses a timestamp into a timezone-aware UTC datetime.
    Accepts datetime, date (midnight UTC) and strings in ISO-like formats.
    Returns default for empty input, raises InvalidTermError for input that
    cannot be parsed at all.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    s_value = str(value).strip()
    formats_to_try = [
        "%Y-%m-%d",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%dT%H:%M:%S.%fZ",
        "%Y-%m-%dT%H:%M:%SZ",
        "%Y%m%d",
    ]
    for fmt in formats_to_try:
        try:
            return ensure_utc(datetime.strptime(s_value, fmt))
        except ValueError:
            continue

    # Fallback to dateutil.parser for offsets and looser variations
    try:
        return ensure_utc(dateutil_parser.parse(s_value))
    except (ValueError, OverflowError) as e:
        raise InvalidTermError(f"Cannot parse timestamp '{value}'") from e


def format_utc(dt: datetime) -> str:
    """ISO 8601 with milliseconds and a trailing Z, e.g. 2018-01-01T00:00:00.000Z"""
    utc = ensure_utc(dt)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def format_day(dt: datetime) -> str:
    return ensure_utc(dt).strftime("%Y-%m-%d")


def format_quantity(value: Decimal, precision: Decimal = config.OUTPUT_PRECISION_QUANTITY) -> str:
    """Fixed-point string, never scientific notation."""
    return f"{value.quantize(precision, rounding=config.DECIMAL_ROUNDING_MODE):f}"


def average_dates(first: datetime, second: datetime) -> datetime:
    earlier, later = (first, second) if first <= second else (second, first)
    return earlier + (later - earlier) / 2


def calc_hash_id(data: Any) -> str:
    """
    SHA-256 over the JSON form of data. Key order is whatever the caller
    built, so callers must build dicts in a fixed field order.
    """
    encoded = json.dumps(data, default=str, ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
