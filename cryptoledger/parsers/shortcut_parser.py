# cryptoledger/parsers/shortcut_parser.py
"""
Tokenizer and validator for shortcut notation.

A shortcut is a compact posting such as "10 BTC", "$100 assets:bank" or a
trade such as "1 ETH @ $100 ;bought on exchange". Nothing in this module
raises for malformed text: every entry point returns a
returns.result.Result holding either the parsed value or a ParseError,
so callers can collect several failures and carry on.
"""
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from returns.result import Failure, Result, Success

from cryptoledger import config
from cryptoledger.domain.enums import ParseErrorKind
from cryptoledger.utils.model_utils import is_connector
from cryptoledger.utils.type_utils import is_negative_string, looks_numeric, positive_string

logger = logging.getLogger(__name__)

_UNESCAPED_COMMENT_RE = re.compile(r"(?<!\\)" + re.escape(config.LEDGER_LINE_COMMENT))
_ESCAPED_COMMENT = "\\" + config.LEDGER_LINE_COMMENT
_WHITESPACE_RE = re.compile(r"\s+")

Tokens = Tuple[str, ...]


@dataclass(frozen=True)
class ParseError:
    kind: ParseErrorKind
    shortcut: str
    message: str
    causes: Tuple["ParseError", ...] = ()

    def __str__(self) -> str:
        return f"{self.kind.name}: {self.message} ({self.shortcut!r})"


@dataclass(frozen=True)
class TokenizedShortcut:
    tokens: Tokens
    comment: str
    shortcut: str


@dataclass(frozen=True)
class ParsedEntry:
    entry: Tokens
    comment: str
    shortcut: str


@dataclass(frozen=True)
class ParsedTrade:
    debit: Tokens
    credit: Tokens
    comment: str
    connector: str
    reversed: bool
    shortcut: str


def split_comment(raw: str) -> Tuple[str, str]:
    """
    Splits at the first unescaped comment delimiter.
    Returns (body, trimmed comment). Escaped delimiters stay in the body,
    unescaped.
    """
    match = _UNESCAPED_COMMENT_RE.search(raw)
    if match is None:
        body, comment = raw, ""
    else:
        body, comment = raw[:match.start()], raw[match.end():].strip()
    return body.replace(_ESCAPED_COMMENT, config.LEDGER_LINE_COMMENT), comment


def fix_leading_symbol(token: str, symbol_map: Mapping[str, str]) -> List[str]:
    """
    Rewrites "$100" as ["100", "USD"] and "-$5" as ["-5", "USD"].
    A bare symbol becomes its currency code. Symbols are tried in mapping
    order and only the first match is applied.
    """
    sign = ""
    work = token
    if work.startswith("-") and len(work) > 1:
        sign, work = "-", work[1:]
    for symbol, code in symbol_map.items():
        if work.startswith(symbol):
            rest = work[len(symbol):]
            if not rest:
                return [code]
            return [sign + rest, code]
    return [token]


def split_groups(tokens: Tokens) -> Tuple[List[List[str]], str]:
    """
    Splits a token list on connector tokens.
    Returns the non-empty groups and the last connector seen ("" if none).
    """
    groups: List[List[str]] = []
    accum: List[str] = []
    connector = ""
    for token in tokens:
        if is_connector(token):
            if accum:
                groups.append(accum)
            connector = token
            accum = []
        else:
            accum.append(token)
    if accum:
        groups.append(accum)
    return groups, connector


def sanity_check_tokens(tokens: Tokens, shortcut: str = "",
                        kind: ParseErrorKind = ParseErrorKind.INVALID_SHORTCUT) -> Result[Tokens, ParseError]:
    """Exactly one of the first two tokens must look numeric; an optional third is the account."""
    source = shortcut or " ".join(tokens)
    if len(tokens) < 2:
        return Failure(ParseError(kind, source, "need at least a quantity and a currency"))
    if len(tokens) > 3:
        return Failure(ParseError(kind, source, f"too many tokens ({len(tokens)})"))
    numeric_first = looks_numeric(tokens[0])
    numeric_second = looks_numeric(tokens[1])
    if numeric_first and numeric_second:
        return Failure(ParseError(kind, source, "two numeric tokens"))
    if not (numeric_first or numeric_second):
        return Failure(ParseError(kind, source, "no numeric token"))
    return Success(tokens)


def tokens_to_fields(tokens: Tokens) -> Tuple[str, str, str]:
    """Maps sanity-checked tokens to (quantity, currency, account) in either written order."""
    if looks_numeric(tokens[0]):
        quantity, currency = tokens[0], tokens[1]
    else:
        currency, quantity = tokens[0], tokens[1]
    account = tokens[2] if len(tokens) > 2 else ""
    return quantity, currency, account


def _numeric_index(group: List[str]) -> Optional[int]:
    for ix, token in enumerate(group[:2]):
        if looks_numeric(token):
            return ix
    return None


class ShortcutParser:
    """
    Stateless parser configured with the leading-currency-symbol table.
    """
    def __init__(self, leading_symbol_map: Optional[Mapping[str, str]] = None):
        self.leading_symbol_map: Dict[str, str] = dict(
            config.SYMBOL_MAP if leading_symbol_map is None else leading_symbol_map)

    def tokenize_shortcut(self, raw: str) -> Result[TokenizedShortcut, ParseError]:
        if not isinstance(raw, str):
            return Failure(ParseError(ParseErrorKind.INVALID_SHORTCUT, repr(raw), "shortcut must be a string"))
        body, comment = split_comment(raw)
        collapsed = _WHITESPACE_RE.sub(" ", body).strip()
        tokens: List[str] = []
        for token in collapsed.split(" ") if collapsed else []:
            tokens.extend(fix_leading_symbol(token, self.leading_symbol_map))
        if len(tokens) < 2:
            return Failure(ParseError(ParseErrorKind.INVALID_SHORTCUT, raw, "fewer than 2 tokens"))
        return Success(TokenizedShortcut(tuple(tokens), comment, raw))

    def parse_entry(self, raw: str) -> Result[ParsedEntry, ParseError]:
        return self.tokenize_shortcut(raw).bind(self._tokenized_to_entry)

    def parse_trade(self, raw: str) -> Result[ParsedTrade, ParseError]:
        return self.tokenize_shortcut(raw).bind(self._tokenized_to_trade)

    def _tokenized_to_entry(self, tokenized: TokenizedShortcut) -> Result[ParsedEntry, ParseError]:
        if any(is_connector(token) for token in tokenized.tokens):
            return Failure(ParseError(ParseErrorKind.INVALID_SHORTCUT, tokenized.shortcut,
                                      "connector not allowed in a single entry"))
        return sanity_check_tokens(tokenized.tokens, tokenized.shortcut).map(
            lambda tokens: ParsedEntry(tokens, tokenized.comment, tokenized.shortcut))

    def _tokenized_to_trade(self, tokenized: TokenizedShortcut) -> Result[ParsedTrade, ParseError]:
        shortcut = tokenized.shortcut
        connectors = [token for token in tokenized.tokens if is_connector(token)]
        if not connectors:
            return Failure(ParseError(ParseErrorKind.INVALID_TRADE, shortcut, "missing connector"))
        if len(connectors) > 1:
            return Failure(ParseError(ParseErrorKind.INVALID_TRADE, shortcut, "more than one connector"))

        groups, connector = split_groups(tokenized.tokens)
        if len(groups) != 2:
            return Failure(ParseError(ParseErrorKind.INVALID_TRADE, shortcut,
                                      f"expected 2 sides, got {len(groups)}"))

        debit, credit = groups
        is_reversed = False
        numeric_ix = _numeric_index(debit)
        if numeric_ix is not None and is_negative_string(debit[numeric_ix]):
            # credit-first trade: strip the sign and swap sides
            debit[numeric_ix] = positive_string(debit[numeric_ix])
            debit, credit = credit, debit
            is_reversed = True

        checked = [sanity_check_tokens(tuple(group), shortcut, ParseErrorKind.INVALID_TRADE)
                   for group in (debit, credit)]
        causes = tuple(result.failure() for result in checked if isinstance(result, Failure))
        if causes:
            return Failure(ParseError(ParseErrorKind.INVALID_TRADE, shortcut, "invalid trade side", causes))

        return Success(ParsedTrade(
            debit=tuple(debit),
            credit=tuple(credit),
            comment=tokenized.comment,
            connector=connector,
            reversed=is_reversed,
            shortcut=shortcut,
        ))


default_parser = ShortcutParser()
