"""
Tests for the Shortcut Parser

This module tests tokenizing and validating shortcut notation:
- Comment splitting, including escaped delimiters
- Leading currency symbols ($100 -> 100 USD)
- Single-entry validation
- Trade parsing, including credit-first (negative) trades
- Failures returned as values rather than raised
"""

import pytest
from returns.pipeline import is_successful
from returns.result import Failure

from cryptoledger import config
from cryptoledger.domain.enums import ParseErrorKind
from cryptoledger.parsers.shortcut_parser import (
    ShortcutParser,
    default_parser,
    fix_leading_symbol,
    sanity_check_tokens,
    split_comment,
    split_groups,
    tokens_to_fields,
)


# =============================================================================
# Helper Function Tests
# =============================================================================

class TestSplitComment:
    """Tests for splitting off a trailing comment."""

    def test_no_comment(self):
        assert split_comment("10 BTC") == ("10 BTC", "")

    def test_comment_is_trimmed(self):
        body, comment = split_comment("10 BTC ;  bought at the top  ")
        assert body == "10 BTC "
        assert comment == "bought at the top"

    def test_only_first_delimiter_splits(self):
        _, comment = split_comment("10 BTC ;a;b")
        assert comment == "a;b"

    def test_escaped_delimiter_stays_in_body(self):
        body, comment = split_comment("10 BTC a\\;b")
        assert body == "10 BTC a;b"
        assert comment == ""


class TestFixLeadingSymbol:
    """Tests for rewriting leading currency symbols."""

    def test_dollar_amount(self):
        assert fix_leading_symbol("$100", config.SYMBOL_MAP) == ["100", "USD"]

    def test_negative_dollar_amount(self):
        assert fix_leading_symbol("-$5", config.SYMBOL_MAP) == ["-5", "USD"]

    def test_bare_symbol(self):
        assert fix_leading_symbol("$", config.SYMBOL_MAP) == ["USD"]

    def test_euro_and_pound(self):
        assert fix_leading_symbol("€3", config.SYMBOL_MAP) == ["3", "EUR"]
        assert fix_leading_symbol("£7.5", config.SYMBOL_MAP) == ["7.5", "GBP"]

    def test_plain_token_unchanged(self):
        assert fix_leading_symbol("BTC", config.SYMBOL_MAP) == ["BTC"]
        assert fix_leading_symbol("-5", config.SYMBOL_MAP) == ["-5"]


class TestSplitGroups:
    """Tests for splitting token lists on connectors."""

    def test_two_sides(self):
        groups, connector = split_groups(("1", "ETH", "@", "100", "USD"))
        assert groups == [["1", "ETH"], ["100", "USD"]]
        assert connector == "@"

    def test_no_connector(self):
        groups, connector = split_groups(("1", "ETH"))
        assert groups == [["1", "ETH"]]
        assert connector == ""

    def test_leading_connector_yields_single_group(self):
        groups, connector = split_groups(("=", "1", "ETH"))
        assert groups == [["1", "ETH"]]
        assert connector == "="


class TestSanityCheckTokens:
    """Tests for the quantity/currency/account shape check."""

    @pytest.mark.parametrize("tokens", [
        ("10", "BTC"),
        ("BTC", "10"),
        ("10", "BTC", "assets:wallet"),
    ])
    def test_valid_shapes(self, tokens):
        assert is_successful(sanity_check_tokens(tokens))

    @pytest.mark.parametrize("tokens, message", [
        (("10",), "need at least"),
        (("10", "BTC", "a", "b"), "too many"),
        (("10", "20"), "two numeric"),
        (("BTC", "ETH"), "no numeric"),
    ])
    def test_invalid_shapes(self, tokens, message):
        result = sanity_check_tokens(tokens)
        assert isinstance(result, Failure)
        assert message in result.failure().message
        assert result.failure().kind == ParseErrorKind.INVALID_SHORTCUT

    def test_either_order_maps_to_fields(self):
        assert tokens_to_fields(("10", "BTC")) == ("10", "BTC", "")
        assert tokens_to_fields(("BTC", "10", "assets:x")) == ("10", "BTC", "assets:x")


# =============================================================================
# Tokenizer Tests
# =============================================================================

class TestTokenizeShortcut:
    """Tests for ShortcutParser.tokenize_shortcut."""

    def test_tokens_and_comment(self):
        tokenized = default_parser.tokenize_shortcut("10 BTC ;payday").unwrap()
        assert tokenized.tokens == ("10", "BTC")
        assert tokenized.comment == "payday"
        assert tokenized.shortcut == "10 BTC ;payday"

    def test_whitespace_and_tabs_collapse(self):
        tokenized = default_parser.tokenize_shortcut("  10 \t\t BTC   assets:wallet ").unwrap()
        assert tokenized.tokens == ("10", "BTC", "assets:wallet")

    def test_leading_symbol_expanded(self):
        tokenized = default_parser.tokenize_shortcut("$100 assets:bank").unwrap()
        assert tokenized.tokens == ("100", "USD", "assets:bank")

    def test_too_few_tokens_fails(self):
        result = default_parser.tokenize_shortcut("10 ;just a number")
        assert isinstance(result, Failure)
        assert result.failure().kind == ParseErrorKind.INVALID_SHORTCUT

    def test_non_string_fails(self):
        assert isinstance(default_parser.tokenize_shortcut(10), Failure)

    def test_custom_symbol_table(self):
        parser = ShortcutParser({"¥": "JPY"})
        assert parser.tokenize_shortcut("¥500 cash").unwrap().tokens == ("500", "JPY", "cash")
        # "$" is not in this table, so it stays part of the token
        assert parser.tokenize_shortcut("$5 cash").unwrap().tokens == ("$5", "cash")


# =============================================================================
# Entry and Trade Parsing Tests
# =============================================================================

class TestParseEntry:
    """Tests for single-entry shortcuts."""

    def test_simple_entry(self):
        parsed = default_parser.parse_entry("10 BTC assets:wallet ;note").unwrap()
        assert parsed.entry == ("10", "BTC", "assets:wallet")
        assert parsed.comment == "note"

    def test_currency_first(self):
        parsed = default_parser.parse_entry("BTC 10").unwrap()
        assert parsed.entry == ("BTC", "10")

    def test_connector_rejected(self):
        result = default_parser.parse_entry("1 ETH @ 100 USD")
        assert isinstance(result, Failure)
        assert "connector" in result.failure().message

    def test_two_numbers_rejected(self):
        assert isinstance(default_parser.parse_entry("10 20"), Failure)


class TestParseTrade:
    """Tests for trade shortcuts."""

    def test_per_unit_trade(self):
        trade = default_parser.parse_trade("1 ETH @ $100").unwrap()
        assert trade.debit == ("1", "ETH")
        assert trade.credit == ("100", "USD")
        assert trade.connector == "@"
        assert trade.reversed is False

    def test_total_trade(self):
        trade = default_parser.parse_trade("1 ETH = 100 USD").unwrap()
        assert trade.connector == "="

    def test_negative_first_side_is_reversed(self):
        trade = default_parser.parse_trade("-1 ETH @ $100 bank ;foo").unwrap()
        assert trade.reversed is True
        assert trade.debit == ("100", "USD", "bank")
        assert trade.credit == ("1", "ETH")
        assert trade.comment == "foo"

    def test_missing_connector(self):
        result = default_parser.parse_trade("1 ETH")
        assert isinstance(result, Failure)
        assert result.failure().kind == ParseErrorKind.INVALID_TRADE
        assert "missing connector" in result.failure().message

    def test_more_than_one_connector(self):
        result = default_parser.parse_trade("1 ETH @ 2 BTC @ 3 USD")
        assert isinstance(result, Failure)
        assert "more than one connector" in result.failure().message

    def test_missing_side(self):
        result = default_parser.parse_trade("1 ETH @")
        assert isinstance(result, Failure)
        assert "expected 2 sides" in result.failure().message

    def test_side_errors_are_collected_as_causes(self):
        result = default_parser.parse_trade("1 ETH @ 100 200 USD")
        assert isinstance(result, Failure)
        error = result.failure()
        assert error.kind == ParseErrorKind.INVALID_TRADE
        assert len(error.causes) == 1
        assert error.causes[0].kind == ParseErrorKind.INVALID_TRADE
        assert "two numeric" in error.causes[0].message

    def test_error_string_names_kind_and_shortcut(self):
        error = default_parser.parse_trade("1 ETH").failure()
        assert str(error).startswith("INVALID_TRADE:")
        assert "'1 ETH'" in str(error)
