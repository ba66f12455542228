# tests/conftest.py
import pytest

from cryptoledger.journal import Journal
from cryptoledger.utils.decimal_context import setup_decimal_context
from tests.fixtures import load_journal_fixture


@pytest.fixture(scope="session", autouse=True)
def set_decimal_precision_session_wide():
    """
    Set global decimal precision and rounding for all tests in the session.
    This mirrors the setup done before any journal is built.
    """
    setup_decimal_context()


@pytest.fixture
def gains1_journal() -> Journal:
    """Two ETH lots at 500 and 550 USD, sold in three parts."""
    return Journal(load_journal_fixture("journal_gains1"))


@pytest.fixture
def gains2_journal() -> Journal:
    """BTC -> GIN -> BTC, GIN priced only through BTC."""
    return Journal(load_journal_fixture("journal_gains2"))


@pytest.fixture
def fees_journal() -> Journal:
    return Journal(load_journal_fixture("journal_gains_fees"))


@pytest.fixture
def staking_journal() -> Journal:
    return Journal(load_journal_fixture("journal_staking"))


@pytest.fixture
def minimal_transaction_props():
    """The smallest valid transaction description."""
    return {"utc": "2018-01-01T00:00:00Z", "account": "test"}
