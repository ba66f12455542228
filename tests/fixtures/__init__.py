"""
Test Fixtures Module

YAML journal descriptions, in the same shape a loader hands to Journal:
{id, name, currencies, accounts, transactions, pricehistory}.

- journal_gains1.yaml: two ETH lots, three partial sales (FIFO vs LIFO)
- journal_gains2.yaml: BTC -> GIN -> BTC, priced via BTC translation
- journal_gains_fees.yaml: fiat acquisition fee, ETH sale fee
- journal_staking.yaml: income-funded lot, aliases, balancing into equity

Use load_journal_fixture() for the raw dict or make_journal() for a built Journal.
"""

from pathlib import Path
from typing import Any, Dict

import yaml

from cryptoledger.journal import Journal


FIXTURES_DIR = Path(__file__).parent


def load_journal_fixture(filename: str) -> Dict[str, Any]:
    """
    Load a YAML journal description from the fixtures directory.

    Args:
        filename: Name of the YAML file, with or without the .yaml suffix

    Returns:
        Parsed YAML content as a dictionary
    """
    if not filename.endswith(".yaml"):
        filename = f"{filename}.yaml"
    filepath = FIXTURES_DIR / filename

    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def make_journal(filename: str) -> Journal:
    return Journal(load_journal_fixture(filename))
