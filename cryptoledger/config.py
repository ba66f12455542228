# cryptoledger/config.py

from decimal import Decimal

# Numerical Precision
INTERNAL_CALCULATION_PRECISION = 28
DECIMAL_ROUNDING_MODE = "ROUND_HALF_UP" # Python's decimal module uses strings like 'ROUND_HALF_UP', 'ROUND_HALF_EVEN'

# Output precision, used by to_object() projections only
OUTPUT_PRECISION_QUANTITY: Decimal = Decimal("0.00000001") # quantities, rates and fiat amounts all serialize with 8 places

# Shortcut syntax
LEDGER_LINE_COMMENT = ";"
PER_UNIT_CONNECTOR = "@"
TOTAL_CONNECTOR = "="
CONNECTORS = (PER_UNIT_CONNECTOR, TOTAL_CONNECTOR)
# Leading currency symbols, checked in insertion order. First match wins.
SYMBOL_MAP: dict[str, str] = {
    "$": "USD",
    "£": "GBP",
    "€": "EUR",
}

# Currencies
DEFAULT_FIAT_CURRENCY = "USD"
DEFAULT_TRANSLATION_CURRENCIES: tuple[str, ...] = ("BTC", "ETH")
FIAT_TAG = "fiat"

# Accounts
INCOME_ACCOUNT_ROOT = "income" # debits paired with credits under this root open lots
DEFAULT_FEE_ACCOUNT = "expenses:fees"
DEFAULT_CAPITAL_GAINS_ACCOUNT = "income:capitalgains"
DEFAULT_UNREALIZED_GAINS_ACCOUNT = "income:unrealized"

# Gains reporting
LONG_TERM_HOLDING_DAYS = 365
