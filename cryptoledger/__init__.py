# cryptoledger/__init__.py
# Double-entry bookkeeping core: shortcuts, entries, transactions, lots, prices.
