# cryptoledger/domain/__init__.py
# This file can be empty or used to make imports easier.

# Example (optional):
# from .entry import Entry
# from .transaction import Transaction
# from .accounts import Accounts
# from .enums import EntryType, ErrorCode
