# cryptoledger/utils/__init__.py
