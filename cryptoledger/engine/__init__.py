# cryptoledger/engine/__init__.py
