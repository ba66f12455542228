# cryptoledger/parsers/__init__.py
