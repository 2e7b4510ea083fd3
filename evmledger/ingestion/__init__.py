"""Ingestion modules for evmledger.

Turns transactions and receipts fetched from an EVM node into normalized
ledger records.  The core (``normalize``, ``classify_status``,
``compute_fee``) is pure and performs no I/O.
"""
from evmledger.ingestion.fees import compute_fee
from evmledger.ingestion.normalizer import InvalidTransaction, normalize
from evmledger.ingestion.status import classify_status

__all__ = [
    "config",
    "parsers",
    "registry",
    "rpc",
    "compute_fee",
    "classify_status",
    "normalize",
    "InvalidTransaction",
]
