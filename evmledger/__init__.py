"""evmledger: normalized ledger records from EVM node data."""
