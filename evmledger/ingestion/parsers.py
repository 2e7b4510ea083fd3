"""Parse JSON-RPC responses into raw ingestion records.

Each ``parse_*`` function accepts a dict (decoded JSON from an ``eth_*`` call)
and returns the corresponding record.  These functions perform no I/O and
are safe to call from any context.
"""
from __future__ import annotations

from typing import Any, Optional, Union

from evmledger.ingestion.schema import LogEntry, RawReceipt, RawTransaction


def _parse_quantity(value: Union[str, int, None]) -> Optional[int]:
    """Parse a hex-encoded JSON-RPC quantity (``"0x1a"``) into an int."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(value, 16)


def parse_log(data: dict) -> LogEntry:
    """Parse a receipt log dict.  Pending logs carry null block fields."""
    return LogEntry(
        address=data["address"],
        topics=tuple(t.lower() for t in data.get("topics") or ()),
        data=data.get("data") or "0x",
        block_hash=data.get("blockHash") or "",
        block_number=_parse_quantity(data.get("blockNumber")) or 0,
        log_index=_parse_quantity(data.get("logIndex")),
    )


def parse_transaction(data: dict) -> RawTransaction:
    """Parse an ``eth_getTransactionByHash`` result (or a full block entry)."""
    return RawTransaction(
        hash=data["hash"],
        sender=data["from"],
        recipient=data.get("to"),
        value=_parse_quantity(data["value"]),
        gas_price=_parse_quantity(data.get("gasPrice")) or 0,
        gas_limit=_parse_quantity(data["gas"]),
        gas_fee_cap=_parse_quantity(data.get("maxFeePerGas")),
        block_number=_parse_quantity(data.get("blockNumber")),
        block_hash=data.get("blockHash"),
    )


def parse_receipt(data: dict) -> RawReceipt:
    """Parse an ``eth_getTransactionReceipt`` result."""
    return RawReceipt(
        transaction_hash=data["transactionHash"],
        status=_parse_quantity(data.get("status")),
        gas_used=_parse_quantity(data["gasUsed"]),
        logs=tuple(parse_log(entry) for entry in data.get("logs") or ()),
        block_number=_parse_quantity(data.get("blockNumber")) or 0,
        block_hash=data.get("blockHash") or "",
        effective_gas_price=_parse_quantity(data.get("effectiveGasPrice")),
    )


def parse_block_header(data: dict) -> tuple[str, int, list[Any]]:
    """Return ``(hash, number, transactions)`` from an ``eth_getBlockBy*`` result."""
    return (
        data["hash"],
        _parse_quantity(data["number"]),
        list(data.get("transactions") or ()),
    )
