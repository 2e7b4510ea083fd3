"""Decode ERC-20 ``Transfer`` events from receipt logs."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from eth_utils import (
    decode_hex,
    encode_hex,
    is_hex,
    keccak,
    remove_0x_prefix,
    to_checksum_address,
)

from evmledger.ingestion.fees import decimal_from_int
from evmledger.ingestion.schema import LogEntry

TRANSFER_EVENT_SIGNATURE = "Transfer(address,address,uint256)"
TRANSFER_EVENT_TOPIC = encode_hex(keccak(text=TRANSFER_EVENT_SIGNATURE))

TOPIC_SIZE = 32
ADDRESS_SIZE = 20
UINT256_MAX = 2**256 - 1


class DecodeError(ValueError):
    """Raised when a Transfer log cannot be decoded."""


@dataclass(frozen=True)
class TransferEvent:
    contract_address: str
    from_address: str
    to_address: str
    raw_amount: int
    value: Decimal


def topic_to_address(topic: str) -> str:
    """Return the checksummed address held in the last 20 bytes of ``topic``."""
    try:
        raw = decode_hex(topic)
    except ValueError as exc:
        raise DecodeError(f"Topic is not valid hex: {topic!r}") from exc
    if len(raw) != TOPIC_SIZE:
        raise DecodeError(f"Topic must be {TOPIC_SIZE} bytes, got {len(raw)}")
    return to_checksum_address(raw[-ADDRESS_SIZE:])


def address_to_topic(address: str) -> str:
    """Left-pad a 20-byte address into an indexed event topic."""
    raw = decode_hex(address)
    if len(raw) != ADDRESS_SIZE:
        raise ValueError(f"Address must be {ADDRESS_SIZE} bytes, got {len(raw)}")
    return encode_hex(raw.rjust(TOPIC_SIZE, b"\x00"))


def _parse_uint256(entry: LogEntry) -> int:
    """Read the data payload as an unsigned 256-bit hex integer."""
    data = entry.data if isinstance(entry.data, str) else ""
    digits = remove_0x_prefix(data)
    if not digits or not is_hex(data):
        raise DecodeError(
            f"Transfer log from {entry.address} has non-integer data {data[:80]!r}"
        )
    raw_amount = int(digits, 16)
    if raw_amount > UINT256_MAX:
        raise DecodeError(
            f"Transfer log from {entry.address} carries {len(digits)} hex digits, "
            "more than a uint256"
        )
    return raw_amount


def is_transfer_log(entry: LogEntry) -> bool:
    return bool(entry.topics) and entry.topics[0].lower() == TRANSFER_EVENT_TOPIC


def decode_transfer_log(entry: LogEntry, decimal_scale: int) -> Optional[TransferEvent]:
    """Decode ``entry`` as a Transfer event scaled by the token's ``decimal_scale``.

    Returns ``None`` for unconfirmed entries and for logs of any other event.

    Raises:
        DecodeError: If the entry carries the Transfer signature but its
            topics or data payload are malformed.
    """
    if not entry.is_confirmed:
        return None
    if not is_transfer_log(entry):
        return None
    if len(entry.topics) < 3:
        raise DecodeError(
            f"Transfer log from {entry.address} has {len(entry.topics)} topics, expected 3"
        )

    from_address = topic_to_address(entry.topics[1])
    to_address = topic_to_address(entry.topics[2])

    raw_amount = _parse_uint256(entry)

    return TransferEvent(
        contract_address=entry.address,
        from_address=from_address,
        to_address=to_address,
        raw_amount=raw_amount,
        value=decimal_from_int(raw_amount, decimal_scale),
    )
