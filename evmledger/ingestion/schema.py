"""Record types for EVM ledger ingestion.

Raw inputs (``RawTransaction``, ``RawReceipt``, ``LogEntry``) mirror what the
node returns and are never mutated.  Normalized outputs are a tagged variant:
``NativeTransfer``, ``TokenTransfer`` and ``FailedTokenCall`` all derive from
``NormalizedTransaction`` and carry a ``kind`` tag.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional


class TransactionStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


# -- Raw node data -------------------------------------------------------------


@dataclass(frozen=True)
class LogEntry:
    """A single contract-emitted log as reported in a receipt."""

    address: str
    topics: tuple[str, ...] = ()
    data: str = "0x"
    block_hash: str = ""
    block_number: int = 0
    log_index: Optional[int] = None

    @property
    def is_confirmed(self) -> bool:
        """False for logs some providers return before they are indexed."""
        return bool(self.block_hash) or self.block_number != 0


@dataclass(frozen=True)
class RawTransaction:
    hash: str
    sender: str
    recipient: Optional[str]
    value: int
    gas_price: int
    gas_limit: int
    gas_fee_cap: Optional[int] = None
    block_number: Optional[int] = None
    block_hash: Optional[str] = None

    @property
    def fee_price(self) -> int:
        """Per-gas price the sender committed to (fee cap for dynamic-fee txs)."""
        return self.gas_fee_cap if self.gas_fee_cap is not None else self.gas_price

    @property
    def cost(self) -> int:
        """Total amount debited from the sender: value plus the gas allowance."""
        return self.value + self.gas_limit * self.fee_price


@dataclass(frozen=True)
class RawReceipt:
    transaction_hash: str
    status: Optional[int]
    gas_used: int
    logs: tuple[LogEntry, ...] = ()
    block_number: int = 0
    block_hash: str = ""
    effective_gas_price: Optional[int] = None


# -- Normalized output ---------------------------------------------------------


class TransactionKind(str, Enum):
    NATIVE = "native"
    TOKEN = "token"
    FAILED_TOKEN_CALL = "failed_token_call"


@dataclass(frozen=True)
class NormalizedTransaction:
    """Fields shared by every normalized record."""

    kind: ClassVar[TransactionKind]

    asset_id: str
    fee_asset_id: str
    tx_hash: str
    fee: Decimal
    status: TransactionStatus

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "asset_id": self.asset_id,
            "fee_asset_id": self.fee_asset_id,
            "tx_hash": self.tx_hash,
            "from_addresses": list(self.from_addresses),
            "to_address": self.to_address,
            "amount": format(self.amount, "f"),
            "fee": format(self.fee, "f"),
            "block_number": self.block_number,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class _Transfer(NormalizedTransaction):
    from_addresses: tuple[str, ...]
    to_address: str
    amount: Decimal

    @property
    def block_number(self) -> Optional[int]:
        return None


@dataclass(frozen=True)
class NativeTransfer(_Transfer):
    kind: ClassVar[TransactionKind] = TransactionKind.NATIVE


@dataclass(frozen=True)
class TokenTransfer(_Transfer):
    kind: ClassVar[TransactionKind] = TransactionKind.TOKEN

    contract_address: str


@dataclass(frozen=True)
class FailedTokenCall(NormalizedTransaction):
    """Fee debit for a token call that reverted before emitting any event.

    No log evidence exists, so there is no amount and no counterparty.
    """

    kind: ClassVar[TransactionKind] = TransactionKind.FAILED_TOKEN_CALL

    block_number: int

    @property
    def from_addresses(self) -> tuple[str, ...]:
        return ()

    @property
    def to_address(self) -> Optional[str]:
        return None

    @property
    def amount(self) -> Decimal:
        return Decimal(0)


@dataclass
class Block:
    hash: str
    number: int
    transactions: list[NormalizedTransaction] = field(default_factory=list)
