"""Transaction normalizer for turning a transaction and its receipt into ledger records."""
from __future__ import annotations

import logging

from evmledger.ingestion.fees import compute_fee, decimal_from_int
from evmledger.ingestion.logs import DecodeError, decode_transfer_log
from evmledger.ingestion.registry import CurrencyRegistry
from evmledger.ingestion.schema import (
    FailedTokenCall,
    NativeTransfer,
    NormalizedTransaction,
    RawReceipt,
    RawTransaction,
    TokenTransfer,
    TransactionStatus,
)
from evmledger.ingestion.status import classify_status

logger = logging.getLogger("evmledger.ingestion.normalizer")


class InvalidTransaction(ValueError):
    """Raised when a transaction cannot be expressed as a transfer."""


def normalize(
    raw_tx: RawTransaction,
    receipt: RawReceipt,
    registry: CurrencyRegistry,
) -> list[NormalizedTransaction]:
    """Normalize one transaction into zero or more ledger records.

    A receipt without logs is a native-asset transfer, unless the call
    failed against a tracked token contract.  A receipt with logs yields one
    ``TokenTransfer`` per Transfer event emitted by a tracked contract.
    """
    status = classify_status(receipt)

    if not receipt.logs:
        if status is TransactionStatus.FAILED and registry.lookup_by_contract_address(
            raw_tx.recipient
        ):
            return _failed_token_calls(raw_tx, receipt, registry, status)
        return [_native_transfer(raw_tx, registry, status)]

    confirmed_logs = [entry for entry in receipt.logs if entry.is_confirmed]
    if status is TransactionStatus.FAILED and not confirmed_logs:
        return _failed_token_calls(raw_tx, receipt, registry, status)

    return _token_transfers(raw_tx, receipt, confirmed_logs, registry, status)


def _native_transfer(
    raw_tx: RawTransaction,
    registry: CurrencyRegistry,
    status: TransactionStatus,
) -> NativeTransfer:
    if raw_tx.recipient is None:
        raise InvalidTransaction(
            f"Transaction {raw_tx.hash} has no recipient and emitted no logs"
        )

    native = registry.native_entry()
    return NativeTransfer(
        asset_id=native.id,
        fee_asset_id=native.id,
        tx_hash=raw_tx.hash,
        fee=decimal_from_int(raw_tx.cost - raw_tx.value, native.decimal_scale),
        status=status,
        from_addresses=(raw_tx.sender,),
        to_address=raw_tx.recipient,
        amount=decimal_from_int(raw_tx.value, native.decimal_scale),
    )


def _token_transfers(
    raw_tx: RawTransaction,
    receipt: RawReceipt,
    logs: list,
    registry: CurrencyRegistry,
    status: TransactionStatus,
) -> list[NormalizedTransaction]:
    native = registry.native_entry()
    fee = compute_fee(receipt.gas_used, raw_tx.fee_price, native.decimal_scale)

    transactions: list[NormalizedTransaction] = []
    for entry in logs:
        currency = registry.lookup_by_contract_address(entry.address)
        if currency is None:
            continue

        try:
            event = decode_transfer_log(entry, currency.decimal_scale)
        except DecodeError as exc:
            logger.warning(
                "Skipping undecodable log %s in transaction %s: %s",
                entry.log_index,
                raw_tx.hash,
                exc,
            )
            continue
        if event is None:
            continue

        transactions.append(
            TokenTransfer(
                asset_id=currency.id,
                fee_asset_id=native.id,
                tx_hash=raw_tx.hash,
                fee=fee,
                status=status,
                from_addresses=(event.from_address,),
                to_address=event.to_address,
                amount=event.value,
                contract_address=currency.contract_address,
            )
        )

    return transactions


def _failed_token_calls(
    raw_tx: RawTransaction,
    receipt: RawReceipt,
    registry: CurrencyRegistry,
    status: TransactionStatus,
) -> list[NormalizedTransaction]:
    """Keep the fee debit of a reverted token call that left no events behind."""
    native = registry.native_entry()
    fee = compute_fee(receipt.gas_used, raw_tx.fee_price, native.decimal_scale)

    currency = registry.lookup_by_contract_address(raw_tx.recipient)
    if currency is None:
        return []

    logger.debug("Transaction %s reverted against %s", raw_tx.hash, currency.id)
    return [
        FailedTokenCall(
            asset_id=currency.id,
            fee_asset_id=native.id,
            tx_hash=raw_tx.hash,
            fee=fee,
            status=status,
            block_number=receipt.block_number,
        )
    ]
