"""Tests for evmledger.ingestion.blockchain.EvmBlockchain.

The RPC client is replaced by an ``AsyncMock``.
"""
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from eth_abi import encode as abi_encode

from evmledger.ingestion.blockchain import EvmBlockchain, encode_balance_of
from evmledger.ingestion.logs import TRANSFER_EVENT_TOPIC, address_to_topic
from evmledger.ingestion.registry import CurrencyEntry, CurrencyRegistry
from evmledger.ingestion.rpc import JsonRpcClient, UpstreamFetchError
from evmledger.ingestion.schema import NativeTransfer, TokenTransfer

BLOCK_HASH = "0x" + "cd" * 32
SENDER = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"
USDX = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"


@pytest.fixture()
def registry():
    return CurrencyRegistry(
        [CurrencyEntry.native("eth", 18), CurrencyEntry.token("USDX", USDX, 6)]
    )


@pytest.fixture()
def client():
    return AsyncMock(spec=JsonRpcClient)


def _tx_json(tx_hash, to=RECIPIENT, value="0xde0b6b3a7640000"):
    return {
        "hash": tx_hash,
        "from": SENDER,
        "to": to,
        "value": value,
        "gas": "0x5208",
        "gasPrice": "0xe8d4a51000",
        "blockHash": BLOCK_HASH,
        "blockNumber": "0x64",
    }


def _receipt_json(tx_hash, logs=(), status="0x1"):
    return {
        "transactionHash": tx_hash,
        "status": status,
        "gasUsed": "0x5208",
        "logs": list(logs),
        "blockHash": BLOCK_HASH,
        "blockNumber": "0x64",
    }


def _transfer_log_json():
    return {
        "address": USDX,
        "topics": [TRANSFER_EVENT_TOPIC, address_to_topic(SENDER), address_to_topic(RECIPIENT)],
        "data": "0x" + "00" * 31 + "64",
        "blockHash": BLOCK_HASH,
        "blockNumber": "0x64",
        "logIndex": "0x0",
    }


# -- Tests: transactions -------------------------------------------------------


@pytest.mark.asyncio
async def test_get_transaction_native(client, registry):
    tx_hash = "0x" + "01" * 32
    client.get_transaction_by_hash.return_value = _tx_json(tx_hash)
    client.get_transaction_receipt.return_value = _receipt_json(tx_hash)

    records = await EvmBlockchain(client, registry).get_transaction(tx_hash)

    assert len(records) == 1
    assert isinstance(records[0], NativeTransfer)
    assert records[0].amount == Decimal(1)
    # 21000 gas at 1000 gwei
    assert records[0].fee == Decimal("0.021")
    client.get_transaction_receipt.assert_awaited_once_with(tx_hash)


@pytest.mark.asyncio
async def test_get_transaction_token(client, registry):
    tx_hash = "0x" + "02" * 32
    client.get_transaction_by_hash.return_value = _tx_json(tx_hash, to=USDX, value="0x0")
    client.get_transaction_receipt.return_value = _receipt_json(tx_hash, [_transfer_log_json()])

    (record,) = await EvmBlockchain(client, registry).get_transaction(tx_hash)

    assert isinstance(record, TokenTransfer)
    assert record.amount == Decimal("0.0001")
    assert record.to_address == RECIPIENT


# -- Tests: blocks -------------------------------------------------------------


@pytest.mark.asyncio
async def test_get_block_skips_invalid_transactions(client, registry, caplog):
    good, creation = "0x" + "03" * 32, "0x" + "04" * 32
    client.get_block_by_hash.return_value = {
        "hash": BLOCK_HASH,
        "number": "0x64",
        "transactions": [_tx_json(creation, to=None), _tx_json(good)],
    }
    client.get_transaction_receipt.side_effect = lambda h: _receipt_json(h)

    block = await EvmBlockchain(client, registry).get_block_by_hash(BLOCK_HASH)

    assert block.hash == BLOCK_HASH
    assert block.number == 100
    assert [r.tx_hash for r in block.transactions] == [good]
    assert "Skipping transaction" in caplog.text


@pytest.mark.asyncio
async def test_get_block_by_number_resolves_hash(client, registry):
    client.get_block_by_number.return_value = {"hash": BLOCK_HASH, "number": "0x64"}
    client.get_block_by_hash.return_value = {
        "hash": BLOCK_HASH,
        "number": "0x64",
        "transactions": [],
    }

    block = await EvmBlockchain(client, registry).get_block_by_number(100)

    client.get_block_by_number.assert_awaited_once_with(100)
    client.get_block_by_hash.assert_awaited_once_with(BLOCK_HASH)
    assert block.transactions == []


@pytest.mark.asyncio
async def test_get_block_fetches_hash_only_entries(client, registry):
    tx_hash = "0x" + "05" * 32
    client.get_block_by_hash.return_value = {
        "hash": BLOCK_HASH,
        "number": "0x64",
        "transactions": [tx_hash],
    }
    client.get_transaction_by_hash.return_value = _tx_json(tx_hash)
    client.get_transaction_receipt.return_value = _receipt_json(tx_hash)

    block = await EvmBlockchain(client, registry).get_block_by_hash(BLOCK_HASH)

    assert [r.tx_hash for r in block.transactions] == [tx_hash]


@pytest.mark.asyncio
async def test_upstream_errors_propagate(client, registry):
    client.get_block_by_hash.return_value = {
        "hash": BLOCK_HASH,
        "number": "0x64",
        "transactions": [_tx_json("0x" + "06" * 32)],
    }
    client.get_transaction_receipt.side_effect = UpstreamFetchError("receipt unavailable")

    with pytest.raises(UpstreamFetchError, match="receipt unavailable"):
        await EvmBlockchain(client, registry).get_block_by_hash(BLOCK_HASH)


# -- Tests: balances -----------------------------------------------------------


def test_encode_balance_of():
    assert encode_balance_of(SENDER) == "0x70a08231" + "00" * 12 + "11" * 20


@pytest.mark.asyncio
async def test_native_balance(client, registry):
    client.get_latest_block_number.return_value = 100
    client.get_account_balance.return_value = 2 * 10**18

    balance = await EvmBlockchain(client, registry).get_balance_of_address(SENDER, "eth")

    assert balance == Decimal(2)
    client.get_account_balance.assert_awaited_once_with(SENDER, 100)


@pytest.mark.asyncio
async def test_token_balance(client, registry):
    client.get_latest_block_number.return_value = 100
    client.call_contract.return_value = abi_encode(["uint256"], [1_500_000])

    balance = await EvmBlockchain(client, registry).get_balance_of_address(SENDER, "USDX")

    assert balance == Decimal("1.5")
    client.call_contract.assert_awaited_once_with(USDX, encode_balance_of(SENDER), 100)


@pytest.mark.asyncio
async def test_token_balance_empty_result(client, registry):
    client.get_latest_block_number.return_value = 100
    client.call_contract.return_value = b""

    with pytest.raises(UpstreamFetchError, match="balanceOf"):
        await EvmBlockchain(client, registry).get_balance_of_address(SENDER, "USDX")


@pytest.mark.asyncio
async def test_unknown_currency(client, registry):
    with pytest.raises(KeyError):
        await EvmBlockchain(client, registry).get_balance_of_address(SENDER, "btc")
