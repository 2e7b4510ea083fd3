"""Fetch blocks and transactions from a node and normalize them."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError
from eth_utils import encode_hex, function_signature_to_4byte_selector, to_checksum_address

from evmledger.ingestion.fees import decimal_from_int
from evmledger.ingestion.normalizer import InvalidTransaction, normalize
from evmledger.ingestion.parsers import parse_block_header, parse_receipt, parse_transaction
from evmledger.ingestion.registry import CurrencyEntry, CurrencyKind, CurrencyRegistry
from evmledger.ingestion.rpc import JsonRpcClient, UpstreamFetchError
from evmledger.ingestion.schema import Block, NormalizedTransaction

logger = logging.getLogger("evmledger.ingestion.blockchain")

BALANCE_OF_SELECTOR = function_signature_to_4byte_selector("balanceOf(address)")


def encode_balance_of(address: str) -> str:
    """ABI-encode an ERC-20 ``balanceOf(address)`` call."""
    return encode_hex(
        BALANCE_OF_SELECTOR + abi_encode(["address"], [to_checksum_address(address)])
    )


class EvmBlockchain:
    """Normalized view of an EVM chain.

    Args:
        client: An open ``JsonRpcClient`` (or anything with the same methods).
        registry: Currencies to track.
    """

    def __init__(self, client: JsonRpcClient, registry: CurrencyRegistry) -> None:
        self._client = client
        self._registry = registry

    @property
    def registry(self) -> CurrencyRegistry:
        return self._registry

    async def get_latest_block_number(self) -> int:
        return await self._client.get_latest_block_number()

    async def get_block_by_number(self, number: int) -> Block:
        data = await self._client.get_block_by_number(number)
        block_hash, _, _ = parse_block_header(data)
        return await self.get_block_by_hash(block_hash)

    async def get_block_by_hash(self, block_hash: str) -> Block:
        """Fetch a block and normalize every transaction in it.

        A transaction that cannot be normalized is logged and left out;
        fetch failures abort the whole block.
        """
        data = await self._client.get_block_by_hash(block_hash)
        block_hash, number, raw_transactions = parse_block_header(data)
        logger.info(
            "Processing block %d (%s, %d transactions)",
            number,
            block_hash[:12],
            len(raw_transactions),
        )

        block = Block(hash=block_hash, number=number)
        for tx_data in raw_transactions:
            if isinstance(tx_data, str):
                tx_data = await self._client.get_transaction_by_hash(tx_data)
            try:
                block.transactions.extend(await self._build_transactions(tx_data))
            except InvalidTransaction as exc:
                logger.warning("Skipping transaction in block %d: %s", number, exc)
        return block

    async def get_transaction(self, tx_hash: str) -> list[NormalizedTransaction]:
        tx_data = await self._client.get_transaction_by_hash(tx_hash)
        return await self._build_transactions(tx_data)

    async def _build_transactions(self, tx_data: dict[str, Any]) -> list[NormalizedTransaction]:
        raw_tx = parse_transaction(tx_data)
        receipt = parse_receipt(await self._client.get_transaction_receipt(raw_tx.hash))
        return normalize(raw_tx, receipt, self._registry)

    # -- Balances -------------------------------------------------------------

    async def get_balance_of_address(self, address: str, currency_id: str) -> Decimal:
        """Balance of ``address`` in ``currency_id`` at the latest block.

        Raises:
            KeyError: If ``currency_id`` is not in the registry.
        """
        currency = self._registry.get(currency_id)
        if currency is None:
            raise KeyError(currency_id)

        block_number = await self._client.get_latest_block_number()
        if currency.kind is CurrencyKind.TOKEN_CONTRACT:
            return await self._get_token_balance(address, currency, block_number)

        amount = await self._client.get_account_balance(address, block_number)
        return decimal_from_int(amount, currency.decimal_scale)

    async def _get_token_balance(
        self, address: str, currency: CurrencyEntry, block_number: int
    ) -> Decimal:
        result = await self._client.call_contract(
            currency.contract_address, encode_balance_of(address), block_number
        )
        try:
            (amount,) = abi_decode(["uint256"], result)
        except DecodingError as exc:
            raise UpstreamFetchError(
                f"balanceOf on {currency.contract_address} returned {result!r}"
            ) from exc
        return decimal_from_int(amount, currency.decimal_scale)
