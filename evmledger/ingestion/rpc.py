"""Async JSON-RPC client for EVM nodes."""
from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Optional, Union

import aiohttp
from eth_utils import decode_hex

from evmledger.ingestion.config import RpcConfig

logger = logging.getLogger("evmledger.ingestion.rpc")

BlockIdentifier = Union[int, str]


class UpstreamFetchError(RuntimeError):
    """Raised when the node cannot supply the requested data."""


def _block_param(block: BlockIdentifier) -> str:
    if isinstance(block, int):
        return hex(block)
    return block


class JsonRpcClient:
    """Minimal ``eth_*`` client over HTTP.

    Rate limits, server errors and network failures are retried with
    exponential backoff; JSON-RPC error objects and missing results are
    reported as ``UpstreamFetchError`` without retrying.
    """

    def __init__(self, config: Optional[RpcConfig] = None) -> None:
        self._config = config or RpcConfig()
        self._session: Optional[aiohttp.ClientSession] = None
        self._ids = itertools.count(1)

    async def __aenter__(self) -> JsonRpcClient:
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self._config.request_timeout_seconds)
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._session:
            await self._session.close()

    # -- Transport ------------------------------------------------------------

    async def _request(self, method: str, params: list[Any]) -> Any:
        """Send one JSON-RPC call with exponential backoff retry logic."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        retry_count = 0
        while True:
            try:
                async with self._session.post(self._config.rpc_url, json=payload) as response:
                    if response.status == 200:
                        body = await response.json()
                        return self._unwrap(method, body)
                    elif response.status == 429:
                        logger.warning("Rate limit hit on %s, retrying...", method)
                    elif response.status >= 500:
                        logger.warning(
                            "Server error %d on %s, retrying...", response.status, method
                        )
                    else:
                        raise UpstreamFetchError(
                            f"{method} failed with HTTP status {response.status}"
                        )
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning("Network error on %s: %s, retrying...", method, e)

            retry_count += 1
            if self._config.max_retries > 0 and retry_count > self._config.max_retries:
                raise UpstreamFetchError(f"Max retries exceeded for {method}")

            delay = min(
                self._config.retry_base_seconds * (2 ** (retry_count - 1)),
                self._config.retry_max_seconds,
            )
            await asyncio.sleep(delay)

    @staticmethod
    def _unwrap(method: str, body: Any) -> Any:
        if not isinstance(body, dict):
            raise UpstreamFetchError(f"{method} returned a non-object response")
        error = body.get("error")
        if error:
            raise UpstreamFetchError(f"{method} failed: {error}")
        return body.get("result")

    async def _require(self, method: str, params: list[Any]) -> Any:
        result = await self._request(method, params)
        if result is None:
            raise UpstreamFetchError(f"{method} returned no result for {params!r}")
        return result

    # -- Node queries ---------------------------------------------------------

    async def get_latest_block_number(self) -> int:
        return int(await self._require("eth_blockNumber", []), 16)

    async def get_block_by_number(self, number: int) -> dict[str, Any]:
        """Fetch a block with full transaction objects."""
        return await self._require("eth_getBlockByNumber", [_block_param(number), True])

    async def get_block_by_hash(self, block_hash: str) -> dict[str, Any]:
        """Fetch a block with full transaction objects."""
        return await self._require("eth_getBlockByHash", [block_hash, True])

    async def get_transaction_by_hash(self, tx_hash: str) -> dict[str, Any]:
        return await self._require("eth_getTransactionByHash", [tx_hash])

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any]:
        return await self._require("eth_getTransactionReceipt", [tx_hash])

    async def get_account_balance(
        self, address: str, at_block: BlockIdentifier = "latest"
    ) -> int:
        result = await self._require("eth_getBalance", [address, _block_param(at_block)])
        return int(result, 16)

    async def call_contract(
        self, address: str, data: str, at_block: BlockIdentifier = "latest"
    ) -> bytes:
        """Execute a read-only contract call and return the raw result bytes."""
        result = await self._require(
            "eth_call", [{"to": address, "data": data}, _block_param(at_block)]
        )
        return decode_hex(result)
