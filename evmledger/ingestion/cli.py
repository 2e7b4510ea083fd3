"""Print normalized transactions for one block or one transaction.

Usage::

    python -m evmledger.ingestion --block 19000000 [--rpc-url URL] [--currencies FILE]
    python -m evmledger.ingestion --tx 0xabc...
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from evmledger.ingestion.blockchain import EvmBlockchain
from evmledger.ingestion.config import RpcConfig
from evmledger.ingestion.registry import load_registry
from evmledger.ingestion.rpc import JsonRpcClient, UpstreamFetchError

logger = logging.getLogger("evmledger.ingestion.cli")


def _configure_logging() -> None:
    """Configure structured logging; records go to stdout, logs to stderr."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _parse_cli_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Normalize EVM transactions into ledger records.",
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--block", type=int, help="Block number to normalize")
    target.add_argument("--tx", help="Transaction hash to normalize")
    parser.add_argument(
        "--rpc-url",
        default=None,
        help="Node JSON-RPC URL (default: EVMLEDGER_RPC_URL env var or localhost)",
    )
    parser.add_argument(
        "--currencies",
        default=None,
        help="Currency registry YAML (default: EVMLEDGER_CURRENCIES_FILE or config/currencies.yaml)",
    )
    return parser.parse_args(argv)


async def _main(argv: Optional[list[str]] = None) -> int:
    """Async entry point.  Returns the process exit code."""
    args = _parse_cli_args(argv)
    registry = load_registry(args.currencies)
    config = RpcConfig(rpc_url=args.rpc_url) if args.rpc_url else RpcConfig()

    async with JsonRpcClient(config) as client:
        chain = EvmBlockchain(client, registry)
        try:
            if args.block is not None:
                block = await chain.get_block_by_number(args.block)
                records = block.transactions
            else:
                records = await chain.get_transaction(args.tx)
        except UpstreamFetchError as exc:
            logger.error("Fetch failed: %s", exc)
            return 1

    for record in records:
        print(json.dumps(record.to_dict()))
    logger.info("Emitted %d records", len(records))
    return 0
