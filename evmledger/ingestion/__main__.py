"""Allow ``python -m evmledger.ingestion`` to normalize a block or transaction."""
import asyncio
import sys

from evmledger.ingestion.cli import _configure_logging, _main

_configure_logging()
sys.exit(asyncio.run(_main()))
