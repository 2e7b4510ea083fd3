"""Configuration for node RPC access.

Settings are resolved from environment variables, then defaults.
All settings are exposed via the ``RpcConfig`` dataclass.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_RPC_URL = "http://localhost:8545"

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRY_BASE_SECONDS = 1.0
DEFAULT_RETRY_MAX_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 5  # 0 = unlimited


@dataclass(frozen=True)
class RpcConfig:
    """Immutable configuration for a JSON-RPC client."""

    rpc_url: str = field(
        default_factory=lambda: os.environ.get("EVMLEDGER_RPC_URL", DEFAULT_RPC_URL)
    )
    request_timeout_seconds: float = field(
        default_factory=lambda: float(
            os.environ.get(
                "EVMLEDGER_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT_SECONDS
            )
        )
    )
    retry_base_seconds: float = DEFAULT_RETRY_BASE_SECONDS
    retry_max_seconds: float = DEFAULT_RETRY_MAX_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
