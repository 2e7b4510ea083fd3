"""Registry of tracked currencies.

The registry is loaded from YAML, resolving the file from (in priority order):
1. the ``path`` argument to ``load_registry``
2. ``EVMLEDGER_CURRENCIES_FILE`` environment variable
3. ``config/currencies.yaml``

Example::

    currencies:
      - id: eth
        decimal_scale: 18
      - id: usdt
        decimal_scale: 6
        contract_address: "0xdAC17F958D2ee523a2206206994597C13D831ec7"

The entry without ``contract_address`` is the chain's native asset.
"""
from __future__ import annotations

import logging
import os
import pathlib
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Optional, Union

import yaml

logger = logging.getLogger("evmledger.ingestion.registry")

DEFAULT_CURRENCIES_PATH = pathlib.Path("config/currencies.yaml")


class RegistryError(ValueError):
    """Raised when the currency configuration is inconsistent."""


class CurrencyKind(str, Enum):
    NATIVE = "native"
    TOKEN_CONTRACT = "token_contract"


@dataclass(frozen=True)
class CurrencyEntry:
    id: str
    kind: CurrencyKind
    decimal_scale: int
    contract_address: Optional[str] = None

    def __post_init__(self) -> None:
        if self.decimal_scale < 0:
            raise RegistryError(
                f"Currency {self.id!r} has negative decimal_scale {self.decimal_scale}"
            )
        if self.kind is CurrencyKind.NATIVE and self.contract_address is not None:
            raise RegistryError(f"Native currency {self.id!r} cannot have a contract address")
        if self.kind is CurrencyKind.TOKEN_CONTRACT:
            if not self.contract_address:
                raise RegistryError(f"Token currency {self.id!r} requires a contract address")
            object.__setattr__(self, "contract_address", self.contract_address.lower())

    @classmethod
    def native(cls, currency_id: str, decimal_scale: int) -> CurrencyEntry:
        return cls(currency_id, CurrencyKind.NATIVE, decimal_scale)

    @classmethod
    def token(cls, currency_id: str, contract_address: str, decimal_scale: int) -> CurrencyEntry:
        return cls(currency_id, CurrencyKind.TOKEN_CONTRACT, decimal_scale, contract_address)


class CurrencyRegistry:
    """Read-only lookup over the configured currencies.

    Holds exactly one native entry; token entries are indexed by lower-cased
    contract address.  Nothing mutates a registry after construction, so one
    instance can be shared across threads and tasks.
    """

    def __init__(self, entries: Iterable[CurrencyEntry]) -> None:
        entries = tuple(entries)
        natives = [e for e in entries if e.kind is CurrencyKind.NATIVE]
        if len(natives) != 1:
            raise RegistryError(
                f"Registry needs exactly one native currency, found {len(natives)}"
            )

        by_id: dict[str, CurrencyEntry] = {}
        by_contract: dict[str, CurrencyEntry] = {}
        for entry in entries:
            if entry.id in by_id:
                raise RegistryError(f"Duplicate currency id {entry.id!r}")
            by_id[entry.id] = entry
            if entry.contract_address is not None:
                if entry.contract_address in by_contract:
                    raise RegistryError(
                        f"Contract address {entry.contract_address} is used by "
                        f"{by_contract[entry.contract_address].id!r} and {entry.id!r}"
                    )
                by_contract[entry.contract_address] = entry

        self._entries = entries
        self._native = natives[0]
        self._by_id = MappingProxyType(by_id)
        self._by_contract = MappingProxyType(by_contract)

    def __iter__(self):
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def native_entry(self) -> CurrencyEntry:
        return self._native

    @property
    def tokens(self) -> tuple[CurrencyEntry, ...]:
        return tuple(self._by_contract.values())

    def get(self, currency_id: str) -> Optional[CurrencyEntry]:
        return self._by_id.get(currency_id)

    def lookup_by_contract_address(self, address: Optional[str]) -> Optional[CurrencyEntry]:
        """Return the token entry for ``address`` (case-insensitive), if tracked."""
        if not address:
            return None
        return self._by_contract.get(address.lower())


def resolve_currencies_path(path: Union[str, os.PathLike, None] = None) -> pathlib.Path:
    """Return the registry file path, preferring the argument over the env var."""
    if path is not None:
        return pathlib.Path(path)
    env_path = os.environ.get("EVMLEDGER_CURRENCIES_FILE")
    if env_path:
        return pathlib.Path(env_path)
    return DEFAULT_CURRENCIES_PATH


def parse_registry(data: dict) -> CurrencyRegistry:
    """Build a registry from the decoded YAML mapping."""
    currencies = (data or {}).get("currencies")
    if not isinstance(currencies, list) or not currencies:
        raise RegistryError("Configuration must define a non-empty 'currencies' list")

    entries = []
    for item in currencies:
        try:
            currency_id = str(item["id"])
            scale = int(item["decimal_scale"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RegistryError(f"Invalid currency definition: {item!r}") from exc

        contract_address = item.get("contract_address")
        if contract_address:
            entries.append(CurrencyEntry.token(currency_id, str(contract_address), scale))
        else:
            entries.append(CurrencyEntry.native(currency_id, scale))

    return CurrencyRegistry(entries)


def load_registry(path: Union[str, os.PathLike, None] = None) -> CurrencyRegistry:
    """Load the currency registry from YAML."""
    config_path = resolve_currencies_path(path)
    with open(config_path) as f:
        cfg = yaml.safe_load(f)
    registry = parse_registry(cfg)
    logger.info(
        "Loaded %d currencies from %s (native=%s)",
        len(registry),
        config_path,
        registry.native_entry().id,
    )
    return registry
