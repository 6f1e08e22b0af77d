from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .errors import DuplicateChainError, UnknownChainError
from .rpc_client import RpcProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int
    name: str
    rpc_url: str
    explorer_url: Optional[str] = None
    native_symbol: str = "ETH"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "name": self.name,
            "rpc_url": self.rpc_url,
            "explorer_url": self.explorer_url,
            "native_symbol": self.native_symbol,
        }


class ProviderPool:
    """
    Registry of chain configs with lazily created, shared RpcProvider handles.

    State lives in immutable snapshots that writers replace wholesale, so
    readers never take the lock. Writers (registration, removal and the first
    handle creation for a chain) serialise on a plain lock that is never held
    across network I/O.
    """

    def __init__(self, chains: Iterable[ChainConfig] = (), timeout: int = 10) -> None:
        self.timeout = timeout
        self._lock = threading.Lock()
        self._configs: Mapping[int, ChainConfig] = MappingProxyType({})
        self._providers: Mapping[int, RpcProvider] = MappingProxyType({})
        for chain in chains:
            self.add_provider(chain)

    def get_provider(self, chain_id: int) -> RpcProvider:
        provider = self._providers.get(chain_id)
        if provider is not None:
            return provider

        with self._lock:
            provider = self._providers.get(chain_id)
            if provider is not None:
                return provider
            config = self._configs.get(chain_id)
            if config is None:
                raise UnknownChainError(chain_id)
            provider = RpcProvider(config, timeout=self.timeout)
            providers = dict(self._providers)
            providers[chain_id] = provider
            self._providers = MappingProxyType(providers)
            logger.debug("Created provider for chain %s (%s)", chain_id, config.name)
            return provider

    def add_provider(self, config: ChainConfig, overwrite: bool = False) -> None:
        with self._lock:
            if config.chain_id in self._configs and not overwrite:
                raise DuplicateChainError(config.chain_id)
            configs = dict(self._configs)
            configs[config.chain_id] = config
            self._configs = MappingProxyType(configs)

            stale = self._providers.get(config.chain_id)
            if stale is not None:
                providers = dict(self._providers)
                del providers[config.chain_id]
                self._providers = MappingProxyType(providers)
        if stale is not None:
            stale.close()

    def remove_provider(self, chain_id: int) -> None:
        with self._lock:
            if chain_id not in self._configs:
                raise UnknownChainError(chain_id)
            configs = dict(self._configs)
            del configs[chain_id]
            self._configs = MappingProxyType(configs)

            stale = self._providers.get(chain_id)
            if stale is not None:
                providers = dict(self._providers)
                del providers[chain_id]
                self._providers = MappingProxyType(providers)
        if stale is not None:
            stale.close()

    def get_config(self, chain_id: int) -> ChainConfig:
        config = self._configs.get(chain_id)
        if config is None:
            raise UnknownChainError(chain_id)
        return config

    def list_chains(self) -> List[Dict[str, Any]]:
        return [self._configs[cid].to_dict() for cid in sorted(self._configs)]

    def __contains__(self, chain_id: object) -> bool:
        return chain_id in self._configs
