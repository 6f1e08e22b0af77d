import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Tuple

from .errors import RpcProtocolError, TransportError

logger = logging.getLogger(__name__)

PRICE_TTL_SECONDS = 60
GAS_PRICE_TTL_SECONDS = 30


class KeyValueStore(Protocol):
    """TTL key-value store contract (`SET key value EX seconds` / `GET key`)."""

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any, ex: Optional[int] = None) -> None:
        ...


class MemoryStore:
    """In-process store honouring per-key expiry."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._memory: Dict[str, Tuple[Any, Optional[float]]] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._memory.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            self._memory.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: Any, ex: Optional[int] = None) -> None:
        expires_at = self._clock() + ex if ex else None
        self._memory[key] = (value, expires_at)


@dataclass(frozen=True)
class CachedValue:
    value: Any
    fetched_at: float
    ttl: float

    def is_stale(self, now: float) -> bool:
        return now - self.fetched_at > self.ttl

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "fetched_at": self.fetched_at, "ttl": self.ttl}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CachedValue":
        return cls(value=payload["value"], fetched_at=float(payload["fetched_at"]), ttl=float(payload["ttl"]))


class StaleCache:
    """
    Fetch-or-compute cache that prefers a stale value over a failed refresh.

    Entries are kept in the store for ``ttl * retention_factor`` seconds so a
    stale value is still around when the upstream is down. Concurrent misses
    for the same key are not deduplicated.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        retention_factor: int = 10,
        clock: Callable[[], float] = time.time,
        namespace: str = "chainlens",
    ) -> None:
        self.store = store if store is not None else MemoryStore(clock=clock)
        self.retention_factor = max(1, int(retention_factor))
        self._clock = clock
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def peek(self, key: str) -> Optional[CachedValue]:
        try:
            payload = await self.store.get(self._key(key))
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Cache read for %s failed (%s); treating as a miss", key, exc)
            return None
        if payload is None:
            return None
        try:
            return CachedValue.from_dict(payload)
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding malformed cache entry for %s", key)
            return None

    async def get_or_fetch(self, key: str, ttl: float, fetch_fn: Callable[[], Awaitable[Any]]) -> Any:
        cached = await self.peek(key)
        if cached is not None and not cached.is_stale(self._clock()):
            return cached.value

        try:
            value = await fetch_fn()
        except (TransportError, RpcProtocolError) as exc:
            if cached is None:
                raise
            logger.warning("Refresh of %s failed (%s); serving value fetched at %.0f", key, exc, cached.fetched_at)
            return cached.value

        entry = CachedValue(value=value, fetched_at=self._clock(), ttl=ttl)
        retention = max(1, int(ttl * self.retention_factor))
        try:
            await self.store.set(self._key(key), entry.to_dict(), ex=retention)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Cache write for %s failed (%s); value not stored", key, exc)
        return value
