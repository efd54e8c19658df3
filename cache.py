"""
CMDR Kael - TTL Cache
Get-or-compute wrapper used by every outbound data lookup.

Remote mode relies on the backend's native expiry (EX); file mode stores
``{"until": epoch_ms, "data": payload}``, ignores expired records and drops
them whenever a new record is written.
"""

import time
from typing import Any, Awaitable, Callable, TypeVar

import logger as log
from durable_store import DurableStore
from prometheus_metrics import metrics_manager
from storage import KVError

T = TypeVar("T")


class TTLCache:
    """Freshness-window cache over a DurableStore.

    Failures from the compute function propagate and are never stored, so
    the next call retries. Concurrent misses on the same key may both
    compute; that is accepted.
    """

    def __init__(self, store: DurableStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock
        self.hits = 0
        self.misses = 0

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    async def _lookup(self, key: str) -> tuple[bool, Any]:
        try:
            record = await self.store.get(key)
        except KVError:
            return False, None
        if record is None:
            return False, None
        if self.store.remote:
            return True, record
        if not isinstance(record, dict) or "until" not in record:
            return False, None
        try:
            fresh = float(record["until"]) > self._now_ms()
        except (TypeError, ValueError):
            return False, None
        return fresh, record.get("data") if fresh else None

    def _expired(self, record: Any) -> bool:
        if not isinstance(record, dict):
            return True
        try:
            return float(record["until"]) <= self._now_ms()
        except (KeyError, TypeError, ValueError):
            return True

    async def cached(self, key: str, ttl_seconds: int,
                     compute: Callable[[], Awaitable[T]]) -> T:
        """Return the live value for key, computing and storing it on a miss."""
        hit, value = await self._lookup(key)
        if hit:
            self.hits += 1
            metrics_manager.record_cache(True)
            log.debug(f"hit {key}", "cache")
            return value

        self.misses += 1
        metrics_manager.record_cache(False)
        log.debug(f"miss {key}", "cache")
        value = await compute()

        if self.store.remote:
            self.store.put(key, value, ttl=ttl_seconds)
        else:
            await self.store.prune(self._expired)
            self.store.put(key, {"until": self._now_ms() + int(ttl_seconds * 1000), "data": value})
        return value

    async def clear(self) -> bool:
        """Wipe every cached record (file mode only)."""
        return await self.store.clear()

    def stats(self) -> dict:
        return {"hits": self.hits, "misses": self.misses, "remote": self.store.remote}
