"""
CMDR Kael - Durable Store
One store abstraction over two interchangeable backends: the remote KV
(one JSON entry per scope key) or a single local JSON file (debounced saves).
The backend is chosen once when the store is opened.
"""

import asyncio
import copy
import json
import os
from typing import Any, Callable, Dict, Optional, Set

import logger as log
from constants import SAVE_DEBOUNCE_SECONDS
from prometheus_metrics import metrics_manager
from storage import KVStore


def load_json(filepath: str, component: str = None) -> dict:
    """Load a JSON object from disk; missing or corrupt files load as empty."""
    if not os.path.exists(filepath):
        return {}
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        log.warn(f"Could not read {filepath}, starting empty: {e}", component)
        return {}
    if not isinstance(data, dict):
        log.warn(f"{filepath} is not a JSON object, starting empty", component)
        return {}
    return data


def save_json(filepath: str, text: str):
    """Write serialized JSON atomically (temp file + rename)."""
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp_path = f"{filepath}.tmp"
    with open(tmp_path, 'w', encoding='utf-8') as f:
        f.write(text)
    os.replace(tmp_path, filepath)


def _done(result: bool) -> asyncio.Future:
    future = asyncio.get_running_loop().create_future()
    future.set_result(result)
    return future


class DebouncedSaver:
    """Coalesces bursts of save requests into one write per quiet period.

    Every ``schedule()`` resets the timer. Writes are serialized by a lock,
    and the snapshot is taken when the write starts, so a save always
    reflects the latest in-memory state.
    """

    def __init__(self, name: str, path: str, snapshot: Callable[[], dict],
                 delay: float = SAVE_DEBOUNCE_SECONDS):
        self.name = name
        self.path = path
        self.delay = delay
        self._snapshot = snapshot
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self._dirty = False

    @property
    def pending(self) -> bool:
        return self._dirty or self._timer is not None

    def schedule(self):
        self._dirty = True
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().call_later(self.delay, self._fire)

    def _fire(self):
        self._timer = None
        self._task = asyncio.ensure_future(self.flush())

    async def flush(self) -> bool:
        """Write now if anything changed since the last save."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        async with self._lock:
            if not self._dirty:
                return True
            self._dirty = False
            text = json.dumps(self._snapshot(), ensure_ascii=False, indent=2)
            try:
                await asyncio.to_thread(save_json, self.path, text)
            except OSError as e:
                self._dirty = True
                log.error(f"Save to {self.path} failed: {e}", self.name)
                metrics_manager.record_flush(self.name, False)
                return False
        log.debug(f"Flushed to {self.path}", self.name)
        metrics_manager.record_flush(self.name, True)
        return True

    async def close(self):
        """Final flush; waits for any save already in progress."""
        await self.flush()
        if self._task is not None and not self._task.done():
            await self._task


class KVBackend:
    """One JSON-encoded KV entry per scope key, under a store prefix."""

    remote = True

    def __init__(self, name: str, kv: KVStore, prefix: str):
        self.name = name
        self.kv = kv
        self.prefix = prefix

    def key_for(self, scope: str) -> str:
        return f"{self.prefix}{scope}"

    async def read(self, scope: str) -> Any:
        raw = await self.kv.get(self.key_for(scope))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            log.warn(f"Undecodable value under {self.key_for(scope)}, treating as absent", self.name)
            return None

    def write(self, scope: str, value: Any, ttl: Optional[int] = None) -> asyncio.Future:
        try:
            raw = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            log.error(f"Cannot serialize value for {scope}: {e}", self.name)
            return _done(False)
        return asyncio.ensure_future(self.kv.set(self.key_for(scope), raw, ttl))

    def remove(self, scope: str) -> asyncio.Future:
        return asyncio.ensure_future(self.kv.delete(self.key_for(scope)))

    async def prune(self, expired) -> int:
        return 0  # native expiry

    async def wipe(self) -> bool:
        log.warn("clear() is a no-op in remote mode; entries expire on their own.", self.name)
        return False

    async def close(self):
        pass


class FileBackend:
    """Whole store held in memory and persisted as one JSON document."""

    remote = False

    def __init__(self, name: str, path: str, delay: float = SAVE_DEBOUNCE_SECONDS):
        self.name = name
        self.path = os.path.abspath(path)
        self.data: Dict[str, Any] = load_json(self.path, name)
        self.saver = DebouncedSaver(name, self.path, lambda: self.data, delay)

    async def read(self, scope: str) -> Any:
        return copy.deepcopy(self.data.get(scope))

    def write(self, scope: str, value: Any, ttl: Optional[int] = None) -> asyncio.Future:
        # ttl is the caller's business in file mode (see TTLCache)
        try:
            self.data[scope] = json.loads(json.dumps(value, ensure_ascii=False))
        except (TypeError, ValueError) as e:
            log.error(f"Cannot serialize value for {scope}: {e}", self.name)
            return _done(False)
        self.saver.schedule()
        return _done(True)

    def remove(self, scope: str) -> asyncio.Future:
        if self.data.pop(scope, None) is not None:
            self.saver.schedule()
        return _done(True)

    async def prune(self, expired) -> int:
        stale = [scope for scope, value in self.data.items() if expired(value)]
        for scope in stale:
            del self.data[scope]
        if stale:
            self.saver.schedule()
        return len(stale)

    async def wipe(self) -> bool:
        self.data.clear()
        self.saver.schedule()
        return True

    async def close(self):
        await self.saver.close()


class DurableStore:
    """Async read/write/reset API over a KV or file backend.

    ``put`` and ``delete`` return the pending write as an awaitable that
    resolves to True/False. Awaiting it is optional; the store keeps track of
    in-flight writes and drains them on ``close()``.
    """

    def __init__(self, name: str, backend, default_factory: Callable[[], Any] = None):
        self.name = name
        self.backend = backend
        self.default_factory = default_factory
        self._inflight: Set[asyncio.Future] = set()

    @classmethod
    def open(cls, name: str, kv: KVStore, path: str, prefix: str,
             default_factory: Callable[[], Any] = None) -> "DurableStore":
        """Pick the backend for this store's lifetime."""
        if kv.configured:
            backend = KVBackend(name, kv, prefix)
            log.info(f"Using remote KV (prefix '{prefix}')", name)
        else:
            backend = FileBackend(name, path)
            log.warn(f"Using file store at {backend.path} (ephemeral on most hosts)", name)
        return cls(name, backend, default_factory)

    @property
    def remote(self) -> bool:
        return self.backend.remote

    def _track(self, future: asyncio.Future) -> asyncio.Future:
        if future.done():
            return future
        self._inflight.add(future)
        metrics_manager.update_pending_writes(self.name, len(self._inflight))

        def _finished(f: asyncio.Future):
            self._inflight.discard(f)
            metrics_manager.update_pending_writes(self.name, len(self._inflight))
            if not f.cancelled() and f.exception() is not None:
                log.error(f"Background write failed: {f.exception()}", self.name)

        future.add_done_callback(_finished)
        return future

    async def get(self, scope: str) -> Any:
        """Value for a scope; materializes and persists the default if absent.

        A failed remote read raises KVError and writes nothing, so an outage
        never replaces a stored record with the default.
        """
        value = await self.backend.read(scope)
        if value is None and self.default_factory is not None:
            value = self.default_factory()
            self.put(scope, value)
        return value

    def put(self, scope: str, value: Any, ttl: Optional[int] = None) -> asyncio.Future:
        return self._track(self.backend.write(scope, value, ttl))

    def delete(self, scope: str) -> asyncio.Future:
        return self._track(self.backend.remove(scope))

    async def seed(self, scope: str, value: Any) -> bool:
        """Write value only if the scope is absent or empty. True if written.

        Raises KVError when the current value cannot be read.
        """
        current = await self.backend.read(scope)
        if current:
            return False
        return await self.put(scope, value)

    async def prune(self, expired: Callable[[Any], bool]) -> int:
        """Drop records for which expired(value) is true. Returns the count."""
        return await self.backend.prune(expired)

    async def clear(self) -> bool:
        return await self.backend.wipe()

    async def drain(self):
        """Wait for all in-flight writes."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def close(self):
        await self.drain()
        await self.backend.close()
