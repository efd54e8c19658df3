"""
CMDR Kael - Key-Value Backends
Uniform async get/set/delete over Upstash Redis REST, with a no-op fallback.
"""

import asyncio
import json
from typing import Any, Optional

import aiohttp

import logger as log
from prometheus_metrics import metrics_manager


class KVError(Exception):
    """Transport-level failure talking to the remote KV service."""


class KVStore:
    """Interface for key-value backends.

    Reads return None for absent or expired keys and raise KVError when the
    backend cannot be reached, so a miss is never confused with an outage.
    Writes return True on success and False on failure; they never raise.
    """

    configured = False

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        raise NotImplementedError

    async def delete(self, key: str) -> bool:
        raise NotImplementedError

    async def close(self):
        pass


class NullKV(KVStore):
    """Degraded-mode backend: every read misses, every write is dropped."""

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        return True

    async def delete(self, key: str) -> bool:
        return True


class UpstashKV(KVStore):
    """Upstash Redis over its REST API.

    Commands are POSTed to the base URL as JSON arrays, e.g.
    ``["SET", key, value, "EX", 120]``; the reply is ``{"result": ...}``
    or ``{"error": "..."}``.
    """

    configured = True

    def __init__(self, url: str, token: str, timeout: float = 30.0,
                 session: Optional[aiohttp.ClientSession] = None):
        self.url = url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self._session

    async def _command(self, *args: Any) -> Any:
        """Run one Redis command, returning its result or raising KVError."""
        session = await self._get_session()
        headers = {"Authorization": f"Bearer {self.token}"}
        try:
            async with session.post(self.url, json=list(args), headers=headers) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise KVError(f"HTTP {response.status}: {body[:200]}")
                payload = await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise KVError(f"timeout after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise KVError(str(e)) from e
        except json.JSONDecodeError as e:
            raise KVError(f"bad response body: {e}") from e

        if not isinstance(payload, dict):
            raise KVError(f"unexpected response: {payload!r}")
        if payload.get("error"):
            raise KVError(str(payload["error"]))
        return payload.get("result")

    async def get(self, key: str) -> Optional[str]:
        """Value for key, or None when absent. Raises KVError when unreachable."""
        try:
            result = await self._command("GET", key)
        except KVError as e:
            log.warn(f"GET {key} failed: {e}", "kv")
            metrics_manager.record_kv("get", "error")
            raise
        metrics_manager.record_kv("get", "ok" if result is not None else "miss")
        if result is None:
            return None
        return result if isinstance(result, str) else json.dumps(result)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        args = ["SET", key, value]
        if ttl:
            args += ["EX", int(ttl)]
        try:
            await self._command(*args)
        except KVError as e:
            log.warn(f"SET {key} failed: {e}", "kv")
            metrics_manager.record_kv("set", "error")
            return False
        metrics_manager.record_kv("set", "ok")
        return True

    async def delete(self, key: str) -> bool:
        try:
            await self._command("DEL", key)
        except KVError as e:
            log.warn(f"DEL {key} failed: {e}", "kv")
            metrics_manager.record_kv("delete", "error")
            return False
        metrics_manager.record_kv("delete", "ok")
        return True

    async def close(self):
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()


def make_kv(url: str, token: str, timeout: float = 30.0) -> KVStore:
    """Build the remote adapter if credentials are present, else the no-op one."""
    if not url or not token:
        log.warn("Remote KV not configured, falling back to local storage.", "kv")
        return NullKV()
    log.info(f"Using Upstash Redis at {url}", "kv")
    return UpstashKV(url, token, timeout=timeout)
