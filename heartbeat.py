"""
CMDR Kael - Heartbeat
Periodic liveness record for external health checks.
"""

import asyncio
import json
import os
import socket
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

import logger as log
from constants import HEARTBEAT_INTERVAL_SECONDS, HEARTBEAT_KEY, HEARTBEAT_TTL_SECONDS
from prometheus_metrics import metrics_manager
from storage import KVStore

FRESH = "fresh"
STALE = "stale"
NEVER_STARTED = "never_started"


class HeartbeatPublisher:
    """Writes ``{ts, bot, user_id, hostname, pid, ready}`` every interval.

    The record carries a short TTL, so a monitor can tell a live process from
    a stalled one. Publishing never raises.
    """

    def __init__(self, kv: KVStore, identity: Callable[[], Dict] = None,
                 interval: float = HEARTBEAT_INTERVAL_SECONDS,
                 ttl: int = HEARTBEAT_TTL_SECONDS, clock=time.time):
        self.kv = kv
        self.identity = identity or (lambda: {})
        self.interval = interval
        self.ttl = ttl
        self.clock = clock
        self.hostname = socket.gethostname()
        self.pid = os.getpid()
        self.last_payload: Optional[Dict] = None
        self._task: Optional[asyncio.Task] = None

    def build_payload(self) -> Dict:
        ident = {}
        try:
            ident = self.identity() or {}
        except Exception as e:
            log.warn(f"Identity lookup failed: {e}", "heartbeat")
        return {
            "ts": int(self.clock() * 1000),
            "bot": ident.get("bot"),
            "user_id": ident.get("user_id"),
            "hostname": self.hostname,
            "pid": self.pid,
            "ready": bool(ident.get("ready")),
        }

    async def publish(self) -> bool:
        """Write one heartbeat. Failures are logged and reported as False."""
        payload = self.build_payload()
        self.last_payload = payload
        try:
            ok = await self.kv.set(HEARTBEAT_KEY, json.dumps(payload), self.ttl)
        except Exception as e:
            log.warn(f"Failed to write heartbeat: {e}", "heartbeat")
            ok = False
        metrics_manager.record_heartbeat(ok, payload["ts"] / 1000)
        if not ok:
            log.warn("Heartbeat write was not accepted", "heartbeat")
        return ok

    async def _run(self):
        while True:
            await self.publish()
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        """Publish now, then every interval, until stopped."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())
            log.debug(f"Heartbeat every {self.interval}s (ttl {self.ttl}s)", "heartbeat")
        return self._task

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


async def read_heartbeat(kv: KVStore) -> Optional[Dict]:
    """Fetch the stored heartbeat; malformed records read as absent."""
    raw = await kv.get(HEARTBEAT_KEY)
    if raw is None:
        return None
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return payload if isinstance(payload, dict) else None


def _iso(ts_ms: Optional[int]) -> Optional[str]:
    if ts_ms is None:
        return None
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).isoformat()


def evaluate_heartbeat(payload: Optional[Dict], now_ms: int,
                       max_age_ms: int = HEARTBEAT_TTL_SECONDS * 1000) -> Dict:
    """Classify a heartbeat as fresh, stale, or never started."""
    ts = payload.get("ts") if isinstance(payload, dict) else None
    if not isinstance(ts, (int, float)) or isinstance(ts, bool):
        ts = None

    if payload is None or ts is None:
        status = NEVER_STARTED
    elif now_ms - ts > max_age_ms:
        status = STALE
    else:
        status = FRESH

    payload = payload or {}
    return {
        "ok": status == FRESH and bool(payload.get("ready")),
        "status": status,
        "stale": status != FRESH,
        "now": _iso(now_ms),
        "last_heartbeat": _iso(ts),
        "source_host": payload.get("hostname"),
        "bot": payload.get("bot"),
        "bot_user_id": payload.get("user_id"),
        "pid": payload.get("pid"),
    }
