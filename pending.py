"""
CMDR Kael - Pending Delivery
Per-channel backlog of reply parts waiting for "more".
"""

import time
from typing import Dict, List, Optional

from constants import PENDING_TTL_SECONDS


class PendingDeliveries:
    """Queued chunks per channel with a sliding expiry.

    An empty or expired queue is removed outright; absence and emptiness
    are the same state.
    """

    def __init__(self, ttl: float = PENDING_TTL_SECONDS, clock=time.time):
        self.ttl = ttl
        self.clock = clock
        self._queues: Dict[str, dict] = {}  # channel_id -> {chunks, expires}

    def enqueue(self, channel_id: str, chunks: List[str]):
        key = str(channel_id)
        if not chunks:
            self._queues.pop(key, None)
            return
        self._queues[key] = {"chunks": list(chunks), "expires": self.clock() + self.ttl}

    def _live(self, key: str) -> Optional[dict]:
        entry = self._queues.get(key)
        if entry is None:
            return None
        if entry["expires"] < self.clock() or not entry["chunks"]:
            del self._queues[key]
            return None
        return entry

    def has_more(self, channel_id: str) -> bool:
        return self._live(str(channel_id)) is not None

    def pop_next(self, channel_id: str) -> Optional[str]:
        key = str(channel_id)
        entry = self._live(key)
        if entry is None:
            return None
        chunk = entry["chunks"].pop(0)
        if entry["chunks"]:
            entry["expires"] = self.clock() + self.ttl
        else:
            del self._queues[key]
        return chunk

    def clear(self, channel_id: str):
        self._queues.pop(str(channel_id), None)

    def __len__(self):
        return len(self._queues)
