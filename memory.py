"""
CMDR Kael - Memory System
Long-term per-channel memories, newest first, with a seeded global list.
"""

import time
from typing import Dict, List, Optional

import logger as log
from constants import GLOBAL_SCOPE, MAX_MEMORIES_LISTED, DEFAULT_MEMORY_CONTEXT
from durable_store import DurableStore
from storage import KVError


def _seed() -> List[dict]:
    now = int(time.time() * 1000)
    texts = [
        "Appearance: scarred veteran, cybernetic eye; worn flight suit with old campaign patches.",
        "Origin: grew under Oblivion Fleet's shadow; smuggler → merc → strategist for Black Sun Crew.",
        "Philosophy: hesitation kills; patience wins; influence is a lever, not a scoreboard.",
        "LTT 14850 is Black Sun Crew's home system. Retreat cannot occur there.",
        "OFL (Oblivion Fleet) is a rival. Keep responses cold, precise, unforgiving.",
    ]
    return [{"id": i, "text": text, "created_at": now} for i, text in enumerate(texts, start=1)]


def _valid_entries(raw) -> List[dict]:
    """Keep only well-formed memory records; anything else reads as empty."""
    if not isinstance(raw, list):
        return []
    return [m for m in raw if isinstance(m, dict) and isinstance(m.get("text"), str)]


def find_memory(memories: List[dict], target: str) -> Optional[int]:
    """Index of the memory matched by target, or None.

    A number that is a valid 1-based position wins; otherwise the first
    entry whose text contains target (case-insensitive).
    """
    target = target.strip()
    if not target or not memories:
        return None
    if target.isdigit():
        position = int(target)
        if 1 <= position <= len(memories):
            return position - 1
    needle = target.lower()
    for i, memory in enumerate(memories):
        if needle in memory["text"].lower():
            return i
    return None


class MemoryStore:
    """Manages channel memories on top of a DurableStore."""

    def __init__(self, store: DurableStore, clock=time.time):
        self.store = store
        self.clock = clock

    async def load(self):
        """Seed the global memories if they are missing or empty."""
        try:
            seeded = await self.store.seed(GLOBAL_SCOPE, _seed())
        except KVError as e:
            log.warn(f"Could not check global memories, skipping seed: {e}", "memory")
            return
        if seeded:
            log.info("Seeded global memories", "memory")

    async def _entries(self, channel_id: str) -> List[dict]:
        return _valid_entries(await self.store.get(str(channel_id)))

    # --- Mutations ---
    # Both mutations read first; a failed read raises KVError and writes nothing.

    async def remember(self, channel_id: str, text: str, author: str = None) -> Dict:
        """Prepend a memory to the channel's list and persist it."""
        memories = await self._entries(channel_id)
        now = int(self.clock() * 1000)
        newest = max((m.get("id", 0) for m in memories if isinstance(m.get("id"), int)), default=0)
        entry = {"id": max(now, newest + 1), "text": text, "created_at": now}
        if author:
            entry["author"] = author
        memories.insert(0, entry)
        await self.store.put(str(channel_id), memories)
        return entry

    async def forget(self, channel_id: str, target: str) -> bool:
        """Remove at most one memory by 1-based position or substring."""
        memories = await self._entries(channel_id)
        index = find_memory(memories, target)
        if index is None:
            return False
        removed = memories.pop(index)
        await self.store.put(str(channel_id), memories)
        log.debug(f"Forgot memory {removed.get('id')} in {channel_id}", "memory")
        return True

    # --- Reads ---

    async def list(self, channel_id: str) -> List[dict]:
        """Up to 50 memories for the channel, in stored order."""
        return (await self._entries(channel_id))[:MAX_MEMORIES_LISTED]

    async def context(self, channel_id: str, max_items: int = DEFAULT_MEMORY_CONTEXT) -> str:
        """Compact memory block for prompt injection ("" when there is none)."""
        limit = max(0, min(int(max_items), MAX_MEMORIES_LISTED))
        if limit == 0:
            return ""
        try:
            memories = await self._entries(channel_id)
            if not memories and str(channel_id) != GLOBAL_SCOPE:
                memories = await self._entries(GLOBAL_SCOPE)
        except KVError as e:
            log.warn(f"Memory read failed for {channel_id}: {e}", "memory")
            return ""

        def created(m):
            value = m.get("created_at")
            return value if isinstance(value, (int, float)) else 0

        recent = sorted(memories, key=created, reverse=True)[:limit]
        if not recent:
            return ""
        return "\n".join(["MEMORY CONTEXT (recent)"] + [f"• {m['text']}" for m in recent])
