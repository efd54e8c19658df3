"""
CMDR Kael - Services
Builds every store and collaborator once at startup and hands them out
explicitly; nothing here lives at module scope.
"""

from typing import Callable, Dict

import config
import logger as log
from cache import TTLCache
from constants import CACHE_PREFIX, PERSONA_PREFIX, MEMORY_PREFIX
from durable_store import DurableStore
from heartbeat import HeartbeatPublisher
from memory import MemoryStore
from pending import PendingDeliveries
from persona import PersonaStore, default_persona
from storage import KVStore, make_kv
from tools import ToolRegistry
from tools.edsm import EDSMClient
from tools.elitebgs import EliteBGSClient
from tools.fetch import close_http_session
from tools.inara import InaraClient
from tools.live import LiveIntel
from tools.pdf import PdfIndex


class Services:
    """Container for the process-wide stores and collaborators."""

    def __init__(self, kv: KVStore, cache_store: DurableStore, persona_store: DurableStore,
                 memory_store: DurableStore, pdf: PdfIndex, identity: Callable[[], Dict] = None):
        self.kv = kv
        self.stores = [cache_store, persona_store, memory_store]
        self.cache = TTLCache(cache_store)
        self.personas = PersonaStore(persona_store)
        self.memories = MemoryStore(memory_store)
        self.pending = PendingDeliveries()
        self.pdf = pdf
        self.tools = ToolRegistry(
            LiveIntel(
                EDSMClient(self.cache),
                EliteBGSClient(self.cache),
                InaraClient(self.cache, config.INARA_API_KEY),
            ),
            pdf,
            self.cache,
        )
        self.heartbeat = HeartbeatPublisher(kv, identity)

    @classmethod
    def create(cls, kv: KVStore = None, identity: Callable[[], Dict] = None) -> "Services":
        """Select backends from config. The choice is fixed for the process."""
        kv = kv or make_kv(config.UPSTASH_REDIS_REST_URL, config.UPSTASH_REDIS_REST_TOKEN,
                           timeout=config.HTTP_TIMEOUT)
        return cls(
            kv,
            DurableStore.open("cache", kv, config.CACHE_PATH, CACHE_PREFIX),
            DurableStore.open("persona", kv, config.PERSONA_PATH, PERSONA_PREFIX,
                              default_factory=default_persona),
            DurableStore.open("memory", kv, config.MEMORY_PATH, MEMORY_PREFIX,
                              default_factory=list),
            PdfIndex(config.BGS_PDF_URL),
            identity,
        )

    async def start(self):
        """Seed memories, index the PDF and begin heartbeats."""
        await self.memories.load()
        await self.pdf.load()
        self.heartbeat.start()

    async def close(self):
        """Stop heartbeats, flush every store and release HTTP sessions."""
        await self.heartbeat.stop()
        for store in self.stores:
            try:
                await store.close()
            except Exception as e:
                log.error(f"Closing {store.name} store failed: {e}", "services")
        await close_http_session()
        await self.kv.close()
        log.info("Stores flushed", "services")
