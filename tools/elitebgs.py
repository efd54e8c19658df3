"""
CMDR Kael - EliteBGS Lookups
Background-simulation state from the EliteBGS v5 API.
"""

from typing import Any, Dict, Optional

from cache import TTLCache
from config import EBG_TTL_SECONDS
from tools.fetch import fetch_json

BASE = "https://elitebgs.app/api/ebgs/v5"


class EliteBGSClient:
    def __init__(self, cache: TTLCache, base: str = BASE, ttl: int = EBG_TTL_SECONDS):
        self.cache = cache
        self.base = base
        self.ttl = ttl

    async def get(self, path: str, params: Dict[str, Any] = None) -> Any:
        params = params or {}
        key = "ebgs:" + path + "?" + "&".join(f"{k}={v}" for k, v in sorted(params.items()))
        return await self.cache.cached(key, self.ttl, lambda: fetch_json(self.base + path, params))

    async def system(self, name: str):
        return await self.get("/systems", {"name": name})

    async def faction(self, name: str):
        return await self.get("/factions", {"name": name})

    async def tool_bgs(self, system: Optional[str] = None, faction: Optional[str] = None) -> Dict:
        """Faction picture for a system and/or a named faction."""
        if not system and not faction:
            return {"error": "Provide 'system' or 'faction'."}
        result: Dict[str, Any] = {"source": "elitebgs"}
        if system:
            result["system"] = await self.system(system)
        if faction:
            result["faction"] = await self.faction(faction)
        return result
