"""
CMDR Kael - EDSM Lookups
System, station and spatial queries against the EDSM API.
"""

from typing import Any, Dict

from cache import TTLCache
from config import CACHE_TTL_SECONDS, LIVE_TTL_SECONDS
from tools.fetch import fetch_json

BASE = "https://www.edsm.net"


class StationNotFound(LookupError):
    pass


class EDSMClient:
    """EDSM wrapper; every call goes through the TTL cache."""

    def __init__(self, cache: TTLCache, base: str = BASE,
                 reference_ttl: int = CACHE_TTL_SECONDS, live_ttl: int = LIVE_TTL_SECONDS):
        self.cache = cache
        self.base = base
        self.reference_ttl = reference_ttl
        self.live_ttl = live_ttl

    async def _get(self, path: str, params: Dict[str, Any], ttl: int) -> Any:
        key = "edsm:" + path + "?" + "&".join(f"{k}={v}" for k, v in sorted(params.items()))
        return await self.cache.cached(key, ttl, lambda: fetch_json(self.base + path, params))

    # --- System info ---

    async def system(self, system: str):
        return await self._get("/api-v1/system", {
            "systemName": system, "showId": 1, "showCoordinates": 1,
            "showPermit": 1, "showInformation": 1, "showPrimaryStar": 1,
        }, self.reference_ttl)

    async def bodies(self, system: str):
        return await self._get("/api-system-v1/bodies", {"systemName": system}, self.reference_ttl)

    async def stations(self, system: str):
        return await self._get("/api-system-v1/stations", {"systemName": system}, self.reference_ttl)

    async def factions(self, system: str, show_history: bool = False):
        return await self._get("/api-system-v1/factions", {
            "systemName": system, "showHistory": 1 if show_history else 0,
        }, self.live_ttl)

    async def traffic(self, system: str):
        return await self._get("/api-system-v1/traffic", {"systemName": system}, self.live_ttl)

    async def deaths(self, system: str):
        return await self._get("/api-system-v1/deaths", {"systemName": system}, self.live_ttl)

    async def estimated_value(self, system: str):
        return await self._get("/api-system-v1/estimated-value", {"systemName": system}, self.reference_ttl)

    # --- Station-specific (market, outfitting, shipyard) ---

    async def _market_id(self, system: str, station: str) -> int:
        data = await self.stations(system)
        wanted = (station or "").lower()
        for entry in (data or {}).get("stations") or []:
            if str(entry.get("name", "")).lower() == wanted and entry.get("marketId"):
                return entry["marketId"]
        raise StationNotFound(f"Station not found: {station}")

    async def market(self, system: str, station: str):
        market_id = await self._market_id(system, station)
        return await self._get("/api-system-v1/stations/market", {"marketId": market_id}, self.live_ttl)

    async def shipyard(self, system: str, station: str):
        market_id = await self._market_id(system, station)
        return await self._get("/api-system-v1/stations/shipyard", {"marketId": market_id}, self.live_ttl)

    async def outfitting(self, system: str, station: str):
        market_id = await self._market_id(system, station)
        return await self._get("/api-system-v1/stations/outfitting", {"marketId": market_id}, self.live_ttl)

    # --- Spatial searches ---

    async def sphere(self, system: str, radius: float):
        return await self._get("/api-v1/sphere-systems", {
            "systemName": system, "radius": min(float(radius), 100.0),
        }, self.reference_ttl)

    async def cube(self, system: str, size: float):
        return await self._get("/api-v1/cube-systems", {
            "systemName": system, "size": min(float(size), 200.0),
        }, self.reference_ttl)
