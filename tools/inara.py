"""
CMDR Kael - INARA Lookups
Commander and faction info from the INARA API (needs INARA_API_KEY).
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from cache import TTLCache
from config import LIVE_TTL_SECONDS
from tools.fetch import post_json, ToolHTTPError

BASE = "https://inara.cz/inapi/v1/"
APP_NAME = "CMDR-Kael"
APP_VERSION = "0.1"


class InaraClient:
    def __init__(self, cache: TTLCache, api_key: str, base: str = BASE, ttl: int = LIVE_TTL_SECONDS):
        self.cache = cache
        self.api_key = api_key
        self.base = base
        self.ttl = ttl

    async def _post(self, event_name: str, data: Dict[str, Any]) -> Any:
        if not self.api_key:
            raise ToolHTTPError("INARA_API_KEY not configured.")
        body = {
            "header": {
                "appName": APP_NAME,
                "appVersion": APP_VERSION,
                "isBeingDeveloped": False,
                "APIkey": self.api_key,
            },
            "events": [{
                "eventName": event_name,
                "eventTimestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                "eventData": data,
            }],
        }
        key = f"inara:{event_name}:" + "&".join(f"{k}={v}" for k, v in sorted(data.items()))
        return await self.cache.cached(key, self.ttl, lambda: post_json(self.base, body))

    async def commander_profile(self, name: str):
        return await self._post("getCommanderProfile", {"searchName": name})

    async def system_factions(self, system: str):
        return await self._post("getSystemFactions", {"systemName": system})

    async def tool_inara(self, commander: Optional[str] = None) -> Dict:
        if not commander:
            return {"error": "Provide 'commander'."}
        return {"source": "inara", "commander": await self.commander_profile(commander)}
