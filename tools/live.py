"""
CMDR Kael - Live Intel
EDSM-first lookups with EliteBGS/INARA fallbacks.
"""

from typing import Any, Dict

import logger as log
from tools.edsm import EDSMClient
from tools.elitebgs import EliteBGSClient
from tools.inara import InaraClient

SYSTEM_DETAILS = {
    "snapshot", "bodies", "stations", "factions", "traffic", "deaths", "value",
    "market", "shipyard", "outfitting",
}
STATION_DETAILS = {"market", "shipyard", "outfitting"}
DETAILS = sorted(SYSTEM_DETAILS | {"sphere", "cube"})


def is_empty(value: Any) -> bool:
    """True for None, empty containers, and other falsy payloads."""
    if not value:
        return True
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


class LiveIntel:
    def __init__(self, edsm: EDSMClient, bgs: EliteBGSClient, inara: InaraClient):
        self.edsm = edsm
        self.bgs = bgs
        self.inara = inara

    async def run(self, args: Dict[str, Any]) -> Any:
        """Dispatch a toolLIVE call; failures come back as {"error": ...}."""
        detail = args.get("detail")
        system = args.get("system")
        try:
            return await self._dispatch(detail, args)
        except Exception as e:
            log.warn(f"live {detail} for {system!r} failed: {e}", "tools")
            if detail == "factions" and (system or args.get("faction")):
                result = await self._fallback(self.bgs.tool_bgs(system=system, faction=args.get("faction")))
                if "error" in result and system and self.inara.api_key:
                    return await self._fallback(self._inara_factions(system))
                return result
            if args.get("commander"):
                return await self._fallback(self.inara.tool_inara(commander=args["commander"]))
            return {"error": str(e) or type(e).__name__}

    async def _fallback(self, call) -> Any:
        try:
            return await call
        except Exception as e:
            return {"error": str(e) or type(e).__name__}

    async def _inara_factions(self, system: str) -> Dict:
        return {"source": "inara", "factions": await self.inara.system_factions(system)}

    async def _dispatch(self, detail: str, args: Dict[str, Any]) -> Any:
        system = args.get("system")

        if detail == "sphere" and system and args.get("radiusLy"):
            return await self.edsm.sphere(system, args["radiusLy"])
        if detail == "cube" and system and args.get("sizeLy"):
            return await self.edsm.cube(system, args["sizeLy"])
        if detail in ("sphere", "cube"):
            return {"error": "Provide 'system' and a radius/size."}

        if detail in SYSTEM_DETAILS and not system:
            return {"error": "Provide 'system'."}
        if detail in STATION_DETAILS and not args.get("station"):
            return {"error": "Provide 'station'."}

        if detail == "snapshot":
            return await self.edsm.system(system)
        if detail == "bodies":
            return await self.edsm.bodies(system)
        if detail == "stations":
            return await self.edsm.stations(system)
        if detail == "traffic":
            return await self.edsm.traffic(system)
        if detail == "deaths":
            return await self.edsm.deaths(system)
        if detail == "value":
            return await self.edsm.estimated_value(system)
        if detail == "factions":
            result = await self.edsm.factions(system, bool(args.get("showHistory")))
            if not is_empty((result or {}).get("factions")):
                return result
            return await self.bgs.tool_bgs(system=system)
        if detail == "market":
            return await self.edsm.market(system, args["station"])
        if detail == "shipyard":
            return await self.edsm.shipyard(system, args["station"])
        if detail == "outfitting":
            return await self.edsm.outfitting(system, args["station"])

        if args.get("commander"):
            return await self.inara.tool_inara(commander=args["commander"])
        return {"error": f"Unsupported detail: {detail}"}
