"""
CMDR Kael - Data Tools
Function-calling tools exposed to the LLM.
"""

import json
from typing import Any, Dict

import logger as log
from cache import TTLCache
from prometheus_metrics import metrics_manager
from tools.live import LiveIntel, DETAILS
from tools.pdf import PdfIndex

PDF_QUERY_TTL = 600

TOOL_SPECS = [
    {
        "type": "function",
        "function": {
            "name": "toolLIVE",
            "description": "Elite Dangerous live intel (EDSM first, EliteBGS/INARA fallback).",
            "parameters": {
                "type": "object",
                "properties": {
                    "detail": {"type": "string", "enum": DETAILS},
                    "system": {"type": "string"},
                    "station": {"type": "string"},
                    "radiusLy": {"type": "number"},
                    "sizeLy": {"type": "number"},
                    "faction": {"type": "string"},
                    "commander": {"type": "string"},
                    "showHistory": {"type": "boolean"},
                },
                "required": ["detail"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "toolBGS_PDF",
            "description": "Search the Black Sun Crew BGS briefing PDF.",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {"type": "string"},
                    "limit": {"type": "number"},
                },
                "required": ["query"],
            },
        },
    },
]


class ToolRegistry:
    """Runs tools by name and always returns a JSON-serializable result."""

    def __init__(self, live: LiveIntel, pdf: PdfIndex, cache: TTLCache):
        self.live = live
        self.pdf = pdf
        self.cache = cache

    async def _pdf_search(self, args: Dict[str, Any]):
        query = str(args.get("query") or "")[:240]
        try:
            limit = int(args.get("limit") or 5)
        except (TypeError, ValueError):
            limit = 5
        limit = max(1, min(10, limit))

        async def search():
            return self.pdf.query(query, limit)

        results = await self.cache.cached(f"pdf:{query.lower()}:{limit}", PDF_QUERY_TTL, search)
        return {"query": query, "results": results}

    async def run(self, name: str, args: Any) -> Any:
        if isinstance(args, str):
            try:
                args = json.loads(args) if args else {}
            except ValueError:
                args = {}
        if not isinstance(args, dict):
            args = {}

        try:
            if name == "toolLIVE":
                result = await self.live.run(args)
            elif name == "toolBGS_PDF":
                result = await self._pdf_search(args)
            else:
                result = {"error": f"Unknown tool: {name}"}
        except Exception as e:
            log.warn(f"Tool {name} failed: {e}", "tools")
            result = {"error": str(e) or type(e).__name__}

        metrics_manager.record_tool_call(name, not (isinstance(result, dict) and "error" in result))
        return result
