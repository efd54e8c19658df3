"""
CMDR Kael - Outbound HTTP
Shared aiohttp session with timeout and a single randomized retry.
"""

import asyncio
import random
from typing import Any, Dict, Optional

import aiohttp

import logger as log
from config import HTTP_TIMEOUT
from constants import RETRY_BACKOFF_MIN, RETRY_BACKOFF_MAX, USER_AGENT


class ToolHTTPError(Exception):
    """An outbound data request failed after its retry."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


# Global aiohttp session for reuse
_http_session: Optional[aiohttp.ClientSession] = None


async def get_http_session() -> aiohttp.ClientSession:
    """Get or create a reusable HTTP session."""
    global _http_session
    if _http_session is None or _http_session.closed:
        _http_session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=HTTP_TIMEOUT),
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
    return _http_session


async def close_http_session():
    global _http_session
    if _http_session is not None and not _http_session.closed:
        await _http_session.close()
    _http_session = None


def clean_params(params: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Drop empty values and stringify the rest for a query string."""
    cleaned = {}
    for key, value in (params or {}).items():
        if value is None or value == "":
            continue
        cleaned[key] = str(value).lower() if isinstance(value, bool) else str(value)
    return cleaned


async def _request(method: str, url: str, params=None, json_body=None, raw=False):
    session = await get_http_session()
    async with session.request(method, url, params=params, json=json_body) as response:
        if response.status >= 400:
            body = await response.text()
            raise ToolHTTPError(f"{method} {url} → {response.status}: {body[:300]}", response.status)
        if raw:
            return await response.read()
        return await response.json(content_type=None)


async def fetch(method: str, url: str, params: Dict[str, Any] = None,
                json_body: Any = None, retries: int = 1, raw: bool = False) -> Any:
    """Perform a request, retrying once after a short random pause.

    Raises ToolHTTPError when every attempt fails.
    """
    params = clean_params(params)
    for attempt in range(retries + 1):
        try:
            return await _request(method, url, params=params, json_body=json_body, raw=raw)
        except (aiohttp.ClientError, asyncio.TimeoutError, ToolHTTPError, ValueError) as e:
            if attempt >= retries:
                if isinstance(e, ToolHTTPError):
                    raise
                raise ToolHTTPError(f"{method} {url} failed: {e or type(e).__name__}") from e
            delay = random.uniform(RETRY_BACKOFF_MIN, RETRY_BACKOFF_MAX)
            log.debug(f"{method} {url} failed ({e}); retrying in {delay:.2f}s", "http")
            await asyncio.sleep(delay)


async def fetch_json(url: str, params: Dict[str, Any] = None, retries: int = 1) -> Any:
    return await fetch("GET", url, params=params, retries=retries)


async def post_json(url: str, body: Any, retries: int = 1) -> Any:
    return await fetch("POST", url, json_body=body, retries=retries)
