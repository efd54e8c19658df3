"""
CMDR Kael - Configuration
API keys, storage backends, and bot settings.
"""

import os
from dotenv import load_dotenv

import logger as log

load_dotenv()


def _env_number(name: str, default: float) -> float:
    """Read a numeric env var, falling back to default on bad input."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        log.warn(f"{name}={raw!r} is not a number, using {default}", "config")
        return default


def _env_list(name: str) -> list[str]:
    """Read a comma-separated env var into a list of non-empty strings."""
    return [part.strip() for part in os.getenv(name, "").split(",") if part.strip()]


# Discord
DISCORD_TOKEN = os.getenv('DISCORD_TOKEN', '')
TARGET_CHANNEL_ID = os.getenv('TARGET_CHANNEL_ID', '')
ADMIN_IDS = _env_list('ADMIN_IDS')

# LLM
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY', '')
OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')

# Data tools
BGS_PDF_URL = os.getenv('BGS_PDF_URL', '')
INARA_API_KEY = os.getenv('INARA_API_KEY', '')

# Remote key-value backend (both must be set to enable remote mode)
UPSTASH_REDIS_REST_URL = os.getenv('UPSTASH_REDIS_REST_URL', '').rstrip('/')
UPSTASH_REDIS_REST_TOKEN = os.getenv('UPSTASH_REDIS_REST_TOKEN', '')

# Local fallback files
CACHE_PATH = os.getenv('CACHE_PATH', os.path.join('data', 'cache.json'))
PERSONA_PATH = os.getenv('PERSONA_PATH', os.path.join('data', 'persona.json'))
MEMORY_PATH = os.getenv('MEMORY_PATH', os.path.join('data', 'memory.json'))

# TTLs
CACHE_TTL_SECONDS = int(_env_number('CACHE_TTL_HOURS', 24) * 3600)  # reference data
LIVE_TTL_SECONDS = int(_env_number('LIVE_TTL_SECONDS', 300))         # volatile live data
EBG_TTL_SECONDS = max(1, int(_env_number('EBG_TTL_MS', 60_000) / 1000))

# Network
HTTP_TIMEOUT = _env_number('HTTP_TIMEOUT_MS', 30_000) / 1000

# Servers
HEALTH_PORT = int(_env_number('PORT', 3000))
METRICS_PORT = int(_env_number('METRICS_PORT', 8000))


def remote_configured() -> bool:
    """True when both remote KV credentials are present."""
    return bool(UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN)


def validate_env() -> list[str]:
    """Return the names of missing required env vars (empty when OK)."""
    missing = [name for name, value in (
        ('DISCORD_TOKEN', DISCORD_TOKEN),
        ('OPENAI_API_KEY', OPENAI_API_KEY),
    ) if not value]

    if not BGS_PDF_URL:
        log.warn("BGS_PDF_URL not set. PDF tools will return no results.", "config")
    if not remote_configured():
        log.warn("Upstash credentials not set. Stores will use local files.", "config")
    return missing
