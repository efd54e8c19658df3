"""
CMDR Kael - Constants
Centralized configuration constants to avoid magic numbers throughout the codebase.
"""

# =============================================================================
# MESSAGE DELIVERY
# =============================================================================

MAX_CHUNK_LENGTH = 1900          # Discord caps at 2000; leave headroom for hints
PENDING_TTL_SECONDS = 300        # Unsent parts expire after 5 minutes of silence
LLM_REPLY_MAX_CHARS = 8000       # Hard trim on model output before chunking
CODE_FENCE = "```"

# =============================================================================
# STORAGE
# =============================================================================

SAVE_DEBOUNCE_SECONDS = 0.4      # Quiet period before a file-backed store hits disk
MAX_MEMORIES_LISTED = 50         # Cap on memories returned by list/context reads
DEFAULT_MEMORY_CONTEXT = 10      # Memories injected when persona has no window
GLOBAL_SCOPE = "global"          # Channel id holding the seed memories

CACHE_PREFIX = "cache:"
PERSONA_PREFIX = "persona:"
MEMORY_PREFIX = "mem:"

# =============================================================================
# HEARTBEAT
# =============================================================================

HEARTBEAT_KEY = "health:heartbeat"
HEARTBEAT_INTERVAL_SECONDS = 30
HEARTBEAT_TTL_SECONDS = 120

# =============================================================================
# OUTBOUND HTTP
# =============================================================================

RETRY_BACKOFF_MIN = 0.15         # Seconds; single retry after a randomized pause
RETRY_BACKOFF_MAX = 0.40
USER_AGENT = "CMDR-Kael/1.0"
PDF_MIN_CHUNK_CHARS = 80

# =============================================================================
# USER-FACING TEXT
# =============================================================================

MORE_HINT = "_(reply **more** for the next part • **stop** to clear)_"
NEXT_HINT = "_(reply **more** for next • **stop** to clear)_"
END_HINT = "_(end of message)_"
NOTHING_QUEUED = "_(no further parts queued)_"
CLEARED_PENDING = "_(cleared pending parts)_"
NO_RESPONSE = "_(no response)_"
GENERIC_FAILURE = "I hit a snag."
STORE_UNAVAILABLE = "Storage is unreachable right now. Nothing was changed; try again shortly."
