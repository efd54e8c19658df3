"""
CMDR Kael - Logging Utilities
Clean, organized logging with emoji indicators.
"""

import os
from datetime import datetime

# Log levels
QUIET = 0   # Only errors
NORMAL = 1  # Errors + important events
VERBOSE = 2 # Everything

_LEVELS = {"quiet": QUIET, "normal": NORMAL, "verbose": VERBOSE}

# Controlled by LOG_LEVEL=quiet|normal|verbose
LOG_LEVEL = _LEVELS.get(os.getenv("LOG_LEVEL", "normal").strip().lower(), NORMAL)


class Colors:
    """ANSI color codes for terminal output."""
    OK = '\033[92m'      # Green
    WARN = '\033[93m'    # Yellow
    FAIL = '\033[91m'    # Red
    INFO = '\033[94m'    # Blue
    DIM = '\033[90m'     # Gray
    BOLD = '\033[1m'
    END = '\033[0m'


def _timestamp():
    """Get current time as HH:MM:SS."""
    return datetime.now().strftime("%H:%M:%S")


def _log(icon: str, color: str, msg: str, component: str = None, level: int = NORMAL):
    """Internal logging function."""
    if level > LOG_LEVEL:
        return

    ts = f"{Colors.DIM}{_timestamp()}{Colors.END}"
    prefix = f"[{component}] " if component else ""
    print(f"{ts} {color}{icon}{Colors.END} {prefix}{msg}", flush=True)


# Public logging functions
def ok(msg: str, component: str = None):
    """Log success message."""
    _log("✓", Colors.OK, msg, component, NORMAL)


def warn(msg: str, component: str = None):
    """Log warning message."""
    _log("⚠", Colors.WARN, msg, component, NORMAL)


def error(msg: str, component: str = None):
    """Log error message."""
    _log("✗", Colors.FAIL, msg, component, QUIET)


def info(msg: str, component: str = None):
    """Log info message."""
    _log("ℹ", Colors.INFO, msg, component, NORMAL)


def debug(msg: str, component: str = None):
    """Log debug message (only in verbose mode)."""
    _log("•", Colors.DIM, msg, component, VERBOSE)


def startup(msg: str):
    """Log startup message (always shown)."""
    print(f"{Colors.BOLD}{msg}{Colors.END}", flush=True)


def online(msg: str, component: str = None):
    """Log online status (always shown)."""
    ts = f"{Colors.DIM}{_timestamp()}{Colors.END}"
    prefix = f"[{component}] " if component else ""
    print(f"{ts} {Colors.OK}●{Colors.END} {prefix}{msg}", flush=True)


def divider():
    """Print a divider line."""
    print(f"{Colors.DIM}{'─' * 50}{Colors.END}", flush=True)
