"""
Configuration module for CanaryTail.

Centralizes configuration with environment variable support. Values that a
long-running process may want to change (the canary home) are read on each
call; the rest are read once at import.
"""

import os
from datetime import timedelta
from pathlib import Path

# ============================================================
# Protocol Constants
# ============================================================

# Maximum lag between the freshness block's timestamp and the release time
FRESHNESS_TOLERANCE = timedelta(hours=1)

# ============================================================
# Environment Configuration
# ============================================================

CHAIN = os.getenv("CANARYTAIL_CHAIN", "monero")  # monero|bitcoin
MONERO_NODE = os.getenv("CANARYTAIL_MONERO_NODE", "")
MONERO_NODE_LIST_URL = os.getenv("CANARYTAIL_MONERO_NODE_LIST", "https://monero.fail/nodes.json")
BITCOIN_API_URL = os.getenv("CANARYTAIL_BITCOIN_API", "https://blockchain.info")

# Oracle HTTP timeout (seconds)
ORACLE_TIMEOUT = float(os.getenv("CANARYTAIL_ORACLE_TIMEOUT", "30"))

# Default validity of a new canary: one month
DEFAULT_EXPIRY_MINUTES = int(os.getenv("CANARYTAIL_DEFAULT_EXPIRY_MINUTES", "43200"))

LOG_LEVEL = os.getenv("CANARYTAIL_LOG_LEVEL", "WARNING")


def canary_home() -> Path:
    """Directory holding per-domain keys and canaries ($CANARY_HOME)."""
    home = os.getenv("CANARY_HOME")
    if home:
        return Path(home)
    return Path.home() / ".canarytail"


# ============================================================
# Feature Flags
# ============================================================

def log_json() -> bool:
    """Check if structured JSON logging is enabled."""
    return os.getenv("CANARYTAIL_LOG_JSON", "").lower() in ("1", "true", "yes")


def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("CANARYTAIL_DEBUG", "").lower() in ("1", "true", "yes")
