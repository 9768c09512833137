"""
Runtime configuration for the GitBack timeline service.

Values come from the environment (a local .env is loaded for development).
"""

import os

from dotenv import load_dotenv

load_dotenv()


def env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    """Read an enumerated setting, failing fast on values the service does not know."""
    value = os.getenv(name, default).strip().lower()
    if value not in choices:
        raise RuntimeError(f"{name} must be one of {', '.join(choices)} (got {value!r})")
    return value


# =============================================================================
# UPSTREAM ANALYSIS API
# =============================================================================

ANALYSIS_API_URL = os.getenv("ANALYSIS_API_URL", "http://localhost:8080").rstrip("/")

# Cold analyses clone the whole repository upstream, so this is generous
ANALYSIS_API_TIMEOUT = float(os.getenv("ANALYSIS_API_TIMEOUT", "120"))
ANALYSIS_API_RETRIES = int(os.getenv("ANALYSIS_API_RETRIES", "3"))
ANALYSIS_API_RETRY_DELAY = float(os.getenv("ANALYSIS_API_RETRY_DELAY", "0.4"))


# =============================================================================
# TIMELINE / RECAP
# =============================================================================

# "history": cumulative lines run over the whole dataset
# "window": cumulative lines restart at the first visible bucket
TIMELINE_CUMULATIVE_SCOPE = env_choice("TIMELINE_CUMULATIVE_SCOPE", "history", ("history", "window"))

# Empty means "current UTC year"
RECAP_DEFAULT_YEAR = os.getenv("RECAP_DEFAULT_YEAR", "")


# =============================================================================
# IN-MEMORY STATE
# =============================================================================

DATASET_CACHE_SIZE = int(os.getenv("DATASET_CACHE_SIZE", "32"))

# Seconds before a cached repository is fetched again; 0 keeps it until evicted
DATASET_CACHE_TTL = float(os.getenv("DATASET_CACHE_TTL", "600"))

# Idle seconds before a brush session is dropped; 0 never expires
BRUSH_SESSION_TTL = float(os.getenv("BRUSH_SESSION_TTL", "1800"))
BRUSH_SESSION_MAX = int(os.getenv("BRUSH_SESSION_MAX", "256"))


# =============================================================================
# HTTP
# =============================================================================

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "ALLOWED_ORIGINS",
        "http://localhost:5173,http://localhost:3000,http://localhost:8080",
    ).split(",")
    if origin.strip()
]
