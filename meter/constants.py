"""
Shared constants used across all meter modules.

Centralises magic numbers, default headers, and tunables so they live in
exactly one place.
"""

# ---------------------------------------------------------------------------
# HTTP headers (browser-like, some CDNs reject bare client requests)
# ---------------------------------------------------------------------------

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
)

COMMON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

IMAGE_PING_PATH = "favicon.ico"

# ---------------------------------------------------------------------------
# Measurement defaults
# ---------------------------------------------------------------------------

DEFAULT_SAMPLE_COUNT = 50
DEFAULT_WARMUP_COUNT = 5
DEFAULT_INTERVAL_MS = 100.0
DEFAULT_TIMEOUT_MS = 5000.0

SMOOTHING_DIVISOR = 16.0        # RFC 3550 section 6.4.1 jitter gain (1/16)

# ---------------------------------------------------------------------------
# Limits (CLI / config validation)
# ---------------------------------------------------------------------------

MIN_SAMPLE_COUNT = 1
MAX_SAMPLE_COUNT = 1000
MAX_WARMUP_COUNT = 50
MIN_TIMEOUT_MS = 100.0
MAX_TIMEOUT_MS = 60_000.0
MAX_INTERVAL_MS = 10_000.0
MAX_CONCURRENT = 6              # one per catalog entry is plenty

# ---------------------------------------------------------------------------
# MOS estimate
# ---------------------------------------------------------------------------

MOS_BASE = 4.5
MOS_JITTER_PENALTY = 0.05       # per ms of smoothed jitter
MOS_LOSS_PENALTY = 2.0          # per unit of loss ratio
MOS_MIN = 1.0
MOS_MAX = 5.0
