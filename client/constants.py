"""
Shared constants used across all client and server modules.

Centralises magic numbers, default headers, and tunables so they live in
exactly one place.
"""

# ---------------------------------------------------------------------------
# HTTP headers
# ---------------------------------------------------------------------------

USER_AGENT = "speedtest-http/1.0 (+aiohttp)"

COMMON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Encoding": "identity",
    "Cache-Control": "no-cache",
}

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

PING_PATH = "/ping"
DOWNLOAD_PATH = "/download"
UPLOAD_PATH = "/upload"

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_SERVER_URL = f"http://127.0.0.1:{DEFAULT_PORT}"

# ---------------------------------------------------------------------------
# Sizes
# ---------------------------------------------------------------------------

KIB = 1024
MIB = 1024 * 1024

STREAM_CHUNK_SIZE = 64 * KIB         # server-side chunk per pull
READ_CHUNK_SIZE = 64 * KIB           # client-side read / write buffer

MIN_DOWNLOAD_SIZE = 64 * KIB
MAX_DOWNLOAD_SIZE = 256 * MIB
DEFAULT_DOWNLOAD_SIZE = 1 * MIB      # when ?size= is missing or garbage

DOWNLOAD_REQUEST_SIZE = 25 * MIB     # one GET sub-request inside a pass
UPLOAD_REQUEST_SIZE = 1 * MIB        # one POST body inside a pass

# ---------------------------------------------------------------------------
# Latency probe
# ---------------------------------------------------------------------------

DEFAULT_PING_COUNT = 7
MIN_PING_COUNT = 5
MAX_PING_COUNT = 101
PING_TIMEOUT = 5.0                   # seconds per /ping round trip

# ---------------------------------------------------------------------------
# Pass thresholds
# ---------------------------------------------------------------------------

DEFAULT_PASSES = 3
MIN_PASSES = 1
MAX_PASSES = 10

MIN_PASS_BYTES = 5 * MIB
MIN_PASS_DURATION_MS = 3_000.0
MAX_PASS_DURATION_MS = 15_000.0
MAX_ALLOWED_DURATION_MS = 300_000.0  # upper bound accepted for max duration

# ---------------------------------------------------------------------------
# Client session
# ---------------------------------------------------------------------------

CONNECT_TIMEOUT = 5.0
