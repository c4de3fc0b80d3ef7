"""Utilities and constants for the sentrio Digest client."""

import logging
from rich.console import Console
from rich.logging import RichHandler

# Rich Console for pretty printing
console = Console()

# Configure logging with RichHandler
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
)

# Get logger for the package
logger = logging.getLogger("sentriox")

SCHEME = "Digest"
WWW_AUTHENTICATE = "www-authenticate"
AUTHORIZATION = "Authorization"

# Only one authenticated request is ever sent per challenge
NONCE_COUNT = "00000001"
CNONCE_BYTES = 8

DEFAULT_TIMEOUT_MS = 5000

# Device API paths (relative to https://{ip})
SYSTEM_STATUS_PATH = "/api/system/status"
CALL_STATUS_PATH = "/api/call/status"
CALL_HANGUP_PATH = "/api/call/hangup"
DISPLAY_TEXT_PATH = "/api/display/text"
CAMERA_SNAPSHOT_PATH = "/api/camera/snapshot"

# Per-endpoint timeouts (milliseconds)
HEALTH_CHECK_TIMEOUT_MS = 3000
DISPLAY_TEXT_TIMEOUT_MS = 60000
SNAPSHOT_TIMEOUT_MS = 10000


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def timeout_seconds(timeout_ms: float) -> float:
    """Convert a millisecond timeout into the seconds httpx expects."""
    return timeout_ms / 1000.0
