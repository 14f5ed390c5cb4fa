"""Security helpers for cmdwire.

Provides sender identity normalization (E.164 phone numbers and Signal
UUIDs), a per-sender in-memory sliding-window rate limiter, input
sanitization for incoming message text, and phone number masking for
log privacy.
"""

import re
import time
import unicodedata
from collections import defaultdict
from typing import Callable, Dict, List

import structlog

logger = structlog.get_logger("cmdwire.security")

RATE_LIMIT_WINDOW = 60  # seconds
RATE_LIMIT_MAX_REQUESTS = 30  # max requests per window
_RATE_LIMIT_CLEANUP_INTERVAL = 300  # Prune stale entries every 5 minutes

MAX_INPUT_LENGTH = 10000

_UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE,
)

_BIDI_CHARS = frozenset('\u202a\u202b\u202c\u202d\u202e\u2066\u2067\u2068\u2069')


def is_uuid(value: str) -> bool:
    """Check if a string is a Signal UUID."""
    return bool(_UUID_PATTERN.match(value))


def normalize_phone_number(phone: str) -> str:
    """Normalize a phone number to E.164 format."""
    if phone.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", phone[1:])
    return "+" + re.sub(r"[^\d]", "", phone)


def mask(sender: str) -> str:
    """Mask a sender id down to its last 4 characters for logging."""
    return "..." + sender[-4:]


def sender_matches(sender: str, allowed: List[str]) -> bool:
    """Check a sender (phone number or UUID) against an allow-list."""
    # Direct match first, handles UUIDs and already-normalized numbers
    if sender in allowed:
        return True

    if not is_uuid(sender):
        normalized = normalize_phone_number(sender)
        normalized_allowed = [normalize_phone_number(n) for n in allowed if not is_uuid(n)]
        if normalized in normalized_allowed:
            return True
    return False


class RateLimiter:
    """Per-sender sliding-window rate limiter.

    Args:
        max_requests: Requests allowed per sender inside the window.
        window: Window length in seconds.
        clock: Time source, injectable for tests.
    """

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window: float = RATE_LIMIT_WINDOW,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._data: Dict[str, List[float]] = defaultdict(list)
        self._last_cleanup = 0.0

    def check(self, sender: str) -> bool:
        """Record a request; True if within limits, False if rate limited."""
        now = self._clock()
        window_start = now - self.window

        self._data[sender] = [ts for ts in self._data[sender] if ts > window_start]

        # Periodically prune senders with no recent activity
        if now - self._last_cleanup > _RATE_LIMIT_CLEANUP_INTERVAL:
            self._last_cleanup = now
            stale_keys = [
                key for key, timestamps in self._data.items()
                if key != sender and (not timestamps or timestamps[-1] < window_start)
            ]
            for key in stale_keys:
                del self._data[key]

        if len(self._data[sender]) >= self.max_requests:
            logger.warning(
                "rate_limit_exceeded",
                sender=mask(sender),
                requests_in_window=len(self._data[sender]),
            )
            return False

        self._data[sender].append(now)
        return True

    def retry_after(self, sender: str) -> float:
        """Seconds until the sender's oldest request leaves the window."""
        timestamps = self._data.get(sender)
        if not timestamps:
            return 0.0
        return max(0.0, timestamps[0] + self.window - self._clock())

    def reset(self) -> None:
        """Forget all recorded requests."""
        self._data.clear()
        self._last_cleanup = 0.0


def sanitize_input(text: str) -> str:
    """Sanitize user input: strip control characters and enforce length limit."""
    # Remove all control characters except newline, tab, carriage return
    text = ''.join(
        ch for ch in text
        if ch in ('\n', '\r', '\t') or not unicodedata.category(ch).startswith('C')
    )
    text = ''.join(ch for ch in text if ch not in _BIDI_CHARS)
    if len(text) > MAX_INPUT_LENGTH:
        text = text[:MAX_INPUT_LENGTH]
    return text
