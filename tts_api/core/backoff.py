# ABOUTME: Retry delay policy for upstream TTS calls with exponential backoff and jitter
# ABOUTME: Honors server-advertised Retry-After hints (seconds or HTTP date) up to a fixed cap

import math
import random
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

BASE_DELAY_MS = 600
MAX_BACKOFF_MS = 8000
MAX_HINT_DELAY_MS = 15000
JITTER_MS = 250


def delay_for(attempt_index: int, server_hint_seconds: Optional[float] = None) -> int:
    """Compute how long to wait before the next attempt.

    Args:
        attempt_index: Zero-based index of the attempt that just failed
        server_hint_seconds: Optional delay suggested by the upstream (Retry-After)

    Returns:
        Delay in milliseconds
    """
    if server_hint_seconds is not None and server_hint_seconds > 0:
        # Never block a single wait longer than the hint cap
        return int(min(server_hint_seconds * 1000, MAX_HINT_DELAY_MS))

    exponential = BASE_DELAY_MS * (2 ** attempt_index)
    jitter = random.randrange(JITTER_MS)
    return min(exponential + jitter, MAX_BACKOFF_MS)


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """Parse a Retry-After header value.

    Accepts either a number of seconds or an HTTP date. Dates are converted to
    the number of whole seconds remaining, rounded up.

    Returns:
        Seconds to wait, or None if the header is absent, unparsable or in the past
    """
    if not value:
        return None
    value = value.strip()

    try:
        seconds = float(value)
    except ValueError:
        seconds = None
    if seconds is not None:
        return seconds if math.isfinite(seconds) else None

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    remaining = math.ceil((when - now).total_seconds())
    return float(remaining) if remaining > 0 else None
