"""Wall-clock helpers. Session timestamps are integer milliseconds since the epoch."""

import time
from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


def iso_now() -> str:
    """UTC timestamp in the same shape browsers produce with toISOString()."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
