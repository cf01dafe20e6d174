"""In-memory sliding-window rate limiter.

State is per process: a restart or a second worker starts with empty windows.
"""

import threading
import time
from collections import defaultdict
from collections.abc import Callable, Mapping

UNKNOWN_CLIENT = "unknown"


class SlidingWindowRateLimiter:
    """Admit at most N events per key within a trailing time window.

    Usage::

        limiter = SlidingWindowRateLimiter()
        if not limiter.allow("203.0.113.7", max_requests=5, window=3600):
            ...  # reject
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._requests: dict[str, list[float]] = defaultdict(list)

    def allow(self, key: str, max_requests: int, window: float) -> bool:
        """Return True and record the request if *key* is under the limit.

        Pruning, counting and recording happen under one lock so two callers
        can never both take the last slot.
        """
        with self._lock:
            now = self._clock()
            entries = [ts for ts in self._requests[key] if now - ts < window]
            if len(entries) >= max_requests:
                self._requests[key] = entries
                return False
            entries.append(now)
            self._requests[key] = entries
            return True


def client_key(headers: Mapping[str, str]) -> str:
    """First address in ``X-Forwarded-For``, or ``"unknown"`` when absent."""
    forwarded = headers.get("x-forwarded-for", "")
    first = forwarded.split(",", 1)[0].strip()
    return first or UNKNOWN_CLIENT
