import time
import threading
from typing import Callable, Dict, List, Tuple

from ...application.ports.rate_limiter import RateLimiter


class InMemoryRateLimiter(RateLimiter):
    """Sliding window limiter for a single process."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        # key -> (window_seconds, hit timestamps)
        self._hits: Dict[str, Tuple[int, List[float]]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._last_purge = clock()

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        now = self._clock()
        window_start = now - window_seconds
        with self._lock:
            if now - self._last_purge >= window_seconds:
                self._purge(now)
            # prune
            hits = [t for t in self._hits.get(key, (window_seconds, []))[1] if t > window_start]
            if len(hits) >= max_requests:
                self._hits[key] = (window_seconds, hits)
                return False
            hits.append(now)
            self._hits[key] = (window_seconds, hits)
            return True

    def reset(self, key: str) -> None:
        with self._lock:
            self._hits.pop(key, None)

    def _purge(self, now: float) -> int:
        stale = [k for k, (window, hits) in self._hits.items() if not any(t > now - window for t in hits)]
        for key in stale:
            del self._hits[key]
        self._last_purge = now
        return len(stale)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge(self._clock())
