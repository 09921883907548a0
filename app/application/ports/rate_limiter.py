from typing import Protocol


class RateLimiter(Protocol):
    """Fixed or sliding window counter keyed by an arbitrary string."""

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        ...

    def reset(self, key: str) -> None:
        ...

    def purge_expired(self) -> int:
        """Drop counters whose window has fully elapsed; returns how many."""
        ...
