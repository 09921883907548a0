import redis

from ...application.ports.rate_limiter import RateLimiter


class RedisRateLimiter(RateLimiter):
    """Fixed window limiter shared by every process pointing at the same Redis."""

    def __init__(self, client: "redis.Redis", prefix: str = "rl:") -> None:
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "rl:") -> "RedisRateLimiter":
        return cls(redis.Redis.from_url(url), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        rk = self._key(key)
        # INCR then EXPIRE NX keeps the window anchored at the first hit
        pipe = self.client.pipeline()
        pipe.incr(rk, 1)
        pipe.expire(rk, window_seconds, nx=True)
        count, _ = pipe.execute()
        return int(count) <= int(max_requests)

    def reset(self, key: str) -> None:
        self.client.delete(self._key(key))

    def purge_expired(self) -> int:
        # window keys carry their own TTL
        return 0
