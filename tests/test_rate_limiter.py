import fakeredis

from app.infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from app.infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter


class FakeClock:
    def __init__(self):
        self.t = 1_000.0

    def __call__(self):
        return self.t


def test_memory_rate_limiter_allows_then_blocks():
    rl = InMemoryRateLimiter()
    key = "send-code:+15551234567"
    assert rl.allow(key, max_requests=2, window_seconds=60) is True
    assert rl.allow(key, max_requests=2, window_seconds=60) is True
    assert rl.allow(key, max_requests=2, window_seconds=60) is False


def test_memory_rate_limiter_window_slides():
    clock = FakeClock()
    rl = InMemoryRateLimiter(clock=clock)
    assert rl.allow("k1", 1, 60) is True
    assert rl.allow("k1", 1, 60) is False
    clock.t += 61
    assert rl.allow("k1", 1, 60) is True


def test_memory_rate_limiter_reset_and_keys_are_independent():
    rl = InMemoryRateLimiter()
    assert rl.allow("k1", 1, 60) is True
    assert rl.allow("k2", 1, 60) is True
    assert rl.allow("k1", 1, 60) is False
    rl.reset("k1")
    assert rl.allow("k1", 1, 60) is True


def test_memory_rate_limiter_forgets_idle_keys():
    clock = FakeClock()
    rl = InMemoryRateLimiter(clock=clock)
    for i in range(1000):
        assert rl.allow(f"send-code:+1555000{i:04d}", 5, 60) is True

    clock.t += 10_000
    assert rl.allow("send-code:+15551234567", 5, 60) is True
    assert list(rl._hits) == ["send-code:+15551234567"]


def test_memory_rate_limiter_purge_keeps_active_windows():
    clock = FakeClock()
    rl = InMemoryRateLimiter(clock=clock)
    rl.allow("short", 1, 10)
    rl.allow("long", 1, 3600)
    clock.t += 60

    assert rl.purge_expired() == 1
    assert rl.allow("long", 1, 3600) is False
    assert rl.allow("short", 1, 10) is True


def test_redis_rate_limiter():
    client = fakeredis.FakeRedis()
    rl = RedisRateLimiter(client)

    assert rl.allow("k1", 2, 60) is True
    assert rl.allow("k1", 2, 60) is True
    assert rl.allow("k1", 2, 60) is False
    assert 0 < client.ttl("rl:k1") <= 60

    rl.reset("k1")
    assert rl.allow("k1", 2, 60) is True
    assert rl.purge_expired() == 0
