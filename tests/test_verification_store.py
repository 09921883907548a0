import time
from datetime import timedelta

import fakeredis
import pytest

from app.infrastructure.verification.memory_store import InMemoryVerificationStore
from app.infrastructure.verification.redis_store import EXPIRY_GRACE_SECONDS, RedisVerificationStore

PHONE = "+15551234567"


def test_put_then_get(store, clock):
    store.put(PHONE, "482913", 300)
    entry = store.get(PHONE)
    assert entry.code == "482913"
    assert entry.expires_at == clock.now + timedelta(seconds=300)
    assert entry.attempts == 0


def test_put_replaces_previous_entry(store):
    store.put(PHONE, "111111", 300)
    store.record_failed_attempt(PHONE)
    store.put(PHONE, "222222", 300)
    entry = store.get(PHONE)
    assert entry.code == "222222"
    assert entry.attempts == 0
    assert len(store.list_all()) == 1


def test_get_returns_copy(store):
    store.put(PHONE, "482913", 300)
    store.get(PHONE).attempts = 99
    assert store.get(PHONE).attempts == 0


def test_delete_is_idempotent(store):
    store.put(PHONE, "482913", 300)
    store.delete(PHONE)
    store.delete(PHONE)
    assert store.get(PHONE) is None


def test_record_failed_attempt(store):
    assert store.record_failed_attempt(PHONE) == 0
    store.put(PHONE, "482913", 300)
    assert store.record_failed_attempt(PHONE) == 1
    assert store.record_failed_attempt(PHONE) == 2


def test_purge_expired_only_removes_stale_entries(store, clock):
    store.put("+15550000001", "111111", 60)
    store.put("+15550000002", "222222", 600)
    clock.advance(seconds=61)

    assert store.purge_expired() == 1
    assert store.get("+15550000001") is None
    assert store.get("+15550000002") is not None


def test_separate_stores_do_not_share_state():
    a = InMemoryVerificationStore()
    b = InMemoryVerificationStore()
    a.put(PHONE, "482913", 300)
    assert b.get(PHONE) is None


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def redis_store(redis_client, clock):
    return RedisVerificationStore(redis_client, clock=clock)


def test_redis_store_round_trip(redis_store, redis_client, clock):
    created = redis_store.put(PHONE, "482913", 300)

    entry = redis_store.get(PHONE)
    assert entry.code == "482913"
    assert entry.expires_at == clock.now + timedelta(seconds=300)
    assert entry.expires_at == created.expires_at
    assert entry.attempts == 0

    assert redis_store.record_failed_attempt(PHONE) == 1
    assert redis_store.get(PHONE).attempts == 1
    assert [e.phone_number for e in redis_store.list_all()] == [PHONE]

    redis_store.delete(PHONE)
    assert redis_store.get(PHONE) is None
    assert redis_store.record_failed_attempt(PHONE) == 0


def test_redis_key_outlives_code_expiry(redis_store, redis_client):
    redis_store.put(PHONE, "482913", 300)
    ttl = redis_client.ttl(f"phone-verify:{PHONE}")
    assert 300 < ttl <= 300 + EXPIRY_GRACE_SECONDS


def test_redis_store_keeps_stale_entry_until_purged(redis_client, clock):
    store = RedisVerificationStore(redis_client, grace_seconds=60, clock=clock)
    store.put("+15550000001", "111111", 1)
    store.put("+15550000002", "222222", 600)
    time.sleep(1.2)
    clock.advance(seconds=2)

    stale = store.get("+15550000001")
    assert stale is not None
    assert stale.is_expired(clock()) is True

    assert store.purge_expired() == 1
    assert store.get("+15550000001") is None
    assert store.get("+15550000002") is not None


def test_redis_store_put_resets_attempts(redis_store):
    redis_store.put(PHONE, "111111", 300)
    redis_store.record_failed_attempt(PHONE)
    redis_store.put(PHONE, "222222", 300)
    entry = redis_store.get(PHONE)
    assert entry.code == "222222"
    assert entry.attempts == 0
    assert redis_store.purge_expired() == 0
