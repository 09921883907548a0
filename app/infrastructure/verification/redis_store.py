import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import redis

from ...application.ports.verification_store import VerificationStore, PendingVerification

logger = logging.getLogger(__name__)

# Keys outlive the code so a stale lookup still sees the entry and reports it expired
EXPIRY_GRACE_SECONDS = 600


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RedisVerificationStore(VerificationStore):
    """Pending codes in Redis hashes, shared by every instance.

    The stored ``expires_at`` decides validity. The key TTL only garbage
    collects entries once the grace period after expiry has passed.
    """

    def __init__(self, client: "redis.Redis", prefix: str = "phone-verify:",
                 grace_seconds: int = EXPIRY_GRACE_SECONDS,
                 clock: Callable[[], datetime] = utcnow) -> None:
        self.client = client
        self.prefix = prefix
        self.grace_seconds = grace_seconds
        self._clock = clock

    @classmethod
    def from_url(cls, url: str, prefix: str = "phone-verify:") -> "RedisVerificationStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), prefix=prefix)

    def _key(self, phone_number: str) -> str:
        return f"{self.prefix}{phone_number}"

    def put(self, phone_number: str, code: str, ttl_seconds: int) -> PendingVerification:
        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        key = self._key(phone_number)
        pipe = self.client.pipeline()
        pipe.delete(key)
        pipe.hset(key, mapping={"code": code, "expires_at": expires_at.isoformat(), "attempts": 0})
        pipe.expire(key, ttl_seconds + self.grace_seconds)
        pipe.execute()
        return PendingVerification(phone_number=phone_number, code=code, expires_at=expires_at)

    def get(self, phone_number: str) -> Optional[PendingVerification]:
        data = self.client.hgetall(self._key(phone_number))
        if not data:
            return None
        return PendingVerification(
            phone_number=phone_number,
            code=data["code"],
            expires_at=datetime.fromisoformat(data["expires_at"]),
            attempts=int(data.get("attempts", 0)),
        )

    def delete(self, phone_number: str) -> None:
        self.client.delete(self._key(phone_number))

    def record_failed_attempt(self, phone_number: str) -> int:
        key = self._key(phone_number)
        if not self.client.exists(key):
            return 0
        return int(self.client.hincrby(key, "attempts", 1))

    def purge_expired(self) -> int:
        now = self._clock()
        purged = 0
        for entry in self.list_all():
            if entry.is_expired(now):
                self.delete(entry.phone_number)
                purged += 1
        if purged:
            logger.debug(f"Purged {purged} expired verification codes")
        return purged

    def list_all(self) -> List[PendingVerification]:
        entries = []
        for key in self.client.scan_iter(match=f"{self.prefix}*"):
            entry = self.get(key[len(self.prefix):])
            if entry:
                entries.append(entry)
        return entries
