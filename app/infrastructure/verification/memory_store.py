import threading
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from ...application.ports.verification_store import VerificationStore, PendingVerification

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryVerificationStore(VerificationStore):
    """Pending codes held in process memory.

    Only valid for a single-instance deployment: a second process would not
    see codes issued by the first. Use the Redis store for anything larger.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._entries: Dict[str, PendingVerification] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def put(self, phone_number: str, code: str, ttl_seconds: int) -> PendingVerification:
        entry = PendingVerification(
            phone_number=phone_number,
            code=code,
            expires_at=self._clock() + timedelta(seconds=ttl_seconds),
        )
        with self._lock:
            self._entries[phone_number] = entry
        return replace(entry)

    def get(self, phone_number: str) -> Optional[PendingVerification]:
        with self._lock:
            entry = self._entries.get(phone_number)
            return replace(entry) if entry else None

    def delete(self, phone_number: str) -> None:
        with self._lock:
            self._entries.pop(phone_number, None)

    def record_failed_attempt(self, phone_number: str) -> int:
        with self._lock:
            entry = self._entries.get(phone_number)
            if entry is None:
                return 0
            entry.attempts += 1
            return entry.attempts

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [p for p, e in self._entries.items() if e.is_expired(now)]
            for phone in expired:
                del self._entries[phone]
        if expired:
            logger.debug(f"Purged {len(expired)} expired verification codes")
        return len(expired)

    def list_all(self) -> List[PendingVerification]:
        with self._lock:
            return [replace(e) for e in self._entries.values()]
