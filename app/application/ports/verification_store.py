from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, Optional, List


@dataclass
class PendingVerification:
    phone_number: str
    code: str
    expires_at: datetime
    attempts: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class VerificationStore(Protocol):
    def put(self, phone_number: str, code: str, ttl_seconds: int) -> PendingVerification:
        ...

    def get(self, phone_number: str) -> Optional[PendingVerification]:
        ...

    def delete(self, phone_number: str) -> None:
        ...

    def record_failed_attempt(self, phone_number: str) -> int:
        ...

    def purge_expired(self) -> int:
        ...

    def list_all(self) -> List[PendingVerification]:
        ...
