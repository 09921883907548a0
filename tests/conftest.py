import os

# Settings are read at import time, so the environment has to be ready first
os.environ.setdefault("JWT_SECRET", "test-access-secret-0123456789abcdefghij")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-0123456789abcdefghij")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("VERIFICATION_STORE_BACKEND", "memory")

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
import uuid

import pytest

from app.application.ports.user_repo import UserRepository, UserDto, NewUser
from app.application.ports.sms_gateway import SmsGateway, SmsDeliveryFailure
from app.application.services.notification_dispatcher import NotificationDispatcher
from app.application.services.phone_auth_service import PhoneAuthService
from app.application.services.session_issuer import SessionIssuer
from app.infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from app.infrastructure.verification.memory_store import InMemoryVerificationStore

ACCESS_SECRET = "unit-access-secret-0123456789abcdefghij"
REFRESH_SECRET = "unit-refresh-secret-0123456789abcdefghij"


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 3, 25, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeUserRepo(UserRepository):
    def __init__(self):
        self.users: Dict[str, UserDto] = {}

    def add(self, phone_number: Optional[str], username: str, email: str, **fields) -> UserDto:
        now = datetime.now(timezone.utc)
        user = UserDto(
            id=fields.get("id", str(uuid.uuid4())),
            username=username,
            first_name=fields.get("first_name", "Amina"),
            last_name=fields.get("last_name", "Benali"),
            email=email,
            role="USER",
            phone_number=phone_number,
            gender=fields.get("gender"),
            is_online=False,
            last_login=None,
            refresh_token=None,
            profile_picture=None,
            created_at=now,
            updated_at=now,
        )
        self.users[user.id] = user
        return user

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        return self.users.get(user_id)

    def get_by_phone(self, phone_number: str) -> Optional[UserDto]:
        return next((u for u in self.users.values() if u.phone_number == phone_number), None)

    def get_by_email(self, email: str) -> Optional[UserDto]:
        return next((u for u in self.users.values() if u.email == email), None)

    def get_by_username(self, username: str) -> Optional[UserDto]:
        return next((u for u in self.users.values() if u.username == username), None)

    def username_exists(self, username: str) -> bool:
        return self.get_by_username(username) is not None

    def create(self, new_user: NewUser) -> UserDto:
        user = self.add(
            new_user.phone_number,
            new_user.username,
            new_user.email,
            first_name=new_user.first_name,
            last_name=new_user.last_name,
        )
        user.password = new_user.password_hash
        return user

    def record_login(self, user_id: str, refresh_token: str) -> None:
        user = self.users[user_id]
        user.is_online = True
        user.last_login = datetime.now(timezone.utc)
        user.refresh_token = refresh_token

    def set_refresh_token(self, user_id: str, refresh_token: Optional[str]) -> None:
        self.users[user_id].refresh_token = refresh_token

    def mark_offline(self, user_id: str) -> None:
        self.users[user_id].is_online = False
        self.users[user_id].refresh_token = None

    def update_profile(self, user_id, email, first_name, last_name, username, gender):
        user = self.users.get(user_id)
        if not user:
            return None
        user.email = email
        user.first_name = first_name
        user.last_name = last_name
        user.username = username
        user.gender = gender
        return user


class FakeGateway(SmsGateway):
    def __init__(self, configured: bool = True, error: Optional[SmsDeliveryFailure] = None):
        self.configured = configured
        self.error = error
        self.sent: List[tuple] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    def send(self, to: str, body: str) -> str:
        if self.error is not None:
            raise self.error
        self.sent.append((to, body))
        return f"SM{len(self.sent):032d}"

    def last_code(self) -> str:
        return self.sent[-1][1].split(": ")[1].split(".")[0]


class FakeAudit:
    def __init__(self):
        self.entries = []

    def log(self, action, phone_number, user_id=None, success=True, details=None):
        self.entries.append((action, phone_number, user_id, success, details or {}))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def users():
    return FakeUserRepo()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def store(clock):
    return InMemoryVerificationStore(clock=clock)


@pytest.fixture
def issuer():
    return SessionIssuer(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)


@pytest.fixture
def audit():
    return FakeAudit()


@pytest.fixture
def make_service(users, store, gateway, issuer, audit, clock):
    def factory(**overrides) -> PhoneAuthService:
        options = dict(
            user_repo=users,
            store=store,
            dispatcher=NotificationDispatcher(gateway=gateway),
            issuer=issuer,
            rate_limiter=InMemoryRateLimiter(),
            audit=audit,
            password_hasher=lambda raw: f"hashed:{raw}",
            clock=clock,
        )
        options.update(overrides)
        return PhoneAuthService(**options)
    return factory


@pytest.fixture
def service(make_service):
    return make_service()
