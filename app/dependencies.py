# app/dependencies.py
import logging
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from .core.config import settings
from .database import get_session
from .exceptions import AuthenticationError, NotFoundError
from .application.ports.rate_limiter import RateLimiter
from .application.ports.verification_store import VerificationStore
from .application.services.notification_dispatcher import NotificationDispatcher
from .application.services.phone_auth_service import PhoneAuthService
from .application.services.session_issuer import SessionIssuer
from .infrastructure.audit.std_logger import StdAuditLogger
from .infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from .infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from .infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter
from .infrastructure.sms.twilio_gateway import TwilioSmsGateway
from .infrastructure.verification.memory_store import InMemoryVerificationStore
from .infrastructure.verification.redis_store import RedisVerificationStore

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class IdentityContext:
    """The authenticated caller, whatever claim shape its token used."""
    user_id: str
    claims: Dict[str, Any]


# Process-wide collaborators, created on first use
@lru_cache()
def get_verification_store() -> VerificationStore:
    if settings.VERIFICATION_STORE_BACKEND == "redis":
        logger.info("Using Redis verification store")
        return RedisVerificationStore.from_url(settings.REDIS_URL)
    logger.info("Using in-memory verification store (single instance only)")
    return InMemoryVerificationStore()


@lru_cache()
def get_rate_limiter() -> RateLimiter:
    if settings.REDIS_URL:
        return RedisRateLimiter.from_url(settings.REDIS_URL)
    return InMemoryRateLimiter()


@lru_cache()
def get_session_issuer() -> SessionIssuer:
    return SessionIssuer(
        access_secret=settings.JWT_SECRET,
        refresh_secret=settings.JWT_REFRESH_SECRET,
        access_lifetime=timedelta(minutes=settings.JWT_ACCESS_EXPIRES_MINUTES),
        refresh_lifetime=timedelta(days=settings.JWT_REFRESH_EXPIRES_DAYS),
        algorithm=settings.JWT_ALGORITHM,
    )


@lru_cache()
def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(
        gateway=TwilioSmsGateway(),
        code_ttl_seconds=settings.VERIFICATION_CODE_TTL_SECONDS,
        failure_is_success=settings.SMS_FAILURE_IS_SUCCESS,
    )


def get_phone_auth_service(session: Session = Depends(get_session)) -> PhoneAuthService:
    return PhoneAuthService(
        user_repo=SqlUserRepository(session),
        store=get_verification_store(),
        dispatcher=get_notification_dispatcher(),
        issuer=get_session_issuer(),
        rate_limiter=get_rate_limiter(),
        audit=StdAuditLogger(),
        code_ttl_seconds=settings.VERIFICATION_CODE_TTL_SECONDS,
        max_attempts=settings.MAX_VERIFICATION_ATTEMPTS,
        send_code_max_requests=settings.SEND_CODE_MAX_REQUESTS,
        send_code_window_seconds=settings.SEND_CODE_WINDOW_SECONDS,
        expose_code=settings.EXPOSE_VERIFICATION_CODE,
    )


def _claimed_user_id(claims: Dict[str, Any]) -> Optional[str]:
    for key in ("id", "userId", "sub"):
        value = claims.get(key)
        if value is not None and str(value):
            return str(value)
    return None


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    issuer: SessionIssuer = Depends(get_session_issuer),
    session: Session = Depends(get_session),
) -> IdentityContext:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No authorization header provided")
    claims = issuer.decode_access(credentials.credentials)
    user_id = _claimed_user_id(claims)
    if not user_id:
        logger.warning("Access token carries no user id claim")
        raise AuthenticationError("Invalid token")
    if SqlUserRepository(session).get_by_id(user_id) is None:
        raise NotFoundError("User not found", status_code=404)
    return IdentityContext(user_id=user_id, claims=claims)
