import logging
import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from ..ports.user_repo import UserRepository, UserDto, NewUser
from ..ports.verification_store import VerificationStore
from ..ports.rate_limiter import RateLimiter
from ..ports.audit_logger import AuditLogger
from .notification_dispatcher import NotificationDispatcher
from .session_issuer import SessionIssuer, SessionCredentials
from ...exceptions import (
    AuthFlowError,
    ValidationError,
    NotFoundError,
    ExpiredError,
    MismatchError,
    ConflictError,
    DeliveryError,
    RateLimitError,
    AuthenticationError,
    InternalError,
)
from ...utils import (
    TEMP_EMAIL_DOMAIN,
    format_e164,
    generate_verification_code,
    generate_placeholder_password,
    hash_password,
    is_temp_email,
    phone_digits,
)

logger = logging.getLogger(__name__)

E164_PATTERN = re.compile(r"^\+\d{6,15}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CodeRequestResult:
    phone_number: str
    expires_in: int
    verification_code: Optional[str] = None
    in_development: bool = False


@dataclass
class VerificationResult:
    user: UserDto
    tokens: SessionCredentials
    is_new_user: bool


@dataclass
class ProfileCompletionResult:
    user: UserDto
    updated_from_temp: bool


class _NullAuditLogger:
    def log(self, action, phone_number, user_id=None, success=True, details=None) -> None:
        pass


@dataclass
class PhoneAuthService:
    """Phone number sign-in: request a code, verify it, get a session.

    A phone number has at most one pending code. Requesting again replaces it,
    a correct code is consumed on first use, and a stale one is dropped when
    it is looked up.
    """

    user_repo: UserRepository
    store: VerificationStore
    dispatcher: NotificationDispatcher
    issuer: SessionIssuer
    rate_limiter: Optional[RateLimiter] = None
    audit: AuditLogger = field(default_factory=_NullAuditLogger)
    code_ttl_seconds: int = 300
    max_attempts: int = 5
    send_code_max_requests: int = 5
    send_code_window_seconds: int = 3600
    expose_code: bool = False
    code_generator: Callable[[], str] = generate_verification_code
    password_hasher: Callable[[str], str] = hash_password
    clock: Callable[[], datetime] = utcnow

    # ------------------------------------------------------------------
    # Request
    # ------------------------------------------------------------------
    def _canonical_phone(self, phone_number: Optional[str]) -> str:
        phone = format_e164(phone_number)
        if not E164_PATTERN.match(phone):
            raise ValidationError("Invalid phone number format", details="Use international format, e.g. +15551234567")
        return phone

    def request_code(self, phone_number: Optional[str]) -> CodeRequestResult:
        if not phone_number or not phone_number.strip():
            raise ValidationError("Phone number is required")
        phone = self._canonical_phone(phone_number)

        if self.rate_limiter is not None and not self.rate_limiter.allow(
            f"send-code:{phone}", self.send_code_max_requests, self.send_code_window_seconds
        ):
            logger.warning(f"Send-code rate limit exceeded for {phone}")
            self.audit.log("send_code", phone, success=False, details={"reason": "rate_limited"})
            raise RateLimitError("Too many verification code requests. Please try again later.")

        code = self.code_generator()
        self.store.put(phone, code, self.code_ttl_seconds)

        logger.info(f"Attempting to send verification code to {phone}")
        if not self.dispatcher.deliver(phone, code):
            # The stored code stays pending; it is still valid if obtained out-of-band
            logger.error(f"Failed to send SMS to {phone}")
            self.audit.log("send_code", phone, success=False, details={"reason": "delivery_failed"})
            raise DeliveryError("Failed to send verification code", details="SMS service unavailable")

        self.audit.log("send_code", phone)
        return CodeRequestResult(
            phone_number=phone,
            expires_in=self.code_ttl_seconds,
            verification_code=code if self.expose_code else None,
            in_development=self.expose_code,
        )

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------
    def verify_code(self, phone_number: Optional[str], submitted_code: Optional[str]) -> VerificationResult:
        if not phone_number or not phone_number.strip() or not submitted_code or not str(submitted_code).strip():
            raise ValidationError("Phone number and verification code are required")
        phone = self._canonical_phone(phone_number)
        submitted_code = str(submitted_code).strip()

        pending = self.store.get(phone)
        if pending is None:
            self.audit.log("verify_code", phone, success=False, details={"reason": "no_pending_code"})
            raise NotFoundError("No verification code found for this phone number")

        if pending.is_expired(self.clock()):
            self.store.delete(phone)
            self.audit.log("verify_code", phone, success=False, details={"reason": "expired"})
            raise ExpiredError("Verification code has expired")

        if not secrets.compare_digest(pending.code.encode(), submitted_code.encode()):
            attempts = self.store.record_failed_attempt(phone)
            remaining = None
            if self.max_attempts > 0:
                remaining = max(0, self.max_attempts - attempts)
                if remaining == 0:
                    logger.warning(f"Too many invalid attempts for {phone}, discarding pending code")
                    self.store.delete(phone)
            self.audit.log("verify_code", phone, success=False, details={"reason": "mismatch", "attempts": attempts})
            raise MismatchError("Invalid verification code", remaining_attempts=remaining)

        self.store.delete(phone)
        logger.info(f"Verification successful for {phone}")

        try:
            user = self.user_repo.get_by_phone(phone)
            if user is None:
                user = self._provision_user(phone)
            tokens = self.issuer.issue(user.id)
            self.user_repo.record_login(user.id, tokens.refresh.token)
            user = self.user_repo.get_by_id(user.id) or user
        except AuthFlowError:
            raise
        except Exception as e:
            logger.error(f"Error completing verification for {phone}: {e}", exc_info=True)
            raise InternalError("Error during verification") from e

        if self.rate_limiter is not None:
            self.rate_limiter.reset(f"send-code:{phone}")

        is_new_user = is_temp_email(user.email)
        self.audit.log("verify_code", phone, user_id=user.id, details={"new_user": is_new_user})
        return VerificationResult(user=user, tokens=tokens, is_new_user=is_new_user)

    def _unique_username(self, base: str) -> str:
        username = base
        counter = 1
        while self.user_repo.username_exists(username):
            username = f"{base}{counter}"
            counter += 1
        return username

    def _provision_user(self, phone: str) -> UserDto:
        logger.info(f"No existing user found for {phone}, creating new user")
        username = self._unique_username(f"user{phone_digits(phone)[-8:]}")
        user = self.user_repo.create(NewUser(
            username=username,
            first_name="User",
            last_name=phone[-4:],
            email=f"{username}@{TEMP_EMAIL_DOMAIN}",
            phone_number=phone,
            password_hash=self.password_hasher(generate_placeholder_password()),
        ))
        logger.info(f"New user created with ID: {user.id} and username: {username}")
        return user

    # ------------------------------------------------------------------
    # Profile completion
    # ------------------------------------------------------------------
    def complete_profile(self, user_id: str, email: Optional[str], first_name: Optional[str],
                         last_name: Optional[str], username: Optional[str],
                         gender: Optional[str] = None) -> ProfileCompletionResult:
        if not all(v and v.strip() for v in (email, first_name, last_name, username)):
            raise ValidationError(
                "All fields are required",
                details="Email, first name, last name, and username must be provided",
            )
        email, first_name, last_name, username = (v.strip() for v in (email, first_name, last_name, username))

        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", status_code=404)

        owner = self.user_repo.get_by_email(email)
        if owner is not None and owner.id != user_id:
            raise ConflictError("Email already in use")

        if username != user.username:
            owner = self.user_repo.get_by_username(username)
            if owner is not None and owner.id != user_id:
                raise ConflictError("Username already taken")

        updated_from_temp = is_temp_email(user.email)
        updated = self.user_repo.update_profile(
            user_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            username=username,
            gender=gender or user.gender,
        )
        if updated is None:
            raise NotFoundError("User not found", status_code=404)
        logger.info(f"Profile updated for user ID: {user_id} (from temp email: {updated_from_temp})")
        return ProfileCompletionResult(user=updated, updated_from_temp=updated_from_temp)

    # ------------------------------------------------------------------
    # Session rotation
    # ------------------------------------------------------------------
    def refresh_session(self, refresh_token: Optional[str]) -> SessionCredentials:
        if not refresh_token:
            raise ValidationError("Refresh token is required")
        payload = self.issuer.decode_refresh(refresh_token)
        user = self.user_repo.get_by_id(str(payload.get("id")))
        if user is None or user.refresh_token != refresh_token:
            raise AuthenticationError("Invalid refresh token")
        tokens = self.issuer.issue(user.id)
        self.user_repo.set_refresh_token(user.id, tokens.refresh.token)
        return tokens

    def logout(self, user_id: str) -> None:
        if self.user_repo.get_by_id(user_id) is None:
            raise NotFoundError("User not found", status_code=404)
        self.user_repo.mark_offline(user_id)
        logger.info(f"User {user_id} logged out")
