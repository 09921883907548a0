from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
import logging
import uuid
import jwt

from ...exceptions import AuthenticationError, InternalError

logger = logging.getLogger(__name__)


@dataclass
class TokenInfo:
    token: str
    expires: datetime


@dataclass
class SessionCredentials:
    access: TokenInfo
    refresh: TokenInfo


@dataclass
class SessionIssuer:
    """Mints and checks the access/refresh token pair (each with its own secret)."""

    access_secret: str
    refresh_secret: str
    access_lifetime: timedelta = timedelta(days=1)
    refresh_lifetime: timedelta = timedelta(days=7)
    algorithm: str = "HS256"

    def _sign(self, user_id: str, token_type: str, secret: str, lifetime: timedelta) -> TokenInfo:
        if not secret:
            raise InternalError("Token signing secret is not configured")
        issued_at = datetime.now(timezone.utc)
        payload = {
            "id": user_id,
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": issued_at,
            "exp": issued_at + lifetime,
        }
        try:
            token = jwt.encode(payload, secret, algorithm=self.algorithm)
        except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as e:
            logger.error(f"Failed to sign {token_type} token: {e}")
            raise InternalError("Failed to issue session credentials") from e
        # Reported separately from the exp claim for client-side display
        return TokenInfo(token=token, expires=datetime.now(timezone.utc) + lifetime)

    def issue(self, user_id: str) -> SessionCredentials:
        return SessionCredentials(
            access=self._sign(user_id, "access", self.access_secret, self.access_lifetime),
            refresh=self._sign(user_id, "refresh", self.refresh_secret, self.refresh_lifetime),
        )

    def _decode(self, token: str, token_type: str, secret: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("Invalid token") from e
        # Tokens minted before the type claim existed carry none
        if payload.get("type", token_type) != token_type:
            raise AuthenticationError("Invalid token")
        return payload

    def decode_access(self, token: str) -> Dict[str, Any]:
        return self._decode(token, "access", self.access_secret)

    def decode_refresh(self, token: str) -> Dict[str, Any]:
        return self._decode(token, "refresh", self.refresh_secret)
