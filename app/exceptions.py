import logging
import traceback
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .core.config import settings

logger = logging.getLogger(__name__)


class AuthFlowError(Exception):
    """Base class for failures raised by the phone authentication flow."""

    status_code: int = 400

    def __init__(self, message: str, details: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AuthFlowError):
    status_code = 400


class NotFoundError(AuthFlowError):
    # 400 for a missing pending code, 404 for a missing user
    status_code = 400


class ExpiredError(AuthFlowError):
    status_code = 400


class MismatchError(AuthFlowError):
    status_code = 400

    def __init__(self, message: str, remaining_attempts: Optional[int] = None):
        super().__init__(message)
        self.remaining_attempts = remaining_attempts


class ConflictError(AuthFlowError):
    status_code = 400


class DeliveryError(AuthFlowError):
    status_code = 500


class RateLimitError(AuthFlowError):
    status_code = 429


class AuthenticationError(AuthFlowError):
    status_code = 401


class InternalError(AuthFlowError):
    status_code = 500


def create_error_response(message: str, details: Optional[str] = None, **extra) -> dict:
    """Create a standardized error body"""
    body = {"message": message}
    if details:
        body["details"] = details
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


async def auth_flow_exception_handler(request: Request, exc: AuthFlowError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    extra = {}
    if isinstance(exc, MismatchError):
        extra["remainingAttempts"] = exc.remaining_attempts
    if settings.DEBUG and exc.__cause__ is not None:
        cause = exc.__cause__
        extra["error"] = str(cause)
        extra["stack"] = "".join(traceback.format_exception(type(cause), cause, cause.__traceback__))
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message, exc.details, **extra),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies with the same shape as domain errors"""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:]) or "body"
    return JSONResponse(
        status_code=400,
        content=create_error_response("Invalid request", f"{field}: {first.get('msg', 'invalid value')}"),
    )
