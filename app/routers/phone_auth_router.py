from fastapi import APIRouter, Depends
import logging

from ..application.services.phone_auth_service import PhoneAuthService
from ..application.services.session_issuer import SessionCredentials
from ..dependencies import IdentityContext, get_current_identity, get_phone_auth_service
from ..schemas.auth.auth import (
    SendCodeRequest, SendCodeResponse, VerifyCodeRequest, VerifyCodeResponse,
    CompleteProfileRequest, CompleteProfileResponse, RefreshTokenRequest, RefreshTokenResponse,
    TokensResponse, TokenInfoResponse, MessageResponse,
)
from ..schemas.users.user import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/phone-auth", tags=["Phone Authentication"])


def _tokens_response(tokens: SessionCredentials) -> TokensResponse:
    return TokensResponse(
        access=TokenInfoResponse(token=tokens.access.token, expires=tokens.access.expires),
        refresh=TokenInfoResponse(token=tokens.refresh.token, expires=tokens.refresh.expires),
    )


@router.post("/send-code", response_model=SendCodeResponse, response_model_exclude_none=True)
def send_code(payload: SendCodeRequest, service: PhoneAuthService = Depends(get_phone_auth_service)):
    """
    Send a verification code to a phone number
    """
    result = service.request_code(payload.phone_number)
    return SendCodeResponse(
        message="Verification code sent successfully",
        phone_number=result.phone_number,
        expires_in=result.expires_in,
        verification_code=result.verification_code,
        in_development=result.in_development,
    )


@router.post("/verify", response_model=VerifyCodeResponse)
def verify(payload: VerifyCodeRequest, service: PhoneAuthService = Depends(get_phone_auth_service)):
    """
    Verify a code and sign in, creating the user on first sign-in
    """
    result = service.verify_code(payload.phone_number, payload.verification_code)
    return VerifyCodeResponse(
        user=UserResponse(**result.user.sanitized()),
        tokens=_tokens_response(result.tokens),
        is_new_user=result.is_new_user,
    )


@router.put("/complete-profile", response_model=CompleteProfileResponse)
def complete_profile(
    payload: CompleteProfileRequest,
    identity: IdentityContext = Depends(get_current_identity),
    service: PhoneAuthService = Depends(get_phone_auth_service),
):
    result = service.complete_profile(
        identity.user_id,
        email=payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        username=payload.username,
        gender=payload.gender,
    )
    return CompleteProfileResponse(
        user=UserResponse(**result.user.sanitized()),
        message="Profile updated successfully",
        updated_from_temp=result.updated_from_temp,
    )


@router.post("/refresh-token", response_model=RefreshTokenResponse)
def refresh_token(payload: RefreshTokenRequest, service: PhoneAuthService = Depends(get_phone_auth_service)):
    tokens = service.refresh_session(payload.refresh_token)
    return RefreshTokenResponse(tokens=_tokens_response(tokens))


@router.post("/logout", response_model=MessageResponse)
def logout(
    identity: IdentityContext = Depends(get_current_identity),
    service: PhoneAuthService = Depends(get_phone_auth_service),
):
    service.logout(identity.user_id)
    return MessageResponse(message="Logged out successfully")
