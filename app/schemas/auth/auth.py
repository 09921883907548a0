# app/schemas/auth/auth.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime

from ..users.user import UserResponse

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# Fields are optional so missing values reach the service and get its messages
class SendCodeRequest(CamelModel):
    phone_number: Optional[str] = Field(None, description="Phone number with country code, e.g. +15551234567")

class SendCodeResponse(CamelModel):
    message: str
    phone_number: str
    expires_in: int
    verification_code: Optional[str] = Field(None, description="Only present when EXPOSE_VERIFICATION_CODE is enabled")
    in_development: bool = Field(False, description="True when EXPOSE_VERIFICATION_CODE is enabled; clients may autofill the code")

class VerifyCodeRequest(CamelModel):
    phone_number: Optional[str] = None
    verification_code: Optional[str] = None

class TokenInfoResponse(CamelModel):
    token: str
    expires: datetime

class TokensResponse(CamelModel):
    access: TokenInfoResponse
    refresh: TokenInfoResponse

class VerifyCodeResponse(CamelModel):
    user: UserResponse
    tokens: TokensResponse
    is_new_user: bool

class CompleteProfileRequest(CamelModel):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    gender: Optional[str] = None

class CompleteProfileResponse(CamelModel):
    user: UserResponse
    message: str
    updated_from_temp: bool

class RefreshTokenRequest(CamelModel):
    refresh_token: Optional[str] = None

class RefreshTokenResponse(CamelModel):
    tokens: TokensResponse

class MessageResponse(CamelModel):
    message: str
