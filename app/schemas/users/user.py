# app/schemas/users/user.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime

class UserResponse(BaseModel):
    """Public user payload; password and refresh token are never included."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    username: str
    first_name: str
    last_name: str
    email: str
    role: str
    phone_number: Optional[str] = None
    gender: Optional[str] = None
    is_online: bool
    last_login: Optional[datetime] = None
    profile_picture: Optional[str] = None
    created_at: datetime
    updated_at: datetime
