# app/db/models/users/user.py
from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
import uuid

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class User(SQLModel, table=True):
    __tablename__ = "users"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    username: str = Field(max_length=50, unique=True, index=True)
    first_name: str = Field(max_length=150)
    last_name: str = Field(max_length=150)
    role: str = Field(max_length=10, default="USER")
    gender: Optional[str] = Field(max_length=10, default=None)
    email: str = Field(max_length=255, unique=True, index=True)
    phone_number: Optional[str] = Field(max_length=20, default=None, unique=True, index=True)
    password: str = Field(max_length=255)
    is_online: bool = Field(default=True)
    last_login: Optional[datetime] = Field(default=None)
    refresh_token: Optional[str] = Field(max_length=500, default=None)
    profile_picture: Optional[str] = Field(max_length=255, default=None)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
