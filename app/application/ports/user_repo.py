from typing import Protocol, Optional
from datetime import datetime

class UserDto:
    def __init__(self, id: str, username: str, first_name: str, last_name: str, email: str,
                 role: str, phone_number: Optional[str], gender: Optional[str], is_online: bool,
                 last_login: Optional[datetime], refresh_token: Optional[str],
                 profile_picture: Optional[str], created_at: datetime, updated_at: datetime):
        self.id = id
        self.username = username
        self.first_name = first_name
        self.last_name = last_name
        self.email = email
        self.role = role
        self.phone_number = phone_number
        self.gender = gender
        self.is_online = is_online
        self.last_login = last_login
        self.refresh_token = refresh_token
        self.profile_picture = profile_picture
        self.created_at = created_at
        self.updated_at = updated_at

    def sanitized(self) -> dict:
        """Public view of the user, without password or refresh token."""
        return {
            "id": self.id,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "role": self.role,
            "phone_number": self.phone_number,
            "gender": self.gender,
            "is_online": self.is_online,
            "last_login": self.last_login,
            "profile_picture": self.profile_picture,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

class NewUser:
    def __init__(self, username: str, first_name: str, last_name: str, email: str,
                 phone_number: str, password_hash: str, role: str = "USER"):
        self.username = username
        self.first_name = first_name
        self.last_name = last_name
        self.email = email
        self.phone_number = phone_number
        self.password_hash = password_hash
        self.role = role

class UserRepository(Protocol):
    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        ...

    def get_by_phone(self, phone_number: str) -> Optional[UserDto]:
        ...

    def get_by_email(self, email: str) -> Optional[UserDto]:
        ...

    def get_by_username(self, username: str) -> Optional[UserDto]:
        ...

    def username_exists(self, username: str) -> bool:
        ...

    def create(self, new_user: NewUser) -> UserDto:
        ...

    def record_login(self, user_id: str, refresh_token: str) -> None:
        ...

    def set_refresh_token(self, user_id: str, refresh_token: Optional[str]) -> None:
        ...

    def mark_offline(self, user_id: str) -> None:
        ...

    def update_profile(self, user_id: str, email: str, first_name: str, last_name: str,
                       username: str, gender: Optional[str]) -> Optional[UserDto]:
        ...
