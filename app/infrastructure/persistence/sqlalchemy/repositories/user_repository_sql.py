from datetime import datetime, timezone
from typing import Optional
from sqlmodel import Session, select

from .....db.models import User
from .....application.ports.user_repo import UserRepository, UserDto, NewUser

class SqlUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, user: User) -> UserDto:
        return UserDto(
            id=user.id,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            role=user.role,
            phone_number=user.phone_number,
            gender=user.gender,
            is_online=bool(user.is_online),
            last_login=user.last_login,
            refresh_token=user.refresh_token,
            profile_picture=user.profile_picture,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def _get(self, user_id: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.id == user_id)).first()

    def _save(self, user: User) -> User:
        user.updated_at = datetime.now(timezone.utc)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        user = self._get(user_id)
        return self._to_dto(user) if user else None

    def get_by_phone(self, phone_number: str) -> Optional[UserDto]:
        user = self.session.exec(select(User).where(User.phone_number == phone_number)).first()
        return self._to_dto(user) if user else None

    def get_by_email(self, email: str) -> Optional[UserDto]:
        user = self.session.exec(select(User).where(User.email == email)).first()
        return self._to_dto(user) if user else None

    def get_by_username(self, username: str) -> Optional[UserDto]:
        user = self.session.exec(select(User).where(User.username == username)).first()
        return self._to_dto(user) if user else None

    def username_exists(self, username: str) -> bool:
        return self.session.exec(select(User.id).where(User.username == username)).first() is not None

    def create(self, new_user: NewUser) -> UserDto:
        user = User(
            username=new_user.username,
            first_name=new_user.first_name,
            last_name=new_user.last_name,
            role=new_user.role,
            email=new_user.email,
            phone_number=new_user.phone_number,
            password=new_user.password_hash,
            is_online=True,
            last_login=datetime.now(timezone.utc),
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return self._to_dto(user)

    def record_login(self, user_id: str, refresh_token: str) -> None:
        user = self._get(user_id)
        if not user:
            return
        user.last_login = datetime.now(timezone.utc)
        user.is_online = True
        user.refresh_token = refresh_token
        self._save(user)

    def set_refresh_token(self, user_id: str, refresh_token: Optional[str]) -> None:
        user = self._get(user_id)
        if not user:
            return
        user.refresh_token = refresh_token
        self._save(user)

    def mark_offline(self, user_id: str) -> None:
        user = self._get(user_id)
        if not user:
            return
        user.is_online = False
        user.refresh_token = None
        self._save(user)

    def update_profile(self, user_id: str, email: str, first_name: str, last_name: str,
                       username: str, gender: Optional[str]) -> Optional[UserDto]:
        user = self._get(user_id)
        if not user:
            return None
        user.email = email
        user.first_name = first_name
        user.last_name = last_name
        user.username = username
        if gender is not None:
            user.gender = gender
        return self._to_dto(self._save(user))
