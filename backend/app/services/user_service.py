from typing import Any, Dict, Optional

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.models.user_profile import UserProfile, UserProfileCreate
from app.services.errors import ServiceError


# Pure-passlib scheme
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


class UserService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_user_by_username(self, username: str) -> Optional[UserProfile]:
        return self.db.query(UserProfile).filter(UserProfile.username == username).first()

    def create_user(self, payload: UserProfileCreate) -> Dict[str, Any]:
        if self.get_user_by_username(payload.username):
            raise ServiceError(409, "CONFLICT", "Username already exists.", {"field": "username"})

        # Normalize empty strings to None for optional fields (prevents UNIQUE constraint violations)
        name = payload.name.strip() if payload.name and payload.name.strip() else None
        email = payload.email.strip().lower() if payload.email and payload.email.strip() else None
        if email and self.db.query(UserProfile).filter(UserProfile.email == email).first():
            raise ServiceError(409, "CONFLICT", "Email already registered.", {"field": "email"})

        user = UserProfile(
            username=payload.username,
            password_hash=hash_password(payload.password),
            name=name,
            email=email,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user.to_dict()

    def authenticate(self, username: str, password: str) -> Dict[str, Any]:
        user = self.get_user_by_username(username)
        if not user or not verify_password(password, user.password_hash):
            raise ServiceError(401, "UNAUTHORIZED", "Invalid username or password.", {})
        return user.to_dict()
