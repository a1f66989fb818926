from sqlalchemy import Column, Integer, String, DateTime
from app.db.db import Base
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import relationship
from datetime import datetime, UTC


def _utc_now_naive() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)

class UserProfile(Base):
    __tablename__ = "user_profile"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    name = Column(String, nullable=True)
    email = Column(String, nullable=True, unique=True)
    created_date = Column(DateTime, default=_utc_now_naive, nullable=False)

    # One-to-one records are created lazily by the services that own them
    credit_profile = relationship("CreditProfileRecord", back_populates="user_profile", uselist=False, cascade="all, delete-orphan")
    ai_preferences = relationship("UserAIPreferences", back_populates="user_profile", uselist=False, cascade="all, delete-orphan")
    user_owned_cards = relationship("UserOwnedCard", back_populates="user_profile", cascade="all, delete-orphan")
    user_transactions = relationship("UserTransaction", back_populates="user_profile", cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        """Public view of the account; the password hash never leaves the service layer."""
        return {
            'id': f"u_{self.id:03d}",
            'username': self.username,
            'name': self.name,
            'email': self.email,
            'created_date': self.created_date.isoformat() if self.created_date else None,
        }

# Pydantic Models for Request/Response Validation
class UserProfileBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    username: str = Field(min_length=3, max_length=64)
    name: str | None = None
    email: str | None = None

    @field_validator("username")
    @classmethod
    def username_no_spaces(cls, v):
        v = v.strip()
        if " " in v:
            raise ValueError("username must not contain spaces")
        return v

# password in a separate model for creation because if it is in the base model, it will be exposed in responses
class UserProfileCreate(UserProfileBase):
    password: str = Field(min_length=8)

class UserProfileResponse(UserProfileBase):
    id: str
    created_date: datetime
