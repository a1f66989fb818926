from datetime import datetime, UTC
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.db import Base
from cardpilot.profile import (
    AGE_BUCKETS,
    INCOME_BUCKETS,
    BnplUsage,
    CreditHistory,
    CreditIntent,
    CreditProfile,
    ExperienceLevel,
)


def _utc_now_naive() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class CreditProfileRecord(Base):
    __tablename__ = "credit_profiles"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user_profile.id", ondelete="CASCADE"), nullable=False, unique=True)
    experience_level = Column(String, nullable=False, default=ExperienceLevel.BEGINNER.value)
    intent = Column(String, nullable=False, default=CreditIntent.BOTH.value)
    carry_balance = Column(Boolean, nullable=False, default=False)
    bnpl_usage = Column(String, nullable=True)
    age_bucket = Column(String, nullable=True)
    income_bucket = Column(String, nullable=True)
    credit_history = Column(String, nullable=True)
    has_derogatories = Column(Boolean, nullable=False, default=False)
    confidence_level = Column(String, nullable=True)
    onboarding_completed = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, default=_utc_now_naive, onupdate=_utc_now_naive, nullable=False)

    user_profile = relationship("UserProfile", back_populates="credit_profile")

    def to_core(self) -> CreditProfile:
        return CreditProfile(
            user_id=f"u_{self.user_id:03d}",
            experience_level=self.experience_level,
            intent=self.intent,
            carry_balance=bool(self.carry_balance),
            bnpl_usage=self.bnpl_usage,
            age_bucket=self.age_bucket,
            income_bucket=self.income_bucket,
            credit_history=self.credit_history,
            has_derogatories=bool(self.has_derogatories),
            confidence_level=self.confidence_level,
            onboarding_completed=bool(self.onboarding_completed),
        )

    def to_dict(self) -> dict:
        return {
            "user_id": f"u_{self.user_id:03d}",
            "experience_level": self.experience_level,
            "intent": self.intent,
            "carry_balance": bool(self.carry_balance),
            "bnpl_usage": self.bnpl_usage,
            "age_bucket": self.age_bucket,
            "income_bucket": self.income_bucket,
            "credit_history": self.credit_history,
            "has_derogatories": bool(self.has_derogatories),
            "confidence_level": self.confidence_level,
            "onboarding_completed": bool(self.onboarding_completed),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# Pydantic Models for Request/Response Validation
class CreditProfileUpdate(BaseModel):
    """PUT /credit-profile body. Omitted fields keep their stored value."""
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)
    experience_level: Optional[ExperienceLevel] = None
    intent: Optional[CreditIntent] = None
    carry_balance: Optional[bool] = None
    bnpl_usage: Optional[BnplUsage] = None
    age_bucket: Optional[str] = None
    income_bucket: Optional[str] = None
    credit_history: Optional[CreditHistory] = None
    has_derogatories: Optional[bool] = None
    confidence_level: Optional[str] = None
    onboarding_completed: Optional[bool] = None

    @field_validator("age_bucket")
    @classmethod
    def known_age_bucket(cls, v):
        if v is not None and v not in AGE_BUCKETS:
            raise ValueError(f"age_bucket must be one of {', '.join(AGE_BUCKETS)}")
        return v

    @field_validator("income_bucket")
    @classmethod
    def known_income_bucket(cls, v):
        if v is not None and v not in INCOME_BUCKETS:
            raise ValueError(f"income_bucket must be one of {', '.join(INCOME_BUCKETS)}")
        return v


class PathwayCard(BaseModel):
    issuer: str = Field(min_length=1)
    product_family: str = Field(min_length=1)
    network: str = ""
    annual_fee: bool = False
    opened_year: Optional[int] = None


class PathwayConstraints(BaseModel):
    chase_5_24_estimate: Optional[int] = Field(default=None, ge=0)
    willing_to_pay_af: bool = False
    travel_frequency: Optional[str] = None


class PathwayRequest(BaseModel):
    """Optional extra facts for POST /pathway; the stored credit profile supplies the rest."""
    current_cards: List[PathwayCard] = []
    known_constraints: PathwayConstraints = PathwayConstraints()
