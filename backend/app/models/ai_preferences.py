from datetime import datetime, UTC
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.db import Base
from cardpilot.ask import AnswerDepth


def _utc_now_naive() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class UserAIPreferences(Base):
    __tablename__ = "user_ai_preferences"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user_profile.id", ondelete="CASCADE"), nullable=False, unique=True)
    answer_depth = Column(String, nullable=True)
    calibration = Column(JSON, nullable=True)
    ai_credits = Column(Integer, nullable=False)
    updated_at = Column(DateTime, default=_utc_now_naive, onupdate=_utc_now_naive, nullable=False)

    user_profile = relationship("UserProfile", back_populates="ai_preferences")

    def to_dict(self) -> dict:
        return {
            "answer_depth": self.answer_depth,
            "calibration": self.calibration,
            "ai_credits": self.ai_credits,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# Pydantic Models for Request/Response Validation
class AIPreferencesUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)
    answer_depth: Optional[AnswerDepth] = None
    calibration_answers: Optional[Dict[str, Any]] = None


class AskRequestBody(BaseModel):
    question: str = Field(min_length=5, max_length=800)
    answer_depth: Optional[AnswerDepth] = None
    calibration_answers: Optional[Dict[str, Any]] = None
    context: Optional[Dict[str, Any]] = None
