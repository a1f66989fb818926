from datetime import datetime, UTC
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import Boolean, Column, DateTime, String, Text

from app.db.db import Base
from cardpilot.categories import Confidence, MerchantCategory


def _utc_now_naive() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class MerchantOverrideRecord(Base):
    __tablename__ = "merchant_overrides"
    domain = Column(String, primary_key=True)  # lower-cased
    display_name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    rationale = Column(Text, nullable=True)
    approved_by = Column(String, nullable=False, default="admin")
    approved_at = Column(DateTime, nullable=False, default=_utc_now_naive)
    verified = Column(Boolean, nullable=False, default=True)


class MerchantSuggestionRecord(Base):
    """Review-queue row. No unique index on (domain, status): de-duplication is best-effort."""
    __tablename__ = "merchant_suggestions"
    id = Column(String, primary_key=True)  # uuid4
    url = Column(Text, nullable=False)
    domain = Column(String, nullable=False, index=True)
    suggested_category = Column(String, nullable=False)
    confidence = Column(String, nullable=False)
    rationale = Column(Text, nullable=False)
    source = Column(String, nullable=False, default="ai")
    merchant_name = Column(String, nullable=True)
    status = Column(String, nullable=False, default="pending", index=True)
    created_at = Column(DateTime, nullable=False, default=_utc_now_naive)
    reviewed_at = Column(DateTime, nullable=True)
    reviewer_notes = Column(Text, nullable=True)


# Pydantic Models for Request/Response Validation
class MerchantResolveRequest(BaseModel):
    url: str = Field(min_length=1)
    title: Optional[str] = None
    skip_ai: bool = False


class MerchantClassifyRequest(BaseModel):
    url: str = Field(min_length=1)
    domain: str = Field(min_length=1)
    title: Optional[str] = None


class MerchantClassifyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    category: MerchantCategory
    confidence: Confidence
    rationale: str
    merchant_name: Optional[str] = Field(default=None, alias="merchantName")


class MerchantOverrideUpsert(BaseModel):
    display_name: str = Field(min_length=1)
    category: MerchantCategory
    rationale: Optional[str] = None

    @field_validator("display_name")
    @classmethod
    def display_name_required(cls, v):
        if not v.strip():
            raise ValueError("display_name is required")
        return v.strip()


class ReviewDecision(BaseModel):
    notes: Optional[str] = None
    # Approve only: replaces the suggested category / name on the created override
    category: Optional[MerchantCategory] = None
    display_name: Optional[str] = None
