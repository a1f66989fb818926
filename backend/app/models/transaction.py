from sqlalchemy import Column, Integer, String, DateTime, Date, Boolean, ForeignKey
from app.db.db import Base
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import relationship
from datetime import datetime, date, UTC
from typing import List, Optional

from cardpilot.models import CardUsed, Transaction, TransactionCategory


def _utc_now_naive() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)

class UserTransaction(Base):
    __tablename__ = "user_transactions"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user_profile.id", ondelete="CASCADE"), nullable=False, index=True)
    card_id = Column(String, ForeignKey("cards.id", ondelete="SET NULL"), nullable=True)
    merchant = Column(String, nullable=False)
    category = Column(String, nullable=False, default=TransactionCategory.OTHER.value)
    amount_cents = Column(Integer, nullable=False)
    is_bnpl = Column(Boolean, nullable=True)
    transaction_date = Column(Date, default=date.today, nullable=False)
    created_date = Column(DateTime, default=_utc_now_naive, nullable=False)

    user_profile = relationship("UserProfile", back_populates="user_transactions")
    card = relationship("Card")

    def to_core(self) -> Transaction:
        card = self.card
        return Transaction(
            id=str(self.id),
            date=self.transaction_date,
            merchant=self.merchant,
            category=TransactionCategory(self.category),
            amount_cents=self.amount_cents,
            card_used=CardUsed(
                card_id=self.card_id or "unknown",
                issuer=card.issuer if card else "Unknown",
                card_name=card.name if card else "Unknown card",
            ),
            is_bnpl=self.is_bnpl,
        )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "date": self.transaction_date.isoformat(),
            "merchant": self.merchant,
            "category": self.category,
            "amount_cents": self.amount_cents,
            "card_id": self.card_id,
            "is_bnpl": self.is_bnpl,
            "user_id": f"u_{self.user_id:03d}",
        }


# Create Pydantic models for Transaction
class TransactionCreate(BaseModel):
    """Transaction creation request (from API contract)"""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, use_enum_values=True)
    card_id: Optional[str] = None
    merchant: str
    amount_cents: int = Field(gt=0)
    category: TransactionCategory = TransactionCategory.OTHER
    is_bnpl: Optional[bool] = None
    transaction_date: date | None = Field(default=None, alias="date")  # YYYY-MM-DD, defaults to today if omitted

    @field_validator("merchant")
    @classmethod
    def merchant_required(cls, v):
        if not v or len(v.strip()) == 0:
            raise ValueError("merchant is required")
        return v.strip()

class TransactionRequest(BaseModel):
    """Wrapper for API contract - POST body"""
    transactions: List[TransactionCreate] = Field(min_length=1)
