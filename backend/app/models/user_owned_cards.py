from typing import List
from sqlalchemy import Column, Date, Integer, String, Enum as SAEnum, ForeignKey, UniqueConstraint
from app.db.db import Base
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy.orm import relationship
from datetime import date
from enum import Enum as PyEnum

class UserOwnedCardStatus(PyEnum):
    active = "Active"
    closed = "Closed"

class UserOwnedCard(Base):
    __tablename__ = "user_owned_cards"
    __table_args__ = (UniqueConstraint("user_id", "card_id", name="uq_user_owned_cards_user_card"),)
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user_profile.id", ondelete="CASCADE"), nullable=False)
    card_id = Column(String, ForeignKey("cards.id", ondelete="CASCADE"), nullable=False)
    status = Column(SAEnum(UserOwnedCardStatus), nullable=False, default=UserOwnedCardStatus.active)
    added_date = Column(Date, default=date.today, nullable=False)

    user_profile = relationship("UserProfile", back_populates="user_owned_cards")
    card = relationship("Card", back_populates="user_owned_cards")

# Pydantic Models for Request/Response Validation
class WalletUpdate(BaseModel):
    """PUT /wallet body: the full card selection, replacing what is stored."""
    model_config = ConfigDict(from_attributes=True)
    card_ids: List[str]

    @field_validator("card_ids")
    @classmethod
    def dedupe_card_ids(cls, v):
        seen = []
        for card_id in v:
            card_id = card_id.strip()
            if not card_id:
                raise ValueError("card_ids must not contain empty values")
            if card_id not in seen:
                seen.append(card_id)
        return seen
