from datetime import datetime, UTC
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.db.db import Base
from cardpilot.cards import DbCard, MerchantExclusion, RewardRule


def _utc_now_naive() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class Card(Base):
    __tablename__ = "cards"
    id = Column(String, primary_key=True, index=True)  # slug, e.g. "amex-gold"
    issuer = Column(String, nullable=False)
    name = Column(String, nullable=False)
    network = Column(String, nullable=False)
    annual_fee_cents = Column(Integer, nullable=False, default=0)
    foreign_tx_fee_percent = Column(Float, nullable=True)
    verified = Column(Boolean, nullable=False, default=False)
    last_verified_at = Column(DateTime, nullable=True)
    created_date = Column(DateTime, default=_utc_now_naive, nullable=False)

    reward_rules = relationship(
        "CardRewardRule",
        back_populates="card",
        cascade="all, delete-orphan",
        order_by="CardRewardRule.id",
    )
    merchant_exclusions = relationship(
        "CardMerchantExclusion",
        back_populates="card",
        cascade="all, delete-orphan",
        order_by="CardMerchantExclusion.id",
    )
    user_owned_cards = relationship("UserOwnedCard", back_populates="card", cascade="all, delete-orphan")

    def to_core(self) -> DbCard:
        """Convert to the recommendation engine's card type."""
        return DbCard(
            id=self.id,
            issuer=self.issuer,
            name=self.name,
            network=self.network,
            annual_fee_cents=self.annual_fee_cents or 0,
            reward_rules=tuple(rule.to_core() for rule in self.reward_rules),
            exclusions=tuple(
                MerchantExclusion(merchant_pattern=e.merchant_pattern, reason=e.reason)
                for e in self.merchant_exclusions
            ),
            verified=bool(self.verified),
            last_verified_at=self.last_verified_at.isoformat() if self.last_verified_at else None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "issuer": self.issuer,
            "name": self.name,
            "network": self.network,
            "annual_fee_cents": self.annual_fee_cents,
            "foreign_tx_fee_percent": self.foreign_tx_fee_percent,
            "verified": bool(self.verified),
            "last_verified_at": self.last_verified_at.isoformat() if self.last_verified_at else None,
            "reward_rules": [rule.to_dict() for rule in self.reward_rules],
            "exclusions": [
                {"merchant_pattern": e.merchant_pattern, "reason": e.reason}
                for e in self.merchant_exclusions
            ],
        }


class CardRewardRule(Base):
    __tablename__ = "card_reward_rules"
    __table_args__ = (
        CheckConstraint("multiplier >= 0", name="ck_card_reward_rules_multiplier_non_negative"),
        CheckConstraint(
            "cap_period IS NULL OR cap_period IN ('month', 'quarter', 'year')",
            name="ck_card_reward_rules_cap_period",
        ),
    )
    id = Column(Integer, primary_key=True, index=True)
    card_id = Column(String, ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String, nullable=False)
    multiplier = Column(Float, nullable=False)
    cap_amount_cents = Column(Integer, nullable=True)
    cap_period = Column(String, nullable=True)
    conditions = Column(Text, nullable=True)
    exclusions = Column(JSON, nullable=False, default=list)
    priority = Column(Integer, nullable=False, default=0)

    card = relationship("Card", back_populates="reward_rules")

    def to_core(self) -> RewardRule:
        return RewardRule(
            category=self.category,
            multiplier=self.multiplier,
            cap_amount_cents=self.cap_amount_cents,
            cap_period=self.cap_period,
            conditions=self.conditions,
            exclusions=tuple(self.exclusions or ()),
            priority=self.priority or 0,
        )

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "multiplier": self.multiplier,
            "cap_amount_cents": self.cap_amount_cents,
            "cap_period": self.cap_period,
            "conditions": self.conditions,
            "exclusions": list(self.exclusions or []),
            "priority": self.priority,
        }


class CardMerchantExclusion(Base):
    __tablename__ = "merchant_exclusions"
    id = Column(Integer, primary_key=True, index=True)
    card_id = Column(String, ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    merchant_pattern = Column(String, nullable=False)
    reason = Column(String, nullable=False)

    card = relationship("Card", back_populates="merchant_exclusions")


# Pydantic Models for Request/Response Validation
class RewardRuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    category: str
    multiplier: float = Field(ge=0)
    cap_amount_cents: Optional[int] = None
    cap_period: Optional[str] = None
    conditions: Optional[str] = None
    exclusions: List[str] = []
    priority: int = 0


class CardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    issuer: str
    name: str
    network: str
    annual_fee_cents: int
    foreign_tx_fee_percent: Optional[float] = None
    verified: bool
    last_verified_at: Optional[str] = None
    reward_rules: List[RewardRuleResponse] = []
    exclusions: List[dict] = []


class CardListResponse(BaseModel):
    cards: List[CardResponse]


class CardDetailResponse(BaseModel):
    card: CardResponse
