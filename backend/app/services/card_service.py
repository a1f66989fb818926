from datetime import datetime
from typing import Any, Dict, List, Sequence

from sqlalchemy.orm import Session, selectinload

from app.models.card import Card, CardMerchantExclusion, CardRewardRule
from app.services.errors import not_found, validation_error
from cardpilot.cards import CARD_CATALOG, CatalogCard, DbCard


class CardService:
    """Read access to the cards table (rules and exclusions included)."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _query(self):
        return self.db.query(Card).options(
            selectinload(Card.reward_rules),
            selectinload(Card.merchant_exclusions),
        )

    def list_cards(self) -> List[Dict[str, Any]]:
        return [card.to_dict() for card in self._query().order_by(Card.issuer, Card.name).all()]

    def get_card(self, card_id: str) -> Dict[str, Any]:
        card = self._query().filter(Card.id == card_id).first()
        if not card:
            raise not_found("Card not found.", card_id=card_id)
        return card.to_dict()

    def load_core_cards(self, card_ids: Sequence[str]) -> List[DbCard]:
        """
        Load cards for the recommender, keeping the caller's order.

        Raises ServiceError(400) naming every unknown id.
        """
        rows = {card.id: card for card in self._query().filter(Card.id.in_(list(card_ids))).all()}
        missing = [card_id for card_id in card_ids if card_id not in rows]
        if missing:
            raise validation_error(
                f"Unknown card_id(s): {', '.join(missing)}",
                field="card_ids",
                unknown=missing,
            )
        return [rows[card_id].to_core() for card_id in card_ids]

    def existing_ids(self, card_ids: Sequence[str]) -> List[str]:
        rows = self.db.query(Card.id).filter(Card.id.in_(list(card_ids))).all()
        return [row[0] for row in rows]


def card_from_catalog(entry: CatalogCard, verified_at: datetime) -> Card:
    """Build the ORM row (with rules and exclusions) for a built-in catalog card."""
    return Card(
        id=entry.id,
        issuer=entry.issuer,
        name=entry.name,
        network=entry.network,
        annual_fee_cents=entry.annual_fee_cents,
        foreign_tx_fee_percent=entry.foreign_tx_fee_percent,
        verified=True,
        last_verified_at=verified_at,
        reward_rules=[
            CardRewardRule(
                category=rule.category.value,
                multiplier=rule.multiplier,
                cap_amount_cents=rule.cap_amount_cents,
                cap_period=rule.cap_period.value if rule.cap_period else None,
                conditions=rule.conditions,
                exclusions=list(rule.exclusions),
                priority=rule.priority,
            )
            for rule in entry.reward_rules
        ],
        merchant_exclusions=[
            CardMerchantExclusion(merchant_pattern=e.merchant_pattern, reason=e.reason)
            for e in entry.exclusions
        ],
    )


def seed_card_catalog(db: Session, verified_at: datetime) -> int:
    """Insert built-in catalog cards that are not in the table yet. Returns the number added."""
    present = {row[0] for row in db.query(Card.id).all()}
    added = 0
    for entry in CARD_CATALOG:
        if entry.id in present:
            continue
        db.add(card_from_catalog(entry, verified_at))
        added += 1
    if added:
        db.commit()
    return added
