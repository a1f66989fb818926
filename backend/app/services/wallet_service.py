from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.models.user_owned_cards import UserOwnedCard, UserOwnedCardStatus
from app.models.user_profile import UserProfile
from app.services.card_service import CardService
from app.services.errors import not_found, validation_error


class WalletService:
    """The user's selected cards. A PUT replaces the whole selection."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _require_user(self, user_id: int) -> UserProfile:
        user = self.db.get(UserProfile, user_id)
        if not user:
            raise not_found("Profile not found.", user_id=user_id)
        return user

    def get_card_ids(self, user_id: int) -> List[str]:
        self._require_user(user_id)
        rows = (
            self.db.query(UserOwnedCard)
            .filter(UserOwnedCard.user_id == user_id, UserOwnedCard.status == UserOwnedCardStatus.active)
            .order_by(UserOwnedCard.id)
            .all()
        )
        return [row.card_id for row in rows]

    def get_wallet(self, user_id: int) -> List[Dict[str, Any]]:
        card_ids = self.get_card_ids(user_id)
        if not card_ids:
            return []
        card_service = CardService(self.db)
        return [card_service.get_card(card_id) for card_id in card_ids]

    def set_wallet(self, user_id: int, card_ids: List[str]) -> List[Dict[str, Any]]:
        self._require_user(user_id)
        known = set(CardService(self.db).existing_ids(card_ids))
        unknown = [card_id for card_id in card_ids if card_id not in known]
        if unknown:
            raise validation_error(
                f"Unknown card_id(s): {', '.join(unknown)}",
                field="card_ids",
                unknown=unknown,
            )

        existing = {row.card_id: row for row in self.db.query(UserOwnedCard).filter(UserOwnedCard.user_id == user_id).all()}
        for card_id, row in existing.items():
            if card_id not in card_ids:
                self.db.delete(row)
        for card_id in card_ids:
            row = existing.get(card_id)
            if row is None:
                self.db.add(UserOwnedCard(user_id=user_id, card_id=card_id, status=UserOwnedCardStatus.active))
            else:
                row.status = UserOwnedCardStatus.active
        self.db.commit()
        return self.get_wallet(user_id)
