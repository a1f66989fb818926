import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from app.models.credit_profile import CreditProfileRecord, CreditProfileUpdate, PathwayRequest
from app.models.user_owned_cards import UserOwnedCard, UserOwnedCardStatus
from app.models.user_profile import UserProfile
from app.services.errors import ServiceError, not_found
from cardpilot.errors import PathwayValidationError
from cardpilot.pathway import CurrentCard, KnownConstraints, pathway_from_credit_profile
from cardpilot.profile import CreditProfile, derive_credit_state

logger = logging.getLogger(__name__)


class CreditProfileService:
    def __init__(self, db: Session, today: Callable[[], date] = date.today) -> None:
        self.db = db
        self.today = today

    def _record(self, user_id: int) -> Optional[CreditProfileRecord]:
        return self.db.query(CreditProfileRecord).filter(CreditProfileRecord.user_id == user_id).first()

    def get_core_profile(self, user_id: int) -> Optional[CreditProfile]:
        record = self._record(user_id)
        return record.to_core() if record else None

    def get_profile(self, user_id: int) -> Dict[str, Any]:
        record = self._record(user_id)
        if not record:
            raise not_found("Credit profile not found.", user_id=user_id)
        state = derive_credit_state(record.to_core())
        return {
            "profile": record.to_dict(),
            "credit_state": {
                "stage": state.stage.value,
                "max_allowed_card_tier": state.max_allowed_card_tier,
                "education_mode": state.education_mode.value,
                "risk_ceiling": state.risk_ceiling,
                "suppression_flags": list(state.suppression_flags),
            },
        }

    def put_profile(self, user_id: int, payload: CreditProfileUpdate) -> Dict[str, Any]:
        if not self.db.get(UserProfile, user_id):
            raise not_found("Profile not found.", user_id=user_id)

        record = self._record(user_id)
        if record is None:
            record = CreditProfileRecord(user_id=user_id)
            self.db.add(record)
        for field, value in payload.model_dump(exclude_unset=True).items():
            if value is None and field in ("experience_level", "intent", "carry_balance",
                                           "has_derogatories", "onboarding_completed"):
                continue
            setattr(record, field, value)
        self.db.commit()
        self.db.refresh(record)
        return self.get_profile(user_id)

    def _wallet_cards(self, user_id: int) -> List[CurrentCard]:
        rows = (
            self.db.query(UserOwnedCard)
            .options(selectinload(UserOwnedCard.card))
            .filter(UserOwnedCard.user_id == user_id, UserOwnedCard.status == UserOwnedCardStatus.active)
            .all()
        )
        return [
            CurrentCard(
                issuer=row.card.issuer,
                product_family=row.card.name,
                network=row.card.network,
                annual_fee=(row.card.annual_fee_cents or 0) > 0,
            )
            for row in rows
        ]

    def get_pathway(self, user_id: int, extra: Optional[PathwayRequest] = None) -> Dict[str, Any]:
        """
        Pathway from the stored profile. Wallet cards count as current cards;
        cards listed in ``extra`` are added on top.
        """
        profile = self.get_core_profile(user_id)
        if profile is None:
            raise not_found("Credit profile not found.", user_id=user_id)

        current_cards = self._wallet_cards(user_id)
        constraints = KnownConstraints()
        if extra is not None:
            current_cards += [CurrentCard(**card.model_dump()) for card in extra.current_cards]
            constraints = KnownConstraints(**extra.known_constraints.model_dump())

        try:
            output = pathway_from_credit_profile(profile, self.today(), current_cards, constraints)
        except PathwayValidationError as exc:
            logger.error("Generated pathway failed validation: %s", exc.violations)
            raise ServiceError(
                500,
                "INVALID_OUTPUT_SCHEMA",
                "Generated pathway failed validation.",
                {"violations": exc.violations},
            )
        return output.model_dump(mode="json")
