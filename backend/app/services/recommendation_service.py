import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.services.card_service import CardService
from app.services.merchant_service import MerchantService
from app.services.wallet_service import WalletService
from cardpilot.recommender import CardAnalysis, Recommendation, format_multiplier, recommend

logger = logging.getLogger(__name__)

NO_WALLET_MESSAGE = "Add at least one card to your wallet to get a recommendation."


def _analysis_to_dict(analysis: CardAnalysis) -> Dict[str, Any]:
    return {
        "card_id": analysis.card.id,
        "card_name": analysis.card.display_name,
        "multiplier": analysis.effective_multiplier,
        "multiplier_label": format_multiplier(analysis.effective_multiplier),
        "reason": analysis.reason,
        "excluded": analysis.excluded,
        "exclusion_reason": analysis.exclusion_reason,
        "cap_amount_cents": analysis.cap_amount_cents,
        "cap_period": analysis.cap_period.value if analysis.cap_period else None,
    }


def recommendation_to_dict(result: Recommendation) -> Dict[str, Any]:
    return {
        "card_id": result.card.id,
        "card_name": result.card.display_name,
        "merchant_name": result.merchant_name,
        "domain": result.domain,
        "category": result.category.value,
        "category_label": result.category_label,
        "multiplier": result.multiplier,
        "multiplier_label": format_multiplier(result.multiplier),
        "confidence": result.confidence.value,
        "reason": result.reason,
        "alternatives": [_analysis_to_dict(a) for a in result.alternatives],
    }


class RecommendationService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.merchants = MerchantService(db)
        self.cards = CardService(db)
        self.wallet = WalletService(db)

    def recommend(
        self,
        user_id: int,
        url: str,
        title: Optional[str] = None,
        card_ids: Optional[List[str]] = None,
        skip_ai: bool = False,
    ) -> Dict[str, Any]:
        """
        Resolve the merchant, then rank the given cards (or the user's wallet).

        The merchant context is always returned so the client can show the
        decision trace even when no card could be picked.
        """
        context = self.merchants.resolve(url, title, skip_ai=skip_ai)
        ids = card_ids if card_ids else self.wallet.get_card_ids(user_id)
        if not ids:
            return {
                "status": "NO_WALLET",
                "message": NO_WALLET_MESSAGE,
                "merchant": context.to_dict(),
                "recommendation": None,
            }

        result = recommend(context, self.cards.load_core_cards(ids))
        logger.info(
            "Recommended %s for %s (%s, confidence %s)",
            result.card.id,
            context.domain,
            context.engine_category.value,
            context.confidence.value,
        )
        return {
            "status": "OK",
            "merchant": context.to_dict(),
            "recommendation": recommendation_to_dict(result),
        }
