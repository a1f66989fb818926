from fastapi import APIRouter, Depends

from app.dependencies.security import require_user_id_int
from app.dependencies.services import get_recommendation_service
from app.schemas.recommendation_schemas import RecommendationRequest, RecommendationResponse
from app.services.errors import ServiceError
from app.services.recommendation_service import RecommendationService

router = APIRouter(
    prefix="/api/v1/recommendation",
    tags=["recommendation"]
)


@router.post("", response_model=RecommendationResponse)
def recommend_card(
    payload: RecommendationRequest,
    user_id: int = Depends(require_user_id_int),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """
    Recommend the best card for the merchant behind a URL.

    Request body:
    {
        "url": "https://www.costco.com/",
        "title": "Costco Wholesale",
        "card_ids": ["amex-gold", "citi-double-cash"]
    }

    card_ids is optional; the user's wallet is used when omitted. With no
    cards at all the response has status NO_WALLET and no recommendation.
    """
    try:
        return service.recommend(
            user_id,
            payload.url,
            title=payload.title,
            card_ids=payload.card_ids,
            skip_ai=payload.skip_ai,
        )
    except ServiceError as exc:
        raise exc.to_http()
