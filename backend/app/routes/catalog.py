from fastapi import APIRouter, Depends

from app.dependencies.services import get_card_service
from app.models.card import CardDetailResponse, CardListResponse
from app.services.card_service import CardService
from app.services.errors import ServiceError

router = APIRouter(
    prefix="/api/v1/cards",
    tags=["cards"]
)


@router.get("", response_model=CardListResponse)
def list_cards(service: CardService = Depends(get_card_service)):
    """Return every card with its reward rules and exclusions."""
    return {"cards": service.list_cards()}


@router.get("/{card_id}", response_model=CardDetailResponse)
def get_card(card_id: str, service: CardService = Depends(get_card_service)):
    try:
        return {"card": service.get_card(card_id)}
    except ServiceError as exc:
        raise exc.to_http()
