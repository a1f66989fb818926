from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.dependencies.security import require_user_id_int
from app.dependencies.services import get_wallet_service
from app.models.user_owned_cards import WalletUpdate
from app.services.errors import ServiceError
from app.services.wallet_service import WalletService

router = APIRouter(
    prefix="/api/v1/wallet",
    tags=["wallet"]
)


@router.get("")
def get_wallet(
    user_id: int = Depends(require_user_id_int),
    service: WalletService = Depends(get_wallet_service),
) -> Dict[str, Any]:
    """
    Return the current user's wallet.

    Security:
    - Returns wallet for the user named in the x-user-id header
    """
    try:
        return {"wallet": service.get_wallet(user_id)}
    except ServiceError as exc:
        raise exc.to_http()


@router.put("")
def put_wallet(
    payload: WalletUpdate,
    user_id: int = Depends(require_user_id_int),
    service: WalletService = Depends(get_wallet_service),
) -> Dict[str, Any]:
    """
    Replace the user's card selection.

    Request body:
    {
        "card_ids": ["amex-gold", "citi-double-cash"]
    }

    Validation:
    - every card_id must exist in the cards table
    """
    try:
        return {"wallet": service.set_wallet(user_id, payload.card_ids)}
    except ServiceError as exc:
        raise exc.to_http()
