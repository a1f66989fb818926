from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from app.dependencies.security import require_user_id_int
from app.dependencies.services import get_credit_profile_service
from app.models.credit_profile import CreditProfileUpdate, PathwayRequest
from app.services.credit_profile_service import CreditProfileService
from app.services.errors import ServiceError

router = APIRouter(
    prefix="/api/v1",
    tags=["credit-profile"]
)


@router.get("/credit-profile")
def get_credit_profile(
    user_id: int = Depends(require_user_id_int),
    service: CreditProfileService = Depends(get_credit_profile_service),
) -> Dict[str, Any]:
    """Stored credit profile plus the credit state derived from it."""
    try:
        return service.get_profile(user_id)
    except ServiceError as exc:
        raise exc.to_http()


@router.put("/credit-profile")
def put_credit_profile(
    payload: CreditProfileUpdate,
    user_id: int = Depends(require_user_id_int),
    service: CreditProfileService = Depends(get_credit_profile_service),
) -> Dict[str, Any]:
    """
    Create or update the credit profile. Omitted fields are left as they are.

    Request body:
    {
        "experience_level": "intermediate",
        "intent": "rewards",
        "carry_balance": false,
        "income_bucket": "50-100k",
        "credit_history": "1_3y",
        "onboarding_completed": true
    }
    """
    try:
        return service.put_profile(user_id, payload)
    except ServiceError as exc:
        raise exc.to_http()


@router.get("/pathway")
def get_pathway(
    user_id: int = Depends(require_user_id_int),
    service: CreditProfileService = Depends(get_credit_profile_service),
) -> Dict[str, Any]:
    """Credit pathway from the stored profile and the wallet."""
    try:
        return {"pathway": service.get_pathway(user_id)}
    except ServiceError as exc:
        raise exc.to_http()


@router.post("/pathway")
def build_pathway(
    payload: Optional[PathwayRequest] = None,
    user_id: int = Depends(require_user_id_int),
    service: CreditProfileService = Depends(get_credit_profile_service),
) -> Dict[str, Any]:
    """
    Credit pathway with extra facts the profile does not hold.

    Request body:
    {
        "current_cards": [{"issuer": "Chase", "product_family": "Freedom Unlimited"}],
        "known_constraints": {"chase_5_24_estimate": 3, "travel_frequency": "often"}
    }
    """
    try:
        return {"pathway": service.get_pathway(user_id, payload)}
    except ServiceError as exc:
        raise exc.to_http()
