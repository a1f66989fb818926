from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from app.dependencies.security import require_user_id_int
from app.dependencies.services import get_ask_service
from app.models.ai_preferences import AIPreferencesUpdate, AskRequestBody
from app.services.ask_service import AskService
from app.services.errors import ServiceError

router = APIRouter(
    prefix="/api/v1/ask",
    tags=["ask"]
)


@router.post("")
def ask_question(
    payload: AskRequestBody,
    user_id: int = Depends(require_user_id_int),
    service: AskService = Depends(get_ask_service),
) -> Dict[str, Any]:
    """
    Ask a credit question.

    Request body:
    {
        "question": "When should I pay my card to lower utilization?",
        "answer_depth": "intermediate",
        "calibration_answers": {"goal": "score", "carry_balance": "no"},
        "context": {"statement_date": "15th"}
    }

    Blocked, myth-corrected and calibration-needed answers are 200 responses.
    Errors: 402 AI_CREDITS_EXHAUSTED, 403 ONBOARDING_REQUIRED, 429 RATE_LIMITED,
    500 AI_ERROR / AI_UNAVAILABLE / INVALID_OUTPUT_SCHEMA.
    """
    try:
        return service.ask(user_id, payload)
    except ServiceError as exc:
        raise exc.to_http()


@router.get("/preferences")
def get_preferences(
    user_id: int = Depends(require_user_id_int),
    service: AskService = Depends(get_ask_service),
) -> Dict[str, Any]:
    try:
        return {"preferences": service.get_preferences(user_id)}
    except ServiceError as exc:
        raise exc.to_http()


@router.put("/preferences")
def put_preferences(
    payload: AIPreferencesUpdate,
    user_id: int = Depends(require_user_id_int),
    service: AskService = Depends(get_ask_service),
) -> Dict[str, Any]:
    """
    Request body:
    {
        "answer_depth": "advanced",
        "calibration_answers": {"goal": "both", "carry_balance": "no", "wants_edge_cases": "yes"}
    }
    """
    try:
        return {"preferences": service.put_preferences(user_id, payload)}
    except ServiceError as exc:
        raise exc.to_http()


@router.get("/history")
def get_history(
    limit: int = Query(default=50, ge=1, le=200),
    user_id: int = Depends(require_user_id_int),
    service: AskService = Depends(get_ask_service),
) -> Dict[str, Any]:
    """The user's redacted audit trail, newest first."""
    return {"history": service.list_audit(user_id, limit)}
