from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from app.dependencies.security import require_admin
from app.dependencies.services import get_merchant_service
from app.models.merchant import MerchantOverrideUpsert, ReviewDecision
from app.services.errors import ServiceError
from app.services.merchant_service import MerchantService

router = APIRouter(
    prefix="/api/v1/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("/review-queue")
def list_review_queue(
    status_filter: Optional[str] = Query(default="pending", alias="status"),
    service: MerchantService = Depends(get_merchant_service),
) -> Dict[str, Any]:
    """
    List merchant suggestions.

    Query:
    - status: pending (default) | approved | rejected | all
    """
    return {"suggestions": service.list_review_queue(status_filter)}


@router.post("/review-queue/{suggestion_id}/approve")
def approve_suggestion(
    suggestion_id: str,
    payload: Optional[ReviewDecision] = None,
    service: MerchantService = Depends(get_merchant_service),
) -> Dict[str, Any]:
    """
    Approve a pending suggestion. Creates (or replaces) the override for its domain.

    Request body (optional):
    {
        "notes": "Checked the site",
        "category": "groceries",
        "display_name": "Fresh Market"
    }
    """
    decision = payload or ReviewDecision()
    try:
        return service.approve_suggestion(
            suggestion_id,
            notes=decision.notes,
            category=decision.category,
            display_name=decision.display_name,
        )
    except ServiceError as exc:
        raise exc.to_http()


@router.post("/review-queue/{suggestion_id}/reject")
def reject_suggestion(
    suggestion_id: str,
    payload: Optional[ReviewDecision] = None,
    service: MerchantService = Depends(get_merchant_service),
) -> Dict[str, Any]:
    try:
        return service.reject_suggestion(suggestion_id, notes=(payload.notes if payload else None))
    except ServiceError as exc:
        raise exc.to_http()


@router.get("/overrides")
def list_overrides(service: MerchantService = Depends(get_merchant_service)) -> Dict[str, Any]:
    return {"overrides": service.list_overrides()}


@router.get("/overrides/{domain}")
def get_override(domain: str, service: MerchantService = Depends(get_merchant_service)) -> Dict[str, Any]:
    try:
        return {"override": service.get_override(domain)}
    except ServiceError as exc:
        raise exc.to_http()


@router.put("/overrides/{domain}")
def put_override(
    domain: str,
    payload: MerchantOverrideUpsert,
    service: MerchantService = Depends(get_merchant_service),
) -> Dict[str, Any]:
    """
    Create or replace the override for a domain (last write wins).

    Request body:
    {
        "display_name": "Amazon Fresh",
        "category": "groceries",
        "rationale": "Grocery delivery"
    }
    """
    try:
        return {"override": service.put_override(domain, payload.display_name, payload.category, payload.rationale)}
    except ServiceError as exc:
        raise exc.to_http()


@router.delete("/overrides/{domain}", status_code=status.HTTP_204_NO_CONTENT)
def delete_override(domain: str, service: MerchantService = Depends(get_merchant_service)) -> Response:
    try:
        service.delete_override(domain)
    except ServiceError as exc:
        raise exc.to_http()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/ai-cache/stats")
def ai_cache_stats() -> Dict[str, Any]:
    return {"stats": MerchantService.cache_stats()}


@router.post("/ai-cache/clear")
def clear_ai_cache() -> Dict[str, Any]:
    MerchantService.clear_cache()
    return {"cleared": True}
