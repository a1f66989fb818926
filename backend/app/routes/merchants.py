from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from app.dependencies.services import get_merchant_service
from app.models.merchant import MerchantClassifyRequest, MerchantClassifyResponse, MerchantResolveRequest
from app.services.errors import ServiceError
from app.services.merchant_service import MerchantService

router = APIRouter(
    prefix="/api/v1/merchants",
    tags=["merchants"]
)


@router.post("/resolve")
def resolve_merchant(
    payload: MerchantResolveRequest,
    service: MerchantService = Depends(get_merchant_service),
) -> Dict[str, Any]:
    """
    Resolve a URL to a merchant with the full pipeline.

    Request body:
    {
        "url": "https://www.costco.com/",
        "title": "Costco Wholesale",
        "skip_ai": false
    }

    Returns:
    - merchant: merchant context including explanation.decision_path
    """
    context = service.resolve(payload.url, payload.title, skip_ai=payload.skip_ai)
    return {"merchant": context.to_dict()}


@router.get("/resolve-sync")
def resolve_merchant_sync(
    url: str = Query(..., min_length=1),
    title: Optional[str] = None,
    service: MerchantService = Depends(get_merchant_service),
) -> Dict[str, Any]:
    """Override, registry and heuristics only. Never calls the AI classifier."""
    return {"merchant": service.resolve_sync(url, title).to_dict()}


@router.post("/classify", response_model=MerchantClassifyResponse)
def classify_merchant(
    payload: MerchantClassifyRequest,
    service: MerchantService = Depends(get_merchant_service),
) -> Dict[str, Any]:
    """
    AI merchant classification endpoint.

    Request body:
    {
        "url": "https://shop.example.com/cart",
        "domain": "example.com",
        "title": "Example Shop"
    }

    Returns:
    {"category": "online_retail", "confidence": "medium", "rationale": "...", "merchantName": "Example"}
    """
    try:
        return service.classify(payload.url, payload.domain, payload.title)
    except ServiceError as exc:
        raise exc.to_http()


@router.get("/registry/search")
def search_registry(
    q: str = Query(..., min_length=1),
    service: MerchantService = Depends(get_merchant_service),
) -> Dict[str, Any]:
    return {"merchants": service.search_registry(q)}
