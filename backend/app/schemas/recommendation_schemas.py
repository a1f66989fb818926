"""
Recommendation Schemas - DTOs for the card recommendation endpoint.

These models sit between:
- Recommendation Service -> API Response Layer

Multipliers and caps are copied from the stored reward rules; nothing in
the response is computed by a model.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecommendationRequest(BaseModel):
    """
    Request DTO for POST /recommendation.

    Usage:
        request = RecommendationRequest(
            url="https://www.costco.com/",
            title="Costco Wholesale",
            card_ids=["amex-gold", "citi-double-cash"],
        )
    """
    url: str = Field(..., min_length=1, description="Page URL the user is shopping on")
    title: Optional[str] = Field(None, description="Page title, used by the heuristics")
    card_ids: Optional[List[str]] = Field(
        None, description="Cards to rank; the user's wallet is used when omitted"
    )
    skip_ai: bool = Field(default=False, description="Never call the AI classifier")


class CardAlternative(BaseModel):
    """One ranked card, including excluded ones."""
    card_id: str
    card_name: str
    multiplier: float = Field(..., ge=0)
    multiplier_label: str
    reason: str
    excluded: bool = False
    exclusion_reason: Optional[str] = None
    cap_amount_cents: Optional[int] = None
    cap_period: Optional[Literal["month", "quarter", "year"]] = None


class RecommendationDetail(BaseModel):
    """The selected card. ``confidence`` is the merchant-resolution confidence."""
    card_id: str
    card_name: str
    merchant_name: str
    domain: Optional[str] = None
    category: str = Field(..., description="Engine category used for matching")
    category_label: str
    multiplier: float = Field(..., ge=0)
    multiplier_label: str
    confidence: Literal["low", "medium", "high"]
    reason: str
    alternatives: List[CardAlternative] = Field(default_factory=list)


class RecommendationResponse(BaseModel):
    """
    Response DTO for POST /recommendation.

    ``merchant`` always carries the resolved merchant context with its
    decision path, so the client can show why even without a card.
    """
    model_config = ConfigDict(extra="forbid")

    status: Literal["OK", "NO_WALLET"]
    message: Optional[str] = None
    merchant: Dict[str, Any]
    recommendation: Optional[RecommendationDetail] = None
