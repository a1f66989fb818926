"""
Pathway output contract.

Every pathway returned to a caller has passed ``validate_pathway_output``.
Array bounds and minimum string lengths are part of the contract; a
generator that violates them is a bug and the validator raises.
"""

import logging
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cardpilot.errors import PathwayValidationError

logger = logging.getLogger(__name__)

PATHWAY_SCHEMA_VERSION = 1


class CreditStage(str, Enum):
    """Ordered foundation < build < optimize < scale < elite."""
    FOUNDATION = "foundation"
    BUILD = "build"
    OPTIMIZE = "optimize"
    SCALE = "scale"
    ELITE = "elite"

    @property
    def rank(self) -> int:
        return STAGE_ORDER.index(self)


STAGE_ORDER = [
    CreditStage.FOUNDATION,
    CreditStage.BUILD,
    CreditStage.OPTIMIZE,
    CreditStage.SCALE,
    CreditStage.ELITE,
]


class Priority(str, Enum):
    NOW = "now"
    SOON = "soon"
    LATER = "later"


class CardConfidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class NextMove(_Strict):
    action: str = Field(..., min_length=8)
    condition: str = Field(..., min_length=6)
    rationale: str = Field(..., min_length=12)
    priority: Priority


class RecommendedCard(_Strict):
    name: str
    reason: str
    timing: str
    confidence: CardConfidence


class TimelineMilestone(_Strict):
    title: str
    when: str = Field(..., description='e.g. "In 6 months", "Before renewal"')
    success_metric: str


class PathwayOutput(_Strict):
    credit_stage: CreditStage
    stage_confidence: float = Field(..., ge=0, le=100)
    stage_reasons: List[str] = Field(..., min_length=1)
    immediate_focus: List[str] = Field(..., min_length=2, max_length=5)
    next_moves: List[NextMove] = Field(..., min_length=2, max_length=6)
    do_nots: List[str] = Field(..., min_length=2, max_length=6)
    recommended_cards: List[RecommendedCard] = Field(default_factory=list, max_length=5)
    timeline: List[TimelineMilestone] = Field(..., min_length=3, max_length=8)
    next_review_date: date
    behavior_rules: List[str] = Field(..., min_length=2, max_length=8)


STAGE_DISPLAY_NAMES = {
    CreditStage.FOUNDATION: "Foundation",
    CreditStage.BUILD: "Build",
    CreditStage.OPTIMIZE: "Optimize",
    CreditStage.SCALE: "Scale",
    CreditStage.ELITE: "Elite",
}

STAGE_DESCRIPTIONS = {
    CreditStage.FOUNDATION: "Establishing your credit foundation with your first card",
    CreditStage.BUILD: "Building credit history and responsible usage patterns",
    CreditStage.OPTIMIZE: "Maximizing rewards with strategic card selection",
    CreditStage.SCALE: "Expanding your portfolio for advanced optimization",
    CreditStage.ELITE: "Premium strategies for experienced credit users",
}


def _violations(exc: ValidationError) -> List[str]:
    out = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "<root>"
        out.append(f"{loc}: {err['msg']}")
    return out


def validate_pathway_output(output: Union[PathwayOutput, Dict[str, Any]]) -> PathwayOutput:
    """
    Validate a pathway against the output contract.

    Args:
        output: a PathwayOutput or a plain dict of the same shape

    Returns:
        The validated PathwayOutput

    Raises:
        PathwayValidationError: listing every violated constraint
    """
    if isinstance(output, PathwayOutput):
        output = output.model_dump()
    try:
        return PathwayOutput.model_validate(output)
    except ValidationError as e:
        violations = _violations(e)
        logger.error("Pathway output validation failed: %s", violations)
        raise PathwayValidationError(violations) from e
