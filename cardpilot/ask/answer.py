"""
Answer contract for credit questions.

Every response, whether generated, blocked or waiting on calibration, has
the HardAnswer fields. The generator's raw output is parsed strictly into a
HardAnswer and then clamped to the rules of the requested depth.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cardpilot.errors import AnswerContractError

HARD_SCHEMA_VERSION = 2


class AnswerDepth(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class QuestionType(str, Enum):
    MYTH = "myth"
    PROCEDURE = "procedure"
    OPTIMIZATION = "optimization"
    RISK = "risk"
    EDUCATION = "education"


class AnswerConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class HardAnswer(BaseModel):
    """The fixed answer shape. The frontend renders fields in this order."""
    model_config = ConfigDict(extra="ignore")

    summary: str = Field(..., description="Main answer, 1-2 sentences")
    recommended_action: Optional[str] = Field(None, description="What to do next")
    steps: List[str] = Field(default_factory=list, description="Ordered action steps")
    mechanics: Optional[str] = Field(None, description="How it works (intermediate+)")
    edge_cases: Optional[List[str]] = Field(None, description="Exceptions (advanced only)")
    warnings: Optional[List[str]] = Field(None, description="Critical warnings")
    confidence: AnswerConfidence = AnswerConfidence.MEDIUM
    blocked: bool = False
    block_reason: Optional[str] = None


@dataclass(frozen=True)
class DepthRules:
    """
    Which answer fields a depth may populate.

    Fields:
    - max_summary_sentences: summary is cut after this many sentences
    - recommended_action: field allowed
    - max_steps: steps list is truncated to this length
    - mechanics / edge_cases: field allowed
    - warnings: severe_only | allowed | required
    - tone: instruction passed to the generator
    """
    max_summary_sentences: int
    recommended_action: bool
    max_steps: int
    mechanics: bool
    edge_cases: bool
    warnings: str
    tone: str


DEPTH_RULES = {
    AnswerDepth.BEGINNER: DepthRules(
        max_summary_sentences=2,
        recommended_action=True,
        max_steps=3,
        mechanics=False,
        edge_cases=False,
        warnings="severe_only",
        tone="instructional, concrete",
    ),
    AnswerDepth.INTERMEDIATE: DepthRules(
        max_summary_sentences=3,
        recommended_action=True,
        max_steps=6,
        mechanics=True,
        edge_cases=False,
        warnings="allowed",
        tone="explanatory",
    ),
    AnswerDepth.ADVANCED: DepthRules(
        max_summary_sentences=4,
        recommended_action=True,
        max_steps=10,
        mechanics=True,
        edge_cases=True,
        warnings="required",
        tone="comprehensive, includes limitations",
    ),
}

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


def _limit_sentences(text: str, max_sentences: int) -> str:
    sentences = _SENTENCE_END.split(text.strip())
    return " ".join(sentences[:max_sentences])


def apply_depth_rules(answer: HardAnswer, depth: AnswerDepth) -> HardAnswer:
    """
    Clamp an answer to what ``depth`` is allowed to show.

    Applied to every generated answer, since the generator is not trusted to
    respect the depth it was asked for.
    """
    rules = DEPTH_RULES[AnswerDepth(depth)]
    return HardAnswer(
        summary=_limit_sentences(answer.summary, rules.max_summary_sentences),
        recommended_action=answer.recommended_action if rules.recommended_action else None,
        steps=list(answer.steps)[:rules.max_steps],
        mechanics=answer.mechanics if rules.mechanics else None,
        edge_cases=answer.edge_cases if rules.edge_cases else None,
        warnings=answer.warnings or None,
        confidence=answer.confidence,
        blocked=answer.blocked,
        block_reason=answer.block_reason,
    )


def blocked_answer(reason: str, unlock_conditions: List[str]) -> HardAnswer:
    return HardAnswer(
        summary="This recommendation is blocked based on your credit profile.",
        recommended_action=None,
        steps=[f"To unlock: {c}" for c in unlock_conditions],
        warnings=[reason],
        confidence=AnswerConfidence.HIGH,
        blocked=True,
        block_reason=reason,
    )


def calibration_answer(question_prompt: str) -> HardAnswer:
    return HardAnswer(
        summary="I need one detail before answering.",
        recommended_action=None,
        steps=[question_prompt],
        confidence=AnswerConfidence.LOW,
    )


def parse_hard_answer(raw: str) -> HardAnswer:
    """
    Parse generator output into a HardAnswer.

    Args:
        raw: text returned by the generator, expected to be one JSON object

    Returns:
        HardAnswer

    Raises:
        AnswerContractError: on invalid JSON or a shape mismatch. No attempt is
            made to recover a partial answer.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise AnswerContractError("Generator returned invalid JSON", raw=raw) from e
    if not isinstance(data, dict):
        raise AnswerContractError("Generator returned a non-object JSON value", raw=raw)
    try:
        return HardAnswer.model_validate(data)
    except ValidationError as e:
        raise AnswerContractError(f"Generator output does not match the answer schema: {e}", raw=raw) from e


class MythCorrection(BaseModel):
    myth_id: str
    correction: str
    why_it_matters: str


class MythCheck(BaseModel):
    detected: bool
    myth_ids: List[str] = Field(default_factory=list)
    corrections: List[MythCorrection] = Field(default_factory=list)


class CalibrationOption(BaseModel):
    value: str
    label: str


class CalibrationQuestion(BaseModel):
    id: str
    prompt: str
    type: str = Field(..., description="single_select | number | date | currency | free_text")
    options: Optional[List[CalibrationOption]] = None
    required: bool = True


class CalibrationBlock(BaseModel):
    needed: bool
    topic_id: Optional[str] = None
    questions: List[CalibrationQuestion] = Field(default_factory=list)


class Routing(BaseModel):
    mode: str = Field(..., description="deterministic | llm")
    model: str = "none"
    llm_called: bool = False
    risk_tone: bool = False
    latency_ms: int = 0


class HardAnswerResponse(HardAnswer):
    """HardAnswer plus the envelope returned to the client."""
    schema_version: int = HARD_SCHEMA_VERSION
    request_id: str
    answer_depth: AnswerDepth
    question_type: QuestionType
    routing: Routing
    unlock_conditions: List[str] = Field(default_factory=list)
    myth_check: Optional[MythCheck] = None
    calibration: Optional[CalibrationBlock] = None

    def answer_fields(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", include=set(HardAnswer.model_fields))
