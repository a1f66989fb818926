"""
Ask-a-credit-question guard.

Runs every question through a fixed sequence:

1. onboarding gate (raises OnboardingRequiredError)
2. calibration gate (initial calibration missing -> ask the next question)
3. myth detection (blocked, canonical correction)
4. risk block (optimization question from a balance carrier -> blocked)
5. topic calibration (required facts for the topic missing -> ask for them)
6. depth resolution
7. risk tone
8. generation (strict JSON contract)
9. depth clamp
10. redacted audit record

Steps 1-5 never call the generator. The clamp always runs after generation.
"""

import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from cardpilot.ask.answer import (
    DEPTH_RULES,
    AnswerConfidence,
    AnswerDepth,
    CalibrationBlock,
    HardAnswer,
    HardAnswerResponse,
    MythCheck,
    QuestionType,
    Routing,
    apply_depth_rules,
    blocked_answer,
    calibration_answer,
    parse_hard_answer,
)
from cardpilot.ask.calibration import (
    map_calibration_to_preferences,
    next_initial_question,
    topic_calibration,
)
from cardpilot.ask.classification import classify_question, requires_risk_tone
from cardpilot.ask.myths import detect_myths
from cardpilot.ask.redaction import redact_pii, redact_structure
from cardpilot.errors import LLMUnavailableError, OnboardingRequiredError
from cardpilot.profile import CreditProfile

logger = logging.getLogger(__name__)

MIN_QUESTION_LENGTH = 5
MAX_QUESTION_LENGTH = 800

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

BALANCE_BLOCK_REASON = (
    "Rewards optimization is paused while you carry a balance. "
    "Interest charges outweigh any rewards you would earn."
)
BALANCE_UNLOCK_CONDITIONS = [
    "Pay every card's statement balance in full",
    "Go 3 consecutive months without carrying a balance",
    "Update your credit profile once you no longer carry a balance",
]
RISK_TONE_WARNING = "Interest and fees on carried balances or high-risk credit cost more than any reward."


def sanitize_question(text: str) -> str:
    """
    Strip control characters and enforce the length bounds.

    Raises:
        ValueError: if the cleaned question is shorter than 5 or longer than 800 characters
    """
    cleaned = _CONTROL_CHARS.sub("", text or "").strip()
    if len(cleaned) < MIN_QUESTION_LENGTH:
        raise ValueError(f"Question must be at least {MIN_QUESTION_LENGTH} characters")
    if len(cleaned) > MAX_QUESTION_LENGTH:
        raise ValueError(f"Question must be at most {MAX_QUESTION_LENGTH} characters")
    return cleaned


@dataclass(frozen=True)
class GenerationRequest:
    question: str
    depth: AnswerDepth
    question_type: QuestionType
    risk_tone: bool
    system_prompt: str


# Returns the generator's raw text. Raises LLMUnavailableError / LLMQuotaError.
AnswerGenerator = Callable[[GenerationRequest], str]


@dataclass
class AskRequest:
    question: str
    answer_depth: Optional[AnswerDepth] = None
    calibration_answers: Optional[Dict[str, Any]] = None
    context: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.answer_depth is not None:
            self.answer_depth = AnswerDepth(self.answer_depth)


@dataclass
class AskContext:
    """
    What the caller knows about the asking user.

    Fields:
    - user_id: owner, only used for the audit record
    - profile: stored credit profile, None if never created
    - stored_depth: depth saved in the user's AI preferences
    - stored_calibration: calibration saved in the user's AI preferences
    """
    user_id: Optional[str] = None
    profile: Optional[CreditProfile] = None
    stored_depth: Optional[AnswerDepth] = None
    stored_calibration: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class AuditRecord:
    request_id: str
    user_id: Optional[str]
    question_redacted: str
    redaction_types: List[str]
    question_type: QuestionType
    answer_depth: AnswerDepth
    outcome: str
    llm_called: bool
    answer: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


AuditSink = Callable[[AuditRecord], None]


def resolve_depth(request_depth: Optional[AnswerDepth], stored_depth: Optional[AnswerDepth],
                  profile: Optional[CreditProfile]) -> AnswerDepth:
    """Explicit request depth, then stored preference, then the profile's experience level, then beginner."""
    if request_depth:
        return AnswerDepth(request_depth)
    if stored_depth:
        return AnswerDepth(stored_depth)
    if profile is not None and profile.experience_level:
        return AnswerDepth(profile.experience_level.value)
    return AnswerDepth.BEGINNER


def build_system_prompt(depth: AnswerDepth, question_type: QuestionType, risk_tone: bool) -> str:
    rules = DEPTH_RULES[depth]
    lines = [
        "You are a careful credit-card and credit-score assistant.",
        "Respond with ONE JSON object and nothing else, with exactly these keys:",
        '{"summary": string, "recommended_action": string|null, "steps": [string], '
        '"mechanics": string|null, "edge_cases": [string]|null, "warnings": [string]|null, '
        '"confidence": "high"|"medium"|"low", "blocked": false, "block_reason": null}',
        f"Depth: {depth.value}. Tone: {rules.tone}.",
        f"Summary: at most {rules.max_summary_sentences} sentences. Steps: at most {rules.max_steps}.",
    ]
    if not rules.mechanics:
        lines.append("Set mechanics to null.")
    if not rules.edge_cases:
        lines.append("Set edge_cases to null.")
    if rules.warnings == "severe_only":
        lines.append("Only include warnings for severe risks.")
    elif rules.warnings == "required":
        lines.append("Always include at least one warning describing limitations.")
    if risk_tone:
        lines.append(
            "Lead with the downsides and costs. Do not frame the answer around rewards, points or perks."
        )
    lines.append(f"Question type: {question_type.value}.")
    lines.append("Never invent specific rates, fees or product terms. Do not give legal, tax or investment advice.")
    return "\n".join(lines)


class AskEngine:
    """
    Stateless per request; the generator and audit sink are injected.

    Usage:
        engine = AskEngine(generator=openai_generator, audit_sink=store.append)
        response = engine.ask(AskRequest(question="..."), AskContext(profile=profile))
    """

    def __init__(
        self,
        generator: Optional[AnswerGenerator] = None,
        audit_sink: Optional[AuditSink] = None,
        model_name: str = "none",
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.generator = generator
        self.audit_sink = audit_sink
        self.model_name = model_name
        self.id_factory = id_factory

    def ask(self, request: AskRequest, context: AskContext) -> HardAnswerResponse:
        """
        Answer, block or ask for calibration.

        Raises:
            ValueError: question fails length validation
            OnboardingRequiredError: profile missing or onboarding not finished
            LLMUnavailableError / LLMQuotaError: generator failed
            AnswerContractError: generator output is not the agreed JSON
        """
        started = time.perf_counter()
        question = sanitize_question(request.question)
        profile = context.profile

        if profile is None or not profile.onboarding_completed:
            raise OnboardingRequiredError("Complete your credit profile before asking questions")

        request_id = self.id_factory()
        question_type = classify_question(question)

        stored_calibration = context.stored_calibration
        stored_depth = context.stored_depth
        if not stored_calibration and next_initial_question(request.calibration_answers) is None:
            prefs = map_calibration_to_preferences(request.calibration_answers)
            stored_calibration = prefs.calibration
            stored_depth = stored_depth or prefs.answer_depth

        depth = resolve_depth(request.answer_depth, stored_depth, profile)

        def respond(answer: HardAnswer, outcome: str, qtype: QuestionType = question_type,
                    llm_called: bool = False, risk_tone: bool = False, **extra) -> HardAnswerResponse:
            response = HardAnswerResponse(
                **answer.model_dump(),
                request_id=request_id,
                answer_depth=depth,
                question_type=qtype,
                routing=Routing(
                    mode="llm" if llm_called else "deterministic",
                    model=self.model_name if llm_called else "none",
                    llm_called=llm_called,
                    risk_tone=risk_tone,
                    latency_ms=int((time.perf_counter() - started) * 1000),
                ),
                **extra,
            )
            self._audit(context, question, response, outcome)
            return response

        if not stored_calibration:
            pending = next_initial_question(request.calibration_answers)
            return respond(
                calibration_answer(pending.prompt),
                "calibration_needed",
                calibration=CalibrationBlock(needed=True, topic_id="initial", questions=[pending]),
            )

        myth_check = detect_myths(question)
        if myth_check.detected:
            return respond(self._myth_answer(myth_check), "myth_blocked", QuestionType.MYTH, myth_check=myth_check)

        if question_type == QuestionType.OPTIMIZATION and profile.carry_balance:
            return respond(
                blocked_answer(BALANCE_BLOCK_REASON, BALANCE_UNLOCK_CONDITIONS),
                "risk_blocked",
                unlock_conditions=list(BALANCE_UNLOCK_CONDITIONS),
            )

        topic = topic_calibration(question, request.context)
        if topic.needed:
            return respond(calibration_answer(topic.questions[0].prompt), "calibration_needed", calibration=topic)

        risk_tone = requires_risk_tone(question, profile.carry_balance)
        answer = self._generate(question, depth, question_type, risk_tone)
        return respond(answer, "answered", llm_called=True, risk_tone=risk_tone,
                       myth_check=MythCheck(detected=False))

    def _myth_answer(self, myth_check: MythCheck) -> HardAnswer:
        first = myth_check.corrections[0]
        return HardAnswer(
            summary=first.correction,
            recommended_action=None,
            steps=[c.correction for c in myth_check.corrections[1:]],
            warnings=[c.why_it_matters for c in myth_check.corrections],
            confidence=AnswerConfidence.HIGH,
            blocked=True,
            block_reason="This question is based on a common credit myth.",
        )

    def _generate(self, question: str, depth: AnswerDepth, question_type: QuestionType,
                  risk_tone: bool) -> HardAnswer:
        if self.generator is None:
            raise LLMUnavailableError("No answer generator configured")

        logger.info("Generating %s answer for %s question", depth.value, question_type.value)
        raw = self.generator(GenerationRequest(
            question=question,
            depth=depth,
            question_type=question_type,
            risk_tone=risk_tone,
            system_prompt=build_system_prompt(depth, question_type, risk_tone),
        ))
        parsed = parse_hard_answer(raw)

        # The generator may not block; blocking is decided above.
        parsed = parsed.model_copy(update={"blocked": False, "block_reason": None})
        if risk_tone and not parsed.warnings:
            parsed = parsed.model_copy(update={"warnings": [RISK_TONE_WARNING]})
        return apply_depth_rules(parsed, depth)

    def _audit(self, context: AskContext, question: str, response: HardAnswerResponse, outcome: str) -> None:
        if self.audit_sink is None:
            return
        redacted = redact_pii(question)
        self.audit_sink(AuditRecord(
            request_id=response.request_id,
            user_id=context.user_id,
            question_redacted=redacted.text,
            redaction_types=redacted.types,
            question_type=response.question_type,
            answer_depth=response.answer_depth,
            outcome=outcome,
            llm_called=response.routing.llm_called,
            answer=redact_structure(response.model_dump(mode="json")),
        ))
