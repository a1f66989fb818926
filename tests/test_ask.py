"""
Tests for the credit-question guard: classification, myths, calibration,
depth clamping, PII redaction and the ask flow.
"""

import json

import pytest

from cardpilot.ask.answer import (
    AnswerDepth,
    HardAnswer,
    QuestionType,
    apply_depth_rules,
    parse_hard_answer,
)
from cardpilot.ask.calibration import (
    INITIAL_CALIBRATION_QUESTIONS,
    map_calibration_to_preferences,
    next_initial_question,
    topic_calibration,
)
from cardpilot.ask.classification import classify_question, requires_risk_tone
from cardpilot.ask.guard import (
    BALANCE_UNLOCK_CONDITIONS,
    RISK_TONE_WARNING,
    AskContext,
    AskEngine,
    AskRequest,
    sanitize_question,
)
from cardpilot.ask.myths import CREDIT_MYTHS, detect_myths, get_myth_by_id
from cardpilot.ask.redaction import redact_pii, redact_structure
from cardpilot.errors import AnswerContractError, LLMUnavailableError, OnboardingRequiredError
from cardpilot.profile import CreditProfile

FULL_CALIBRATION = {
    "goal": "both",
    "carry_balance": "no",
    "knows_statement_vs_due": "yes",
    "bnpl_usage": "never",
    "confidence_level": "medium",
    "wants_edge_cases": "yes",
}

VERBOSE_ANSWER = {
    "summary": "First sentence. Second sentence. Third sentence. Fourth sentence.",
    "recommended_action": "Check your statement date.",
    "steps": ["one", "two", "three", "four", "five"],
    "mechanics": "Issuers report the statement balance.",
    "edge_cases": ["Some issuers report mid-cycle."],
    "warnings": None,
    "confidence": "high",
    "blocked": True,
    "block_reason": "generator tried to block",
}


class RecordingGenerator:
    def __init__(self, response=VERBOSE_ANSWER):
        self.response = response
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return self.response if isinstance(self.response, str) else json.dumps(self.response)


def onboarded(**kwargs):
    return CreditProfile(user_id="u1", onboarding_completed=True, **kwargs)


def calibrated(profile=None, **kwargs):
    return AskContext(
        user_id="u1",
        profile=profile or onboarded(),
        stored_calibration={"goal_score": True},
        **kwargs,
    )


class TestClassification:
    @pytest.mark.parametrize("question,expected", [
        ("Which card should I use for groceries?", QuestionType.OPTIMIZATION),
        ("How do I maximize points on travel?", QuestionType.OPTIMIZATION),
        ("Is BNPL a bad idea?", QuestionType.RISK),
        ("Should I take a cash advance?", QuestionType.RISK),
        ("How do I dispute a charge?", QuestionType.PROCEDURE),
        ("What is an APR?", QuestionType.EDUCATION),
    ])
    def test_classify(self, question, expected):
        assert classify_question(question) == expected

    def test_risk_tone(self):
        assert requires_risk_tone("What is an APR?", carry_balance=True)
        assert requires_risk_tone("Is Afterpay safe for a big purchase?", carry_balance=False)
        assert not requires_risk_tone("What is an APR?", carry_balance=False)


class TestMyths:
    def test_zero_utilization(self):
        check = detect_myths("Is 0% utilization best?")

        assert check.detected
        assert check.myth_ids == ["MYTH_0_UTIL_IS_BEST"]
        assert "1-9%" in check.corrections[0].correction

    def test_multiple_myths_in_list_order(self):
        check = detect_myths("Do I need to carry a balance? And is 0% utilization best?")
        assert check.myth_ids == ["MYTH_0_UTIL_IS_BEST", "MYTH_CARRYING_BALANCE_BUILDS_SCORE"]

    def test_no_myth(self):
        assert not detect_myths("What is an APR?").detected

    def test_lookup(self):
        assert get_myth_by_id("MYTH_BNPL_HAS_NO_CREDIT_IMPACT").severity == "high"
        assert get_myth_by_id("nope") is None

    def test_ids_unique(self):
        ids = [m.id for m in CREDIT_MYTHS]
        assert len(ids) == len(set(ids))


class TestCalibration:
    def test_initial_questions_in_order(self):
        assert next_initial_question(None).id == "goal"
        assert next_initial_question({"goal": "score"}).id == "carry_balance"
        assert next_initial_question(FULL_CALIBRATION) is None
        assert len(INITIAL_CALIBRATION_QUESTIONS) == 6

    @pytest.mark.parametrize("overrides,depth", [
        ({}, AnswerDepth.ADVANCED),
        ({"wants_edge_cases": "no", "confidence_level": "high"}, AnswerDepth.INTERMEDIATE),
        ({"wants_edge_cases": "no"}, AnswerDepth.BEGINNER),
    ])
    def test_preferences_depth(self, overrides, depth):
        prefs = map_calibration_to_preferences({**FULL_CALIBRATION, **overrides})
        assert prefs.answer_depth == depth

    def test_preferences_flags(self):
        prefs = map_calibration_to_preferences({**FULL_CALIBRATION, "goal": "score", "carry_balance": "sometimes"})

        assert prefs.calibration["goal_score"]
        assert not prefs.calibration["goal_rewards"]
        assert prefs.calibration["carry_balance"]

    def test_topic_needs_missing_facts(self):
        block = topic_calibration("When should I pay to lower utilization?", {"credit_limit": 5000})

        assert block.needed
        assert block.topic_id == "utilization_timing"
        assert [q.id for q in block.questions] == ["statement_close_date", "current_balance", "target_utilization"]

    def test_topic_satisfied(self):
        provided = {"statement_close_date": 12, "current_balance": 800, "credit_limit": 5000, "target_utilization": "1-5"}
        assert not topic_calibration("When should I pay to lower utilization?", provided).needed

    def test_optional_facts_are_not_asked(self):
        block = topic_calibration("What is the best card for dining?", {})
        assert [q.id for q in block.questions] == ["spending_category"]


class TestDepthRules:
    def test_beginner_clamp(self):
        answer = apply_depth_rules(HardAnswer(**VERBOSE_ANSWER), AnswerDepth.BEGINNER)

        assert answer.summary == "First sentence. Second sentence."
        assert answer.steps == ["one", "two", "three"]
        assert answer.mechanics is None
        assert answer.edge_cases is None

    def test_intermediate_keeps_mechanics(self):
        answer = apply_depth_rules(HardAnswer(**VERBOSE_ANSWER), AnswerDepth.INTERMEDIATE)

        assert answer.mechanics == "Issuers report the statement balance."
        assert answer.edge_cases is None
        assert len(answer.steps) == 5

    def test_advanced_keeps_everything(self):
        answer = apply_depth_rules(HardAnswer(**VERBOSE_ANSWER), AnswerDepth.ADVANCED)
        assert answer.edge_cases == ["Some issuers report mid-cycle."]
        assert answer.summary.count(".") == 4

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", json.dumps({"steps": []}), None])
    def test_parse_rejects_bad_output(self, raw):
        with pytest.raises(AnswerContractError):
            parse_hard_answer(raw)

    def test_parse_ignores_extra_keys(self):
        answer = parse_hard_answer(json.dumps({"summary": "Pay in full.", "extra": 1}))
        assert answer.summary == "Pay in full."


class TestRedaction:
    def test_card_number_is_not_split(self):
        result = redact_pii("My card 4111 1111 1111 1111 was declined")

        assert result.text == "My card [CARD_NUMBER] was declined"
        assert result.types == ["card_number"]

    def test_email_phone_ssn(self):
        result = redact_pii("Email jane.doe@example.com, call 555-123-4567, SSN 123-45-6789")

        assert "[EMAIL]" in result.text
        assert "[PHONE]" in result.text
        assert "[SSN]" in result.text
        assert result.redacted_count == 3

    def test_account_number(self):
        assert redact_pii("account #12345678 is late").text == "[ACCOUNT] is late"

    def test_zip_only_with_address(self):
        with_address = redact_pii("I live at 123 Main Street, 94107")
        assert with_address.text == "I live at [ADDRESS], [ZIP]"
        assert with_address.types == ["address", "zip"]

        assert redact_pii("My score moved 12345 times").text == "My score moved 12345 times"

    def test_structure(self):
        redacted = redact_structure({"a": ["mail jane.doe@example.com"], "b": 3})
        assert redacted == {"a": ["mail [EMAIL]"], "b": 3}


class TestSanitize:
    def test_strips_control_characters(self):
        assert sanitize_question("  What\x00 is APR?\x07 ") == "What is APR?"

    @pytest.mark.parametrize("question", ["hi", "    ", "x" * 801])
    def test_length_bounds(self, question):
        with pytest.raises(ValueError):
            sanitize_question(question)


class TestAskEngine:
    """The full ask flow with an injected generator."""

    def test_myth_is_answered_without_generator(self):
        """
        Scenario: calibrated user asks whether 0% utilization is best.

        Expected: blocked myth answer quoting the 1-9% correction; the
        generator is never called.
        """
        # Arrange
        generator = RecordingGenerator()
        audit = []
        engine = AskEngine(generator=generator, audit_sink=audit.append)

        # Act
        response = engine.ask(AskRequest(question="Is 0% utilization best?"), calibrated())

        # Assert
        assert response.blocked
        assert response.question_type == QuestionType.MYTH
        assert response.myth_check.detected
        assert "1-9%" in response.summary
        assert not response.routing.llm_called
        assert generator.requests == []
        assert audit[0].outcome == "myth_blocked"

    def test_onboarding_required(self):
        engine = AskEngine(generator=RecordingGenerator())

        with pytest.raises(OnboardingRequiredError):
            engine.ask(AskRequest(question="What is an APR?"), AskContext(profile=None))
        with pytest.raises(OnboardingRequiredError):
            engine.ask(AskRequest(question="What is an APR?"), AskContext(profile=CreditProfile()))

    def test_uncalibrated_user_gets_first_question(self):
        generator = RecordingGenerator()

        response = AskEngine(generator=generator).ask(
            AskRequest(question="What is an APR?"), AskContext(profile=onboarded()),
        )

        assert response.calibration.needed
        assert response.calibration.topic_id == "initial"
        assert response.calibration.questions[0].id == "goal"
        assert not response.blocked
        assert generator.requests == []

    def test_supplied_calibration_sets_depth(self):
        generator = RecordingGenerator()

        response = AskEngine(generator=generator).ask(
            AskRequest(question="What is an APR?", calibration_answers=FULL_CALIBRATION),
            AskContext(profile=onboarded()),
        )

        assert response.answer_depth == AnswerDepth.ADVANCED
        assert len(generator.requests) == 1

    def test_balance_carrier_optimization_is_blocked(self):
        generator = RecordingGenerator()
        context = calibrated(onboarded(carry_balance=True))

        response = AskEngine(generator=generator).ask(
            AskRequest(question="Which card earns the most points at restaurants?"), context,
        )

        assert response.blocked
        assert response.question_type == QuestionType.OPTIMIZATION
        assert response.unlock_conditions == BALANCE_UNLOCK_CONDITIONS
        assert all(step.startswith("To unlock: ") for step in response.steps)
        assert generator.requests == []

    def test_topic_calibration(self):
        generator = RecordingGenerator()

        response = AskEngine(generator=generator).ask(
            AskRequest(question="When should I pay to lower utilization?"), calibrated(),
        )

        assert response.calibration.topic_id == "utilization_timing"
        assert generator.requests == []

    def test_generated_answer_is_clamped(self):
        generator = RecordingGenerator()

        response = AskEngine(generator=generator, model_name="test-model").ask(
            AskRequest(question="What is a credit utilization ratio?"), calibrated(),
        )

        assert response.answer_depth == AnswerDepth.BEGINNER
        assert response.summary == "First sentence. Second sentence."
        assert len(response.steps) == 3
        assert response.mechanics is None
        assert not response.blocked
        assert response.block_reason is None
        assert response.routing.llm_called
        assert response.routing.model == "test-model"

    def test_request_depth_wins(self):
        generator = RecordingGenerator()
        context = calibrated(stored_depth=AnswerDepth.BEGINNER)

        response = AskEngine(generator=generator).ask(
            AskRequest(question="What is a credit utilization ratio?", answer_depth="advanced"), context,
        )

        assert response.answer_depth == AnswerDepth.ADVANCED
        assert generator.requests[0].depth == AnswerDepth.ADVANCED

    def test_risk_tone_adds_warning(self):
        generator = RecordingGenerator({"summary": "It depends.", "steps": []})

        response = AskEngine(generator=generator).ask(
            AskRequest(question="Should I use Klarna for a large purchase?"), calibrated(),
        )

        request = generator.requests[0]
        assert request.risk_tone
        assert "Lead with the downsides" in request.system_prompt
        assert response.routing.risk_tone
        assert response.warnings == [RISK_TONE_WARNING]

    def test_malformed_generator_output(self):
        engine = AskEngine(generator=RecordingGenerator("Sure! Here's my answer"))

        with pytest.raises(AnswerContractError):
            engine.ask(AskRequest(question="What is an APR?"), calibrated())

    def test_missing_generator(self):
        with pytest.raises(LLMUnavailableError):
            AskEngine().ask(AskRequest(question="What is an APR?"), calibrated())

    def test_audit_is_redacted(self):
        audit = []
        engine = AskEngine(generator=RecordingGenerator(), audit_sink=audit.append)

        engine.ask(AskRequest(question="I'm jane.doe@example.com. Is 0% utilization best?"), calibrated())

        record = audit[0]
        assert "jane.doe" not in record.question_redacted
        assert "[EMAIL]" in record.question_redacted
        assert record.redaction_types == ["email"]
        assert record.user_id == "u1"
        assert not record.llm_called
