"""
Calibration questions.

A user answers six initial questions once. Some topics additionally need
specific facts (balance, limit, APR...) before they can be answered well;
those are asked per question, at most five at a time.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from cardpilot.ask.answer import AnswerDepth, CalibrationBlock, CalibrationOption, CalibrationQuestion

MAX_TOPIC_QUESTIONS = 5


def _question(qid: str, prompt: str, qtype: str, options: Optional[List[Tuple[str, str]]] = None,
              required: bool = True) -> CalibrationQuestion:
    return CalibrationQuestion(
        id=qid,
        prompt=prompt,
        type=qtype,
        options=[CalibrationOption(value=v, label=l) for v, l in options] if options else None,
        required=required,
    )


INITIAL_CALIBRATION_QUESTIONS = [
    _question("goal", "What is your primary goal?", "single_select", [
        ("score", "Build/Protect Credit Score"), ("rewards", "Maximize Rewards"), ("both", "Both"),
    ]),
    _question("carry_balance", "Do you carry a balance month to month?", "single_select", [
        ("no", "No, I pay in full"), ("sometimes", "Sometimes"), ("usually", "Usually"),
    ]),
    _question("knows_statement_vs_due", "Do you know the difference between statement close and due date?",
              "single_select", [("yes", "Yes"), ("no", "No"), ("unsure", "Not sure")]),
    _question("bnpl_usage", "How often do you use Buy Now, Pay Later (BNPL)?", "single_select", [
        ("never", "Never"), ("sometimes", "Sometimes"), ("often", "Often"),
    ]),
    _question("confidence_level", "How confident are you about credit decisions?", "single_select", [
        ("low", "Not confident"), ("medium", "Somewhat confident"), ("high", "Very confident"),
    ]),
    _question("wants_edge_cases", "Do you want answers to include edge cases and assumptions?", "single_select", [
        ("no", "No, keep it simple"), ("yes", "Yes, show me everything"),
    ]),
]


@dataclass(frozen=True)
class TopicRequirement:
    topic_id: str
    patterns: Tuple[re.Pattern, ...]
    questions: List[CalibrationQuestion] = field(default_factory=list)

    def matches(self, question: str) -> bool:
        return any(p.search(question) for p in self.patterns)


def _patterns(*raw: str) -> Tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in raw)


TOPIC_REQUIREMENTS = [
    TopicRequirement(
        "utilization_timing",
        _patterns(
            r"when\s*(should\s*i\s*)?(pay|make\s*payment)\s*(to\s*)?(lower|reduce|optimize)\s*utilization",
            r"utilization\s*(timing|when|before|after)",
            r"statement\s*close\s*(date|when|timing)",
            r"pay\s*before\s*statement",
            r"optimize\s*utilization",
        ),
        [
            _question("statement_close_date", "When does your statement close? (day of month)", "number"),
            _question("current_balance", "What is your current balance?", "currency"),
            _question("credit_limit", "What is your credit limit?", "currency"),
            _question("target_utilization", "What utilization % are you targeting?", "single_select", [
                ("1-5", "1-5% (optimal)"), ("6-10", "6-10% (good)"),
                ("11-30", "11-30% (acceptable)"), ("unsure", "Not sure"),
            ]),
        ],
    ),
    TopicRequirement(
        "bnpl_risk",
        _patterns(
            r"bnpl\s*(safe|risk|danger|affect|impact)",
            r"buy\s*now\s*pay\s*later\s*(safe|risk|good|bad)",
            r"(affirm|klarna|afterpay)\s*(risk|safe|good)",
            r"should\s*i\s*(use\s*)?bnpl",
        ),
        [
            _question("bnpl_current_usage", "How often do you currently use BNPL?", "single_select", [
                ("never", "Never"), ("rarely", "Rarely (1-2x/year)"),
                ("sometimes", "Sometimes (monthly)"), ("often", "Often (weekly)"),
            ]),
            _question("bnpl_outstanding", "Do you have any outstanding BNPL balances?", "single_select", [
                ("no", "No"), ("yes_current", "Yes, all current"), ("yes_late", "Yes, some late"),
            ]),
        ],
    ),
    TopicRequirement(
        "card_recommendation",
        _patterns(
            r"which\s*card\s*(should|best|recommend)",
            r"best\s*card\s*for",
            r"recommend\s*(a\s*)?card",
            r"what\s*card\s*should\s*i\s*(use|get|apply)",
        ),
        [
            _question("spending_category", "What category is this purchase?", "single_select", [
                ("dining", "Dining"), ("groceries", "Groceries"), ("travel", "Travel"),
                ("gas", "Gas"), ("online", "Online Shopping"), ("general", "General/Other"),
            ]),
            _question("purchase_amount", "Approximate purchase amount?", "currency", required=False),
        ],
    ),
    TopicRequirement(
        "balance_payoff",
        _patterns(
            r"pay\s*off\s*(my\s*)?(debt|balance|card)",
            r"debt\s*(payoff|strategy|plan)",
            r"avalanche|snowball\s*method",
            r"which\s*(balance|card)\s*(to\s*)?pay\s*first",
        ),
        [
            _question("num_cards_with_balance", "How many cards have a balance?", "number"),
            _question("total_debt", "Approximate total credit card debt?", "currency"),
            _question("highest_apr", "What is your highest APR?", "single_select", [
                ("under_15", "Under 15%"), ("15-20", "15-20%"), ("20-25", "20-25%"),
                ("over_25", "Over 25%"), ("unknown", "Not sure"),
            ]),
        ],
    ),
    TopicRequirement(
        "credit_limit_increase",
        _patterns(
            r"credit\s*limit\s*(increase|raise|higher)",
            r"cli\s*(request|ask|get)",
            r"increase\s*(my\s*)?limit",
            r"ask\s*for\s*(more|higher)\s*limit",
        ),
        [
            _question("current_limit", "What is your current credit limit?", "currency"),
            _question("account_age_months", "How long have you had this card?", "single_select", [
                ("under_6", "Under 6 months"), ("6-12", "6-12 months"),
                ("1-2_years", "1-2 years"), ("over_2", "Over 2 years"),
            ]),
        ],
    ),
]


def next_initial_question(answers: Optional[Mapping[str, Any]]) -> Optional[CalibrationQuestion]:
    """First required initial question without an answer, or None when complete."""
    answers = answers or {}
    for question in INITIAL_CALIBRATION_QUESTIONS:
        if question.required and not answers.get(question.id):
            return question
    return None


def topic_calibration(question: str, provided: Optional[Mapping[str, Any]]) -> CalibrationBlock:
    """
    Check whether a calibrated user's question still needs topic facts.

    Args:
        question: the user's question
        provided: facts already supplied with the request

    Returns:
        CalibrationBlock; ``needed`` is False when no topic matches or all
        required facts are present
    """
    provided = provided or {}
    for topic in TOPIC_REQUIREMENTS:
        if not topic.matches(question):
            continue
        missing = [q for q in topic.questions if q.required and not provided.get(q.id)]
        if missing:
            return CalibrationBlock(needed=True, topic_id=topic.topic_id, questions=missing[:MAX_TOPIC_QUESTIONS])
    return CalibrationBlock(needed=False)


@dataclass(frozen=True)
class CalibrationPreferences:
    answer_depth: AnswerDepth
    calibration: Dict[str, Any]


def map_calibration_to_preferences(answers: Mapping[str, Any]) -> CalibrationPreferences:
    """Turn raw calibration answers into stored preferences and a default depth."""
    calibration: Dict[str, Any] = {}
    goal = answers.get("goal")
    if goal:
        calibration["goal_score"] = goal in ("score", "both")
        calibration["goal_rewards"] = goal in ("rewards", "both")
    if answers.get("carry_balance"):
        calibration["carry_balance"] = answers["carry_balance"] != "no"
    if answers.get("knows_statement_vs_due"):
        calibration["knows_statement_vs_due"] = answers["knows_statement_vs_due"] == "yes"
    if answers.get("bnpl_usage"):
        calibration["bnpl_usage"] = answers["bnpl_usage"]
    if answers.get("confidence_level"):
        calibration["confidence_level"] = answers["confidence_level"]

    if answers.get("wants_edge_cases") == "yes":
        depth = AnswerDepth.ADVANCED
    elif answers.get("confidence_level") == "high":
        depth = AnswerDepth.INTERMEDIATE
    else:
        depth = AnswerDepth.BEGINNER
    return CalibrationPreferences(answer_depth=depth, calibration=calibration)
