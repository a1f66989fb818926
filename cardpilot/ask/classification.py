"""Keyword classification of credit questions."""

import re

from cardpilot.ask.answer import QuestionType

OPTIMIZATION_KEYWORDS = (
    "best card", "which card", "recommend", "points", "cashback", "cash back", "miles",
    "rewards", "earning rate", "multiplier", "category bonus", "rotating", "maximize",
    "sign-up bonus", "signup bonus", "transfer partner",
)

PROCEDURE_PATTERNS = (
    re.compile(r"\bhow\s+(do|can|should)\s+i\b", re.IGNORECASE),
    re.compile(r"\bhow\s+to\b", re.IGNORECASE),
    re.compile(r"\bsteps?\s+to\b", re.IGNORECASE),
    re.compile(r"\bwhat\s+should\s+i\s+do\b", re.IGNORECASE),
)

HIGH_RISK_PATTERNS = (
    re.compile(r"\b(bnpl|buy\s*now,?\s*pay\s*later)\b", re.IGNORECASE),
    re.compile(r"\b(affirm|klarna|afterpay|sezzle|zip\s*pay|paypal\s*pay\s*in\s*4)\b", re.IGNORECASE),
    re.compile(r"\bcash\s*advances?\b", re.IGNORECASE),
    re.compile(r"\bpayday\s*(loans?|lenders?)?\b", re.IGNORECASE),
    re.compile(r"\bminimum\s*payments?\b", re.IGNORECASE),
    re.compile(r"\b(large|big|major|expensive)\s+purchases?\b", re.IGNORECASE),
)


def is_high_risk(question: str) -> bool:
    return any(p.search(question) for p in HIGH_RISK_PATTERNS)


def classify_question(question: str) -> QuestionType:
    """
    Classify a question by its wording.

    Reward-maximization language wins over everything else, then high-risk
    products, then how-to phrasing. Myth matching happens separately and
    takes precedence over this classification in the guard.
    """
    lowered = question.lower()
    if any(kw in lowered for kw in OPTIMIZATION_KEYWORDS):
        return QuestionType.OPTIMIZATION
    if is_high_risk(question):
        return QuestionType.RISK
    if any(p.search(question) for p in PROCEDURE_PATTERNS):
        return QuestionType.PROCEDURE
    return QuestionType.EDUCATION


def requires_risk_tone(question: str, carry_balance: bool) -> bool:
    """Lead with downsides and drop reward framing for risky questions or balance carriers."""
    return carry_balance or is_high_risk(question)
