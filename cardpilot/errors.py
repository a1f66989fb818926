"""
Exception hierarchy for the cardpilot core.

Blocking an answer or failing to resolve a merchant are not errors and are
never raised. These exceptions mark contract violations and external failures.
"""

from typing import List, Optional


class CardPilotError(Exception):
    """Base class for all core errors."""


class InvalidCategoryError(CardPilotError):
    """An external classifier returned a category outside the closed enum."""

    def __init__(self, category: str):
        super().__init__(f"Unknown merchant category: {category!r}")
        self.category = category


class InvalidTransitionError(CardPilotError):
    """A review-queue entry was moved out of a terminal state."""


class PathwayValidationError(CardPilotError):
    """Pathway output failed schema validation."""

    def __init__(self, violations: List[str]):
        super().__init__("Invalid pathway output: " + "; ".join(violations))
        self.violations = violations


class AnswerContractError(CardPilotError):
    """The answer generator returned something that is not the agreed JSON shape."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class LLMUnavailableError(CardPilotError):
    """The answer generator could not be reached or timed out."""


class LLMQuotaError(CardPilotError):
    """The answer generator refused the call for billing or quota reasons."""


class OnboardingRequiredError(CardPilotError):
    """The user asked a question before finishing credit-profile onboarding."""
