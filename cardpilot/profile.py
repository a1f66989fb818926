"""
User-declared credit profile and the state derived from it.

The profile is only ever written by onboarding and profile-update flows.
Everything here reads it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ExperienceLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class CreditIntent(str, Enum):
    SCORE = "score"
    REWARDS = "rewards"
    BOTH = "both"


class BnplUsage(str, Enum):
    NEVER = "never"
    SOMETIMES = "sometimes"
    OFTEN = "often"


class CreditHistory(str, Enum):
    NONE = "none"
    THIN = "thin"
    ONE_TO_THREE_YEARS = "1_3y"
    THREE_PLUS = "3_plus"
    ESTABLISHED = "established"


AGE_BUCKETS = ("<18", "18-20", "21-24", "25-34", "35-44", "45-54", "55+")
INCOME_BUCKETS = ("<25k", "25-50k", "50-100k", "100-200k", "200k+", "prefer_not")
LOW_INCOME_BUCKETS = ("<25k", "25-50k")


@dataclass
class CreditProfile:
    """
    Self-reported credit situation for one user.

    Fields:
    - user_id: owner
    - experience_level: beginner | intermediate | advanced
    - intent: score | rewards | both
    - carry_balance: user carries a balance month to month
    - bnpl_usage: never | sometimes | often, or None if unanswered
    - age_bucket / income_bucket: coarse demographic buckets
    - credit_history: none | thin | 1_3y | 3_plus | established
    - has_derogatories: late payments, collections or similar on file
    - confidence_level: user's own confidence with credit
    - onboarding_completed: onboarding flow finished
    """
    user_id: Optional[str] = None
    experience_level: ExperienceLevel = ExperienceLevel.BEGINNER
    intent: CreditIntent = CreditIntent.BOTH
    carry_balance: bool = False
    bnpl_usage: Optional[BnplUsage] = None
    age_bucket: Optional[str] = None
    income_bucket: Optional[str] = None
    credit_history: Optional[CreditHistory] = None
    has_derogatories: bool = False
    confidence_level: Optional[str] = None
    onboarding_completed: bool = False

    def __post_init__(self):
        self.experience_level = ExperienceLevel(self.experience_level)
        self.intent = CreditIntent(self.intent)
        if self.bnpl_usage is not None:
            self.bnpl_usage = BnplUsage(self.bnpl_usage)
        if self.credit_history is not None:
            self.credit_history = CreditHistory(self.credit_history)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CreditProfile":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


class StateStage(str, Enum):
    STARTER = "starter"
    BUILDER = "builder"
    OPTIMIZER = "optimizer"
    ADVANCED_OPTIMIZER = "advanced_optimizer"


class EducationMode(str, Enum):
    STRICT = "strict"
    STANDARD = "standard"
    LIGHT = "light"


@dataclass(frozen=True)
class CreditState:
    """
    Coarse product policy derived from a profile.

    Fields:
    - stage: starter | builder | optimizer | advanced_optimizer
    - max_allowed_card_tier: 1 (secured/student) to 4 (premium)
    - education_mode: how much hand-holding answers should carry
    - risk_ceiling: low | medium | high
    - suppression_flags: features to hide for this user
    """
    stage: StateStage
    max_allowed_card_tier: int
    education_mode: EducationMode
    risk_ceiling: str
    suppression_flags: List[str] = field(default_factory=list)

    def is_suppressed(self, flag: str) -> bool:
        return flag in self.suppression_flags


def derive_credit_state(profile: CreditProfile) -> CreditState:
    """
    Deterministically derive the credit state for a profile.

    Starts from a conservative default (builder, tier 2, standard education,
    medium risk ceiling) and only ever narrows it, except for advanced users
    with no risk flags who are lifted to optimizer.
    """
    flags: List[str] = []
    stage = StateStage.BUILDER
    max_tier = 2
    education = EducationMode.STANDARD
    risk_ceiling = "medium"

    if profile.age_bucket == "<18":
        stage = StateStage.STARTER
        max_tier = 1
        flags.append("age_restriction")
    elif profile.age_bucket == "18-20":
        stage = StateStage.STARTER
        max_tier = 1
        flags.append("limited_credit_history")

    if profile.carry_balance:
        if stage != StateStage.STARTER:
            stage = StateStage.BUILDER
        max_tier = min(max_tier, 2)
        flags.extend(["balance_carrier", "suppress_rewards_optimization"])
        risk_ceiling = "low"

    if profile.bnpl_usage == BnplUsage.OFTEN:
        flags.extend(["high_bnpl_usage", "suppress_premium_cards"])
        risk_ceiling = "low"
    elif profile.bnpl_usage == BnplUsage.SOMETIMES:
        flags.append("moderate_bnpl_usage")

    if profile.experience_level == ExperienceLevel.BEGINNER:
        education = EducationMode.STRICT
        if stage != StateStage.STARTER:
            stage = StateStage.BUILDER
    elif profile.experience_level == ExperienceLevel.ADVANCED:
        education = EducationMode.LIGHT
        risky = profile.carry_balance or profile.bnpl_usage == BnplUsage.OFTEN
        if not risky and stage != StateStage.STARTER:
            stage = StateStage.OPTIMIZER
            max_tier = 4

    if profile.income_bucket in LOW_INCOME_BUCKETS:
        max_tier = min(max_tier, 2)
        flags.append("suppress_high_fee_cards")

    if profile.intent == CreditIntent.SCORE:
        flags.append("score_focused")

    return CreditState(
        stage=stage,
        max_allowed_card_tier=max_tier,
        education_mode=education,
        risk_ceiling=risk_ceiling,
        suppression_flags=flags,
    )
