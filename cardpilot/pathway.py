"""
Credit pathway engine.

Maps a user's credit profile to one of five stages and builds the
stage-specific plan around it: focus items, next moves, do-nots, card
suggestions, a timeline and behavior rules. The finished plan is validated
against the pathway contract before it is returned.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple

from cardpilot.pathway_schema import (
    CardConfidence,
    CreditStage,
    NextMove,
    PathwayOutput,
    Priority,
    RecommendedCard,
    TimelineMilestone,
    validate_pathway_output,
)
from cardpilot.profile import BnplUsage, CreditHistory, CreditProfile

BASE_CONFIDENCE = 80
PENALTY = 10
REVIEW_INTERVAL_DAYS = 30

PREMIUM_FAMILY_MARKERS = ("platinum", "reserve", "infinite")
ESTABLISHED_HISTORIES = (CreditHistory.ESTABLISHED, CreditHistory.ONE_TO_THREE_YEARS, CreditHistory.THREE_PLUS)


@dataclass(frozen=True)
class CurrentCard:
    issuer: str
    product_family: str
    network: str = ""
    annual_fee: bool = False
    opened_year: Optional[int] = None

    @property
    def is_premium(self) -> bool:
        family = (self.product_family or "").lower()
        return any(marker in family for marker in PREMIUM_FAMILY_MARKERS)


@dataclass(frozen=True)
class KnownConstraints:
    """
    Fields:
    - chase_5_24_estimate: new accounts opened in the last 24 months
    - willing_to_pay_af: user accepts annual-fee cards
    - travel_frequency: never | sometimes | often
    """
    chase_5_24_estimate: Optional[int] = None
    willing_to_pay_af: bool = False
    travel_frequency: Optional[str] = None

    @property
    def over_5_24(self) -> bool:
        return bool(self.chase_5_24_estimate) and self.chase_5_24_estimate >= 5


@dataclass
class PathwayProfile:
    age_bucket: Optional[str] = None
    income_bucket: Optional[str] = None
    experience_level: Optional[str] = None
    credit_history: Optional[CreditHistory] = None
    has_derogatories: bool = False
    carry_balance: bool = False
    bnpl_usage: Optional[BnplUsage] = None
    intent: Optional[str] = None
    current_cards: List[CurrentCard] = field(default_factory=list)
    known_constraints: KnownConstraints = field(default_factory=KnownConstraints)

    def __post_init__(self):
        if self.credit_history is not None:
            self.credit_history = CreditHistory(self.credit_history)
        if self.bnpl_usage is not None:
            self.bnpl_usage = BnplUsage(self.bnpl_usage)

    @property
    def card_count(self) -> int:
        return len(self.current_cards)

    @property
    def has_premium_card(self) -> bool:
        return any(c.is_premium for c in self.current_cards)

    @property
    def has_annual_fee_card(self) -> bool:
        return any(c.annual_fee for c in self.current_cards)


@dataclass(frozen=True)
class StageAssessment:
    stage: CreditStage
    confidence: int
    reasons: List[str]


def _select_stage(profile: PathwayProfile, reasons: List[str]) -> Tuple[CreditStage, int]:
    """Return the first matching stage and the confidence deduction of its rule."""
    cards = profile.card_count
    history = profile.credit_history

    if history == CreditHistory.NONE or cards == 0:
        reasons.append("No credit history or cards detected")
        return CreditStage.FOUNDATION, 0

    if history == CreditHistory.THIN or (1 <= cards <= 2 and not profile.has_premium_card):
        reasons.append("Building credit history with limited cards")
        if history == CreditHistory.THIN:
            reasons.append("Thin credit file")
        return CreditStage.BUILD, 0

    if profile.carry_balance:
        reasons.append("Carrying balance - focus on debt payoff")
        return CreditStage.BUILD, PENALTY

    if cards >= 3 and history in ESTABLISHED_HISTORIES:
        reasons.append("Established history with multiple cards")
        reasons.append("Ready for rewards optimization")
        return CreditStage.OPTIMIZE, 0

    if cards >= 5 or profile.known_constraints.willing_to_pay_af:
        reasons.append("Extensive card portfolio")
        if profile.has_annual_fee_card:
            reasons.append("Already managing annual fee cards")
        return CreditStage.SCALE, 0

    if cards >= 7 and history == CreditHistory.THREE_PLUS and not profile.has_derogatories:
        reasons.append("Advanced credit user with extensive history")
        return CreditStage.ELITE, 0

    reasons.append("General credit building phase")
    return CreditStage.BUILD, 0


def compute_credit_stage(profile: PathwayProfile) -> StageAssessment:
    """
    Classify a profile into a credit stage.

    First matching rule wins:
    1. no history or no cards -> foundation
    2. thin file, or 1-2 cards without a premium card -> build
    3. carrying a balance -> build (ceiling)
    4. 3+ cards with established history -> optimize
    5. 5+ cards or willing to pay annual fees -> scale
    6. 7+ cards, 3+ years of history, no derogatories -> elite
    7. otherwise build

    Confidence starts at 80. The balance rule takes 10 off when it is the
    rule that matched; missing income data and history "none" reported
    alongside cards take 10 off at any stage.

    Args:
        profile: PathwayProfile to classify

    Returns:
        StageAssessment with stage, 0-100 confidence and reasons
    """
    reasons: List[str] = []
    stage, deduction = _select_stage(profile, reasons)

    confidence = BASE_CONFIDENCE - deduction
    if profile.credit_history == CreditHistory.NONE and profile.card_count > 0:
        confidence -= PENALTY
        reasons.append("Possible data inconsistency")
    if not profile.income_bucket or profile.income_bucket == "prefer_not":
        confidence -= PENALTY

    return StageAssessment(stage=stage, confidence=max(0, min(100, confidence)), reasons=reasons)


def _immediate_focus(stage: CreditStage, profile: PathwayProfile) -> List[str]:
    focus = []
    if profile.carry_balance:
        focus.append("Pay down existing balances - this is your #1 priority")
        focus.append("Set up autopay for at least minimums on all cards")

    if stage == CreditStage.FOUNDATION:
        focus.append("Apply for a secured or student card")
        focus.append("Set up autopay before your first statement")
        if not profile.carry_balance:
            focus.append("Use the card monthly for small purchases")
    elif stage == CreditStage.BUILD:
        focus.append("Keep utilization under 30% (under 10% is optimal)")
        focus.append("Make every payment on time")
        focus.append("Wait 6+ months before applying for additional cards")
    elif stage == CreditStage.OPTIMIZE:
        focus.append("Match spending to category bonus cards")
        focus.append("Track 5/24 status if considering Chase cards")
        focus.append("Request credit limit increases annually")
    elif stage == CreditStage.SCALE:
        focus.append("Evaluate annual fee value vs. benefits used")
        focus.append("Consider product changes for underused cards")
        focus.append("Build issuer relationships strategically")
    elif stage == CreditStage.ELITE:
        focus.append("Maximize transfer partner value")
        focus.append("Time applications for best signup bonuses")
        focus.append("Annual card portfolio review")

    return focus[:5]


def _move(action: str, condition: str, rationale: str, priority: Priority) -> NextMove:
    return NextMove(action=action, condition=condition, rationale=rationale, priority=priority)


def _next_moves(stage: CreditStage, profile: PathwayProfile) -> List[NextMove]:
    moves = []
    if profile.carry_balance:
        moves.append(_move(
            "Create a debt payoff plan using avalanche or snowball method",
            "If carrying balances on multiple cards",
            "Interest payments negate any rewards value. Payoff is always the priority.",
            Priority.NOW,
        ))

    if stage == CreditStage.FOUNDATION:
        moves.append(_move(
            "Apply for Discover it Secured or student card",
            "If no credit cards currently",
            "Discover has high approval rates and graduates to unsecured automatically.",
            Priority.NOW,
        ))
        moves.append(_move(
            "Set up automatic full balance payment",
            "After receiving first card",
            "Builds payment history while avoiding interest.",
            Priority.NOW,
        ))
        moves.append(_move(
            "Request credit limit increase",
            "After 6 months of on-time payments",
            "Lower utilization ratio improves score.",
            Priority.LATER,
        ))
    elif stage == CreditStage.BUILD:
        moves.append(_move(
            "Apply for second no-annual-fee card",
            "After 6+ months of history with first card",
            "Builds credit mix and total available credit.",
            Priority.SOON,
        ))
        moves.append(_move(
            "Pay statement balance before due date",
            "Every billing cycle",
            "Maintains zero interest and builds positive history.",
            Priority.NOW,
        ))
    elif stage == CreditStage.OPTIMIZE:
        moves.append(_move(
            "Evaluate category-specific cards for top spending",
            "If monthly dining/grocery spend exceeds $300",
            "Category bonuses can yield 3-4% instead of flat 1.5-2%.",
            Priority.SOON,
        ))
        if not profile.known_constraints.over_5_24:
            moves.append(_move(
                "Consider Chase Sapphire Preferred for travel/dining",
                "If under 5/24 and have 1+ year history",
                "Entry to valuable Ultimate Rewards ecosystem.",
                Priority.SOON,
            ))
        moves.append(_move(
            "Request credit limit increases on existing cards",
            "Every 6-12 months with on-time history",
            "Higher limits keep utilization low as spending grows.",
            Priority.LATER,
        ))
    elif stage in (CreditStage.SCALE, CreditStage.ELITE):
        moves.append(_move(
            "Review annual fee cards for positive ROI",
            "Before annual fee posts each year",
            "Downgrade or cancel cards where benefits used < fee paid.",
            Priority.SOON,
        ))
        moves.append(_move(
            "Consider premium cards with travel perks",
            "If travel frequency justifies premium annual fees",
            "Lounge access and credits can offset high fees for frequent travelers.",
            Priority.LATER,
        ))

    return moves[:6]


def _do_nots(stage: CreditStage, profile: PathwayProfile) -> List[str]:
    do_nots = [
        "Do not miss a payment - this has the biggest negative impact",
        "Do not apply for multiple cards within 30 days",
    ]
    if stage in (CreditStage.FOUNDATION, CreditStage.BUILD):
        do_nots.append("Do not close your oldest card")
        do_nots.append("Do not max out your credit limit")
        do_nots.append("Do not apply for premium cards yet - build history first")
    if profile.carry_balance:
        do_nots.append("Do not apply for new cards while carrying balances")
        do_nots.append("Do not chase rewards - focus on debt elimination")
    if profile.bnpl_usage == BnplUsage.OFTEN:
        do_nots.append("Do not use BNPL for discretionary purchases - it fragments spending")
    if stage in (CreditStage.OPTIMIZE, CreditStage.SCALE):
        do_nots.append("Do not exceed 5/24 if you want Chase cards")
        do_nots.append("Do not pay annual fees for cards you don't use")
    return do_nots[:6]


def _recommended_cards(stage: CreditStage, profile: PathwayProfile) -> List[RecommendedCard]:
    if profile.carry_balance:
        return []

    blocked = profile.known_constraints.over_5_24
    cards = []
    if stage == CreditStage.FOUNDATION:
        cards.append(RecommendedCard(
            name="Discover it Secured",
            reason="Best secured card - $200 deposit, graduates to unsecured.",
            timing="Apply now",
            confidence=CardConfidence.HIGH,
        ))
        cards.append(RecommendedCard(
            name="Capital One Platinum Secured",
            reason="Alternative secured option with no deposit for some.",
            timing="If Discover not available",
            confidence=CardConfidence.MEDIUM,
        ))
    elif stage == CreditStage.BUILD:
        cards.append(RecommendedCard(
            name="Chase Freedom Flex",
            reason="5% rotating categories, 3% dining. Builds Chase relationship.",
            timing="After 12+ months of history",
            confidence=CardConfidence.LOW if blocked else CardConfidence.MEDIUM,
        ))
        cards.append(RecommendedCard(
            name="Citi Double Cash",
            reason="Effective 2% on everything. Simple flat-rate card.",
            timing="After 12+ months of history",
            confidence=CardConfidence.MEDIUM,
        ))
    elif stage == CreditStage.OPTIMIZE:
        if not blocked:
            cards.append(RecommendedCard(
                name="Chase Sapphire Preferred",
                reason="Entry to Ultimate Rewards. 3x dining/travel.",
                timing="When under 5/24 with 720+ score",
                confidence=CardConfidence.MEDIUM,
            ))
        cards.append(RecommendedCard(
            name="Amex Gold",
            reason="4x restaurants/groceries. Excellent for food spend.",
            timing="If dining spend exceeds $300/month",
            confidence=CardConfidence.MEDIUM,
        ))
    elif profile.known_constraints.travel_frequency == "often":
        cards.append(RecommendedCard(
            name="Chase Sapphire Reserve",
            reason="Premium travel perks, $300 credit, lounge access.",
            timing="If travel spend justifies $550 fee",
            confidence=CardConfidence.LOW if blocked else CardConfidence.MEDIUM,
        ))
        cards.append(RecommendedCard(
            name="Amex Platinum",
            reason="Centurion lounges, 5x flights, extensive credits.",
            timing="For frequent travelers who can use credits",
            confidence=CardConfidence.MEDIUM,
        ))
    return cards[:5]


def _timeline(stage: CreditStage, profile: PathwayProfile) -> List[TimelineMilestone]:
    rows = []
    if profile.carry_balance:
        rows.append(("Pay off balances", "Priority #1", "All cards at $0 balance"))

    if stage == CreditStage.FOUNDATION:
        rows.extend([
            ("Get first credit card", "Within 30 days", "Approved for secured or student card"),
            ("Set up autopay", "Before first statement", "Full balance autopay enabled"),
            ("Build 6 months history", "In 6 months", "Perfect payment record"),
            ("Request credit limit increase", "After 6 months", "Higher limit, lower utilization"),
        ])
    elif stage == CreditStage.BUILD:
        rows.extend([
            ("Maintain perfect payments", "Ongoing", "100% on-time payment rate"),
            ("Consider second card", "At 6-12 months", "Additional no-AF card approved"),
            ("Reach established credit", "At 12-24 months", "Ready for optimizer phase"),
        ])
    else:
        rows.extend([
            ("Optimize category coverage", "Ongoing", "Top spend categories have bonus cards"),
            ("Annual fee audit", "Before renewal", "All fees offset by benefits used"),
            ("Portfolio review", "Every 6 months", "Strategy aligned with goals"),
        ])

    return [TimelineMilestone(title=t, when=w, success_metric=m) for t, w, m in rows[:8]]


def _behavior_rules(stage: CreditStage, profile: PathwayProfile) -> List[str]:
    rules = [
        "Always pay at least the minimum by due date",
        "Keep utilization under 30% (under 10% is optimal)",
    ]
    if stage in (CreditStage.FOUNDATION, CreditStage.BUILD):
        rules.extend([
            "Do not apply for multiple cards simultaneously",
            "Wait 6+ months between applications",
            "Use the card monthly for small purchases",
            "Set up autopay for at least the minimum",
        ])
    else:
        rules.extend([
            "Request credit limit increases every 6-12 months",
            "Track your 5/24 status if considering Chase cards",
            "Match card usage to bonus categories",
        ])
    if profile.carry_balance:
        rules.append("PRIORITY: Pay off existing balances before optimizing rewards")
        rules.append("Do not charge new purchases while carrying a balance")
    return rules[:8]


def build_pathway(profile: PathwayProfile, now: date) -> PathwayOutput:
    """
    Build and validate the complete pathway for a profile.

    Args:
        profile: PathwayProfile
        now: reference date; the next review is 30 days after it

    Returns:
        Validated PathwayOutput

    Raises:
        PathwayValidationError: if the generated plan breaks the contract
    """
    assessment = compute_credit_stage(profile)
    stage = assessment.stage

    output = {
        "credit_stage": stage,
        "stage_confidence": assessment.confidence,
        "stage_reasons": assessment.reasons,
        "immediate_focus": _immediate_focus(stage, profile),
        "next_moves": [m.model_dump() for m in _next_moves(stage, profile)],
        "do_nots": _do_nots(stage, profile),
        "recommended_cards": [c.model_dump() for c in _recommended_cards(stage, profile)],
        "timeline": [t.model_dump() for t in _timeline(stage, profile)],
        "next_review_date": now + timedelta(days=REVIEW_INTERVAL_DAYS),
        "behavior_rules": _behavior_rules(stage, profile),
    }
    return validate_pathway_output(output)


def pathway_from_credit_profile(
    profile: CreditProfile,
    now: date,
    current_cards: Optional[Sequence[CurrentCard]] = None,
    known_constraints: Optional[KnownConstraints] = None,
) -> PathwayOutput:
    """Build a pathway from a stored credit profile plus the user's wallet."""
    pathway_profile = PathwayProfile(
        age_bucket=profile.age_bucket,
        income_bucket=profile.income_bucket,
        experience_level=profile.experience_level.value,
        credit_history=profile.credit_history,
        has_derogatories=profile.has_derogatories,
        carry_balance=profile.carry_balance,
        bnpl_usage=profile.bnpl_usage,
        intent=profile.intent.value,
        current_cards=list(current_cards or []),
        known_constraints=known_constraints or KnownConstraints(),
    )
    return build_pathway(pathway_profile, now)
