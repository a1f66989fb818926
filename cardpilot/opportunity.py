"""
Missed-rewards analysis and BNPL risk scoring.

Everything here is deterministic: same transactions and cards in, same
report out. No function reads the clock.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from cardpilot.models import Transaction, TransactionCategory

GENERAL = "general"

# Conservative cents-per-point valuations
POINT_VALUES: Dict[str, float] = {
    "chase_ur": 1.25,
    "amex_mr": 1.0,
    "capital_one": 1.0,
    "citi_typ": 1.0,
    "cashback": 1.0,
}

MIN_REPORTABLE_MISS_USD = 0.10


@dataclass(frozen=True)
class EarningRule:
    card_id: str
    card_name: str
    issuer: str
    category: str
    multiplier: float
    point_value_cents: float
    cap_cents: Optional[int] = None


def _card_rules(card_id: str, card_name: str, issuer: str, point_value: float, rates: Dict[str, float]) -> List[EarningRule]:
    return [EarningRule(card_id, card_name, issuer, category, mult, point_value) for category, mult in rates.items()]


EARNING_RULES: List[EarningRule] = (
    _card_rules("chase-sapphire-preferred", "Chase Sapphire Preferred", "Chase", 1.25,
                {"dining": 3, "travel": 5, "streaming": 3, GENERAL: 1})
    + _card_rules("chase-sapphire-reserve", "Chase Sapphire Reserve", "Chase", 1.5,
                  {"dining": 3, "travel": 10, GENERAL: 1})
    + _card_rules("chase-freedom-unlimited", "Chase Freedom Unlimited", "Chase", 1.0,
                  {"dining": 3, "drugstore": 3, GENERAL: 1.5})
    + [
        EarningRule("amex-gold", "American Express Gold", "American Express", "dining", 4, 1.0),
        EarningRule("amex-gold", "American Express Gold", "American Express", "grocery", 4, 1.0, cap_cents=2500000),
        EarningRule("amex-gold", "American Express Gold", "American Express", GENERAL, 1, 1.0),
    ]
    + _card_rules("amex-platinum", "American Express Platinum", "American Express", 1.0,
                  {"travel": 5, GENERAL: 1})
    + _card_rules("citi-double-cash", "Citi Double Cash", "Citi", 1.0, {GENERAL: 2})
    + _card_rules("capital-one-venture-x", "Capital One Venture X", "Capital One", 1.0,
                  {"travel": 10, GENERAL: 2})
    + _card_rules("capital-one-savor-one", "Capital One SavorOne", "Capital One", 1.0,
                  {"dining": 3, "grocery": 3, "streaming": 3, GENERAL: 1})
)


def best_rule(card_id: str, category: str, rules: Sequence[EarningRule] = EARNING_RULES) -> Optional[EarningRule]:
    """Exact category rule for the card, else its general rule."""
    general = None
    for rule in rules:
        if rule.card_id != card_id:
            continue
        if rule.category == category:
            return rule
        if rule.category == GENERAL and general is None:
            general = rule
    return general


def calculate_points(amount_cents: int, rule: EarningRule) -> int:
    return int((amount_cents / 100) * rule.multiplier)


def points_value_usd(points: int, point_value_cents: float) -> float:
    return points * point_value_cents / 100


@dataclass(frozen=True)
class MissedOpportunity:
    """
    One transaction charged to a worse card than the user had available.

    Fields:
    - transaction_id: the transaction analyzed
    - category: spend category of the transaction
    - summary: one neutral sentence
    - what_happened / what_should_have_happened: the comparison
    - missed_points / missed_value_usd: the cost
    - why_it_matters: annualized framing
    - prevention_rule: reusable habit
    - better_card_id: the card that would have earned more
    """
    transaction_id: str
    category: TransactionCategory
    summary: str
    what_happened: str
    what_should_have_happened: str
    missed_points: int
    missed_value_usd: float
    why_it_matters: str
    prevention_rule: str
    better_card_id: str


def analyze_transaction(
    transaction: Transaction,
    user_card_ids: Sequence[str],
    rules: Sequence[EarningRule] = EARNING_RULES,
) -> Optional[MissedOpportunity]:
    category = TransactionCategory(transaction.category).value
    used_rule = best_rule(transaction.card_used.card_id, category, rules)
    if used_rule is None:
        return None

    best_alt: Optional[EarningRule] = None
    best_alt_points = 0
    for card_id in user_card_ids:
        if card_id == transaction.card_used.card_id:
            continue
        rule = best_rule(card_id, category, rules)
        if rule is None:
            continue
        points = calculate_points(transaction.amount_cents, rule)
        if points > best_alt_points:
            best_alt_points = points
            best_alt = rule

    if best_alt is None:
        return None

    used_points = calculate_points(transaction.amount_cents, used_rule)
    missed_value = points_value_usd(best_alt_points, best_alt.point_value_cents) - points_value_usd(
        used_points, used_rule.point_value_cents
    )
    if missed_value < MIN_REPORTABLE_MISS_USD:
        return None

    missed_points = best_alt_points - used_points
    return MissedOpportunity(
        transaction_id=transaction.id,
        category=TransactionCategory(category),
        summary=f"You could have earned {missed_points} more points (${missed_value:.2f}) using {best_alt.card_name}.",
        what_happened=(
            f"Used {transaction.card_used.card_name} for ${transaction.amount_dollars:.2f} {category} purchase "
            f"at {transaction.merchant}. Earned {used_points} points ({used_rule.multiplier:g}x)."
        ),
        what_should_have_happened=(
            f"{best_alt.card_name} earns {best_alt.multiplier:g}x on {category}. "
            f"Would have earned {best_alt_points} points."
        ),
        missed_points=missed_points,
        missed_value_usd=round(missed_value, 2),
        why_it_matters=(
            f"Over a year of similar purchases, this category choice could cost you "
            f"${missed_value * 12:.2f} in missed value."
        ),
        prevention_rule=f"Use {best_alt.card_name} for {category} purchases.",
        better_card_id=best_alt.card_id,
    )


@dataclass(frozen=True)
class CategoryError:
    category: TransactionCategory
    missed_value_usd: float
    explanation: str


@dataclass(frozen=True)
class OpportunitySummary:
    period: str
    total_missed_value_usd: float
    top_3_errors: List[CategoryError]
    confidence_note: str = "Most users miss some rewards. These are your biggest opportunities to improve."


def summarize_opportunities(opportunities: Sequence[MissedOpportunity], period: str = "monthly") -> OpportunitySummary:
    by_category: Dict[TransactionCategory, float] = {}
    for opp in opportunities:
        by_category[opp.category] = by_category.get(opp.category, 0.0) + opp.missed_value_usd

    top = sorted(by_category.items(), key=lambda item: item[1], reverse=True)[:3]
    return OpportunitySummary(
        period=period,
        total_missed_value_usd=round(sum(o.missed_value_usd for o in opportunities), 2),
        top_3_errors=[
            CategoryError(cat, round(value, 2), f"Your biggest opportunity is in {cat.value} spending.")
            for cat, value in top
        ],
    )


# ---------------------------------------------------------------------------
# BNPL
# ---------------------------------------------------------------------------

BNPL_PROVIDERS = (
    "affirm",
    "klarna",
    "afterpay",
    "zip",
    "sezzle",
    "paypal pay in 4",
    "quadpay",
    "splitit",
    "perpay",
)

BNPL_TEXT_PATTERNS = (
    "installment",
    "pay later",
    "4 payments",
    "bi-weekly",
    "pay in 4",
    "pay in four",
    "split payment",
)

INCOME_THRESHOLDS_USD = {
    "under_25k": 200,
    "25k_50k": 400,
    "50k_75k": 600,
    "75k_100k": 800,
    "over_100k": 1000,
}

MULTIPLE_PLANS_FACTOR = "Multiple active BNPL plans detected"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class BNPLDetection:
    detected: bool
    provider: Optional[str] = None
    method: Optional[str] = None  # 'merchant_name' | 'transaction_text' | 'category'


@dataclass(frozen=True)
class UserCreditContext:
    utilization_percent: float = 0
    open_bnpl_count: int = 0
    monthly_discretionary_percent: Optional[float] = None
    carry_balance: bool = False
    income_bucket: Optional[str] = None


@dataclass(frozen=True)
class BNPLRisk:
    """
    BNPL risk assessment for one purchase.

    Fields:
    - detected / provider: detection outcome
    - risk_level / risk_score: 'low' | 'medium' | 'high' and the 0-100 score
    - explanation: plain-language bullets
    - alternatives: safer options, empty for low risk
    - user_prompt_shown: True only for high risk
    - suppressed / suppression_reason: set when the warning is withheld
    """
    detected: bool
    provider: Optional[str]
    risk_level: RiskLevel
    risk_score: int
    explanation: List[str] = field(default_factory=list)
    alternatives: List[str] = field(default_factory=list)
    user_prompt_shown: bool = False
    suppressed: bool = False
    suppression_reason: Optional[str] = None


def detect_bnpl(merchant_name: str, transaction_text: Optional[str] = None, category: Optional[str] = None) -> BNPLDetection:
    name = (merchant_name or "").lower()
    text = (transaction_text or "").lower()

    for provider in BNPL_PROVIDERS:
        if provider in name:
            return BNPLDetection(True, provider, "merchant_name")

    for pattern in BNPL_TEXT_PATTERNS:
        if pattern in text or pattern in name:
            provider = next((p for p in BNPL_PROVIDERS if p in text or p in name), "other")
            return BNPLDetection(True, provider, "transaction_text")

    lowered = (category or "").lower()
    if "bnpl" in lowered or "buy now pay later" in lowered:
        return BNPLDetection(True, "other", "category")

    return BNPLDetection(False)


def calculate_bnpl_risk_score(amount_cents: int, context: UserCreditContext):
    """
    Score a BNPL purchase from 0 to 100.

    Returns:
        (score, level, factors) where factors lists the notable contributors
    """
    score = 0
    factors: List[str] = []

    util = context.utilization_percent or 0
    if util > 50:
        score += 25
        factors.append("Credit utilization above 50%")
    elif util > 30:
        score += 15
        factors.append("Credit utilization above 30%")
    elif util > 10:
        score += 5

    plans = context.open_bnpl_count or 0
    if plans >= 3:
        score += 25
        factors.append(MULTIPLE_PLANS_FACTOR)
    elif plans >= 1:
        score += 10 * plans

    if context.carry_balance:
        score += 20
        factors.append("Currently carrying a credit card balance")

    threshold = INCOME_THRESHOLDS_USD.get(context.income_bucket or "50k_75k", 500)
    amount = amount_cents / 100
    if amount > threshold * 1.5:
        score += 20
        factors.append("Purchase amount is significant relative to income")
    elif amount > threshold:
        score += 10

    discretionary = context.monthly_discretionary_percent
    if discretionary is None:
        discretionary = 50
    if discretionary > 60:
        score += 10
        factors.append("High discretionary spending ratio")
    elif discretionary > 40:
        score += 5

    score = min(100, score)
    if score >= 60:
        level = RiskLevel.HIGH
    elif score >= 30:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW
    return score, level, factors


def bnpl_suppression_reason(
    amount_cents: int, util_impact_percent: float, opted_out: bool, zero_apr: bool = False
) -> Optional[str]:
    if opted_out:
        return "User opted out of BNPL warnings"
    if amount_cents < 5000:
        return "Amount below $50 threshold"
    if zero_apr and util_impact_percent < 3:
        return "0% APR with <3% utilization impact"
    return None


def bnpl_explanation(level: RiskLevel, factors: Sequence[str]) -> List[str]:
    if level == RiskLevel.HIGH:
        lines = ["This BNPL plan may strain your payment flexibility."]
    elif level == RiskLevel.MEDIUM:
        lines = ["This BNPL plan can increase utilization volatility."]
    else:
        lines = ["BNPL plans require careful payment tracking."]
    lines.append("BNPL balances may count toward utilization on some issuers.")
    if MULTIPLE_PLANS_FACTOR in factors:
        lines.append("Multiple BNPL plans reduce payment flexibility.")
    lines.append("Missed BNPL payments can report negatively to credit bureaus.")
    return lines


def bnpl_alternatives(level: RiskLevel, card_names: Optional[Sequence[str]] = None) -> List[str]:
    if level == RiskLevel.LOW:
        return []
    if card_names:
        alternatives = [f"Paying in full on {card_names[0]} keeps utilization flat."]
    else:
        alternatives = ["Paying in full with a credit card keeps utilization flat."]
    alternatives.append("Using a rewards card earns points without installment risk.")
    if level == RiskLevel.HIGH:
        alternatives.append("Delaying purchase by 2 weeks may reduce utilization impact.")
    return alternatives


def analyze_bnpl_risk(
    merchant_name: str,
    amount_cents: int,
    context: UserCreditContext,
    transaction_text: Optional[str] = None,
    category: Optional[str] = None,
    opted_out: bool = False,
    zero_apr: bool = False,
    card_names: Optional[Sequence[str]] = None,
) -> BNPLRisk:
    detection = detect_bnpl(merchant_name, transaction_text, category)
    if not detection.detected:
        return BNPLRisk(False, None, RiskLevel.LOW, 0)

    util_impact = (amount_cents / 100) / (context.utilization_percent or 50) * 100
    reason = bnpl_suppression_reason(amount_cents, util_impact, opted_out, zero_apr)
    if reason is not None:
        return BNPLRisk(True, detection.provider, RiskLevel.LOW, 0, suppressed=True, suppression_reason=reason)

    score, level, factors = calculate_bnpl_risk_score(amount_cents, context)
    return BNPLRisk(
        detected=True,
        provider=detection.provider,
        risk_level=level,
        risk_score=score,
        explanation=bnpl_explanation(level, factors),
        alternatives=bnpl_alternatives(level, card_names),
        user_prompt_shown=level == RiskLevel.HIGH,
    )


@dataclass(frozen=True)
class RiskAlert:
    title: str
    explanation: str
    long_term_cost_estimate: str
    safer_alternative: str


DISCRETIONARY_CATEGORIES = (
    TransactionCategory.DINING,
    TransactionCategory.STREAMING,
    TransactionCategory.ONLINE,
    TransactionCategory.OTHER,
)


def detect_risk_alert(transaction: Transaction, average_monthly_discretionary: Optional[float] = None) -> Optional[RiskAlert]:
    amount = transaction.amount_dollars
    if transaction.is_bnpl:
        return RiskAlert(
            title="BNPL Payment Detected",
            explanation=(
                f"This ${amount:.2f} purchase is being paid via Buy Now, Pay Later. "
                "While the stated APR may be 0%, missed payments often incur fees."
            ),
            long_term_cost_estimate=(
                f"If you miss a payment or pay late, expect fees of $25-35 or interest charges around ${amount * 0.1:.2f}."
            ),
            safer_alternative=(
                "Consider paying with a credit card you can pay in full. You'd earn rewards and build credit "
                "history without payment fragmentation risk."
            ),
        )

    if average_monthly_discretionary:
        is_large = amount > average_monthly_discretionary * 1.5
        if is_large and TransactionCategory(transaction.category) in DISCRETIONARY_CATEGORIES:
            share = amount / average_monthly_discretionary * 100
            return RiskAlert(
                title="Large Discretionary Purchase",
                explanation=f"This ${amount:.2f} purchase is {share:.0f}% of your typical monthly discretionary spending.",
                long_term_cost_estimate=(
                    f"If financed at 20% APR, carrying this balance would cost ${amount * 0.20 / 12:.2f} in interest monthly."
                ),
                safer_alternative=(
                    "If you can't pay this in full this month, consider waiting or splitting across multiple "
                    "statement periods."
                ),
            )
    return None


@dataclass(frozen=True)
class AnalysisResult:
    opportunities: List[MissedOpportunity]
    summary: OpportunitySummary
    risk_alerts: List[RiskAlert]
    bnpl_risks: List[BNPLRisk]


def analyze_transactions(
    transactions: Sequence[Transaction],
    user_card_ids: Sequence[str],
    average_monthly_discretionary: Optional[float] = None,
    context: Optional[UserCreditContext] = None,
) -> AnalysisResult:
    opportunities: List[MissedOpportunity] = []
    alerts: List[RiskAlert] = []
    bnpl: List[BNPLRisk] = []

    for tx in transactions:
        opp = analyze_transaction(tx, user_card_ids)
        if opp is not None:
            opportunities.append(opp)
        alert = detect_risk_alert(tx, average_monthly_discretionary)
        if alert is not None:
            alerts.append(alert)
        if context is not None:
            risk = analyze_bnpl_risk(tx.merchant, tx.amount_cents, context, category=TransactionCategory(tx.category).value)
            if risk.detected and not risk.suppressed:
                bnpl.append(risk)

    return AnalysisResult(opportunities, summarize_opportunities(opportunities), alerts, bnpl)
