"""
Card recommendation for a resolved merchant.

Ranking: non-excluded cards first, then effective multiplier (highest
first), then annual fee (lowest first), then the order the cards were given.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from cardpilot.cards import Card, CapPeriod, RewardRule
from cardpilot.categories import Confidence, EngineCategory, engine_category_label
from cardpilot.merchant_intelligence import MerchantContext

CATEGORY_FALLBACKS = {
    EngineCategory.FLIGHTS: (EngineCategory.TRAVEL,),
    EngineCategory.HOTELS: (EngineCategory.TRAVEL,),
    EngineCategory.TRANSIT: (EngineCategory.TRAVEL,),
    EngineCategory.STREAMING: (EngineCategory.GENERAL,),
    EngineCategory.ONLINE: (EngineCategory.GENERAL,),
}

FLAT_RATE_THRESHOLD = 1.5
STRONG_BONUS_THRESHOLD = 3


@dataclass(frozen=True)
class CardAnalysis:
    """
    How one card scores at the merchant.

    Fields:
    - card: the card evaluated
    - effective_multiplier: rate actually earned after exclusions
    - reason: short per-card explanation
    - excluded: True when an exclusion pushed the card to its base rate
    - exclusion_reason: which exclusion applied
    - cap_amount_cents / cap_period: cap on the applied rule, reported only
    """
    card: Card
    effective_multiplier: float
    reason: str
    excluded: bool = False
    exclusion_reason: Optional[str] = None
    cap_amount_cents: Optional[int] = None
    cap_period: Optional[CapPeriod] = None


@dataclass(frozen=True)
class Recommendation:
    """
    The selected card plus ranked alternatives.

    Fields:
    - card: the recommended card
    - merchant_name / domain: what the recommendation is for
    - category: engine category used for matching
    - category_label: human label of ``category``
    - multiplier: effective multiplier of the selected card
    - confidence: merchant-resolution confidence, passed through unchanged
    - reason: explanation sentence
    - ranked: all analyses in ranking order (selected card first)
    """
    card: Card
    merchant_name: str
    domain: Optional[str]
    category: EngineCategory
    category_label: str
    multiplier: float
    confidence: Confidence
    reason: str
    ranked: List[CardAnalysis]

    @property
    def alternatives(self) -> List[CardAnalysis]:
        return self.ranked[1:]


def format_multiplier(value: float) -> str:
    return f"{value:g}X"


def _find_rule(rules: Sequence[RewardRule], category: EngineCategory) -> Optional[RewardRule]:
    best = None
    for rule in rules:
        if rule.category != category:
            continue
        if best is None or rule.priority > best.priority:
            best = rule
    return best


def _general_rate(rules: Sequence[RewardRule]) -> float:
    rule = _find_rule(rules, EngineCategory.GENERAL)
    return rule.multiplier if rule is not None else 1


def analyze_card(card: Card, merchant: MerchantContext) -> CardAnalysis:
    """Effective multiplier for ``card`` at ``merchant``."""
    rules = card.reward_rules
    category = merchant.engine_category
    label = engine_category_label(category).lower()
    name = merchant.merchant_name
    domain = merchant.domain

    for exclusion in card.exclusions:
        if exclusion.matches(name, domain):
            rate = _general_rate(rules)
            reason = f"{name} excluded: {exclusion.reason}"
            return CardAnalysis(card, rate, reason, excluded=True, exclusion_reason=reason)

    direct = _find_rule(rules, category)
    if direct is not None:
        grocery_blocked = merchant.excluded_from_grocery and category == EngineCategory.GROCERIES
        if grocery_blocked or direct.excludes(name, domain):
            rate = _general_rate(rules)
            reason = f"{name} excluded from {label} bonus, falls to base rate"
            return CardAnalysis(card, rate, reason, excluded=True, exclusion_reason=reason)
        return _earning(card, direct, label)

    for fallback in CATEGORY_FALLBACKS.get(category, ()):
        rule = _find_rule(rules, fallback)
        if rule is not None:
            return _earning(card, rule, label)

    rate = _general_rate(rules)
    return CardAnalysis(card, rate, f"{format_multiplier(rate)} base rate")


def _earning(card: Card, rule: RewardRule, label: str) -> CardAnalysis:
    if rule.multiplier > 1:
        reason = f"{format_multiplier(rule.multiplier)} on {label}"
    else:
        reason = f"{format_multiplier(rule.multiplier)} base rate"
    return CardAnalysis(
        card,
        rule.multiplier,
        reason,
        cap_amount_cents=rule.cap_amount_cents,
        cap_period=rule.cap_period,
    )


def rank_cards(cards: Sequence[Card], merchant: MerchantContext) -> List[CardAnalysis]:
    analyses = [analyze_card(card, merchant) for card in cards]
    # sorted() is stable, so equal keys keep the caller's order
    return sorted(
        analyses,
        key=lambda a: (a.excluded, -a.effective_multiplier, a.card.annual_fee_cents),
    )


def recommend(merchant: MerchantContext, cards: Sequence[Card]) -> Optional[Recommendation]:
    """
    Pick the best card for a merchant.

    Args:
        merchant: resolved merchant context
        cards: the user's wallet (or any candidate set)

    Returns:
        Recommendation, or None when no cards were supplied
    """
    if not cards:
        return None

    ranked = rank_cards(cards, merchant)
    best = ranked[0]
    label = engine_category_label(merchant.engine_category)
    card_name = best.card.display_name
    rate = format_multiplier(best.effective_multiplier)
    name = merchant.merchant_name

    if best.excluded:
        reason = f"Other cards have exclusions for {name}. {card_name} provides a consistent {rate} return here."
    elif best.effective_multiplier >= STRONG_BONUS_THRESHOLD:
        reason = f"{card_name} earns {rate} on {label.lower()}. This is your highest available rate for {name}."
    elif best.effective_multiplier >= FLAT_RATE_THRESHOLD:
        reason = (
            f"No category bonus applies at {name}. {card_name} provides {rate} on all purchases, "
            "your best flat-rate option."
        )
    else:
        reason = f"No category bonus applies at {name}. {card_name} provides {rate} on general purchases."

    return Recommendation(
        card=best.card,
        merchant_name=name,
        domain=merchant.domain,
        category=merchant.engine_category,
        category_label=label,
        multiplier=best.effective_multiplier,
        confidence=merchant.confidence,
        reason=reason,
        ranked=ranked,
    )
