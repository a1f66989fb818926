"""
Statement diagnostics: spend breakdown, missed rewards, subscriptions and
unused card credits in one report.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence

from cardpilot.benefits import BenefitUsage, WalletCard, check_monthly_benefits, generate_benefit_todos
from cardpilot.models import Transaction, TransactionCategory
from cardpilot.opportunity import MissedOpportunity, OpportunitySummary, analyze_transactions
from cardpilot.subscriptions import SubscriptionCandidate, Todo, detect_subscriptions

DEFAULT_PERIOD_DAYS = 30
BASELINE_MULTIPLIER = 1.5
TOP_MERCHANTS = 5
TOP_MISSES = 10
MIN_SWITCH_RULE_USD = 5

CONFIDENCE_NOTE = (
    "These estimates are based on detected patterns and conservative valuations. Actual results may vary."
)


@dataclass(frozen=True)
class CategorySpend:
    category: str
    total_spend: float
    transaction_count: int
    top_merchants: List[Dict[str, object]] = field(default_factory=list)


@dataclass(frozen=True)
class DiagnosticsReport:
    """
    Result of ``run_diagnostics``.

    Fields:
    - start_date / end_date / days: the analyzed period
    - total_spend / by_category: spend breakdown in dollars
    - estimated_earned / estimated_possible / missed_value: rewards estimate
    - top_misses: up to ten missed opportunities
    - subscriptions / subscription_monthly_cost: recurring charges
    - benefits: usage of monthly benefits this month
    - summary: opportunity summary (top category errors)
    """
    start_date: date
    end_date: date
    days: int
    total_spend: float
    by_category: List[CategorySpend]
    estimated_earned: int
    estimated_possible: float
    missed_value: float
    top_misses: List[MissedOpportunity]
    subscriptions: List[SubscriptionCandidate]
    subscription_monthly_cost: float
    benefits: List[BenefitUsage]
    summary: OpportunitySummary
    confidence_note: str = CONFIDENCE_NOTE

    @property
    def missed_benefits(self) -> List[BenefitUsage]:
        return [b for b in self.benefits if not b.detected_usage]


def _spend_by_category(transactions: Sequence[Transaction]) -> List[CategorySpend]:
    totals: Dict[str, float] = {}
    counts: Dict[str, int] = {}
    merchants: Dict[str, Dict[str, float]] = {}
    for txn in transactions:
        category = TransactionCategory(txn.category).value
        totals[category] = totals.get(category, 0.0) + txn.amount_dollars
        counts[category] = counts.get(category, 0) + 1
        per_merchant = merchants.setdefault(category, {})
        per_merchant[txn.merchant] = per_merchant.get(txn.merchant, 0.0) + txn.amount_dollars

    result = []
    for category, total in totals.items():
        top = sorted(merchants[category].items(), key=lambda kv: kv[1], reverse=True)[:TOP_MERCHANTS]
        result.append(
            CategorySpend(
                category=category,
                total_spend=round(total, 2),
                transaction_count=counts[category],
                top_merchants=[{"merchant": m, "total": round(v, 2)} for m, v in top],
            )
        )
    return sorted(result, key=lambda c: c.total_spend, reverse=True)


def run_diagnostics(
    transactions: Sequence[Transaction],
    wallet: Sequence[WalletCard],
    now: date,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> DiagnosticsReport:
    """
    Build the diagnostics report.

    Args:
        transactions: full transaction history (subscriptions look back 120 days)
        wallet: cards the user holds
        now: reference date
        start / end: analysis window, defaults to the 30 days ending at ``now``
    """
    end_date = end or now
    start_date = start or (now - timedelta(days=DEFAULT_PERIOD_DAYS))
    in_period = [t for t in transactions if start_date <= t.date <= end_date]

    by_category = _spend_by_category(in_period)
    total_spend = round(sum(c.total_spend for c in by_category), 2)

    analysis = analyze_transactions(in_period, [c.card_id for c in wallet])
    subscriptions = detect_subscriptions(transactions, now)
    benefits = check_monthly_benefits(transactions, wallet, now)

    estimated_earned = int(round(total_spend * BASELINE_MULTIPLIER))
    missed_value = analysis.summary.total_missed_value_usd

    return DiagnosticsReport(
        start_date=start_date,
        end_date=end_date,
        days=(end_date - start_date).days,
        total_spend=total_spend,
        by_category=by_category,
        estimated_earned=estimated_earned,
        estimated_possible=estimated_earned + missed_value * 100,
        missed_value=round(missed_value, 2),
        top_misses=analysis.opportunities[:TOP_MISSES],
        subscriptions=subscriptions,
        subscription_monthly_cost=round(sum(s.estimated_monthly_cost for s in subscriptions), 2),
        benefits=benefits,
        summary=analysis.summary,
    )


def generate_diagnostics_todos(report: DiagnosticsReport) -> List[Todo]:
    todos = generate_benefit_todos(report.benefits)
    for miss in report.summary.top_3_errors[:2]:
        if miss.missed_value_usd >= MIN_SWITCH_RULE_USD:
            todos.append(
                Todo(
                    type="switch_card_rule",
                    title=f"Set default card for {miss.category.value}",
                    description=miss.explanation,
                    impact_usd=miss.missed_value_usd,
                    source={"category": miss.category.value},
                )
            )
    return todos
