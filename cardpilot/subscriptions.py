"""
Recurring-charge detection over a transaction history.

Only the last 120 days before ``now`` are considered. ``now`` is always
passed in by the caller.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from cardpilot.categories import Confidence
from cardpilot.models import Transaction

LOOKBACK_DAYS = 120
MAX_SUBSCRIPTION_TODOS = 3

KNOWN_SUBSCRIPTIONS = frozenset([
    "netflix", "spotify", "apple", "google", "amazon prime", "hulu", "disney", "disney+",
    "max", "hbo", "youtube", "youtube premium", "icloud", "google one", "dropbox", "notion",
    "adobe", "microsoft", "microsoft 365", "uber one", "doordash", "dashpass", "instacart",
    "instacart+", "gym", "fitness", "planet fitness", "equinox", "la fitness", "orangetheory",
    "peloton", "audible", "kindle", "paramount+", "peacock", "espn", "crunchyroll", "twitch",
    "patreon", "substack", "linkedin", "zoom", "slack", "figma", "canva", "grammarly",
    "nordvpn", "expressvpn", "1password", "lastpass", "bitwarden", "evernote", "todoist",
    "headspace", "calm", "strava", "nytimes", "new york times", "wsj", "wall street journal",
    "washington post", "the athletic", "playstation", "xbox", "nintendo", "siriusxm", "sirius",
])


class Cadence(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ANNUAL = "annual"


# (cadence, min avg days, max avg days, deltas needed for high confidence)
CADENCE_WINDOWS = (
    (Cadence.WEEKLY, 6, 8, 3),
    (Cadence.MONTHLY, 28, 33, 3),
    (Cadence.ANNUAL, 350, 380, 2),
)

MONTHLY_FACTOR = {Cadence.WEEKLY: 4.33, Cadence.MONTHLY: 1.0, Cadence.ANNUAL: 1 / 12}


@dataclass(frozen=True)
class SubscriptionCandidate:
    """
    A detected recurring charge.

    Fields:
    - merchant_normalized: grouping key
    - original_merchant: merchant text of the first charge
    - cadence: weekly | monthly | annual
    - avg_amount: average charge in dollars
    - occurrences: number of charges in the group
    - transaction_ids: charges in date order
    - confidence: high for known services, otherwise the cadence confidence
    - estimated_monthly_cost: dollars per month
    - first_seen / last_seen: charge dates
    """
    merchant_normalized: str
    original_merchant: str
    cadence: Cadence
    avg_amount: float
    occurrences: int
    transaction_ids: List[str]
    confidence: Confidence
    estimated_monthly_cost: float
    first_seen: date
    last_seen: date


@dataclass(frozen=True)
class Todo:
    """An action item surfaced on the diagnostics page."""
    type: str
    title: str
    description: str
    impact_usd: float
    source: Dict[str, object] = field(default_factory=dict)


def normalize_merchant(merchant: str) -> str:
    lowered = re.sub(r"[^a-z0-9 ]", " ", (merchant or "").lower())
    return re.sub(r"\s+", " ", lowered).strip()


def is_known_subscription(merchant_normalized: str) -> bool:
    return any(keyword in merchant_normalized for keyword in KNOWN_SUBSCRIPTIONS)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def amount_bucket(amount_dollars: float) -> int:
    """Nearest $5 below $100, nearest $10 from $100 up."""
    if amount_dollars < 100:
        return _round_half_up(amount_dollars / 5) * 5
    return _round_half_up(amount_dollars / 10) * 10


def infer_cadence(deltas: Sequence[int]) -> Tuple[Optional[Cadence], Confidence]:
    if not deltas:
        return None, Confidence.LOW
    average = sum(deltas) / len(deltas)
    for cadence, low, high, needed in CADENCE_WINDOWS:
        if low <= average <= high:
            return cadence, Confidence.HIGH if len(deltas) >= needed else Confidence.MEDIUM
    return None, Confidence.LOW


def detect_subscriptions(transactions: Sequence[Transaction], now: date) -> List[SubscriptionCandidate]:
    """
    Find recurring charges.

    Args:
        transactions: posted transactions, any order
        now: reference date for the 120-day window

    Returns:
        Candidates sorted by estimated monthly cost, highest first
    """
    cutoff = now - timedelta(days=LOOKBACK_DAYS)
    groups: Dict[str, List[Transaction]] = {}
    for txn in transactions:
        if txn.date < cutoff:
            continue
        groups.setdefault(normalize_merchant(txn.merchant), []).append(txn)

    candidates: List[SubscriptionCandidate] = []
    for merchant, txns in groups.items():
        if len(txns) < 2:
            continue

        buckets: Dict[int, List[Transaction]] = {}
        for txn in txns:
            buckets.setdefault(amount_bucket(txn.amount_dollars), []).append(txn)

        for bucket_txns in buckets.values():
            if len(bucket_txns) < 2:
                continue
            ordered = sorted(bucket_txns, key=lambda t: t.date)
            deltas = [(b.date - a.date).days for a, b in zip(ordered, ordered[1:])]

            cadence, confidence = infer_cadence(deltas)
            if cadence is None or confidence == Confidence.LOW:
                continue
            known = is_known_subscription(merchant)
            if not known and confidence != Confidence.HIGH:
                continue

            average = sum(t.amount_dollars for t in ordered) / len(ordered)
            candidates.append(
                SubscriptionCandidate(
                    merchant_normalized=merchant,
                    original_merchant=ordered[0].merchant,
                    cadence=cadence,
                    avg_amount=round(average, 2),
                    occurrences=len(ordered),
                    transaction_ids=[t.id for t in ordered],
                    confidence=Confidence.HIGH if known else confidence,
                    estimated_monthly_cost=round(average * MONTHLY_FACTOR[cadence], 2),
                    first_seen=ordered[0].date,
                    last_seen=ordered[-1].date,
                )
            )

    return sorted(candidates, key=lambda c: c.estimated_monthly_cost, reverse=True)


def _todo_source(sub: SubscriptionCandidate) -> Dict[str, object]:
    return {
        "merchant_normalized": sub.merchant_normalized,
        "cadence": sub.cadence.value,
        "avg_amount": sub.avg_amount,
        "occurrences": sub.occurrences,
        "transaction_ids": list(sub.transaction_ids),
    }


def generate_subscription_todos(candidates: Sequence[SubscriptionCandidate]) -> List[Todo]:
    """At most three review to-dos: high-confidence >= $25/month first, then anything >= $10/month."""
    high_impact = [c for c in candidates if c.confidence == Confidence.HIGH and c.estimated_monthly_cost >= 25]
    todos = [
        Todo(
            type="review_subscription",
            title=f"Review subscription: {sub.original_merchant}",
            description=(
                f"Charged {sub.occurrences} times, {sub.cadence.value} pattern detected, "
                f"avg ${sub.avg_amount:.2f}. Consider canceling if not essential."
            ),
            impact_usd=sub.estimated_monthly_cost,
            source=_todo_source(sub),
        )
        for sub in high_impact[:MAX_SUBSCRIPTION_TODOS]
    ]

    if len(todos) < MAX_SUBSCRIPTION_TODOS:
        remaining = [c for c in candidates if c.estimated_monthly_cost >= 10 and c not in high_impact]
        for sub in remaining[: MAX_SUBSCRIPTION_TODOS - len(todos)]:
            todos.append(
                Todo(
                    type="review_subscription",
                    title=f"Review subscription: {sub.original_merchant}",
                    description=(
                        f"Detected {sub.cadence.value} charge, avg ${sub.avg_amount:.2f}. Review if still needed."
                    ),
                    impact_usd=sub.estimated_monthly_cost,
                    source=_todo_source(sub),
                )
            )
    return todos
