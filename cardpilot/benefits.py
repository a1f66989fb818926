"""
Card benefit credits and missed-benefit detection.

A monthly benefit counts as used when any transaction in the current
calendar month triggers it; untriggered ones become to-dos.
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence, Tuple

from cardpilot.models import Transaction, TransactionCategory
from cardpilot.subscriptions import Todo, normalize_merchant

MAX_BENEFIT_TODOS = 3


@dataclass(frozen=True)
class BenefitRule:
    """
    A recurring statement credit attached to a card.

    Fields:
    - card_id: catalog slug of the card carrying the benefit
    - issuer / card_name: used to match wallets that only know names
    - benefit_id: stable identifier
    - title: short name ("Dining Credit")
    - cadence: 'monthly' | 'annual'
    - value_usd: value per cadence period
    - merchant_triggers: merchant substrings that use the credit
    - category_triggers: transaction categories that use the credit
    - requires_enrollment: whether the holder must opt in
    - notes: fine print
    """
    card_id: str
    issuer: str
    card_name: str
    benefit_id: str
    title: str
    cadence: str
    value_usd: float
    merchant_triggers: Tuple[str, ...] = ()
    category_triggers: Tuple[TransactionCategory, ...] = ()
    requires_enrollment: bool = False
    notes: str = ""


@dataclass(frozen=True)
class WalletCard:
    card_id: str
    issuer: str
    card_name: str


BENEFIT_RULES: List[BenefitRule] = [
    BenefitRule(
        card_id="amex-gold",
        issuer="American Express",
        card_name="American Express Gold Card",
        benefit_id="amex-gold-dining-credit",
        title="Dining Credit",
        cadence="monthly",
        value_usd=10,
        merchant_triggers=("grubhub", "seamless", "cheesecake factory", "goldbelly", "milk bar", "shake shack"),
        requires_enrollment=True,
        notes="Up to $10/month at select dining partners. Requires enrollment.",
    ),
    BenefitRule(
        card_id="amex-gold",
        issuer="American Express",
        card_name="American Express Gold Card",
        benefit_id="amex-gold-uber-credit",
        title="Uber Cash",
        cadence="monthly",
        value_usd=10,
        merchant_triggers=("uber", "uber eats"),
        notes="$10/month Uber Cash for U.S. Uber Eats orders or Uber rides.",
    ),
    BenefitRule(
        card_id="amex-platinum",
        issuer="American Express",
        card_name="The Platinum Card from American Express",
        benefit_id="amex-plat-uber-credit",
        title="Uber Credit",
        cadence="monthly",
        value_usd=15,
        merchant_triggers=("uber", "uber eats"),
        notes="Up to $15/month in Uber Cash, $35 in December.",
    ),
    BenefitRule(
        card_id="amex-platinum",
        issuer="American Express",
        card_name="The Platinum Card from American Express",
        benefit_id="amex-plat-digital-credit",
        title="Digital Entertainment Credit",
        cadence="monthly",
        value_usd=20,
        merchant_triggers=("disney+", "hulu", "espn+", "peacock", "nytimes", "new york times", "audible", "sirius", "siriusxm"),
        requires_enrollment=True,
        notes="Up to $20/month for select streaming services.",
    ),
    BenefitRule(
        card_id="amex-platinum",
        issuer="American Express",
        card_name="The Platinum Card from American Express",
        benefit_id="amex-plat-walmart-credit",
        title="Walmart+ Membership Credit",
        cadence="monthly",
        value_usd=12.95,
        merchant_triggers=("walmart+", "walmart plus"),
        requires_enrollment=True,
        notes="Covers Walmart+ monthly membership fee.",
    ),
    BenefitRule(
        card_id="chase-sapphire-reserve",
        issuer="Chase",
        card_name="Chase Sapphire Reserve",
        benefit_id="csr-travel-credit",
        title="Annual Travel Credit",
        cadence="annual",
        value_usd=300,
        category_triggers=(TransactionCategory.TRAVEL,),
        notes="$300 annual travel credit applied automatically to travel purchases.",
    ),
    BenefitRule(
        card_id="chase-sapphire-reserve",
        issuer="Chase",
        card_name="Chase Sapphire Reserve",
        benefit_id="csr-doordash-credit",
        title="DoorDash Credit",
        cadence="annual",
        value_usd=60,
        merchant_triggers=("doordash",),
        requires_enrollment=True,
        notes="$60 annual DoorDash credit. Requires DashPass enrollment.",
    ),
    BenefitRule(
        card_id="capital-one-venture-x",
        issuer="Capital One",
        card_name="Capital One Venture X",
        benefit_id="venturex-travel-credit",
        title="Annual Travel Credit",
        cadence="annual",
        value_usd=300,
        merchant_triggers=("capital one travel",),
        category_triggers=(TransactionCategory.TRAVEL,),
        notes="$300 annual credit for bookings through Capital One Travel.",
    ),
]


def _holds(card: WalletCard, rule: BenefitRule) -> bool:
    if card.card_id == rule.card_id:
        return True
    issuer_match = rule.issuer.lower() in card.issuer.lower()
    name = card.card_name.lower()
    rule_name = rule.card_name.lower()
    return issuer_match and (rule_name in name or name in rule_name)


def get_benefits_for_cards(wallet: Sequence[WalletCard], rules: Sequence[BenefitRule] = BENEFIT_RULES) -> List[BenefitRule]:
    return [rule for rule in rules if any(_holds(card, rule) for card in wallet)]


def triggers_benefit(merchant: str, category: TransactionCategory, benefit: BenefitRule) -> bool:
    normalized = normalize_merchant(merchant)
    if any(normalize_merchant(t) in normalized for t in benefit.merchant_triggers):
        return True
    return TransactionCategory(category) in benefit.category_triggers


@dataclass(frozen=True)
class BenefitUsage:
    benefit: BenefitRule
    month: str  # YYYY-MM
    detected_usage: bool


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def check_monthly_benefits(
    transactions: Sequence[Transaction],
    wallet: Sequence[WalletCard],
    now: date,
    rules: Sequence[BenefitRule] = BENEFIT_RULES,
) -> List[BenefitUsage]:
    """Usage status of every monthly benefit the wallet holds, for the month containing ``now``."""
    month_start = now.replace(day=1)
    month_txns = [t for t in transactions if month_start <= t.date <= now]
    usages = []
    for benefit in get_benefits_for_cards(wallet, rules):
        if benefit.cadence != "monthly":
            continue
        used = any(triggers_benefit(t.merchant, t.category, benefit) for t in month_txns)
        usages.append(BenefitUsage(benefit, month_key(now), used))
    return usages


def generate_benefit_todos(usages: Sequence[BenefitUsage], limit: Optional[int] = MAX_BENEFIT_TODOS) -> List[Todo]:
    """Claim-benefit to-dos for unused credits, largest value first."""
    missed = sorted((u for u in usages if not u.detected_usage), key=lambda u: u.benefit.value_usd, reverse=True)
    if limit is not None:
        missed = missed[:limit]

    todos = []
    for usage in missed:
        benefit = usage.benefit
        where = ", ".join(benefit.merchant_triggers[:2]) or "qualifying merchants"
        todos.append(
            Todo(
                type="claim_benefit",
                title=f"Claim your {benefit.title}",
                description=(
                    f"You hold {benefit.card_name}. We did not detect a qualifying charge this month. "
                    f"If you use {where}, you may have ${benefit.value_usd:g} available."
                ),
                impact_usd=benefit.value_usd,
                source={"benefit_id": benefit.benefit_id, "month": usage.month, "card_name": benefit.card_name},
            )
        )
    return todos
