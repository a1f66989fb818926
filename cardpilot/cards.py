"""
Card data model used by the recommendation engine.

Cards reach the core from two places: the built-in catalog and the cards
table. Each source gets its own explicit type, tagged with ``kind``, and the
conversion happens once where the data is loaded.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Literal, Optional, Tuple, Union

from cardpilot.categories import EngineCategory


class CapPeriod(str, Enum):
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


@dataclass(frozen=True)
class RewardRule:
    """
    A per-category earning rule.

    Fields:
    - category: engine category the rule applies to ('general' is the base rate)
    - multiplier: points/cash multiplier, never negative
    - cap_amount_cents: spend cap for the bonus, None when uncapped
    - cap_period: 'month' | 'quarter' | 'year' | None
    - conditions: free-form notes ("booked through issuer portal")
    - exclusions: merchant names the bonus does not apply to
    - priority: higher wins when several rules cover the same category
    """
    category: EngineCategory
    multiplier: float
    cap_amount_cents: Optional[int] = None
    cap_period: Optional[CapPeriod] = None
    conditions: Optional[str] = None
    exclusions: Tuple[str, ...] = ()
    priority: int = 0

    def __post_init__(self):
        if self.multiplier < 0:
            raise ValueError(f"multiplier must be >= 0, got {self.multiplier}")
        object.__setattr__(self, "category", EngineCategory(self.category))
        if self.cap_period is not None:
            object.__setattr__(self, "cap_period", CapPeriod(self.cap_period))

    @property
    def is_capped(self) -> bool:
        return self.cap_amount_cents is not None

    def excludes(self, merchant_name: str, domain: Optional[str]) -> bool:
        name = (merchant_name or "").lower()
        for exclusion in self.exclusions:
            needle = exclusion.lower()
            if not needle:
                continue
            if needle in name or (name and name in needle) or (domain and needle in domain):
                return True
        return False


@dataclass(frozen=True)
class MerchantExclusion:
    """A standalone card-level exclusion (merchant pattern plus the reason)."""
    merchant_pattern: str
    reason: str

    def matches(self, merchant_name: str, domain: Optional[str]) -> bool:
        pattern = self.merchant_pattern.lower()
        name = (merchant_name or "").lower()
        if not pattern:
            return False
        return pattern in name or (bool(name) and name in pattern) or bool(domain and pattern in domain)


@dataclass(frozen=True)
class CatalogCard:
    """Card from the built-in catalog."""
    id: str
    issuer: str
    name: str
    network: str
    annual_fee_cents: int
    reward_rules: Tuple[RewardRule, ...] = ()
    exclusions: Tuple[MerchantExclusion, ...] = ()
    highlights: Tuple[str, ...] = ()
    foreign_tx_fee_percent: Optional[float] = None
    kind: Literal["catalog"] = "catalog"

    @property
    def display_name(self) -> str:
        return f"{self.issuer} {self.name}"


@dataclass(frozen=True)
class DbCard:
    """Card loaded from the cards table, carrying its verification metadata."""
    id: str
    issuer: str
    name: str
    network: str
    annual_fee_cents: int
    reward_rules: Tuple[RewardRule, ...] = ()
    exclusions: Tuple[MerchantExclusion, ...] = ()
    verified: bool = False
    last_verified_at: Optional[str] = None
    kind: Literal["db"] = "db"

    @property
    def display_name(self) -> str:
        return f"{self.issuer} {self.name}"


Card = Union[CatalogCard, DbCard]


def _rules(*specs) -> Tuple[RewardRule, ...]:
    return tuple(RewardRule(*spec) for spec in specs)


CARD_CATALOG: List[CatalogCard] = [
    CatalogCard(
        id="amex-gold",
        issuer="American Express",
        name="Gold Card",
        network="amex",
        annual_fee_cents=32500,
        reward_rules=(
            RewardRule(EngineCategory.DINING, 4),
            RewardRule(
                EngineCategory.GROCERIES,
                4,
                cap_amount_cents=2500000,
                cap_period=CapPeriod.YEAR,
                conditions="U.S. supermarkets",
                exclusions=("Costco", "Sam's Club", "Walmart", "Target"),
            ),
            RewardRule(EngineCategory.FLIGHTS, 3, conditions="Booked directly with airlines or Amex Travel"),
            RewardRule(EngineCategory.GENERAL, 1),
        ),
        highlights=("$120 Uber Cash credit annually", "$120 dining credit at select restaurants"),
        foreign_tx_fee_percent=0,
    ),
    CatalogCard(
        id="amex-platinum",
        issuer="American Express",
        name="Platinum Card",
        network="amex",
        annual_fee_cents=69500,
        reward_rules=_rules(
            (EngineCategory.FLIGHTS, 5),
            (EngineCategory.HOTELS, 5),
            (EngineCategory.GENERAL, 1),
        ),
        highlights=("$200 Uber Cash annually", "$240 digital entertainment credit"),
        foreign_tx_fee_percent=0,
    ),
    CatalogCard(
        id="chase-sapphire-preferred",
        issuer="Chase",
        name="Sapphire Preferred",
        network="visa",
        annual_fee_cents=9500,
        reward_rules=_rules(
            (EngineCategory.TRAVEL, 2),
            (EngineCategory.DINING, 3),
            (EngineCategory.STREAMING, 3),
            (EngineCategory.ONLINE, 1),
            (EngineCategory.GENERAL, 1),
        ),
        foreign_tx_fee_percent=0,
    ),
    CatalogCard(
        id="chase-sapphire-reserve",
        issuer="Chase",
        name="Sapphire Reserve",
        network="visa",
        annual_fee_cents=55000,
        reward_rules=_rules(
            (EngineCategory.TRAVEL, 3),
            (EngineCategory.DINING, 3),
            (EngineCategory.GENERAL, 1),
        ),
        highlights=("$300 annual travel credit",),
        foreign_tx_fee_percent=0,
    ),
    CatalogCard(
        id="chase-freedom-unlimited",
        issuer="Chase",
        name="Freedom Unlimited",
        network="visa",
        annual_fee_cents=0,
        reward_rules=_rules(
            (EngineCategory.DINING, 3),
            (EngineCategory.DRUGSTORES, 3),
            (EngineCategory.GENERAL, 1.5),
        ),
        foreign_tx_fee_percent=3,
    ),
    CatalogCard(
        id="citi-double-cash",
        issuer="Citi",
        name="Double Cash",
        network="mastercard",
        annual_fee_cents=0,
        reward_rules=_rules((EngineCategory.GENERAL, 2)),
        foreign_tx_fee_percent=3,
    ),
    CatalogCard(
        id="capital-one-savor",
        issuer="Capital One",
        name="Savor",
        network="mastercard",
        annual_fee_cents=0,
        reward_rules=_rules(
            (EngineCategory.DINING, 3),
            (EngineCategory.GROCERIES, 3),
            (EngineCategory.STREAMING, 3),
            (EngineCategory.GENERAL, 1),
        ),
        foreign_tx_fee_percent=0,
    ),
    CatalogCard(
        id="capital-one-venture-x",
        issuer="Capital One",
        name="Venture X",
        network="visa",
        annual_fee_cents=39500,
        reward_rules=_rules(
            (EngineCategory.HOTELS, 10),
            (EngineCategory.FLIGHTS, 5),
            (EngineCategory.GENERAL, 2),
        ),
        highlights=("$300 annual travel credit through Capital One Travel",),
        foreign_tx_fee_percent=0,
    ),
    CatalogCard(
        id="amex-blue-cash-preferred",
        issuer="American Express",
        name="Blue Cash Preferred",
        network="amex",
        annual_fee_cents=9500,
        reward_rules=(
            RewardRule(
                EngineCategory.GROCERIES,
                6,
                cap_amount_cents=600000,
                cap_period=CapPeriod.YEAR,
                exclusions=("Costco", "Sam's Club", "BJ's", "Walmart", "Target"),
            ),
            RewardRule(EngineCategory.STREAMING, 6),
            RewardRule(EngineCategory.GAS, 3),
            RewardRule(EngineCategory.TRANSIT, 3),
            RewardRule(EngineCategory.GENERAL, 1),
        ),
        foreign_tx_fee_percent=2.7,
    ),
    CatalogCard(
        id="costco-anywhere-visa",
        issuer="Citi",
        name="Costco Anywhere Visa",
        network="visa",
        annual_fee_cents=0,
        reward_rules=_rules(
            (EngineCategory.GAS, 4),
            (EngineCategory.DINING, 3),
            (EngineCategory.TRAVEL, 3),
            (EngineCategory.GENERAL, 1),
        ),
        foreign_tx_fee_percent=0,
    ),
]


def get_catalog_card(card_id: str) -> Optional[CatalogCard]:
    for card in CARD_CATALOG:
        if card.id == card_id:
            return card
    return None
