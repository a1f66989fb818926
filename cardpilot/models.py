"""
Data models for statement analysis (opportunity cost, subscriptions,
benefits, diagnostics). All models are dataclasses; amounts are in cents.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class TransactionCategory(str, Enum):
    DINING = "dining"
    TRAVEL = "travel"
    GROCERY = "grocery"
    GAS = "gas"
    STREAMING = "streaming"
    DRUGSTORE = "drugstore"
    ONLINE = "online"
    OTHER = "other"


@dataclass(frozen=True)
class CardUsed:
    """
    The card a transaction was charged to.

    Fields:
    - card_id: catalog slug ('amex-gold', 'citi-double-cash', ...)
    - issuer: issuer name
    - card_name: display name
    """
    card_id: str
    issuer: str
    card_name: str


@dataclass(frozen=True)
class Transaction:
    """
    Represents a posted transaction.

    Fields:
    - id: unique identifier
    - date: posting date
    - merchant: merchant name as it appears on the statement
    - category: spend category
    - amount_cents: amount in cents (must be > 0)
    - card_used: card the purchase was charged to
    - is_bnpl: optional flag for buy-now-pay-later purchases
    """
    id: str
    date: date
    merchant: str
    category: TransactionCategory
    amount_cents: int
    card_used: CardUsed
    is_bnpl: Optional[bool] = None

    @property
    def amount_dollars(self) -> float:
        return self.amount_cents / 100
