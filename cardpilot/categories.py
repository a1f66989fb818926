"""
Merchant and engine category vocabularies.

Merchant categories are what the resolver assigns to a domain (24 values).
Engine categories are the coarser set reward rules are written against.
"""

from enum import Enum
from typing import Dict


class MerchantCategory(str, Enum):
    DINING = "dining"
    GROCERIES = "groceries"
    TRAVEL = "travel"
    GAS = "gas"
    TRANSIT = "transit"
    STREAMING = "streaming"
    DRUGSTORES = "drugstores"
    ONLINE_RETAIL = "online_retail"
    ENTERTAINMENT = "entertainment"
    HOME_IMPROVEMENT = "home_improvement"
    DEPARTMENT_STORE = "department_store"
    WAREHOUSE_CLUB = "warehouse_club"
    ELECTRONICS = "electronics"
    APPAREL = "apparel"
    BEAUTY = "beauty"
    SPORTS = "sports"
    PET = "pet"
    OFFICE = "office"
    UTILITIES = "utilities"
    TELECOM = "telecom"
    INSURANCE = "insurance"
    SUBSCRIPTION = "subscription"
    FINANCIAL = "financial"
    OTHER = "other"


class EngineCategory(str, Enum):
    DINING = "dining"
    GROCERIES = "groceries"
    TRAVEL = "travel"
    FLIGHTS = "flights"
    HOTELS = "hotels"
    GAS = "gas"
    TRANSIT = "transit"
    STREAMING = "streaming"
    DRUGSTORES = "drugstores"
    ONLINE = "online"
    GENERAL = "general"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


MERCHANT_CATEGORY_LABELS: Dict[MerchantCategory, str] = {
    MerchantCategory.DINING: "Dining",
    MerchantCategory.GROCERIES: "Groceries",
    MerchantCategory.TRAVEL: "Travel",
    MerchantCategory.GAS: "Gas Stations",
    MerchantCategory.TRANSIT: "Transit",
    MerchantCategory.STREAMING: "Streaming",
    MerchantCategory.DRUGSTORES: "Drugstores",
    MerchantCategory.ONLINE_RETAIL: "Online Retail",
    MerchantCategory.ENTERTAINMENT: "Entertainment",
    MerchantCategory.HOME_IMPROVEMENT: "Home Improvement",
    MerchantCategory.DEPARTMENT_STORE: "Department Store",
    MerchantCategory.WAREHOUSE_CLUB: "Warehouse Club",
    MerchantCategory.ELECTRONICS: "Electronics",
    MerchantCategory.APPAREL: "Apparel",
    MerchantCategory.BEAUTY: "Beauty",
    MerchantCategory.SPORTS: "Sports & Outdoors",
    MerchantCategory.PET: "Pet Supplies",
    MerchantCategory.OFFICE: "Office Supplies",
    MerchantCategory.UTILITIES: "Utilities",
    MerchantCategory.TELECOM: "Telecom",
    MerchantCategory.INSURANCE: "Insurance",
    MerchantCategory.SUBSCRIPTION: "Subscriptions",
    MerchantCategory.FINANCIAL: "Financial Services",
    MerchantCategory.OTHER: "Other",
}

ENGINE_CATEGORY_LABELS: Dict[EngineCategory, str] = {
    EngineCategory.DINING: "Dining",
    EngineCategory.GROCERIES: "Groceries",
    EngineCategory.TRAVEL: "Travel",
    EngineCategory.FLIGHTS: "Flights",
    EngineCategory.HOTELS: "Hotels",
    EngineCategory.GAS: "Gas Stations",
    EngineCategory.TRANSIT: "Transit",
    EngineCategory.STREAMING: "Streaming",
    EngineCategory.DRUGSTORES: "Drugstores",
    EngineCategory.ONLINE: "Online Shopping",
    EngineCategory.GENERAL: "General Purchases",
}

_ENGINE_MAPPING: Dict[MerchantCategory, EngineCategory] = {
    MerchantCategory.DINING: EngineCategory.DINING,
    MerchantCategory.GROCERIES: EngineCategory.GROCERIES,
    MerchantCategory.TRAVEL: EngineCategory.TRAVEL,
    MerchantCategory.GAS: EngineCategory.GAS,
    MerchantCategory.TRANSIT: EngineCategory.TRANSIT,
    MerchantCategory.STREAMING: EngineCategory.STREAMING,
    MerchantCategory.DRUGSTORES: EngineCategory.DRUGSTORES,
    MerchantCategory.ENTERTAINMENT: EngineCategory.STREAMING,
    MerchantCategory.SUBSCRIPTION: EngineCategory.STREAMING,
    MerchantCategory.ONLINE_RETAIL: EngineCategory.ONLINE,
    MerchantCategory.ELECTRONICS: EngineCategory.ONLINE,
    MerchantCategory.WAREHOUSE_CLUB: EngineCategory.GROCERIES,
    MerchantCategory.DEPARTMENT_STORE: EngineCategory.GENERAL,
}

_CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


def map_to_engine_category(category: MerchantCategory) -> EngineCategory:
    """Map a merchant category onto the reward-rule vocabulary (unknowns earn the general rate)."""
    return _ENGINE_MAPPING.get(MerchantCategory(category), EngineCategory.GENERAL)


def merchant_category_label(category: MerchantCategory) -> str:
    return MERCHANT_CATEGORY_LABELS[MerchantCategory(category)]


def engine_category_label(category: EngineCategory) -> str:
    return ENGINE_CATEGORY_LABELS[EngineCategory(category)]


def confidence_at_least(value: Confidence, floor: Confidence) -> bool:
    return _CONFIDENCE_RANK[Confidence(value)] >= _CONFIDENCE_RANK[Confidence(floor)]
