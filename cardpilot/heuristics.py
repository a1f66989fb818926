"""
Pattern-based category inference for merchants missing from the registry.

First match wins. Brand patterns must stay ahead of generic keyword
patterns: a URL like ``doordash.com/store/pizza`` has to hit the delivery
brand before the cuisine keyword.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern

from cardpilot.categories import Confidence, MerchantCategory


@dataclass(frozen=True)
class HeuristicPattern:
    pattern: Pattern
    category: MerchantCategory
    confidence: Confidence
    reason: str
    brand: bool = False


@dataclass(frozen=True)
class HeuristicResult:
    category: MerchantCategory
    confidence: Confidence
    reason: str


def _brand(regex: str, category: MerchantCategory, reason: str) -> HeuristicPattern:
    return HeuristicPattern(re.compile(regex, re.IGNORECASE), category, Confidence.HIGH, reason, brand=True)


def _keyword(regex: str, category: MerchantCategory, confidence: Confidence, reason: str) -> HeuristicPattern:
    return HeuristicPattern(re.compile(regex, re.IGNORECASE), category, confidence, reason)


C = MerchantCategory

BRAND_PATTERNS: List[HeuristicPattern] = [
    _brand(r"\b(grubhub|doordash|ubereats|postmates|seamless|caviar)\b", C.DINING, "Known food delivery platform"),
    _brand(r"\b(instacart|shipt|freshdirect|peapod)\b", C.GROCERIES, "Known grocery delivery service"),
    _brand(r"\b(expedia|kayak|priceline|orbitz|travelocity|tripadvisor|airbnb|vrbo|booking\.com)\b", C.TRAVEL, "Known travel platform"),
    _brand(r"\b(shell|chevron|exxon|mobil|bp|texaco|speedway|wawa|sheetz)\b", C.GAS, "Known gas station brand"),
    _brand(r"\b(netflix|hulu|disney|hbo|max|spotify|pandora|apple\s*music|youtube\s*premium|peacock|paramount)\b", C.STREAMING, "Known streaming service"),
    _brand(r"\b(ticketmaster|stubhub|seatgeek|fandango|amc|regal)\b", C.ENTERTAINMENT, "Known entertainment platform"),
    _brand(r"\b(cvs|walgreens|rite\s*aid|duane\s*reade)\b", C.DRUGSTORES, "Known drugstore chain"),
    _brand(r"\b(bestbuy|newegg|bhphoto|microcenter)\b", C.ELECTRONICS, "Known electronics retailer"),
    _brand(r"\b(homedepot|home\s*depot|lowes|lowe's|ikea|wayfair|pottery\s*barn)\b", C.HOME_IMPROVEMENT, "Known home improvement retailer"),
    _brand(r"\b(nike|adidas|zara|hm|h&m|gap|uniqlo|nordstrom|macy)\b", C.APPAREL, "Known apparel brand"),
    _brand(r"\b(sephora|ulta|bath\s*and\s*body)\b", C.BEAUTY, "Known beauty retailer"),
    _brand(r"\b(costco|sam's\s*club|bj's)\b", C.WAREHOUSE_CLUB, "Known warehouse club"),
    _brand(r"\b(target|walmart|kohl|jcpenney|sears)\b", C.DEPARTMENT_STORE, "Known department store"),
    _brand(r"\b(petco|petsmart|chewy)\b", C.PET, "Known pet retailer"),
    _brand(r"\b(staples|office\s*depot|office\s*max)\b", C.OFFICE, "Known office retailer"),
    _brand(r"\b(verizon|att|at&t|tmobile|t-mobile|sprint|xfinity|spectrum|comcast)\b", C.TELECOM, "Known telecom provider"),
]

KEYWORD_PATTERNS: List[HeuristicPattern] = [
    _keyword(r"\b(restaurant|dine|dining|cafe|coffee|bistro|eatery|food\s*delivery|takeout|order\s*food)\b", C.DINING, Confidence.MEDIUM, "Dining keyword detected in URL"),
    _keyword(r"\b(pizza|burger|sushi|taco|thai|chinese|indian|mexican|italian|korean|japanese|vietnamese|mediterranean)\b", C.DINING, Confidence.MEDIUM, "Restaurant cuisine type in URL"),
    _keyword(r"\b(grocery|groceries|supermarket|market|organic|fresh|produce|meat|seafood|deli)\b", C.GROCERIES, Confidence.MEDIUM, "Grocery keyword detected"),
    _keyword(r"\b(flight|flights|airline|airfare|booking|hotel|hotels|reservation|vacation|trip|travel|resort)\b", C.TRAVEL, Confidence.MEDIUM, "Travel keyword detected"),
    _keyword(r"\b(gas|gasoline|fuel|petro|petroleum|filling\s*station)\b", C.GAS, Confidence.MEDIUM, "Gas/fuel keyword detected"),
    _keyword(r"\b(rideshare|ride\s*share|taxi|cab|uber|lyft|scooter|bike\s*share)\b", C.TRANSIT, Confidence.MEDIUM, "Transit/rideshare keyword detected"),
    _keyword(r"\b(stream|streaming|subscription|watch|listen|podcast|audiobook)\b", C.STREAMING, Confidence.LOW, "Streaming-related keyword"),
    _keyword(r"\b(ticket|tickets|concert|show|event|movie|cinema|theatre|theater|performance)\b", C.ENTERTAINMENT, Confidence.MEDIUM, "Entertainment/ticket keyword"),
    _keyword(r"\b(pharmacy|drug|prescription|rx|medicine|health)\b", C.DRUGSTORES, Confidence.MEDIUM, "Pharmacy/drugstore keyword"),
    _keyword(r"\b(electronics|computer|laptop|phone|smartphone|tech|gadget|device)\b", C.ELECTRONICS, Confidence.LOW, "Electronics keyword detected"),
    _keyword(r"\b(home\s*improvement|hardware|furniture|decor|appliance|kitchen|bath|bedroom)\b", C.HOME_IMPROVEMENT, Confidence.MEDIUM, "Home improvement keyword"),
    _keyword(r"\b(fashion|clothing|clothes|apparel|wear|shoes|footwear|sneaker|dress|suit)\b", C.APPAREL, Confidence.MEDIUM, "Apparel keyword detected"),
    _keyword(r"\b(beauty|cosmetic|makeup|skincare|fragrance|perfume|salon|spa)\b", C.BEAUTY, Confidence.MEDIUM, "Beauty keyword detected"),
    _keyword(r"\b(warehouse|wholesale|bulk|membership\s*club)\b", C.WAREHOUSE_CLUB, Confidence.MEDIUM, "Warehouse/wholesale keyword"),
    _keyword(r"\b(department\s*store)\b", C.DEPARTMENT_STORE, Confidence.MEDIUM, "Department store keyword"),
    _keyword(r"\b(pet|pets|dog|cat|animal|veterinary|vet)\b", C.PET, Confidence.MEDIUM, "Pet-related keyword"),
    _keyword(r"\b(office|supplies|stationary|printer|ink|paper)\b", C.OFFICE, Confidence.LOW, "Office supplies keyword"),
    _keyword(r"\b(utility|utilities|electric|power|water|gas\s*bill)\b", C.UTILITIES, Confidence.MEDIUM, "Utility keyword"),
    _keyword(r"\b(mobile|wireless|phone\s*plan|cell\s*phone|internet|broadband|cable)\b", C.TELECOM, Confidence.MEDIUM, "Telecom keyword"),
    # broad fallback, keep last
    _keyword(r"\b(shop|store|buy|cart|checkout|order|purchase)\b", C.ONLINE_RETAIL, Confidence.LOW, "Generic shopping keyword"),
]

CATEGORY_PATTERNS: List[HeuristicPattern] = BRAND_PATTERNS + KEYWORD_PATTERNS


def _first_match(text: str) -> Optional[HeuristicPattern]:
    for entry in CATEGORY_PATTERNS:
        if entry.pattern.search(text):
            return entry
    return None


def infer_from_url(url: Optional[str]) -> Optional[HeuristicResult]:
    if not url:
        return None
    entry = _first_match(url.lower())
    if entry is None:
        return None
    return HeuristicResult(entry.category, entry.confidence, entry.reason)


def infer_from_title(title: Optional[str]) -> Optional[HeuristicResult]:
    """Same table as URLs, but a page title is never trusted above ``low``."""
    if not title:
        return None
    entry = _first_match(title.lower())
    if entry is None:
        return None
    return HeuristicResult(entry.category, Confidence.LOW, f"{entry.reason} (from page title)")


def combine(url_result: Optional[HeuristicResult], title_result: Optional[HeuristicResult]) -> Optional[HeuristicResult]:
    """Agreement between URL and title is reported as ``high``; otherwise the URL wins."""
    if url_result and title_result and url_result.category == title_result.category:
        return HeuristicResult(
            url_result.category,
            Confidence.HIGH,
            f"{url_result.reason}; confirmed by page title",
        )
    return url_result or title_result


def infer(url: Optional[str], title: Optional[str] = None) -> Optional[HeuristicResult]:
    return combine(infer_from_url(url), infer_from_title(title))
