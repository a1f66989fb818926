"""
AI merchant classifier.

Wraps an opaque classification transport (HTTP endpoint or in-process LLM
call). Whatever the transport returns is validated against the closed
category enum before it can reach the resolver.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from cardpilot.ai_cache import AICache, AIClassification
from cardpilot.categories import Confidence, MerchantCategory
from cardpilot.domain import display_name_from_domain
from cardpilot.errors import InvalidCategoryError

logger = logging.getLogger(__name__)

FALLBACK_RATIONALE = "Unable to classify - defaulting to general category"

# Takes {"url", "domain", "title"} and returns the raw response object.
# Raises on network or decoding failures.
ClassifierTransport = Callable[[dict], dict]


@dataclass(frozen=True)
class ClassificationOutcome:
    """
    What the classifier produced for one request.

    Fields:
    - result: the classification (a deterministic fallback when ``fallback``)
    - fallback: True when the transport failed or returned invalid data
    - cached: True when served from the TTL cache
    """
    result: AIClassification
    fallback: bool = False
    cached: bool = False


def fallback_classification(domain: Optional[str]) -> AIClassification:
    return AIClassification(
        category=MerchantCategory.OTHER,
        confidence=Confidence.LOW,
        rationale=FALLBACK_RATIONALE,
        merchant_name=display_name_from_domain(domain),
    )


def parse_classification(data: dict) -> AIClassification:
    """
    Validate a raw classification response.

    Raises:
        InvalidCategoryError: category missing or outside the enum
        ValueError: response is not an object
    """
    if not isinstance(data, dict):
        raise ValueError("Classification response must be a JSON object")

    raw_category = data.get("category")
    try:
        category = MerchantCategory(raw_category)
    except ValueError:
        raise InvalidCategoryError(str(raw_category))

    try:
        confidence = Confidence(data.get("confidence") or "low")
    except ValueError:
        confidence = Confidence.LOW

    return AIClassification(
        category=category,
        confidence=confidence,
        rationale=data.get("rationale") or "AI classification",
        merchant_name=data.get("merchantName") or data.get("merchant_name"),
    )


class MerchantClassifier:
    def __init__(self, transport: Optional[ClassifierTransport], cache: Optional[AICache] = None):
        self.transport = transport
        self.cache = cache if cache is not None else AICache()

    def classify(self, url: str, domain: str, title: Optional[str] = None) -> ClassificationOutcome:
        cached = self.cache.get(domain)
        if cached is not None:
            return ClassificationOutcome(cached, cached=True)

        if self.transport is None:
            logger.warning("No merchant classifier transport configured; using fallback for %s", domain)
            return ClassificationOutcome(fallback_classification(domain), fallback=True)

        payload = {"url": url, "domain": domain}
        if title:
            payload["title"] = title

        try:
            result = parse_classification(self.transport(payload))
        except InvalidCategoryError as e:
            logger.warning("Rejected AI classification for %s: %s", domain, e)
            return ClassificationOutcome(fallback_classification(domain), fallback=True)
        except Exception as e:
            logger.warning("AI classification failed for %s: %s", domain, e)
            return ClassificationOutcome(fallback_classification(domain), fallback=True)

        self.cache.set(domain, result)
        return ClassificationOutcome(result)
