"""
Merchant resolution pipeline.

Overrides > registry > heuristics > AI classifier > fallback. Each step
appends to the decision path that is shown to users as the reason behind a
recommendation. ``resolve`` and ``resolve_sync`` share one implementation;
the synchronous variant simply never reaches the AI step.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from cardpilot import heuristics
from cardpilot.categories import (
    Confidence,
    EngineCategory,
    MerchantCategory,
    confidence_at_least,
    map_to_engine_category,
    merchant_category_label,
)
from cardpilot.classifier import MerchantClassifier
from cardpilot.domain import display_name_from_domain, extract_registrable_domain
from cardpilot.overrides import OverrideStore
from cardpilot.registry import MERCHANT_REGISTRY, MerchantRecord, find_merchant_by_domain
from cardpilot.review_queue import ReviewQueue, SuggestionSource

logger = logging.getLogger(__name__)


class ResolutionSource(str, Enum):
    OVERRIDE = "override"
    REGISTRY = "registry"
    HEURISTIC = "heuristic"
    AI = "ai"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DecisionStep:
    step: str
    detail: str


@dataclass(frozen=True)
class AISuggestion:
    category: MerchantCategory
    confidence: Confidence
    rationale: str
    queued_for_review: bool = False


@dataclass
class MerchantContext:
    """
    Result of resolving a URL to a merchant.

    Fields:
    - domain: normalized domain, None when the input could not be parsed
    - merchant_name: display name
    - category: merchant category
    - engine_category: reward-rule category derived from ``category``
    - confidence: 'low' | 'medium' | 'high'
    - source: which pipeline step produced the answer
    - summary: one-line explanation
    - decision_path: ordered trace of every step taken
    - ai_suggestion: set when the AI classifier answered
    - registry_id / override_domain: the record that matched, if any
    - exclusions: reward exclusion flags from the registry
    - is_warehouse / excluded_from_grocery: registry-derived flags
    """
    domain: Optional[str]
    merchant_name: str
    category: MerchantCategory
    engine_category: EngineCategory
    confidence: Confidence
    source: ResolutionSource
    summary: str
    decision_path: List[DecisionStep] = field(default_factory=list)
    ai_suggestion: Optional[AISuggestion] = None
    registry_id: Optional[str] = None
    override_domain: Optional[str] = None
    exclusions: Tuple[str, ...] = ()
    is_warehouse: bool = False
    excluded_from_grocery: bool = False

    def to_dict(self) -> dict:
        return {
            "domain": self.domain,
            "merchant_name": self.merchant_name,
            "category": self.category.value,
            "engine_category": self.engine_category.value,
            "confidence": self.confidence.value,
            "source": self.source.value,
            "explanation": {
                "summary": self.summary,
                "decision_path": [{"step": s.step, "detail": s.detail} for s in self.decision_path],
            },
            "ai_suggestion": None
            if self.ai_suggestion is None
            else {
                "category": self.ai_suggestion.category.value,
                "confidence": self.ai_suggestion.confidence.value,
                "rationale": self.ai_suggestion.rationale,
                "queued_for_review": self.ai_suggestion.queued_for_review,
            },
            "registry_id": self.registry_id,
            "override_domain": self.override_domain,
            "exclusions": list(self.exclusions),
            "is_warehouse": self.is_warehouse,
            "excluded_from_grocery": self.excluded_from_grocery,
        }


def _label(category: MerchantCategory) -> str:
    return merchant_category_label(category).lower()


class MerchantResolver:
    """
    Resolves URLs to merchant contexts.

    Stores and the classifier are injected so one resolver instance can be
    built per process (or per test) with its own state.
    """

    def __init__(
        self,
        overrides=None,
        review_queue=None,
        classifier: Optional[MerchantClassifier] = None,
        registry: Optional[List[MerchantRecord]] = None,
    ):
        self.overrides = overrides if overrides is not None else OverrideStore()
        self.review_queue = review_queue if review_queue is not None else ReviewQueue()
        self.classifier = classifier
        self.registry = registry if registry is not None else MERCHANT_REGISTRY

    def resolve(self, url: str, title: Optional[str] = None, skip_ai: bool = False) -> MerchantContext:
        """Full pipeline, including the AI classifier when heuristics are weak."""
        return self._resolve(url, title, allow_ai=not skip_ai)

    def resolve_sync(self, url: str, title: Optional[str] = None) -> MerchantContext:
        """Override, registry and heuristics only. Never calls out."""
        return self._resolve(url, title, allow_ai=False)

    def _resolve(self, url: str, title: Optional[str], allow_ai: bool) -> MerchantContext:
        path: List[DecisionStep] = []

        domain = extract_registrable_domain(url)
        if domain is None:
            return self._unknown(None, "Could not extract valid domain from URL", path)
        path.append(DecisionStep("Domain extracted", domain))

        override = self.overrides.get(domain)
        if override is not None:
            path.append(
                DecisionStep(
                    "Override found",
                    f"Admin-approved: {override.display_name} → {MerchantCategory(override.category).value}",
                )
            )
            category = MerchantCategory(override.category)
            return MerchantContext(
                domain=domain,
                merchant_name=override.display_name or display_name_from_domain(domain),
                category=category,
                engine_category=map_to_engine_category(category),
                confidence=Confidence.HIGH,
                source=ResolutionSource.OVERRIDE,
                summary=f"Using admin-approved mapping for {override.display_name or domain}",
                decision_path=path,
                override_domain=override.domain,
            )
        path.append(DecisionStep("Override check", "No admin override found"))

        record = find_merchant_by_domain(domain, self.registry)
        if record is not None:
            return self._from_registry(record, url, domain, path)
        path.append(DecisionStep("Registry check", "Not found in merchant registry"))

        heuristic = heuristics.infer(url, title)
        if heuristic is not None and confidence_at_least(heuristic.confidence, Confidence.MEDIUM):
            path.append(DecisionStep("Heuristic match", f"{heuristic.reason} ({heuristic.confidence.value} confidence)"))
            return MerchantContext(
                domain=domain,
                merchant_name=display_name_from_domain(domain),
                category=heuristic.category,
                engine_category=map_to_engine_category(heuristic.category),
                confidence=heuristic.confidence,
                source=ResolutionSource.HEURISTIC,
                summary=f"Detected as {_label(heuristic.category)} based on URL patterns",
                decision_path=path,
            )

        if heuristic is not None:
            path.append(DecisionStep("Heuristic", f"Low confidence: {heuristic.reason}"))
        else:
            path.append(DecisionStep("Heuristic check", "No pattern match found"))

        if allow_ai and self.classifier is not None:
            context = self._classify(url, domain, title, path)
            if context is not None:
                return context

        if heuristic is not None:
            return MerchantContext(
                domain=domain,
                merchant_name=display_name_from_domain(domain),
                category=heuristic.category,
                engine_category=map_to_engine_category(heuristic.category),
                confidence=Confidence.LOW,
                source=ResolutionSource.HEURISTIC,
                summary=f"Best guess: {_label(heuristic.category)} (low confidence)",
                decision_path=path,
            )

        return self._unknown(domain, "Could not determine merchant category", path)

    def _from_registry(
        self, record: MerchantRecord, url: str, domain: str, path: List[DecisionStep]
    ) -> MerchantContext:
        mark = " ✓" if record.verified else ""
        path.append(
            DecisionStep("Registry match", f"Found: {record.display_name} ({record.default_category.value}){mark}")
        )
        category = record.default_category
        confidence = Confidence.HIGH if record.verified else Confidence.MEDIUM

        rule = record.category_override_for(url)
        if rule is not None:
            category = rule.category
            confidence = rule.confidence
            path.append(DecisionStep("Path override", rule.reason))

        return MerchantContext(
            domain=domain,
            merchant_name=record.display_name,
            category=category,
            engine_category=map_to_engine_category(category),
            confidence=confidence,
            source=ResolutionSource.REGISTRY,
            summary=f"{record.display_name} is a known {_label(category)} merchant",
            decision_path=path,
            registry_id=record.id,
            exclusions=record.exclusions,
            is_warehouse=record.is_warehouse,
            excluded_from_grocery=record.excluded_from_grocery,
        )

    def _classify(
        self, url: str, domain: str, title: Optional[str], path: List[DecisionStep]
    ) -> Optional[MerchantContext]:
        path.append(DecisionStep("AI classification", "Requesting AI analysis..."))
        outcome = self.classifier.classify(url, domain, title)
        if outcome.fallback:
            path.append(DecisionStep("AI error", "AI classification failed, using fallback"))
            return None

        result = outcome.result
        path.append(
            DecisionStep("AI result", f"{result.category.value} ({result.confidence.value}) - {result.rationale}")
        )

        queued = False
        if not self.review_queue.has_pending(domain):
            self.review_queue.add(
                url=url,
                domain=domain,
                suggested_category=result.category,
                confidence=result.confidence,
                rationale=result.rationale,
                source=SuggestionSource.AI,
                merchant_name=result.merchant_name,
            )
            queued = True
            path.append(DecisionStep("Review queue", "Added to admin review queue"))

        return MerchantContext(
            domain=domain,
            merchant_name=result.merchant_name or display_name_from_domain(domain),
            category=result.category,
            engine_category=map_to_engine_category(result.category),
            confidence=result.confidence,
            source=ResolutionSource.AI,
            summary=f"AI classified as {_label(result.category)} (pending review)",
            decision_path=path,
            ai_suggestion=AISuggestion(result.category, result.confidence, result.rationale, queued),
        )

    @staticmethod
    def _unknown(domain: Optional[str], reason: str, path: List[DecisionStep]) -> MerchantContext:
        path.append(DecisionStep("Fallback", reason))
        return MerchantContext(
            domain=domain,
            merchant_name=display_name_from_domain(domain),
            category=MerchantCategory.OTHER,
            engine_category=EngineCategory.GENERAL,
            confidence=Confidence.LOW,
            source=ResolutionSource.UNKNOWN,
            summary="Unable to determine merchant category - using general rate",
            decision_path=path,
        )
