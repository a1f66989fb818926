import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.config import MerchantAIConfig
from app.services.errors import ServiceError, not_found, validation_error
from app.services.llm_service import classify_merchant_with_openai, get_classifier_transport
from app.services.merchant_stores import SqlOverrideStore, SqlReviewQueue
from cardpilot.ai_cache import AICache
from cardpilot.categories import MerchantCategory
from cardpilot.classifier import MerchantClassifier, parse_classification
from cardpilot.errors import InvalidCategoryError, InvalidTransitionError, LLMQuotaError, LLMUnavailableError
from cardpilot.merchant_intelligence import MerchantContext, MerchantResolver
from cardpilot.overrides import MerchantOverride, create_override_from_approval
from cardpilot.registry import MerchantRecord, search_merchants
from cardpilot.review_queue import PendingMerchantSuggestion

logger = logging.getLogger(__name__)

# One cache per process, shared by every request
ai_cache = AICache(path=MerchantAIConfig.CACHE_PATH)


def _override_to_dict(override: MerchantOverride) -> Dict[str, Any]:
    return {
        "domain": override.domain,
        "display_name": override.display_name,
        "category": override.category.value,
        "rationale": override.rationale,
        "approved_by": override.approved_by,
        "approved_at": override.approved_at.isoformat() if override.approved_at else None,
        "verified": override.verified,
    }


def _suggestion_to_dict(suggestion: PendingMerchantSuggestion) -> Dict[str, Any]:
    return {
        "id": suggestion.id,
        "url": suggestion.url,
        "domain": suggestion.domain,
        "suggested_category": suggestion.suggested_category.value,
        "confidence": suggestion.confidence.value,
        "rationale": suggestion.rationale,
        "source": suggestion.source.value,
        "merchant_name": suggestion.merchant_name,
        "status": suggestion.status.value,
        "created_at": suggestion.created_at.isoformat() if suggestion.created_at else None,
        "reviewed_at": suggestion.reviewed_at.isoformat() if suggestion.reviewed_at else None,
        "reviewer_notes": suggestion.reviewer_notes,
    }


def _record_to_dict(record: MerchantRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "display_name": record.display_name,
        "domains": list(record.domains),
        "default_category": record.default_category.value,
        "tags": list(record.tags),
        "exclusions": list(record.exclusions),
        "verified": record.verified,
    }


class MerchantService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.overrides = SqlOverrideStore(db)
        self.review_queue = SqlReviewQueue(db)
        self.resolver = MerchantResolver(
            overrides=self.overrides,
            review_queue=self.review_queue,
            classifier=MerchantClassifier(get_classifier_transport(), ai_cache),
        )

    def resolve(self, url: str, title: Optional[str] = None, skip_ai: bool = False) -> MerchantContext:
        return self.resolver.resolve(url, title, skip_ai=skip_ai)

    def resolve_sync(self, url: str, title: Optional[str] = None) -> MerchantContext:
        return self.resolver.resolve_sync(url, title)

    def search_registry(self, query: str) -> List[Dict[str, Any]]:
        return [_record_to_dict(record) for record in search_merchants(query)]

    def classify(self, url: str, domain: str, title: Optional[str] = None) -> Dict[str, Any]:
        """
        Classification endpoint: one uncached OpenAI call, validated.

        Unlike the resolver path this does not fall back; the caller asked for
        the model's verdict and gets either that or an error.
        """
        payload = {"url": url, "domain": domain.lower()}
        if title:
            payload["title"] = title
        try:
            result = parse_classification(classify_merchant_with_openai(payload))
        except LLMQuotaError as exc:
            raise ServiceError(429, "RATE_LIMITED", "AI provider rate limit reached.", {"reason": str(exc)})
        except LLMUnavailableError as exc:
            raise ServiceError(500, "AI_UNAVAILABLE", "Merchant classifier is unavailable.", {"reason": str(exc)})
        except (InvalidCategoryError, ValueError) as exc:
            raise ServiceError(500, "INVALID_OUTPUT_SCHEMA", "Classifier returned an invalid category.", {"reason": str(exc)})
        return {
            "category": result.category.value,
            "confidence": result.confidence.value,
            "rationale": result.rationale,
            "merchantName": result.merchant_name,
        }

    # Review queue

    def list_review_queue(self, status: Optional[str] = "pending") -> List[Dict[str, Any]]:
        if status == "pending":
            entries = self.review_queue.list_pending()
        elif status in (None, "all"):
            entries = self.review_queue.list_all()
        else:
            entries = [e for e in self.review_queue.list_all() if e.status.value == status]
        return [_suggestion_to_dict(e) for e in entries]

    def approve_suggestion(
        self,
        suggestion_id: str,
        notes: Optional[str] = None,
        category: Optional[MerchantCategory] = None,
        display_name: Optional[str] = None,
        approved_by: str = "admin",
    ) -> Dict[str, Any]:
        """Approve a pending suggestion and write the matching override."""
        suggestion = self._transition(suggestion_id, "approve", notes)
        override = self.overrides.set(
            create_override_from_approval(
                domain=suggestion.domain,
                display_name=display_name or suggestion.merchant_name or suggestion.domain,
                category=category or suggestion.suggested_category,
                rationale=notes or suggestion.rationale,
                approved_by=approved_by,
            )
        )
        logger.info("Approved merchant suggestion %s; override set for %s", suggestion_id, override.domain)
        return {"suggestion": _suggestion_to_dict(suggestion), "override": _override_to_dict(override)}

    def reject_suggestion(self, suggestion_id: str, notes: Optional[str] = None) -> Dict[str, Any]:
        suggestion = self._transition(suggestion_id, "reject", notes)
        return {"suggestion": _suggestion_to_dict(suggestion)}

    def _transition(self, suggestion_id: str, action: str, notes: Optional[str]) -> PendingMerchantSuggestion:
        try:
            if action == "approve":
                return self.review_queue.approve(suggestion_id, notes)
            return self.review_queue.reject(suggestion_id, notes)
        except KeyError:
            raise not_found("Suggestion not found.", id=suggestion_id)
        except InvalidTransitionError as exc:
            raise ServiceError(409, "CONFLICT", str(exc), {"id": suggestion_id})

    # Overrides

    def list_overrides(self) -> List[Dict[str, Any]]:
        return [_override_to_dict(o) for o in self.overrides.list()]

    def get_override(self, domain: str) -> Dict[str, Any]:
        override = self.overrides.get(domain)
        if override is None:
            raise not_found("Override not found.", domain=domain)
        return _override_to_dict(override)

    def put_override(
        self,
        domain: str,
        display_name: str,
        category: MerchantCategory,
        rationale: Optional[str] = None,
        approved_by: str = "admin",
    ) -> Dict[str, Any]:
        domain = (domain or "").strip().lower()
        if not domain or "." not in domain:
            raise validation_error("domain must be a hostname like example.com", field="domain")
        override = self.overrides.set(
            create_override_from_approval(domain, display_name, category, rationale, approved_by)
        )
        return _override_to_dict(override)

    def delete_override(self, domain: str) -> None:
        if not self.overrides.remove(domain):
            raise not_found("Override not found.", domain=domain)

    # AI cache

    @staticmethod
    def cache_stats() -> Dict[str, Any]:
        stats = ai_cache.stats()
        return {
            "count": stats.count,
            "oldest_entry": stats.oldest_entry.isoformat() if stats.oldest_entry else None,
        }

    @staticmethod
    def clear_cache() -> None:
        ai_cache.clear()
        logger.info("AI merchant cache cleared")
