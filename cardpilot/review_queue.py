"""
Queue of merchant classifications waiting for an admin decision.

At most one pending suggestion exists per domain in a single store instance.
Two concurrent writers against a shared database can still race and create
two pending rows; the queue tolerates that and admins resolve both.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from cardpilot.categories import Confidence, MerchantCategory
from cardpilot.errors import InvalidTransitionError


class SuggestionSource(str, Enum):
    AI = "ai"
    HEURISTIC = "heuristic"
    USER_REPORT = "user_report"


class SuggestionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class PendingMerchantSuggestion:
    """
    A proposed domain categorization.

    Fields:
    - id: uuid string
    - url: URL the suggestion was made for
    - domain: normalized domain
    - suggested_category: inferred category
    - confidence: confidence of the inference
    - rationale: why the category was proposed
    - source: 'ai' | 'heuristic' | 'user_report'
    - merchant_name: optional display name
    - status: 'pending' | 'approved' | 'rejected'
    - created_at / reviewed_at: timestamps
    - reviewer_notes: optional admin notes
    """
    id: str
    url: str
    domain: str
    suggested_category: MerchantCategory
    confidence: Confidence
    rationale: str
    source: SuggestionSource
    merchant_name: Optional[str] = None
    status: SuggestionStatus = SuggestionStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    reviewed_at: Optional[datetime] = None
    reviewer_notes: Optional[str] = None


class ReviewQueue:
    """In-memory review queue."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._entries: Dict[str, PendingMerchantSuggestion] = {}

    def add(
        self,
        url: str,
        domain: str,
        suggested_category: MerchantCategory,
        confidence: Confidence,
        rationale: str,
        source: SuggestionSource = SuggestionSource.AI,
        merchant_name: Optional[str] = None,
    ) -> PendingMerchantSuggestion:
        """Queue a suggestion, or return the pending one already queued for the domain."""
        existing = self.get_pending_by_domain(domain)
        if existing is not None:
            return existing

        suggestion = PendingMerchantSuggestion(
            id=str(uuid.uuid4()),
            url=url,
            domain=domain.lower(),
            suggested_category=MerchantCategory(suggested_category),
            confidence=Confidence(confidence),
            rationale=rationale,
            source=SuggestionSource(source),
            merchant_name=merchant_name,
            created_at=self._clock(),
        )
        self._entries[suggestion.id] = suggestion
        return suggestion

    def get(self, suggestion_id: str) -> Optional[PendingMerchantSuggestion]:
        return self._entries.get(suggestion_id)

    def get_by_domain(self, domain: str) -> List[PendingMerchantSuggestion]:
        key = (domain or "").lower()
        return [s for s in self._entries.values() if s.domain == key]

    def get_pending_by_domain(self, domain: str) -> Optional[PendingMerchantSuggestion]:
        for suggestion in self.get_by_domain(domain):
            if suggestion.status == SuggestionStatus.PENDING:
                return suggestion
        return None

    def has_pending(self, domain: str) -> bool:
        return self.get_pending_by_domain(domain) is not None

    def list_pending(self) -> List[PendingMerchantSuggestion]:
        return [s for s in self._entries.values() if s.status == SuggestionStatus.PENDING]

    def list_all(self) -> List[PendingMerchantSuggestion]:
        return list(self._entries.values())

    def approve(self, suggestion_id: str, notes: Optional[str] = None) -> PendingMerchantSuggestion:
        return self._transition(suggestion_id, SuggestionStatus.APPROVED, notes)

    def reject(self, suggestion_id: str, notes: Optional[str] = None) -> PendingMerchantSuggestion:
        return self._transition(suggestion_id, SuggestionStatus.REJECTED, notes)

    def _transition(
        self, suggestion_id: str, status: SuggestionStatus, notes: Optional[str]
    ) -> PendingMerchantSuggestion:
        suggestion = self._entries.get(suggestion_id)
        if suggestion is None:
            raise KeyError(suggestion_id)
        if suggestion.status != SuggestionStatus.PENDING:
            raise InvalidTransitionError(
                f"Suggestion {suggestion_id} is already {suggestion.status.value}"
            )
        suggestion.status = status
        suggestion.reviewed_at = self._clock()
        suggestion.reviewer_notes = notes
        return suggestion
