"""
Database-backed override store and review queue.

Both expose the same methods as the in-memory stores in ``cardpilot`` so the
resolver can be handed either one.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.merchant import MerchantOverrideRecord, MerchantSuggestionRecord
from cardpilot.categories import Confidence, MerchantCategory
from cardpilot.errors import InvalidTransitionError
from cardpilot.overrides import MerchantOverride
from cardpilot.review_queue import PendingMerchantSuggestion, SuggestionSource, SuggestionStatus


def _to_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _to_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


def _override_from_row(row: MerchantOverrideRecord) -> MerchantOverride:
    return MerchantOverride(
        domain=row.domain,
        display_name=row.display_name,
        category=MerchantCategory(row.category),
        rationale=row.rationale,
        approved_by=row.approved_by,
        approved_at=_to_aware(row.approved_at),
        verified=True,
    )


def _suggestion_from_row(row: MerchantSuggestionRecord) -> PendingMerchantSuggestion:
    return PendingMerchantSuggestion(
        id=row.id,
        url=row.url,
        domain=row.domain,
        suggested_category=MerchantCategory(row.suggested_category),
        confidence=Confidence(row.confidence),
        rationale=row.rationale,
        source=SuggestionSource(row.source),
        merchant_name=row.merchant_name,
        status=SuggestionStatus(row.status),
        created_at=_to_aware(row.created_at),
        reviewed_at=_to_aware(row.reviewed_at),
        reviewer_notes=row.reviewer_notes,
    )


class SqlOverrideStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, domain: str) -> Optional[MerchantOverride]:
        row = self.db.get(MerchantOverrideRecord, (domain or "").lower())
        return _override_from_row(row) if row else None

    def set(self, override: MerchantOverride) -> MerchantOverride:
        key = override.domain.lower()
        row = self.db.get(MerchantOverrideRecord, key)
        if row is None:
            row = MerchantOverrideRecord(domain=key)
            self.db.add(row)
        row.display_name = override.display_name
        row.category = MerchantCategory(override.category).value
        row.rationale = override.rationale
        row.approved_by = override.approved_by
        row.approved_at = _to_naive(override.approved_at)
        row.verified = True
        self.db.commit()
        self.db.refresh(row)
        return _override_from_row(row)

    def remove(self, domain: str) -> bool:
        row = self.db.get(MerchantOverrideRecord, (domain or "").lower())
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    def list(self) -> List[MerchantOverride]:
        rows = self.db.query(MerchantOverrideRecord).order_by(MerchantOverrideRecord.domain).all()
        return [_override_from_row(row) for row in rows]

    def clear(self) -> None:
        self.db.query(MerchantOverrideRecord).delete()
        self.db.commit()


class SqlReviewQueue:
    def __init__(self, db: Session) -> None:
        self.db = db

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
        existing = self.get_pending_by_domain(domain)
        if existing is not None:
            return existing

        row = MerchantSuggestionRecord(
            id=str(uuid.uuid4()),
            url=url,
            domain=domain.lower(),
            suggested_category=MerchantCategory(suggested_category).value,
            confidence=Confidence(confidence).value,
            rationale=rationale,
            source=SuggestionSource(source).value,
            merchant_name=merchant_name,
            status=SuggestionStatus.PENDING.value,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return _suggestion_from_row(row)

    def get(self, suggestion_id: str) -> Optional[PendingMerchantSuggestion]:
        row = self.db.get(MerchantSuggestionRecord, suggestion_id)
        return _suggestion_from_row(row) if row else None

    def get_by_domain(self, domain: str) -> List[PendingMerchantSuggestion]:
        rows = (
            self.db.query(MerchantSuggestionRecord)
            .filter(MerchantSuggestionRecord.domain == (domain or "").lower())
            .order_by(MerchantSuggestionRecord.created_at)
            .all()
        )
        return [_suggestion_from_row(row) for row in rows]

    def get_pending_by_domain(self, domain: str) -> Optional[PendingMerchantSuggestion]:
        row = (
            self.db.query(MerchantSuggestionRecord)
            .filter(
                MerchantSuggestionRecord.domain == (domain or "").lower(),
                MerchantSuggestionRecord.status == SuggestionStatus.PENDING.value,
            )
            .order_by(MerchantSuggestionRecord.created_at)
            .first()
        )
        return _suggestion_from_row(row) if row else None

    def has_pending(self, domain: str) -> bool:
        return self.get_pending_by_domain(domain) is not None

    def list_pending(self) -> List[PendingMerchantSuggestion]:
        rows = (
            self.db.query(MerchantSuggestionRecord)
            .filter(MerchantSuggestionRecord.status == SuggestionStatus.PENDING.value)
            .order_by(MerchantSuggestionRecord.created_at)
            .all()
        )
        return [_suggestion_from_row(row) for row in rows]

    def list_all(self) -> List[PendingMerchantSuggestion]:
        rows = self.db.query(MerchantSuggestionRecord).order_by(MerchantSuggestionRecord.created_at).all()
        return [_suggestion_from_row(row) for row in rows]

    def approve(self, suggestion_id: str, notes: Optional[str] = None) -> PendingMerchantSuggestion:
        return self._transition(suggestion_id, SuggestionStatus.APPROVED, notes)

    def reject(self, suggestion_id: str, notes: Optional[str] = None) -> PendingMerchantSuggestion:
        return self._transition(suggestion_id, SuggestionStatus.REJECTED, notes)

    def _transition(
        self, suggestion_id: str, status: SuggestionStatus, notes: Optional[str]
    ) -> PendingMerchantSuggestion:
        row = self.db.get(MerchantSuggestionRecord, suggestion_id)
        if row is None:
            raise KeyError(suggestion_id)
        if row.status != SuggestionStatus.PENDING.value:
            raise InvalidTransitionError(f"Suggestion {suggestion_id} is already {row.status}")
        row.status = status.value
        row.reviewed_at = _to_naive(datetime.now(timezone.utc))
        row.reviewer_notes = notes
        self.db.commit()
        self.db.refresh(row)
        return _suggestion_from_row(row)
