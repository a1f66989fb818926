"""
Admin-approved merchant overrides.

``OverrideStore`` is the in-memory implementation; the service layer ships
a database-backed store with the same methods.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from cardpilot.categories import MerchantCategory


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MerchantOverride:
    """
    A domain -> category mapping that shadows the registry and heuristics.

    Fields:
    - domain: lower-cased domain (store key)
    - display_name: merchant name to show
    - category: category to assign
    - rationale: why the mapping exists
    - approved_by: who approved it
    - approved_at: when it was approved
    - verified: always True for overrides
    """
    domain: str
    display_name: str
    category: MerchantCategory
    rationale: Optional[str] = None
    approved_by: str = "admin"
    approved_at: datetime = field(default_factory=_utc_now)
    verified: bool = True


class OverrideStore:
    """Last-write-wins keyed store of overrides."""

    def __init__(self):
        self._entries: Dict[str, MerchantOverride] = {}

    def get(self, domain: str) -> Optional[MerchantOverride]:
        return self._entries.get((domain or "").lower())

    def set(self, override: MerchantOverride) -> MerchantOverride:
        key = override.domain.lower()
        stored = replace(override, domain=key, verified=True)
        self._entries[key] = stored
        return stored

    def remove(self, domain: str) -> bool:
        return self._entries.pop((domain or "").lower(), None) is not None

    def list(self) -> List[MerchantOverride]:
        return list(self._entries.values())

    def clear(self) -> None:
        self._entries.clear()


def create_override_from_approval(
    domain: str,
    display_name: str,
    category: MerchantCategory,
    rationale: Optional[str] = None,
    approved_by: str = "admin",
    now: Optional[datetime] = None,
) -> MerchantOverride:
    """Build the override written when an admin approves a review-queue entry."""
    return MerchantOverride(
        domain=domain.lower(),
        display_name=display_name,
        category=MerchantCategory(category),
        rationale=rationale,
        approved_by=approved_by,
        approved_at=now or _utc_now(),
    )
