"""
TTL cache for AI merchant classifications.

Keyed by lower-cased domain. Optionally mirrored to a JSON file so results
survive restarts; an unreadable file is treated as an empty cache.
"""

import json
import logging
import os
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from cardpilot.categories import Confidence, MerchantCategory

logger = logging.getLogger(__name__)

TTL_SECONDS = 30 * 24 * 60 * 60


@dataclass(frozen=True)
class AIClassification:
    """
    Validated result of an AI merchant classification.

    Fields:
    - category: member of the merchant category enum
    - confidence: 'low' | 'medium' | 'high'
    - rationale: model explanation
    - merchant_name: optional display name suggested by the model
    """
    category: MerchantCategory
    confidence: Confidence
    rationale: str
    merchant_name: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["category"] = self.category.value
        data["confidence"] = self.confidence.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "AIClassification":
        return cls(
            category=MerchantCategory(data["category"]),
            confidence=Confidence(data["confidence"]),
            rationale=data["rationale"],
            merchant_name=data.get("merchant_name"),
        )


@dataclass
class CacheStats:
    count: int
    oldest_entry: Optional[datetime]


class AICache:
    def __init__(
        self,
        path: Optional[str] = None,
        ttl_seconds: int = TTL_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.path = path
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.time
        self._entries: Dict[str, dict] = self._load()

    def get(self, domain: str) -> Optional[AIClassification]:
        key = domain.lower()
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() - entry["created_at"] > self.ttl_seconds:
            del self._entries[key]
            self._save()
            return None

        try:
            return AIClassification.from_dict(entry["result"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Dropping malformed AI cache entry for %s", key)
            del self._entries[key]
            self._save()
            return None

    def set(self, domain: str, result: AIClassification) -> None:
        self._entries[domain.lower()] = {
            "result": result.to_dict(),
            "created_at": self._clock(),
        }
        self._save()

    def clear(self) -> None:
        self._entries = {}
        self._save()

    def stats(self) -> CacheStats:
        oldest = min((e["created_at"] for e in self._entries.values()), default=None)
        return CacheStats(
            count=len(self._entries),
            oldest_entry=datetime.fromtimestamp(oldest, tz=timezone.utc) if oldest is not None else None,
        )

    def _load(self) -> Dict[str, dict]:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Failed to load AI cache from %s: %s. Starting empty.", self.path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("AI cache file %s is not a JSON object. Starting empty.", self.path)
            return {}
        return {
            k: v
            for k, v in data.items()
            if isinstance(v, dict) and isinstance(v.get("created_at"), (int, float))
        }

    def _save(self) -> None:
        if not self.path:
            return
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._entries, f)
        except OSError as e:
            logger.warning("Failed to save AI cache to %s: %s", self.path, e)
