"""
Tests for the merchant resolution pipeline and its stores.
"""

import json
from datetime import datetime, timezone

import pytest

from cardpilot.ai_cache import AICache, AIClassification
from cardpilot.categories import Confidence, EngineCategory, MerchantCategory
from cardpilot.classifier import FALLBACK_RATIONALE, MerchantClassifier, parse_classification
from cardpilot.errors import InvalidCategoryError, InvalidTransitionError
from cardpilot.merchant_intelligence import MerchantResolver, ResolutionSource
from cardpilot.overrides import MerchantOverride, OverrideStore, create_override_from_approval
from cardpilot.review_queue import ReviewQueue, SuggestionStatus


class FakeTransport:
    """Records payloads and replays a fixed response (or raises it)."""

    def __init__(self, response):
        self.response = response
        self.calls = []

    def __call__(self, payload):
        self.calls.append(payload)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


ELECTRONICS_RESPONSE = {
    "category": "electronics",
    "confidence": "medium",
    "rationale": "Sells consumer gadgets",
    "merchantName": "Zzqx Widgets",
}


def build_resolver(response=None):
    transport = FakeTransport(response) if response is not None else None
    classifier = MerchantClassifier(transport, AICache())
    return MerchantResolver(OverrideStore(), ReviewQueue(), classifier), transport


class TestAICache:
    def test_hit_and_case_insensitive_key(self):
        cache = AICache()
        result = AIClassification(MerchantCategory.PET, Confidence.HIGH, "Pet store")
        cache.set("Chewy-Like.com", result)

        assert cache.get("chewy-like.com") == result
        assert cache.stats().count == 1

    def test_entries_expire_after_ttl(self):
        clock = FakeClock()
        cache = AICache(ttl_seconds=60, clock=clock)
        cache.set("example.com", AIClassification(MerchantCategory.PET, Confidence.HIGH, "Pet store"))

        clock.now += 61

        assert cache.get("example.com") is None
        assert cache.stats().count == 0

    def test_persists_to_file(self, tmp_path):
        path = str(tmp_path / "cache.json")
        AICache(path=path).set("example.com", AIClassification(MerchantCategory.GAS, Confidence.LOW, "Fuel"))

        reloaded = AICache(path=path)

        assert reloaded.get("example.com").category == MerchantCategory.GAS

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{not json")

        cache = AICache(path=str(path))

        assert cache.stats().count == 0
        assert cache.stats().oldest_entry is None

    def test_malformed_entry_is_dropped(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({
            "bad.com": {"result": {"category": "spaceships"}, "created_at": 1_000_000.0},
        }))

        cache = AICache(path=str(path), clock=FakeClock())

        assert cache.get("bad.com") is None
        assert cache.stats().count == 0


class TestClassifier:
    def test_parse_accepts_both_name_keys(self):
        assert parse_classification(ELECTRONICS_RESPONSE).merchant_name == "Zzqx Widgets"
        assert parse_classification({"category": "gas", "merchant_name": "Fuel Co"}).merchant_name == "Fuel Co"

    def test_parse_rejects_unknown_category(self):
        with pytest.raises(InvalidCategoryError):
            parse_classification({"category": "spaceships", "confidence": "high"})

    def test_unknown_confidence_becomes_low(self):
        assert parse_classification({"category": "gas", "confidence": "certain"}).confidence == Confidence.LOW

    def test_result_is_cached(self):
        transport = FakeTransport(ELECTRONICS_RESPONSE)
        classifier = MerchantClassifier(transport)

        first = classifier.classify("https://zzqx-widgets.io/item", "zzqx-widgets.io")
        second = classifier.classify("https://zzqx-widgets.io/other", "zzqx-widgets.io")

        assert not first.cached
        assert second.cached
        assert second.result == first.result
        assert len(transport.calls) == 1

    def test_title_is_forwarded(self):
        transport = FakeTransport(ELECTRONICS_RESPONSE)
        MerchantClassifier(transport).classify("https://zzqx-widgets.io", "zzqx-widgets.io", "Widgets!")
        assert transport.calls[0]["title"] == "Widgets!"

    @pytest.mark.parametrize("response", [
        {"category": "spaceships"},
        RuntimeError("connection refused"),
        ["not", "an", "object"],
    ])
    def test_failures_fall_back_and_are_not_cached(self, response):
        cache = AICache()
        classifier = MerchantClassifier(FakeTransport(response), cache)

        outcome = classifier.classify("https://zzqx-widgets.io", "zzqx-widgets.io")

        assert outcome.fallback
        assert outcome.result.category == MerchantCategory.OTHER
        assert outcome.result.rationale == FALLBACK_RATIONALE
        assert cache.stats().count == 0

    def test_missing_transport_falls_back(self):
        assert MerchantClassifier(None).classify("https://x.io", "x.io").fallback


class TestOverrideStore:
    def test_last_write_wins_and_lowercases(self):
        store = OverrideStore()
        store.set(MerchantOverride("Example.com", "Example", MerchantCategory.GAS))
        store.set(MerchantOverride("example.com", "Example", MerchantCategory.DINING))

        assert store.get("EXAMPLE.COM").category == MerchantCategory.DINING
        assert len(store.list()) == 1

    def test_remove(self):
        store = OverrideStore()
        store.set(MerchantOverride("example.com", "Example", MerchantCategory.GAS))

        assert store.remove("example.com")
        assert not store.remove("example.com")
        assert store.get("example.com") is None

    def test_override_from_approval(self):
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)
        override = create_override_from_approval("Widgets.IO", "Widgets", "electronics", "looks right", "ops", now)

        assert override.domain == "widgets.io"
        assert override.category == MerchantCategory.ELECTRONICS
        assert override.approved_at == now
        assert override.verified


class TestReviewQueue:
    def test_add_coalesces_pending_domain(self):
        queue = ReviewQueue()
        first = queue.add("https://a.io/x", "a.io", MerchantCategory.PET, Confidence.LOW, "guess")
        second = queue.add("https://a.io/y", "A.IO", MerchantCategory.GAS, Confidence.HIGH, "other guess")

        assert first.id == second.id
        assert len(queue.list_pending()) == 1

    def test_approve_is_terminal(self):
        queue = ReviewQueue()
        suggestion = queue.add("https://a.io", "a.io", MerchantCategory.PET, Confidence.LOW, "guess")

        approved = queue.approve(suggestion.id, notes="ok")

        assert approved.status == SuggestionStatus.APPROVED
        assert approved.reviewed_at is not None
        assert not queue.has_pending("a.io")
        with pytest.raises(InvalidTransitionError):
            queue.reject(suggestion.id)

    def test_unknown_id(self):
        with pytest.raises(KeyError):
            ReviewQueue().approve("missing")

    def test_domain_can_be_requeued_after_review(self):
        queue = ReviewQueue()
        first = queue.add("https://a.io", "a.io", MerchantCategory.PET, Confidence.LOW, "guess")
        queue.reject(first.id)

        second = queue.add("https://a.io", "a.io", MerchantCategory.GAS, Confidence.LOW, "new guess")

        assert second.id != first.id
        assert len(queue.get_by_domain("a.io")) == 2


class TestMerchantResolver:
    """End-to-end resolution order: override > registry > heuristic > AI > fallback."""

    def test_registry_match_carries_exclusions(self):
        resolver, _ = build_resolver()

        context = resolver.resolve_sync("https://www.costco.com/grocery")

        assert context.source == ResolutionSource.REGISTRY
        assert context.registry_id == "costco"
        assert context.category == MerchantCategory.WAREHOUSE_CLUB
        assert context.engine_category == EngineCategory.GROCERIES
        assert context.confidence == Confidence.HIGH
        assert context.excluded_from_grocery
        assert context.is_warehouse
        assert "grocery-excluded" in context.exclusions

    def test_subdomain_resolves_to_parent(self):
        resolver, _ = build_resolver()
        assert resolver.resolve_sync("https://music.amazon.com/albums").registry_id == "amazon"

    def test_path_override(self):
        resolver, _ = build_resolver()

        context = resolver.resolve_sync("https://www.amazon.com/alm/storefront?almBrandId=abc")

        assert context.category == MerchantCategory.GROCERIES
        assert context.confidence == Confidence.MEDIUM
        assert context.decision_path[-1].step == "Path override"

    def test_override_shadows_registry(self):
        """
        An admin override for a registry domain wins over the registry record.
        """
        resolver, _ = build_resolver()
        resolver.overrides.set(MerchantOverride("costco.com", "Costco Gas", MerchantCategory.GAS))

        context = resolver.resolve_sync("https://costco.com")

        assert context.source == ResolutionSource.OVERRIDE
        assert context.category == MerchantCategory.GAS
        assert context.confidence == Confidence.HIGH
        assert context.override_domain == "costco.com"
        assert [s.step for s in context.decision_path] == ["Domain extracted", "Override found"]

    def test_medium_heuristic_skips_ai(self):
        resolver, transport = build_resolver(ELECTRONICS_RESPONSE)

        context = resolver.resolve("https://joes-pizza.example.net/menu")

        assert context.source == ResolutionSource.HEURISTIC
        assert context.category == MerchantCategory.DINING
        assert transport.calls == []

    def test_ai_result_is_queued_once(self):
        """
        An unknown merchant goes to the classifier; the suggestion is queued for
        review once, and the second lookup is served from the cache.
        """
        resolver, transport = build_resolver(ELECTRONICS_RESPONSE)

        first = resolver.resolve("https://zzqx-widgets.io/item")
        second = resolver.resolve("https://zzqx-widgets.io/item")

        assert first.source == ResolutionSource.AI
        assert first.category == MerchantCategory.ELECTRONICS
        assert first.merchant_name == "Zzqx Widgets"
        assert first.ai_suggestion.queued_for_review
        assert not second.ai_suggestion.queued_for_review
        assert len(transport.calls) == 1
        assert len(resolver.review_queue.list_pending()) == 1
        assert resolver.review_queue.has_pending("zzqx-widgets.io")

    def test_ai_failure_falls_back_to_unknown(self):
        resolver, _ = build_resolver({"category": "spaceships"})

        context = resolver.resolve("https://zzqx-widgets.io/item")

        assert context.source == ResolutionSource.UNKNOWN
        assert context.engine_category == EngineCategory.GENERAL
        assert "AI error" in [s.step for s in context.decision_path]
        assert resolver.review_queue.list_pending() == []

    def test_ai_failure_keeps_low_heuristic_guess(self):
        resolver, _ = build_resolver(RuntimeError("timeout"))

        context = resolver.resolve("https://zzqx-widgets.io/shop")

        assert context.source == ResolutionSource.HEURISTIC
        assert context.category == MerchantCategory.ONLINE_RETAIL
        assert context.confidence == Confidence.LOW

    def test_sync_never_calls_classifier(self):
        resolver, transport = build_resolver(ELECTRONICS_RESPONSE)

        context = resolver.resolve_sync("https://zzqx-widgets.io/item")

        assert context.source == ResolutionSource.UNKNOWN
        assert transport.calls == []

    def test_skip_ai(self):
        resolver, transport = build_resolver(ELECTRONICS_RESPONSE)
        resolver.resolve("https://zzqx-widgets.io/item", skip_ai=True)
        assert transport.calls == []

    def test_sync_resolution_is_idempotent(self):
        resolver, _ = build_resolver()
        for url in ["https://costco.com", "https://joes-pizza.example.net/menu", "garbage"]:
            assert resolver.resolve_sync(url).to_dict() == resolver.resolve_sync(url).to_dict()

    def test_sync_and_full_agree_before_ai(self):
        resolver, _ = build_resolver(ELECTRONICS_RESPONSE)
        url = "https://www.netflix.com/browse"
        assert resolver.resolve(url).to_dict() == resolver.resolve_sync(url).to_dict()

    def test_invalid_url(self):
        resolver, _ = build_resolver()

        context = resolver.resolve("javascript:alert(1)")

        assert context.domain is None
        assert context.source == ResolutionSource.UNKNOWN
        assert context.category == MerchantCategory.OTHER
        assert context.decision_path[-1].step == "Fallback"
