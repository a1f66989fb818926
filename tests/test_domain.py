"""
Tests for domain normalization, the merchant registry and URL heuristics.
"""

import pytest

from cardpilot import heuristics
from cardpilot.categories import Confidence, MerchantCategory
from cardpilot.domain import (
    display_name_from_domain,
    domain_matches,
    extract_registrable_domain,
    get_base_domain,
)
from cardpilot.registry import MERCHANT_REGISTRY, find_merchant_by_domain, search_merchants


class TestExtractRegistrableDomain:
    """Normalization of whatever the user pastes."""

    @pytest.mark.parametrize("raw,expected", [
        ("https://www.Amazon.com/dp/B000123", "amazon.com"),
        ("costco.com", "costco.com"),
        ("  www.netflix.com/browse  ", "netflix.com"),
        ("http://music.amazon.com", "music.amazon.com"),
        ("https://shop.example.co.uk/basket?x=1", "shop.example.co.uk"),
        ("https://www.amazon.com./gp/cart", "amazon.com"),
        ("amazon.com.", "amazon.com"),
    ])
    def test_valid_inputs(self, raw, expected):
        assert extract_registrable_domain(raw) == expected

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "   ",
        "javascript:alert(1)",
        "data:text/html;base64,AAAA",
        "file:///etc/passwd",
        "192.168.0.1",
        "http://10.0.0.1/admin",
        "http://[::1]/",
        "localhost",
        "not a url",
    ])
    def test_rejected_inputs(self, raw):
        assert extract_registrable_domain(raw) is None

    def test_same_domain_regardless_of_scheme_and_www(self):
        """Every lookup must be keyed on one normalized form."""
        variants = ["costco.com", "www.costco.com", "https://costco.com/", "HTTPS://WWW.COSTCO.COM/cart"]
        assert {extract_registrable_domain(v) for v in variants} == {"costco.com"}


class TestDomainHelpers:
    def test_domain_matches_parent(self):
        assert domain_matches("music.amazon.com", "amazon.com")
        assert domain_matches("amazon.com", "amazon.com")
        assert not domain_matches("notamazon.com", "amazon.com")

    def test_base_domain_handles_two_part_tlds(self):
        assert get_base_domain("shop.example.co.uk") == "example.co.uk"
        assert get_base_domain("a.b.example.com") == "example.com"
        assert get_base_domain("example.com") == "example.com"

    def test_display_name(self):
        assert display_name_from_domain("zzqx-widgets.io") == "Zzqx-widgets"
        assert display_name_from_domain(None) == "Unknown Merchant"


class TestRegistry:
    def test_exact_match(self):
        record = find_merchant_by_domain("costco.com")
        assert record.id == "costco"
        assert record.default_category == MerchantCategory.WAREHOUSE_CLUB
        assert record.is_warehouse
        assert record.excluded_from_grocery

    def test_subdomain_matches_parent_record(self):
        record = find_merchant_by_domain("music.amazon.com")
        assert record is not None
        assert record.id == "amazon"

    def test_www_is_ignored(self):
        assert find_merchant_by_domain("www.netflix.com").id == "netflix"

    def test_unknown_domain(self):
        assert find_merchant_by_domain("zzqx-widgets.io") is None
        assert find_merchant_by_domain("") is None

    def test_lookalike_domain_does_not_match(self):
        assert find_merchant_by_domain("notcostco.com") is None

    def test_amazon_fresh_path_override(self):
        """
        Amazon is online retail, but Amazon Fresh paths are groceries.
        """
        amazon = find_merchant_by_domain("amazon.com")

        fresh = amazon.category_override_for("https://www.amazon.com/alm/storefront?almBrandId=abc")
        assert fresh is not None
        assert fresh.category == MerchantCategory.GROCERIES
        assert fresh.confidence == Confidence.MEDIUM

        assert amazon.category_override_for("https://www.amazon.com/s?k=x&i=amazonfresh") is not None
        assert amazon.category_override_for("https://www.amazon.com/dp/B000123") is None

    def test_record_ids_are_unique(self):
        ids = [m.id for m in MERCHANT_REGISTRY]
        assert len(ids) == len(set(ids))

    def test_search_merchants(self):
        results = search_merchants("cost")
        assert [m.id for m in results] == ["costco"]
        assert search_merchants("") == []
        assert search_merchants("NETFLIX")[0].id == "netflix"


class TestHeuristics:
    """Pattern inference for merchants missing from the registry."""

    def test_brand_patterns_precede_keyword_patterns(self):
        brand_flags = [p.brand for p in heuristics.CATEGORY_PATTERNS]
        first_keyword = brand_flags.index(False)
        assert all(brand_flags[:first_keyword])
        assert not any(brand_flags[first_keyword:])

    def test_generic_shopping_keyword_is_last(self):
        assert heuristics.CATEGORY_PATTERNS[-1].category == MerchantCategory.ONLINE_RETAIL

    def test_brand_beats_keyword_in_same_url(self):
        """
        'shop' is a generic keyword, 'shell' is a gas brand: the brand wins.
        """
        result = heuristics.infer_from_url("https://shop.shell-rewards.net/fuel")

        assert result.category == MerchantCategory.GAS
        assert result.confidence == Confidence.HIGH
        assert result.reason == "Known gas station brand"

    def test_delivery_brand_beats_cuisine_keyword(self):
        result = heuristics.infer_from_url("https://order.doordash.example/store/pizza")
        assert result.category == MerchantCategory.DINING
        assert result.confidence == Confidence.HIGH

    def test_cuisine_keyword(self):
        result = heuristics.infer_from_url("https://joes-pizza.example.net/menu")
        assert result.category == MerchantCategory.DINING
        assert result.confidence == Confidence.MEDIUM

    def test_no_match(self):
        assert heuristics.infer_from_url("https://zzqx-widgets.io/item") is None
        assert heuristics.infer_from_url(None) is None

    def test_title_is_capped_at_low(self):
        result = heuristics.infer_from_title("Joe's Pizza - Order Online")
        assert result.category == MerchantCategory.DINING
        assert result.confidence == Confidence.LOW
        assert result.reason.endswith("(from page title)")

    def test_agreement_is_high(self):
        result = heuristics.infer("https://joes-pizza.example.net/menu", "Best pizza in town")
        assert result.category == MerchantCategory.DINING
        assert result.confidence == Confidence.HIGH
        assert "confirmed by page title" in result.reason

    def test_disagreement_keeps_url_result(self):
        result = heuristics.infer("https://joes-pizza.example.net/menu", "Concert tickets")
        assert result.category == MerchantCategory.DINING
        assert result.confidence == Confidence.MEDIUM

    def test_title_only(self):
        result = heuristics.infer("https://zzqx-widgets.io/item", "Concert tickets on sale")
        assert result.category == MerchantCategory.ENTERTAINMENT
        assert result.confidence == Confidence.LOW
