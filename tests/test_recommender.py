"""
Tests for card ranking at a resolved merchant.
"""

import pytest

from cardpilot.cards import CARD_CATALOG, CatalogCard, DbCard, MerchantExclusion, RewardRule, get_catalog_card
from cardpilot.categories import Confidence, EngineCategory, MerchantCategory
from cardpilot.merchant_intelligence import MerchantContext, MerchantResolver, ResolutionSource
from cardpilot.recommender import analyze_card, format_multiplier, rank_cards, recommend


def merchant(name, engine_category, domain=None, excluded_from_grocery=False):
    return MerchantContext(
        domain=domain,
        merchant_name=name,
        category=MerchantCategory.OTHER,
        engine_category=engine_category,
        confidence=Confidence.MEDIUM,
        source=ResolutionSource.HEURISTIC,
        summary="test merchant",
        excluded_from_grocery=excluded_from_grocery,
    )


def card(card_id, rules, annual_fee_cents=0, exclusions=()):
    return CatalogCard(
        id=card_id,
        issuer="Test",
        name=card_id,
        network="visa",
        annual_fee_cents=annual_fee_cents,
        reward_rules=tuple(rules),
        exclusions=tuple(exclusions),
    )


class TestCostcoScenario:
    """Warehouse clubs are excluded from grocery bonuses."""

    def test_flat_rate_beats_excluded_grocery_bonus(self):
        """
        Scenario: Costco resolves to groceries but carries a grocery exclusion.

        Expected: Amex Gold falls to 1X, Citi Double Cash (2X everywhere) wins.
        """
        # Arrange
        context = MerchantResolver().resolve_sync("https://www.costco.com/")
        wallet = [get_catalog_card("amex-gold"), get_catalog_card("citi-double-cash")]

        # Act
        result = recommend(context, wallet)

        # Assert
        assert context.engine_category == EngineCategory.GROCERIES
        assert result.card.id == "citi-double-cash"
        assert result.multiplier == 2

        gold = next(a for a in result.ranked if a.card.id == "amex-gold")
        assert gold.excluded
        assert gold.effective_multiplier == 1
        assert "Costco" in gold.exclusion_reason

    def test_excluded_cards_rank_last_even_with_equal_rate(self):
        context = MerchantResolver().resolve_sync("https://www.costco.com/")
        wallet = [get_catalog_card("amex-gold"), get_catalog_card("costco-anywhere-visa")]

        result = recommend(context, wallet)

        assert [a.card.id for a in result.ranked] == ["costco-anywhere-visa", "amex-gold"]

    def test_reason_mentions_exclusions_when_every_card_is_excluded(self):
        context = MerchantResolver().resolve_sync("https://www.costco.com/")

        result = recommend(context, [get_catalog_card("amex-gold")])

        assert result.reason.startswith("Other cards have exclusions for Costco.")


class TestAnalyzeCard:
    def test_direct_category_bonus(self):
        analysis = analyze_card(get_catalog_card("amex-gold"), merchant("Joe's", EngineCategory.DINING))
        assert analysis.effective_multiplier == 4
        assert analysis.reason == "4X on dining"

    def test_cap_is_reported_not_enforced(self):
        analysis = analyze_card(get_catalog_card("amex-gold"), merchant("Kroger", EngineCategory.GROCERIES))
        assert analysis.effective_multiplier == 4
        assert analysis.cap_amount_cents == 2500000

    def test_rule_exclusion_by_name(self):
        analysis = analyze_card(
            get_catalog_card("amex-blue-cash-preferred"),
            merchant("Walmart", EngineCategory.GROCERIES, "walmart.com"),
        )
        assert analysis.excluded
        assert analysis.effective_multiplier == 1

    def test_flights_fall_back_to_travel(self):
        analysis = analyze_card(get_catalog_card("chase-sapphire-reserve"), merchant("Delta", EngineCategory.FLIGHTS))
        assert analysis.effective_multiplier == 3

    def test_card_level_exclusion(self):
        excluded = card(
            "x", [RewardRule(EngineCategory.DINING, 5), RewardRule(EngineCategory.GENERAL, 1.5)],
            exclusions=[MerchantExclusion("ghost kitchen", "Not a restaurant")],
        )

        analysis = analyze_card(excluded, merchant("Ghost Kitchen", EngineCategory.DINING))

        assert analysis.excluded
        assert analysis.effective_multiplier == 1.5
        assert "Not a restaurant" in analysis.reason

    def test_missing_general_rule_defaults_to_one(self):
        analysis = analyze_card(card("x", [RewardRule(EngineCategory.DINING, 3)]), merchant("Shell", EngineCategory.GAS))
        assert analysis.effective_multiplier == 1

    def test_higher_priority_rule_wins(self):
        rules = [
            RewardRule(EngineCategory.DINING, 2, priority=0),
            RewardRule(EngineCategory.DINING, 5, priority=1),
        ]
        assert analyze_card(card("x", rules), merchant("Joe's", EngineCategory.DINING)).effective_multiplier == 5

    def test_equal_priority_keeps_first_rule(self):
        rules = [RewardRule(EngineCategory.DINING, 2), RewardRule(EngineCategory.DINING, 5)]
        assert analyze_card(card("x", rules), merchant("Joe's", EngineCategory.DINING)).effective_multiplier == 2

    def test_negative_multiplier_rejected(self):
        with pytest.raises(ValueError):
            RewardRule(EngineCategory.DINING, -1)


class TestRanking:
    def test_fee_breaks_ties(self):
        cheap = card("cheap", [RewardRule(EngineCategory.GENERAL, 2)], annual_fee_cents=0)
        pricey = card("pricey", [RewardRule(EngineCategory.GENERAL, 2)], annual_fee_cents=9500)

        ranked = rank_cards([pricey, cheap], merchant("Shop", EngineCategory.GENERAL))

        assert [a.card.id for a in ranked] == ["cheap", "pricey"]

    def test_input_order_breaks_full_ties(self):
        a = card("a", [RewardRule(EngineCategory.GENERAL, 2)])
        b = card("b", [RewardRule(EngineCategory.GENERAL, 2)])

        assert [x.card.id for x in rank_cards([b, a], merchant("Shop", EngineCategory.GENERAL))] == ["b", "a"]

    def test_db_and_catalog_cards_rank_together(self):
        db_card = DbCard(
            id="db-1", issuer="Bank", name="Dining Max", network="visa", annual_fee_cents=0,
            reward_rules=(RewardRule(EngineCategory.DINING, 5),), verified=True,
        )

        result = recommend(merchant("Joe's", EngineCategory.DINING), [get_catalog_card("amex-gold"), db_card])

        assert result.card.id == "db-1"
        assert result.alternatives[0].card.id == "amex-gold"

    def test_empty_wallet(self):
        assert recommend(merchant("Joe's", EngineCategory.DINING), []) is None

    def test_confidence_passes_through(self):
        result = recommend(merchant("Joe's", EngineCategory.DINING), CARD_CATALOG)
        assert result.confidence == Confidence.MEDIUM

    def test_format_multiplier(self):
        assert format_multiplier(2) == "2X"
        assert format_multiplier(1.5) == "1.5X"
