"""Tests for the recommendation reconciler and the stacking-offer detector."""

from decimal import Decimal

import pytest

from smartpay.models.card import GENERIC_CARD_ID
from smartpay.models.recommendation import (
    OptimizationAnalysis,
    RecommendationResult,
    StackingVendor,
)
from smartpay.recommendation import (
    AFFILIATE_LINKS,
    affiliate_links_for,
    detect_offers,
    reconcile,
)
from smartpay.wallet import Wallet


@pytest.fixture
def wallet(card_a, card_b) -> Wallet:
    return Wallet([card_a, card_b])


class TestReconcile:
    """Tests for reconcile."""

    def test_resolves_wallet_card(self, wallet, card_b):
        """Test that a known id resolves to the wallet card."""
        reconciled = reconcile(RecommendationResult(card_id="B"), wallet, "50")
        assert reconciled.card == card_b
        assert not reconciled.used_fallback
        assert not reconciled.should_offer_market_search

    def test_unknown_id_falls_back(self, wallet):
        """Test that an id outside the wallet yields the Generic Card."""
        reconciled = reconcile(RecommendationResult(card_id="C"), wallet, "50")
        assert reconciled.card.id == GENERIC_CARD_ID
        assert reconciled.used_fallback
        assert reconciled.should_offer_market_search

    def test_missing_id_falls_back(self, wallet):
        """Test that an absent id yields the Generic Card."""
        reconciled = reconcile(RecommendationResult(), wallet)
        assert reconciled.card.id == GENERIC_CARD_ID
        assert reconciled.used_fallback

    def test_generic_id_falls_back(self, wallet):
        """Test that naming the Generic Card itself counts as fallback."""
        reconciled = reconcile(RecommendationResult(card_id=GENERIC_CARD_ID), wallet)
        assert reconciled.card.id == GENERIC_CARD_ID
        assert reconciled.used_fallback

    def test_empty_wallet_falls_back(self):
        """Test reconciling against an empty wallet."""
        reconciled = reconcile(RecommendationResult(card_id="A"), Wallet(), "20")
        assert reconciled.card.id == GENERIC_CARD_ID
        assert reconciled.used_fallback

    @pytest.mark.parametrize("card_id", ["A", "B", "C", None, "", GENERIC_CARD_ID])
    def test_card_is_always_member_or_generic(self, wallet, card_id):
        """Test that the reconciled card is never an unresolved reference."""
        reconciled = reconcile(RecommendationResult(card_id=card_id), wallet)
        assert reconciled.card.id in wallet or reconciled.card.id == GENERIC_CARD_ID
        assert reconciled.used_fallback == (card_id not in wallet)

    def test_high_value_without_fallback(self, wallet):
        """Test that a large purchase offers market search on its own."""
        reconciled = reconcile(RecommendationResult(card_id="A"), wallet, "1000")
        assert reconciled.is_high_value_purchase
        assert not reconciled.used_fallback
        assert reconciled.should_offer_market_search

    def test_card_earnings(self, wallet):
        """Test the card's own reward estimate."""
        result = RecommendationResult(card_id="A", estimated_reward="3% back from card")
        reconciled = reconcile(result, wallet, "200")
        assert reconciled.estimated_card_earnings == "6.00"
        assert reconciled.estimated_total_earnings is None

    def test_total_earnings_with_optimization(self, wallet):
        """Test the best-case stacked estimate."""
        result = RecommendationResult(
            card_id="A",
            estimated_reward="3%",
            optimization_analysis=OptimizationAnalysis(
                total_potential_return="Total ~8% Return",
                steps_to_maximize=["Activate Rakuten", "Pay with Sapphire"],
            ),
        )
        reconciled = reconcile(result, wallet, "250")
        assert reconciled.estimated_card_earnings == "7.50"
        assert reconciled.estimated_total_earnings == "20.00"

    def test_no_amount_no_estimates(self, wallet):
        """Test that a blank amount gives no dollar figures."""
        result = RecommendationResult(card_id="A", estimated_reward="3%")
        reconciled = reconcile(result, wallet, "")
        assert reconciled.estimated_card_earnings is None
        assert not reconciled.is_high_value_purchase

    def test_huge_amount_is_valued(self, wallet):
        """Test that an amount beyond default Decimal precision still reconciles."""
        result = RecommendationResult(
            card_id="A",
            estimated_reward="5%",
            optimization_analysis=OptimizationAnalysis(total_potential_return="Total ~8% Return"),
        )
        reconciled = reconcile(result, wallet, "1e30")
        assert reconciled.estimated_card_earnings == "5" + "0" * 28 + ".00"
        assert reconciled.estimated_total_earnings == "8" + "0" * 28 + ".00"
        assert reconciled.is_high_value_purchase

    def test_custom_threshold(self, wallet):
        """Test a configured high-value threshold."""
        reconciled = reconcile(
            RecommendationResult(card_id="A"), wallet, "150",
            high_value_threshold=Decimal("100"),
        )
        assert reconciled.should_offer_market_search

    def test_reconcile_does_not_change_wallet(self, wallet):
        """Test that reconciling is read-only."""
        before = wallet.cards
        reconcile(RecommendationResult(card_id="C"), wallet, "1000")
        assert wallet.cards == before


class TestDetectOffers:
    """Tests for detect_offers."""

    def test_single_vendor(self):
        """Test a single Rakuten mention."""
        result = RecommendationResult(stacking_info="Use Rakuten for extra 2%")
        assert detect_offers(result) == {StackingVendor.RAKUTEN}

    def test_case_insensitive(self):
        """Test that matching ignores case."""
        result = RecommendationResult(stacking_info="PAYPAL offers 1% and capital ONE shopping 3%")
        assert detect_offers(result) == {StackingVendor.PAYPAL, StackingVendor.CAPITAL_ONE}

    def test_scans_optimization_steps(self):
        """Test that the checklist steps are scanned too."""
        result = RecommendationResult(
            optimization_analysis=OptimizationAnalysis(
                steps_to_maximize=["Step 1: Activate Rakuten", "Step 2: Check out with PayPal"],
            ),
        )
        assert detect_offers(result) == {StackingVendor.RAKUTEN, StackingVendor.PAYPAL}

    def test_no_mentions(self):
        """Test that nothing is detected without a vendor name."""
        result = RecommendationResult(stacking_info="No portal offers found")
        assert detect_offers(result) == set()
        assert detect_offers(RecommendationResult()) == set()

    def test_custom_phrases(self):
        """Test a custom vendor table."""
        result = RecommendationResult(stacking_info="Try Ebates first")
        phrases = {StackingVendor.RAKUTEN: ("ebates",)}
        assert detect_offers(result, phrases) == {StackingVendor.RAKUTEN}

    def test_affiliate_links(self):
        """Test the quick-action links for detected vendors."""
        links = affiliate_links_for({StackingVendor.CAPITAL_ONE})
        assert links == {StackingVendor.CAPITAL_ONE: "https://capitaloneshopping.com"}
        assert AFFILIATE_LINKS[StackingVendor.RAKUTEN] == "https://www.rakuten.com"
        assert AFFILIATE_LINKS[StackingVendor.PAYPAL] == "https://www.paypal.com"
