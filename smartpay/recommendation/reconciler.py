"""
Recommendation Reconciler

DESIGN DECISION: The AI only NAMES a card. This module decides which real
card that is and computes every number the user sees.

Given the AI's RecommendationResult and the wallet, it:
1. Resolves the card id against the wallet, falling back to the Generic
   Card when the id is missing or unknown
2. Values the card's own reward and the best-case stacked return for the
   purchase amount
3. Decides whether to offer a "find a better card" search

No network or AI calls happen here. Everything is pure and deterministic.
"""

from decimal import Decimal
from typing import Optional

from smartpay.models.card import generic_card
from smartpay.models.recommendation import RecommendationResult, ReconciledRecommendation
from smartpay.valuation.money import (
    HIGH_VALUE_PURCHASE_THRESHOLD,
    estimate_dollar_value,
    is_high_value_purchase,
)
from smartpay.wallet.model import Wallet


def reconcile(
    result: RecommendationResult,
    wallet: Wallet,
    purchase_amount: Optional[str] = None,
    high_value_threshold: Decimal = HIGH_VALUE_PURCHASE_THRESHOLD,
) -> ReconciledRecommendation:
    """
    Resolve an AI recommendation against the wallet.

    Args:
        result: The AI's answer
        wallet: The user's current wallet
        purchase_amount: The amount as typed by the user (may be blank)
        high_value_threshold: Amounts strictly above this are high value

    Returns:
        A ReconciledRecommendation whose card is always a wallet member or
        the Generic Card. used_fallback is True exactly when result.card_id
        matches no wallet card.
    """
    card = wallet.find_by_id(result.card_id)
    used_fallback = card is None
    if used_fallback:
        card = generic_card()

    estimated_card_earnings = estimate_dollar_value(
        result.estimated_reward, purchase_amount
    )

    estimated_total_earnings = None
    if result.optimization_analysis is not None:
        estimated_total_earnings = estimate_dollar_value(
            result.optimization_analysis.total_potential_return, purchase_amount
        )

    high_value = is_high_value_purchase(purchase_amount, high_value_threshold)

    return ReconciledRecommendation(
        card=card,
        used_fallback=used_fallback,
        estimated_card_earnings=estimated_card_earnings,
        estimated_total_earnings=estimated_total_earnings,
        is_high_value_purchase=high_value,
        should_offer_market_search=high_value or used_fallback,
    )
