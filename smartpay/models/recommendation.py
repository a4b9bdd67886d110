"""
Recommendation Data Models for AI Smart Pay

Shapes of what the AI returns (RecommendationResult, MarketRecommendation,
ProductResearchResult) and of what the deterministic layer derives from it
(ReconciledRecommendation, RecommendationOutcome).

CRITICAL: AI responses are PROPOSED data. Every optional field may be
missing and the referenced card id may not exist. The reconciler, not the
AI, decides which concrete card is shown.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from smartpay.models.card import Card


_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    str_strip_whitespace=True,
    extra="ignore",
)


class StackingVendor(str, Enum):
    """Third-party cashback portals we know how to link to."""
    RAKUTEN = "RAKUTEN"
    PAYPAL = "PAYPAL"
    CAPITAL_ONE = "CAPITAL_ONE"


class Verdict(str, Enum):
    """Product research verdict."""
    GOOD_BUY = "Good Buy"
    WAIT = "Wait"
    OVERPRICED = "Overpriced"


# =============================================================================
# PURCHASE CONTEXT
# =============================================================================

class PurchaseContext(BaseModel):
    """What the user is about to buy."""
    model_config = ConfigDict(str_strip_whitespace=True)

    item: str = Field(..., min_length=1)
    merchant: str = Field(..., min_length=1)
    amount: Optional[str] = Field(
        default=None,
        description="Amount as typed by the user; may be blank or invalid"
    )
    is_online: bool = False

    def describe(self, default_amount: str = "100") -> str:
        """The purchase description sent to the AI."""
        channel = "Online Transaction" if self.is_online else "In-Store/Physical"
        amount = self.amount or default_amount
        return (
            f'Buying "{self.item}" at "{self.merchant}" ({channel}) '
            f"for amount ${amount}"
        )

    def short_description(self) -> str:
        return f'Buying "{self.item}" at "{self.merchant}"'


# =============================================================================
# AI RESPONSES
# =============================================================================

class Source(BaseModel):
    """A web page the AI consulted."""
    model_config = _WIRE_CONFIG

    title: str
    uri: str


class OptimizationAnalysis(BaseModel):
    """Best-case combined return and the steps to get it."""
    model_config = _WIRE_CONFIG

    total_potential_return: str = ""
    steps_to_maximize: list[str] = Field(default_factory=list)


class RecommendationResult(BaseModel):
    """
    The AI's answer to "which card for this purchase".

    The card id may reference the Generic Card, an unknown card, or nothing.
    """
    model_config = _WIRE_CONFIG

    card_id: Optional[str] = None
    reasoning: str = ""
    estimated_reward: Optional[str] = None
    stacking_info: Optional[str] = None
    optimization_analysis: Optional[OptimizationAnalysis] = None
    sources: list[Source] = Field(default_factory=list)


class MarketRecommendation(BaseModel):
    """A card NOT in the wallet that would do better for this purchase."""
    model_config = _WIRE_CONFIG

    bank_name: str
    card_name: str
    headline: str = ""
    why_better: str = ""
    benefits_for_this_purchase: list[str] = Field(default_factory=list)
    apply_search_query: str = ""
    estimated_annual_return: Optional[str] = None


class ProductQuery(BaseModel):
    """Input for product price-to-value research."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    model: Optional[str] = None
    price: Optional[str] = None
    store: Optional[str] = None
    barcode: Optional[str] = None

    def describe(self) -> str:
        if self.barcode:
            return f"Product with Barcode/UPC: {self.barcode}"
        return f"{self.name} {self.model or ''}".strip()


class PricePoint(BaseModel):
    model_config = _WIRE_CONFIG

    month: str
    price: Decimal


class ProductAlternative(BaseModel):
    model_config = _WIRE_CONFIG

    name: str
    price: str = ""
    why_better: str = ""
    link: Optional[str] = None


class ProductResearchResult(BaseModel):
    """The AI's price-to-value verdict for a product."""
    model_config = _WIRE_CONFIG

    product_name: str
    current_price: str = ""
    verdict: Verdict
    verdict_reason: str = ""
    price_history: list[PricePoint] = Field(default_factory=list)
    sentiment_score: int = Field(default=50, ge=0, le=100)
    sentiment_summary: str = ""
    alternatives: list[ProductAlternative] = Field(default_factory=list)


# =============================================================================
# DERIVED (DETERMINISTIC) VIEWS
# =============================================================================

class ReconciledRecommendation(BaseModel):
    """
    A recommendation resolved against the real wallet.

    The card is always a wallet member or the Generic Card; never an
    unresolved reference. Dollar figures are two-decimal strings, or None
    when there is not enough information.
    """

    card: Card
    used_fallback: bool
    estimated_card_earnings: Optional[str] = None
    estimated_total_earnings: Optional[str] = None
    is_high_value_purchase: bool = False
    should_offer_market_search: bool = False


class RecommendationOutcome(BaseModel):
    """Everything the recommendation screen needs, in one object."""

    result: RecommendationResult
    reconciled: ReconciledRecommendation
    offers: set[StackingVendor] = Field(default_factory=set)
    affiliate_links: dict[StackingVendor, str] = Field(default_factory=dict)
    wallet_was_empty: bool = False
