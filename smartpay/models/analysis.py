"""
Statement Analysis Models for AI Smart Pay

Shapes of the three statement analyses:
- SpendAnalysisResult: how much reward value a card statement left on the
  table compared with the best card in the wallet
- PortfolioAnalysisResult: the user's spend profile across statements and
  the one market card that fits it best
- BankAnalysisResult: cash flow, subscriptions and savings opportunities
  from bank statements

Like every AI answer these are PROPOSED data: amounts are whatever the AI
read off the statements. They are shown to the user and never stored.
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    str_strip_whitespace=True,
    extra="ignore",
)

PDF_MIME_TYPE = "application/pdf"
IMAGE_MIME_TYPE = "image/jpeg"
TEXT_MIME_TYPE = "text/plain"


# =============================================================================
# INPUT
# =============================================================================

class StatementFile(BaseModel):
    """One uploaded statement (PDF, image or pasted text)."""

    filename: str = Field(..., min_length=1)
    mime_type: str = PDF_MIME_TYPE
    data: bytes

    @field_validator("data")
    @classmethod
    def not_empty(cls, v: bytes) -> bytes:
        if not v:
            raise ValueError("Statement is empty")
        return v

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == PDF_MIME_TYPE

    @property
    def is_text(self) -> bool:
        return self.mime_type.startswith("text/")

    @property
    def size_bytes(self) -> int:
        return len(self.data)


# =============================================================================
# SPEND ANALYSIS (card statements vs. the wallet)
# =============================================================================

class SpendCategoryAnalysis(BaseModel):
    """Spend in one category and what the best wallet card would have earned."""
    model_config = _WIRE_CONFIG

    category: str
    total_amount: Decimal = Decimal("0")
    percentage: Decimal = Decimal("0")
    used_card_reward_val: Decimal = Decimal("0")
    best_card_name: str = ""
    best_card_reward_val: Decimal = Decimal("0")
    missed_savings: Decimal = Decimal("0")


class SpendAnalysisResult(BaseModel):
    model_config = _WIRE_CONFIG

    detected_card: str = ""
    total_spend: Decimal = Decimal("0")
    total_missed_savings: Decimal = Decimal("0")
    category_analysis: list[SpendCategoryAnalysis] = Field(default_factory=list)
    top_missed_category: str = ""
    analysis_summary: str = ""

    def missed_savings_by_category(self) -> dict[str, Decimal]:
        """Missed savings per category, largest first."""
        ranked = sorted(self.category_analysis, key=lambda c: c.missed_savings, reverse=True)
        return {c.category: c.missed_savings for c in ranked}


# =============================================================================
# PORTFOLIO ANALYSIS (spend profile -> market card)
# =============================================================================

class CategorySpend(BaseModel):
    model_config = _WIRE_CONFIG

    category: str
    amount: Decimal = Decimal("0")
    percentage: Decimal = Decimal("0")


class CategoryAmount(BaseModel):
    model_config = _WIRE_CONFIG

    category: str
    amount: Decimal = Decimal("0")


class MonthlySpendData(BaseModel):
    """Spend for one statement month, e.g. "Oct 2023"."""
    model_config = _WIRE_CONFIG

    month: str
    breakdown: list[CategoryAmount] = Field(default_factory=list)
    total: Decimal = Decimal("0")


class AverageProfileData(BaseModel):
    model_config = _WIRE_CONFIG

    category: str
    average_amount: Decimal = Decimal("0")
    potential_increase: Decimal = Decimal("0")


class PortfolioCardRecommendation(BaseModel):
    """The market card that best fits a spend profile."""
    model_config = _WIRE_CONFIG

    bank_name: str
    card_name: str
    headline: str = ""
    estimated_annual_return: str = ""
    reasoning: str = ""
    apply_search_query: str = ""


class PortfolioAnalysisResult(BaseModel):
    model_config = _WIRE_CONFIG

    total_analyzed_spend: Decimal = Decimal("0")
    spend_profile: list[CategorySpend] = Field(default_factory=list)
    monthly_breakdown: list[MonthlySpendData] = Field(default_factory=list)
    average_profile: list[AverageProfileData] = Field(default_factory=list)
    recommended_market_card: PortfolioCardRecommendation


# =============================================================================
# BANK ANALYSIS (bank statements -> cash flow and savings)
# =============================================================================

class SavingsOpportunityType(str, Enum):
    SUBSCRIPTION = "SUBSCRIPTION"
    UTILITY = "UTILITY"
    FEE = "FEE"
    INSURANCE = "INSURANCE"
    DUPLICATE = "DUPLICATE"


class CashFlow(BaseModel):
    model_config = _WIRE_CONFIG

    total_in: Decimal = Decimal("0")
    total_out: Decimal = Decimal("0")
    net_flow: Decimal = Decimal("0")


class Subscription(BaseModel):
    """A recurring charge, e.g. streaming, utilities or insurance."""
    model_config = _WIRE_CONFIG

    name: str
    amount: Decimal = Decimal("0")
    frequency: str = "Monthly"
    category: str = ""


class SavingsOpportunity(BaseModel):
    model_config = _WIRE_CONFIG

    title: str
    description: str = ""
    potential_monthly_savings: Decimal = Decimal("0")
    type: SavingsOpportunityType


class BankAnalysisResult(BaseModel):
    model_config = _WIRE_CONFIG

    cash_flow: CashFlow = Field(default_factory=CashFlow)
    category_breakdown: list[CategorySpend] = Field(default_factory=list)
    subscriptions: list[Subscription] = Field(default_factory=list)
    savings_opportunities: list[SavingsOpportunity] = Field(default_factory=list)
    overall_health_score: int = Field(default=50, ge=0, le=100)
    summary: str = ""

    @property
    def total_potential_monthly_savings(self) -> Decimal:
        return sum(
            (o.potential_monthly_savings for o in self.savings_opportunities),
            Decimal("0"),
        )
