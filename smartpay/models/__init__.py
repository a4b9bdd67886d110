"""
Data Models Package

This package contains all Pydantic models used in AI Smart Pay.
All data flowing through the system must conform to these schemas.
"""

from smartpay.models.card import (
    GENERIC_CARD,
    GENERIC_CARD_ID,
    Card,
    CardBenefit,
    CardDocument,
    CardNetwork,
    CardSummary,
    DocumentType,
    DraftCard,
    RewardCategory,
    generic_card,
)
from smartpay.models.recommendation import (
    MarketRecommendation,
    OptimizationAnalysis,
    PricePoint,
    ProductAlternative,
    ProductQuery,
    ProductResearchResult,
    PurchaseContext,
    RecommendationOutcome,
    RecommendationResult,
    ReconciledRecommendation,
    Source,
    StackingVendor,
    Verdict,
)
from smartpay.models.analysis import (
    BankAnalysisResult,
    CashFlow,
    CategorySpend,
    PortfolioAnalysisResult,
    PortfolioCardRecommendation,
    SavingsOpportunity,
    SavingsOpportunityType,
    SpendAnalysisResult,
    SpendCategoryAnalysis,
    StatementFile,
    Subscription,
)
from smartpay.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Card models
    "GENERIC_CARD",
    "GENERIC_CARD_ID",
    "Card",
    "CardBenefit",
    "CardDocument",
    "CardNetwork",
    "CardSummary",
    "DocumentType",
    "DraftCard",
    "RewardCategory",
    "generic_card",
    # Recommendation models
    "MarketRecommendation",
    "OptimizationAnalysis",
    "PricePoint",
    "ProductAlternative",
    "ProductQuery",
    "ProductResearchResult",
    "PurchaseContext",
    "RecommendationOutcome",
    "RecommendationResult",
    "ReconciledRecommendation",
    "Source",
    "StackingVendor",
    "Verdict",
    # Statement analysis models
    "BankAnalysisResult",
    "CashFlow",
    "CategorySpend",
    "PortfolioAnalysisResult",
    "PortfolioCardRecommendation",
    "SavingsOpportunity",
    "SavingsOpportunityType",
    "SpendAnalysisResult",
    "SpendCategoryAnalysis",
    "StatementFile",
    "Subscription",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
