"""AI Agents package."""

from smartpay.agents.ai_agents import (
    FALLBACK_COMMON_CARDS,
    AIClient,
    AIQuotaExceededError,
    AIResponseError,
    AIServiceError,
    GeminiAIClient,
    clean_json,
    fallback_cards_for_bank,
    manual_entry_template,
)

__all__ = [
    "FALLBACK_COMMON_CARDS",
    "AIClient",
    "AIQuotaExceededError",
    "AIResponseError",
    "AIServiceError",
    "GeminiAIClient",
    "clean_json",
    "fallback_cards_for_bank",
    "manual_entry_template",
]
