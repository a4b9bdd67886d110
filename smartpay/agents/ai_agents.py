"""
AI Agents for AI Smart Pay

DESIGN DECISION: All generative-AI traffic goes through one AIClient
interface so the flows can be tested with a fake and the Gemini SDK stays
in one module.

CRITICAL BOUNDARIES:

1. CARD DISCOVERY / DETAILS:
   - CAN: Suggest card products and their reward structure
   - CANNOT: Put anything in the wallet; the user confirms every card
   - Falls back to fixed data when the AI is unavailable

2. RECOMMENDATION:
   - CAN: Name the best card id and describe stacking offers
   - CANNOT: Decide which card is shown or compute dollar values
     (the reconciler does that from the wallet)
   - NEVER sees manual notes or document content

3. MARKET SEARCH / PRODUCT RESEARCH:
   - CAN: Search the web and summarize what it finds
   - Results are advisory only and never stored

4. STATEMENT ANALYSIS:
   - CAN: Read uploaded statements and total spend by category
   - CANNOT: Touch the wallet; it only sees the card summary
   - Results are advisory only and never stored

Every call is a single best-effort request. There is no retry and no
backoff: a failure surfaces immediately as an AIServiceError.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Optional

import google.generativeai as genai
import structlog
from google import genai as google_genai
from google.api_core import exceptions as google_exceptions
from google.genai import types as genai_types
from pydantic import ValidationError

from smartpay.config import GeminiSettings, get_settings
from smartpay.models.analysis import (
    BankAnalysisResult,
    PortfolioAnalysisResult,
    SavingsOpportunityType,
    SpendAnalysisResult,
    StatementFile,
)
from smartpay.models.card import (
    CardBenefit,
    CardNetwork,
    CardSummary,
    DraftCard,
    RewardCategory,
)
from smartpay.models.recommendation import (
    MarketRecommendation,
    ProductQuery,
    ProductResearchResult,
    RecommendationResult,
    Source,
)


logger = structlog.get_logger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class AIServiceError(Exception):
    """The AI service call failed."""
    pass


class AIQuotaExceededError(AIServiceError):
    """The AI service rejected the call for quota / rate limit reasons."""
    pass


class AIResponseError(AIServiceError):
    """The AI service answered with nothing usable."""
    pass


# =============================================================================
# FALLBACK DATA
# =============================================================================

# Used when card discovery fails. Keys are matched as substrings of the
# upper-cased bank name, in this order.
FALLBACK_COMMON_CARDS: dict[str, list[str]] = {
    "CHASE": ["Sapphire Reserve", "Sapphire Preferred", "Freedom Unlimited", "Freedom Flex", "Slate Edge"],
    "AMEX": ["Platinum Card", "Gold Card", "Green Card", "Blue Cash Preferred", "EveryDay Credit Card"],
    "AMERICAN EXPRESS": ["Platinum Card", "Gold Card", "Green Card", "Blue Cash Preferred", "EveryDay Credit Card"],
    "CITI": ["Double Cash", "Custom Cash", "Premier Card", "Simplicity", "Rewards+"],
    "CAPITAL ONE": ["Venture X", "Venture", "Quicksilver", "Savor", "Platinum"],
    "DISCOVER": ["It Cash Back", "It Miles", "It Chrome", "Secure", "Student Cash Back"],
    "BOA": ["Premium Rewards", "Customized Cash", "Unlimited Cash", "Travel Rewards", "BankAmericard"],
    "BANK OF AMERICA": ["Premium Rewards", "Customized Cash", "Unlimited Cash", "Travel Rewards", "BankAmericard"],
    "WELLS FARGO": ["Active Cash", "Autograph", "Reflect", "Fargo"],
    "APPLE": ["Apple Card"],
    "DEFAULT": ["Premium Rewards", "Cash Back", "Travel Card", "Points Card", "Platinum"],
}

MAX_DISCOVERED_CARDS = 5


def fallback_cards_for_bank(bank_name: str) -> list[str]:
    """Popular products for a bank, from the built-in table."""
    normalized = bank_name.upper()
    for key, cards in FALLBACK_COMMON_CARDS.items():
        if key != "DEFAULT" and key in normalized:
            return list(cards)
    return list(FALLBACK_COMMON_CARDS["DEFAULT"])


def manual_entry_template(card_name: str, bank_name: str) -> DraftCard:
    """Placeholder details the user is expected to complete by hand."""
    return DraftCard(
        bank_name=bank_name,
        card_name=card_name,
        network=CardNetwork.OTHER.value,
        color_theme="#1e293b",
        rewards=[RewardCategory(
            category="General",
            rate="1x",
            description="Standard Purchase Rate",
        )],
        benefits=[CardBenefit(
            title="Manual Entry Recommended",
            description="We couldn't auto-fetch details. Please add benefits manually.",
        )],
    )


# =============================================================================
# RESPONSE HELPERS
# =============================================================================

def clean_json(text: Optional[str]) -> str:
    """
    Strip markdown fences and trailing garbage from a model's JSON answer.

    Empty input becomes "[]".
    """
    if not text:
        return "[]"
    clean = text.strip()

    # Markdown code blocks
    if clean.startswith("```json"):
        clean = clean[len("```json"):]
    elif clean.startswith("```"):
        clean = clean[len("```"):]
    clean = clean.strip()
    if clean.endswith("```"):
        clean = clean[:-len("```")].strip()

    # Cut off anything after the last closing brace
    last_brace = clean.rfind("}")
    if last_brace != -1 and last_brace < len(clean) - 1:
        clean = clean[:last_brace + 1]

    return clean


def parse_json_response(text: Optional[str]) -> Any:
    """Parse a model answer into JSON data, or raise AIResponseError."""
    if not text or not text.strip():
        raise AIResponseError("AI service returned an empty response")
    try:
        return json.loads(clean_json(text))
    except ValueError as e:
        raise AIResponseError(f"AI service returned invalid JSON: {e}") from e


def extract_sources(response: Any) -> list[Source]:
    """Web pages cited in a grounded response, if any."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    sources = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None)
        title = getattr(web, "title", None)
        if uri and title:
            sources.append(Source(title=title, uri=uri))
    return sources


def _is_quota_error(error: Exception) -> bool:
    if isinstance(error, google_exceptions.ResourceExhausted):
        return True
    if getattr(error, "code", None) == 429:
        return True
    text = str(error)
    return "429" in text or "Quota" in text or "RESOURCE_EXHAUSTED" in text


def _statement_parts(statements: list[StatementFile], grounded: bool = False) -> list[Any]:
    """Statements as request parts; pasted text goes in as plain text."""
    parts: list[Any] = []
    for statement in statements:
        if statement.is_text:
            parts.append(statement.data.decode("utf-8", errors="replace"))
        elif grounded:
            parts.append(genai_types.Part.from_bytes(data=statement.data, mime_type=statement.mime_type))
        else:
            parts.append({"mime_type": statement.mime_type, "data": statement.data})
    return parts


def _validate_answer(model: Any, data: Any, what: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise AIResponseError(f"{what} has the wrong shape: {e}") from e


# =============================================================================
# CLIENT INTERFACE
# =============================================================================

class AIClient(ABC):
    """
    Abstract interface to the generative-AI service.

    Implementations:
    - GeminiAIClient: Google Gemini (production)
    - Test fakes
    """

    @abstractmethod
    async def search_cards_by_bank(self, bank_name: str) -> list[str]:
        """Up to five popular card products offered by a bank."""
        pass

    @abstractmethod
    async def fetch_card_details(self, card_name: str, bank_name: str) -> DraftCard:
        """Network, colour, rewards and benefits of a card product."""
        pass

    @abstractmethod
    async def recommend_best_card(
        self,
        purchase_text: str,
        wallet_summary: list[CardSummary],
    ) -> RecommendationResult:
        """
        Pick the best card in the summary for a purchase.

        Raises:
            AIServiceError: If the service fails or answers with nothing usable
        """
        pass

    @abstractmethod
    async def find_better_market_card(
        self,
        purchase_text: str,
        amount: str,
        current_card_name: str,
    ) -> MarketRecommendation:
        """
        Find one card on the market that beats the user's current card.

        Raises:
            AIServiceError: If the service fails or answers with nothing usable
        """
        pass

    @abstractmethod
    async def research_product(
        self,
        query: ProductQuery,
        image: Optional[bytes] = None,
    ) -> ProductResearchResult:
        """
        Price-to-value research for a product.

        Raises:
            AIServiceError: If the service fails or answers with nothing usable
        """
        pass

    @abstractmethod
    async def analyze_spend_statements(
        self,
        statements: list[StatementFile],
        wallet_summary: list[CardSummary],
    ) -> SpendAnalysisResult:
        """
        Missed rewards on card statements compared with the best wallet card.

        Raises:
            AIServiceError: If the service fails or answers with nothing usable
        """
        pass

    @abstractmethod
    async def analyze_spend_portfolio(
        self,
        statements: list[StatementFile],
    ) -> PortfolioAnalysisResult:
        """
        Spend profile across statements and the market card that fits it.

        Raises:
            AIServiceError: If the service fails or answers with nothing usable
        """
        pass

    @abstractmethod
    async def analyze_bank_statements(
        self,
        statements: list[StatementFile],
    ) -> BankAnalysisResult:
        """
        Cash flow, subscriptions and savings opportunities in bank statements.

        Raises:
            AIServiceError: If the service fails or answers with nothing usable
        """
        pass


class GeminiAIClient(AIClient):
    """
    AIClient backed by Google Gemini.

    Structured calls go through google-generativeai and ask for a JSON mime
    type. Calls that need current offers or prices are grounded with the
    google_search tool, which google-generativeai cannot send, so those go
    through the google-genai client and parse the JSON out of the
    free-text answer.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )
        self._search_client = google_genai.Client(api_key=self._settings.api_key)

    def _search_config(self) -> genai_types.GenerateContentConfig:
        return genai_types.GenerateContentConfig(
            temperature=self._settings.temperature,
            max_output_tokens=self._settings.max_tokens,
            tools=[genai_types.Tool(google_search=genai_types.GoogleSearch())],
        )

    async def _generate(
        self,
        contents: Any,
        json_mode: bool = False,
        grounded: bool = False,
    ) -> Any:
        """One request to the model. Errors are mapped, never retried."""
        try:
            if grounded:
                return await self._search_client.aio.models.generate_content(
                    model=self._settings.model_name,
                    contents=contents,
                    config=self._search_config(),
                )
            kwargs: dict[str, Any] = {}
            if json_mode:
                kwargs["generation_config"] = {"response_mime_type": "application/json"}
            return await self._model.generate_content_async(contents, **kwargs)
        except Exception as e:
            if _is_quota_error(e):
                raise AIQuotaExceededError(str(e)) from e
            raise AIServiceError(f"Gemini request failed: {e}") from e

    @staticmethod
    def _response_text(response: Any) -> str:
        # .text raises ValueError when the answer was blocked or empty
        try:
            return response.text
        except ValueError as e:
            raise AIResponseError(f"AI service returned no text: {e}") from e

    async def search_cards_by_bank(self, bank_name: str) -> list[str]:
        """
        Up to five card products for a bank.

        Never fails: any AI problem falls back to the built-in table.
        """
        prompt = (
            f"List the top 5 most popular current credit card names offered by "
            f"{bank_name}. Return only the card names as a simple JSON array of "
            f"strings. Do not include markdown formatting."
        )
        try:
            response = await self._generate(prompt, json_mode=True)
            data = parse_json_response(self._response_text(response))
            if not isinstance(data, list):
                raise AIResponseError("Expected a JSON array of card names")
            names = [str(name).strip() for name in data if str(name).strip()]
            if not names:
                raise AIResponseError("AI service returned no card names")
            return names[:MAX_DISCOVERED_CARDS]
        except AIServiceError as e:
            logger.warning("card_search_fallback", bank_name=bank_name, error=str(e))
            return fallback_cards_for_bank(bank_name)

    async def fetch_card_details(self, card_name: str, bank_name: str) -> DraftCard:
        """
        Reward and benefit details for a card product.

        The network is normalized to one of the known names; anything the
        model answers outside that set becomes OTHER.

        Never fails: any AI problem yields the manual-entry template.
        """
        networks = " | ".join(f'"{n.value}"' for n in CardNetwork)
        prompt = f"""Provide details for: "{bank_name} {card_name}".

Output JSON format:
{{
  "network": {networks},
  "colorTheme": "#RRGGBB" (hex for card branding),
  "rewards": [{{"category": "Dining", "rate": "3x", "description": "Global restaurants"}}],
  "benefits": [{{"title": "Purchase Protection", "description": "Brief summary"}}]
}}

Constraints:
- Max 5 rewards categories.
- Max 5 key benefits.
- Keep descriptions UNDER 15 WORDS. Be concise."""

        try:
            response = await self._generate(prompt, json_mode=True)
            data = parse_json_response(self._response_text(response))
            if not isinstance(data, dict):
                raise AIResponseError("Expected a JSON object of card details")
            details = DraftCard.model_validate(data)
        except (AIServiceError, ValidationError) as e:
            logger.warning(
                "card_details_fallback",
                bank_name=bank_name,
                card_name=card_name,
                error=str(e),
            )
            return manual_entry_template(card_name, bank_name)

        network = CardNetwork.parse(details.network, default=CardNetwork.OTHER)
        if details.network and network.value != details.network:
            logger.info(
                "card_network_normalized",
                card_name=card_name,
                answered=details.network,
                network=network.value,
            )
        return details.model_copy(update={
            "bank_name": bank_name,
            "card_name": card_name,
            "network": network.value,
        })

    async def recommend_best_card(
        self,
        purchase_text: str,
        wallet_summary: list[CardSummary],
    ) -> RecommendationResult:
        wallet_json = json.dumps(
            [summary.model_dump(mode="json", by_alias=True) for summary in wallet_summary],
            indent=2,
        )
        prompt = f"""User transaction: "{purchase_text}".

Task:
1. Use Google Search to find current Rakuten, PayPal, or Capital One Shopping cashback offers for this merchant.
2. Analyze the user's wallet to find the best credit card for points/benefits.
3. CALCULATE THE TOTAL VALUE: Add the Credit Card Reward (approx %) + Stacking Offer (%).
4. Create a strategy checklist to maximize this savings.

Wallet Data:
{wallet_json}

Output ONLY raw JSON (no markdown) in this format:
{{
  "cardId": "string (id of best card)",
  "reasoning": "string (why this card + warranty info)",
  "estimatedReward": "string (e.g. '3% back from card')",
  "stackingInfo": "string (e.g. 'Rakuten offers additional 5% cashback.')",
  "optimizationAnalysis": {{
    "totalPotentialReturn": "string (e.g. 'Total ~8% Return')",
    "stepsToMaximize": ["string (Step 1: Activate Rakuten)", "string (Step 2: Use Amex Gold)"]
  }}
}}"""

        response = await self._generate(prompt, grounded=True)
        data = parse_json_response(self._response_text(response))
        if not isinstance(data, dict):
            raise AIResponseError("Expected a JSON object recommendation")

        result = _validate_answer(RecommendationResult, data, "Recommendation")

        sources = extract_sources(response)
        if sources:
            result = result.model_copy(update={"sources": sources})
        return result

    async def find_better_market_card(
        self,
        purchase_text: str,
        amount: str,
        current_card_name: str,
    ) -> MarketRecommendation:
        prompt = f"""User is buying: "{purchase_text}" for Amount: ${amount}.
User's current best card is: "{current_card_name}".

TASK:
Using Google Search, find ONE credit card currently available on the market (US) that would be SIGNIFICANTLY better for this specific purchase than the user's current card.

Focus on:
1. Sign-Up Bonuses (SUB) - Since the purchase amount is high, it contributes to spend requirements.
2. High Category Cashback for this merchant.
3. Purchase Protection / Extended Warranty benefits.
4. 0% Intro APR if applicable.

Output ONLY raw JSON:
{{
  "bankName": "string",
  "cardName": "string",
  "headline": "string (e.g. 'Earn $200 Bonus + 5% Back')",
  "whyBetter": "string (Direct comparison: 'This card offers X which beats your current card's Y')",
  "benefitsForThisPurchase": ["string (benefit 1)", "string (benefit 2)"],
  "applySearchQuery": "string (keywords to google search for application)",
  "estimatedAnnualReturn": "string (optional)"
}}"""

        response = await self._generate(prompt, grounded=True)
        data = parse_json_response(self._response_text(response))
        return _validate_answer(MarketRecommendation, data, "Market recommendation")

    async def research_product(
        self,
        query: ProductQuery,
        image: Optional[bytes] = None,
    ) -> ProductResearchResult:
        price_ctx = f"User sees price: ${query.price}" if query.price else "No price provided"
        store_ctx = f"at store: {query.store}" if query.store else "at general market"
        identify = "Identify the product in the image." if image else ""

        prompt = f"""Task: Product Price-to-Value Research.
{identify}
User Query: "{query.describe()}" {price_ctx} {store_ctx}.

STRICT INSTRUCTIONS:
1. Use Google Search to find the EXACT REAL-TIME PRICE of this specific model (or Barcode {query.barcode or 'N/A'}) at major retailers (Amazon, Best Buy, Walmart, Target).
   DO NOT HALLUCINATE PRICES. If you can't find it, verify the MSRP.
2. Compare the user's observed price (${query.price or 'N/A'}) vs the market best price.
3. Verdict: Is it a 'Good Buy' (Cheaper than market), 'Overpriced' (More expensive than Amazon/BestBuy), or 'Wait' (Price trending down)?
4. Generate 6-month price history based on general market trends for this category/product.
5. Find 3 SPECIFIC alternatives that offer better value.

Output ONLY raw JSON:
{{
  "productName": "string (identified product full name)",
  "currentPrice": "string (e.g. $199)",
  "verdict": "Good Buy" | "Wait" | "Overpriced",
  "verdictReason": "string",
  "priceHistory": [{{"month": "string (e.g. Jan)", "price": number}}],
  "sentimentScore": number (0-100),
  "sentimentSummary": "string (Summarize real user reviews)",
  "alternatives": [{{"name": "string", "price": "string", "whyBetter": "string"}}]
}}"""

        contents: list[Any] = [prompt]
        if image:
            contents.insert(0, genai_types.Part.from_bytes(data=image, mime_type="image/jpeg"))

        response = await self._generate(contents, grounded=True)
        data = parse_json_response(self._response_text(response))
        return _validate_answer(ProductResearchResult, data, "Product research")

    async def analyze_spend_statements(
        self,
        statements: list[StatementFile],
        wallet_summary: list[CardSummary],
    ) -> SpendAnalysisResult:
        wallet_json = json.dumps(
            [summary.model_dump(mode="json", by_alias=True) for summary in wallet_summary],
            indent=2,
        )
        prompt = f"""Task: Credit card statement reward audit.
The attached file(s) are monthly statements from ONE credit card.

1. Identify the card the statements belong to.
2. Group every purchase into a spend category and total each category.
3. For each category, estimate the reward value ($) earned with the statement card,
   and the reward value ($) the BEST card in the user's wallet would have earned.
4. missedSavings = bestCardRewardVal - usedCardRewardVal (never negative).

User's Wallet:
{wallet_json}

Output ONLY raw JSON:
{{
  "detectedCard": "string (card on the statement)",
  "totalSpend": number,
  "totalMissedSavings": number,
  "categoryAnalysis": [{{
    "category": "string",
    "totalAmount": number,
    "percentage": number,
    "usedCardRewardVal": number,
    "bestCardName": "string (card from the wallet)",
    "bestCardRewardVal": number,
    "missedSavings": number
  }}],
  "topMissedCategory": "string",
  "analysisSummary": "string (2 sentences)"
}}"""

        response = await self._generate([*_statement_parts(statements), prompt], json_mode=True)
        data = parse_json_response(self._response_text(response))
        return _validate_answer(SpendAnalysisResult, data, "Spend analysis")

    async def analyze_spend_portfolio(
        self,
        statements: list[StatementFile],
    ) -> PortfolioAnalysisResult:
        prompt = """Task: Spend profile and market card fit.
The attached file(s) are statements, possibly from several cards and months.

1. Total the spend per category across all statements.
2. Break the spend down month by month (e.g. "Oct 2023").
3. Compute the average monthly spend per category.
4. Using Google Search, find ONE credit card currently available on the market (US)
   whose reward structure returns the most on this profile.
5. For each category, estimate the extra $ value that card would add versus a 1% baseline.

Output ONLY raw JSON:
{
  "totalAnalyzedSpend": number,
  "spendProfile": [{"category": "string", "amount": number, "percentage": number}],
  "monthlyBreakdown": [{"month": "string", "breakdown": [{"category": "string", "amount": number}], "total": number}],
  "averageProfile": [{"category": "string", "averageAmount": number, "potentialIncrease": number}],
  "recommendedMarketCard": {
    "bankName": "string",
    "cardName": "string",
    "headline": "string",
    "estimatedAnnualReturn": "string (e.g. '$850 / year')",
    "reasoning": "string (why this fits the profile)",
    "applySearchQuery": "string (keywords to google search for application)"
  }
}"""

        contents = [*_statement_parts(statements, grounded=True), prompt]
        response = await self._generate(contents, grounded=True)
        data = parse_json_response(self._response_text(response))
        return _validate_answer(PortfolioAnalysisResult, data, "Portfolio analysis")

    async def analyze_bank_statements(
        self,
        statements: list[StatementFile],
    ) -> BankAnalysisResult:
        opportunity_types = " | ".join(f'"{t.value}"' for t in SavingsOpportunityType)
        prompt = f"""Task: Bank statement health check.
The attached file(s) are bank account statements.

1. Total money in, money out and the net flow.
2. Break outgoing money down by category.
3. Detect recurring subscriptions (streaming, utilities, insurance) and their frequency.
4. Find savings opportunities: unused subscriptions, high utility bills, ATM or account fees,
   insurance that could be cheaper, and duplicate charges.
5. Score overall financial health from 0 to 100.

Output ONLY raw JSON:
{{
  "cashFlow": {{"totalIn": number, "totalOut": number, "netFlow": number}},
  "categoryBreakdown": [{{"category": "string", "amount": number, "percentage": number}}],
  "subscriptions": [{{"name": "string", "amount": number, "frequency": "Monthly" | "Annual", "category": "string"}}],
  "savingsOpportunities": [{{"title": "string", "description": "string", "potentialMonthlySavings": number, "type": {opportunity_types}}}],
  "overallHealthScore": number (0-100),
  "summary": "string (2 sentences)"
}}"""

        response = await self._generate([*_statement_parts(statements), prompt], json_mode=True)
        data = parse_json_response(self._response_text(response))
        return _validate_answer(BankAnalysisResult, data, "Bank analysis")
