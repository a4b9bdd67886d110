"""Tests for the Gemini AI client (no network; the model is mocked)."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from google.api_core import exceptions as google_exceptions

from smartpay.agents import (
    FALLBACK_COMMON_CARDS,
    AIQuotaExceededError,
    AIResponseError,
    AIServiceError,
    GeminiAIClient,
    clean_json,
    fallback_cards_for_bank,
    manual_entry_template,
)
from smartpay.config import GeminiSettings
from smartpay.models.analysis import (
    SavingsOpportunityType,
    StatementFile,
)
from smartpay.models.card import CardSummary
from smartpay.models.recommendation import ProductQuery, Verdict

from conftest import make_card


def _response(text, chunks=None):
    metadata = SimpleNamespace(grounding_chunks=chunks or [])
    return SimpleNamespace(text=text, candidates=[SimpleNamespace(grounding_metadata=metadata)])


def _chunk(title, uri):
    return SimpleNamespace(web=SimpleNamespace(title=title, uri=uri))


@pytest.fixture
def client():
    ai_client = GeminiAIClient(GeminiSettings(api_key="test-key"))
    ai_client._model = SimpleNamespace(generate_content_async=AsyncMock())
    ai_client._search_client = SimpleNamespace(
        aio=SimpleNamespace(models=SimpleNamespace(generate_content=AsyncMock()))
    )
    return ai_client


def _json_call(client):
    return client._model.generate_content_async


def _search_call(client):
    return client._search_client.aio.models.generate_content


def _answer(client, text, chunks=None):
    _json_call(client).return_value = _response(text, chunks)
    _search_call(client).return_value = _response(text, chunks)


def _fail(client, error):
    _json_call(client).side_effect = error
    _search_call(client).side_effect = error


class TestCleanJson:
    """Tests for clean_json."""

    def test_plain_json(self):
        """Test that plain JSON is unchanged."""
        assert clean_json('{"a": 1}') == '{"a": 1}'

    def test_json_fence(self):
        """Test removal of a ```json fence."""
        assert clean_json('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        """Test removal of a bare ``` fence."""
        assert clean_json('```\n["x"]\n```') == '["x"]'

    def test_trailing_garbage(self):
        """Test that text after the last brace is cut."""
        assert clean_json('{"a": 1} Hope this helps!') == '{"a": 1}'

    def test_empty(self):
        """Test that empty input becomes an empty array."""
        assert clean_json("") == "[]"
        assert clean_json(None) == "[]"


class TestFallbacks:
    """Tests for the built-in fallback data."""

    def test_known_bank(self):
        """Test matching by substring of the upper-cased bank name."""
        assert fallback_cards_for_bank("JPMorgan Chase Bank") == FALLBACK_COMMON_CARDS["CHASE"]

    def test_american_express(self):
        """Test the long issuer name."""
        assert "Gold Card" in fallback_cards_for_bank("American Express")

    def test_unknown_bank(self):
        """Test the default list."""
        assert fallback_cards_for_bank("Tiny Credit Union") == FALLBACK_COMMON_CARDS["DEFAULT"]

    def test_fallback_is_a_copy(self):
        """Test that callers cannot change the table."""
        fallback_cards_for_bank("Apple").append("Other")
        assert FALLBACK_COMMON_CARDS["APPLE"] == ["Apple Card"]

    def test_manual_entry_template(self):
        """Test the manual-entry details."""
        draft = manual_entry_template("Freedom", "Chase")
        assert draft.network == "OTHER"
        assert draft.color_theme == "#1e293b"
        assert draft.rewards[0].rate == "1x"
        assert draft.benefits[0].title == "Manual Entry Recommended"


class TestCardDiscovery:
    """Tests for search_cards_by_bank and fetch_card_details."""

    @pytest.mark.asyncio
    async def test_search_cards(self, client):
        """Test a successful card search."""
        _answer(client, json.dumps(["A", "B", "C", "D", "E", "F"]))
        assert await client.search_cards_by_bank("Chase") == ["A", "B", "C", "D", "E"]

    @pytest.mark.asyncio
    async def test_search_cards_quota_fallback(self, client):
        """Test that a quota error falls back to the table."""
        _fail(client, google_exceptions.ResourceExhausted("quota"))
        assert await client.search_cards_by_bank("Citi") == FALLBACK_COMMON_CARDS["CITI"]

    @pytest.mark.asyncio
    async def test_search_cards_bad_json_fallback(self, client):
        """Test that an unparsable answer falls back to the table."""
        _answer(client, "I cannot help with that")
        assert await client.search_cards_by_bank("Bank") == FALLBACK_COMMON_CARDS["DEFAULT"]

    @pytest.mark.asyncio
    async def test_fetch_card_details(self, client):
        """Test a successful details lookup."""
        _answer(client, json.dumps({
            "network": "VISA",
            "colorTheme": "#123456",
            "rewards": [{"category": "Dining", "rate": "3x", "description": "Restaurants"}],
            "benefits": [{"title": "Lounge", "description": "Priority Pass"}],
        }))
        draft = await client.fetch_card_details("Sapphire Reserve", "Chase")
        assert draft.network == "VISA"
        assert draft.bank_name == "Chase"
        assert draft.card_name == "Sapphire Reserve"
        assert draft.rewards[0].category == "Dining"

    @pytest.mark.asyncio
    async def test_fetch_card_details_fallback(self, client):
        """Test that a failure yields the manual-entry template."""
        _fail(client, RuntimeError("network down"))
        draft = await client.fetch_card_details("Freedom", "Chase")
        assert draft.benefits[0].title == "Manual Entry Recommended"
        assert draft.card_name == "Freedom"


class TestRecommendBestCard:
    """Tests for recommend_best_card."""

    @pytest.mark.asyncio
    async def test_parses_result_and_sources(self, client):
        """Test parsing a fenced answer with grounding sources."""
        answer = "```json\n" + json.dumps({
            "cardId": "A",
            "reasoning": "Best dining rate",
            "estimatedReward": "3%",
            "stackingInfo": "Rakuten 5%",
        }) + "\n```"
        _answer(client, answer, chunks=[_chunk("Rakuten", "https://rakuten.com/x"), _chunk(None, "https://x")])

        result = await client.recommend_best_card("Buying dinner", [CardSummary.from_card(make_card())])

        assert result.card_id == "A"
        assert [source.uri for source in result.sources] == ["https://rakuten.com/x"]

    @pytest.mark.asyncio
    async def test_prompt_has_no_notes(self, client):
        """Test that manual notes never reach the prompt."""
        _answer(client, json.dumps({"cardId": "A"}))
        card = make_card(manual_details="my secret notes")

        await client.recommend_best_card("Buying dinner", [CardSummary.from_card(card)])

        prompt = _search_call(client).call_args.kwargs["contents"]
        assert "my secret notes" not in prompt
        assert "Chase Sapphire Preferred" in prompt

    @pytest.mark.asyncio
    async def test_quota_error(self, client):
        """Test that quota errors are not retried."""
        _fail(client, google_exceptions.ResourceExhausted("quota"))
        with pytest.raises(AIQuotaExceededError):
            await client.recommend_best_card("Buying dinner", [])
        assert _search_call(client).await_count == 1

    @pytest.mark.asyncio
    async def test_service_error(self, client):
        """Test that other failures surface as AIServiceError."""
        _fail(client, RuntimeError("boom"))
        with pytest.raises(AIServiceError):
            await client.recommend_best_card("Buying dinner", [])

    @pytest.mark.asyncio
    async def test_empty_answer(self, client):
        """Test that an empty answer is an AIResponseError."""
        _answer(client, "   ")
        with pytest.raises(AIResponseError):
            await client.recommend_best_card("Buying dinner", [])


class TestMarketAndResearch:
    """Tests for find_better_market_card and research_product."""

    @pytest.mark.asyncio
    async def test_market_card(self, client):
        """Test parsing a market recommendation."""
        _answer(client, json.dumps({
            "bankName": "Chase",
            "cardName": "Freedom Flex",
            "headline": "Earn $200 Bonus",
            "benefitsForThisPurchase": ["5% rotating"],
            "applySearchQuery": "chase freedom flex apply",
        }))
        rec = await client.find_better_market_card("Buying a TV", "1200", "Generic Credit Card")
        assert rec.card_name == "Freedom Flex"
        assert rec.benefits_for_this_purchase == ["5% rotating"]

    @pytest.mark.asyncio
    async def test_market_card_wrong_shape(self, client):
        """Test that a shapeless answer is an AIResponseError."""
        _answer(client, json.dumps({"headline": "no bank"}))
        with pytest.raises(AIResponseError):
            await client.find_better_market_card("Buying a TV", "1200", "Paying with Cash")

    @pytest.mark.asyncio
    async def test_research_with_image(self, client):
        """Test that image bytes are sent inline before the prompt."""
        _answer(client, json.dumps({
            "productName": "Sony WH-1000XM5",
            "currentPrice": "$348",
            "verdict": "Overpriced",
            "sentimentScore": 88,
        }))
        result = await client.research_product(ProductQuery(name="Headphones"), image=b"\xff\xd8jpeg")

        contents = _search_call(client).call_args.kwargs["contents"]
        assert contents[0].inline_data.data == b"\xff\xd8jpeg"
        assert contents[0].inline_data.mime_type == "image/jpeg"
        assert result.verdict == Verdict.OVERPRICED
        assert result.sentiment_score == 88


class TestCardNetworkNormalization:
    """Tests for the network name in fetched card details."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answered,expected", [
        ("Mastercard", "MASTERCARD"),
        ("visa", "VISA"),
        ("American Express", "AMEX"),
        ("JCB", "OTHER"),
    ])
    async def test_network_is_normalized(self, client, answered, expected):
        """Test that the network is always one of the known names."""
        _answer(client, json.dumps({"network": answered, "rewards": []}))
        draft = await client.fetch_card_details("Card", "Bank")
        assert draft.network == expected

    @pytest.mark.asyncio
    async def test_missing_network_is_other(self, client):
        """Test that an answer without a network is OTHER."""
        _answer(client, json.dumps({"colorTheme": "#000000"}))
        draft = await client.fetch_card_details("Card", "Bank")
        assert draft.network == "OTHER"


class _RateLimited(Exception):
    code = 429


class TestGroundedRequests:
    """Tests for how search-grounded calls are issued."""

    @pytest.mark.asyncio
    async def test_recommendation_uses_google_search_tool(self, client):
        """Test that grounded calls send the google_search tool."""
        _answer(client, json.dumps({"cardId": "A"}))
        await client.recommend_best_card("Buying dinner", [])

        call = _search_call(client).call_args
        tools = call.kwargs["config"].tools
        assert len(tools) == 1
        assert tools[0].google_search is not None
        assert tools[0].google_search_retrieval is None
        assert call.kwargs["model"] == client._settings.model_name
        _json_call(client).assert_not_awaited()

    @pytest.mark.asyncio
    async def test_structured_calls_use_json_mode(self, client):
        """Test that card discovery asks for JSON without search tools."""
        _answer(client, json.dumps(["Freedom"]))
        await client.search_cards_by_bank("Chase")

        kwargs = _json_call(client).call_args.kwargs
        assert kwargs["generation_config"] == {"response_mime_type": "application/json"}
        assert "tools" not in kwargs
        _search_call(client).assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rate_limit_code_is_quota_error(self, client):
        """Test that a 429 status code maps to a quota error."""
        _fail(client, _RateLimited("too many requests"))
        with pytest.raises(AIQuotaExceededError):
            await client.find_better_market_card("Buying a TV", "1200", "Paying with Cash")


def _pdf(name="statement.pdf"):
    return StatementFile(filename=name, data=b"%PDF-1.4 statement")


class TestStatementAnalysis:
    """Tests for the three statement analyses."""

    @pytest.mark.asyncio
    async def test_spend_statements(self, client):
        """Test parsing a spend analysis and sending statements before the prompt."""
        _answer(client, json.dumps({
            "detectedCard": "Citi Double Cash",
            "totalSpend": 1250.5,
            "totalMissedSavings": 31.2,
            "categoryAnalysis": [{
                "category": "Dining",
                "totalAmount": 400,
                "percentage": 32,
                "usedCardRewardVal": 8,
                "bestCardName": "Chase Sapphire Preferred",
                "bestCardRewardVal": 12,
                "missedSavings": 4,
            }],
            "topMissedCategory": "Dining",
            "analysisSummary": "Use Sapphire for dining.",
        }))
        card = make_card(manual_details="my secret notes")

        result = await client.analyze_spend_statements([_pdf()], [CardSummary.from_card(card)])

        contents = _json_call(client).call_args.args[0]
        assert contents[0] == {"mime_type": "application/pdf", "data": b"%PDF-1.4 statement"}
        assert "my secret notes" not in contents[-1]
        assert "Chase Sapphire Preferred" in contents[-1]
        assert result.detected_card == "Citi Double Cash"
        assert str(result.total_missed_savings) == "31.2"
        assert result.category_analysis[0].best_card_name == "Chase Sapphire Preferred"

    @pytest.mark.asyncio
    async def test_pasted_text_statement(self, client):
        """Test that a text statement is sent as plain text."""
        _answer(client, json.dumps({"detectedCard": "Card"}))
        text = StatementFile(filename="paste", mime_type="text/plain", data=b"AMAZON 45.00")

        await client.analyze_spend_statements([text], [])

        assert _json_call(client).call_args.args[0][0] == "AMAZON 45.00"

    @pytest.mark.asyncio
    async def test_spend_portfolio_is_grounded(self, client):
        """Test the portfolio analysis and its market card."""
        _answer(client, json.dumps({
            "totalAnalyzedSpend": 6000,
            "spendProfile": [{"category": "Groceries", "amount": 3000, "percentage": 50}],
            "monthlyBreakdown": [{
                "month": "Oct 2023",
                "breakdown": [{"category": "Groceries", "amount": 1000}],
                "total": 2000,
            }],
            "averageProfile": [{"category": "Groceries", "averageAmount": 1000, "potentialIncrease": 50}],
            "recommendedMarketCard": {
                "bankName": "American Express",
                "cardName": "Blue Cash Preferred",
                "headline": "6% at US supermarkets",
                "estimatedAnnualReturn": "$850 / year",
                "reasoning": "Half your spend is groceries",
                "applySearchQuery": "amex blue cash preferred apply",
            },
        }))

        result = await client.analyze_spend_portfolio([_pdf("oct.pdf"), _pdf("nov.pdf")])

        contents = _search_call(client).call_args.kwargs["contents"]
        assert len(contents) == 3
        assert contents[1].inline_data.mime_type == "application/pdf"
        assert result.recommended_market_card.card_name == "Blue Cash Preferred"
        assert result.monthly_breakdown[0].breakdown[0].category == "Groceries"

    @pytest.mark.asyncio
    async def test_spend_portfolio_without_card(self, client):
        """Test that a portfolio answer without a market card is unusable."""
        _answer(client, json.dumps({"totalAnalyzedSpend": 100}))
        with pytest.raises(AIResponseError):
            await client.analyze_spend_portfolio([_pdf()])

    @pytest.mark.asyncio
    async def test_bank_statements(self, client):
        """Test parsing a bank analysis."""
        _answer(client, json.dumps({
            "cashFlow": {"totalIn": 5000, "totalOut": 4200, "netFlow": 800},
            "subscriptions": [{"name": "Netflix", "amount": 15.49, "frequency": "Monthly", "category": "Streaming"}],
            "savingsOpportunities": [
                {"title": "ATM fees", "potentialMonthlySavings": 6, "type": "FEE"},
                {"title": "Two music apps", "potentialMonthlySavings": 10.99, "type": "DUPLICATE"},
            ],
            "overallHealthScore": 72,
            "summary": "Positive cash flow.",
        }))

        result = await client.analyze_bank_statements([_pdf()])

        assert result.cash_flow.net_flow == 800
        assert result.savings_opportunities[1].type == SavingsOpportunityType.DUPLICATE
        assert str(result.total_potential_monthly_savings) == "16.99"
        assert result.overall_health_score == 72

    @pytest.mark.asyncio
    async def test_bank_statements_bad_score(self, client):
        """Test that a health score outside 0-100 is unusable."""
        _answer(client, json.dumps({"overallHealthScore": 140}))
        with pytest.raises(AIResponseError):
            await client.analyze_bank_statements([_pdf()])
