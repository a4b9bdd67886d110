"""Tests for reward valuation."""

from decimal import Decimal

import pytest

from smartpay.valuation import (
    HIGH_VALUE_PURCHASE_THRESHOLD,
    estimate_dollar_value,
    extract_percentage,
    is_high_value_purchase,
    parse_amount,
)


class TestEstimateDollarValue:
    """Tests for estimate_dollar_value."""

    def test_percentage_of_amount(self):
        """Test the basic cashback case."""
        assert estimate_dollar_value("5% cashback", "200") == "10.00"

    def test_no_percentage(self):
        """Test that a points multiplier cannot be valued."""
        assert estimate_dollar_value("3x points", "200") is None

    @pytest.mark.parametrize("rate", ["5%", "3x points", "Total ~8% Return", None])
    def test_negative_amount(self, rate):
        """Test that a negative amount is never valued."""
        assert estimate_dollar_value(rate, "-5") is None

    @pytest.mark.parametrize("amount", [None, "", "   ", "0", "abc", "1,000", "NaN", "Infinity"])
    def test_unusable_amount(self, amount):
        """Test that blank, zero and non-numeric amounts are absent."""
        assert estimate_dollar_value("5%", amount) is None

    def test_missing_rate(self):
        """Test that a missing rate is absent."""
        assert estimate_dollar_value(None, "200") is None
        assert estimate_dollar_value("", "200") is None

    def test_decimal_percentage(self):
        """Test fractional percentages."""
        assert estimate_dollar_value("2.5% back", "80") == "2.00"

    def test_first_percentage_wins(self):
        """Test that only the first percentage is used."""
        assert estimate_dollar_value("3% card + 5% portal", "100") == "3.00"

    def test_total_return_phrase(self):
        """Test the optimization total wording."""
        assert estimate_dollar_value("Total ~8% Return", "250") == "20.00"

    def test_no_upper_bound(self):
        """Test that large percentages are accepted as-is."""
        assert estimate_dollar_value("450%", "10") == "45.00"

    def test_rounds_half_up(self):
        """Test that half cents round up."""
        assert estimate_dollar_value("2.5%", "1.00") == "0.03"
        assert estimate_dollar_value("1%", "0.5") == "0.01"

    def test_always_two_decimals(self):
        """Test the output format."""
        assert estimate_dollar_value("1%", "100") == "1.00"
        assert estimate_dollar_value("1.5%", "33.33") == "0.50"

    def test_amount_with_whitespace(self):
        """Test that surrounding whitespace is ignored."""
        assert estimate_dollar_value("5%", " 200 ") == "10.00"

    def test_very_large_amount(self):
        """Test that a thirty-digit amount is valued to the cent."""
        assert estimate_dollar_value("5%", "1" + "0" * 30) == "5" + "0" * 28 + ".00"

    def test_exponent_amount(self):
        """Test that scientific notation beyond the default precision is valued."""
        assert estimate_dollar_value("5%", "1e30") == "5" + "0" * 28 + ".00"

    @pytest.mark.parametrize("amount", ["1e999999999", "9" * 2000])
    def test_amount_too_large_to_value(self, amount):
        """Test that an absurd amount is absent instead of an error."""
        assert estimate_dollar_value("5%", amount) is None

    @pytest.mark.parametrize("amount", ["1_000", "\u0661\u0660\u0660", "\uff11\uff10\uff10", "1 000"])
    def test_rejects_separators_and_non_ascii_digits(self, amount):
        """Test that only plain ASCII numbers are amounts."""
        assert estimate_dollar_value("5%", amount) is None
        assert parse_amount(amount) is None


class TestParsing:
    """Tests for the parsing helpers."""

    def test_parse_amount(self):
        """Test a valid amount."""
        assert parse_amount("199.99") == Decimal("199.99")

    def test_parse_amount_rejects_zero(self):
        """Test that zero is not a purchase amount."""
        assert parse_amount("0") is None

    @pytest.mark.parametrize("text,expected", [
        ("+12", Decimal("12")),
        (".5", Decimal("0.5")),
        ("5.", Decimal("5")),
        ("2E3", Decimal("2000")),
    ])
    def test_parse_amount_plain_forms(self, text, expected):
        """Test the accepted number forms."""
        assert parse_amount(text) == expected

    def test_non_ascii_percentage_is_ignored(self):
        """Test that only ASCII digits count as a percentage."""
        assert extract_percentage("\u0665% back") is None

    def test_extract_percentage(self):
        """Test percentage extraction."""
        assert extract_percentage("Earn 4% on groceries") == Decimal("4")
        assert extract_percentage("percent sign missing") is None
        assert extract_percentage(None) is None


class TestHighValuePurchase:
    """Tests for the market search threshold."""

    def test_threshold_constant(self):
        """Test the default threshold."""
        assert HIGH_VALUE_PURCHASE_THRESHOLD == Decimal("500")

    def test_above_threshold(self):
        """Test an amount above the threshold."""
        assert is_high_value_purchase("1000")

    def test_threshold_is_exclusive(self):
        """Test that exactly the threshold is not high value."""
        assert not is_high_value_purchase("500")
        assert is_high_value_purchase("500.01")

    def test_missing_amount(self):
        """Test that an unknown amount is never high value."""
        assert not is_high_value_purchase(None)
        assert not is_high_value_purchase("lots")

    def test_custom_threshold(self):
        """Test a configured threshold."""
        assert is_high_value_purchase("150", threshold=Decimal("100"))
