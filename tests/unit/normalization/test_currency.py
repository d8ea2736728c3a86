"""
Unit tests for the currency module.

Tests for CurrencyParser amount parsing and currency detection.
"""

from decimal import Decimal

import pytest

from eventradar.normalization.currency import CurrencyParser


class TestParseAmount:
    """Tests for parse_amount."""

    def test_number_uses_default_currency(self):
        assert CurrencyParser.parse_amount(25, "USD") == (Decimal("25"), "USD")

    def test_float_is_exact_decimal(self):
        amount, _ = CurrencyParser.parse_amount(19.99, "USD")
        assert amount == Decimal("19.99")

    def test_numeric_string(self):
        assert CurrencyParser.parse_amount("25.50", "EUR") == (Decimal("25.50"), "EUR")

    def test_range_uses_lowest_price(self):
        assert CurrencyParser.parse_amount("$20-30") == (Decimal("20"), "USD")

    def test_code_in_text_overrides_default(self):
        assert CurrencyParser.parse_amount("15 EUR", "USD") == (Decimal("15"), "EUR")

    def test_european_decimal_comma(self):
        assert CurrencyParser.parse_amount("15,50€") == (Decimal("15.50"), "EUR")

    def test_thousands_separator(self):
        assert CurrencyParser.parse_amount("$1,500", "USD") == (Decimal("1500"), "USD")

    def test_thousands_separator_with_cents(self):
        assert CurrencyParser.parse_amount("$1,234.50") == (Decimal("1234.50"), "USD")

    def test_thousands_range(self):
        assert CurrencyParser.parse_amount("$1,200 - $2,500") == (Decimal("1200"), "USD")

    def test_free_is_zero(self):
        assert CurrencyParser.parse_amount("Free entry", "USD") == (Decimal("0"), "USD")

    @pytest.mark.parametrize("value", [None, "", "   ", "TBA", True])
    def test_unknown_price(self, value):
        assert CurrencyParser.parse_amount(value, "USD") == (None, None)

    def test_negative_number_rejected(self):
        assert CurrencyParser.parse_amount(-5, "USD") == (None, None)


class TestDetectCurrency:
    """Tests for detect_currency."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("£15", "GBP"),
            ("$20", "USD"),
            ("25€", "EUR"),
            ("C$40", "CAD"),
            ("R$ 50", "BRL"),
            ("100 chf", "CHF"),
            ("12.00", None),
        ],
    )
    def test_detect(self, text, expected):
        assert CurrencyParser.detect_currency(text) == expected
