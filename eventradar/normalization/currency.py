"""
Price parsing.

Turns the price values providers hand us (plain numbers, numeric strings or
display text such as ``"$20-30"``) into a ``Decimal`` amount plus an ISO 4217
currency code. No conversion between currencies happens here.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation


class CurrencyParser:
    """
    Parse price values and identify their currency.

    The lowest price of a range is used as the event amount; it is the one a
    max-price filter compares against.
    """

    SYMBOL_TO_CODE = {
        "R$": "BRL",
        "A$": "AUD",
        "C$": "CAD",
        "€": "EUR",
        "£": "GBP",
        "$": "USD",
        "¥": "JPY",
        "₹": "INR",
    }

    CODE_PATTERN = re.compile(
        r"\b(EUR|GBP|USD|JPY|CHF|AUD|CAD|BRL|INR|MXN|SEK|NOK|DKK|PLN|CZK)\b",
        re.IGNORECASE,
    )

    FREE_INDICATORS = ("free", "gratis", "no charge", "no cover")

    # Grouped thousands ("1,500.00") are tried before a lone decimal comma ("15,50")
    NUMBER_PATTERN = re.compile(r"\d{1,3}(?:,\d{3})+(?:\.\d+)?(?!\d)|\d+(?:[.,]\d+)?")
    THOUSANDS_PATTERN = re.compile(r"^\d{1,3}(?:,\d{3})+(?:\.\d+)?$")

    @classmethod
    def parse_amount(
        cls, value, default_currency: str | None = None
    ) -> tuple[Decimal | None, str | None]:
        """
        Parse a provider price value into ``(amount, currency_code)``.

        - ``25`` / ``25.5`` / ``"25.50"`` -> (25.50, default_currency)
        - ``"$20-30"`` -> (20, "USD")
        - ``"15 EUR"`` -> (15, "EUR")
        - ``"Free"`` -> (0, default_currency)
        - ``None`` / ``""`` / unparseable -> (None, None)

        Args:
            value: Raw price value from a provider payload
            default_currency: Currency to assume when the value carries none

        Returns:
            Tuple of (amount, currency_code); amount is never negative
        """
        if value is None or isinstance(value, bool):
            return None, None

        if isinstance(value, (int, float, Decimal)):
            amount = cls._to_decimal(value)
            if amount is None:
                return None, None
            return amount, default_currency

        text = str(value).strip()
        if not text:
            return None, None

        if cls.is_free(text):
            return Decimal("0"), default_currency

        numbers = cls.extract_numbers(text)
        if not numbers:
            return None, None

        currency = cls.detect_currency(text) or default_currency
        return min(numbers), currency

    @classmethod
    def detect_currency(cls, text: str) -> str | None:
        """
        Detect a currency from symbols or ISO codes in the text.

        Returns:
            ISO currency code, or None if nothing was recognised
        """
        if not text:
            return None

        match = cls.CODE_PATTERN.search(text)
        if match:
            return match.group(1).upper()

        for symbol, code in cls.SYMBOL_TO_CODE.items():
            if symbol in text:
                return code

        return None

    @classmethod
    def is_free(cls, text: str) -> bool:
        lowered = text.lower()
        return any(indicator in lowered for indicator in cls.FREE_INDICATORS)

    @classmethod
    def extract_numbers(cls, text: str) -> list[Decimal]:
        """
        Extract the numeric values from a price string.

        ``"1,500"`` and ``"1,234.50"`` use the comma as a thousands separator;
        ``"15,50"`` is read as a decimal comma; ``"$10-$20"`` yields both bounds.
        """
        clean = cls.CODE_PATTERN.sub("", text)
        numbers = []
        for match in cls.NUMBER_PATTERN.findall(clean):
            if cls.THOUSANDS_PATTERN.match(match):
                match = match.replace(",", "")
            amount = cls._to_decimal(match.replace(",", "."))
            if amount is not None:
                numbers.append(amount)
        return numbers

    @staticmethod
    def _to_decimal(value) -> Decimal | None:
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            return None
        if not amount.is_finite() or amount < 0:
            return None
        return amount
