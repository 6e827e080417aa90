"""
Tests for statement amount parser.
"""

from decimal import Decimal

from statement_desk.pipeline.amount_parser import find_money_tokens, is_amount_like, parse_amount


class TestParseAmount:
    """Test amount parsing and sign conventions."""

    def test_simple_amount(self):
        result = parse_amount("1234.56")
        assert result.amount == Decimal("1234.56")
        assert not result.is_negative
        assert not result.has_explicit_sign

    def test_dollar_sign_and_commas(self):
        result = parse_amount("$1,234.56")
        assert result.amount == Decimal("1234.56")

    def test_pound_sign(self):
        result = parse_amount(chr(163) + "500.00")
        assert result.amount == Decimal("500.00")

    def test_parentheses_negative(self):
        result = parse_amount("(500.00)")
        assert result.amount == Decimal("-500.00")
        assert result.is_negative
        assert result.sign_convention == "PARENTHESES"

    def test_dr_suffix(self):
        result = parse_amount("100.00 DR")
        assert result.amount == Decimal("-100.00")
        assert result.sign_convention == "DR_CR"

    def test_cr_suffix_is_explicit_credit(self):
        result = parse_amount("250.00 CR")
        assert result.amount == Decimal("250.00")
        assert not result.is_negative
        assert result.has_explicit_sign

    def test_leading_minus(self):
        result = parse_amount("-75.50")
        assert result.amount == Decimal("-75.50")
        assert result.sign_convention == "MINUS"

    def test_trailing_minus(self):
        result = parse_amount("75.50-")
        assert result.amount == Decimal("-75.50")

    def test_minus_before_currency(self):
        assert parse_amount("-$1,234.56").amount == Decimal("-1234.56")

    def test_minus_after_currency(self):
        assert parse_amount("$-12.00").amount == Decimal("-12.00")

    def test_magnitude_is_unsigned(self):
        assert parse_amount("(42.10)").magnitude == Decimal("42.10")

    def test_empty_and_dashes(self):
        assert parse_amount("").amount is None
        assert parse_amount("--").amount is None

    def test_not_a_number(self):
        result = parse_amount("abc")
        assert result.amount is None
        assert result.confidence == 0.0

    def test_zero_has_lower_confidence(self):
        assert parse_amount("0.00").confidence == 0.80

    def test_huge_amount_is_suspicious(self):
        assert parse_amount("25,000,000.00").confidence == 0.5


class TestFindMoneyTokens:
    """Test money token detection inside statement lines."""

    def test_amount_and_balance(self):
        tokens = find_money_tokens("01/15/2024 WALMART SUPERCENTER #1234 125.67 2,500.00")
        assert [t.group(0) for t in tokens] == ["125.67", "2,500.00"]

    def test_store_numbers_and_dates_are_not_money(self):
        assert find_money_tokens("01/15/2024 STORE #1234 REF 998877") == []

    def test_marked_amounts(self):
        tokens = find_money_tokens("FEE (45.00) REFUND 12.00 CR")
        assert [t.group(0).strip() for t in tokens] == ["(45.00)", "12.00 CR"]


class TestIsAmountLike:
    """Test the quick amount check."""

    def test_amounts(self):
        assert is_amount_like("1,234.56")
        assert is_amount_like("(99.99)")

    def test_not_amounts(self):
        assert not is_amount_like("Walmart")
        assert not is_amount_like("")
