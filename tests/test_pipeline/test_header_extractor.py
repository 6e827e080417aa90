"""
Tests for statement header extraction and bank detection.
"""

from datetime import date
from decimal import Decimal

from statement_desk.pipeline.bank_detector import detect_bank, infer_day_first
from statement_desk.pipeline.header_extractor import (
    extract_account_info,
    extract_statement_period,
    mask_account_number,
)


class TestAccountInfo:
    """Test account metadata extraction."""

    def test_sample_statement(self, sample_statement_text):
        info = extract_account_info(sample_statement_text)
        assert info.account_number == "****6789"
        assert info.opening_balance == Decimal("2625.67")
        assert info.closing_balance == Decimal("3995.50")

    def test_account_holder(self):
        info = extract_account_info("Account Holder: Jane Q Public")
        assert info.account_holder == "Jane Q Public"

    def test_account_ending_in(self):
        assert extract_account_info("Account ending in 4321").account_number == "****4321"

    def test_mask_needs_four_digits(self):
        assert mask_account_number("12") is None
        assert mask_account_number("XXXX-XXXX-1234") == "****1234"


class TestStatementPeriod:
    """Test statement period ranges."""

    def test_numeric_range(self):
        period = extract_statement_period("Statement Period: 01/01/2024 - 01/31/2024")
        assert period.start == date(2024, 1, 1)
        assert period.end == date(2024, 1, 31)

    def test_named_month_range_with_year_on_end(self):
        period = extract_statement_period("For the period January 1 - January 31, 2024")
        assert period.start == date(2024, 1, 1)
        assert period.end == date(2024, 1, 31)

    def test_unlabelled_through(self):
        period = extract_statement_period("01/01/2024 through 01/31/2024")
        assert period.start == date(2024, 1, 1)
        assert period.end == date(2024, 1, 31)

    def test_missing_period(self):
        period = extract_statement_period("WALMART 12.00")
        assert period.start is None
        assert period.end is None


class TestBankDetection:
    """Test bank detection and date order."""

    def test_us_bank(self):
        detection = detect_bank(["JPMorgan Chase Bank, N.A.\nchase.com"])
        assert detection.bank_type == "chase"
        assert infer_day_first([], detection) is False

    def test_uk_bank_is_day_first(self):
        detection = detect_bank(["Barclays Bank UK PLC"])
        assert detection.bank_type == "barclays"
        assert infer_day_first([], detection) is True

    def test_unknown_bank(self, sample_statement_text):
        detection = detect_bank([sample_statement_text])
        assert detection.bank_type == "generic"
        assert infer_day_first([sample_statement_text], detection) is None

    def test_sort_code_implies_day_first(self):
        texts = ["Local Credit Union\nSort Code 12-34-56"]
        detection = detect_bank(texts)
        assert detection.bank is None
        assert infer_day_first(texts, detection) is True
