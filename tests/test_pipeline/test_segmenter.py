"""
Tests for transaction segmentation.
"""

from datetime import date
from decimal import Decimal

from statement_desk.models.enums import DirectionSource, TransactionType
from statement_desk.pipeline.segmenter import (
    clean_description,
    infer_fallback_year,
    is_balance_marker,
    is_noise_line,
    segment_transactions,
)
from statement_desk.schemas.contracts import PAGE_BREAK_MARKER, RecognizedLayout, UnrecognizedLayout


class TestPrimaryShape:
    """Test date / description / amount / balance lines."""

    def test_sample_statement(self, sample_statement_text):
        result = segment_transactions(sample_statement_text)
        assert len(result.rows) == 3

        walmart = result.rows[0]
        assert walmart.date == date(2024, 1, 15)
        assert walmart.description == "WALMART SUPERCENTER #1234"
        assert walmart.amount == Decimal("125.67")
        assert walmart.balance == Decimal("2500.00")
        assert isinstance(walmart.layout, RecognizedLayout)
        assert result.fallback_rows == 0

    def test_opening_and_closing_balances(self, sample_statement_text):
        result = segment_transactions(sample_statement_text)
        assert result.opening_balance == Decimal("2625.67")
        assert result.closing_balance == Decimal("3995.50")

    def test_bank_format_tag(self):
        result = segment_transactions("01/15/2024 NETFLIX.COM 15.49", bank_format="chase")
        assert result.rows[0].layout.bank_format == "chase"

    def test_amount_only_without_balance(self):
        result = segment_transactions("01/15/2024 COFFEE SHOP 3.50")
        assert result.rows[0].amount == Decimal("3.50")
        assert result.rows[0].balance is None

    def test_posting_and_transaction_dates(self):
        result = segment_transactions("01/15 01/16 NETFLIX.COM 15.49", fallback_year=2024)
        row = result.rows[0]
        assert row.date == date(2024, 1, 15)
        assert row.description == "NETFLIX.COM"

    def test_signed_amount_sets_explicit_direction(self):
        result = segment_transactions("01/15/2024 ATM WITHDRAWAL (60.00) 940.00")
        row = result.rows[0]
        assert row.amount == Decimal("60.00")
        assert row.explicit_direction == TransactionType.DEBIT
        assert row.explicit_source == DirectionSource.SIGN

    def test_extra_money_tokens_flag_ambiguous_columns(self):
        result = segment_transactions("01/15/2024 TRANSFER 10.00 20.00 30.00")
        row = result.rows[0]
        assert row.ambiguous_columns
        assert row.amount == Decimal("20.00")
        assert row.balance == Decimal("30.00")


class TestMultiLineRows:
    """Test wrapped descriptions and split rows."""

    def test_wrapped_description(self):
        text = "01/15/2024 AMAZON MKTPLACE 25.99 1,000.00\nAMZN.COM/BILL WA"
        result = segment_transactions(text)
        assert len(result.rows) == 1
        assert result.rows[0].description == "AMAZON MKTPLACE AMZN.COM/BILL WA"

    def test_amount_on_next_line(self):
        text = "01/20/2024 ONLINE TRANSFER TO SAVINGS\n500.00 1,500.00"
        result = segment_transactions(text)
        row = result.rows[0]
        assert row.description == "ONLINE TRANSFER TO SAVINGS"
        assert row.amount == Decimal("500.00")

    def test_amount_after_page_break(self):
        text = (
            "01/20/2024 ONLINE TRANSFER TO SAVINGS"
            + PAGE_BREAK_MARKER
            + "Page 2 of 2\nDate Description Amount Balance\n500.00 1,500.00"
        )
        result = segment_transactions(text)
        assert len(result.rows) == 1
        row = result.rows[0]
        assert row.description == "ONLINE TRANSFER TO SAVINGS"
        assert row.page_number == 1

    def test_shared_date_line(self):
        text = "01/25/2024 COFFEE SHOP 3.50\nBAKERY 2.25"
        result = segment_transactions(text)
        assert len(result.rows) == 2
        assert result.rows[1].date == date(2024, 1, 25)
        assert result.rows[1].description == "BAKERY"

    def test_dated_line_without_amount_is_dropped(self):
        result = segment_transactions("01/20/2024 NOTHING TO SEE HERE")
        assert result.rows == []
        assert result.lines_skipped == 1

    def test_dated_line_without_amount_warns(self):
        result = segment_transactions("01/15/2024 WALMART SUPERCENTER\n01/16/2024 STARBUCKS 4.50 100.00")
        assert [r.description for r in result.rows] == ["STARBUCKS"]
        assert result.warnings == [
            "Page 1: row dated 2024-01-15 (WALMART SUPERCENTER) has no amount, omitted"
        ]

    def test_row_without_description_is_omitted_with_warning(self):
        result = segment_transactions("01/26/2024 12.00")
        assert result.rows == []
        assert any("has no description" in w for w in result.warnings)

    def test_page_numbers(self):
        text = "01/15/2024 SHOP ONE 1.00" + PAGE_BREAK_MARKER + "01/16/2024 SHOP TWO 2.00"
        result = segment_transactions(text)
        assert [r.page_number for r in result.rows] == [1, 2]


class TestSummaryLines:
    """Test that undated summary figures never become rows."""

    ROWS = "01/15/2024 WALMART SUPERCENTER 125.67 2,500.00\n01/16/2024 PAYROLL DEPOSIT 1,500.00 4,000.00\n"

    def test_summary_lines_after_rows(self):
        text = self.ROWS + "Average daily balance 2,497.75\nInterest paid year to date 1.23"
        result = segment_transactions(text)
        assert [r.description for r in result.rows] == ["WALMART SUPERCENTER", "PAYROLL DEPOSIT"]

    def test_line_without_row_shape_is_skipped(self):
        result = segment_transactions(self.ROWS + "Service fee rebate 12.00")
        assert len(result.rows) == 2
        assert result.rows[1].description == "PAYROLL DEPOSIT"

    def test_shared_date_needs_following_balance(self):
        text = "01/25/2024 COFFEE SHOP 3.50 96.50\nBAKERY 2.25 94.25\nRewards summary 40.00 1,200.00"
        result = segment_transactions(text)
        assert [r.description for r in result.rows] == ["COFFEE SHOP", "BAKERY"]
        assert result.rows[1].date == date(2024, 1, 25)
        assert result.rows[1].balance == Decimal("94.25")

    def test_summary_noise_patterns(self):
        assert is_noise_line("Average daily balance 2,497.75")
        assert is_noise_line("Average Ledger Balance $1,020.11")
        assert is_noise_line("Interest paid year to date 1.23")
        assert is_noise_line("Annual Percentage Yield Earned 0.01%")


class TestFallbackShape:
    """Test the best-effort scan for unrecognised layouts."""

    def test_labelled_debit(self):
        result = segment_transactions("Posted 01/22/2024 | Debit: 45.00 | GROCERY OUTLET")
        assert result.fallback_rows == 1
        row = result.rows[0]
        assert isinstance(row.layout, UnrecognizedLayout)
        assert row.date == date(2024, 1, 22)
        assert row.amount == Decimal("45.00")
        assert row.explicit_direction == TransactionType.DEBIT
        assert row.explicit_source == DirectionSource.COLUMN
        assert row.description == "Posted GROCERY OUTLET"

    def test_labelled_credit(self):
        result = segment_transactions("Posted 01/23/2024 | Paid in: 300.00 | REFUND FROM STORE")
        assert result.rows[0].explicit_direction == TransactionType.CREDIT


class TestLineClassification:
    """Test noise and balance marker detection."""

    def test_noise_lines(self):
        assert is_noise_line("Page 1 of 3")
        assert is_noise_line("Date Description Amount Balance")
        assert is_noise_line("Total Deposits 1,500.00")
        assert is_noise_line("Member FDIC")
        assert not is_noise_line("WALMART SUPERCENTER")

    def test_balance_markers(self):
        assert is_balance_marker("Opening Balance 2,625.67")
        assert is_balance_marker("Balance brought forward 100.00")
        assert not is_balance_marker("WALMART 12.00")

    def test_opening_marker_after_rows_is_ignored(self):
        text = "01/15/2024 SHOP 1.00 99.00\nPrevious Balance 500.00"
        assert segment_transactions(text).opening_balance is None

    def test_clean_description(self):
        assert clean_description("  | WALMART   SUPERCENTER - ") == "WALMART SUPERCENTER"

    def test_infer_fallback_year(self):
        assert infer_fallback_year("Statement for 2023 ... printed 2023") == 2023
        assert infer_fallback_year("no years here") is None
