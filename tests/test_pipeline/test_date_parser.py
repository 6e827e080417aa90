"""
Tests for statement date parser.
"""

from datetime import date

from statement_desk.pipeline.date_parser import (
    infer_year,
    is_date_like,
    match_leading_date,
    parse_date,
    search_date,
)


class TestParseDate:
    """Test date parsing across formats."""

    def test_us_numeric(self):
        result = parse_date("01/15/2024")
        assert result.parsed_date == date(2024, 1, 15)
        assert not result.is_ambiguous

    def test_uk_numeric_with_day_first(self):
        result = parse_date("15/01/2024", day_first=True)
        assert result.parsed_date == date(2024, 1, 15)

    def test_day_first_decides_order(self):
        assert parse_date("03/04/2024", day_first=True).parsed_date == date(2024, 4, 3)
        assert parse_date("03/04/2024", day_first=False).parsed_date == date(2024, 3, 4)

    def test_unknown_order_is_ambiguous(self):
        result = parse_date("03/04/2024")
        assert result.parsed_date == date(2024, 3, 4)
        assert result.is_ambiguous
        assert result.confidence == 0.70

    def test_period_resolves_ambiguity(self):
        result = parse_date(
            "03/04/2024",
            statement_period_start=date(2024, 3, 1),
            statement_period_end=date(2024, 3, 31),
        )
        assert not result.is_ambiguous

    def test_impossible_month_swaps(self):
        result = parse_date("01/15/2024", day_first=True)
        assert result.parsed_date == date(2024, 1, 15)
        assert result.ambiguity_note == "day/month order swapped to form a valid date"
        assert result.confidence <= 0.80

    def test_named_month_formats(self):
        assert parse_date("Jan 15, 2024").parsed_date == date(2024, 1, 15)
        assert parse_date("15 January 2024").parsed_date == date(2024, 1, 15)
        assert parse_date("1st Feb 2024").parsed_date == date(2024, 2, 1)

    def test_iso(self):
        result = parse_date("2024-03-15")
        assert result.parsed_date == date(2024, 3, 15)
        assert result.format_detected == "YYYY-MM-DD"

    def test_two_digit_year(self):
        assert parse_date("01/15/24").parsed_date == date(2024, 1, 15)

    def test_yearless_date_uses_fallback_year(self):
        result = parse_date("01/15", fallback_year=2023)
        assert result.parsed_date == date(2023, 1, 15)
        assert result.year_inferred

    def test_period_spanning_new_year(self):
        start, end = date(2023, 12, 15), date(2024, 1, 14)
        dec = parse_date("Dec 28", statement_period_start=start, statement_period_end=end)
        jan = parse_date("Jan 03", statement_period_start=start, statement_period_end=end)
        assert dec.parsed_date == date(2023, 12, 28)
        assert jan.parsed_date == date(2024, 1, 3)

    def test_unparseable(self):
        result = parse_date("hello")
        assert result.parsed_date is None
        assert result.format_detected == "UNKNOWN"
        assert result.confidence == 0.0


class TestMatchAndSearch:
    """Test locating date tokens inside lines."""

    def test_leading_date_end_offset(self):
        line = "01/15/2024 WALMART 125.67"
        result, end = match_leading_date(line)
        assert result.parsed_date == date(2024, 1, 15)
        assert line[end:].strip() == "WALMART 125.67"

    def test_no_leading_date(self):
        result, end = match_leading_date("Posted 01/22/2024")
        assert result.parsed_date is None
        assert end == 0

    def test_search_finds_date_mid_line(self):
        line = "Posted 01/22/2024 | Debit: 45.00"
        result, span = search_date(line)
        assert result.parsed_date == date(2024, 1, 22)
        assert line[span[0]:span[1]] == "01/22/2024"


class TestInferYear:
    """Test year inference for yearless dates."""

    def test_single_year_period(self):
        assert infer_year(6, 1, date(2024, 6, 1), date(2024, 6, 30), None) == 2024

    def test_end_only(self):
        assert infer_year(12, 20, None, date(2024, 1, 10), None) == 2023

    def test_fallback_year(self):
        assert infer_year(5, 5, None, None, 2022) == 2022


class TestIsDateLike:
    """Test the quick date check."""

    def test_dates(self):
        assert is_date_like("01/15/2024")
        assert is_date_like("15 Jan")
        assert is_date_like("2024-01-15")

    def test_not_dates(self):
        assert not is_date_like("WALMART")
        assert not is_date_like("")
