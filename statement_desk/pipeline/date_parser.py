"""
Statement date parser.

Strategy:
1. Try unambiguous formats first (named month, ISO)
2. Numeric formats follow the bank's date order when known; unknown order
   reads mm/dd and is flagged ambiguous
3. Swap day/month when the preferred order gives an impossible date
4. Validate against the statement period
5. Infer the year for formats without one
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional

from dateutil import parser as dateutil_parser
from pydantic import BaseModel


class DateParseResult(BaseModel):
    parsed_date: Optional[date] = None
    raw_text: str
    format_detected: str
    confidence: float
    is_ambiguous: bool
    ambiguity_note: Optional[str] = None
    year_inferred: bool = False


_MONTHS = r"(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?"

# Ordered by specificity (try most specific first).
# (pattern, format name, potentially ambiguous)
DATE_FORMATS = [
    # Named month with year
    (r'(\d{1,2})(?:st|nd|rd|th)?\s+' + _MONTHS + r',?\s+(\d{4})(?!\d)', 'DD_MON_YYYY', False),
    (_MONTHS + r'\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})(?!\d)', 'MON_DD_YYYY', False),
    (r'(\d{1,2})\s+' + _MONTHS + r'\s+(\d{2})(?![\d:])', 'DD_MON_YY', False),

    # ISO
    (r'(\d{4})-(\d{2})-(\d{2})(?!\d)', 'YYYY-MM-DD', False),
    (r'(\d{4})/(\d{2})/(\d{2})(?!\d)', 'YYYY/MM/DD', False),

    # Numeric with year (order depends on the bank)
    (r'(\d{1,2})/(\d{1,2})/(\d{4})(?!\d)', 'N/N/YYYY', True),
    (r'(\d{1,2})-(\d{1,2})-(\d{4})(?!\d)', 'N-N-YYYY', True),
    (r'(\d{1,2})\.(\d{1,2})\.(\d{4})(?!\d)', 'N.N.YYYY', True),
    (r'(\d{1,2})/(\d{1,2})/(\d{2})(?![\d/])', 'N/N/YY', True),

    # No year
    (r'(\d{1,2})(?:st|nd|rd|th)?\s+' + _MONTHS + r'(?![a-z])', 'DD_MON', False),
    (_MONTHS + r'\s+(\d{1,2})(?!\d)', 'MON_DD', False),
    (r'(\d{1,2})/(\d{1,2})(?![\d/])', 'N/N', True),
]

_COMPILED_FORMATS = [
    (re.compile(pattern, re.IGNORECASE), name, ambiguous)
    for pattern, name, ambiguous in DATE_FORMATS
]

_NO_YEAR_FORMATS = {'DD_MON', 'MON_DD', 'N/N'}


def parse_date(
    raw: str,
    day_first: Optional[bool] = None,
    statement_period_start: Optional[date] = None,
    statement_period_end: Optional[date] = None,
    fallback_year: Optional[int] = None,
) -> DateParseResult:
    """Parse a date that starts at the beginning of `raw`."""
    result, _ = match_leading_date(
        raw,
        day_first=day_first,
        statement_period_start=statement_period_start,
        statement_period_end=statement_period_end,
        fallback_year=fallback_year,
    )
    return result


def match_leading_date(
    text: str,
    day_first: Optional[bool] = None,
    statement_period_start: Optional[date] = None,
    statement_period_end: Optional[date] = None,
    fallback_year: Optional[int] = None,
) -> tuple[DateParseResult, int]:
    """
    Parse a date token at the start of `text`.
    Returns the result and the index just past the token (0 if none).
    """
    stripped = text.lstrip()
    offset = len(text) - len(stripped)
    for regex, format_name, ambiguous in _COMPILED_FORMATS:
        m = regex.match(stripped)
        if not m:
            continue
        result = _build_result(
            m, format_name, ambiguous, day_first,
            statement_period_start, statement_period_end, fallback_year,
        )
        if result is not None:
            return result, offset + m.end()
    return _unparsed(text), 0


def search_date(
    text: str,
    day_first: Optional[bool] = None,
    statement_period_start: Optional[date] = None,
    statement_period_end: Optional[date] = None,
    fallback_year: Optional[int] = None,
) -> tuple[DateParseResult, Optional[tuple[int, int]]]:
    """
    Find the left-most parseable date anywhere in `text`.
    Used by the best-effort row scan for unrecognised layouts.
    """
    best = None
    for regex, format_name, ambiguous in _COMPILED_FORMATS:
        for m in regex.finditer(text):
            if m.start() > 0 and text[m.start() - 1].isalnum():
                continue
            if best is not None and m.start() >= best[1].start():
                break
            result = _build_result(
                m, format_name, ambiguous, day_first,
                statement_period_start, statement_period_end, fallback_year,
            )
            if result is not None:
                best = (result, m)
                break
    if best is None:
        return _unparsed(text), None
    return best[0], best[1].span()


def _build_result(
    m: re.Match,
    format_name: str,
    potentially_ambiguous: bool,
    day_first: Optional[bool],
    period_start: Optional[date],
    period_end: Optional[date],
    fallback_year: Optional[int],
) -> Optional[DateParseResult]:
    try:
        parsed, swapped = _parse_by_format(
            m, format_name, day_first, period_start, period_end, fallback_year,
        )
    except (ValueError, OverflowError):
        return None
    if parsed is None:
        return None

    is_ambiguous = False
    ambiguity_note = None
    if potentially_ambiguous and day_first is None:
        first, second = int(m.group(1)), int(m.group(2))
        if first <= 12 and second <= 12 and first != second:
            is_ambiguous = True
            ambiguity_note = f"dd/mm vs mm/dd ambiguous ({m.group(1)}/{m.group(2)})"
            if period_start and period_end:
                if period_start - timedelta(days=5) <= parsed <= period_end + timedelta(days=5):
                    is_ambiguous = False
    if swapped:
        ambiguity_note = "day/month order swapped to form a valid date"

    confidence = 0.95 if not is_ambiguous else 0.70
    if swapped:
        confidence = min(confidence, 0.80)
    year_inferred = format_name in _NO_YEAR_FORMATS
    if year_inferred and period_start is None and fallback_year is None:
        confidence = min(confidence, 0.75)
    if parsed.year > date.today().year + 1:
        confidence = 0.3  # Future date is suspicious
    if parsed.year < 2000:
        confidence = 0.5  # Very old date

    return DateParseResult(
        parsed_date=parsed,
        raw_text=m.group(0),
        format_detected=format_name,
        confidence=confidence,
        is_ambiguous=is_ambiguous,
        ambiguity_note=ambiguity_note,
        year_inferred=year_inferred,
    )


def _parse_by_format(
    match: re.Match,
    format_name: str,
    day_first: Optional[bool],
    period_start: Optional[date],
    period_end: Optional[date],
    fallback_year: Optional[int],
) -> tuple[Optional[date], bool]:
    """Parse date from regex match based on detected format. Returns (date, swapped)."""

    if format_name in ('YYYY-MM-DD', 'YYYY/MM/DD'):
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3))), False

    if format_name in ('N/N/YYYY', 'N-N-YYYY', 'N.N.YYYY', 'N/N/YY', 'N/N'):
        first, second = int(match.group(1)), int(match.group(2))
        if format_name == 'N/N':
            year = None
        elif format_name == 'N/N/YY':
            yy = int(match.group(3))
            year = 1900 + yy if yy > 50 else 2000 + yy
        else:
            year = int(match.group(3))
        return _numeric_date(first, second, year, day_first, period_start, period_end, fallback_year)

    if format_name in ('DD_MON_YYYY', 'MON_DD_YYYY', 'DD_MON_YY'):
        return dateutil_parser.parse(match.group(0), dayfirst=True).date(), False

    if format_name in ('DD_MON', 'MON_DD'):
        default_year = fallback_year or (period_start.year if period_start else date.today().year)
        parsed = dateutil_parser.parse(
            match.group(0), default=datetime(default_year, 1, 1), dayfirst=True,
        ).date()
        year = infer_year(parsed.month, parsed.day, period_start, period_end, fallback_year)
        return parsed.replace(year=year), False

    return None, False


def _numeric_date(
    first: int,
    second: int,
    year: Optional[int],
    day_first: Optional[bool],
    period_start: Optional[date],
    period_end: Optional[date],
    fallback_year: Optional[int],
) -> tuple[Optional[date], bool]:
    month, day = (second, first) if day_first else (first, second)
    swapped = False
    if month > 12 and day <= 12:
        month, day = day, month
        swapped = True
    if year is None:
        year = infer_year(month, day, period_start, period_end, fallback_year)
    return date(year, month, day), swapped


def infer_year(
    month: int,
    day: int,
    period_start: Optional[date],
    period_end: Optional[date],
    fallback_year: Optional[int],
) -> int:
    """
    Pick a year for a yearless date.
    A period spanning New Year puts months before the start month in the end year.
    """
    if period_start and period_end:
        if period_start.year == period_end.year:
            return period_start.year
        return period_start.year if month >= period_start.month else period_end.year
    if period_start:
        return period_start.year
    if period_end:
        return period_end.year if month <= period_end.month else period_end.year - 1
    if fallback_year:
        return fallback_year
    return date.today().year


def _unparsed(raw: str) -> DateParseResult:
    return DateParseResult(
        parsed_date=None,
        raw_text=raw,
        format_detected="UNKNOWN",
        confidence=0.0,
        is_ambiguous=False,
    )


def is_date_like(text: str) -> bool:
    """Quick check if text looks like it could be a date."""
    text = text.strip()
    if not text:
        return False
    date_patterns = [
        r'\d{1,2}[/\-\.]\d{1,2}[/\-\.]\d{2,4}',
        r'\d{1,2}\s+(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)',
        r'(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\s+\d{1,2}',
        r'\d{4}-\d{2}-\d{2}',
    ]
    return any(re.search(p, text, re.IGNORECASE) for p in date_patterns)
