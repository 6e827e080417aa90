"""
Statement header metadata: masked account number, holder name,
opening/closing balance and the statement period.
"""

import re
from datetime import date
from decimal import Decimal
from typing import Optional

from statement_desk.pipeline.amount_parser import find_money_tokens, parse_amount
from statement_desk.pipeline.date_parser import search_date
from statement_desk.schemas.results import AccountInfo, StatementPeriod


ACCOUNT_NUMBER_RE = re.compile(
    r"account\s*(?:number|no\.?|#|ending\s+in)?\s*[:#]?\s*((?:[*xX•\-\s]*\d){4,20})",
    re.IGNORECASE,
)
ACCOUNT_HOLDER_RE = re.compile(
    r"(?:account\s+holder|account\s+name|customer\s+name|prepared\s+for)\s*:?\s*"
    r"([A-Za-z][A-Za-z .,'&\-]{2,60}?)\s*$",
    re.IGNORECASE,
)
OPENING_BALANCE_RE = re.compile(
    r"(?:opening|beginning|starting|previous)\s+balance|balance\s+brought\s+forward",
    re.IGNORECASE,
)
CLOSING_BALANCE_RE = re.compile(
    r"(?:closing|ending|new)\s+balance|balance\s+carried\s+forward",
    re.IGNORECASE,
)
PERIOD_LABEL_RE = re.compile(
    r"(?:statement\s+period|statement\s+dates?|for\s+the\s+period|period\s+covered|period)\s*:?\s*(?:from\s+)?",
    re.IGNORECASE,
)
PERIOD_SPLIT_RE = re.compile(r"\s+(?:-|–|to|through|thru|until)\s+", re.IGNORECASE)


def mask_account_number(raw: str) -> Optional[str]:
    digits = re.sub(r"\D", "", raw)
    if len(digits) < 4:
        return None
    return "****" + digits[-4:]


def extract_account_info(text: str) -> AccountInfo:
    """Scan header lines for account metadata. First match wins per field."""
    info = AccountInfo()

    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue

        if info.account_number is None:
            m = ACCOUNT_NUMBER_RE.search(stripped)
            if m:
                info.account_number = mask_account_number(m.group(1))

        if info.account_holder is None:
            m = ACCOUNT_HOLDER_RE.search(stripped)
            if m:
                info.account_holder = " ".join(m.group(1).split()).strip(" ,")

        if info.opening_balance is None:
            info.opening_balance = _balance_after_label(stripped, OPENING_BALANCE_RE)

        if info.closing_balance is None:
            info.closing_balance = _balance_after_label(stripped, CLOSING_BALANCE_RE)

    return info


def _balance_after_label(line: str, label_re: re.Pattern) -> Optional[Decimal]:
    m = label_re.search(line)
    if not m:
        return None
    tokens = find_money_tokens(line[m.end():])
    if not tokens:
        return None
    return parse_amount(tokens[0].group(0)).amount


def extract_statement_period(text: str, day_first: Optional[bool] = None) -> StatementPeriod:
    """
    Find "Statement Period: A - B" style ranges.
    The start date may omit its year ("January 1 - January 31, 2024").
    """
    for line in text.splitlines():
        m = PERIOD_LABEL_RE.search(line)
        if not m:
            continue
        period = _parse_range(line[m.end():], day_first)
        if period is not None:
            return period

    # Unlabelled "01/01/2024 through 01/31/2024"
    for line in text.splitlines()[:40]:
        if re.search(r"\b(?:through|thru)\b", line, re.IGNORECASE):
            period = _parse_range(line, day_first)
            if period is not None:
                return period

    return StatementPeriod()


def _parse_range(fragment: str, day_first: Optional[bool]) -> Optional[StatementPeriod]:
    parts = PERIOD_SPLIT_RE.split(fragment.strip(), maxsplit=1)
    if len(parts) == 2:
        left, right = parts
    else:
        # No spaced separator; take the first two dates on the line
        _, span = search_date(fragment, day_first=day_first)
        if span is None:
            return None
        left, right = fragment[:span[1]], fragment[span[1]:]

    end_result, end_span = search_date(right, day_first=day_first)
    if end_span is None or end_result.parsed_date is None:
        return None
    end: date = end_result.parsed_date

    start_result, start_span = search_date(left, day_first=day_first, statement_period_end=end)
    if start_span is None or start_result.parsed_date is None:
        return None
    start = start_result.parsed_date

    # "Dec 15, 2023 - Jan 14": the end borrows its year from the start
    if end_result.year_inferred and not start_result.year_inferred:
        end = end.replace(year=start.year)
        if end < start:
            end = end.replace(year=start.year + 1)

    if start > end:
        return None
    return StatementPeriod(start=start, end=end)
