"""
Transaction segmentation: page texts -> ordered raw rows.

Primary shape:   <date> [<date>] <description> <amount> [<balance>]
Fallback shape:  a date and money tokens anywhere on the line, with
                 optional "Debit:" / "Credit:" labels and | separators

Rows from the primary shape are tagged Recognized(bank_format); rows from
the fallback scan are tagged Unrecognized(fallback_used=True). Neither kind
is dropped for its layout.

Handles:
- wrapped descriptions (continuation lines appended to the open row)
- a dated line whose amount arrives on the next line, including across a
  page break with headers/footers in between
- amount-only lines that share the previous row's date
- page furniture, column headers, summary and balance-marker lines
"""

import re
from datetime import date
from decimal import Decimal
from typing import Optional

import structlog
from pydantic import BaseModel

from statement_desk.models.enums import DirectionSource, TransactionType
from statement_desk.pipeline.amount_parser import find_money_tokens, parse_amount
from statement_desk.pipeline.date_parser import DateParseResult, match_leading_date, search_date
from statement_desk.schemas.contracts import (
    PAGE_BREAK_MARKER,
    RawRow,
    RecognizedLayout,
    UnrecognizedLayout,
)
from statement_desk.schemas.results import StatementPeriod

logger = structlog.get_logger(__name__)


# ─── Line Classification ─────────────────────────────────────

BALANCE_MARKER_PATTERNS = [
    r"(balance\s+)?(carried|brought)\s+(forward|fwd|f/?wd)",
    r"\bb/?f\b",
    r"\bc/?f\b",
    r"balance\s+(at|on)\s+(start|end|close)",
    r"(opening|closing|beginning|ending|starting|previous|new)\s+balance",
]

OPENING_MARKER_PATTERNS = [
    r"brought\s+(forward|fwd|f/?wd)",
    r"\bb/?f\b",
    r"balance\s+(at|on)\s+start",
    r"(opening|beginning|starting|previous)\s+balance",
]

# Header, footer and summary lines that are never transactions
NOISE_PATTERNS = [
    r"^(page|sheet)\s+\d+(\s+(of|/)\s+\d+)?$",
    r"^\d+\s*(of|/)\s*\d+$",
    r"^-+\s*page\s+break\s*-+$",
    r"(statement|page)\s+continued",
    r"continued\s+(on|over|from)",
    r"^(account\s+summary|transaction\s+(history|detail|details)|account\s+activity)",
    r"^(deposits\s+and\s+(other\s+)?(additions|credits)|withdrawals\s+and\s+(other\s+)?(subtractions|debits))$",
    r"(total|net)\s+(balance|outgoings|deposits|withdrawals|income|payments|fees|in|out|credits|debits|additions|subtractions|checks)",
    r"^totals?\b",
    r"average\s+(daily\s+|ledger\s+|monthly\s+|collected\s+)?balance",
    r"(minimum|lowest|highest)\s+(daily\s+)?balance",
    r"year\s+to\s+date|\bytd\b",
    r"annual\s+percentage\s+yield|\bapy\b|interest\s+rate",
    r"days\s+in\s+(this\s+)?(statement|billing)\s+(period|cycle)",
    r"statement\s+period",
    r"sort\s*code",
    r"account\s*(number|no\b)",
    r"\biban\b",
    r"\bswift\b|\bbic\b",
    r"member\s+fdic",
    r"equal\s+housing\s+lender",
    r"(financial\s+services|compensation\s+scheme|fscs)",
    r"(authorised|regulated)\s+by",
    r"customer\s+service",
    r"^(important\s+information|questions\?)",
    r"(page|sheet)\s+\d+\s+(of|/)\s+\d+",
]

HEADER_KEYWORDS = {"date", "description", "details", "amount", "balance", "debit", "credit",
                   "withdrawals", "deposits", "transaction", "type", "paid", "in", "out", "money"}

_BALANCE_MARKER_RES = [re.compile(p, re.IGNORECASE) for p in BALANCE_MARKER_PATTERNS]
_OPENING_MARKER_RES = [re.compile(p, re.IGNORECASE) for p in OPENING_MARKER_PATTERNS]
_NOISE_RES = [re.compile(p, re.IGNORECASE) for p in NOISE_PATTERNS]

# "Debit: 125.50" / "Paid in: 10.00" right before a money token
_DIRECTION_LABEL_RE = re.compile(
    r"(?<![A-Za-z])(?P<label>debit|withdrawal|paid\s+out|money\s+out|credit|deposit|paid\s+in|money\s+in)\s*:\s*$",
    re.IGNORECASE,
)
_CREDIT_LABELS = ("credit", "deposit", "paid in", "money in")

_EDGE_JUNK = " \t|•·*-–:;,"
MAX_DESCRIPTION_LENGTH = 200
MAX_CONTINUATION_LINES = 3
SHARED_DATE_BALANCE_TOLERANCE = Decimal("0.05")


def is_balance_marker(text: str) -> bool:
    """Detect opening/closing and carried/brought forward balance lines."""
    return any(r.search(text) for r in _BALANCE_MARKER_RES)


def is_opening_marker(text: str) -> bool:
    return any(r.search(text) for r in _OPENING_MARKER_RES)


def is_noise_line(text: str) -> bool:
    """Page furniture, summary and column-header lines."""
    stripped = text.strip()
    if not stripped:
        return True
    if any(r.search(stripped) for r in _NOISE_RES):
        return True
    return is_column_header(stripped)


def is_column_header(text: str) -> bool:
    """A line made almost entirely of column-header words."""
    words = re.findall(r"[a-z]+", text.lower())
    if len(words) < 2:
        return False
    hits = sum(1 for w in words if w in HEADER_KEYWORDS)
    return "date" in words and hits >= 2 and hits / len(words) >= 0.6


def clean_description(text: str) -> str:
    """Collapse whitespace and trim separator debris from the edges."""
    cleaned = " ".join(text.split()).strip(_EDGE_JUNK)
    return cleaned[:MAX_DESCRIPTION_LENGTH].rstrip()


class SegmentationResult(BaseModel):
    rows: list[RawRow] = []
    opening_balance: Optional[Decimal] = None
    closing_balance: Optional[Decimal] = None
    lines_seen: int = 0
    lines_skipped: int = 0
    fallback_rows: int = 0
    warnings: list[str] = []


class _Pending:
    """A dated line still waiting for its amount."""

    def __init__(self, date_result: DateParseResult, description: str, page_number: int, raw_text: str):
        self.date_result = date_result
        self.description = description
        self.page_number = page_number
        self.raw_lines = [raw_text]


class TransactionSegmenter:
    """
    Stateful line walker for a single document. Create one per parse.
    """

    def __init__(
        self,
        bank_format: Optional[str] = None,
        day_first: Optional[bool] = None,
        period: Optional[StatementPeriod] = None,
        fallback_year: Optional[int] = None,
    ):
        self.bank_format = bank_format or "generic"
        self.day_first = day_first
        self.period = period or StatementPeriod()
        self.fallback_year = fallback_year

        self.result = SegmentationResult()
        self._pending: Optional[_Pending] = None
        self._open_row: Optional[RawRow] = None
        self._continuations = 0
        self._last_date: Optional[DateParseResult] = None

    # ── Public ───────────────────────────────────────────────

    def segment(self, text: str) -> SegmentationResult:
        pages = text.split(PAGE_BREAK_MARKER)
        for page_number, page_text in enumerate(pages, start=1):
            self._open_row = None
            for line in page_text.splitlines():
                self._consume(line, page_number)

        if self._pending is not None:
            self._drop_pending("dated line with no amount at end of statement")

        kept = []
        for row in self.result.rows:
            if row.description:
                kept.append(row)
            else:
                self.result.warnings.append(
                    f"Page {row.page_number}: row dated {row.date.isoformat()} has no description, omitted"
                )
        self.result.rows = kept

        logger.debug(
            "segmentation_complete",
            rows=len(kept),
            fallback_rows=self.result.fallback_rows,
            lines_seen=self.result.lines_seen,
            lines_skipped=self.result.lines_skipped,
        )
        return self.result

    # ── Line handling ────────────────────────────────────────

    def _consume(self, raw_line: str, page_number: int) -> None:
        line = raw_line.strip()
        if not line:
            self._open_row = None
            return
        self.result.lines_seen += 1

        if is_balance_marker(line):
            self._capture_balance(line)
            self._open_row = None
            return

        date_result, date_end = self._leading_date(line)

        if date_result.parsed_date is None and is_noise_line(line):
            # Pending rows survive page headers and footers
            self.result.lines_skipped += 1
            self._open_row = None
            return

        if date_result.parsed_date is not None:
            self._primary_line(line, date_result, date_end, page_number)
            return

        tokens = find_money_tokens(line)

        if tokens and self._pending is not None:
            self._complete_pending(line, tokens)
            return

        if tokens:
            found, span = search_date(
                line,
                day_first=self.day_first,
                statement_period_start=self.period.start,
                statement_period_end=self.period.end,
                fallback_year=self.fallback_year,
            )
            if span is not None and found.parsed_date is not None:
                self._fallback_line(line, found, span, tokens, page_number)
                return
            if self._continues_previous_row(line, tokens):
                self._shared_date_line(line, tokens, page_number)
                return
            # Money on an undated line that is not shaped like a row: summary figure
            logger.debug("undated_amount_line_skipped", page_number=page_number)
            self.result.lines_skipped += 1
            self._open_row = None
            return

        # Wrapped description of a dated line; lines from the next page are headers
        if self._pending is not None and page_number == self._pending.page_number and _has_words(line):
            self._pending.description = f"{self._pending.description} {line}".strip()
            self._pending.raw_lines.append(line)
            return

        if self._open_row is not None and self._continuations < MAX_CONTINUATION_LINES and _has_words(line):
            row = self._open_row
            row.description = clean_description(f"{row.description} {line}")
            row.raw_text = f"{row.raw_text}\n{line}"
            self._continuations += 1
            return

        self.result.lines_skipped += 1

    def _leading_date(self, line: str) -> tuple[DateParseResult, int]:
        return match_leading_date(
            line,
            day_first=self.day_first,
            statement_period_start=self.period.start,
            statement_period_end=self.period.end,
            fallback_year=self.fallback_year,
        )

    def _primary_line(self, line: str, date_result: DateParseResult, date_end: int, page_number: int) -> None:
        if self._pending is not None:
            self._drop_pending("dated line with no amount")

        rest = line[date_end:]
        # Posting date followed by transaction date: keep the first
        second, second_end = self._leading_date(rest)
        if second.parsed_date is not None and second_end > 0:
            rest = rest[second_end:]

        self._last_date = date_result
        tokens = find_money_tokens(rest)
        if not tokens:
            self._pending = _Pending(date_result, clean_description(rest), page_number, line)
            self._open_row = None
            return

        description = rest[:tokens[0].start()]
        row = self._build_row(
            date_result=date_result,
            description=description,
            tokens=tokens,
            token_source=rest,
            page_number=page_number,
            raw_text=line,
            layout=RecognizedLayout(bank_format=self.bank_format),
        )
        self._append(row)

    def _complete_pending(self, line: str, tokens: list[re.Match]) -> None:
        pending = self._pending
        self._pending = None
        description = f"{pending.description} {line[:tokens[0].start()]}"
        row = self._build_row(
            date_result=pending.date_result,
            description=description,
            tokens=tokens,
            token_source=line,
            page_number=pending.page_number,
            raw_text="\n".join(pending.raw_lines + [line]),
            layout=RecognizedLayout(bank_format=self.bank_format),
        )
        self._append(row)

    def _continues_previous_row(self, line: str, tokens: list[re.Match]) -> bool:
        """
        An undated line with money shares the previous row's date only when it
        has a row's shape: the same amount / balance columns as the previous
        row and, where balances are shown, a balance that follows on from it.
        """
        if self._last_date is None or not self.result.rows:
            return False
        if not _has_words(line[:tokens[0].start()]):
            return False
        previous = self.result.rows[-1]
        has_balance = len(tokens) >= 2
        if has_balance != (previous.balance is not None):
            return False
        if not has_balance:
            return True

        amount = parse_amount(tokens[-2].group(0)).magnitude
        balance = parse_amount(tokens[-1].group(0)).amount
        if amount is None or balance is None:
            return False
        return any(
            abs(previous.balance + step - balance) <= SHARED_DATE_BALANCE_TOLERANCE
            for step in (amount, -amount)
        )

    def _shared_date_line(self, line: str, tokens: list[re.Match], page_number: int) -> None:
        row = self._build_row(
            date_result=self._last_date,
            description=line[:tokens[0].start()],
            tokens=tokens,
            token_source=line,
            page_number=page_number,
            raw_text=line,
            layout=RecognizedLayout(bank_format=self.bank_format),
        )
        self._append(row)

    def _fallback_line(
        self,
        line: str,
        date_result: DateParseResult,
        span: tuple[int, int],
        tokens: list[re.Match],
        page_number: int,
    ) -> None:
        if self._pending is not None:
            self._drop_pending("dated line with no amount")

        # Description: everything except the date, money tokens and labels
        pieces = []
        cursor = 0
        cut_points = sorted([span] + [t.span() for t in tokens])
        for start, end in cut_points:
            if start >= cursor:
                pieces.append(line[cursor:start])
                cursor = end
        pieces.append(line[cursor:])
        description = " ".join(
            _DIRECTION_LABEL_RE.sub("", p).strip(_EDGE_JUNK) for p in pieces
        )

        self._last_date = date_result
        row = self._build_row(
            date_result=date_result,
            description=description,
            tokens=tokens,
            token_source=line,
            page_number=page_number,
            raw_text=line,
            layout=UnrecognizedLayout(),
        )
        self.result.fallback_rows += 1
        self._append(row)

    # ── Row building ─────────────────────────────────────────

    def _build_row(
        self,
        date_result: DateParseResult,
        description: str,
        tokens: list[re.Match],
        token_source: str,
        page_number: int,
        raw_text: str,
        layout,
    ) -> RawRow:
        ambiguous = len(tokens) > 2
        if len(tokens) == 1:
            amount_match, balance_match = tokens[0], None
        else:
            amount_match, balance_match = tokens[-2], tokens[-1]

        parsed_amount = parse_amount(amount_match.group(0))
        balance = parse_amount(balance_match.group(0)).amount if balance_match else None

        explicit_direction = None
        explicit_source = None
        label = _DIRECTION_LABEL_RE.search(token_source[:amount_match.start()])
        if label:
            is_credit = " ".join(label.group("label").lower().split()) in _CREDIT_LABELS
            explicit_direction = TransactionType.CREDIT if is_credit else TransactionType.DEBIT
            explicit_source = DirectionSource.COLUMN
            description = _DIRECTION_LABEL_RE.sub("", description)
        elif parsed_amount.has_explicit_sign:
            explicit_direction = TransactionType.DEBIT if parsed_amount.is_negative else TransactionType.CREDIT
            explicit_source = DirectionSource.SIGN

        amount_confidence = parsed_amount.confidence
        if ambiguous:
            amount_confidence *= 0.7

        return RawRow(
            date=date_result.parsed_date,
            date_raw=date_result.raw_text,
            description=clean_description(description),
            amount=parsed_amount.magnitude,
            amount_raw=amount_match.group(0).strip(),
            balance=balance,
            page_number=page_number,
            raw_text=raw_text,
            layout=layout,
            explicit_direction=explicit_direction,
            explicit_source=explicit_source,
            date_confidence=date_result.confidence,
            amount_confidence=amount_confidence,
            ambiguous_columns=ambiguous,
        )

    def _append(self, row: RawRow) -> None:
        self.result.rows.append(row)
        self._open_row = row
        self._continuations = 0

    def _drop_pending(self, reason: str) -> None:
        pending = self._pending
        self._pending = None
        self.result.lines_skipped += len(pending.raw_lines)
        self.result.warnings.append(
            f"Page {pending.page_number}: row dated {pending.date_result.parsed_date.isoformat()} "
            f"({pending.description or 'no description'}) has no amount, omitted"
        )
        logger.debug("pending_row_dropped", page_number=pending.page_number, reason=reason)

    def _capture_balance(self, line: str) -> None:
        tokens = find_money_tokens(line)
        if not tokens:
            return
        value = parse_amount(tokens[-1].group(0)).amount
        if is_opening_marker(line):
            # Only the first opening marker before any row is the statement opening
            if self.result.opening_balance is None and not self.result.rows:
                self.result.opening_balance = value
        else:
            self.result.closing_balance = value


def _has_words(text: str) -> bool:
    return len(re.findall(r"[A-Za-z]", text)) >= 2


def segment_transactions(
    text: str,
    bank_format: Optional[str] = None,
    day_first: Optional[bool] = None,
    period: Optional[StatementPeriod] = None,
    fallback_year: Optional[int] = None,
) -> SegmentationResult:
    """Segment page texts joined with the page-break marker."""
    return TransactionSegmenter(
        bank_format=bank_format,
        day_first=day_first,
        period=period,
        fallback_year=fallback_year,
    ).segment(text)


def infer_fallback_year(text: str) -> Optional[int]:
    """Latest plausible four-digit year printed in the statement."""
    years = [int(y) for y in re.findall(r"(?<!\d)(19[89]\d|20\d{2})(?!\d)", text)]
    years = [y for y in years if y <= date.today().year + 1]
    return max(years) if years else None
