"""
Shared test fixtures.
"""

from datetime import date
from decimal import Decimal

import fitz  # PyMuPDF
import pytest

from statement_desk.models.enums import DirectionSource, TransactionType
from statement_desk.schemas.contracts import RawRow, RecognizedLayout
from statement_desk.schemas.transactions import Transaction


SAMPLE_STATEMENT_LINES = [
    "Sample Community Bank",
    "Account Number: 000123456789",
    "Statement Period: 01/01/2024 - 01/31/2024",
    "Opening Balance 2,625.67",
    "Date Description Amount Balance",
    "01/15/2024 WALMART SUPERCENTER #1234 125.67 2,500.00",
    "01/16/2024 PAYROLL DEPOSIT ACME CORP 1,500.00 4,000.00",
    "01/18/2024 STARBUCKS STORE 5678 4.50 3,995.50",
    "Closing Balance 3,995.50",
]


def _text_page(doc: fitz.Document, lines: list[str]) -> None:
    page = doc.new_page(width=612, height=792)
    y = 72
    for line in lines:
        page.insert_text((50, y), line, fontsize=10)
        y += 14


def _scanned_page(doc: fitz.Document) -> None:
    """A page carrying only an image, like a scanner produces."""
    page = doc.new_page(width=612, height=792)
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, 40, 40), False)
    pix.clear_with(220)
    page.insert_image(fitz.Rect(50, 50, 550, 750), pixmap=pix)


def _to_bytes(doc: fitz.Document) -> bytes:
    try:
        return doc.tobytes()
    finally:
        doc.close()


@pytest.fixture
def sample_statement_text():
    return "\n".join(SAMPLE_STATEMENT_LINES)


@pytest.fixture
def build_text_pdf():
    """Factory: one native text page per list of lines."""
    def build(pages: list[list[str]]) -> bytes:
        doc = fitz.open()
        for lines in pages:
            _text_page(doc, lines)
        return _to_bytes(doc)
    return build


@pytest.fixture
def build_scanned_pdf():
    """Factory: a PDF of image-only pages."""
    def build(page_count: int = 1) -> bytes:
        doc = fitz.open()
        for _ in range(page_count):
            _scanned_page(doc)
        return _to_bytes(doc)
    return build


@pytest.fixture
def native_statement_pdf(build_text_pdf):
    return build_text_pdf([SAMPLE_STATEMENT_LINES])


@pytest.fixture
def scanned_statement_pdf(build_scanned_pdf):
    return build_scanned_pdf(1)


@pytest.fixture
def mixed_statement_pdf():
    """Native first page, scanned second page."""
    doc = fitz.open()
    _text_page(doc, SAMPLE_STATEMENT_LINES)
    _scanned_page(doc)
    return _to_bytes(doc)


@pytest.fixture
def footer_page_pdf():
    """Native statement page followed by a page holding only a footer and a rule line."""
    doc = fitz.open()
    _text_page(doc, SAMPLE_STATEMENT_LINES)
    page = doc.new_page(width=612, height=792)
    page.draw_line(fitz.Point(50, 700), fitz.Point(562, 700))
    page.insert_text((270, 720), "Page 2 of 2", fontsize=9)
    return _to_bytes(doc)


@pytest.fixture
def blank_pdf():
    doc = fitz.open()
    doc.new_page(width=612, height=792)
    return _to_bytes(doc)


@pytest.fixture
def no_sleep():
    """Async sleep replacement that records the requested delays."""
    delays = []

    async def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.fixture
def make_row():
    """Factory for resolved or unresolved RawRows."""
    def make(
        description: str = "WALMART SUPERCENTER #1234",
        amount: str = "125.67",
        balance=None,
        day: int = 15,
        amount_raw=None,
        direction=None,
        direction_source=None,
        direction_confidence: float = 0.0,
        explicit_direction=None,
        explicit_source=None,
        layout=None,
        date_confidence: float = 0.95,
        amount_confidence: float = 0.95,
    ) -> RawRow:
        return RawRow(
            date=date(2024, 1, day),
            date_raw=f"01/{day:02d}/2024",
            description=description,
            amount=Decimal(amount),
            amount_raw=amount_raw or amount,
            balance=Decimal(balance) if balance is not None else None,
            page_number=1,
            raw_text=description,
            layout=layout or RecognizedLayout(bank_format="generic"),
            explicit_direction=explicit_direction,
            explicit_source=explicit_source,
            direction=direction,
            direction_source=direction_source,
            direction_confidence=direction_confidence,
            date_confidence=date_confidence,
            amount_confidence=amount_confidence,
        )
    return make


@pytest.fixture
def make_transaction():
    """Factory for enriched Transactions."""
    def make(
        description: str = "WALMART SUPERCENTER #1234",
        amount: str = "125.67",
        transaction_type: TransactionType = TransactionType.DEBIT,
        day: int = 15,
        merchant=None,
        category=None,
        confidence: int = 90,
        source_file=None,
        original_category=None,
        anomaly=None,
        balance=None,
    ) -> Transaction:
        return Transaction(
            date=date(2024, 1, day),
            description=description,
            normalized_merchant=merchant or description,
            amount=Decimal(amount),
            balance=Decimal(balance) if balance is not None else None,
            transaction_type=transaction_type,
            category=category,
            confidence=confidence,
            source_file=source_file,
            original_category=original_category,
            anomaly=anomaly,
            direction_source=DirectionSource.BALANCE,
        )
    return make
