"""
Tests for text acquisition and the PDF wrapper.
"""

import asyncio

import pytest

from statement_desk.engines.base import OcrInvalidFormat, OcrQuotaExceeded, OcrTransientError
from statement_desk.engines.stub_engine import StubOcrEngine
from statement_desk.models.enums import PageExtractionPath
from statement_desk.observability.cost_tracker import CostTracker
from statement_desk.pipeline.errors import InvalidInputError, OcrNotConfiguredError, OcrQuotaExceededError
from statement_desk.pipeline.pdf_document import PdfDocument
from statement_desk.pipeline.text_acquisition import TextAcquirer


def _acquire(acquirer: TextAcquirer, pdf_bytes: bytes, max_pages: int = 20, **kwargs):
    pdf = PdfDocument(pdf_bytes)
    try:
        return asyncio.run(acquirer.acquire(pdf, max_pages, **kwargs))
    finally:
        pdf.close()


class TestPdfDocument:
    """Test PDF validation and page handling."""

    def test_rejects_non_pdf(self):
        with pytest.raises(InvalidInputError):
            PdfDocument(b"hello, not a pdf")

    def test_rejects_empty(self):
        with pytest.raises(InvalidInputError):
            PdfDocument(b"")

    def test_rejects_truncated_pdf(self):
        with pytest.raises(InvalidInputError):
            PdfDocument(b"%PDF-1.7\n garbage")

    def test_page_count_and_split(self, build_scanned_pdf):
        with PdfDocument(build_scanned_pdf(3)) as doc:
            assert doc.page_count == 3
            with PdfDocument(doc.split_page(2)) as single:
                assert single.page_count == 1

    def test_page_out_of_range(self, blank_pdf):
        with PdfDocument(blank_pdf) as doc:
            with pytest.raises(InvalidInputError):
                doc.split_page(2)

    def test_needs_ocr(self, blank_pdf, scanned_statement_pdf, footer_page_pdf):
        with PdfDocument(blank_pdf) as doc:
            assert not doc.needs_ocr(1)
        with PdfDocument(scanned_statement_pdf) as doc:
            assert doc.needs_ocr(1)
        with PdfDocument(footer_page_pdf) as doc:
            assert not doc.needs_ocr(2, "Page 2 of 2")
            assert not doc.needs_ocr(2)


class TestTextAcquirer:
    """Test per-page routing between the text layer and OCR."""

    def test_native_pages_skip_ocr(self, native_statement_pdf, no_sleep):
        engine = StubOcrEngine(default_text="should not be used")
        acquired = _acquire(TextAcquirer(ocr_engine=engine, sleep=no_sleep), native_statement_pdf)
        assert engine.calls == []
        assert acquired.pages[0].path == PageExtractionPath.NATIVE
        assert "WALMART SUPERCENTER" in acquired.pages[0].text
        assert not acquired.used_ocr

    def test_only_scanned_pages_are_ocred(self, mixed_statement_pdf, no_sleep):
        engine = StubOcrEngine(default_text="01/20/2024 SHOP 1.00")
        acquired = _acquire(TextAcquirer(ocr_engine=engine, sleep=no_sleep), mixed_statement_pdf)
        assert engine.calls == [2]
        assert acquired.ocr_pages == [2]
        assert acquired.pages[1].text == "01/20/2024 SHOP 1.00"

    def test_footer_page_with_rule_needs_no_engine(self, footer_page_pdf, no_sleep):
        acquired = _acquire(TextAcquirer(ocr_engine=None, sleep=no_sleep), footer_page_pdf)
        assert [p.path for p in acquired.pages] == [PageExtractionPath.NATIVE, PageExtractionPath.NATIVE]
        assert "Page 2 of 2" in acquired.pages[1].text
        assert not acquired.used_ocr

    def test_blank_page_needs_no_engine(self, blank_pdf, no_sleep):
        acquired = _acquire(TextAcquirer(ocr_engine=None, sleep=no_sleep), blank_pdf)
        assert acquired.page_count == 1
        assert not acquired.has_text

    def test_scanned_page_without_engine(self, scanned_statement_pdf, no_sleep):
        with pytest.raises(OcrNotConfiguredError):
            _acquire(TextAcquirer(ocr_engine=None, sleep=no_sleep), scanned_statement_pdf)

    def test_ocr_budget(self, build_scanned_pdf, no_sleep):
        engine = StubOcrEngine(default_text="page text")
        acquired = _acquire(TextAcquirer(ocr_engine=engine, sleep=no_sleep), build_scanned_pdf(50), max_pages=20)
        assert len(engine.calls) == 20
        assert acquired.truncated
        assert acquired.skipped_pages == list(range(21, 51))
        assert any("OCR page limit of 20" in w for w in acquired.warnings)

    def test_inter_page_delay(self, build_scanned_pdf, no_sleep):
        engine = StubOcrEngine(default_text="page text")
        _acquire(TextAcquirer(ocr_engine=engine, inter_page_delay=0.2, sleep=no_sleep), build_scanned_pdf(3))
        assert no_sleep.delays == [0.2, 0.2]

    def test_page_failure_becomes_warning(self, build_scanned_pdf, no_sleep):
        engine = StubOcrEngine(
            default_text="page text",
            failures={2: OcrInvalidFormat("stub", "unreadable image")},
        )
        acquired = _acquire(TextAcquirer(ocr_engine=engine, sleep=no_sleep), build_scanned_pdf(3))
        assert acquired.pages[1].path == PageExtractionPath.OCR_FAILED
        assert acquired.pages[2].text == "page text"
        assert any("Page 2" in w for w in acquired.warnings)

    def test_transient_errors_retry_then_give_up(self, scanned_statement_pdf, no_sleep):
        engine = StubOcrEngine(failures={1: OcrTransientError("stub", "deadline exceeded")})
        acquirer = TextAcquirer(ocr_engine=engine, max_retries=2, retry_backoff=1.0, sleep=no_sleep)
        acquired = _acquire(acquirer, scanned_statement_pdf)
        assert len(engine.calls) == 3
        assert no_sleep.delays == [1.0, 2.0]
        assert acquired.pages[0].path == PageExtractionPath.OCR_FAILED

    def test_quota_stops_the_document(self, scanned_statement_pdf, no_sleep):
        engine = StubOcrEngine(failures={1: OcrQuotaExceeded("stub", "quota")})
        with pytest.raises(OcrQuotaExceededError):
            _acquire(TextAcquirer(ocr_engine=engine, sleep=no_sleep), scanned_statement_pdf)

    def test_cost_is_recorded_per_ocr_page(self, build_scanned_pdf, no_sleep):
        engine = StubOcrEngine(default_text="page text", cost_per_page=0.0015)
        tracker = CostTracker()
        _acquire(TextAcquirer(ocr_engine=engine, sleep=no_sleep), build_scanned_pdf(2), cost_tracker=tracker)
        assert tracker.total_cost_usd == pytest.approx(0.003)

    def test_progress_callback(self, build_scanned_pdf, no_sleep):
        seen = []
        engine = StubOcrEngine(default_text="page text")
        _acquire(
            TextAcquirer(ocr_engine=engine, sleep=no_sleep),
            build_scanned_pdf(2),
            on_progress=lambda page, total: seen.append((page, total)),
        )
        assert seen == [(1, 2), (2, 2)]
