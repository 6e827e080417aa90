"""
Text acquisition: one plain-text string per PDF page, cheapest method first.

Per page:
1. Native text layer (pdfplumber)
2. Sparse page with an image (or outlined text and no text layer) -> cut
   out as a one-page PDF and OCR it
3. Any other sparse page (blank, a footer, rule lines) -> kept as native
   text, no OCR call

OCR calls run sequentially with a short delay between them. The OCR page
budget (max_pages) caps how many pages are sent to the engine; pages past
the budget are recorded as skipped and the result is flagged truncated.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

import structlog

from statement_desk.config import settings
from statement_desk.engines.base import (
    OcrAuthFailed,
    OcrEngine,
    OcrError,
    OcrNotConfigured,
    OcrQuotaExceeded,
    OcrTransientError,
)
from statement_desk.engines.native_text import PdfPlumberTextExtractor, has_text_layer
from statement_desk.models.enums import PageExtractionPath
from statement_desk.observability.cost_tracker import CostTracker
from statement_desk.observability.metrics import pages_extracted_total, pages_skipped_total
from statement_desk.pipeline.errors import OcrAuthError, OcrNotConfiguredError, OcrQuotaExceededError
from statement_desk.pipeline.pdf_document import PdfDocument
from statement_desk.schemas.contracts import AcquiredText, PageText

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class TextAcquirer:
    """Acquires page texts for one document at a time. Holds no per-document state."""

    def __init__(
        self,
        ocr_engine: Optional[OcrEngine] = None,
        native_extractor: Optional[PdfPlumberTextExtractor] = None,
        min_native_chars: int = settings.MIN_NATIVE_TEXT_CHARS,
        inter_page_delay: float = settings.OCR_INTER_PAGE_DELAY_SECONDS,
        max_retries: int = settings.OCR_MAX_RETRIES,
        retry_backoff: float = settings.OCR_RETRY_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.ocr_engine = ocr_engine
        self.native_extractor = native_extractor or PdfPlumberTextExtractor()
        self.min_native_chars = min_native_chars
        self.inter_page_delay = inter_page_delay
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self._sleep = sleep

    async def acquire(
        self,
        pdf: PdfDocument,
        max_pages: int,
        cost_tracker: Optional[CostTracker] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> AcquiredText:
        page_count = pdf.page_count
        native_texts = await asyncio.to_thread(self.native_extractor.extract_pages, pdf.pdf_bytes)
        native_texts += [None] * (page_count - len(native_texts))

        acquired = AcquiredText(page_count=page_count)
        ocr_calls = 0

        for page_number in range(1, page_count + 1):
            native = native_texts[page_number - 1]

            if has_text_layer(native, self.min_native_chars):
                acquired.pages.append(PageText(
                    page_number=page_number,
                    text=native,
                    path=PageExtractionPath.NATIVE,
                    engine_name=self.native_extractor.engine_name,
                    native_char_count=len(native),
                ))
                pages_extracted_total.labels(
                    extraction_path="native", engine_name=self.native_extractor.engine_name,
                ).inc()

            elif not pdf.needs_ocr(page_number, native):
                # Blank, a footer line, or rules with no image behind them
                acquired.pages.append(PageText(
                    page_number=page_number,
                    text=native or "",
                    path=PageExtractionPath.NATIVE,
                    engine_name=self.native_extractor.engine_name,
                    native_char_count=len(native or ""),
                ))

            else:
                if self.ocr_engine is None:
                    raise OcrNotConfiguredError(
                        f"Page {page_number} has no text layer and OCR is not configured. "
                        "Set OCR_ENGINE with Google Cloud Vision credentials, or 'tesseract'."
                    )

                if ocr_calls >= max_pages:
                    acquired.skipped_pages.append(page_number)
                    acquired.pages.append(PageText(
                        page_number=page_number,
                        text=native or "",
                        path=PageExtractionPath.SKIPPED,
                        native_char_count=len(native or ""),
                    ))
                    pages_skipped_total.inc()
                    continue

                if ocr_calls > 0 and self.inter_page_delay > 0:
                    await self._sleep(self.inter_page_delay)

                text, warning = await self._ocr_page(pdf, page_number, cost_tracker)
                ocr_calls += 1
                acquired.pages.append(PageText(
                    page_number=page_number,
                    text=text,
                    path=PageExtractionPath.OCR if warning is None else PageExtractionPath.OCR_FAILED,
                    engine_name=self.ocr_engine.engine_name,
                    native_char_count=len(native or ""),
                    warning=warning,
                ))
                if warning:
                    acquired.warnings.append(warning)

            if on_progress is not None:
                on_progress(page_number, page_count)

        if acquired.skipped_pages:
            acquired.truncated = True
            acquired.warnings.append(
                f"OCR page limit of {max_pages} reached: {len(acquired.skipped_pages)} "
                f"scanned page(s) not processed ({_page_list(acquired.skipped_pages)})"
            )
            logger.warning(
                "ocr_page_limit_reached",
                max_pages=max_pages,
                skipped_pages=acquired.skipped_pages,
            )

        logger.info(
            "text_acquired",
            page_count=page_count,
            ocr_pages=len(acquired.ocr_pages),
            skipped_pages=len(acquired.skipped_pages),
            truncated=acquired.truncated,
        )
        return acquired

    async def _ocr_page(
        self,
        pdf: PdfDocument,
        page_number: int,
        cost_tracker: Optional[CostTracker],
    ) -> tuple[str, Optional[str]]:
        """
        OCR one page with retry on transient errors.
        Returns (text, warning). Engine-wide failures raise.
        """
        engine = self.ocr_engine
        page_pdf = pdf.split_page(page_number)
        attempt = 0

        while True:
            started_at = time.time()
            try:
                text = await engine.recognize(page_pdf, page_number)
            except OcrTransientError as e:
                attempt += 1
                if attempt > self.max_retries:
                    logger.warning("ocr_page_gave_up", page_number=page_number, attempts=attempt)
                    return "", f"Page {page_number}: OCR unavailable after {attempt} attempts ({e.message})"
                backoff = self.retry_backoff * (2 ** (attempt - 1))
                logger.warning(
                    "ocr_page_retry",
                    page_number=page_number,
                    attempt=attempt,
                    backoff_seconds=backoff,
                    error=e.message,
                )
                await self._sleep(backoff)
                continue
            except OcrNotConfigured as e:
                raise OcrNotConfiguredError(f"OCR engine '{e.engine_name}' is not configured: {e.message}") from e
            except OcrQuotaExceeded as e:
                raise OcrQuotaExceededError(f"OCR quota exceeded: {e.message}") from e
            except OcrAuthFailed as e:
                raise OcrAuthError(f"OCR authentication failed: {e.message}") from e
            except OcrError as e:
                logger.warning(
                    "ocr_page_failed",
                    page_number=page_number,
                    error_code=e.error_code,
                    error=e.message,
                )
                return "", f"Page {page_number}: OCR failed ({e.error_code}): {e.message}"

            latency_ms = int((time.time() - started_at) * 1000)
            if cost_tracker is not None:
                cost_tracker.record(
                    engine_name=engine.engine_name,
                    operation="document_text_detection",
                    page_count=1,
                    cost_usd=engine.cost_per_page_usd,
                    latency_ms=latency_ms,
                )
            pages_extracted_total.labels(extraction_path="ocr", engine_name=engine.engine_name).inc()
            return text or "", None


def _page_list(pages: list[int]) -> str:
    """Compact page list: 21-50 or 3, 7, 9."""
    if not pages:
        return ""
    if pages == list(range(pages[0], pages[-1] + 1)) and len(pages) > 2:
        return f"pages {pages[0]}-{pages[-1]}"
    return "pages " + ", ".join(str(p) for p in pages)
