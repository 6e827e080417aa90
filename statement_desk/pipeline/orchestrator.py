"""
Pipeline orchestrator: PDF bytes -> ParseResult.

Stages: LOAD → ACQUIRE → DETECT → SEGMENT → RESOLVE → ENRICH

The pipeline is stateless between calls. The OCR engine and AI classifier
are built once at process start and injected.
"""

import asyncio
import time
from typing import Optional

import structlog

from statement_desk.classifiers.base import TransactionClassifier
from statement_desk.config import Settings, settings
from statement_desk.engines.base import OcrEngine
from statement_desk.models.enums import ExtractionMethod
from statement_desk.observability.cost_tracker import CostTracker
from statement_desk.observability.logging import parse_context
from statement_desk.observability.metrics import (
    documents_failed_total,
    documents_parsed_total,
    pipeline_duration_seconds,
    pipeline_stage_duration_seconds,
    transactions_extracted_total,
)
from statement_desk.pipeline.balance_solver import reconcile, resolve_directions
from statement_desk.pipeline.bank_detector import detect_bank, infer_day_first
from statement_desk.pipeline.enrichment import Enricher
from statement_desk.pipeline.errors import (
    ClassifierNotConfiguredError,
    PipelineError,
    PipelineTimeoutError,
)
from statement_desk.pipeline.header_extractor import extract_account_info, extract_statement_period
from statement_desk.pipeline.pdf_document import PdfDocument
from statement_desk.pipeline.segmenter import infer_fallback_year, segment_transactions
from statement_desk.pipeline.text_acquisition import ProgressCallback, TextAcquirer
from statement_desk.schemas.results import NO_TRANSACTIONS, ParseMetadata, ParseOptions, ParseResult

logger = structlog.get_logger(__name__)


class StatementPipeline:
    """
    Parses one statement per call.
    Safe to share across concurrent requests: no per-document state is kept.
    """

    def __init__(
        self,
        ocr_engine: Optional[OcrEngine] = None,
        classifier: Optional[TransactionClassifier] = None,
        timeout_seconds: float = settings.PIPELINE_TIMEOUT_SECONDS,
        text_acquirer: Optional[TextAcquirer] = None,
        enricher: Optional[Enricher] = None,
    ):
        self.ocr_engine = ocr_engine
        self.classifier = classifier
        self.timeout_seconds = timeout_seconds
        self.text_acquirer = text_acquirer or TextAcquirer(ocr_engine=ocr_engine)
        self.enricher = enricher or Enricher(classifier=classifier)

    async def parse(
        self,
        pdf_bytes: bytes,
        options: Optional[ParseOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ParseResult:
        """
        Main entry point: parse a statement end-to-end.
        Raises PipelineError subclasses for whole-document failures.
        """
        options = options or ParseOptions()
        if options.ai_enhanced and self.enricher.classifier is None:
            documents_failed_total.labels(error_code=ClassifierNotConfiguredError.error_code).inc()
            raise ClassifierNotConfiguredError(
                "AI-enhanced parsing requested but no AI classifier is configured. Set ANTHROPIC_API_KEY."
            )

        with parse_context(user_id=options.user_id, source_file=options.source_file):
            logger.info(
                "pipeline_started",
                size_bytes=len(pdf_bytes),
                ai_enhanced=options.ai_enhanced,
                max_pages=options.max_pages,
            )
            try:
                return await asyncio.wait_for(
                    self._run(pdf_bytes, options, on_progress),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError as e:
                documents_failed_total.labels(error_code=PipelineTimeoutError.error_code).inc()
                logger.error("pipeline_timeout", timeout_seconds=self.timeout_seconds)
                raise PipelineTimeoutError(
                    f"Parsing did not finish within {self.timeout_seconds:g} seconds"
                ) from e
            except PipelineError as e:
                documents_failed_total.labels(error_code=e.error_code).inc()
                logger.warning("pipeline_failed", error_code=e.error_code, error=e.message)
                raise

    async def _run(
        self,
        pdf_bytes: bytes,
        options: ParseOptions,
        on_progress: Optional[ProgressCallback],
    ) -> ParseResult:
        started_at = time.monotonic()
        cost_tracker = CostTracker(user_id=options.user_id)

        # ── Stage 1: LOAD ──
        with pipeline_stage_duration_seconds.labels(stage="load").time():
            pdf = PdfDocument(pdf_bytes)

        # ── Stage 2: ACQUIRE ──
        try:
            with pipeline_stage_duration_seconds.labels(stage="acquire").time():
                acquired = await self.text_acquirer.acquire(
                    pdf, options.max_pages, cost_tracker=cost_tracker, on_progress=on_progress,
                )
        finally:
            pdf.close()

        extraction_method = ExtractionMethod.OCR if acquired.used_ocr else ExtractionMethod.NATIVE
        page_texts = [p.text for p in acquired.pages]
        joined = acquired.joined_text()

        # ── Stage 3: DETECT ──
        with pipeline_stage_duration_seconds.labels(stage="detect").time():
            detection = detect_bank(page_texts)
            day_first = infer_day_first(page_texts, detection)
            account_info = extract_account_info(joined)
            period = extract_statement_period(joined, day_first)
            fallback_year = infer_fallback_year(joined)

        # ── Stage 4: SEGMENT ──
        with pipeline_stage_duration_seconds.labels(stage="segment").time():
            segmented = segment_transactions(
                joined,
                bank_format=detection.bank_type,
                day_first=day_first,
                period=period,
                fallback_year=fallback_year,
            )
        rows = segmented.rows

        if account_info.opening_balance is None:
            account_info.opening_balance = segmented.opening_balance
        if account_info.closing_balance is None:
            account_info.closing_balance = segmented.closing_balance

        # ── Stage 5: RESOLVE ──
        with pipeline_stage_duration_seconds.labels(stage="resolve").time():
            resolve_directions(rows, account_info.opening_balance)
            reconciliation = reconcile(rows, account_info.opening_balance, account_info.closing_balance)

        warnings = list(acquired.warnings) + list(segmented.warnings)
        if reconciliation.checked and not reconciliation.reconciled:
            warnings.append(
                f"Transactions do not reconcile to the closing balance: expected "
                f"{reconciliation.expected_closing}, statement shows {reconciliation.reported_closing}"
            )

        metadata = ParseMetadata(
            ai_enhanced=False,
            extraction_method=extraction_method,
            page_count=acquired.page_count,
            pages_processed=acquired.page_count - len(acquired.skipped_pages),
            ocr_pages=acquired.ocr_pages,
            truncated=acquired.truncated,
            skipped_pages=acquired.skipped_pages,
            layout_recognized=bool(rows) and segmented.fallback_rows == 0,
            warnings=warnings,
        )

        if not rows:
            metadata.duration_ms = int((time.monotonic() - started_at) * 1000)
            metadata.ocr_cost_usd = cost_tracker.total_cost_usd
            documents_parsed_total.labels(outcome="no_transactions", extraction_method=extraction_method.value).inc()
            error = (
                "No transactions found in the statement text"
                if acquired.has_text
                else "No text could be extracted from the document"
            )
            logger.info("pipeline_no_transactions", page_count=acquired.page_count, has_text=acquired.has_text)
            return ParseResult(
                success=False,
                bank_type=detection.bank_type,
                account_info=account_info,
                statement_period=period,
                metadata=metadata,
                error=error,
                error_code=NO_TRANSACTIONS,
            )

        # ── Stage 6: ENRICH ──
        with pipeline_stage_duration_seconds.labels(stage="enrich").time():
            enriched = await self.enricher.enrich(
                rows,
                ai_enhanced=options.ai_enhanced,
                source_file=options.source_file,
                cost_tracker=cost_tracker,
            )

        metadata.ai_enhanced = enriched.ai_applied
        metadata.warnings.extend(enriched.warnings)
        metadata.ocr_cost_usd = cost_tracker.total_cost_usd
        metadata.duration_ms = int((time.monotonic() - started_at) * 1000)

        for tx in enriched.transactions:
            transactions_extracted_total.labels(transaction_type=tx.transaction_type.value).inc()
        documents_parsed_total.labels(outcome="success", extraction_method=extraction_method.value).inc()
        pipeline_duration_seconds.labels(extraction_method=extraction_method.value).observe(
            metadata.duration_ms / 1000.0
        )

        logger.info(
            "pipeline_complete",
            bank_type=detection.bank_type,
            extraction_method=extraction_method.value,
            transactions=len(enriched.transactions),
            fallback_rows=segmented.fallback_rows,
            balance_confirmed_rate=round(reconciliation.balance_confirmed_rate, 4),
            duration_ms=metadata.duration_ms,
        )

        return ParseResult(
            success=True,
            transactions=enriched.transactions,
            bank_type=detection.bank_type,
            account_info=account_info,
            statement_period=period,
            metadata=metadata,
            ai_insights=enriched.ai_insights,
        )


def build_pipeline(config: Settings = settings) -> StatementPipeline:
    """Build the pipeline with the OCR engine and classifier named in settings."""
    from statement_desk.classifiers.factory import build_classifier
    from statement_desk.engines.factory import build_ocr_engine

    return StatementPipeline(
        ocr_engine=build_ocr_engine(config),
        classifier=build_classifier(config),
        timeout_seconds=config.PIPELINE_TIMEOUT_SECONDS,
    )
