"""
Sequential batch processing over the single-document pipeline.
Documents are parsed one after another with a fixed pause between them.
A quota or configuration error stops the batch: every later document would
fail the same way, so they are reported as skipped instead.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from statement_desk.config import settings
from statement_desk.models.enums import BatchItemStatus
from statement_desk.observability.metrics import batch_documents_total
from statement_desk.pipeline.errors import ConfigurationError, PipelineError, QuotaExceededError
from statement_desk.pipeline.orchestrator import StatementPipeline
from statement_desk.schemas.results import (
    BatchDocument,
    BatchItemResult,
    BatchResult,
    ParseOptions,
)

logger = structlog.get_logger(__name__)

BatchProgressCallback = Callable[[int, int, BatchItemResult], None]


class BatchProcessor:
    def __init__(
        self,
        pipeline: StatementPipeline,
        delay_seconds: float = settings.BATCH_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.pipeline = pipeline
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    async def process(
        self,
        documents: list[BatchDocument],
        options: Optional[ParseOptions] = None,
        on_progress: Optional[BatchProgressCallback] = None,
    ) -> BatchResult:
        options = options or ParseOptions()
        result = BatchResult()
        total = len(documents)

        logger.info("batch_started", document_count=total, ai_enhanced=options.ai_enhanced)

        for index, document in enumerate(documents):
            if result.stopped_early:
                item = BatchItemResult(
                    file_name=document.file_name,
                    status=BatchItemStatus.SKIPPED,
                    error="Batch stopped after an earlier quota or configuration error",
                )
            else:
                if index > 0 and self.delay_seconds > 0:
                    await self._sleep(self.delay_seconds)
                item = await self._process_one(document, options, result)

            result.items.append(item)
            batch_documents_total.labels(status=item.status.value).inc()
            if on_progress is not None:
                on_progress(index + 1, total, item)

        logger.info(
            "batch_complete",
            document_count=total,
            succeeded=result.count(BatchItemStatus.SUCCEEDED),
            no_transactions=result.count(BatchItemStatus.NO_TRANSACTIONS),
            failed=result.count(BatchItemStatus.FAILED),
            skipped=result.count(BatchItemStatus.SKIPPED),
            stopped_early=result.stopped_early,
        )
        return result

    async def _process_one(
        self,
        document: BatchDocument,
        options: ParseOptions,
        result: BatchResult,
    ) -> BatchItemResult:
        doc_options = options.model_copy(update={"source_file": document.file_name})
        try:
            parsed = await self.pipeline.parse(document.content, doc_options)
        except (QuotaExceededError, ConfigurationError) as e:
            result.stopped_early = True
            logger.warning("batch_stopped", file_name=document.file_name, error_code=e.error_code)
            return BatchItemResult(
                file_name=document.file_name,
                status=BatchItemStatus.FAILED,
                error=e.message,
                error_code=e.error_code,
            )
        except PipelineError as e:
            logger.warning("batch_document_failed", file_name=document.file_name, error_code=e.error_code)
            return BatchItemResult(
                file_name=document.file_name,
                status=BatchItemStatus.FAILED,
                error=e.message,
                error_code=e.error_code,
            )

        if not parsed.success:
            return BatchItemResult(
                file_name=document.file_name,
                status=BatchItemStatus.NO_TRANSACTIONS,
                error=parsed.error,
                error_code=parsed.error_code,
                result=parsed,
            )

        return BatchItemResult(
            file_name=document.file_name,
            status=BatchItemStatus.SUCCEEDED,
            transaction_count=len(parsed.transactions),
            result=parsed,
        )
