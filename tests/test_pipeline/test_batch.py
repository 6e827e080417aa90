"""
Tests for sequential batch processing and the RQ job entry point.
"""

import asyncio

from statement_desk.config import settings
from statement_desk.models.enums import BatchItemStatus
from statement_desk.pipeline.batch import BatchProcessor
from statement_desk.pipeline.orchestrator import StatementPipeline
from statement_desk.schemas.results import BatchDocument, ParseOptions
from statement_desk.worker.jobs import process_batch_job


def _process(processor: BatchProcessor, documents, **options):
    return asyncio.run(processor.process(documents, ParseOptions(**options)))


class TestBatchProcessor:
    """Test per-document outcomes and early stop."""

    def test_mixed_outcomes(self, native_statement_pdf, blank_pdf, no_sleep):
        documents = [
            BatchDocument(file_name="jan.pdf", content=native_statement_pdf),
            BatchDocument(file_name="blank.pdf", content=blank_pdf),
            BatchDocument(file_name="broken.pdf", content=b"not a pdf"),
            BatchDocument(file_name="feb.pdf", content=native_statement_pdf),
        ]
        result = _process(BatchProcessor(StatementPipeline(), sleep=no_sleep), documents)
        assert [item.status for item in result.items] == [
            BatchItemStatus.SUCCEEDED,
            BatchItemStatus.NO_TRANSACTIONS,
            BatchItemStatus.FAILED,
            BatchItemStatus.SUCCEEDED,
        ]
        assert not result.stopped_early
        assert result.items[0].transaction_count == 3
        assert result.items[2].error_code == "ERR_INVALID_INPUT"

    def test_transactions_are_tagged_with_source_file(self, native_statement_pdf, no_sleep):
        documents = [
            BatchDocument(file_name="jan.pdf", content=native_statement_pdf),
            BatchDocument(file_name="feb.pdf", content=native_statement_pdf),
        ]
        result = _process(BatchProcessor(StatementPipeline(), sleep=no_sleep), documents)
        assert len(result.transactions) == 6
        assert {tx.source_file for tx in result.transactions} == {"jan.pdf", "feb.pdf"}

    def test_configuration_error_stops_the_batch(self, native_statement_pdf, scanned_statement_pdf, no_sleep):
        documents = [
            BatchDocument(file_name="jan.pdf", content=native_statement_pdf),
            BatchDocument(file_name="scan.pdf", content=scanned_statement_pdf),
            BatchDocument(file_name="feb.pdf", content=native_statement_pdf),
        ]
        result = _process(BatchProcessor(StatementPipeline(ocr_engine=None), sleep=no_sleep), documents)
        assert result.stopped_early
        assert [item.status for item in result.items] == [
            BatchItemStatus.SUCCEEDED,
            BatchItemStatus.FAILED,
            BatchItemStatus.SKIPPED,
        ]
        assert result.items[1].error_code == "ERR_OCR_NOT_CONFIGURED"

    def test_delay_between_documents(self, native_statement_pdf, no_sleep):
        documents = [BatchDocument(file_name=f"{i}.pdf", content=native_statement_pdf) for i in range(3)]
        _process(BatchProcessor(StatementPipeline(), delay_seconds=1.0, sleep=no_sleep), documents)
        assert no_sleep.delays == [1.0, 1.0]

    def test_progress_callback(self, native_statement_pdf, no_sleep):
        seen = []
        documents = [BatchDocument(file_name=f"{i}.pdf", content=native_statement_pdf) for i in range(2)]
        processor = BatchProcessor(StatementPipeline(), sleep=no_sleep)
        asyncio.run(processor.process(documents, on_progress=lambda done, total, item: seen.append((done, total))))
        assert seen == [(1, 2), (2, 2)]


class TestBatchJob:
    """Test the worker job function."""

    def test_job_returns_json_result(self, native_statement_pdf, monkeypatch):
        monkeypatch.setattr(settings, "OCR_ENGINE", "none")
        monkeypatch.setattr(settings, "ANTHROPIC_API_KEY", None)
        result = process_batch_job(
            [{"file_name": "jan.pdf", "content": native_statement_pdf}],
            {"ai_enhanced": False, "max_pages": 20},
        )
        assert result["stopped_early"] is False
        item = result["items"][0]
        assert item["status"] == "succeeded"
        assert item["transaction_count"] == 3
