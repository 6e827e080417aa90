"""
/api/v1/batches endpoints.
Multi-statement uploads: queued through RQ, or parsed inline for small batches.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from redis.exceptions import RedisError

from statement_desk.config import settings
from statement_desk.dependencies import get_pipeline, read_pdf_upload, verify_api_key
from statement_desk.pipeline.batch import BatchProcessor
from statement_desk.pipeline.orchestrator import StatementPipeline
from statement_desk.schemas.jobs import BatchEnqueued
from statement_desk.schemas.results import BatchDocument, BatchResult, ParseOptions

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/batches", tags=["batches"], dependencies=[Depends(verify_api_key)])


async def _read_documents(files: list[UploadFile]) -> list[BatchDocument]:
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files uploaded")
    documents = []
    for index, file in enumerate(files, 1):
        content = await read_pdf_upload(file)
        documents.append(BatchDocument(file_name=file.filename or f"statement_{index}.pdf", content=content))
    return documents


@router.post("", response_model=BatchEnqueued, status_code=status.HTTP_202_ACCEPTED)
async def enqueue_batch_upload(
    files: list[UploadFile] = File(...),
    ai_enhanced: bool = Query(False),
    max_pages: int = Query(settings.DEFAULT_MAX_OCR_PAGES, ge=1),
    user_id: Optional[str] = Query(None),
):
    """Queue several statements for background parsing. Poll /api/v1/jobs/{job_id}."""
    documents = await _read_documents(files)
    options = ParseOptions(ai_enhanced=ai_enhanced, max_pages=max_pages, user_id=user_id)

    from statement_desk.worker.jobs import enqueue_batch
    try:
        return enqueue_batch(documents, options)
    except RedisError as e:
        logger.warning("enqueue_failed", document_count=len(documents), error=str(e))
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Queue unavailable: {e}")


@router.post("/inline", response_model=BatchResult)
async def process_batch_inline(
    files: list[UploadFile] = File(...),
    ai_enhanced: bool = Query(False),
    max_pages: int = Query(settings.DEFAULT_MAX_OCR_PAGES, ge=1),
    user_id: Optional[str] = Query(None),
    pipeline: StatementPipeline = Depends(get_pipeline),
):
    """Parse several statements in this request, one after another."""
    documents = await _read_documents(files)
    options = ParseOptions(ai_enhanced=ai_enhanced, max_pages=max_pages, user_id=user_id)
    return await BatchProcessor(pipeline).process(documents, options)
