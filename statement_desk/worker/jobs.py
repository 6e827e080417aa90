"""
RQ job functions for batch statement parsing.
These are the entry points that the worker calls.
"""

import structlog
from redis import Redis
from rq import Queue

from statement_desk.config import settings
from statement_desk.schemas.jobs import BatchEnqueued
from statement_desk.schemas.results import BatchDocument, ParseOptions

logger = structlog.get_logger(__name__)


def get_queue() -> Queue:
    """Get the batch job queue."""
    conn = Redis.from_url(settings.REDIS_URL)
    return Queue(settings.QUEUE_NAME, connection=conn)


def enqueue_batch(documents: list[BatchDocument], options: ParseOptions) -> BatchEnqueued:
    """
    Enqueue a batch of statements for background parsing.
    Documents travel as plain dicts so the job payload does not depend on model pickling.
    """
    q = get_queue()
    job = q.enqueue(
        process_batch_job,
        [doc.model_dump() for doc in documents],
        options.model_dump(),
        job_timeout=settings.JOB_TIMEOUT_SECONDS,
        result_ttl=86400,  # Keep results for 24 hours
        failure_ttl=604800,  # Keep failures for 7 days
    )
    logger.info("batch_enqueued", job_id=job.id, document_count=len(documents), user_id=options.user_id)
    return BatchEnqueued(job_id=job.id, document_count=len(documents), queue_name=settings.QUEUE_NAME)


def process_batch_job(documents: list[dict], options: dict) -> dict:
    """
    Main job function: parse every document in the batch.
    This runs inside the RQ worker process.
    """
    import asyncio

    logger.info("job_started", document_count=len(documents))

    try:
        result = asyncio.run(_process_batch_async(documents, options))
        logger.info("job_completed", document_count=len(documents), stopped_early=result.get("stopped_early"))
        return result
    except Exception as e:
        logger.error("job_failed", document_count=len(documents), error=str(e))
        raise


async def _process_batch_async(documents: list[dict], options: dict) -> dict:
    """
    Async wrapper for batch processing.
    The pipeline is built once per job and shared by its documents.
    Progress is written to job.meta so the jobs API can report it mid-batch.
    """
    from rq import get_current_job

    from statement_desk.pipeline.batch import BatchProcessor
    from statement_desk.pipeline.orchestrator import build_pipeline

    job = get_current_job()

    def report_progress(done: int, total: int, item) -> None:
        if job is None:
            return
        job.meta["documents_done"] = done
        job.meta["last_file"] = item.file_name
        job.meta["last_status"] = item.status.value
        job.save_meta()

    processor = BatchProcessor(build_pipeline(settings))
    result = await processor.process(
        [BatchDocument.model_validate(doc) for doc in documents],
        ParseOptions.model_validate(options),
        on_progress=report_progress,
    )
    return result.model_dump(mode="json")
