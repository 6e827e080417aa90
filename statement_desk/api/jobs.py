"""
/api/v1/jobs endpoints.
Batch job status (with per-document progress) and queue statistics.
"""

from fastapi import APIRouter, Depends, HTTPException
from redis.exceptions import RedisError
from rq.exceptions import NoSuchJobError
from rq.job import Job
from rq.worker import Worker

from statement_desk.dependencies import verify_api_key
from statement_desk.schemas.jobs import JobStatus, QueueStats
from statement_desk.worker.jobs import get_queue

router = APIRouter(prefix="/api/v1/jobs", tags=["jobs"], dependencies=[Depends(verify_api_key)])


def _queue_unavailable(e: RedisError) -> HTTPException:
    return HTTPException(status_code=503, detail=f"Queue unavailable: {e}")


@router.get("/queue/stats", response_model=QueueStats)
async def queue_stats():
    """Depth of the batch queue and its registries."""
    q = get_queue()
    try:
        return QueueStats(
            queue_name=q.name,
            queued=len(q),
            started=q.started_job_registry.count,
            finished=q.finished_job_registry.count,
            failed=q.failed_job_registry.count,
            deferred=q.deferred_job_registry.count,
            workers=Worker.count(queue=q),
        )
    except RedisError as e:
        raise _queue_unavailable(e)


@router.get("/{job_id}", response_model=JobStatus)
async def get_job_status(job_id: str):
    """
    Status of a batch job. While it runs, documents_done counts finished
    documents; once finished, result holds the BatchResult.
    """
    try:
        job = Job.fetch(job_id, connection=get_queue().connection)
    except NoSuchJobError:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    except RedisError as e:
        raise _queue_unavailable(e)

    documents = job.args[0] if job.args else []
    return JobStatus(
        job_id=job_id,
        status=job.get_status().value,
        document_count=len(documents),
        documents_done=job.meta.get("documents_done", 0),
        last_file=job.meta.get("last_file"),
        enqueued_at=job.enqueued_at,
        started_at=job.started_at,
        ended_at=job.ended_at,
        error_message=job.exc_info if job.is_failed else None,
        result=job.result if job.is_finished else None,
    )
