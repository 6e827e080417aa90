"""
Job queue response schemas.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class BatchEnqueued(BaseModel):
    job_id: str
    document_count: int
    queue_name: str


class JobStatus(BaseModel):
    job_id: str
    status: str
    document_count: int = 0
    documents_done: int = 0
    last_file: Optional[str] = None
    enqueued_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    error_message: Optional[str] = None
    result: Optional[Any] = None


class QueueStats(BaseModel):
    queue_name: str
    queued: int
    started: int
    finished: int
    failed: int
    deferred: int
    workers: int
