"""
Worker entry point.
Run with: python -m statement_desk.worker.runner
"""

import structlog
from redis import Redis
from rq import Worker

from statement_desk.config import settings
from statement_desk.observability.logging import setup_logging

logger = structlog.get_logger(__name__)


def main():
    """Start the RQ worker."""
    setup_logging()

    conn = Redis.from_url(settings.REDIS_URL)
    worker = Worker(
        queues=[settings.QUEUE_NAME],
        connection=conn,
        name=f"statement-worker-{settings.APP_VERSION}",
    )

    logger.info("worker_starting", queue_name=settings.QUEUE_NAME)
    worker.work(with_scheduler=False)


if __name__ == "__main__":
    main()
