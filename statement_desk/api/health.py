"""
Health check endpoints.
/health always returns 200; dependency problems show up as "degraded".
"""

from fastapi import APIRouter, Request
from redis import Redis
from redis.exceptions import RedisError

from statement_desk.config import settings

router = APIRouter(tags=["health"])


def _redis_ok() -> tuple[bool, str]:
    try:
        return bool(Redis.from_url(settings.REDIS_URL, socket_timeout=2).ping()), ""
    except RedisError as e:
        return False, str(e)[:200]


@router.get("/health")
async def health_check(request: Request):
    """Liveness plus a summary of which collaborators are configured."""
    pipeline = getattr(request.app.state, "pipeline", None)
    ocr_engine = pipeline.ocr_engine if pipeline is not None else None
    classifier = pipeline.classifier if pipeline is not None else None

    return {
        "status": "healthy" if pipeline is not None else "degraded",
        "version": settings.APP_VERSION,
        "pipeline_version": settings.PIPELINE_VERSION,
        "ocr_engine": ocr_engine.engine_name if ocr_engine is not None else None,
        "ai_classifier": classifier.classifier_name if classifier is not None else None,
    }


@router.get("/health/ready")
async def readiness_check():
    """Readiness check: the batch queue must be reachable."""
    redis_ok, redis_error = _redis_ok()
    response = {"ready": redis_ok, "redis": "connected" if redis_ok else "unreachable"}
    if redis_error:
        response["redis_error"] = redis_error
    return response
