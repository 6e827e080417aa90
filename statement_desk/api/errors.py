"""
Pipeline error -> HTTP response mapping.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from statement_desk.pipeline.errors import (
    ConfigurationError,
    InvalidInputError,
    OcrAuthError,
    PipelineError,
    PipelineTimeoutError,
    QuotaExceededError,
)

# First match wins; subclasses are listed through their base
ERROR_STATUS = [
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (QuotaExceededError, status.HTTP_429_TOO_MANY_REQUESTS),
    (ConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (OcrAuthError, status.HTTP_502_BAD_GATEWAY),
    (PipelineTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
]


def status_for_error(exc: PipelineError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    return JSONResponse(
        status_code=status_for_error(exc),
        content={
            "success": False,
            "error": exc.message,
            "error_code": exc.error_code,
            "retryable": exc.retryable,
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PipelineError, pipeline_error_handler)
