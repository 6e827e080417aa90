"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from statement_desk.api.errors import register_error_handlers
from statement_desk.api.router import api_router
from statement_desk.config import settings
from statement_desk.observability.logging import setup_logging
from statement_desk.pipeline.orchestrator import StatementPipeline, build_pipeline

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    # Startup
    setup_logging()

    # Sentry init if configured
    if settings.SENTRY_DSN:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            integrations=[FastApiIntegration()],
            traces_sample_rate=0.1,
        )

    # OCR engine and classifier are built once and shared by every request
    if getattr(app.state, "pipeline", None) is None:
        app.state.pipeline = build_pipeline(settings)

    logger.info(
        "app_started",
        version=settings.APP_VERSION,
        ocr_engine=settings.OCR_ENGINE,
        ai_classifier=app.state.pipeline.classifier is not None,
    )

    yield

    # Shutdown
    logger.info("app_stopped")


def create_app(pipeline: Optional[StatementPipeline] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        description="Extraction of transactions from PDF bank statements, with CSV and Excel export.",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.pipeline = pipeline

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Prometheus metrics endpoint
    if settings.PROMETHEUS_ENABLED:
        from prometheus_client import make_asgi_app
        metrics_app = make_asgi_app()
        app.mount("/metrics", metrics_app)

    register_error_handlers(app)

    # Include all API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()
