"""
Application configuration using pydantic-settings.
All settings read from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Central configuration for the statement extraction service."""

    # ── Application ──────────────────────────────────────────
    APP_NAME: str = "Statement Desk"
    APP_VERSION: str = "0.1.0"
    PIPELINE_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── Redis / Batch Queue ──────────────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"
    QUEUE_NAME: str = "statements"
    JOB_TIMEOUT_SECONDS: int = 1800
    BATCH_DELAY_SECONDS: float = 1.0

    # ── Uploads ──────────────────────────────────────────────
    MAX_UPLOAD_SIZE_MB: int = 50
    ALLOWED_MIME_TYPES: str = "application/pdf,application/octet-stream"

    # ── Pipeline ─────────────────────────────────────────────
    PIPELINE_TIMEOUT_SECONDS: float = 300.0

    # ── Text Acquisition ─────────────────────────────────────
    # Pages with fewer non-whitespace characters are treated as scanned
    MIN_NATIVE_TEXT_CHARS: int = 25
    DEFAULT_MAX_OCR_PAGES: int = 20
    OCR_INTER_PAGE_DELAY_SECONDS: float = 0.2
    OCR_MAX_RETRIES: int = 3
    OCR_RETRY_BACKOFF_SECONDS: float = 1.0
    RENDER_DPI: int = 300

    # ── OCR Engines ──────────────────────────────────────────
    # google_vision | tesseract | none
    OCR_ENGINE: str = "google_vision"
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None
    GOOGLE_CLOUD_VISION_KEY: Optional[str] = None
    OCR_COST_PER_1000_PAGES_USD: float = 1.50
    TESSERACT_CMD: str = "tesseract"
    TESSERACT_LANG: str = "eng"

    # ── AI Classification ────────────────────────────────────
    ANTHROPIC_API_KEY: Optional[str] = None
    CLAUDE_MODEL: str = "claude-3-5-sonnet-latest"
    AI_MAX_TOKENS: int = 4096
    AI_BATCH_SIZE: int = 50
    AI_BATCH_DELAY_SECONDS: float = 1.0
    AI_CATEGORY_MIN_CONFIDENCE: int = 70

    # ── Confidence / Anomalies ───────────────────────────────
    HIGH_CONFIDENCE_THRESHOLD: int = 90
    ANOMALY_Z_THRESHOLD: float = 3.5
    ANOMALY_MIN_SAMPLE: int = 5
    ANOMALY_ROUND_AMOUNT_MIN: float = 1000.0

    # ── Observability ────────────────────────────────────────
    SENTRY_DSN: Optional[str] = None
    PROMETHEUS_ENABLED: bool = True

    # ── Security ─────────────────────────────────────────────
    API_KEY: Optional[str] = None
    CORS_ORIGINS: str = "*"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }


# Singleton instance
settings = Settings()
