"""
Builds the configured OCR engine once at process start.
"""

from typing import Optional

import structlog

from statement_desk.config import Settings
from statement_desk.engines.base import OcrEngine, OcrNotConfigured

logger = structlog.get_logger(__name__)


def build_ocr_engine(settings: Settings) -> Optional[OcrEngine]:
    """
    Return the engine named by OCR_ENGINE, or None when OCR is disabled or
    its credentials are missing. A None engine makes scanned pages fail
    with a configuration error at parse time instead of at startup.
    """
    choice = settings.OCR_ENGINE.lower().strip()

    if choice in ("", "none", "disabled"):
        logger.info("ocr_engine_disabled")
        return None

    if choice == "google_vision":
        from statement_desk.engines.google_vision import GoogleVisionEngine
        try:
            engine = GoogleVisionEngine(
                credentials_path=settings.GOOGLE_APPLICATION_CREDENTIALS,
                api_key=settings.GOOGLE_CLOUD_VISION_KEY,
                cost_per_1000_pages=settings.OCR_COST_PER_1000_PAGES_USD,
            )
        except OcrNotConfigured as e:
            logger.warning("ocr_engine_not_configured", engine_name=e.engine_name, reason=e.message)
            return None
        logger.info("ocr_engine_ready", engine_name=engine.engine_name)
        return engine

    if choice == "tesseract":
        from statement_desk.engines.tesseract_engine import TesseractEngine
        engine = TesseractEngine(
            tesseract_cmd=settings.TESSERACT_CMD,
            lang=settings.TESSERACT_LANG,
            dpi=settings.RENDER_DPI,
        )
        logger.info("ocr_engine_ready", engine_name=engine.engine_name)
        return engine

    raise ValueError(f"Unknown OCR_ENGINE: {settings.OCR_ENGINE!r}")
