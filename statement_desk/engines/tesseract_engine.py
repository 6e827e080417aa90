"""
Tesseract OCR engine.
Local alternative to the cloud engine: renders the one-page PDF with
PyMuPDF, cleans it up with OpenCV and reads it with pytesseract.
"""

import asyncio

import cv2
import numpy as np
import pytesseract
import structlog
from PIL import Image

from statement_desk.engines.base import OcrEngine, OcrError, OcrInvalidFormat, OcrNotConfigured
from statement_desk.pipeline.errors import InvalidInputError
from statement_desk.pipeline.pdf_document import render_pdf_page

logger = structlog.get_logger(__name__)

# LSTM engine, single uniform block of text (suits statement tables)
TESSERACT_CONFIG = "--oem 1 --psm 6"


def preprocess_for_ocr(pil_img: Image.Image) -> Image.Image:
    """Grayscale, edge-preserving denoise, adaptive threshold."""
    img = np.array(pil_img.convert("RGB"))
    gray = cv2.cvtColor(img, cv2.COLOR_RGB2GRAY)
    gray = cv2.bilateralFilter(gray, 9, 75, 75)
    thr = cv2.adaptiveThreshold(
        gray, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, 35, 11
    )
    return Image.fromarray(thr)


class TesseractEngine(OcrEngine):
    """OCR through a local tesseract binary."""

    engine_name = "tesseract"

    def __init__(self, tesseract_cmd: str = "tesseract", lang: str = "eng", dpi: int = 300):
        pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.lang = lang
        self.dpi = dpi
        self._version = "unknown"

    @property
    def engine_version(self) -> str:
        return self._version

    def _recognize_sync(self, page_pdf: bytes) -> str:
        try:
            image = render_pdf_page(page_pdf, 1, dpi=self.dpi)
        except InvalidInputError as e:
            raise OcrInvalidFormat(self.engine_name, e.message) from e

        try:
            return pytesseract.image_to_string(
                preprocess_for_ocr(image), lang=self.lang, config=TESSERACT_CONFIG,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise OcrNotConfigured(self.engine_name, "tesseract binary not found on PATH") from e
        except pytesseract.TesseractError as e:
            raise OcrError(self.engine_name, f"tesseract failed: {e}") from e

    async def recognize(self, page_pdf: bytes, page_number: int = 1) -> str:
        text = await asyncio.to_thread(self._recognize_sync, page_pdf)
        logger.debug("tesseract_page_recognized", page_number=page_number, char_count=len(text))
        return text

    async def health_check(self) -> bool:
        try:
            self._version = str(pytesseract.get_tesseract_version())
            return True
        except pytesseract.TesseractNotFoundError:
            return False
