"""
Abstract base class for OCR engines.
An engine turns a one-page PDF into plain text.
"""

from abc import ABC, abstractmethod
from typing import Optional


class OcrEngine(ABC):
    """
    Abstract base class for all OCR engines.

    Every engine must:
    1. Accept a single-page PDF as bytes
    2. Return the page text ("" for a blank page is valid, not an error)
    3. Report its name, version and per-page cost
    4. Raise an OcrError subclass on failure, never return partial data
    """

    @property
    @abstractmethod
    def engine_name(self) -> str:
        """Unique identifier: 'google_vision', 'tesseract'"""
        ...

    @property
    @abstractmethod
    def engine_version(self) -> str:
        ...

    @property
    def cost_per_page_usd(self) -> float:
        return 0.0

    @abstractmethod
    async def recognize(self, page_pdf: bytes, page_number: int = 1) -> str:
        """Extract the full text of a one-page PDF."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify engine is available and configured."""
        ...


class OcrError(Exception):
    """Raised when an OCR engine fails."""

    error_code = "OCR_FAILED"

    def __init__(self, engine_name: str, message: str, error_code: Optional[str] = None):
        self.engine_name = engine_name
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        super().__init__(f"[{engine_name}] {self.error_code}: {message}")


class OcrNotConfigured(OcrError):
    """Credentials or binary missing."""
    error_code = "NOT_CONFIGURED"


class OcrQuotaExceeded(OcrError):
    error_code = "QUOTA_EXCEEDED"


class OcrAuthFailed(OcrError):
    error_code = "AUTH_FAILED"


class OcrInvalidFormat(OcrError):
    """The engine rejected this page's content."""
    error_code = "INVALID_FORMAT"


class OcrTransientError(OcrError):
    """Service unavailable or deadline exceeded; worth retrying."""
    error_code = "TRANSIENT"
