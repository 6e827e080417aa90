"""
Stub OCR engine for tests and local runs without OCR credentials.
Returns canned text per page and can be told to fail on given pages.
"""

from typing import Optional

from statement_desk.engines.base import OcrEngine, OcrError


class StubOcrEngine(OcrEngine):
    """OCR engine that returns pre-set text instead of reading pixels."""

    engine_name = "stub"
    engine_version = "0.0.0"

    def __init__(
        self,
        page_texts: Optional[dict[int, str]] = None,
        default_text: str = "",
        failures: Optional[dict[int, OcrError]] = None,
        cost_per_page: float = 0.0,
    ):
        self.page_texts = page_texts or {}
        self.default_text = default_text
        self.failures = failures or {}
        self.calls: list[int] = []
        self._cost_per_page = cost_per_page

    @property
    def cost_per_page_usd(self) -> float:
        return self._cost_per_page

    async def recognize(self, page_pdf: bytes, page_number: int = 1) -> str:
        self.calls.append(page_number)
        failure = self.failures.get(page_number)
        if failure is not None:
            raise failure
        return self.page_texts.get(page_number, self.default_text)

    async def health_check(self) -> bool:
        return True
