"""
Internal data contracts passed between pipeline stages.
Text acquisition produces PageText; segmentation produces RawRow.
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from statement_desk.models.enums import DirectionSource, PageExtractionPath, TransactionType


PAGE_BREAK_MARKER = "\n\n--- PAGE BREAK ---\n\n"


class PageText(BaseModel):
    """Text acquired for one PDF page."""
    page_number: int = Field(ge=1)
    text: str = ""
    path: PageExtractionPath
    engine_name: Optional[str] = None
    native_char_count: int = 0
    warning: Optional[str] = None


class AcquiredText(BaseModel):
    """All page texts for a document plus acquisition bookkeeping."""
    pages: list[PageText] = []
    page_count: int = 0
    truncated: bool = False
    skipped_pages: list[int] = []
    warnings: list[str] = []

    @property
    def ocr_pages(self) -> list[int]:
        return [p.page_number for p in self.pages if p.path == PageExtractionPath.OCR]

    @property
    def used_ocr(self) -> bool:
        return any(
            p.path in (PageExtractionPath.OCR, PageExtractionPath.OCR_FAILED)
            for p in self.pages
        )

    @property
    def has_text(self) -> bool:
        return any(p.text.strip() for p in self.pages)

    def joined_text(self) -> str:
        return PAGE_BREAK_MARKER.join(p.text for p in self.pages)


# ── Layout detection (tagged variant) ────────────────────────

class RecognizedLayout(BaseModel):
    """Row matched the primary date/description/amount line shape."""
    kind: Literal["recognized"] = "recognized"
    bank_format: str


class UnrecognizedLayout(BaseModel):
    """Row recovered by the best-effort scan."""
    kind: Literal["unrecognized"] = "unrecognized"
    fallback_used: Literal[True] = True


LayoutDetection = Annotated[
    Union[RecognizedLayout, UnrecognizedLayout],
    Field(discriminator="kind"),
]


class RawRow(BaseModel):
    """One segmented transaction line-group, before enrichment."""
    date: date
    date_raw: str
    description: str
    amount: Decimal = Field(ge=0)
    amount_raw: str
    balance: Optional[Decimal] = None
    page_number: int = Field(ge=1)
    raw_text: str
    layout: LayoutDetection

    # Direction from an explicit marker on the amount or a labelled column
    explicit_direction: Optional[TransactionType] = None
    explicit_source: Optional[DirectionSource] = None

    # Filled in by the direction resolver
    direction: Optional[TransactionType] = None
    direction_source: Optional[DirectionSource] = None
    direction_confidence: float = 0.0
    balance_confirmed: bool = False

    date_confidence: float = 0.0
    amount_confidence: float = 0.0
    ambiguous_columns: bool = False

    @property
    def recognized(self) -> bool:
        return isinstance(self.layout, RecognizedLayout)
