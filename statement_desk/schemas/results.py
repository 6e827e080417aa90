"""
Pipeline input options and output envelopes.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from statement_desk.config import settings
from statement_desk.models.enums import BatchItemStatus, ExtractionMethod
from statement_desk.schemas.transactions import Transaction


NO_TRANSACTIONS = "NO_TRANSACTIONS"


class ParseOptions(BaseModel):
    """Every option `parse` recognises, with its default."""
    ai_enhanced: bool = False
    max_pages: int = Field(default_factory=lambda: settings.DEFAULT_MAX_OCR_PAGES, ge=1)
    user_id: Optional[str] = None
    source_file: Optional[str] = None


class AccountInfo(BaseModel):
    account_number: Optional[str] = None  # masked, e.g. ****1234
    account_holder: Optional[str] = None
    opening_balance: Optional[Decimal] = None
    closing_balance: Optional[Decimal] = None


class StatementPeriod(BaseModel):
    start: Optional[date] = None
    end: Optional[date] = None


class ParseMetadata(BaseModel):
    ai_enhanced: bool = False
    extraction_method: ExtractionMethod = ExtractionMethod.NATIVE
    page_count: int = 0
    pages_processed: int = 0
    ocr_pages: list[int] = []
    truncated: bool = False
    skipped_pages: list[int] = []
    layout_recognized: bool = False
    warnings: list[str] = []
    duration_ms: int = 0
    ocr_cost_usd: float = 0.0


class CategoryTotal(BaseModel):
    category: str
    amount: Decimal
    percentage: float


class AiInsights(BaseModel):
    summary: str
    total_spent: Decimal
    average_transaction: Decimal
    top_categories: list[CategoryTotal] = []
    trends: list[str] = []
    recommendations: list[str] = []
    savings_opportunities: list[str] = []


class ParseResult(BaseModel):
    success: bool
    transactions: list[Transaction] = []
    bank_type: Optional[str] = None
    account_info: AccountInfo = Field(default_factory=AccountInfo)
    statement_period: StatementPeriod = Field(default_factory=StatementPeriod)
    metadata: ParseMetadata = Field(default_factory=ParseMetadata)
    ai_insights: Optional[AiInsights] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @model_validator(mode="after")
    def _failure_has_no_transactions(self) -> "ParseResult":
        if not self.success:
            if self.transactions:
                raise ValueError("failed parse result cannot carry transactions")
            if not self.error:
                raise ValueError("failed parse result must carry an error")
        return self


class ExportArtifact(BaseModel):
    content: bytes
    mime_type: str
    file_name: str


class BatchDocument(BaseModel):
    file_name: str
    content: bytes


class BatchItemResult(BaseModel):
    file_name: str
    status: BatchItemStatus
    transaction_count: int = 0
    error: Optional[str] = None
    error_code: Optional[str] = None
    result: Optional[ParseResult] = None


class BatchResult(BaseModel):
    items: list[BatchItemResult] = []
    stopped_early: bool = False

    @property
    def transactions(self) -> list[Transaction]:
        """All successful transactions, tagged with their source file."""
        out = []
        for item in self.items:
            if item.result is None:
                continue
            for tx in item.result.transactions:
                if tx.source_file is None:
                    tx = tx.model_copy(update={"source_file": item.file_name})
                out.append(tx)
        return out

    def count(self, status: BatchItemStatus) -> int:
        return sum(1 for item in self.items if item.status == status)
