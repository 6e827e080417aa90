"""
String enums shared across the pipeline, schemas and API.
Values are part of the JSON contract returned to callers.
"""

from enum import Enum


class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class DirectionSource(str, Enum):
    """How the credit/debit direction of a row was decided."""
    SIGN = "sign"
    COLUMN = "column"
    BALANCE = "balance"
    CONVENTION = "convention"
    KEYWORD = "keyword"
    AI = "ai"
    DEFAULT = "default"


class ExtractionMethod(str, Enum):
    NATIVE = "native"
    OCR = "ocr"


class PageExtractionPath(str, Enum):
    NATIVE = "native"
    OCR = "ocr"
    OCR_FAILED = "ocr_failed"
    SKIPPED = "skipped"


class AnomalySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AnomalyType(str, Enum):
    UNUSUAL_AMOUNT = "unusual_amount"
    SUSPICIOUS_MERCHANT = "suspicious_merchant"
    DUPLICATE = "duplicate"
    FREQUENCY = "frequency"
    GEOGRAPHIC = "geographic"
    TIMING = "timing"
    ROUND_AMOUNT = "round_amount"


class ExportFormat(str, Enum):
    CSV = "csv"
    EXCEL = "excel"


class ExportScope(str, Enum):
    SINGLE = "single"
    BULK = "bulk"


class BatchItemStatus(str, Enum):
    SUCCEEDED = "succeeded"
    NO_TRANSACTIONS = "no_transactions"
    FAILED = "failed"
    SKIPPED = "skipped"


# Ordering for "higher severity wins" merges
SEVERITY_RANK = {
    AnomalySeverity.LOW: 1,
    AnomalySeverity.MEDIUM: 2,
    AnomalySeverity.HIGH: 3,
}
