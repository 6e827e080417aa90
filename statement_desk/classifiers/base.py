"""
Abstract base class for AI transaction classifiers.
A classifier labels one batch of transactions and writes the narrative
part of statement insights. Batching and pacing belong to the caller.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from statement_desk.models.enums import TransactionType
from statement_desk.schemas.results import CategoryTotal
from statement_desk.schemas.transactions import Anomaly


class ClassificationInput(BaseModel):
    """What the classifier sees of one transaction."""
    index: int
    date: date
    description: str
    amount: Decimal
    transaction_type: TransactionType
    rule_category: Optional[str] = None


class AiClassification(BaseModel):
    category: Optional[str] = None
    subcategory: Optional[str] = None
    normalized_merchant: Optional[str] = None
    confidence: int = Field(0, ge=0, le=100)
    reasoning: Optional[str] = None
    anomaly: Optional[Anomaly] = None
    # Only set when the listed direction looks wrong
    transaction_type: Optional[TransactionType] = None


class StatementSummaryInput(BaseModel):
    """Locally computed figures handed to the classifier for the narrative."""
    transaction_count: int
    total_spent: Decimal
    total_income: Decimal
    average_transaction: Decimal
    top_categories: list[CategoryTotal] = []
    sample: list[ClassificationInput] = []


class AiNarrative(BaseModel):
    summary: str = ""
    trends: list[str] = []
    recommendations: list[str] = []
    savings_opportunities: list[str] = []


class TransactionClassifier(ABC):
    """
    Every classifier must:
    1. Return one entry per input row, in input order (None where it has no answer)
    2. Raise ClassifierRateLimited when the provider throttles
    3. Raise ClassifierError for any other failure, never return partial garbage
    """

    @property
    @abstractmethod
    def classifier_name(self) -> str:
        ...

    @abstractmethod
    async def classify(self, rows: list[ClassificationInput]) -> list[Optional[AiClassification]]:
        ...

    @abstractmethod
    async def summarize(self, stats: StatementSummaryInput) -> AiNarrative:
        ...


class ClassifierError(Exception):
    """Raised when an AI classifier fails."""

    error_code = "AI_FAILED"

    def __init__(self, classifier_name: str, message: str, error_code: Optional[str] = None):
        self.classifier_name = classifier_name
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        super().__init__(f"[{classifier_name}] {self.error_code}: {message}")


class ClassifierRateLimited(ClassifierError):
    error_code = "RATE_LIMITED"


class ClassifierMalformedResponse(ClassifierError):
    error_code = "MALFORMED_RESPONSE"
