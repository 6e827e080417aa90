"""
Pydantic transaction schemas.

Amounts are stored as unsigned magnitudes; `transaction_type` carries the
direction. The debit sign is applied only when rendering (`signed_amount`).
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from statement_desk.models.enums import AnomalySeverity, AnomalyType, DirectionSource, TransactionType
from statement_desk.schemas.contracts import RecognizedLayout, UnrecognizedLayout


class Anomaly(BaseModel):
    """Annotation on an unusual transaction. Never filters the row out."""
    model_config = ConfigDict(frozen=True)

    type: AnomalyType
    severity: AnomalySeverity
    description: str
    recommendation: str


class Transaction(BaseModel):
    """A fully enriched statement line."""
    model_config = ConfigDict(frozen=True)

    date: date
    description: str
    normalized_merchant: str
    amount: Decimal = Field(ge=0)
    balance: Optional[Decimal] = None
    transaction_type: TransactionType
    category: Optional[str] = None
    subcategory: Optional[str] = None
    confidence: int = Field(ge=0, le=100)
    ai_reasoning: Optional[str] = None
    anomaly: Optional[Anomaly] = None

    original_category: Optional[str] = None
    page_number: Optional[int] = None
    source_file: Optional[str] = None
    direction_source: Optional[DirectionSource] = None
    layout: Optional[
        Annotated[Union[RecognizedLayout, UnrecognizedLayout], Field(discriminator="kind")]
    ] = None

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the debit sign applied, for rendering only."""
        if self.transaction_type == TransactionType.DEBIT:
            return -self.amount
        return self.amount

    @property
    def is_credit(self) -> bool:
        return self.transaction_type == TransactionType.CREDIT


class TransactionUpdate(BaseModel):
    """User edit. Only these three fields are editable."""
    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    transaction_type: Optional[TransactionType] = None


def apply_transaction_update(tx: Transaction, update: TransactionUpdate) -> Transaction:
    """Return a new Transaction with the user's edits applied."""
    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    if "description" in changes:
        changes["description"] = " ".join(changes["description"].split())
    return tx.model_copy(update=changes)
