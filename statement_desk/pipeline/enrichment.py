"""
Enrichment: RawRow -> Transaction.

Rule path (always): merchant normalization, keyword category, confidence.
AI path (ai_enhanced): classifier batches of AI_BATCH_SIZE with a pause
between them; the AI category replaces the rule category only above
AI_CATEGORY_MIN_CONFIDENCE. Anomaly detection runs last and only annotates.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

import structlog
from pydantic import BaseModel

from statement_desk.classifiers.base import (
    AiClassification,
    ClassificationInput,
    ClassifierError,
    ClassifierRateLimited,
    TransactionClassifier,
)
from statement_desk.config import settings
from statement_desk.models.enums import DirectionSource
from statement_desk.observability.cost_tracker import CostTracker
from statement_desk.observability.metrics import ai_classifications_total, anomalies_flagged_total
from statement_desk.pipeline.anomaly_detector import AnomalyDetector, strongest
from statement_desk.pipeline.categorizer import CategoryMatch, categorize
from statement_desk.pipeline.confidence_scorer import score_transaction
from statement_desk.pipeline.errors import ClassifierNotConfiguredError, ClassifierRateLimitedError
from statement_desk.pipeline.insights import build_insights
from statement_desk.pipeline.merchant_normalizer import normalize_merchant
from statement_desk.schemas.contracts import RawRow
from statement_desk.schemas.results import AiInsights
from statement_desk.schemas.transactions import Transaction

logger = structlog.get_logger(__name__)


class EnrichmentResult(BaseModel):
    transactions: list[Transaction] = []
    ai_applied: bool = False
    ai_insights: Optional[AiInsights] = None
    warnings: list[str] = []


class Enricher:
    """Turns resolved rows into transactions. Holds no per-document state."""

    def __init__(
        self,
        classifier: Optional[TransactionClassifier] = None,
        detector: Optional[AnomalyDetector] = None,
        batch_size: int = settings.AI_BATCH_SIZE,
        batch_delay: float = settings.AI_BATCH_DELAY_SECONDS,
        min_ai_confidence: int = settings.AI_CATEGORY_MIN_CONFIDENCE,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.classifier = classifier
        self.detector = detector or AnomalyDetector()
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.min_ai_confidence = min_ai_confidence
        self._sleep = sleep

    async def enrich(
        self,
        rows: list[RawRow],
        ai_enhanced: bool = False,
        source_file: Optional[str] = None,
        cost_tracker: Optional[CostTracker] = None,
    ) -> EnrichmentResult:
        if ai_enhanced and self.classifier is None:
            raise ClassifierNotConfiguredError(
                "AI-enhanced parsing requested but no AI classifier is configured. Set ANTHROPIC_API_KEY."
            )

        warnings: list[str] = []
        matches = [categorize(row.description, row.direction) for row in rows]

        classifications: list[Optional[AiClassification]] = [None] * len(rows)
        ai_applied = False
        if ai_enhanced and rows:
            classifications, ai_applied = await self._classify(rows, matches, warnings, cost_tracker)

        transactions = [
            self._build(row, match, classification if ai_applied else None, source_file)
            for row, match, classification in zip(rows, matches, classifications)
        ]
        transactions = self._annotate_anomalies(transactions, warnings)

        insights = None
        if ai_applied:
            insights = await build_insights(transactions, self.classifier, warnings)

        return EnrichmentResult(
            transactions=transactions,
            ai_applied=ai_applied,
            ai_insights=insights,
            warnings=warnings,
        )

    def _build(
        self,
        row: RawRow,
        match: CategoryMatch,
        classification: Optional[AiClassification],
        source_file: Optional[str],
    ) -> Transaction:
        category = match.category
        subcategory = match.subcategory
        original_category = None
        merchant = normalize_merchant(row.description) or row.description
        strength = match.strength
        reasoning = None
        ai_anomaly = None
        transaction_type = row.direction
        direction_source = row.direction_source

        if classification is not None:
            original_category = match.category
            reasoning = classification.reasoning
            ai_anomaly = classification.anomaly
            if classification.normalized_merchant:
                merchant = classification.normalized_merchant
            if classification.category and classification.confidence > self.min_ai_confidence:
                category = classification.category
                subcategory = classification.subcategory
                strength = classification.confidence / 100
            # Only a default-debit guess can be overruled
            if (
                classification.transaction_type is not None
                and direction_source == DirectionSource.DEFAULT
                and classification.confidence > self.min_ai_confidence
            ):
                transaction_type = classification.transaction_type
                direction_source = DirectionSource.AI

        confidence = score_transaction(row, strength)

        return Transaction(
            date=row.date,
            description=row.description,
            normalized_merchant=merchant,
            amount=row.amount,
            balance=row.balance,
            transaction_type=transaction_type,
            category=category,
            subcategory=subcategory,
            confidence=confidence.score,
            ai_reasoning=reasoning,
            anomaly=ai_anomaly,
            original_category=original_category,
            page_number=row.page_number,
            source_file=source_file,
            direction_source=direction_source,
            layout=row.layout,
        )

    async def _classify(
        self,
        rows: list[RawRow],
        matches: list[CategoryMatch],
        warnings: list[str],
        cost_tracker: Optional[CostTracker],
    ) -> tuple[list[Optional[AiClassification]], bool]:
        inputs = [
            ClassificationInput(
                index=i,
                date=row.date,
                description=row.description,
                amount=row.amount,
                transaction_type=row.direction,
                rule_category=match.category,
            )
            for i, (row, match) in enumerate(zip(rows, matches))
        ]

        results: list[Optional[AiClassification]] = [None] * len(inputs)
        any_batch_ok = False
        for start in range(0, len(inputs), self.batch_size):
            if start > 0:
                await self._sleep(self.batch_delay)
            batch = inputs[start:start + self.batch_size]

            t0 = time.monotonic()
            try:
                answers = await self.classifier.classify(batch)
            except ClassifierRateLimited as e:
                ai_classifications_total.labels(outcome="rate_limited").inc()
                raise ClassifierRateLimitedError(f"AI classifier rate limited: {e.message}") from e
            except ClassifierError as e:
                ai_classifications_total.labels(outcome="failed").inc()
                logger.warning("ai_batch_failed", batch_start=start, error_code=e.error_code, reason=e.message)
                warnings.append(f"AI classification failed for rows {start + 1}-{start + len(batch)} ({e.error_code})")
                continue

            if cost_tracker is not None:
                cost_tracker.record(
                    engine_name=self.classifier.classifier_name,
                    operation="classify",
                    latency_ms=int((time.monotonic() - t0) * 1000),
                )

            if len(answers) != len(batch):
                ai_classifications_total.labels(outcome="failed").inc()
                logger.warning("ai_batch_misaligned", expected=len(batch), received=len(answers))
                warnings.append(f"AI classification returned a misaligned answer for rows {start + 1}-{start + len(batch)}")
                continue

            ai_classifications_total.labels(outcome="succeeded").inc()
            any_batch_ok = True
            results[start:start + len(batch)] = answers

        if not any_batch_ok:
            warnings.append("AI enhancement unavailable; rule-based categories used")
        return results, any_batch_ok

    def _annotate_anomalies(self, transactions: list[Transaction], warnings: list[str]) -> list[Transaction]:
        try:
            found = self.detector.detect(transactions)
        except Exception as e:
            logger.warning("anomaly_detection_failed", error=str(e), exc_info=True)
            warnings.append("Anomaly detection skipped after an internal error")
            return transactions

        out = []
        for i, tx in enumerate(transactions):
            anomaly = strongest(tx.anomaly, found.get(i))
            if anomaly is not None:
                anomalies_flagged_total.labels(anomaly_type=anomaly.type.value, severity=anomaly.severity.value).inc()
                if anomaly is not tx.anomaly:
                    tx = tx.model_copy(update={"anomaly": anomaly})
            out.append(tx)
        return out
