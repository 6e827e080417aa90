"""
Statement insights for AI-enhanced parses.
Numbers are computed here; only the narrative comes from the classifier.
"""

from collections import defaultdict
from decimal import Decimal

import structlog

from statement_desk.classifiers.base import (
    AiNarrative,
    ClassificationInput,
    ClassifierError,
    ClassifierRateLimited,
    StatementSummaryInput,
    TransactionClassifier,
)
from statement_desk.models.enums import TransactionType
from statement_desk.pipeline.errors import ClassifierRateLimitedError
from statement_desk.schemas.results import AiInsights, CategoryTotal
from statement_desk.schemas.transactions import Transaction

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")
TOP_CATEGORY_COUNT = 5
SAMPLE_SIZE = 30
UNCATEGORIZED = "Uncategorized"


def compute_statement_stats(transactions: list[Transaction]) -> StatementSummaryInput:
    debits = [t for t in transactions if t.transaction_type == TransactionType.DEBIT]
    total_spent = sum((t.amount for t in debits), Decimal("0")).quantize(CENTS)
    total_income = sum(
        (t.amount for t in transactions if t.transaction_type == TransactionType.CREDIT),
        Decimal("0"),
    ).quantize(CENTS)
    average = (total_spent / len(debits)).quantize(CENTS) if debits else Decimal("0.00")

    by_category: dict[str, Decimal] = defaultdict(Decimal)
    for t in debits:
        by_category[t.category or UNCATEGORIZED] += t.amount

    ranked = sorted(by_category.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_CATEGORY_COUNT]
    top_categories = [
        CategoryTotal(
            category=category,
            amount=amount.quantize(CENTS),
            percentage=round(float(amount / total_spent * 100), 1) if total_spent else 0.0,
        )
        for category, amount in ranked
    ]

    sample = [
        ClassificationInput(
            index=i,
            date=t.date,
            description=t.description,
            amount=t.amount,
            transaction_type=t.transaction_type,
            rule_category=t.category,
        )
        for i, t in enumerate(transactions[:SAMPLE_SIZE])
    ]

    return StatementSummaryInput(
        transaction_count=len(transactions),
        total_spent=total_spent,
        total_income=total_income,
        average_transaction=average,
        top_categories=top_categories,
        sample=sample,
    )


def fallback_narrative(stats: StatementSummaryInput) -> AiNarrative:
    """Plain summary used when the classifier cannot write one."""
    if stats.top_categories:
        lead = stats.top_categories[0]
        summary = (
            f"{stats.transaction_count} transactions with {stats.total_spent} spent; "
            f"{lead.category} is the largest category at {lead.percentage}% of spending."
        )
    else:
        summary = f"{stats.transaction_count} transactions with no spending recorded."
    return AiNarrative(summary=summary)


async def build_insights(
    transactions: list[Transaction],
    classifier: TransactionClassifier,
    warnings: list[str],
) -> AiInsights:
    stats = compute_statement_stats(transactions)

    try:
        narrative = await classifier.summarize(stats)
    except ClassifierRateLimited as e:
        raise ClassifierRateLimitedError(f"AI insights rate limited: {e.message}") from e
    except ClassifierError as e:
        logger.warning("ai_insights_failed", error_code=e.error_code, reason=e.message)
        warnings.append(f"AI insights unavailable ({e.error_code}); summary computed locally")
        narrative = fallback_narrative(stats)

    return AiInsights(
        summary=narrative.summary or fallback_narrative(stats).summary,
        total_spent=stats.total_spent,
        average_transaction=stats.average_transaction,
        top_categories=stats.top_categories,
        trends=narrative.trends,
        recommendations=narrative.recommendations,
        savings_opportunities=narrative.savings_opportunities,
    )
