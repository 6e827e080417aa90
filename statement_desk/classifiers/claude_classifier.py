"""
Anthropic Claude transaction classifier.
One Messages API call per batch; the model answers with a JSON array in
input order. Temperature 0 keeps labels stable across identical inputs.
"""

import json
import re
from typing import Optional

import anthropic
import structlog
from pydantic import ValidationError

from statement_desk.classifiers.base import (
    AiClassification,
    AiNarrative,
    ClassificationInput,
    ClassifierError,
    ClassifierMalformedResponse,
    ClassifierRateLimited,
    StatementSummaryInput,
    TransactionClassifier,
)
from statement_desk.models.enums import AnomalySeverity, AnomalyType, TransactionType
from statement_desk.schemas.transactions import Anomaly

logger = structlog.get_logger(__name__)

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

CLASSIFY_PROMPT = """You are a financial assistant that categorizes bank transactions.

For each transaction below, provide:
1. Primary category (e.g. "Groceries", "Dining", "Transportation", "Utilities", "Healthcare", "Income")
2. Subcategory, or null
3. Confidence score 0-100 (be conservative)
4. Normalized merchant name ("WALMART #1234 SUPERCENTER" -> "Walmart", "SQ *COFFEE SHOP NYC" -> "Coffee Shop")
5. A brief reasoning
6. An anomaly object only if something looks wrong, otherwise null
7. "debit" or "credit" only if the listed type looks wrong for the description, otherwise null

Transactions:
{transactions}

Respond with only a JSON array, one object per transaction, in the same order:
{{
  "index": 0,
  "category": "Primary Category",
  "subcategory": "Subcategory or null",
  "confidence": 95,
  "normalized_merchant": "Clean merchant name",
  "reasoning": "Brief explanation",
  "transaction_type": "debit|credit" or null,
  "anomaly": {{"type": "unusual_amount|suspicious_merchant|duplicate|frequency|geographic|timing",
              "severity": "low|medium|high", "description": "...", "recommendation": "..."}} or null
}}"""

SUMMARY_PROMPT = """You are a financial advisor. Write spending insights for this bank statement.

Figures (already computed, do not recalculate):
{figures}

Sample transactions:
{sample}

Respond with only a JSON object:
{{
  "summary": "Brief overview of spending patterns",
  "trends": ["trend"],
  "recommendations": ["recommendation"],
  "savings_opportunities": ["opportunity"]
}}"""


class ClaudeClassifier(TransactionClassifier):
    """Classifier backed by the Anthropic Messages API."""

    classifier_name = "claude"

    def __init__(
        self,
        api_key: str,
        model: str,
        max_tokens: int = 4096,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)

    async def classify(self, rows: list[ClassificationInput]) -> list[Optional[AiClassification]]:
        if not rows:
            return []

        payload = [
            {
                "index": i,
                "date": row.date.isoformat(),
                "description": row.description,
                "amount": str(row.amount),
                "type": row.transaction_type.value,
                "rule_category": row.rule_category,
            }
            for i, row in enumerate(rows)
        ]
        text = await self._complete(CLASSIFY_PROMPT.format(transactions=json.dumps(payload, indent=2)))
        items = self._parse_json(text)
        if not isinstance(items, list):
            raise ClassifierMalformedResponse(self.classifier_name, "Expected a JSON array")

        results: list[Optional[AiClassification]] = [None] * len(rows)
        for position, item in enumerate(items):
            if not isinstance(item, dict):
                continue
            index = item.get("index", position)
            if not isinstance(index, int) or not 0 <= index < len(rows):
                continue
            results[index] = self._to_classification(item)

        logger.debug(
            "ai_batch_classified",
            rows=len(rows),
            answered=sum(1 for r in results if r is not None),
        )
        return results

    async def summarize(self, stats: StatementSummaryInput) -> AiNarrative:
        figures = stats.model_dump(mode="json", exclude={"sample"})
        sample = [row.model_dump(mode="json") for row in stats.sample]
        text = await self._complete(SUMMARY_PROMPT.format(
            figures=json.dumps(figures, indent=2),
            sample=json.dumps(sample, indent=2),
        ))
        data = self._parse_json(text)
        if not isinstance(data, dict):
            raise ClassifierMalformedResponse(self.classifier_name, "Expected a JSON object")
        try:
            return AiNarrative.model_validate(data)
        except ValidationError as e:
            raise ClassifierMalformedResponse(self.classifier_name, str(e)) from e

    async def _complete(self, prompt: str) -> str:
        try:
            message = await self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=0,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.RateLimitError as e:
            raise ClassifierRateLimited(self.classifier_name, str(e)) from e
        except anthropic.AuthenticationError as e:
            raise ClassifierError(self.classifier_name, str(e), error_code="AUTH_FAILED") from e
        except anthropic.APIError as e:
            raise ClassifierError(self.classifier_name, str(e)) from e

        return "".join(block.text for block in message.content if block.type == "text")

    def _parse_json(self, text: str):
        cleaned = _CODE_FENCE_RE.sub("", text.strip())
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise ClassifierMalformedResponse(self.classifier_name, f"Invalid JSON: {e}") from e

    def _to_classification(self, item: dict) -> Optional[AiClassification]:
        anomaly = None
        raw_anomaly = item.get("anomaly")
        if isinstance(raw_anomaly, dict):
            try:
                anomaly = Anomaly(
                    type=AnomalyType(raw_anomaly.get("type")),
                    severity=AnomalySeverity(raw_anomaly.get("severity")),
                    description=str(raw_anomaly.get("description") or ""),
                    recommendation=str(raw_anomaly.get("recommendation") or ""),
                )
            except ValueError:
                logger.debug("ai_anomaly_ignored", anomaly=raw_anomaly)

        transaction_type = None
        if item.get("transaction_type") in (TransactionType.DEBIT.value, TransactionType.CREDIT.value):
            transaction_type = TransactionType(item["transaction_type"])

        try:
            confidence = int(item.get("confidence") or 0)
        except (TypeError, ValueError):
            confidence = 0

        try:
            return AiClassification(
                category=item.get("category"),
                subcategory=item.get("subcategory"),
                normalized_merchant=item.get("normalized_merchant"),
                confidence=max(0, min(100, confidence)),
                reasoning=item.get("reasoning"),
                anomaly=anomaly,
                transaction_type=transaction_type,
            )
        except ValidationError:
            logger.debug("ai_classification_ignored", item=item)
            return None
