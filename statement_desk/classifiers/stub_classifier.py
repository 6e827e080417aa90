"""
Stub classifier for tests and local runs without an API key.
Answers from a description lookup and can be told to fail on given calls.
"""

from typing import Optional

from statement_desk.classifiers.base import (
    AiClassification,
    AiNarrative,
    ClassificationInput,
    ClassifierError,
    StatementSummaryInput,
    TransactionClassifier,
)


class StubClassifier(TransactionClassifier):
    """Classifier that returns pre-set answers keyed by description."""

    classifier_name = "stub"

    def __init__(
        self,
        answers: Optional[dict[str, AiClassification]] = None,
        narrative: Optional[AiNarrative] = None,
        failures: Optional[dict[int, ClassifierError]] = None,
        summary_failure: Optional[ClassifierError] = None,
    ):
        self.answers = answers or {}
        self.narrative = narrative or AiNarrative(summary="Stub summary")
        # classify call number (0-based) -> error to raise
        self.failures = failures or {}
        self.summary_failure = summary_failure
        self.batches: list[int] = []

    async def classify(self, rows: list[ClassificationInput]) -> list[Optional[AiClassification]]:
        call_number = len(self.batches)
        self.batches.append(len(rows))
        failure = self.failures.get(call_number)
        if failure is not None:
            raise failure
        return [self.answers.get(row.description) for row in rows]

    async def summarize(self, stats: StatementSummaryInput) -> AiNarrative:
        if self.summary_failure is not None:
            raise self.summary_failure
        return self.narrative
