"""
Anomaly detection - secondary pass over enriched transactions.
Annotates, never filters. One anomaly per transaction: highest severity wins.

Checks:
- Unusual amount: robust z-score of debit magnitudes (median / MAD, mean
  absolute deviation when the MAD is zero)
- Duplicate: same date, amount and merchant
- Round amount: large whole-hundred debits
- Geographic: foreign/international charge from a merchant seen once
"""

from collections import Counter, defaultdict
from decimal import Decimal
from typing import Optional

import numpy as np
import structlog

from statement_desk.config import settings
from statement_desk.models.enums import SEVERITY_RANK, AnomalySeverity, AnomalyType, TransactionType
from statement_desk.schemas.transactions import Anomaly, Transaction

logger = structlog.get_logger(__name__)

# Mean absolute deviation -> standard deviation for normal data, sqrt(pi / 2)
MEAN_AD_TO_SIGMA = 1.2533

FOREIGN_MARKERS = [
    "foreign transaction", "foreign exch", "intl", "international", "fx fee",
    "non-sterling", "non sterling", "currency conversion", "cross-border", "cross border",
]


class AnomalyDetector:
    """Statistical and rule checks over one statement's transactions."""

    def __init__(
        self,
        z_threshold: float = settings.ANOMALY_Z_THRESHOLD,
        min_sample: int = settings.ANOMALY_MIN_SAMPLE,
        round_amount_min: float = settings.ANOMALY_ROUND_AMOUNT_MIN,
    ):
        self.z_threshold = z_threshold
        self.min_sample = min_sample
        self.round_amount_min = Decimal(str(round_amount_min))

    def detect(self, transactions: list[Transaction]) -> dict[int, Anomaly]:
        """Return anomalies keyed by transaction index."""
        found: dict[int, Anomaly] = {}
        for index, anomaly in (
            self._unusual_amounts(transactions)
            + self._duplicates(transactions)
            + self._round_amounts(transactions)
            + self._foreign_one_offs(transactions)
        ):
            current = found.get(index)
            if current is None or SEVERITY_RANK[anomaly.severity] > SEVERITY_RANK[current.severity]:
                found[index] = anomaly

        if found:
            logger.info("anomalies_detected", count=len(found), total=len(transactions))
        return found

    def _unusual_amounts(self, transactions: list[Transaction]) -> list[tuple[int, Anomaly]]:
        debit_indices = [i for i, t in enumerate(transactions) if t.transaction_type == TransactionType.DEBIT]
        if len(debit_indices) < self.min_sample:
            return []

        amounts = np.array([float(transactions[i].amount) for i in debit_indices])
        median = float(np.median(amounts))

        from scipy.stats import median_abs_deviation
        scale = float(median_abs_deviation(amounts, scale="normal"))
        if scale == 0.0:
            # More than half the debits are identical (subscriptions, fixed fees):
            # fall back to the mean absolute deviation around the median
            scale = float(np.mean(np.abs(amounts - median))) * MEAN_AD_TO_SIGMA
        if scale == 0.0:
            return []

        results = []
        for i, amount in zip(debit_indices, amounts):
            z = (amount - median) / scale
            if z <= self.z_threshold:
                continue
            severity = AnomalySeverity.HIGH if z > self.z_threshold * 2 else AnomalySeverity.MEDIUM
            results.append((i, Anomaly(
                type=AnomalyType.UNUSUAL_AMOUNT,
                severity=severity,
                description=(
                    f"Debit of {transactions[i].amount:.2f} is far above the typical "
                    f"{median:.2f} for this statement (robust z-score {z:.1f})"
                ),
                recommendation="Confirm this charge was expected.",
            )))
        return results

    def _duplicates(self, transactions: list[Transaction]) -> list[tuple[int, Anomaly]]:
        groups: dict[tuple, list[int]] = defaultdict(list)
        for i, t in enumerate(transactions):
            merchant = (t.normalized_merchant or t.description).lower()
            groups[(t.date, t.amount, t.transaction_type, merchant)].append(i)

        results = []
        for (tx_date, amount, tx_type, _), indices in groups.items():
            if len(indices) < 2:
                continue
            severity = AnomalySeverity.MEDIUM if tx_type == TransactionType.DEBIT else AnomalySeverity.LOW
            # The first occurrence is the original
            for i in indices[1:]:
                results.append((i, Anomaly(
                    type=AnomalyType.DUPLICATE,
                    severity=severity,
                    description=(
                        f"{len(indices)} transactions of {amount:.2f} with "
                        f"{transactions[i].normalized_merchant or transactions[i].description} on {tx_date.isoformat()}"
                    ),
                    recommendation="Check whether this charge was applied more than once.",
                )))
        return results

    def _round_amounts(self, transactions: list[Transaction]) -> list[tuple[int, Anomaly]]:
        results = []
        for i, t in enumerate(transactions):
            if t.transaction_type != TransactionType.DEBIT or t.amount < self.round_amount_min:
                continue
            if t.amount % 100 != 0:
                continue
            results.append((i, Anomaly(
                type=AnomalyType.ROUND_AMOUNT,
                severity=AnomalySeverity.LOW,
                description=f"Large round-number debit of {t.amount:.2f}",
                recommendation="Round-number transfers are worth a second look if unrecognised.",
            )))
        return results

    def _foreign_one_offs(self, transactions: list[Transaction]) -> list[tuple[int, Anomaly]]:
        merchant_counts = Counter((t.normalized_merchant or t.description).lower() for t in transactions)
        results = []
        for i, t in enumerate(transactions):
            if t.transaction_type != TransactionType.DEBIT:
                continue
            if not _is_foreign(t.description):
                continue
            if merchant_counts[(t.normalized_merchant or t.description).lower()] > 1:
                continue
            results.append((i, Anomaly(
                type=AnomalyType.GEOGRAPHIC,
                severity=AnomalySeverity.MEDIUM,
                description=f"International charge from a merchant seen only once: {t.normalized_merchant or t.description}",
                recommendation="Verify the card was used abroad or online with this merchant.",
            )))
        return results


def _is_foreign(description: str) -> bool:
    lowered = description.lower()
    return any(marker in lowered for marker in FOREIGN_MARKERS)


def strongest(first: Optional[Anomaly], second: Optional[Anomaly]) -> Optional[Anomaly]:
    """Pick the higher-severity anomaly; the first wins ties."""
    if first is None:
        return second
    if second is None:
        return first
    return second if SEVERITY_RANK[second.severity] > SEVERITY_RANK[first.severity] else first
