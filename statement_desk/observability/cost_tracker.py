"""
Per-parse cost instrumentation for external OCR and AI calls.
Measured per call, summarised into the parse metadata.
"""

from typing import Optional

import structlog

from statement_desk.config import settings
from statement_desk.observability.metrics import external_api_cost_usd, external_api_latency_seconds

logger = structlog.get_logger(__name__)


class CostTracker:
    """Track costs of external API calls for one parse invocation."""

    def __init__(self, user_id: Optional[str] = None):
        self.user_id = user_id
        self._events: list[dict] = []

    def record(
        self,
        engine_name: str,
        operation: str,
        page_count: int = 0,
        cost_usd: float = 0.0,
        latency_ms: int = 0,
    ) -> None:
        """Record a cost event in memory and in Prometheus."""
        external_api_cost_usd.labels(
            engine_name=engine_name,
            operation=operation,
        ).inc(cost_usd)

        external_api_latency_seconds.labels(
            engine_name=engine_name,
            operation=operation,
        ).observe(latency_ms / 1000.0)

        self._events.append({
            "engine_name": engine_name,
            "operation": operation,
            "page_count": page_count,
            "cost_usd": cost_usd,
            "latency_ms": latency_ms,
        })

        logger.debug(
            "cost_event_recorded",
            engine_name=engine_name,
            operation=operation,
            cost_usd=cost_usd,
            latency_ms=latency_ms,
        )

    @property
    def total_cost_usd(self) -> float:
        return round(sum(e["cost_usd"] for e in self._events), 6)

    def summary(self) -> dict:
        """Return summary of all cost events for this parse."""
        total_pages = sum(e["page_count"] for e in self._events)
        return {
            "total_cost_usd": self.total_cost_usd,
            "total_pages": total_pages,
            "event_count": len(self._events),
            "events": list(self._events),
        }


def estimate_ocr_cost(page_count: int, cost_per_1000: Optional[float] = None) -> dict:
    """
    Estimate cloud OCR cost for a document before processing it.
    Document text detection is billed per page.
    """
    rate = settings.OCR_COST_PER_1000_PAGES_USD if cost_per_1000 is None else cost_per_1000
    pages = max(page_count, 0)
    return {
        "pages": pages,
        "cost_per_1000": rate,
        "estimated_cost": round(pages / 1000 * rate, 4),
        "currency": "USD",
    }
