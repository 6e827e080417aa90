"""
Confidence scoring - weighted model with hard caps.
Per-transaction score 0-100; independent from anomaly flags.
Caps override the weighted blend: a guessed direction or a fallback layout
can never look as trustworthy as a balance-confirmed row.
"""

from pydantic import BaseModel

from statement_desk.models.enums import DirectionSource
from statement_desk.schemas.contracts import RawRow


class ConfidenceResult(BaseModel):
    score: int = 0
    caps_applied: list[str] = []
    field_scores: dict = {}


# ── Weights for transaction-level confidence ─────────────────
TRANSACTION_WEIGHTS = {
    "date": 0.25,
    "amount": 0.20,
    "direction": 0.25,
    "layout": 0.10,
    "classification": 0.20,
}

# ── Caps ─────────────────────────────────────────────────────
DEFAULT_DIRECTION_CAP = 60
FALLBACK_LAYOUT_CAP = 75
SHORT_DESCRIPTION_CAP = 50
SHORT_DESCRIPTION_CHARS = 3


def score_transaction(row: RawRow, classification_strength: float) -> ConfidenceResult:
    """Blend per-field certainties into one 0-100 score."""
    layout_score = 1.0 if row.recognized else 0.5
    fields = {
        "date": row.date_confidence,
        "amount": row.amount_confidence,
        "direction": row.direction_confidence,
        "layout": layout_score,
        "classification": classification_strength,
    }

    weighted = sum(TRANSACTION_WEIGHTS[name] * value for name, value in fields.items())
    score = int(round(weighted * 100))

    # ── Hard caps ────────────────────────────────────────────
    caps = []
    if row.direction_source == DirectionSource.DEFAULT and score > DEFAULT_DIRECTION_CAP:
        score = DEFAULT_DIRECTION_CAP
        caps.append("DEFAULT_DIRECTION")

    if not row.recognized and score > FALLBACK_LAYOUT_CAP:
        score = FALLBACK_LAYOUT_CAP
        caps.append("FALLBACK_LAYOUT")

    if len(row.description.strip()) <= SHORT_DESCRIPTION_CHARS and score > SHORT_DESCRIPTION_CAP:
        score = SHORT_DESCRIPTION_CAP
        caps.append("SHORT_DESCRIPTION")

    return ConfidenceResult(
        score=max(0, min(100, score)),
        caps_applied=caps,
        field_scores={name: round(value, 4) for name, value in fields.items()},
    )
