"""
Tests for confidence scoring.
"""

from statement_desk.models.enums import DirectionSource, TransactionType
from statement_desk.pipeline.confidence_scorer import (
    DEFAULT_DIRECTION_CAP,
    FALLBACK_LAYOUT_CAP,
    SHORT_DESCRIPTION_CAP,
    score_transaction,
)
from statement_desk.schemas.contracts import UnrecognizedLayout


def _resolved(make_row, source=DirectionSource.BALANCE, confidence=0.98, **kwargs):
    return make_row(
        direction=TransactionType.DEBIT,
        direction_source=source,
        direction_confidence=confidence,
        **kwargs,
    )


class TestScoreTransaction:
    """Test the weighted blend and caps."""

    def test_balance_confirmed_row(self, make_row):
        result = score_transaction(_resolved(make_row), 0.90)
        assert result.score == 95
        assert result.caps_applied == []

    def test_default_direction_cap(self, make_row):
        row = _resolved(make_row, source=DirectionSource.DEFAULT, confidence=0.30)
        result = score_transaction(row, 0.90)
        assert result.score == DEFAULT_DIRECTION_CAP
        assert "DEFAULT_DIRECTION" in result.caps_applied

    def test_fallback_layout_cap(self, make_row):
        row = _resolved(make_row, layout=UnrecognizedLayout())
        result = score_transaction(row, 0.90)
        assert result.score == FALLBACK_LAYOUT_CAP
        assert "FALLBACK_LAYOUT" in result.caps_applied

    def test_short_description_cap(self, make_row):
        row = _resolved(make_row, description="ATM")
        result = score_transaction(row, 0.90)
        assert result.score == SHORT_DESCRIPTION_CAP

    def test_weak_classification_lowers_score(self, make_row):
        strong = score_transaction(_resolved(make_row), 0.90)
        weak = score_transaction(_resolved(make_row), 0.30)
        assert weak.score < strong.score

    def test_field_scores_reported(self, make_row):
        result = score_transaction(_resolved(make_row), 0.90)
        assert result.field_scores["layout"] == 1.0
        assert result.field_scores["direction"] == 0.98
