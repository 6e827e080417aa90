"""
Balance solver - credit/debit resolution and reconciliation.

Every row leaves with a direction. Decision order:
1. Explicit marker on the amount (minus, parentheses, DR/CR) or a labelled column
2. Running balance chain: previous balance -/+ amount == printed balance
3. Document sign convention: when other amounts carry a debit marker,
   unmarked amounts are credits (and the reverse for CR-marked statements)
4. Description keywords
5. Default to debit at low confidence
"""

import re
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from statement_desk.models.enums import DirectionSource, TransactionType
from statement_desk.pipeline.amount_parser import parse_amount
from statement_desk.schemas.contracts import RawRow


# Tolerance ladder for balance matching
TOLERANCES = [
    Decimal("0.00"),    # Exact match
    Decimal("0.01"),    # One cent (common rounding)
    Decimal("0.02"),
    Decimal("0.05"),    # Minor OCR error
]

_TOLERANCE_CONFIDENCE = {
    Decimal("0.00"): 0.98,
    Decimal("0.01"): 0.95,
    Decimal("0.02"): 0.90,
    Decimal("0.05"): 0.80,
}

CREDIT_KEYWORDS = [
    r"\bdeposit", r"\bcredit\b", r"\bpayroll\b", r"\bsalary\b", r"\bwages?\b",
    r"\brefund", r"\binterest\s+(paid|earned|credit)", r"\btransfer\s+from\b",
    r"\breceived\b", r"\breversal\b", r"\bcashback\b", r"\bdividend", r"\bfaster\s+payment\s+received",
    r"\bzelle\s+from\b", r"\bbacs\s+credit",
]

DEBIT_KEYWORDS = [
    r"\bwithdrawal", r"\bdebit\b", r"\bpurchase", r"\bpayment\b", r"\bfee\b", r"\bfees\b",
    r"\batm\b", r"\bpos\b", r"\bcheck\s*#?\s*\d+", r"\bcheque\b", r"\bcard\b", r"\btransfer\s+to\b",
    r"\bcharge\b", r"\bbill\b", r"\bdirect\s+debit\b", r"\bstanding\s+order\b", r"\bzelle\s+to\b",
]

_CREDIT_RES = [re.compile(p, re.IGNORECASE) for p in CREDIT_KEYWORDS]
_DEBIT_RES = [re.compile(p, re.IGNORECASE) for p in DEBIT_KEYWORDS]


class ReconciliationResult(BaseModel):
    checked: bool = False
    reconciled: bool = False
    expected_closing: Optional[Decimal] = None
    reported_closing: Optional[Decimal] = None
    difference: Optional[Decimal] = None
    balance_confirmed_rate: float = 0.0


def resolve_directions(rows: list[RawRow], opening_balance: Optional[Decimal]) -> list[RawRow]:
    """Assign direction, direction_source and direction_confidence to every row in place."""
    convention = _document_convention(rows)

    current = opening_balance
    for row in rows:
        if row.explicit_direction is not None:
            row.direction = row.explicit_direction
            row.direction_source = row.explicit_source
            row.direction_confidence = 0.90

        chain = _chain_direction(current, row)
        if chain is not None:
            chain_direction, tolerance = chain
            if row.direction is None:
                row.direction = chain_direction
                row.direction_source = DirectionSource.BALANCE
                row.direction_confidence = _TOLERANCE_CONFIDENCE[tolerance]
                row.balance_confirmed = True
            elif row.direction == chain_direction:
                row.balance_confirmed = True
                row.direction_confidence = max(row.direction_confidence, _TOLERANCE_CONFIDENCE[tolerance])

        if row.direction is None and convention is not None:
            row.direction = convention
            row.direction_source = DirectionSource.CONVENTION
            row.direction_confidence = 0.75

        if row.direction is None:
            keyword = keyword_direction(row.description)
            if keyword is not None:
                row.direction = keyword
                row.direction_source = DirectionSource.KEYWORD
                row.direction_confidence = 0.60

        if row.direction is None:
            row.direction = TransactionType.DEBIT
            row.direction_source = DirectionSource.DEFAULT
            row.direction_confidence = 0.30

        # Advance the running balance
        if row.balance is not None:
            current = row.balance
        elif current is not None:
            current = current - row.amount if row.direction == TransactionType.DEBIT else current + row.amount

    return rows


def _chain_direction(current: Optional[Decimal], row: RawRow) -> Optional[tuple[TransactionType, Decimal]]:
    """Test both hypotheses against the printed balance."""
    if current is None or row.balance is None or row.amount == 0:
        return None

    debit_match = _find_best_tolerance(current - row.amount, row.balance)
    credit_match = _find_best_tolerance(current + row.amount, row.balance)

    if debit_match is not None and credit_match is None:
        return TransactionType.DEBIT, debit_match
    if credit_match is not None and debit_match is None:
        return TransactionType.CREDIT, credit_match
    return None


def _find_best_tolerance(computed: Decimal, reported: Decimal) -> Optional[Decimal]:
    """Find the tightest tolerance that matches."""
    diff = abs(computed - reported)
    for tolerance in TOLERANCES:
        if diff <= tolerance:
            return tolerance
    return None


def _document_convention(rows: list[RawRow]) -> Optional[TransactionType]:
    """
    Direction implied for unmarked amounts by the markers used elsewhere.
    Negative signs or DR suffixes mark debits -> unmarked rows are credits.
    CR suffixes alone mark credits -> unmarked rows are debits.
    """
    marks_debits = False
    marks_credits = False
    for row in rows:
        if row.explicit_source != DirectionSource.SIGN:
            continue
        parsed = parse_amount(row.amount_raw)
        if parsed.is_negative:
            marks_debits = True
        elif parsed.sign_convention == "DR_CR":
            marks_credits = True

    if marks_debits and not marks_credits:
        return TransactionType.CREDIT
    if marks_credits and not marks_debits:
        return TransactionType.DEBIT
    return None


def keyword_direction(description: str) -> Optional[TransactionType]:
    """Credit/debit hint from description words; None when both or neither appear."""
    credit = any(r.search(description) for r in _CREDIT_RES)
    debit = any(r.search(description) for r in _DEBIT_RES)
    if credit and not debit:
        return TransactionType.CREDIT
    if debit and not credit:
        return TransactionType.DEBIT
    return None


def reconcile(
    rows: list[RawRow],
    opening_balance: Optional[Decimal],
    closing_balance: Optional[Decimal],
) -> ReconciliationResult:
    """Check opening + signed movements against the closing balance."""
    confirmed_rate = sum(1 for r in rows if r.balance_confirmed) / len(rows) if rows else 0.0
    if opening_balance is None or closing_balance is None or not rows:
        return ReconciliationResult(balance_confirmed_rate=confirmed_rate)

    movement = sum(
        (r.amount if r.direction == TransactionType.CREDIT else -r.amount for r in rows),
        Decimal("0"),
    )
    expected = opening_balance + movement
    difference = closing_balance - expected
    return ReconciliationResult(
        checked=True,
        reconciled=abs(difference) <= TOLERANCES[-1],
        expected_closing=expected,
        reported_closing=closing_balance,
        difference=difference,
        balance_confirmed_rate=confirmed_rate,
    )
