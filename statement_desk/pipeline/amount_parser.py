"""
Statement amount parser.

Handles the sign conventions seen across US and UK statements:
- $1,234.56 / £1,234.56 / 1,234.56 / 1234.56
- (1,234.56)        -> negative (parentheses)
- 1,234.56 DR       -> negative (DR/CR suffix)
- 1,234.56 CR       -> positive, explicitly a credit
- -1,234.56 / -$1,234.56 / $-1,234.56  -> negative (leading minus)
- 1,234.56-         -> negative (trailing minus)
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from pydantic import BaseModel


CENTS = Decimal("0.01")

_CURRENCY_MARKERS = ("USD", "GBP", "EUR", "usd", "gbp", "eur", "$", chr(163), chr(8364))
_MINUS_CHARS = ("-", chr(8722))

# A money token inside a statement line. Requires exactly two decimals so
# store numbers, reference codes and dates are not mistaken for amounts.
MONEY_TOKEN_RE = re.compile(
    r"(?<![\w/.,])"
    r"(?:\(\s*)?"
    r"[-−]?(?:[$£€]|USD|GBP|EUR)?\s?[-−]?"
    r"(?:\d{1,3}(?:,\d{3})+|\d+)\.\d{2}"
    r"(?:\s*\))?"
    r"(?:\s?(?:DR|CR)\b)?"
    r"-?"
    r"(?![\w.,])",
    re.IGNORECASE,
)


class AmountParseResult(BaseModel):
    amount: Optional[Decimal] = None
    raw_text: str
    is_negative: bool = False
    sign_convention: Optional[str] = None  # PARENTHESES, DR_CR, MINUS, NONE
    confidence: float = 0.0

    @property
    def magnitude(self) -> Optional[Decimal]:
        return abs(self.amount) if self.amount is not None else None

    @property
    def has_explicit_sign(self) -> bool:
        """True when the text itself says credit or debit."""
        return self.sign_convention not in (None, "NONE")


def parse_amount(raw: str) -> AmountParseResult:
    """
    Parse a monetary amount from statement text.
    Returned amount is signed; callers split it into magnitude + direction.
    """
    s = raw.strip()

    if not s or s in ('-', '--', '---'):
        return AmountParseResult(amount=None, raw_text=raw, confidence=0.0)

    for marker in _CURRENCY_MARKERS:
        s = s.replace(marker, '')
    s = s.strip()

    if not s:
        return AmountParseResult(amount=None, raw_text=raw, confidence=0.0)

    is_negative = False
    sign_convention = 'NONE'

    # Parentheses: (100.00) -> negative
    if s.startswith('(') and s.endswith(')'):
        s = s[1:-1].strip()
        is_negative = True
        sign_convention = 'PARENTHESES'

    # DR/CR suffix: 100.00DR -> negative
    m = re.match(r'^(.+?)\s*(DR|CR|D|C)$', s, re.IGNORECASE)
    if m:
        s = m.group(1).strip()
        suffix = m.group(2).upper()
        if suffix in ('DR', 'D'):
            is_negative = True
        sign_convention = 'DR_CR'

    # Trailing minus: 100.00-
    if not is_negative and s.endswith(_MINUS_CHARS):
        s = s[:-1].strip()
        is_negative = True
        sign_convention = 'MINUS'

    # Leading minus: -100.00 (also "- 100.00" once the currency is stripped)
    if not is_negative and s.startswith(_MINUS_CHARS):
        s = s[1:].strip()
        is_negative = True
        sign_convention = 'MINUS'

    s = s.replace(',', '').replace(' ', '')

    try:
        amount = Decimal(s).quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return AmountParseResult(amount=None, raw_text=raw, confidence=0.0)

    if is_negative:
        amount = -amount

    confidence = 0.95
    if sign_convention in ('DR_CR', 'MINUS'):
        confidence = 0.90

    abs_amount = abs(amount)
    if abs_amount > Decimal('10000000'):
        confidence = 0.5  # Suspiciously large
    if abs_amount == Decimal('0'):
        confidence = 0.80

    return AmountParseResult(
        amount=amount,
        raw_text=raw,
        is_negative=is_negative,
        sign_convention=sign_convention,
        confidence=confidence,
    )


def find_money_tokens(text: str) -> list[re.Match]:
    """All money tokens in a line, left to right."""
    return list(MONEY_TOKEN_RE.finditer(text))


def is_amount_like(text: str) -> bool:
    """Quick check if text looks like it could be a monetary amount."""
    text = text.strip()
    if not text:
        return False
    m = MONEY_TOKEN_RE.fullmatch(text)
    if m:
        return True
    return parse_amount(text).amount is not None
