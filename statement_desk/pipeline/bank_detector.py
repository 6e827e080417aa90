"""
Bank detection from statement header text.
Each known bank carries its numeric date order so segmentation can read
03/04 the way that bank prints it.
"""

import re
from typing import Optional

from pydantic import BaseModel


class BankFormat(BaseModel):
    key: str
    display_name: str
    day_first: bool


class BankDetection(BaseModel):
    bank: Optional[BankFormat] = None
    confidence: float = 0.0
    signals: list[str] = []

    @property
    def bank_type(self) -> str:
        return self.bank.key if self.bank else "generic"


# key -> (display name, day-first dates, patterns)
BANK_PATTERNS: dict[str, tuple[str, bool, list[str]]] = {
    # ── US ────────────────────────────────────────────────────
    "chase": ("Chase", False, [
        r"\bchase\b",
        r"jpmorgan\s+chase",
        r"chase\.com",
    ]),
    "bank_of_america": ("Bank of America", False, [
        r"bank\s+of\s+america",
        r"bankofamerica\.com",
    ]),
    "wells_fargo": ("Wells Fargo", False, [
        r"wells\s+fargo",
        r"wellsfargo\.com",
    ]),
    "citibank": ("Citibank", False, [
        r"citibank",
        r"\bciti\b",
        r"citi\.com",
    ]),
    "capital_one": ("Capital One", False, [
        r"capital\s+one",
        r"capitalone\.com",
    ]),
    "us_bank": ("U.S. Bank", False, [
        r"u\.s\.\s+bank",
        r"usbank\.com",
    ]),
    "pnc": ("PNC", False, [
        r"\bpnc\b",
        r"pnc\s+bank",
    ]),
    # ── UK ────────────────────────────────────────────────────
    "barclays": ("Barclays", True, [
        r"barclays",
        r"sort\s+code\s*:?\s*20[\-\s]\d{2}[\-\s]\d{2}",
    ]),
    "hsbc": ("HSBC", True, [
        r"\bhsbc\b",
        r"sort\s+code\s*:?\s*40[\-\s]\d{2}[\-\s]\d{2}",
    ]),
    "lloyds": ("Lloyds", True, [
        r"lloyds",
        r"sort\s+code\s*:?\s*30[\-\s]\d{2}[\-\s]\d{2}",
    ]),
    "natwest": ("NatWest", True, [
        r"natwest",
        r"national\s+westminster",
    ]),
    "santander": ("Santander", True, [
        r"santander",
        r"sort\s+code\s*:?\s*09[\-\s]\d{2}[\-\s]\d{2}",
    ]),
    "halifax": ("Halifax", True, [
        r"halifax",
    ]),
    "nationwide": ("Nationwide", True, [
        r"nationwide\s+building\s+society",
    ]),
    "monzo": ("Monzo", True, [
        r"monzo",
        r"sort\s+code\s*:?\s*04[\-\s]00[\-\s]04",
    ]),
    "starling": ("Starling", True, [
        r"starling\s+bank",
        r"sort\s+code\s*:?\s*60[\-\s]83[\-\s]71",
    ]),
    "revolut": ("Revolut", True, [
        r"revolut",
    ]),
}

# A sort code anywhere means UK conventions even for an unknown bank
_UK_SIGNALS = [r"sort\s+code", r"\bgbp\b", chr(163)]


def detect_bank(page_texts: list[str]) -> BankDetection:
    """
    Detect the bank from the first pages of the statement.
    Score grows with the number of distinct patterns matched.
    """
    combined_text = " ".join(page_texts[:2]).lower()
    best: Optional[BankFormat] = None
    best_score = 0.0
    best_signals: list[str] = []

    for key, (display_name, day_first, patterns) in BANK_PATTERNS.items():
        signals = []
        for pattern in patterns:
            if re.search(pattern, combined_text, re.IGNORECASE):
                signals.append(f"{key}:{pattern[:30]}")

        if signals:
            score = min(len(signals) * 0.4, 1.0)
            if score > best_score:
                best_score = score
                best = BankFormat(key=key, display_name=display_name, day_first=day_first)
                best_signals = signals

    return BankDetection(bank=best, confidence=best_score, signals=best_signals)


def infer_day_first(page_texts: list[str], detection: BankDetection) -> Optional[bool]:
    """
    Numeric date order for this document.
    Known bank wins; otherwise UK currency/sort-code signals imply day-first.
    None means the order is unknown.
    """
    if detection.bank is not None:
        return detection.bank.day_first
    combined_text = " ".join(page_texts[:2]).lower()
    if any(re.search(p, combined_text) for p in _UK_SIGNALS):
        return True
    return None
