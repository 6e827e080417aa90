"""
Rule-based transaction categorizer.
Keyword table -> (category, subcategory, strength). First matching rule wins,
so specific merchants sit above generic channel words ("purchase", "debit").
"""

import re
from typing import Optional

from pydantic import BaseModel

from statement_desk.models.enums import TransactionType


OTHER = "Other"


class CategoryMatch(BaseModel):
    category: str
    subcategory: Optional[str] = None
    # 0-1 certainty of the rule; feeds the confidence blend
    strength: float = 0.0
    matched: Optional[str] = None


# (pattern, category, subcategory, strength)
CATEGORY_RULES: list[tuple[str, str, Optional[str], float]] = [
    # ── Income ───────────────────────────────────────────────
    (r"payroll|direct\s+dep(?:osit)?|salary|wages|\bbacs\s+credit", "Income", "Salary", 0.95),
    (r"interest\s+(?:paid|earned|credit)", "Income", "Interest", 0.90),
    (r"dividend", "Income", "Investment", 0.85),
    (r"tax\s+refund|irs\s+treas|hmrc", "Income", "Tax Refund", 0.90),
    (r"\brefund|reversal|cashback", "Income", "Refund", 0.80),

    # ── Groceries ────────────────────────────────────────────
    (r"wal-?mart|wm\s+supercenter|kroger|safeway|whole\s*foods|wholefds|trader\s+joe|aldi|"
     r"publix|costco|tesco|sainsbury|\basda\b|lidl|morrisons|waitrose|grocery|supermarket",
     "Groceries", "Supermarket", 0.90),

    # ── Dining ───────────────────────────────────────────────
    (r"starbucks|sbux|dunkin|coffee|cafe\b|costa\b|pret\b", "Dining", "Coffee", 0.90),
    (r"uber\s*\*?\s*eats|doordash|grubhub|deliveroo|just\s+eat|postmates", "Dining", "Food Delivery", 0.90),
    (r"mcdonald|burger\s+king|wendy'?s|taco\s+bell|chipotle|subway|kfc|domino|pizza|"
     r"restaurant|grill|diner|bistro|sushi|\bbar\b|pub\b", "Dining", "Restaurants", 0.85),

    # ── Transportation ───────────────────────────────────────
    (r"\buber\b|\blyft\b|taxi|cab\b", "Transportation", "Rideshare", 0.90),
    (r"shell|chevron|exxon|mobil\b|\bbp\b|texaco|sunoco|valero|citgo|fuel|petrol|gas\s+station",
     "Transportation", "Fuel", 0.85),
    (r"parking|toll|e-?zpass|transit|mta\b|tfl\b|metro\b|amtrak|railway|trainline",
     "Transportation", "Transit & Parking", 0.85),

    # ── Subscriptions / Entertainment ────────────────────────
    (r"netflix|spotify|hulu|disney\s*plus|disneyplus|prime\s+video|hbo|youtube\s+premium|"
     r"apple\.com/bill|itunes|patreon", "Subscriptions", "Streaming", 0.90),
    (r"cinema|theat(?:er|re)|amc\b|ticketmaster|steam\s*games|playstation|xbox|nintendo",
     "Entertainment", "Events & Games", 0.80),
    (r"gym|fitness|planet\s+fitness|peloton", "Entertainment", "Fitness", 0.80),

    # ── Shopping ─────────────────────────────────────────────
    (r"amzn|amazon", "Shopping", "Online", 0.85),
    (r"\btarget\b|best\s+buy|macy|nordstrom|ikea|ebay|etsy|home\s*depot|lowe'?s|argos",
     "Shopping", "Retail", 0.80),

    # ── Utilities ────────────────────────────────────────────
    (r"comcast|xfinity|verizon|at&t|t-mobile|sprint|spectrum|internet|broadband|\bbt\b|"
     r"vodafone|\bee\b|o2\b", "Utilities", "Phone & Internet", 0.85),
    (r"electric|power\s+co|energy|pg&e|con\s+ed|duke\s+energy|british\s+gas|octopus|"
     r"water\s+(?:dept|bill|co)|gas\s+co|council\s+tax|utility", "Utilities", "Energy & Water", 0.85),

    # ── Housing / Insurance / Healthcare ─────────────────────
    (r"\brent\b|mortgage|landlord|property\s+mgmt|hoa\b", "Housing", "Rent & Mortgage", 0.90),
    (r"insurance|geico|allstate|state\s+farm|progressive|aviva", "Insurance", None, 0.85),
    (r"pharmacy|cvs|walgreens|boots\b|medical|doctor|dental|hospital|clinic|health",
     "Healthcare", None, 0.80),

    # ── Travel ───────────────────────────────────────────────
    (r"airline|airways|delta\s+air|united\s+air|american\s+air|southwest|ryanair|easyjet|"
     r"hotel|marriott|hilton|airbnb|expedia|booking\.com", "Travel", None, 0.85),

    # ── Banking ──────────────────────────────────────────────
    (r"overdraft|\bfee\b|fees\b|service\s+charge|maintenance\s+charge|\bnsf\b",
     "Banking Fees", None, 0.90),
    (r"\batm\b|cash\s+withdrawal|withdrawal", "ATM/Cash", None, 0.85),
    (r"transfer|\btfr\b|zelle|venmo|paypal|wire\b|standing\s+order", "Transfers", None, 0.75),
    (r"\bcheck\b|\bchk\b|cheque", "Check", None, 0.70),
    (r"credit\s+card\s+(?:payment|pmt)|card\s+services|autopay|payment\s+thank\s+you",
     "Transfers", "Card Payment", 0.75),
]

_COMPILED = [
    (re.compile(pattern, re.IGNORECASE), category, subcategory, strength)
    for pattern, category, subcategory, strength in CATEGORY_RULES
]


def categorize(description: str, transaction_type: Optional[TransactionType] = None) -> CategoryMatch:
    """
    Categorize a transaction description.
    Income rules only apply to credits, and credits with no rule land in Income.
    """
    for pattern, category, subcategory, strength in _COMPILED:
        m = pattern.search(description)
        if not m:
            continue
        if category == "Income" and transaction_type == TransactionType.DEBIT:
            continue
        return CategoryMatch(category=category, subcategory=subcategory, strength=strength, matched=m.group(0))

    if transaction_type == TransactionType.CREDIT:
        return CategoryMatch(category="Income", subcategory="Other Income", strength=0.5)
    return CategoryMatch(category=OTHER, strength=0.3)
