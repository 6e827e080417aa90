"""
Merchant normalization.
Turns raw statement descriptions into a clean merchant name:
"PURCHASE AUTHORIZED ON 01/14 SQ *BLUE BOTTLE COFFEE S123 OAKLAND CA" -> "Blue Bottle Coffee"
"""

import re


# Processor / channel prefixes, applied repeatedly until none match
PREFIX_PATTERNS = [
    r"^purchase\s+authorized\s+on\s+\d{1,2}/\d{1,2}\s+",
    r"^recurring\s+payment\s+authorized\s+on\s+\d{1,2}/\d{1,2}\s+",
    r"^checkcard\s+\d{4}\s+",
    r"^check\s*card\s+purchase\s+",
    r"^debit\s+card\s+purchase\s*-?\s*",
    r"^card\s+purchase\s*(?:with\s+pin)?\s*-?\s*",
    r"^pos\s+(?:purchase|debit|withdrawal)?\s*-?\s*",
    r"^visa\s+(?:debit|purchase)\s+",
    r"^contactless\s+(?:payment\s+)?",
    r"^card\s+payment\s+to\s+",
    r"^direct\s+debit\s+(?:payment\s+)?(?:to\s+)?",
    r"^ach\s+(?:debit|credit|pmt|payment)\s+",
    r"^online\s+(?:payment|transfer)\s+(?:to\s+)?",
    r"^(?:sq|tst|sp|pp)\s*\*\s*",
    r"^paypal\s*\*\s*",
    r"^in\s*\*\s*",
]

# Raw fragment -> canonical brand. Order matters: "uber eats" before "uber".
BRAND_MAP = [
    (r"prime\s+video", "Amazon Prime Video"),
    (r"amzn\s*mktp|amazon\.com|amazon\s+mktpl|amzn\.com|\bamazon\b|\bamzn\b", "Amazon"),
    (r"wal-?mart|wm\s+supercenter", "Walmart"),
    (r"\btarget\b", "Target"),
    (r"\bcostco\b", "Costco"),
    (r"whole\s*foods|wholefds", "Whole Foods"),
    (r"trader\s+joe", "Trader Joe's"),
    (r"\bkroger\b", "Kroger"),
    (r"\bsafeway\b", "Safeway"),
    (r"\btesco\b", "Tesco"),
    (r"sainsbury", "Sainsbury's"),
    (r"\basda\b", "Asda"),
    (r"starbucks|sbux", "Starbucks"),
    (r"mcdonald", "McDonald's"),
    (r"chipotle", "Chipotle"),
    (r"doordash", "DoorDash"),
    (r"grubhub", "Grubhub"),
    (r"uber\s*\*?\s*eats", "Uber Eats"),
    (r"\buber\b", "Uber"),
    (r"\blyft\b", "Lyft"),
    (r"netflix", "Netflix"),
    (r"spotify", "Spotify"),
    (r"hulu", "Hulu"),
    (r"disney\s*plus|disneyplus", "Disney+"),
    (r"apple\.com/bill|itunes", "Apple"),
    (r"google\s*\*|google\s+play", "Google"),
    (r"\bshell\b", "Shell"),
    (r"chevron", "Chevron"),
    (r"exxon|mobil\b", "ExxonMobil"),
    (r"\bbp\b", "BP"),
    (r"home\s*depot", "Home Depot"),
    (r"\blowe'?s\b", "Lowe's"),
    (r"\bcvs\b", "CVS"),
    (r"walgreens", "Walgreens"),
    (r"comcast|xfinity", "Comcast"),
    (r"verizon", "Verizon"),
    (r"at&t|\batt\b", "AT&T"),
    (r"t-mobile", "T-Mobile"),
    (r"venmo", "Venmo"),
    (r"zelle", "Zelle"),
]

_PREFIX_RES = [re.compile(p, re.IGNORECASE) for p in PREFIX_PATTERNS]
_BRAND_RES = [(re.compile(p, re.IGNORECASE), brand) for p, brand in BRAND_MAP]

_STORE_NUMBER_RE = re.compile(r"\s*(?:#|\bno\.?\s*|\bstore\s*)\s*\d+\b", re.IGNORECASE)
_CARD_MASK_RE = re.compile(r"\b(?:card\s*)?(?:x{2,}|\*{2,})\s*\d{2,4}\b", re.IGNORECASE)
_REFERENCE_RE = re.compile(
    r"\b(?:ref(?:erence)?|conf(?:irmation)?|id|trace|auth)\s*[:#.]?\s*[A-Z0-9\-]{4,}\b",
    re.IGNORECASE,
)
_LONG_CODE_RE = re.compile(r"\b(?=[A-Z0-9]*\d)[A-Z0-9]{6,}\b", re.IGNORECASE)
_DATE_FRAGMENT_RE = re.compile(r"\b\d{1,2}/\d{1,2}(?:/\d{2,4})?\b")
_PHONE_RE = re.compile(r"\b\d{3}[\-.\s]\d{3}[\-.\s]\d{4}\b")
_URL_TAIL_RE = re.compile(r"\b(?:www\.)?([a-z0-9\-]+)\.(?:com|net|org|co\.uk)\b.*$", re.IGNORECASE)
_STATE_SUFFIX_RE = re.compile(r"\s+[A-Z]{2}$")
_CORPORATE_RE = re.compile(r"[\s,]+(?:inc|llc|ltd|corp|co|plc)\.?$", re.IGNORECASE)
_ALNUM_STORE_RE = re.compile(r"\s+[A-Z]\d{2,}\b")

_SMALL_WORDS = {"of", "and", "the", "at", "for", "on"}


def normalize_merchant(description: str) -> str:
    """Best-effort merchant name; falls back to the cleaned description."""
    text = " ".join(description.split())
    if not text:
        return ""

    for pattern, brand in _BRAND_RES:
        if pattern.search(text):
            return brand

    stripped = _strip_prefixes(text)
    stripped = _URL_TAIL_RE.sub(lambda m: m.group(1), stripped)
    stripped = _CARD_MASK_RE.sub(" ", stripped)
    stripped = _REFERENCE_RE.sub(" ", stripped)
    stripped = _DATE_FRAGMENT_RE.sub(" ", stripped)
    stripped = _PHONE_RE.sub(" ", stripped)
    stripped = _STORE_NUMBER_RE.sub(" ", stripped)
    stripped = _ALNUM_STORE_RE.sub(" ", stripped)
    stripped = _LONG_CODE_RE.sub(" ", stripped)
    stripped = " ".join(stripped.split())

    # Trailing "CITY ST": drop the state code, then the city if one word remains after the name
    if _STATE_SUFFIX_RE.search(stripped) and len(stripped.split()) > 2:
        stripped = _STATE_SUFFIX_RE.sub("", stripped)
        words = stripped.split()
        if len(words) > 2:
            stripped = " ".join(words[:-1])

    stripped = _CORPORATE_RE.sub("", stripped)
    stripped = stripped.strip(" -*#.,:")

    if not re.search(r"[A-Za-z]", stripped):
        return _title_case(text)
    return _title_case(stripped)


def _strip_prefixes(text: str) -> str:
    changed = True
    while changed:
        changed = False
        for pattern in _PREFIX_RES:
            new_text = pattern.sub("", text, count=1)
            if new_text != text:
                text = new_text.strip()
                changed = True
    return text


def _title_case(text: str) -> str:
    words = []
    for i, word in enumerate(text.lower().split()):
        if i > 0 and word in _SMALL_WORDS:
            words.append(word)
        elif "'" in word:
            head, _, tail = word.partition("'")
            words.append(head.capitalize() + "'" + tail)
        else:
            words.append(word.capitalize())
    return " ".join(words)
