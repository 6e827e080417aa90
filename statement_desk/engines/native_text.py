"""
Native text-layer extraction with pdfplumber.
Primary path for PDFs with an embedded text layer.
"""

import io
from typing import Optional

import pdfplumber
import structlog

logger = structlog.get_logger(__name__)

# Horizontal gap (PDF points) that separates two columns on the same line
COLUMN_GAP_POINTS = 12.0


def _words_to_lines(words: list[dict], y_tolerance: float = 3.0) -> list[str]:
    """
    Cluster words into lines by their top coordinate.
    Wide horizontal gaps are kept as a double space so column boundaries
    survive into the plain text.
    """
    if not words:
        return []

    sorted_words = sorted(words, key=lambda w: (round(w["top"], 1), w["x0"]))
    lines: list[list[dict]] = []
    current = [sorted_words[0]]
    current_top = sorted_words[0]["top"]

    for word in sorted_words[1:]:
        if abs(word["top"] - current_top) <= y_tolerance:
            current.append(word)
        else:
            lines.append(current)
            current = [word]
            current_top = word["top"]
    lines.append(current)

    out = []
    for line_words in lines:
        line_words.sort(key=lambda w: w["x0"])
        parts = [line_words[0]["text"]]
        for prev, word in zip(line_words, line_words[1:]):
            sep = "  " if word["x0"] - prev["x1"] > COLUMN_GAP_POINTS else " "
            parts.append(sep + word["text"])
        out.append("".join(parts))
    return out


class PdfPlumberTextExtractor:
    """Reads the embedded text layer of every page."""

    engine_name = "pdfplumber"
    engine_version = "0.11"

    def extract_pages(self, pdf_bytes: bytes) -> list[Optional[str]]:
        """
        Return one entry per page. A page whose text layer cannot be read
        comes back as None so the caller can route it to OCR.
        """
        texts: list[Optional[str]] = []
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            for index, page in enumerate(pdf.pages):
                try:
                    words = page.extract_words(
                        x_tolerance=3,
                        y_tolerance=3,
                        keep_blank_chars=False,
                        use_text_flow=False,
                    )
                except Exception as e:
                    # pdfminer raises a wide range of errors on damaged content streams
                    logger.warning(
                        "native_text_page_failed",
                        page_number=index + 1,
                        error=str(e)[:200],
                    )
                    texts.append(None)
                    continue

                lines = _words_to_lines(words)
                texts.append("\n".join(lines))

                logger.debug(
                    "pdfplumber_extraction_complete",
                    page_number=index + 1,
                    word_count=len(words),
                    line_count=len(lines),
                )
        return texts


def has_text_layer(text: Optional[str], min_chars: int) -> bool:
    """A page counts as native when it carries enough non-whitespace characters."""
    if not text:
        return False
    return sum(1 for c in text if not c.isspace()) >= min_chars
