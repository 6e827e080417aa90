"""
In-memory PDF handling with PyMuPDF.
Validates the upload, counts pages, cuts single pages out for OCR and
renders pages to images. Nothing touches disk.
"""

from typing import Optional

import fitz  # PyMuPDF
import structlog
from PIL import Image

from statement_desk.pipeline.errors import InvalidInputError

logger = structlog.get_logger(__name__)

PDF_MAGIC = b"%PDF-"

# Fewer vector paths than this on a text-less page is decoration, not outlined text
OUTLINED_TEXT_MIN_PATHS = 25


class PdfDocument:
    """A validated PDF opened from bytes. Use as a context manager."""

    def __init__(self, pdf_bytes: bytes):
        if not pdf_bytes:
            raise InvalidInputError("Empty file: expected PDF bytes")
        # Some generators prepend junk before the header; allow a short lead-in
        if PDF_MAGIC not in pdf_bytes[:1024]:
            raise InvalidInputError("File is not a PDF (missing %PDF- header)")

        try:
            self._doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        except (fitz.FileDataError, RuntimeError, ValueError) as e:
            raise InvalidInputError(f"Corrupted PDF: {e}") from e

        if self._doc.needs_pass:
            self._doc.close()
            raise InvalidInputError("PDF is password protected")
        if self._doc.page_count == 0:
            self._doc.close()
            raise InvalidInputError("PDF has no pages")

        self.pdf_bytes = pdf_bytes

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    def _check_page(self, page_number: int) -> int:
        if not 1 <= page_number <= self.page_count:
            raise InvalidInputError(
                f"Page {page_number} out of range (document has {self.page_count} pages)"
            )
        return page_number - 1

    def needs_ocr(self, page_number: int, native_text: Optional[str] = None) -> bool:
        """
        True when the page shows content only OCR can read: an embedded image,
        or text drawn as vector outlines on a page with no text layer at all.
        Rules and table borders on a text page do not count.
        """
        page = self._doc[self._check_page(page_number)]
        if page.get_images(full=False):
            return True
        if native_text and native_text.strip():
            return False
        return len(page.get_drawings()) >= OUTLINED_TEXT_MIN_PATHS

    def split_page(self, page_number: int) -> bytes:
        """Return a one-page PDF containing only `page_number` (1-based)."""
        index = self._check_page(page_number)
        single = fitz.open()
        try:
            single.insert_pdf(self._doc, from_page=index, to_page=index)
            return single.tobytes()
        finally:
            single.close()

    def render_page(self, page_number: int, dpi: int = 300) -> Image.Image:
        """Render one page to an RGB PIL image."""
        index = self._check_page(page_number)
        pix = self._doc[index].get_pixmap(dpi=dpi)
        return Image.frombytes("RGB", [pix.width, pix.height], pix.samples)

    def close(self) -> None:
        self._doc.close()

    def __enter__(self) -> "PdfDocument":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def render_pdf_page(pdf_bytes: bytes, page_number: int = 1, dpi: int = 300) -> Image.Image:
    """Render a page of a PDF held in memory."""
    with PdfDocument(pdf_bytes) as doc:
        return doc.render_page(page_number, dpi=dpi)
