"""Plain-text extraction for unstructured uploads.

PDFs go through PyMuPDF; everything else is decoded as UTF-8.
"""

import fitz  # PyMuPDF

from glossary_extractor.core.config import ProcessingConfig
from glossary_extractor.core.errors import DocumentReadError


def is_pdf(filename: str, mimetype: str = "") -> bool:
    """True when the filename or media type marks the file as PDF."""
    return filename.lower().endswith(".pdf") or "pdf" in (mimetype or "").lower()


class PDFDocument:
    """In-memory PDF opened from upload bytes."""

    def __init__(self, data: bytes):
        """Open a PDF from raw bytes.

        Args:
            data: PDF file content.
        """
        self._doc = fitz.open(stream=data, filetype="pdf")

    @property
    def page_count(self) -> int:
        """Total number of pages in the document."""
        return len(self._doc)

    def read_text(self) -> str:
        """Read the visible text of every page, separated by blank lines."""
        return "\n\n".join(page.get_text() for page in self._doc)

    def close(self):
        """Close the document."""
        if self._doc:
            self._doc.close()
            self._doc = None

    def __enter__(self):
        return self

    def __exit__(self, _exc_type, _exc_val, _exc_tb):
        self.close()
        return False


def truncate_text(text: str, max_length: int = ProcessingConfig.MAX_TEXT_LENGTH) -> str:
    """Shorten ``text`` to at most ``max_length`` characters (plus an ellipsis).

    Cuts after the last sentence end when one exists past 80% of the limit,
    otherwise hard-cuts and appends "...".
    """
    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    last_sentence = truncated.rfind(".")
    if last_sentence > max_length * ProcessingConfig.TRUNCATION_SENTENCE_RATIO:
        return truncated[: last_sentence + 1]
    return truncated + "..."


def extract_pdf_text(data: bytes) -> str:
    """Extract selectable text from PDF bytes.

    Raises:
        DocumentReadError: If the PDF cannot be opened or has no text layer.
    """
    try:
        with PDFDocument(data) as pdf:
            text = pdf.read_text()
    except Exception as e:
        raise DocumentReadError(f"Failed to extract text from file: {e}") from e

    if not text.strip():
        raise DocumentReadError("PDF has no selectable text")
    return text


def read_unstructured(
    data: bytes,
    filename: str,
    mimetype: str = "",
    max_length: int = ProcessingConfig.MAX_TEXT_LENGTH,
) -> str:
    """Return the (truncated) text content of a document.

    Args:
        data: Raw file bytes.
        filename: Original filename.
        mimetype: Declared media type.
        max_length: Truncation limit in characters.

    Raises:
        DocumentReadError: If text extraction fails.
    """
    if is_pdf(filename, mimetype):
        text = extract_pdf_text(data)
    else:
        text = data.decode("utf-8", errors="replace")
    return truncate_text(text, max_length)
