"""Tests for glossary_extractor.core.document_reader module."""

import pytest

from glossary_extractor.core.document_reader import (
    PDFDocument,
    extract_pdf_text,
    is_pdf,
    read_unstructured,
    truncate_text,
)
from glossary_extractor.core.errors import DocumentReadError


# =============================================================================
# truncate_text tests
# =============================================================================


class TestTruncateText:
    """Tests for prompt-length truncation."""

    def test_short_text_unchanged(self):
        assert truncate_text("Hello.", 100) == "Hello."

    def test_exact_length_unchanged(self):
        text = "a" * 50
        assert truncate_text(text, 50) == text

    def test_cuts_at_late_sentence_end(self):
        text = "a" * 90 + ". " + "b" * 50
        result = truncate_text(text, 100)
        assert result == "a" * 90 + "."

    def test_hard_cut_when_sentence_end_too_early(self):
        text = "a" * 10 + ". " + "b" * 200
        result = truncate_text(text, 100)
        assert result == text[:100] + "..."
        assert len(result) == 103

    def test_hard_cut_without_period(self):
        result = truncate_text("x" * 150, 100)
        assert result == "x" * 100 + "..."


# =============================================================================
# PDF reading
# =============================================================================


class TestPDFDocument:
    """Tests for the PyMuPDF wrapper."""

    def test_page_count_and_text(self, pdf_factory):
        data = pdf_factory("First page text", "Second page text")

        with PDFDocument(data) as pdf:
            assert pdf.page_count == 2
            assert pdf.read_text().index("First page") < pdf.read_text().index("Second page")

    def test_close_is_idempotent(self, pdf_factory):
        pdf = PDFDocument(pdf_factory("Text"))
        pdf.close()
        pdf.close()


class TestExtractPdfText:
    """Tests for PDF text extraction."""

    def test_text_from_all_pages(self, pdf_factory):
        text = extract_pdf_text(pdf_factory("Alpha section", "Beta section"))
        assert "Alpha section" in text
        assert "Beta section" in text

    def test_blank_pdf_raises(self, pdf_factory):
        with pytest.raises(DocumentReadError, match="no selectable text"):
            extract_pdf_text(pdf_factory(""))

    def test_corrupt_pdf_raises(self):
        with pytest.raises(DocumentReadError):
            extract_pdf_text(b"%PDF-1.4 broken")


# =============================================================================
# read_unstructured tests
# =============================================================================


class TestReadUnstructured:
    """Tests for document dispatch."""

    def test_is_pdf(self):
        assert is_pdf("manual.PDF")
        assert is_pdf("blob", "application/pdf")
        assert not is_pdf("notes.txt", "text/plain")

    def test_plain_text_decoded(self):
        text = read_unstructured("Café policy".encode("utf-8"), "notes.txt", "text/plain")
        assert text == "Café policy"

    def test_invalid_utf8_replaced(self):
        text = read_unstructured(b"abc\xff", "notes.txt")
        assert text.startswith("abc")

    def test_truncates(self):
        text = read_unstructured(b"z" * 500, "notes.txt", max_length=100)
        assert text == "z" * 100 + "..."

    def test_pdf_by_mimetype(self, pdf_factory):
        text = read_unstructured(pdf_factory("Retention schedule"), "upload.bin", "application/pdf")
        assert "Retention schedule" in text
