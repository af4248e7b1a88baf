"""
Tests for PDF text extraction.

PDFs are generated in memory with PyMuPDF, so no fixture files are needed.
"""

import pytest

from sermonvault.core.errors import ExtractionError
from sermonvault.services.processors.pdf_extractor import (
    extract_pdf_text,
    extract_text,
    normalize_text,
)
from tests.conftest import SERMON_TEXT, make_pdf


class TestNormalizeText:
    """Test whitespace normalization."""

    def test_collapses_spaces_and_blank_lines(self):
        assert normalize_text("a \t b\n \n\n\n c ") == "a b\n\nc"

    def test_keeps_single_newlines(self):
        assert normalize_text("line one\nline two") == "line one\nline two"

    def test_empty(self):
        assert normalize_text("  \n\n ") == ""


class TestExtractText:
    """Test extract_text() against generated PDFs."""

    def test_extracts_sermon_text(self):
        document = extract_text(make_pdf(SERMON_TEXT))

        assert document.page_count == 1
        assert "Ephesians" in document.text
        assert "Grace" in document.text
        assert "  " not in document.text

    def test_joins_pages(self):
        document = extract_text(make_pdf("First page sermon text.", "Second page closing prayer."))

        assert document.page_count == 2
        assert document.text.index("First page") < document.text.index("Second page")

    def test_blank_pdf_raises(self):
        with pytest.raises(ExtractionError, match="no extractable text"):
            extract_text(make_pdf(""))

    def test_garbage_bytes_raise(self):
        with pytest.raises(ExtractionError):
            extract_text(b"this is not a pdf at all")

    def test_empty_bytes_raise(self):
        with pytest.raises(ExtractionError, match="empty"):
            extract_text(b"")

    def test_error_names_provider(self):
        with pytest.raises(ExtractionError) as exc_info:
            extract_text(b"")
        assert exc_info.value.provider_name == "pymupdf"


@pytest.mark.asyncio
class TestExtractPdfTextAsync:
    """Test the thread-offloaded wrapper."""

    async def test_async_wrapper(self):
        document = await extract_pdf_text(make_pdf(SERMON_TEXT))
        assert document.page_count == 1
        assert "Moses" in document.text
