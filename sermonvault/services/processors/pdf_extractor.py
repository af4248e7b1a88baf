"""
PDF Text Extraction

Pulls the text out of an uploaded sermon PDF with PyMuPDF and normalizes
whitespace so downstream chunking and metadata extraction see clean text.

A document that cannot be opened or contains no extractable text raises
ExtractionError. That is terminal for the upload: retrying the same
bytes will fail the same way.
"""

import asyncio
import re
from dataclasses import dataclass

import fitz  # PyMuPDF

from sermonvault.core.errors import ExtractionError
from sermonvault.core.logging import get_logger

logger = get_logger(__name__)

_HORIZONTAL_WS = re.compile(r"[^\S\n]+")
_SPACE_AROUND_NEWLINE = re.compile(r" ?\n ?")
_BLANK_LINE_RUNS = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class ExtractedDocument:
    """Normalized text of a document plus its page count."""

    text: str
    page_count: int


def normalize_text(text: str) -> str:
    """
    Collapse whitespace in extracted text.

    - runs of spaces/tabs (and stray \\r, \\f) become a single space
    - whitespace-only lines become empty
    - three or more consecutive newlines become one blank line
    - leading/trailing whitespace is stripped
    """
    text = _HORIZONTAL_WS.sub(" ", text)
    text = _SPACE_AROUND_NEWLINE.sub("\n", text)
    text = _BLANK_LINE_RUNS.sub("\n\n", text)
    return text.strip()


def extract_text(content: bytes) -> ExtractedDocument:
    """
    Extract and normalize the text of a PDF held in memory.

    Args:
        content: Raw PDF bytes

    Returns:
        ExtractedDocument with page texts joined by blank lines

    Raises:
        ExtractionError: unreadable, encrypted or text-less document
    """
    if not content:
        raise ExtractionError("Document is empty", provider_name="pymupdf")

    try:
        doc = fitz.open(stream=content, filetype="pdf")
    except (fitz.FileDataError, RuntimeError, ValueError) as e:
        raise ExtractionError(f"Unable to open PDF: {e}", provider_name="pymupdf") from e

    try:
        if doc.needs_pass:
            raise ExtractionError("PDF is password protected", provider_name="pymupdf")

        page_count = doc.page_count
        pages = [page.get_text("text") for page in doc]
    except RuntimeError as e:
        raise ExtractionError(f"Unable to read PDF pages: {e}", provider_name="pymupdf") from e
    finally:
        doc.close()

    text = normalize_text("\n\n".join(pages))
    if not text:
        raise ExtractionError(
            "PDF contains no extractable text (scanned document?)",
            provider_name="pymupdf",
        )

    logger.info("pdf_text_extracted", pages=page_count, characters=len(text))
    return ExtractedDocument(text=text, page_count=page_count)


async def extract_pdf_text(content: bytes) -> ExtractedDocument:
    """Async wrapper running extract_text in a worker thread."""
    return await asyncio.to_thread(extract_text, content)
