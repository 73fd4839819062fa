"""
document_loader.py
==================
Extract plain text from an uploaded document (PDF or UTF-8 text).
"""

from __future__ import annotations

import io
import logging
import os
from typing import List

import PyPDF2
from PyPDF2.errors import PyPdfError

from rag_pipeline.errors import EmptyInputError, InputError

logger = logging.getLogger(__name__)

PDF_EXTENSIONS = (".pdf",)
TEXT_EXTENSIONS = (".txt", ".md")


# truncated or malformed files surface from PyPDF2 as any of these
_PDF_ERRORS = (PyPdfError, ValueError, KeyError, TypeError, IndexError, AttributeError, EOFError)


def _read_pdf(content: bytes) -> str:
    try:
        reader = PyPDF2.PdfReader(io.BytesIO(content))
        pages = list(reader.pages)
    except _PDF_ERRORS as exc:
        raise InputError(f"Failed to read PDF: {exc}") from exc

    parts: List[str] = []
    for number, page in enumerate(pages):
        try:
            parts.append(page.extract_text() or "")
        except _PDF_ERRORS as exc:
            logger.warning("Skipping unreadable PDF page %d: %s", number, exc)
    return "\n".join(parts)


def _read_text(content: bytes) -> str:
    for enc in ("utf-8", "utf-16"):
        try:
            return content.decode(enc)
        except UnicodeDecodeError:
            continue
    return content.decode("latin-1")


def load_document_text(filename: str, content: bytes) -> str:
    """
    Return the text of ``content``, dispatching on the file extension
    (falling back to the ``%PDF`` magic bytes when the name is uninformative).
    """
    ext = os.path.splitext(filename or "")[1].lower()
    if ext in PDF_EXTENSIONS or (not ext and content[:4] == b"%PDF"):
        text = _read_pdf(content)
    elif ext in TEXT_EXTENSIONS or not ext:
        text = _read_text(content)
    else:
        raise InputError(f"Unsupported document type: {ext}")

    if not text or not text.strip():
        raise EmptyInputError("No text found in document")

    logger.info("Extracted %d characters from %s", len(text), filename or "<upload>")
    return text
