"""
pdf_helper.py

Small structural checks on PDF bytes shared by request intake and
verification. Content hashing lives here too so both sides hash the same way.
"""

from __future__ import annotations

import hashlib
from io import BytesIO

from pypdf import PdfReader
from pypdf.errors import PyPdfError

PDF_MAGIC = b"%PDF"


def content_hash(data: bytes) -> str:
    """SHA-256 of exactly *data*, lower-case hex (64 chars)."""
    return hashlib.sha256(data).hexdigest()


def has_pdf_header(data: bytes) -> bool:
    # tolerate leading garbage the way common readers do
    return bool(data) and PDF_MAGIC in data[:1024]


def count_pages(data: bytes) -> int:
    """
    Parse *data* and return its page count.

    Raises:
        ValueError: not a PDF, or the structure cannot be parsed
    """
    if not has_pdf_header(data):
        raise ValueError("missing %PDF header")
    try:
        reader = PdfReader(BytesIO(data))
        return len(reader.pages)
    except (PyPdfError, ValueError, KeyError, IndexError, TypeError, AttributeError, OSError) as exc:
        raise ValueError(f"unparseable PDF structure: {exc}") from exc
