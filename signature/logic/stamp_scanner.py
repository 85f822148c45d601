"""Find the approver identities already stamped into a PDF."""

from __future__ import annotations

import logging
from io import BytesIO
from typing import List

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from ..models.stamp_marker import STAMP_PATTERN

logger = logging.getLogger(__name__)


def _unique(values) -> List[str]:
    seen = set()
    out: List[str] = []
    for v in values:
        key = v.strip().lower()
        if key and key not in seen:
            seen.add(key)
            out.append(v.strip())
    return out


def scan_raw(data: bytes) -> List[str]:
    """Stamp identities visible in uncompressed content streams."""
    text = data.decode("latin-1", errors="ignore")
    return _unique(m.group(1) for m in STAMP_PATTERN.finditer(text))


def scan_text(data: bytes) -> List[str]:
    """Stamp identities found through text extraction (handles compressed streams)."""
    found: List[str] = []
    try:
        reader = PdfReader(BytesIO(data))
        for page in reader.pages:
            text = page.extract_text() or ""
            found.extend(m.group(1) for m in STAMP_PATTERN.finditer(text))
    except (PyPdfError, ValueError, KeyError, OSError) as exc:
        logger.debug("Text extraction failed while scanning stamps: %s", exc)
    return _unique(found)


def stamped_identities(data: bytes) -> List[str]:
    """Union of raw and extracted stamp identities, first occurrence wins."""
    return _unique(scan_raw(data) + scan_text(data))
