"""
Read the custody request id back out of a finalized document.

The id is written twice: into the info dictionary by ``PdfSigner.tag`` and
into the seal reason by ``PdfSealer``. An incremental save may repeat the
info dictionary. A damaged copy must not hide the others, so every readable
copy is returned.
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Iterable, List, Optional

from pyhanko.pdf_utils import generic
from pyhanko.pdf_utils.misc import PdfError
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from ..models.stamp_marker import (
    CUSTODY_MARKER_KEY,
    CUSTODY_MARKER_PATTERN,
    REASON_MARKER_PATTERN,
    SEAL_REASON_PATTERN,
)

logger = logging.getLogger(__name__)


def decode_pdf_string(token: bytes) -> Optional[str]:
    """Decode a literal ``(...)`` or hex ``<...>`` string token; None if malformed."""
    stream = BytesIO(token)
    try:
        if token.startswith(b"<"):
            value = generic.read_hex_string_from_stream(stream)
        else:
            value = generic.read_string_from_stream(stream)
    except (PdfError, ValueError) as exc:
        logger.debug("Undecodable PDF string %r: %s", token[:64], exc)
        return None
    if isinstance(value, bytes):
        value = value.decode("latin-1")
    return str(value).strip() or None


def _metadata_marker(data: bytes) -> Optional[str]:
    try:
        meta = PdfReader(BytesIO(data), strict=False).metadata
        value = meta.get(CUSTODY_MARKER_KEY) if meta else None
    except (PyPdfError, KeyError, IndexError, TypeError, AttributeError, ValueError, OSError) as exc:
        logger.debug("Info dictionary unreadable: %s", exc)
        return None
    if value is None:
        return None
    return str(value).strip() or None


def _unique(values: Iterable[Optional[str]]) -> List[str]:
    seen = set()
    out: List[str] = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out


def seal_reasons(data: bytes) -> List[str]:
    """Decoded ``/Reason`` values, newest first."""
    found = [decode_pdf_string(m.group(1)) for m in SEAL_REASON_PATTERN.finditer(data)]
    return _unique(reversed(found))


def custody_markers(data: bytes) -> List[str]:
    """Every request id the document claims, most trustworthy first, without duplicates."""
    candidates: List[Optional[str]] = [_metadata_marker(data)]
    raw = [decode_pdf_string(m.group(1)) for m in CUSTODY_MARKER_PATTERN.finditer(data)]
    candidates.extend(reversed(raw))
    for reason in seal_reasons(data):
        candidates.extend(m.group(1) for m in REASON_MARKER_PATTERN.finditer(reason))
    return _unique(candidates)
