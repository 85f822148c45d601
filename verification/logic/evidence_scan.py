"""
Best-effort evidence scan over raw document bytes.

Pattern matching only: it finds the seal's signature dictionary, visible
approver stamps and the embedded custody request ids without parsing the
cryptographic structure. String values are decoded with pyHanko's literal
reader. The authoritative answer always comes from the hash and ledger
cross-check; a stricter seal check is available in seal_inspector.
"""

from __future__ import annotations

import re
from typing import List, Optional

from core.helpers.date_time_helper import parse_pdf_date
from signature.logic.marker_scanner import custody_markers, decode_pdf_string
from signature.logic.stamp_scanner import stamped_identities
from signature.models.stamp_marker import PDF_STRING_TOKEN
from verification.models.verification_report import SealFinding

_SIG_TYPE = re.compile(rb"/Type\s*/Sig\b")
_SIG_NAME = re.compile(rb"/Name\s*" + PDF_STRING_TOKEN, re.S)
_SIG_REASON = re.compile(rb"/Reason\s*" + PDF_STRING_TOKEN, re.S)
_SIG_DATE = re.compile(rb"/M\s*" + PDF_STRING_TOKEN, re.S)


def _value(pattern: re.Pattern, obj: bytes) -> Optional[str]:
    m = pattern.search(obj)
    return decode_pdf_string(m.group(1)) if m else None


def _signature_object(data: bytes, match: re.Match) -> bytes:
    """Bytes of the indirect object enclosing *match*, or a window around it."""
    start = data.rfind(b" obj", 0, match.start())
    end = data.find(b"endobj", match.end())
    if start < 0:
        start = max(0, match.start() - 4096)
    if end < 0:
        end = min(len(data), match.end() + 4096)
    return data[start:end]


def scan_seal(data: bytes) -> SealFinding:
    """Locate the last signature dictionary and read its metadata."""
    matches = list(_SIG_TYPE.finditer(data))
    if not matches:
        return SealFinding()
    obj = _signature_object(data, matches[-1])

    date = _value(_SIG_DATE, obj)
    return SealFinding(
        found=True,
        valid=True,
        signer=_value(_SIG_NAME, obj),
        reason=_value(_SIG_REASON, obj),
        signed_at=parse_pdf_date(date) if date else None,
        message="Seal present (pattern scan, signature bytes not validated)",
    )


def scan_stamps(data: bytes) -> List[str]:
    return stamped_identities(data)


def scan_custody_markers(data: bytes) -> List[str]:
    """Request ids claimed by the info dictionary and the seal reason."""
    return custody_markers(data)
