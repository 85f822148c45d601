"""
Markers written into finalized documents and read back by verification.

- Visible stamps start with ``STAMP_PREFIX`` followed by the approver identity.
- The document info dictionary carries ``CUSTODY_MARKER_KEY`` with the
  request id; the seal reason repeats it after ``REASON_MARKER_PREFIX``.

Writers escape string literals (``-`` may appear as ``\\055``), so the byte
patterns capture the whole string token; decode it before matching text.
"""

from __future__ import annotations

import re

STAMP_PREFIX = "Signed by: "
STAMP_PATTERN = re.compile(r"Signed by:\s*([^\s()<>\\]+@[^\s()<>\\]+)")

# literal "(...)" with escapes, or hex "<...>"
PDF_STRING_TOKEN = rb"(\((?:[^()\\]|\\.)*\)|<[0-9A-Fa-f\s]*>)"

CUSTODY_MARKER_KEY = "/CustodyRequestId"
CUSTODY_MARKER_PATTERN = re.compile(rb"/CustodyRequestId\s*" + PDF_STRING_TOKEN, re.S)

REASON_MARKER_PREFIX = "custody-request:"
REASON_MARKER_PATTERN = re.compile(r"custody-request:([A-Za-z0-9-]+)")
SEAL_REASON_PATTERN = re.compile(rb"/Reason\s*" + PDF_STRING_TOKEN, re.S)


def seal_reason(base_reason: str, request_id: str) -> str:
    return f"{base_reason} [{REASON_MARKER_PREFIX}{request_id}]"
