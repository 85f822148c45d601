from .signature_placement import STAMP_HEIGHT, STAMP_WIDTH, SignaturePlacement, StampSpec
from .signature_config import SealConfig
from .stamp_marker import (
    CUSTODY_MARKER_KEY,
    CUSTODY_MARKER_PATTERN,
    PDF_STRING_TOKEN,
    REASON_MARKER_PATTERN,
    SEAL_REASON_PATTERN,
    STAMP_PATTERN,
    STAMP_PREFIX,
    seal_reason,
)

__all__ = [
    "STAMP_HEIGHT", "STAMP_WIDTH", "SignaturePlacement", "StampSpec", "SealConfig",
    "CUSTODY_MARKER_KEY", "CUSTODY_MARKER_PATTERN", "PDF_STRING_TOKEN", "REASON_MARKER_PATTERN",
    "SEAL_REASON_PATTERN", "STAMP_PATTERN", "STAMP_PREFIX", "seal_reason",
]
