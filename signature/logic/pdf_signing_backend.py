# signature/logic/pdf_signing_backend.py
from __future__ import annotations

import logging
from typing import List, Optional

from ..models.signature_placement import StampSpec
from ..models.stamp_marker import seal_reason
from .pdf_sealer import PdfSealer
from .pdf_signer import PdfSigner
from .signing_backend import SigningBackend
from .stamp_scanner import stamped_identities

logger = logging.getLogger(__name__)


class PdfSigningBackend(SigningBackend):
    """
    PDF signing backend: reportlab/pypdf for stamps and tags, pyHanko for
    the seal. Holds no per-request state and is safe to share across threads.
    """

    def __init__(self, sealer: PdfSealer, *, producer: Optional[str] = None) -> None:
        self._sealer = sealer
        self._producer = producer

    def stamped_identities(self, data: bytes) -> List[str]:
        return stamped_identities(data)

    def stamp(self, data: bytes, stamps: List[StampSpec]) -> bytes:
        if not stamps:
            return data
        logger.debug("Stamping %d approver box(es)", len(stamps))
        return PdfSigner.stamp(data, stamps)

    def tag(self, data: bytes, request_id: str) -> bytes:
        return PdfSigner.tag(data, request_id, producer=self._producer)

    def seal(self, data: bytes, request_id: str) -> bytes:
        reason = seal_reason(self._sealer.config.reason, request_id)
        sealed = self._sealer.seal(data, reason=reason)
        logger.info("Sealed document for request %s (%d bytes)", request_id, len(sealed))
        return sealed
