"""
Seal inspection strategies.

``PatternSealInspector`` trusts the evidence scan; ``PyHankoSealInspector``
validates the embedded signature cryptographically (integrity of the signed
byte range and the signature value, not the certificate's trust chain).
"""

from __future__ import annotations

import logging
from io import BytesIO

from pyhanko.pdf_utils.reader import PdfFileReader
from pyhanko.sign.validation import validate_pdf_signature

from verification.logic.evidence_scan import scan_seal
from verification.models.verification_report import SealFinding

logger = logging.getLogger(__name__)


class PatternSealInspector:
    def inspect(self, data: bytes) -> SealFinding:
        return scan_seal(data)


class PyHankoSealInspector:
    def inspect(self, data: bytes) -> SealFinding:
        scanned = scan_seal(data)
        try:
            reader = PdfFileReader(BytesIO(data), strict=False)
            signatures = reader.embedded_signatures
        except Exception as exc:
            # pyHanko raises assorted parser errors on damaged files
            logger.info("Seal inspection could not parse document: %s", exc)
            if scanned.found:
                scanned.valid = False
                scanned.message = f"Seal present but document could not be parsed: {exc}"
            return scanned

        if not signatures:
            return SealFinding()

        sig = signatures[-1]
        try:
            status = validate_pdf_signature(sig)
        except Exception as exc:
            logger.info("Seal validation failed: %s", exc)
            return SealFinding(
                found=True, valid=False, signer=scanned.signer, reason=scanned.reason,
                signed_at=scanned.signed_at, message=f"Seal could not be validated: {exc}",
            )

        valid = bool(status.intact and status.valid)
        signer = None
        try:
            signer = sig.signer_cert.subject.human_friendly
        except (AttributeError, ValueError):
            signer = scanned.signer
        return SealFinding(
            found=True,
            valid=valid,
            signer=signer or scanned.signer,
            reason=scanned.reason,
            signed_at=getattr(status, "signer_reported_dt", None) or scanned.signed_at,
            message="Seal cryptographically intact" if valid else "Seal does not match the document bytes",
        )
