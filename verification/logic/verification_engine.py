"""
Verification engine.

``verify(bytes)`` is a pure read: it consults the request store and the
ledger but never writes to either. Steps short-circuit in order:

1. structure (INVALID_PDF)
2. seal scan (recorded, never fatal)
3. hash
4. request lookup by hash, then by embedded custody id (NOT_FOUND / TAMPERED)
5. ledger cross-check (TAMPERED on a confirmed mismatch,
   PARTIAL_VERIFICATION when the ledger side cannot be confirmed)
6. evidence and timeline
7. trust score (VERIFIED)
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Tuple

from core.helpers.pdf_helper import content_hash, count_pages, has_pdf_header
from core.logging.logic.logger import EventLogger
from ledger.adapters.ledger_client import LedgerClient
from ledger.exceptions import LedgerError, LedgerRecordNotFoundError
from ledger.models.ledger_records import LedgerRecord
from signing_requests.models.anchor_payload import AnchorPayload, InvalidPayloadError
from signing_requests.models.request_models import Request
from signing_requests.repository.request_repository import RequestRepository
from verification.exceptions import VerificationError
from verification.logic.custody import build_chain_of_custody, build_timeline
from verification.logic.evidence_scan import scan_custody_markers, scan_stamps
from verification.logic.seal_inspector import PatternSealInspector
from verification.logic.trust_score import TrustInputs, trust_level, trust_score
from verification.models.verification_report import (
    DocumentFacts,
    Integrity,
    LedgerFinding,
    SealFinding,
    TrustLevel,
    VerificationReport,
    VerificationStatus,
)

logger = logging.getLogger(__name__)

_FEATURE = "verification"


class SealInspector(Protocol):
    def inspect(self, data: bytes) -> SealFinding: ...


class VerificationEngine:
    def __init__(
        self,
        repository: RequestRepository,
        ledger: LedgerClient,
        *,
        seal_inspector: Optional[SealInspector] = None,
        event_logger: Optional[EventLogger] = None,
    ) -> None:
        self._repo = repository
        self._ledger = ledger
        self._inspector = seal_inspector or PatternSealInspector()
        self._events = event_logger

    def verify(self, data: bytes) -> VerificationReport:
        """Return a report for *data*; internal faults become status ERROR."""
        try:
            report = self._verify(data or b"")
            self._event(report)
        except Exception as exc:
            # any fault here is reported, never confused with NOT_FOUND or TAMPERED
            logger.exception("Verification failed")
            error = exc if isinstance(exc, VerificationError) else VerificationError(str(exc))
            report = VerificationReport(
                status=VerificationStatus.ERROR,
                errors=[f"Verification failed: {error}"],
            )
        return report

    # ------------------------------------------------------------------ #
    def _verify(self, data: bytes) -> VerificationReport:
        # 1. structure
        if not has_pdf_header(data):
            return VerificationReport(status=VerificationStatus.INVALID_PDF,
                                      errors=["File is not a PDF (missing %PDF header)"])
        try:
            count_pages(data)
        except ValueError as exc:
            return VerificationReport(status=VerificationStatus.INVALID_PDF,
                                      errors=[f"PDF structure could not be parsed: {exc}"])

        # 2. seal
        seal = self._inspector.inspect(data)

        # 3. hash
        digest = content_hash(data)
        document = DocumentFacts(hash=digest, size=len(data))

        # 4. lookup
        request = self._repo.find_by_hash(digest)
        if request is None:
            return self._unknown_hash(data, document, seal)
        self._describe(document, request)

        # 5. cross-check
        warnings = []
        if not seal.found:
            warnings.append("No cryptographic seal found in the document")
        elif not seal.valid:
            warnings.append(seal.message)

        ledger_finding, record, problem, mismatch = self._cross_check(request, digest)
        if mismatch:
            return VerificationReport(
                status=VerificationStatus.TAMPERED,
                trust_level=TrustLevel.LOW,
                integrity=Integrity.MODIFIED,
                document=document,
                seal=seal,
                ledger=ledger_finding,
                warnings=warnings,
                errors=[mismatch],
            )
        if problem:
            warnings.append(problem)

        # 6. evidence
        stamps = scan_stamps(data)
        chain = build_chain_of_custody(request, stamps)
        timeline = build_timeline(request, record)
        if not any(a.stamp_found for a in chain.approvers):
            warnings.append("No visible approver stamps found in the document")

        # 7. score
        score = trust_score(TrustInputs(
            hash_match=True,
            on_ledger=record is not None,
            seal_valid=seal.found and seal.valid,
            all_signed=chain.all_signed,
            stamps_found=any(a.stamp_found for a in chain.approvers),
        ))
        status = VerificationStatus.VERIFIED if problem is None else VerificationStatus.PARTIAL_VERIFICATION
        return VerificationReport(
            status=status,
            verified=True,
            trust_level=trust_level(score),
            trust_score=score,
            integrity=Integrity.NOT_TAMPERED,
            document=document,
            seal=seal,
            ledger=ledger_finding,
            chain_of_custody=chain,
            timeline=timeline,
            warnings=warnings,
        )

    def _unknown_hash(self, data: bytes, document: DocumentFacts, seal: SealFinding) -> VerificationReport:
        candidate = self._claimed_request(data)
        if candidate is None:
            return VerificationReport(
                status=VerificationStatus.NOT_FOUND,
                document=document,
                seal=seal,
                errors=["No sealed request matches this document: it was never processed, "
                        "or it was modified before any record existed"],
            )
        self._describe(document, candidate)
        ledger_finding, _, _, _ = self._cross_check(candidate, document.hash)
        return VerificationReport(
            status=VerificationStatus.TAMPERED,
            trust_level=TrustLevel.LOW,
            integrity=Integrity.MODIFIED,
            document=document,
            seal=seal,
            ledger=ledger_finding,
            errors=[f"Document claims request {candidate.request_id} but its hash {document.hash} "
                    f"differs from the sealed hash {candidate.sealed_hash}"],
        )

    def _claimed_request(self, data: bytes) -> Optional[Request]:
        """First sealed request named by any custody marker in *data*."""
        for request_id in scan_custody_markers(data):
            request = self._repo.get_by_id(request_id)
            if request is not None and request.is_sealed:
                return request
        return None

    def _cross_check(
        self, request: Request, digest: str
    ) -> Tuple[LedgerFinding, Optional[LedgerRecord], Optional[str], Optional[str]]:
        """
        Returns (finding, record, problem, mismatch). *problem* means the
        ledger side could not be confirmed; *mismatch* is a confirmed conflict.
        """
        finding = LedgerFinding(reference=request.ledger_reference, network=self._ledger.network)
        if request.sealed_hash and request.sealed_hash.lower() != digest:
            return finding, None, None, (
                f"Stored sealed hash {request.sealed_hash} does not match document hash {digest}")
        if not request.ledger_reference:
            return finding, None, "Request is sealed but not anchored to the ledger; origin confirmation is incomplete", None

        finding.explorer_url = self._ledger.explorer_url(request.ledger_reference)
        try:
            record = self._ledger.lookup(request.ledger_reference)
        except LedgerRecordNotFoundError:
            return finding, None, f"Ledger record {request.ledger_reference} could not be found; origin confirmation is incomplete", None
        except LedgerError as exc:
            logger.warning("Ledger lookup for %s failed: %s", request.request_id, exc)
            return finding, None, f"Ledger could not be queried ({exc}); origin confirmation is incomplete", None

        finding.confirmed_at = record.confirmed_at
        try:
            payload = AnchorPayload.decode(record.payload)
        except InvalidPayloadError as exc:
            return finding, None, f"Ledger record could not be decoded ({exc}); origin confirmation is incomplete", None

        finding.payload_hash = payload.hash
        finding.payload_timestamp = payload.timestamp
        if payload.hash != digest:
            return finding, None, None, (
                f"Ledger payload hash {payload.hash} does not match document hash {digest}")
        if payload.request_id != request.request_id:
            return finding, None, None, (
                f"Ledger record belongs to request {payload.request_id}, not {request.request_id}")
        finding.found = True
        return finding, record, None, None

    @staticmethod
    def _describe(document: DocumentFacts, request: Request) -> None:
        document.request_id = request.request_id
        document.name = request.name
        document.category = request.category
        document.original_filename = request.original_filename
        document.initiator = request.initiator
        document.status = request.status.value
        document.created_at = request.created_at
        document.completed_at = request.completed_at
        document.sealed_hash = request.sealed_hash

    def _event(self, report: VerificationReport) -> None:
        if self._events is None:
            return
        ref = report.document.request_id if report.document else None
        self._events.log(_FEATURE, "document_verified", reference_id=ref, message=report.status.value,
                         level="WARNING" if report.status == VerificationStatus.TAMPERED else "INFO")
