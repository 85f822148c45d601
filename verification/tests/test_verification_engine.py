"""
verification/tests/test_verification_engine.py

End-to-end: requests are finalized with the real PDF backend (reportlab,
pypdf, pyHanko) and the resulting bytes are verified, intact and modified.
"""

from __future__ import annotations

import re
import sqlite3
import tempfile
import unittest
from pathlib import Path

from core.helpers.date_time_helper import utc_now
from core.testing.fixtures import TEST_P12_PASSWORD, make_p12, make_pdf
from ledger.adapters.file_ledger_client import FileLedgerClient
from ledger.adapters.ledger_client import LedgerClient
from ledger.exceptions import LedgerUnavailableError
from ledger.models.ledger_records import LedgerReceipt, LedgerRecord
from signature.logic.credentials import load_credential
from signature.logic.pdf_sealer import PdfSealer
from signature.logic.pdf_signing_backend import PdfSigningBackend
from signing_requests.adapters.filesystem_storage_adapter import FilesystemStorageAdapter
from signing_requests.logic.finalization import FinalizationPipeline
from signing_requests.logic.orchestrator import SigningOrchestrator
from signing_requests.models.anchor_payload import AnchorPayload
from signing_requests.models.request_models import Approver, Placement
from signing_requests.repository.repo_config import RepoConfig
from signing_requests.repository.sqlite_request_repository import SQLiteRequestRepository
from verification.logic.custody import build_timeline
from verification.logic.evidence_scan import scan_seal
from verification.logic.seal_inspector import PyHankoSealInspector
from verification.logic.trust_score import TrustInputs, trust_level, trust_score
from verification.logic.verification_engine import VerificationEngine
from verification.models.verification_report import Integrity, TrustLevel, VerificationStatus


class _OfflineLedger(LedgerClient):
    network = "test"

    def submit(self, payload: bytes) -> LedgerReceipt:
        raise LedgerUnavailableError("offline")

    def lookup(self, reference: str) -> LedgerRecord:
        raise LedgerUnavailableError("offline")


class _ForgedLedger(LedgerClient):
    """Returns a well-formed payload for a different document."""
    network = "test"

    def __init__(self, request_id: str) -> None:
        self.request_id = request_id

    def submit(self, payload: bytes) -> LedgerReceipt:
        raise NotImplementedError

    def lookup(self, reference: str) -> LedgerRecord:
        forged = AnchorPayload(request_id=self.request_id, request_name="x", hash="0" * 64,
                               timestamp="2024-01-01T00:00:00.000+00:00")
        return LedgerRecord(reference=reference, payload=forged.encode())


class _BrokenRepository:
    def find_by_hash(self, sealed_hash):
        raise RuntimeError("database unavailable")

    def get_by_id(self, request_id):
        raise RuntimeError("database unavailable")


class _LockedEventLog:
    def log(self, *args, **kwargs):
        raise sqlite3.OperationalError("database is locked")


def _flip_seal_padding(data: bytes) -> bytes:
    """Change one hex digit inside the zero padding of the seal's /Contents."""
    m = list(re.finditer(rb"0{16}>", data))[-1]
    pos = m.start() + 8
    return data[:pos] + b"1" + data[pos + 1:]


def _flip_bit(data: bytes, pos: int) -> bytes:
    return data[:pos] + bytes((data[pos] ^ 1,)) + data[pos + 1:]


class TestVerificationEngine(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.credential = load_credential(make_p12(), TEST_P12_PASSWORD)

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.repo = SQLiteRequestRepository(RepoConfig(db_path=str(root / "requests.db")))
        self.storage = FilesystemStorageAdapter(root / "docs")
        self.ledger = FileLedgerClient(root / "ledger.jsonl")
        self.backend = PdfSigningBackend(PdfSealer(self.credential))
        self.orchestrator = self._orchestrator(self.ledger)
        self.engine = VerificationEngine(self.repo, self.ledger)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _orchestrator(self, ledger: LedgerClient) -> SigningOrchestrator:
        pipeline = FinalizationPipeline(self.repo, self.storage, self.backend, ledger, backend_timeout=60)
        return SigningOrchestrator(self.repo, self.storage, pipeline)

    def _finalize(self, orchestrator=None):
        orchestrator = orchestrator or self.orchestrator
        request = orchestrator.create_request(
            name="Batch record 42",
            category="BATCH",
            pdf_bytes=make_pdf(2),
            original_filename="batch.pdf",
            initiator="owner@example.com",
            approvers=[
                Approver("alice@example.com", Placement(0, 50, 100)),
                Approver("bob@example.com", Placement(1, 10, 20)),
            ],
        )
        orchestrator.sign(request.request_id, "alice@example.com")
        result = orchestrator.sign(request.request_id, "bob@example.com")
        return result.request, self.storage.read_bytes(result.request.file_ref)

    # ---- outcomes -----------------------------------------------------------

    def test_sealed_bytes_verify_with_full_score(self) -> None:
        request, sealed = self._finalize()
        report = self.engine.verify(sealed)

        self.assertEqual(report.status, VerificationStatus.VERIFIED)
        self.assertTrue(report.verified)
        self.assertEqual(report.integrity, Integrity.NOT_TAMPERED)
        self.assertEqual(report.trust_score, 100)
        self.assertEqual(report.trust_level, TrustLevel.HIGH)
        self.assertTrue(report.seal.found)
        self.assertEqual(report.ledger.reference, request.ledger_reference)
        self.assertTrue(report.ledger.found)
        self.assertEqual(report.document.request_id, request.request_id)

        doc = report.to_dict()
        self.assertTrue(doc["chainOfCustody"]["allSigned"])
        self.assertEqual([a["stampFound"] for a in doc["chainOfCustody"]["approvers"]], [True, True])
        self.assertEqual(doc["status"], "VERIFIED")
        self.assertEqual(doc["trustLevel"], "HIGH")
        for key in ("document", "timeline", "warnings", "errors", "seal", "ledger", "timestamp"):
            self.assertIn(key, doc)

    def test_single_flipped_digit_is_tampered(self) -> None:
        request, sealed = self._finalize()
        report = self.engine.verify(_flip_seal_padding(sealed))
        self.assertEqual(report.status, VerificationStatus.TAMPERED)
        self.assertFalse(report.verified)
        self.assertEqual(report.integrity, Integrity.MODIFIED)
        self.assertEqual(report.document.request_id, request.request_id)

    def test_single_bit_flips_throughout_the_file_are_never_not_found(self) -> None:
        _, sealed = self._finalize()
        outcomes = []
        for pos in range(0, len(sealed), 97):
            status = self.engine.verify(_flip_bit(sealed, pos)).status
            with self.subTest(pos=pos):
                self.assertIn(status, (VerificationStatus.TAMPERED, VerificationStatus.INVALID_PDF))
            outcomes.append(status)
        self.assertGreater(outcomes.count(VerificationStatus.TAMPERED), len(outcomes) * 0.9)

    def test_damaged_custody_marker_falls_back_to_other_copies(self) -> None:
        request, sealed = self._finalize()
        markers = list(re.finditer(rb"/CustodyRequestId\s*\(", sealed))
        self.assertTrue(markers)
        for m in markers:
            with self.subTest(offset=m.end()):
                report = self.engine.verify(_flip_bit(sealed, m.end() + 1))
                self.assertEqual(report.status, VerificationStatus.TAMPERED)
                self.assertEqual(report.document.request_id, request.request_id)

    def test_seal_metadata_is_decoded(self) -> None:
        request, sealed = self._finalize()
        seal = scan_seal(sealed)
        self.assertTrue(seal.found)
        self.assertEqual(seal.signer, "Chain of Custody Seal")
        self.assertTrue(seal.reason.endswith(f"[custody-request:{request.request_id}]"))
        self.assertIsNotNone(seal.signed_at)
        self.assertLess(abs((utc_now() - seal.signed_at).total_seconds()), 3600)

    def test_unknown_document_is_not_found(self) -> None:
        report = self.engine.verify(make_pdf(1, text="Never submitted"))
        self.assertEqual(report.status, VerificationStatus.NOT_FOUND)
        self.assertFalse(report.verified)

    def test_non_pdf_is_invalid(self) -> None:
        self.assertEqual(self.engine.verify(b"just some text").status, VerificationStatus.INVALID_PDF)
        self.assertEqual(self.engine.verify(b"").status, VerificationStatus.INVALID_PDF)

    def test_unreachable_ledger_is_partial_not_tampered(self) -> None:
        _, sealed = self._finalize()
        engine = VerificationEngine(self.repo, _OfflineLedger())
        report = engine.verify(sealed)
        self.assertEqual(report.status, VerificationStatus.PARTIAL_VERIFICATION)
        self.assertTrue(report.verified)
        self.assertTrue(report.warnings)
        self.assertEqual(report.trust_score, 70)
        self.assertEqual(report.trust_level, TrustLevel.MEDIUM)

    def test_sealed_but_unanchored_is_partial(self) -> None:
        request, sealed = self._finalize(self._orchestrator(_OfflineLedger()))
        self.assertIsNone(request.ledger_reference)
        report = self.engine.verify(sealed)
        self.assertEqual(report.status, VerificationStatus.PARTIAL_VERIFICATION)

    def test_conflicting_ledger_payload_is_tampered(self) -> None:
        request, sealed = self._finalize()
        engine = VerificationEngine(self.repo, _ForgedLedger(request.request_id))
        report = engine.verify(sealed)
        self.assertEqual(report.status, VerificationStatus.TAMPERED)

    def test_internal_fault_is_error(self) -> None:
        engine = VerificationEngine(_BrokenRepository(), self.ledger)
        report = engine.verify(make_pdf())
        self.assertEqual(report.status, VerificationStatus.ERROR)
        self.assertTrue(report.errors)

    def test_event_log_fault_is_error(self) -> None:
        engine = VerificationEngine(self.repo, self.ledger, event_logger=_LockedEventLog())
        report = engine.verify(make_pdf())
        self.assertEqual(report.status, VerificationStatus.ERROR)
        self.assertIn("database is locked", report.errors[0])

    def test_strict_seal_check_accepts_untouched_seal(self) -> None:
        _, sealed = self._finalize()
        finding = PyHankoSealInspector().inspect(sealed)
        self.assertTrue(finding.found)
        self.assertTrue(finding.valid)

    def test_verification_does_not_mutate_store(self) -> None:
        request, sealed = self._finalize()
        before = self.repo.get_by_id(request.request_id)
        self.engine.verify(sealed)
        self.engine.verify(_flip_seal_padding(sealed))
        self.assertEqual(self.repo.get_by_id(request.request_id).version, before.version)


class TestTrustScore(unittest.TestCase):
    def test_buckets(self) -> None:
        full = TrustInputs(True, True, True, True, True)
        self.assertEqual(trust_score(full), 100)
        self.assertEqual(trust_level(80), TrustLevel.HIGH)
        self.assertEqual(trust_level(79), TrustLevel.MEDIUM)
        self.assertEqual(trust_level(50), TrustLevel.MEDIUM)
        self.assertEqual(trust_level(49), TrustLevel.LOW)
        self.assertEqual(trust_score(TrustInputs(True, False, True, True, False)), 60)


class TestTimeline(unittest.TestCase):
    def test_timeline_is_sorted_and_not_duplicated(self) -> None:
        from core.helpers.date_time_helper import utc_now
        from signing_requests.models.request_models import HistoryAction, HistoryEntry, Request

        t0 = utc_now()
        request = Request(
            request_id="r", name="n", category="c", file_ref="f", original_filename="f.pdf",
            initiator="o@example.com",
            approvers=[Approver("a@example.com", Placement(), signed=True, signed_at=t0)],
            history=(
                HistoryEntry(HistoryAction.CREATED, "o@example.com", t0, "created"),
                HistoryEntry(HistoryAction.SIGNED, "a@example.com", t0, "signed"),
            ),
        )
        events = build_timeline(request)
        self.assertEqual([e.action for e in events], ["created", "signed"])


if __name__ == "__main__":
    unittest.main()
