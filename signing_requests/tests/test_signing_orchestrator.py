"""
signing_requests/tests/test_signing_orchestrator.py

Orchestrator and finalization pipeline against an in-memory store, a temp
storage root, a counting fake signing backend and a file ledger.
"""

from __future__ import annotations

import tempfile
import threading
import unittest
from pathlib import Path
from typing import List

from core.helpers.pdf_helper import content_hash
from core.logging.logic.logger import EventLogger
from core.testing.fixtures import make_pdf
from ledger.adapters.file_ledger_client import FileLedgerClient
from ledger.adapters.ledger_client import LedgerClient
from ledger.exceptions import LedgerUnavailableError
from ledger.models.ledger_records import LedgerReceipt, LedgerRecord
from signature.exceptions import SealingError
from signature.logic.signing_backend import SigningBackend
from signature.models.signature_placement import StampSpec
from signing_requests.adapters.filesystem_storage_adapter import FilesystemStorageAdapter
from signing_requests.exceptions.errors import (
    AlreadySignedError,
    AnchoringFailedError,
    AssetMissingError,
    FinalizationFailedError,
    ImmutableFieldError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from signing_requests.logic.finalization import FinalizationPipeline
from signing_requests.logic.orchestrator import SigningOrchestrator
from signing_requests.logic.workflow_engine import WorkflowEngine
from signing_requests.models.anchor_payload import AnchorPayload
from signing_requests.models.request_models import Approver, HistoryAction, Placement, RequestStatus
from signing_requests.repository.repo_config import RepoConfig
from signing_requests.repository.sqlite_request_repository import SQLiteRequestRepository


class CountingBackend(SigningBackend):
    """Appends PDF comments instead of drawing; counts every call."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.stamp_calls: List[List[str]] = []
        self.seal_calls = 0
        self.fail_seal = False

    def stamped_identities(self, data: bytes) -> List[str]:
        return []

    def stamp(self, data: bytes, stamps: List[StampSpec]) -> bytes:
        with self._lock:
            self.stamp_calls.append([s.identity for s in stamps])
        return data + b"\n%stamped " + ",".join(s.identity for s in stamps).encode()

    def tag(self, data: bytes, request_id: str) -> bytes:
        return data + b"\n%custody " + request_id.encode()

    def seal(self, data: bytes, request_id: str) -> bytes:
        if self.fail_seal:
            raise SealingError("credential unavailable")
        with self._lock:
            self.seal_calls += 1
        return data + b"\n%sealed\n"


class DownLedger(LedgerClient):
    network = "test"

    def __init__(self) -> None:
        self.calls = 0

    def submit(self, payload: bytes) -> LedgerReceipt:
        self.calls += 1
        raise LedgerUnavailableError("ledger offline")

    def lookup(self, reference: str) -> LedgerRecord:
        raise LedgerUnavailableError("ledger offline")


class _SealRejectingRepository(SQLiteRequestRepository):
    """Refuses every write that sets the sealed hash."""

    def update(self, request, expected_version):
        if request.sealed_hash is not None:
            raise ImmutableFieldError(f"Sealed hash of {request.request_id} is set once",
                                      request_id=request.request_id)
        return super().update(request, expected_version)


class _Harness(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.repo = SQLiteRequestRepository(RepoConfig(db_path=str(root / "requests.db")))
        self.storage = FilesystemStorageAdapter(root / "docs")
        self.backend = CountingBackend()
        self.ledger: LedgerClient = FileLedgerClient(root / "ledger.jsonl")
        self.events = EventLogger(root / "events.db")
        self._build()

    def _build(self) -> None:
        self.pipeline = FinalizationPipeline(self.repo, self.storage, self.backend, self.ledger,
                                             event_logger=self.events, backend_timeout=30)
        self.orchestrator = SigningOrchestrator(self.repo, self.storage, self.pipeline, event_logger=self.events)

    def tearDown(self) -> None:
        self.events.close()
        self._tmp.cleanup()

    def _create(self, approvers=None, pages: int = 2):
        approvers = approvers or [
            Approver("alice@example.com", Placement(0, 50, 100)),
            Approver("bob@example.com", Placement(1, 10, 20)),
        ]
        return self.orchestrator.create_request(
            name="SOP-001 Cleaning",
            category="SOP",
            pdf_bytes=make_pdf(pages),
            original_filename="sop.pdf",
            initiator="owner@example.com",
            approvers=approvers,
        )


class TestCreateRequest(_Harness):
    def test_new_request_is_pending_with_created_entry(self) -> None:
        request = self._create()
        self.assertEqual(request.status, RequestStatus.PENDING)
        self.assertEqual(len(request.history), 1)
        self.assertEqual(request.history[0].action, HistoryAction.CREATED)
        self.assertEqual(request.history[0].details, "Request created with 2 approver(s)")
        self.assertTrue(self.storage.exists(request.file_ref))

    def test_rejects_non_pdf(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.orchestrator.create_request(
                name="x", category="y", pdf_bytes=b"hello", original_filename="x.txt",
                initiator="o@example.com", approvers=[Approver("a@example.com", Placement())],
            )

    def test_rejects_duplicate_approvers_case_insensitively(self) -> None:
        with self.assertRaises(InvalidInputError):
            self._create([Approver("a@example.com", Placement()), Approver("A@Example.com ", Placement())])

    def test_rejects_page_beyond_document(self) -> None:
        with self.assertRaises(InvalidInputError):
            self._create([Approver("a@example.com", Placement(5, 0, 0))], pages=1)

    def test_rejects_negative_page(self) -> None:
        with self.assertRaises(InvalidInputError):
            self._create([Approver("a@example.com", Placement(-1, 0, 0))])

    def test_rejects_empty_approver_list(self) -> None:
        with self.assertRaises(InvalidInputError):
            self.orchestrator.create_request(
                name="x", category="y", pdf_bytes=make_pdf(), original_filename="x.pdf",
                initiator="o@example.com", approvers=[],
            )


class TestSigning(_Harness):
    def test_two_approver_scenario(self) -> None:
        request = self._create()

        first = self.orchestrator.sign(request.request_id, "alice@example.com")
        self.assertFalse(first.finalized)
        self.assertEqual(first.request.status, RequestStatus.IN_PROGRESS)
        self.assertEqual([h.action for h in first.request.history], [HistoryAction.CREATED, HistoryAction.SIGNED])
        self.assertEqual(first.request.history[1].details, "Document signed at coordinates (50, 100)")

        second = self.orchestrator.sign(request.request_id, "BOB@example.com")
        done = second.request
        self.assertTrue(second.finalized)
        self.assertEqual(done.status, RequestStatus.COMPLETED)
        self.assertRegex(done.sealed_hash, r"^[0-9a-f]{64}$")
        self.assertIsNotNone(done.ledger_reference)
        self.assertIsNotNone(done.completed_at)
        self.assertEqual(
            [h.action for h in done.history],
            [HistoryAction.CREATED, HistoryAction.SIGNED, HistoryAction.SIGNED, HistoryAction.FINALIZED],
        )
        self.assertIn(done.ledger_reference, done.history[-1].details)
        self.assertTrue(WorkflowEngine.is_consistent(done))

        # both stamps drawn in one pass, sealed exactly once
        self.assertEqual(self.backend.stamp_calls, [["alice@example.com", "bob@example.com"]])
        self.assertEqual(self.backend.seal_calls, 1)

        # stored bytes hash to sealed_hash and the upload itself is untouched
        sealed_bytes = self.storage.read_bytes(done.file_ref)
        self.assertEqual(content_hash(sealed_bytes), done.sealed_hash)
        self.assertNotEqual(done.file_ref, request.file_ref)
        self.assertTrue(sealed_bytes.endswith(b"%sealed\n"))

        payload = AnchorPayload.decode(self.ledger.lookup(done.ledger_reference).payload)
        self.assertEqual(payload.hash, done.sealed_hash)
        self.assertEqual(payload.request_id, done.request_id)
        self.assertEqual(payload.request_name, "SOP-001 Cleaning")

        events = [e.event for e in self.events.query_logs(reference_id=done.request_id)]
        self.assertEqual(events[0], "request_created")
        self.assertIn("request_sealed", events)
        self.assertEqual(events[-1], "request_anchored")

    def test_unknown_request(self) -> None:
        with self.assertRaises(NotFoundError):
            self.orchestrator.sign("missing", "alice@example.com")

    def test_unauthorized_signer(self) -> None:
        request = self._create()
        with self.assertRaises(UnauthorizedError):
            self.orchestrator.sign(request.request_id, "mallory@example.com")
        self.assertEqual(self.repo.get_by_id(request.request_id).version, 0)

    def test_second_signature_is_rejected(self) -> None:
        request = self._create()
        self.orchestrator.sign(request.request_id, "alice@example.com")
        with self.assertRaises(AlreadySignedError):
            self.orchestrator.sign(request.request_id, "alice@example.com")

    def test_signing_after_completion_never_reseals(self) -> None:
        request = self._create()
        self.orchestrator.sign(request.request_id, "alice@example.com")
        self.orchestrator.sign(request.request_id, "bob@example.com")
        for identity in ("alice@example.com", "bob@example.com"):
            with self.assertRaises(AlreadySignedError):
                self.orchestrator.sign(request.request_id, identity)
        self.assertEqual(self.backend.seal_calls, 1)

    def test_missing_asset_changes_nothing(self) -> None:
        request = self._create()
        (self.storage.root / request.file_ref).unlink()
        with self.assertRaises(AssetMissingError):
            self.orchestrator.sign(request.request_id, "alice@example.com")
        stored = self.repo.get_by_id(request.request_id)
        self.assertFalse(stored.approvers[0].signed)
        self.assertEqual(len(stored.history), 1)

    def test_concurrent_signers_finalize_once(self) -> None:
        approvers = [Approver(f"user{i}@example.com", Placement(0, 10 * i, 10 * i)) for i in range(6)]
        request = self._create(approvers, pages=1)
        barrier = threading.Barrier(len(approvers))
        results, errors = [], []

        def _sign(identity: str) -> None:
            barrier.wait()
            try:
                results.append(self.orchestrator.sign(request.request_id, identity))
            except Exception as exc:  # collected for the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=_sign, args=(a.identity,)) for a in approvers]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(sum(1 for r in results if r.finalized), 1)
        self.assertEqual(self.backend.seal_calls, 1)
        final = self.repo.get_by_id(request.request_id)
        self.assertEqual(final.status, RequestStatus.COMPLETED)
        self.assertEqual(len(final.history_of(HistoryAction.SIGNED)), len(approvers))
        self.assertEqual(len(final.history_of(HistoryAction.FINALIZED)), 1)


class TestFailurePolicy(_Harness):
    def test_seal_failure_keeps_signature_and_resign_retries(self) -> None:
        request = self._create([Approver("alice@example.com", Placement(0, 50, 100))], pages=1)
        self.backend.fail_seal = True
        with self.assertRaises(FinalizationFailedError):
            self.orchestrator.sign(request.request_id, "alice@example.com")

        stored = self.repo.get_by_id(request.request_id)
        self.assertTrue(stored.approvers[0].signed)
        self.assertIsNone(stored.sealed_hash)
        self.assertEqual(stored.file_ref, request.file_ref)
        self.assertEqual(stored.status, RequestStatus.IN_PROGRESS)
        self.assertEqual(len(stored.history_of(HistoryAction.SIGNED)), 1)

        self.backend.fail_seal = False
        result = self.orchestrator.sign(request.request_id, "alice@example.com")
        self.assertTrue(result.finalized)
        self.assertEqual(len(result.request.history_of(HistoryAction.SIGNED)), 1)
        self.assertEqual(self.backend.seal_calls, 1)

    def test_anchoring_failure_leaves_request_sealed_in_progress(self) -> None:
        down = DownLedger()
        self.ledger = down
        self._build()
        request = self._create([Approver("alice@example.com", Placement(0, 50, 100))], pages=1)

        result = self.orchestrator.sign(request.request_id, "alice@example.com")
        self.assertFalse(result.finalized)
        self.assertIn("ledger offline", result.anchoring_error)
        stored = result.request
        self.assertEqual(stored.status, RequestStatus.IN_PROGRESS)
        self.assertIsNotNone(stored.sealed_hash)
        self.assertIsNone(stored.ledger_reference)
        self.assertEqual(stored.history[-1].action, HistoryAction.ERROR)
        self.assertEqual(stored.history[-1].actor, "SYSTEM")
        self.assertTrue(WorkflowEngine.is_consistent(stored))

        # a repeated signature does not reseal
        with self.assertRaises(AlreadySignedError):
            self.orchestrator.sign(request.request_id, "alice@example.com")

        with self.assertRaises(AnchoringFailedError):
            self.orchestrator.retry_anchoring(request.request_id)
        self.assertEqual(len(self.repo.get_by_id(request.request_id).history_of(HistoryAction.ERROR)), 2)

        # ledger comes back: only step 4 runs
        self.ledger = FileLedgerClient(Path(self._tmp.name) / "ledger.jsonl")
        self._build()
        retried = self.orchestrator.retry_anchoring(request.request_id)
        self.assertTrue(retried.finalized)
        self.assertEqual(retried.request.sealed_hash, stored.sealed_hash)
        self.assertEqual(retried.request.status, RequestStatus.COMPLETED)
        self.assertEqual(self.backend.seal_calls, 1)

    def test_store_rejection_during_seal_is_finalization_failure(self) -> None:
        self.repo = _SealRejectingRepository(RepoConfig(db_path=str(Path(self._tmp.name) / "rejecting.db")))
        self._build()
        request = self._create([Approver("alice@example.com", Placement(0, 50, 100))], pages=1)
        with self.assertRaises(FinalizationFailedError) as ctx:
            self.orchestrator.sign(request.request_id, "alice@example.com")
        self.assertIsInstance(ctx.exception.__cause__, ImmutableFieldError)

        stored = self.repo.get_by_id(request.request_id)
        self.assertTrue(stored.approvers[0].signed)
        self.assertIsNone(stored.sealed_hash)
        failed = self.events.query_logs(event="finalization_failed", reference_id=request.request_id)
        self.assertEqual(len(failed), 1)

    def test_retry_anchoring_requires_sealed_unanchored_request(self) -> None:
        request = self._create()
        with self.assertRaises(InvalidInputError):
            self.orchestrator.retry_anchoring(request.request_id)
        with self.assertRaises(NotFoundError):
            self.orchestrator.retry_anchoring("missing")


if __name__ == "__main__":
    unittest.main()
