"""
Finalization pipeline: stamp -> seal -> hash -> anchor.

Steps 1-3 work on an in-memory copy of the document. Their result is
written as a new artifact and becomes visible in a single store update
that sets ``file_ref`` and ``sealed_hash`` together, so a failure there
leaves the request exactly as it was. Step 4 may fail on its own; the
request then stays sealed, unanchored and in-progress until
``anchor`` succeeds.

Callers must hold the request's lock (see RequestLockRegistry).
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from core.common.deadline import DeadlineExceeded, call_with_timeout
from core.helpers.date_time_helper import to_iso, utc_now
from core.helpers.pdf_helper import content_hash
from core.logging.logic.logger import EventLogger
from ledger.adapters.ledger_client import LedgerClient
from ledger.exceptions import LedgerError
from signature.exceptions import SigningBackendError
from signature.logic.signing_backend import SigningBackend
from signature.models.signature_placement import SignaturePlacement, StampSpec
from signing_requests.adapters.storage_adapter import StorageAdapter
from signing_requests.exceptions.errors import (
    AssetMissingError,
    ConcurrentModificationError,
    FinalizationFailedError,
    ImmutableFieldError,
    NotFoundError,
)
from signing_requests.logic.workflow_engine import WorkflowEngine
from signing_requests.models.anchor_payload import AnchorPayload
from signing_requests.models.request_models import (
    SYSTEM_ACTOR,
    HistoryAction,
    Request,
    normalize_identity,
)
from signing_requests.repository.request_repository import RequestRepository

logger = logging.getLogger(__name__)

_FEATURE = "signing_requests"
SEALED_ARTIFACT = "sealed"


class FinalizationPipeline:
    """
    Args:
        repository: Request store.
        storage: Document storage.
        backend: Stamping/tagging/sealing backend.
        ledger: Ledger client (normally a RetryingLedgerClient).
        event_logger: Optional operational event log.
        backend_timeout: Upper bound in seconds for each backend call.
        clock: Source of "now" (tests pin it).
    """

    def __init__(
        self,
        repository: RequestRepository,
        storage: StorageAdapter,
        backend: SigningBackend,
        ledger: LedgerClient,
        *,
        event_logger: Optional[EventLogger] = None,
        backend_timeout: Optional[float] = 60.0,
        clock: Callable = utc_now,
    ) -> None:
        self._repo = repository
        self._storage = storage
        self._backend = backend
        self._ledger = ledger
        self._events = event_logger
        self._backend_timeout = backend_timeout
        self._clock = clock
        self._workflow = WorkflowEngine()

    # ------------------------------------------------------------------ #
    #  Entry points                                                      #
    # ------------------------------------------------------------------ #
    def run(self, request: Request) -> Tuple[Request, Optional[str]]:
        """
        Seal (if not sealed yet) and anchor *request*.

        Returns:
            (stored request, anchoring error message or None)

        Raises:
            AssetMissingError: stored document is gone
            FinalizationFailedError: stamping, sealing, hashing or the store write failed
        """
        if self._workflow.needs_finalization(request):
            request = self._seal(request)
        if self._workflow.needs_anchoring(request):
            return self.anchor(request)
        return request, None

    def anchor(self, request: Request) -> Tuple[Request, Optional[str]]:
        """
        Submit the custody payload for a sealed request and record the outcome.

        Ledger failures are recorded as an ``error`` history entry and
        returned, never raised.
        """
        payload = AnchorPayload(
            request_id=request.request_id,
            request_name=request.name,
            hash=request.sealed_hash,
            timestamp=to_iso(self._clock()),
        )
        try:
            receipt = self._ledger.submit(payload.encode())
        except LedgerError as exc:
            message = f"Ledger anchoring failed: {exc}"
            logger.warning("Anchoring of %s failed: %s", request.request_id, exc)
            updated = request.copy()
            updated.append_history(HistoryAction.ERROR, SYSTEM_ACTOR, message, at=self._clock())
            stored = self._repo.update(updated, expected_version=request.version)
            self._event("anchoring_failed", stored.request_id, message, level="WARNING")
            return stored, message

        now = self._clock()
        updated = request.copy()
        updated.ledger_reference = receipt.reference
        updated.status = self._workflow.status_after_anchoring(updated)
        updated.completed_at = now
        updated.append_history(
            HistoryAction.FINALIZED,
            SYSTEM_ACTOR,
            f"Document sealed and anchored to ledger. Reference: {receipt.reference}",
            at=now,
        )
        stored = self._repo.update(updated, expected_version=request.version)
        logger.info("Request %s anchored as %s", stored.request_id, receipt.reference)
        self._event("request_anchored", stored.request_id, receipt.reference)
        return stored, None

    # ------------------------------------------------------------------ #
    #  Steps 1-3                                                         #
    # ------------------------------------------------------------------ #
    def _seal(self, request: Request) -> Request:
        try:
            data = self._storage.read_bytes(request.file_ref)
        except FileNotFoundError as exc:
            raise AssetMissingError(
                f"Document of request {request.request_id} is missing", request_id=request.request_id
            ) from exc

        self._event("finalization_started", request.request_id, f"{len(request.approvers)} approver(s)")
        try:
            sealed = self._produce_sealed_bytes(request, data)
            digest = content_hash(sealed)
            file_ref = self._storage.save_artifact(request_id=request.request_id, name=SEALED_ARTIFACT, data=sealed)
        except (SigningBackendError, DeadlineExceeded, OSError) as exc:
            self._event("finalization_failed", request.request_id, str(exc), level="ERROR")
            logger.error("Finalization of %s failed: %s", request.request_id, exc)
            raise FinalizationFailedError(
                f"Finalization of request {request.request_id} failed: {exc}", request_id=request.request_id
            ) from exc

        updated = request.copy()
        updated.file_ref = file_ref
        updated.sealed_hash = digest
        try:
            stored = self._repo.update(updated, expected_version=request.version)
        except ConcurrentModificationError as exc:
            # another process got there first; accept its result if it sealed
            current = self._repo.get_by_id(request.request_id)
            if current is None:
                raise NotFoundError(f"Request {request.request_id} not found", request_id=request.request_id) from exc
            if current.is_sealed:
                return current
            raise FinalizationFailedError(
                f"Request {request.request_id} changed during finalization", request_id=request.request_id
            ) from exc
        except ImmutableFieldError as exc:
            self._event("finalization_failed", request.request_id, str(exc), level="ERROR")
            raise FinalizationFailedError(
                f"Finalization of request {request.request_id} was rejected by the store: {exc}",
                request_id=request.request_id,
            ) from exc

        logger.info("Request %s sealed, hash %s", stored.request_id, digest)
        self._event("request_sealed", stored.request_id, digest)
        return stored

    def _produce_sealed_bytes(self, request: Request, data: bytes) -> bytes:
        present = {normalize_identity(i) for i in self._bounded(self._backend.stamped_identities, data, what="stamp scan")}
        stamps: List[StampSpec] = [
            StampSpec(
                identity=a.identity,
                placement=SignaturePlacement(a.placement.page_index, a.placement.x, a.placement.y),
                signed_at=a.signed_at or self._clock(),
            )
            for a in request.approvers
            if normalize_identity(a.identity) not in present
        ]
        if stamps:
            data = self._bounded(self._backend.stamp, data, stamps, what="stamping")
        data = self._bounded(self._backend.tag, data, request.request_id, what="tagging")
        return self._bounded(self._backend.seal, data, request.request_id, what="sealing")

    def _bounded(self, fn, *args, what: str):
        return call_with_timeout(fn, self._backend_timeout, *args, what=what)

    def _event(self, event: str, request_id: str, message: str, *, level: str = "INFO") -> None:
        if self._events is not None:
            self._events.log(_FEATURE, event, reference_id=request_id, message=message, level=level)
