"""
Signing orchestrator.

Entry point for request creation, signature admission and anchoring
retries. All mutations of one request happen under that request's lock,
which makes "is this the last signature?" and the finalization trigger a
single atomic step; the store's version check backs this up across
processes.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Iterable, List, Optional

from core.helpers.date_time_helper import utc_now
from core.helpers.pdf_helper import count_pages
from core.logging.logic.logger import EventLogger
from signing_requests.adapters.storage_adapter import StorageAdapter
from signing_requests.exceptions.errors import (
    AnchoringFailedError,
    AssetMissingError,
    InvalidInputError,
    NotFoundError,
)
from signing_requests.logic.finalization import FinalizationPipeline
from signing_requests.logic.request_locks import RequestLockRegistry
from signing_requests.logic.workflow_engine import WorkflowEngine
from signing_requests.models.request_models import (
    Approver,
    HistoryAction,
    HistoryEntry,
    Placement,
    Request,
    RequestStatus,
    normalize_identity,
)
from signing_requests.models.sign_result import SignResult
from signing_requests.repository.request_repository import RequestRepository

logger = logging.getLogger(__name__)

_FEATURE = "signing_requests"


def _fmt_coord(value: float) -> str:
    return f"{value:g}"


class SigningOrchestrator:
    """Drives requests through pending -> in-progress -> completed."""

    def __init__(
        self,
        repository: RequestRepository,
        storage: StorageAdapter,
        pipeline: FinalizationPipeline,
        *,
        event_logger: Optional[EventLogger] = None,
        locks: Optional[RequestLockRegistry] = None,
        clock: Callable = utc_now,
    ) -> None:
        self._repo = repository
        self._storage = storage
        self._pipeline = pipeline
        self._events = event_logger
        self._locks = locks or RequestLockRegistry()
        self._clock = clock
        self._workflow = WorkflowEngine()

    # ------------------------------------------------------------------ #
    #  Creation                                                          #
    # ------------------------------------------------------------------ #
    def create_request(
        self,
        *,
        name: str,
        category: str,
        pdf_bytes: bytes,
        original_filename: str,
        initiator: str,
        approvers: Iterable[Approver],
    ) -> Request:
        """
        Validate and store a new request in status ``pending``.

        Raises:
            InvalidInputError: missing fields, bad approvers, or bytes that are not a usable PDF
        """
        name, category, initiator = (name or "").strip(), (category or "").strip(), (initiator or "").strip()
        if not name or not category or not initiator:
            raise InvalidInputError("name, category and initiator are required")

        try:
            pages = count_pages(pdf_bytes or b"")
        except ValueError as exc:
            raise InvalidInputError(f"Upload is not a valid PDF: {exc}") from exc

        cleaned = self._validate_approvers(list(approvers or []), pages)

        request_id = str(uuid.uuid4())
        file_ref = self._storage.save_upload(
            request_id=request_id, data=pdf_bytes, original_filename=original_filename or "document.pdf"
        )
        now = self._clock()
        request = Request(
            request_id=request_id,
            name=name,
            category=category,
            file_ref=file_ref,
            original_filename=original_filename or "document.pdf",
            initiator=initiator,
            approvers=cleaned,
            status=RequestStatus.PENDING,
            created_at=now,
            history=(
                HistoryEntry(
                    action=HistoryAction.CREATED,
                    actor=initiator,
                    timestamp=now,
                    details=f"Request created with {len(cleaned)} approver(s)",
                ),
            ),
        )
        stored = self._repo.create(request)
        logger.info("Created request %s with %d approver(s)", request_id, len(cleaned))
        self._event("request_created", request_id, name, username=initiator)
        return stored

    @staticmethod
    def _validate_approvers(approvers: List[Approver], pages: int) -> List[Approver]:
        if not approvers:
            raise InvalidInputError("At least one approver is required")
        seen = set()
        cleaned: List[Approver] = []
        for a in approvers:
            identity = (a.identity or "").strip()
            key = normalize_identity(identity)
            if not key:
                raise InvalidInputError("Approver identity must not be empty")
            if key in seen:
                raise InvalidInputError(f"Duplicate approver {identity}")
            seen.add(key)
            p = a.placement
            if p.page_index < 0:
                raise InvalidInputError(f"Page index of {identity} must be >= 0")
            if p.page_index >= pages:
                raise InvalidInputError(
                    f"Page index {p.page_index} of {identity} is beyond the document ({pages} page(s))"
                )
            cleaned.append(Approver(identity=identity, placement=Placement(p.page_index, float(p.x), float(p.y))))
        return cleaned

    # ------------------------------------------------------------------ #
    #  Queries                                                           #
    # ------------------------------------------------------------------ #
    def get_request(self, request_id: str) -> Request:
        request = self._repo.get_by_id(request_id)
        if request is None:
            raise NotFoundError(f"Request {request_id} not found", request_id=request_id)
        return request

    # ------------------------------------------------------------------ #
    #  Signing                                                           #
    # ------------------------------------------------------------------ #
    def sign(self, request_id: str, signer_identity: str) -> SignResult:
        """
        Record *signer_identity*'s signature and finalize when it was the last one.

        Raises:
            NotFoundError, UnauthorizedError, AlreadySignedError, AssetMissingError:
                validation failures, nothing is changed
            FinalizationFailedError: the signature is kept, sealing did not happen;
                signing again with the same identity retries finalization
        """
        with self._locks.hold(request_id):
            request = self.get_request(request_id)
            approver = self._workflow.approver_for_signature(request, signer_identity)

            if not approver.signed:
                if not self._storage.exists(request.file_ref):
                    raise AssetMissingError(
                        f"Document of request {request_id} is missing", request_id=request_id
                    )
                request = self._record_signature(request, approver)
            else:
                logger.info("Resuming finalization of %s on repeated signature by %s", request_id, approver.identity)

            if not self._workflow.needs_finalization(request):
                return SignResult.of(request)

            stored, anchoring_error = self._pipeline.run(request)
            return SignResult.of(stored, anchoring_error)

    def _record_signature(self, request: Request, approver: Approver) -> Request:
        now = self._clock()
        updated = request.copy()
        target = updated.approver_for(approver.identity)
        target.signed = True
        target.signed_at = now
        updated.status = self._workflow.status_after_signature(updated.status)
        updated.append_history(
            HistoryAction.SIGNED,
            target.identity,
            f"Document signed at coordinates ({_fmt_coord(target.placement.x)}, {_fmt_coord(target.placement.y)})",
            at=now,
        )
        stored = self._repo.update(updated, expected_version=request.version)
        logger.info("%s signed request %s (%d/%d)", target.identity, stored.request_id,
                    stored.signed_count, len(stored.approvers))
        self._event("request_signed", stored.request_id, f"{stored.signed_count}/{len(stored.approvers)}",
                    username=target.identity)
        return stored

    # ------------------------------------------------------------------ #
    #  Anchoring retry                                                   #
    # ------------------------------------------------------------------ #
    def retry_anchoring(self, request_id: str) -> SignResult:
        """
        Re-submit the ledger payload of a sealed, unanchored request.

        Raises:
            NotFoundError: unknown request
            InvalidInputError: request is not sealed, or already anchored
            AnchoringFailedError: the ledger still refuses; an error entry is recorded
        """
        with self._locks.hold(request_id):
            request = self.get_request(request_id)
            if not self._workflow.needs_anchoring(request):
                state = "already anchored" if request.is_anchored else "not sealed"
                raise InvalidInputError(f"Request {request_id} is {state}", request_id=request_id)
            stored, error = self._pipeline.anchor(request)
            if error:
                raise AnchoringFailedError(error, request_id=request_id)
            return SignResult.of(stored)

    def _event(self, event: str, request_id: str, message: str, *, username: Optional[str] = None) -> None:
        if self._events is not None:
            self._events.log(_FEATURE, event, username=username, reference_id=request_id, message=message)
