# signing_requests/logic/workflow_engine.py
"""
Workflow rules & guards for signing requests.

- Stateless: pure guard logic, no storage or I/O here.
- pending --(first signature)--> in-progress --(sealed and anchored)--> completed
- completed is terminal.
"""

from __future__ import annotations

from signing_requests.exceptions.errors import AlreadySignedError, UnauthorizedError
from signing_requests.models.request_models import Approver, Request, RequestStatus


class WorkflowEngine:
    """Stateless rules engine; the orchestrator persists resulting changes."""

    # ----------------- Signature admission ------------------------------------
    @staticmethod
    def approver_for_signature(request: Request, identity: str) -> Approver:
        """
        Return the approver entry *identity* signs as.

        A repeated signature is only admitted while the request is fully
        signed but not yet sealed; it then resumes finalization without
        touching the approver flag.
        """
        approver = request.approver_for(identity)
        if approver is None:
            raise UnauthorizedError(
                f"{identity} is not an approver of request {request.request_id}",
                request_id=request.request_id,
            )
        if approver.signed and not WorkflowEngine.needs_finalization(request):
            raise AlreadySignedError(
                f"{approver.identity} already signed request {request.request_id}",
                request_id=request.request_id,
            )
        return approver

    # ----------------- Pipeline triggers ---------------------------------------
    @staticmethod
    def needs_finalization(request: Request) -> bool:
        """Last signature is in and nothing has been sealed yet."""
        return request.all_signed and not request.is_sealed

    @staticmethod
    def needs_anchoring(request: Request) -> bool:
        return request.is_sealed and not request.is_anchored

    # ----------------- Status transitions --------------------------------------
    @staticmethod
    def status_after_signature(current: RequestStatus) -> RequestStatus:
        if current == RequestStatus.COMPLETED:
            return current
        return RequestStatus.IN_PROGRESS

    @staticmethod
    def status_after_anchoring(request: Request) -> RequestStatus:
        if request.all_signed and request.is_sealed and request.is_anchored:
            return RequestStatus.COMPLETED
        return RequestStatus.IN_PROGRESS

    @staticmethod
    def is_consistent(request: Request) -> bool:
        """completed implies all signed, sealed and anchored; anchored implies sealed."""
        if request.is_anchored and not request.is_sealed:
            return False
        if request.is_sealed and not request.all_signed:
            return False
        if request.status == RequestStatus.COMPLETED:
            return request.all_signed and request.is_sealed and request.is_anchored
        return True
