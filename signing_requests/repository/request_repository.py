"""Request repository protocol (interface).

Defines the contract for request persistence without implementation details.
"""

from __future__ import annotations
from typing import Protocol, Optional

from signing_requests.models.request_models import Request


class RequestRepository(Protocol):
    """Protocol for request data access."""

    def create(self, request: Request) -> Request:
        """
        Persist a new request.

        Returns:
            The stored request (version 0)
        """
        ...

    def get_by_id(self, request_id: str) -> Optional[Request]:
        """Return the request or None."""
        ...

    def find_by_hash(self, sealed_hash: str) -> Optional[Request]:
        """Return the request whose sealed hash equals *sealed_hash*, or None."""
        ...

    def update(self, request: Request, expected_version: int) -> Request:
        """
        Replace the stored request if its version is still *expected_version*.

        Approvers and history are written together with the scalar fields.

        Raises:
            NotFoundError: unknown request id
            ConcurrentModificationError: the stored version moved on
            ImmutableFieldError: history, approvers or a set-once field was rewritten

        Returns:
            The stored request with its new version
        """
        ...
