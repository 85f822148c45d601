"""Signing request exceptions.

Validation failures (NotFound, Unauthorized, AlreadySigned, AssetMissing,
InvalidInput) leave stored state untouched. FinalizationFailed and
AnchoringFailed are raised after the approver's signature is committed.
"""
from __future__ import annotations

from typing import Optional


class SigningRequestError(Exception):
    """Base exception for the signing request feature."""

    code = "SIGNING_REQUEST_ERROR"

    def __init__(self, message: str, *, request_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.request_id = request_id


class NotFoundError(SigningRequestError):
    """Unknown request id."""
    code = "NOT_FOUND"


class UnauthorizedError(SigningRequestError):
    """Signer is not one of the request's approvers."""
    code = "UNAUTHORIZED"


class AlreadySignedError(SigningRequestError):
    """The approver's signed flag is already set."""
    code = "ALREADY_SIGNED"


class AssetMissingError(SigningRequestError):
    """The stored PDF for the request cannot be located."""
    code = "ASSET_MISSING"


class InvalidInputError(SigningRequestError):
    """Malformed upload or request data."""
    code = "INVALID_INPUT"


class FinalizationFailedError(SigningRequestError):
    """Local stamp/seal/hash step failed; retried by signing again."""
    code = "FINALIZATION_FAILED"


class AnchoringFailedError(SigningRequestError):
    """Ledger submission failed after all retries."""
    code = "ANCHORING_FAILED"


class ConcurrentModificationError(SigningRequestError):
    """The stored record changed since it was read (stale version)."""
    code = "CONCURRENT_MODIFICATION"

    def __init__(self, message: str, *, request_id: Optional[str] = None,
                 expected_version: Optional[int] = None) -> None:
        super().__init__(message, request_id=request_id)
        self.expected_version = expected_version


class ImmutableFieldError(SigningRequestError):
    """An update tried to rewrite history, approvers or a set-once field."""
    code = "IMMUTABLE_FIELD"
