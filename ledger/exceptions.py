"""Ledger exceptions."""
from __future__ import annotations


class LedgerError(Exception):
    """Base exception for ledger access."""


class LedgerUnavailableError(LedgerError):
    """Transient failure: transport error, timeout or server-side error."""


class LedgerRejectedError(LedgerError):
    """The ledger refused the submission; retrying will not help."""


class LedgerRecordNotFoundError(LedgerError):
    """No record exists for the given reference."""

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"Ledger record not found: {reference}")


class LedgerTimeoutError(LedgerUnavailableError):
    """An attempt exceeded its deadline; the abandoned call may still complete."""
