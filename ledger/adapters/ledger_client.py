"""Ledger client abstraction.

Implementations submit opaque payloads and look them up by reference.
Payloads must round-trip byte-for-byte.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ledger.models.ledger_records import LedgerReceipt, LedgerRecord


class LedgerClient(ABC):
    """Abstract append-only ledger."""

    network: str = "local"

    @abstractmethod
    def submit(self, payload: bytes) -> LedgerReceipt:
        """
        Append *payload* to the ledger.

        Raises:
            LedgerUnavailableError: transient failure, may be retried
            LedgerRejectedError: permanent refusal
        """
        raise NotImplementedError

    @abstractmethod
    def lookup(self, reference: str) -> LedgerRecord:
        """
        Fetch the record stored under *reference*.

        Raises:
            LedgerRecordNotFoundError: no such record
            LedgerUnavailableError: transient failure
        """
        raise NotImplementedError

    def explorer_url(self, reference: str) -> Optional[str]:
        """Public URL for a human to inspect the record, if the ledger has one."""
        return None
