"""
Signing backend abstraction used by the finalization pipeline.

All operations are pure byte transformations: they take document bytes and
return new bytes, never writing to storage.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from ..models.signature_placement import StampSpec


class SigningBackend(ABC):
    @abstractmethod
    def stamped_identities(self, data: bytes) -> List[str]:
        """Identities whose visible stamp is already present in *data*."""
        raise NotImplementedError

    @abstractmethod
    def stamp(self, data: bytes, stamps: List[StampSpec]) -> bytes:
        """Draw the given stamps. Raises StampingError."""
        raise NotImplementedError

    @abstractmethod
    def tag(self, data: bytes, request_id: str) -> bytes:
        """Embed the custody request id. Raises StampingError."""
        raise NotImplementedError

    @abstractmethod
    def seal(self, data: bytes, request_id: str) -> bytes:
        """Apply the organisation seal. Raises SealingError."""
        raise NotImplementedError
