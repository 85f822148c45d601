"""Storage adapter abstraction.

Defines the interface for request document storage. File references are
opaque strings owned by the adapter.
"""

from __future__ import annotations
from abc import ABC, abstractmethod


class StorageAdapter(ABC):
    """Abstract storage adapter for request PDFs."""

    @abstractmethod
    def save_upload(self, *, request_id: str, data: bytes, original_filename: str) -> str:
        """
        Persist the uploaded document.

        Args:
            request_id: Request ID
            data: PDF bytes
            original_filename: Name of the file as uploaded

        Returns:
            File reference of the stored upload
        """
        raise NotImplementedError

    @abstractmethod
    def save_artifact(self, *, request_id: str, name: str, data: bytes) -> str:
        """
        Persist a derived document (e.g. the sealed PDF) all-or-nothing.

        Readers see either no file or the complete bytes, never a partial write.

        Returns:
            File reference of the artifact
        """
        raise NotImplementedError

    @abstractmethod
    def read_bytes(self, file_ref: str) -> bytes:
        """Return the stored bytes; raises FileNotFoundError when missing."""
        raise NotImplementedError

    @abstractmethod
    def exists(self, file_ref: str) -> bool:
        """True if the reference points at a stored file."""
        raise NotImplementedError
