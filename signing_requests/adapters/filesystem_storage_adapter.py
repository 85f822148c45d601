"""Filesystem implementation of StorageAdapter.

Layout: ``<root>/<request_id>/upload_<name>.pdf`` for uploads and
``<root>/<request_id>/<artifact>.pdf`` for derived documents. References
are paths relative to the root.
"""

from __future__ import annotations
from pathlib import Path
import os
import re
import tempfile

from signing_requests.adapters.storage_adapter import StorageAdapter

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_name(name: str, fallback: str = "document") -> str:
    stem = Path(name or "").stem
    cleaned = _UNSAFE.sub("_", stem).strip("._")
    return cleaned[:80] or fallback


class FilesystemStorageAdapter(StorageAdapter):
    """Local filesystem implementation of StorageAdapter."""

    def __init__(self, root_path: str | Path):
        """
        Args:
            root_path: Root directory for request documents
        """
        self._root = Path(root_path)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, file_ref: str) -> Path:
        path = (self._root / file_ref).resolve()
        if self._root.resolve() not in path.parents:
            raise FileNotFoundError(f"Reference outside storage root: {file_ref}")
        return path

    def _write_atomic(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, target)
        except BaseException:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise

    def save_upload(self, *, request_id: str, data: bytes, original_filename: str) -> str:
        ref = f"{request_id}/upload_{_safe_name(original_filename)}.pdf"
        self._write_atomic(self._resolve(ref), data)
        return ref

    def save_artifact(self, *, request_id: str, name: str, data: bytes) -> str:
        ref = f"{request_id}/{_safe_name(name, 'artifact')}.pdf"
        self._write_atomic(self._resolve(ref), data)
        return ref

    def read_bytes(self, file_ref: str) -> bytes:
        return self._resolve(file_ref).read_bytes()

    def exists(self, file_ref: str) -> bool:
        try:
            return self._resolve(file_ref).is_file()
        except FileNotFoundError:
            return False
